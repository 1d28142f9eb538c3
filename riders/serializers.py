# riders/serializers.py
from rest_framework import serializers

from orders.models import Order
from orders.serializers import ItemListField, OrderItemSerializer


class CustomerMiniSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    first_name = serializers.CharField()
    last_name = serializers.CharField()
    phone_number = serializers.CharField()


class RiderOrderSerializer(serializers.ModelSerializer):
    # show only minimal customer info
    customer = CustomerMiniSerializer(read_only=True)
    items = OrderItemSerializer(many=True, source='items.all', read_only=True)
    address = serializers.CharField(source='customer.address', read_only=True, allow_null=True)

    class Meta:
        model = Order
        fields = [
            "id", "order_number", "kind", "status", "verification_state",
            "created_at", "assigned_at", "customer", "address", "notes",
            "total_amount", "items"
        ]


class RiderOrderUpdateSerializer(serializers.Serializer):
    items = ItemListField(allow_empty=False)
    notes = serializers.CharField(required=False, allow_blank=True, default='')
    requiresVerification = serializers.BooleanField(required=False, default=True)
    notificationData = serializers.DictField(required=False, default=dict)
