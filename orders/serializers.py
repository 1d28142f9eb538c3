# orders/serializers.py
from rest_framework import serializers

from . import pricing
from .models import Order, OrderItem, OrderChangeProposal


class OrderItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderItem
        fields = ['id', 'name', 'quantity', 'unit_price', 'total_price']


class OrderSerializer(serializers.ModelSerializer):
    items = OrderItemSerializer(many=True, source='items.all', read_only=True)
    status_display = serializers.CharField(source='get_status_display', read_only=True)
    customer_name = serializers.CharField(source='customer.display_name', read_only=True)
    rider_name = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = [
            'order_number',
            'id',
            'kind',
            'total_amount',
            'status',
            'status_display',
            'verification_state',
            'customer_name',
            'rider_name',
            'notes',
            'created_at',
            'updated_at',
            'items'
        ]

    def get_rider_name(self, obj):
        return obj.assigned_rider.display_name if obj.assigned_rider else None


class ItemInputSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=120)
    quantity = serializers.IntegerField(min_value=1)
    price = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0)


class ItemListField(serializers.ListField):
    child = ItemInputSerializer()

    def to_internal_value(self, data):
        items = super().to_internal_value(data)
        duplicates = pricing.find_duplicate_names(items)
        if duplicates:
            raise serializers.ValidationError(f"Duplicate item names: {', '.join(duplicates)}")
        return items


class AdjustOrderSerializer(serializers.Serializer):
    items = ItemListField(allow_empty=False)
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class DecisionSerializer(serializers.Serializer):
    approved = serializers.BooleanField()
    reason = serializers.CharField(required=False, allow_blank=True, allow_null=True, default='')


class ProposalSerializer(serializers.ModelSerializer):
    """Pending change request as the customer sees it."""
    verification_id = serializers.UUIDField(source='id', read_only=True)
    order_id = serializers.IntegerField(read_only=True)
    order_number = serializers.CharField(source='order.order_number', read_only=True)
    order_kind = serializers.CharField(read_only=True)
    rider_name = serializers.SerializerMethodField()
    rider_phone = serializers.SerializerMethodField()
    original_total = serializers.DecimalField(max_digits=10, decimal_places=2, read_only=True)
    updated_total = serializers.DecimalField(max_digits=10, decimal_places=2, read_only=True)
    price_delta = serializers.DecimalField(max_digits=10, decimal_places=2, read_only=True)
    changes = serializers.SerializerMethodField()

    class Meta:
        model = OrderChangeProposal
        fields = [
            'id', 'verification_id', 'order_id', 'order_number', 'order_kind',
            'source', 'rider_name', 'rider_phone', 'rider_notes',
            'original_items', 'updated_items', 'original_total', 'updated_total',
            'price_delta', 'changes', 'status', 'priority',
            'created_at', 'expires_at', 'decided_at', 'decision_reason', 'superseded_by',
        ]
        read_only_fields = fields

    def get_rider_name(self, obj):
        return obj.rider.display_name if obj.rider else 'Support team'

    def get_rider_phone(self, obj):
        return obj.rider.phone_number if obj.rider else ''

    def get_changes(self, obj):
        diff = pricing.diff_items(obj.original_items, obj.updated_items)
        return {
            'added': [change.name for change in diff.added],
            'removed': [change.name for change in diff.removed],
            'modified': [
                {'name': change.name, 'quantity_change': change.quantity_change}
                for change in diff.modified
            ],
        }
