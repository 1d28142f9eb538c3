# serializers.py
from django.utils import timezone
from rest_framework import serializers
from .models import Notification, RiderNotification


def humanize_age(created_at):
    seconds = int((timezone.now() - created_at).total_seconds())
    days, hours, minutes = seconds // 86400, seconds // 3600, seconds // 60
    if days > 0:
        return f"{days} day{'s' if days > 1 else ''} ago"
    if hours > 0:
        return f"{hours} hour{'s' if hours > 1 else ''} ago"
    if minutes > 0:
        return f"{minutes} minute{'s' if minutes > 1 else ''} ago"
    return "Just now"


class BaseNotificationSerializer(serializers.ModelSerializer):
    related_order = serializers.SerializerMethodField()
    time_ago = serializers.SerializerMethodField()
    read_at = serializers.DateTimeField(read_only=True)
    created_at = serializers.DateTimeField(read_only=True)
    expires_at = serializers.DateTimeField(read_only=True)

    common_fields = [
        'id', 'notification_type', 'title', 'message', 'data',
        'is_read', 'read_at', 'action_required', 'action_type',
        'priority', 'expires_at', 'created_at', 'time_ago', 'related_order',
    ]

    def get_related_order(self, obj):
        order = obj.related_order
        if order is None:
            return None
        return {
            'id': order.id,
            'order_number': order.order_number,
            'status': order.status,
            'verification_state': order.verification_state,
        }

    def get_time_ago(self, obj):
        return humanize_age(obj.created_at)


class NotificationSerializer(BaseNotificationSerializer):
    related_rider = serializers.SerializerMethodField()

    class Meta:
        model = Notification
        fields = BaseNotificationSerializer.common_fields + ['related_rider']
        read_only_fields = fields

    def get_related_rider(self, obj):
        rider = obj.related_rider
        if rider is None:
            return None
        return {'id': rider.id, 'name': rider.display_name, 'phone_number': rider.phone_number}


class RiderNotificationSerializer(BaseNotificationSerializer):
    class Meta:
        model = RiderNotification
        fields = BaseNotificationSerializer.common_fields
        read_only_fields = fields
