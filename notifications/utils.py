import logging
from datetime import timedelta

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.conf import settings
from django.db import transaction
from django.utils import timezone

from orders import pricing
from .models import Notification, RiderNotification, Priority
from .serializers import NotificationSerializer, RiderNotificationSerializer

logger = logging.getLogger(__name__)

CHANGE_REQUEST_TTL_HOURS = getattr(settings, 'CHANGE_REQUEST_TTL_HOURS', 24)
ADMIN_CORRECTION_TTL_HOURS = getattr(settings, 'ADMIN_CORRECTION_TTL_HOURS', 48)
VERIFICATION_RESPONSE_TTL_HOURS = getattr(settings, 'VERIFICATION_RESPONSE_TTL_HOURS', 24)
ORDER_UPDATE_TTL_HOURS = getattr(settings, 'ORDER_UPDATE_TTL_HOURS', 48)


def expiry_after(hours):
    return timezone.now() + timedelta(hours=hours)


def _money(value):
    return str(pricing.to_decimal(value))


def send_change_request_notification(proposal):
    """Ask the customer to approve or reject a pending change request."""
    order = proposal.order
    rider = proposal.rider
    delta = proposal.price_delta
    is_admin = proposal.source == 'admin'
    rider_name = rider.display_name if rider else 'Support team'

    if is_admin:
        title = "Order Corrected by Support"
        message = f"Your order #{order.order_number} was corrected by our support team. Please review the changes."
    else:
        title = "Order Updated by Rider"
        message = f"Your order #{order.order_number} has been updated by {rider_name}. Please review the changes."

    notification = Notification.objects.create(
        user=order.customer,
        title=title,
        message=message,
        notification_type='price_change' if delta else 'rider_edit',
        data={
            'verification_id': str(proposal.id),
            'order_id': order.id,
            'order_number': order.order_number,
            'order_kind': order.kind,
            'old_items': proposal.original_items,
            'new_items': proposal.updated_items,
            'old_total': _money(proposal.original_total),
            'new_total': _money(proposal.updated_total),
            'price_change': _money(delta),
            'rider_name': rider_name,
            'rider_phone': rider.phone_number if rider else '',
            'rider_notes': proposal.rider_notes,
        },
        action_required=True,
        action_type='approve_changes',
        related_order=order,
        related_rider=rider,
        priority=pricing.derive_priority(delta),
        expires_at=proposal.expires_at,
    )
    logger.info("Change request notification %s created for order %s", notification.id, order.order_number)
    push_on_commit(order.customer, notification)
    return notification


def retract_change_request_notifications(proposal):
    """Drop customer notifications for a superseded or expired change request."""
    deleted, _ = Notification.objects.filter(
        user=proposal.order.customer,
        action_type='approve_changes',
        data__verification_id=str(proposal.id),
    ).delete()
    return deleted


def resolve_change_request_notifications(proposal):
    for notification in Notification.objects.filter(
        user=proposal.order.customer,
        action_required=True,
        data__verification_id=str(proposal.id),
    ):
        notification.resolve_action()


def send_order_update_notification(order, rider, old_items):
    """Tell the customer that committed items changed without needing approval."""
    notification = Notification.objects.create(
        user=order.customer,
        title="Order Updated",
        message=f"Your order #{order.order_number} has been updated. New total: {_money(order.total_amount)}.",
        notification_type='order_update',
        data={
            'order_id': order.id,
            'order_number': order.order_number,
            'old_items': old_items,
            'new_items': order.committed_items(),
            'new_total': _money(order.total_amount),
        },
        action_required=False,
        action_type='view_order',
        related_order=order,
        related_rider=rider,
        priority=Priority.MEDIUM,
        expires_at=expiry_after(ORDER_UPDATE_TTL_HOURS),
    )
    push_on_commit(order.customer, notification)
    return notification


def send_verification_response_notification(proposal):
    """Tell the rider how the customer answered a change request."""
    if proposal.rider is None:
        return None

    order = proposal.order
    approved = proposal.status == 'approved'
    reason = proposal.decision_reason

    if approved:
        title = "Customer Approved Changes"
        message = f"Customer approved the changes for order #{order.order_number}. You can proceed with the updated order."
    else:
        title = "Customer Rejected Changes"
        message = (
            f"Customer rejected the changes for order #{order.order_number}. "
            + (f"Reason: {reason}" if reason else "Please review the order and try again.")
        )

    notification = RiderNotification.objects.create(
        rider=proposal.rider,
        title=title,
        message=message,
        notification_type='customer_verification_response',
        data={
            'verification_id': str(proposal.id),
            'order_id': order.id,
            'order_number': order.order_number,
            'approved': approved,
            'reason': reason,
            'customer_name': order.customer.display_name,
            'price_change': _money(proposal.price_delta),
        },
        action_required=not approved,
        action_type='none' if approved else 'view_order',
        related_order=order,
        priority=Priority.MEDIUM if approved else Priority.HIGH,
        expires_at=expiry_after(VERIFICATION_RESPONSE_TTL_HOURS),
    )
    logger.info(
        "Verification response notification %s (%s) created for rider %s",
        notification.id, 'approved' if approved else 'rejected', proposal.rider_id
    )
    push_on_commit(proposal.rider, notification, rider=True)
    return notification


def purge_expired():
    """Delete every notification whose TTL has passed. Returns (customer, rider) counts."""
    customer_deleted, _ = Notification.objects.expired().delete()
    rider_deleted, _ = RiderNotification.objects.expired().delete()
    return customer_deleted, rider_deleted


def cleanup_read(days_old=30):
    cutoff = timezone.now() - timedelta(days=days_old)
    customer_deleted, _ = Notification.objects.filter(is_read=True, created_at__lt=cutoff).delete()
    rider_deleted, _ = RiderNotification.objects.filter(is_read=True, created_at__lt=cutoff).delete()
    return customer_deleted, rider_deleted


def group_name_for(user, rider=False):
    return f"{'rider_' if rider else ''}notifications_{user.id}"


def push_on_commit(user, notification, rider=False):
    transaction.on_commit(lambda: send_websocket_notification(user, notification, rider=rider))


def send_websocket_notification(user, notification, rider=False):
    """Send notification via WebSocket to specific user"""
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return

    serializer_class = RiderNotificationSerializer if rider else NotificationSerializer
    notification_data = serializer_class(notification).data

    try:
        async_to_sync(channel_layer.group_send)(
            group_name_for(user, rider=rider),
            {
                'type': 'send_notification',
                'notification': notification_data
            }
        )
    except Exception:
        # Push is best-effort; the mailbox row is the source of truth
        logger.warning("WebSocket push failed for notification %s", notification.id, exc_info=True)
