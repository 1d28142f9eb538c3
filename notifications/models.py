from django.db import models
from django.conf import settings
from django.utils import timezone


class Priority(models.TextChoices):
    LOW = 'low', 'Low'
    MEDIUM = 'medium', 'Medium'
    HIGH = 'high', 'High'
    URGENT = 'urgent', 'Urgent'


class NotificationQuerySet(models.QuerySet):
    def active(self):
        """Exclude notifications whose TTL has passed, even before the purge runs."""
        return self.filter(
            models.Q(expires_at__isnull=True) | models.Q(expires_at__gt=timezone.now())
        )

    def unread(self):
        return self.active().filter(is_read=False)

    def expired(self):
        return self.filter(expires_at__isnull=False, expires_at__lte=timezone.now())

    def mark_all_read(self):
        return self.filter(is_read=False).update(is_read=True, read_at=timezone.now())


class BaseNotification(models.Model):
    title = models.CharField(max_length=200)
    message = models.TextField()
    data = models.JSONField(default=dict, blank=True)
    is_read = models.BooleanField(default=False)
    read_at = models.DateTimeField(null=True, blank=True)
    action_required = models.BooleanField(default=False)
    priority = models.CharField(max_length=10, choices=Priority.choices, default=Priority.MEDIUM)
    expires_at = models.DateTimeField(null=True, blank=True, db_index=True)
    related_order = models.ForeignKey(
        'orders.Order',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    objects = NotificationQuerySet.as_manager()

    class Meta:
        abstract = True
        ordering = ['-created_at']

    @property
    def is_expired(self):
        return self.expires_at is not None and self.expires_at <= timezone.now()

    @property
    def verification_id(self):
        return (self.data or {}).get('verification_id')

    def mark_as_read(self):
        """Mark notification as read with timestamp"""
        if not self.is_read:
            self.is_read = True
            self.read_at = timezone.now()
            self.save(update_fields=['is_read', 'read_at'])

    def resolve_action(self):
        """Mark read and clear the pending action once it has been answered."""
        self.is_read = True
        self.read_at = self.read_at or timezone.now()
        self.action_required = False
        self.save(update_fields=['is_read', 'read_at', 'action_required'])


class Notification(BaseNotification):
    NOTIFICATION_TYPES = (
        ('order_update', 'Order Update'),
        ('booking_status', 'Booking Status'),
        ('price_change', 'Price Change'),
        ('general', 'General'),
        ('rider_edit', 'Rider Edit'),
    )
    ACTION_TYPES = (
        ('approve_changes', 'Approve Changes'),
        ('view_order', 'View Order'),
        ('contact_support', 'Contact Support'),
        ('none', 'None'),
    )

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='user_notifications'
    )
    notification_type = models.CharField(max_length=30, choices=NOTIFICATION_TYPES, default='general')
    action_type = models.CharField(max_length=30, choices=ACTION_TYPES, default='none')
    related_rider = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )

    class Meta(BaseNotification.Meta):
        db_table = 'notifications_notification'
        indexes = [
            models.Index(fields=['user', 'is_read'], name='notificatio_user_id_3b1e5f_idx'),
            models.Index(fields=['user', '-created_at'], name='notificatio_user_id_9a4c2d_idx'),
        ]

    def __str__(self):
        return f"{self.notification_type} for {self.user_id}: {self.title}"


class RiderNotification(BaseNotification):
    NOTIFICATION_TYPES = (
        ('order_assigned', 'Order Assigned'),
        ('order_updated', 'Order Updated'),
        ('order_cancelled', 'Order Cancelled'),
        ('general', 'General'),
        ('location_request', 'Location Request'),
        ('customer_verification_response', 'Customer Verification Response'),
    )
    ACTION_TYPES = (
        ('accept_order', 'Accept Order'),
        ('start_pickup', 'Start Pickup'),
        ('update_location', 'Update Location'),
        ('view_order', 'View Order'),
        ('none', 'None'),
    )

    rider = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='rider_notifications'
    )
    notification_type = models.CharField(max_length=40, choices=NOTIFICATION_TYPES, default='general')
    action_type = models.CharField(max_length=30, choices=ACTION_TYPES, default='none')

    class Meta(BaseNotification.Meta):
        db_table = 'notifications_ridernotification'
        indexes = [
            models.Index(fields=['rider', 'is_read'], name='notificatio_rider_i_5d2f7a_idx'),
            models.Index(fields=['rider', '-created_at'], name='notificatio_rider_i_e81b3c_idx'),
        ]

    def __str__(self):
        return f"{self.notification_type} for rider {self.rider_id}: {self.title}"
