# orders/models.py
from django.db import models
from django.db.models import Q
from django.conf import settings
from django.utils import timezone
from notifications.models import Priority
from . import pricing
import uuid


class OrderKind(models.TextChoices):
    REGULAR = 'regular', 'Regular'
    QUICK_PICKUP = 'quick_pickup', 'Quick Pickup'


class OrderStatus(models.TextChoices):
    CREATED = 'created', 'Created'
    ASSIGNED = 'assigned', 'Assigned'
    PICKED_UP = 'picked_up', 'Picked Up'
    IN_PROGRESS = 'in_progress', 'In Progress'
    DELIVERED = 'delivered', 'Delivered'
    CANCELLED = 'cancelled', 'Cancelled'


class VerificationState(models.TextChoices):
    NONE = 'none', 'None'
    PENDING = 'pending_verification', 'Pending Verification'


class Order(models.Model):
    customer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='orders'
    )
    order_number = models.CharField(max_length=20, unique=True, editable=False)
    kind = models.CharField(max_length=20, choices=OrderKind.choices, default=OrderKind.REGULAR)
    status = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.CREATED
    )
    total_amount = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    notes = models.TextField(blank=True)
    verification_state = models.CharField(
        max_length=30,
        choices=VerificationState.choices,
        default=VerificationState.NONE
    )
    assigned_rider = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True,
        on_delete=models.SET_NULL,
        related_name='assigned_orders'
    )
    assigned_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"Order #{self.order_number}"

    def save(self, *args, **kwargs):
        if not self.order_number:
            date_part = timezone.now().strftime('%Y%m%d')
            unique_part = uuid.uuid4().hex[:6].upper()
            self.order_number = f"ORD-{date_part}-{unique_part}"
        super().save(*args, **kwargs)

    @property
    def is_quick_pickup(self):
        return self.kind == OrderKind.QUICK_PICKUP

    def committed_items(self):
        """Current items in the ``{name, quantity, price, total}`` JSON shape."""
        return [
            {
                'name': item.name,
                'quantity': item.quantity,
                'price': str(item.unit_price),
                'total': str(item.total_price),
            }
            for item in self.items.order_by('id')
        ]

    def replace_items(self, items):
        """Commit ``items`` as the order's authoritative contents."""
        normalized = pricing.normalize_items(items)
        self.items.all().delete()
        for item in normalized:
            OrderItem.objects.create(
                order=self,
                name=item['name'],
                quantity=item['quantity'],
                unit_price=item['price'],
            )
        self.total_amount = pricing.items_total(normalized)
        self.save(update_fields=['total_amount', 'updated_at'])


class OrderItem(models.Model):
    order = models.ForeignKey(
        Order,
        on_delete=models.CASCADE,
        related_name='items'
    )
    name = models.CharField(max_length=120)
    quantity = models.PositiveIntegerField()
    unit_price = models.DecimalField(max_digits=10, decimal_places=2)
    total_price = models.DecimalField(max_digits=10, decimal_places=2)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=['order', 'name'], name='unique_item_name_per_order')
        ]

    def save(self, *args, **kwargs):
        self.total_price = self.unit_price * self.quantity
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.quantity}x {self.name} in Order #{self.order.order_number}"


class ProposalStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    APPROVED = 'approved', 'Approved'
    REJECTED = 'rejected', 'Rejected'
    EXPIRED = 'expired', 'Expired'


class ProposalSource(models.TextChoices):
    RIDER = 'rider', 'Rider'
    ADMIN = 'admin', 'Admin'


class OrderChangeProposal(models.Model):
    TERMINAL_STATUSES = {ProposalStatus.APPROVED, ProposalStatus.REJECTED, ProposalStatus.EXPIRED}

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order = models.ForeignKey(
        Order,
        on_delete=models.CASCADE,
        related_name='change_proposals'
    )
    rider = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True,
        on_delete=models.SET_NULL,
        related_name='submitted_proposals'
    )
    source = models.CharField(max_length=10, choices=ProposalSource.choices, default=ProposalSource.RIDER)
    original_items = models.JSONField(default=list)
    updated_items = models.JSONField(default=list)
    rider_notes = models.TextField(blank=True)
    status = models.CharField(
        max_length=10,
        choices=ProposalStatus.choices,
        default=ProposalStatus.PENDING
    )
    priority = models.CharField(max_length=10, choices=Priority.choices, default=Priority.MEDIUM)
    created_at = models.DateTimeField(auto_now_add=True)
    expires_at = models.DateTimeField()
    decided_at = models.DateTimeField(null=True, blank=True)
    decision_reason = models.TextField(blank=True)
    superseded_by = models.ForeignKey(
        'self',
        null=True, blank=True,
        on_delete=models.SET_NULL,
        related_name='supersedes'
    )

    class Meta:
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(
                fields=['order'],
                condition=Q(status='pending'),
                name='one_pending_proposal_per_order'
            )
        ]
        indexes = [models.Index(fields=['status', 'expires_at'], name='orders_orde_status_7c1e2a_idx')]

    def __str__(self):
        return f"Change request {self.id} for Order #{self.order.order_number} ({self.status})"

    @property
    def order_kind(self):
        return self.order.kind

    @property
    def original_total(self):
        return pricing.items_total(self.original_items)

    @property
    def updated_total(self):
        return pricing.items_total(self.updated_items)

    @property
    def price_delta(self):
        return pricing.price_delta(self.original_items, self.updated_items)

    @property
    def is_terminal(self):
        return self.status in self.TERMINAL_STATUSES

    @property
    def is_expired(self):
        return self.status == ProposalStatus.EXPIRED or (
            self.status == ProposalStatus.PENDING and self.expires_at <= timezone.now()
        )

    def transition_to(self, new_status, reason=''):
        """Move a pending request to a terminal status; terminal states never change."""
        if self.status != ProposalStatus.PENDING:
            raise ValueError(f"Cannot change a {self.status} change request to {new_status}")
        if new_status not in self.TERMINAL_STATUSES:
            raise ValueError(f"{new_status} is not a terminal status")
        self.status = new_status
        self.decided_at = timezone.now()
        self.decision_reason = reason or ''
        self.save(update_fields=['status', 'decided_at', 'decision_reason'])
