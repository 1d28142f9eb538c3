# orders/services.py
import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.utils import timezone

from notifications.utils import (
    send_change_request_notification,
    send_order_update_notification,
    send_verification_response_notification,
    retract_change_request_notifications,
    resolve_change_request_notifications,
)
from . import pricing
from .models import (
    Order, OrderChangeProposal, ProposalStatus, ProposalSource, VerificationState,
)

logger = logging.getLogger(__name__)

CHANGE_REQUEST_TTL_HOURS = getattr(settings, 'CHANGE_REQUEST_TTL_HOURS', 24)
ADMIN_CORRECTION_TTL_HOURS = getattr(settings, 'ADMIN_CORRECTION_TTL_HOURS', 48)

SUPERSEDED_REASON = 'Superseded by a newer change request'
EXPIRED_REASON = 'No customer response before the deadline'


class ProposalError(Exception):
    pass


class ProposalNotFound(ProposalError):
    pass


class ProposalExpired(ProposalError):
    def __init__(self, proposal):
        super().__init__("This change request has expired")
        self.proposal = proposal


@dataclass
class DecisionOutcome:
    proposal: OrderChangeProposal
    already_processed: bool = False
    rider_notification: Optional[object] = None


def validate_items(items):
    """Normalise incoming items, raising ValueError for anything unusable."""
    if not items:
        raise ValueError("At least one item is required")
    duplicates = pricing.find_duplicate_names(items)
    if duplicates:
        raise ValueError(f"Duplicate item names: {', '.join(duplicates)}")
    normalized = pricing.normalize_items(items)
    for item in normalized:
        if item['quantity'] <= 0:
            raise ValueError(f"Quantity for {item['name']} must be positive")
        if item['price'] < 0:
            raise ValueError(f"Price for {item['name']} cannot be negative")
    return normalized


class ProposalService:
    @classmethod
    def submit(cls, order_id, rider, items, notes='', source=ProposalSource.RIDER):
        """Record a change request and ask the customer to confirm it.

        Any request still pending for the order is expired first and pointed at
        the new one, so an order never has more than one pending request. The
        order's items and total stay as they are until the customer approves.
        """
        validate_items(items)
        ttl_hours = ADMIN_CORRECTION_TTL_HOURS if source == ProposalSource.ADMIN else CHANGE_REQUEST_TTL_HOURS

        with transaction.atomic():
            order = Order.objects.select_for_update().get(pk=order_id)
            superseded = cls._expire_pending_for(order, SUPERSEDED_REASON)

            updated_items = pricing.serialize_items(items)
            original_items = order.committed_items()
            proposal = OrderChangeProposal.objects.create(
                order=order,
                rider=rider,
                source=source,
                original_items=original_items,
                updated_items=updated_items,
                rider_notes=notes or '',
                priority=pricing.derive_priority(pricing.price_delta(original_items, updated_items)),
                expires_at=timezone.now() + timedelta(hours=ttl_hours),
            )

            for old in superseded:
                old.superseded_by = proposal
                old.save(update_fields=['superseded_by'])

            order.verification_state = VerificationState.PENDING
            order.save(update_fields=['verification_state', 'updated_at'])

            notification = send_change_request_notification(proposal)

        logger.info(
            "Change request %s submitted for order %s (delta %s, superseded %s)",
            proposal.id, order.order_number, proposal.price_delta, len(superseded)
        )
        return proposal, notification

    @classmethod
    def commit_items(cls, order_id, rider, items):
        """Apply an edit that needs no confirmation and tell the customer about it."""
        validate_items(items)

        with transaction.atomic():
            order = Order.objects.select_for_update().get(pk=order_id)
            cls._expire_pending_for(order, SUPERSEDED_REASON)
            old_items = order.committed_items()
            order.replace_items(items)
            order.verification_state = VerificationState.NONE
            order.save(update_fields=['verification_state', 'updated_at'])
            notification = send_order_update_notification(order, rider, old_items)

        logger.info("Items of order %s committed directly, new total %s", order.order_number, order.total_amount)
        return order, notification

    @classmethod
    def decide(cls, proposal_id, customer, approved, reason=''):
        """Apply the customer's answer exactly once.

        A request that already reached a terminal status is reported as
        already processed with no side effects. A pending request past its
        deadline is expired and ProposalExpired is raised.
        """
        expired = None

        with transaction.atomic():
            try:
                proposal = OrderChangeProposal.objects.select_for_update().get(
                    pk=proposal_id, order__customer=customer
                )
            except (OrderChangeProposal.DoesNotExist, DjangoValidationError):
                raise ProposalNotFound("Change request not found")

            if proposal.is_terminal:
                return DecisionOutcome(proposal=proposal, already_processed=True)

            if proposal.is_expired:
                cls._expire(proposal, EXPIRED_REASON)
                expired = proposal
            else:
                order = Order.objects.select_for_update().get(pk=proposal.order_id)
                if approved:
                    order.replace_items(proposal.updated_items)
                    proposal.transition_to(ProposalStatus.APPROVED, reason)
                else:
                    proposal.transition_to(ProposalStatus.REJECTED, reason)

                order.verification_state = VerificationState.NONE
                order.save(update_fields=['verification_state', 'updated_at'])

                resolve_change_request_notifications(proposal)
                rider_notification = send_verification_response_notification(proposal)

        if expired is not None:
            raise ProposalExpired(expired)

        logger.info("Change request %s %s by customer %s", proposal.id, proposal.status, customer.id)
        return DecisionOutcome(proposal=proposal, rider_notification=rider_notification)

    @classmethod
    def expire_stale(cls):
        """Expire every pending request whose deadline has passed. Returns the count."""
        expired_count = 0
        stale_ids = list(
            OrderChangeProposal.objects.filter(
                status=ProposalStatus.PENDING, expires_at__lte=timezone.now()
            ).values_list('id', flat=True)
        )
        for proposal_id in stale_ids:
            with transaction.atomic():
                proposal = OrderChangeProposal.objects.select_for_update().get(pk=proposal_id)
                # Decided between the scan and the lock
                if proposal.status != ProposalStatus.PENDING:
                    continue
                cls._expire(proposal, EXPIRED_REASON)
                expired_count += 1
        return expired_count

    @classmethod
    def _expire_pending_for(cls, order, reason):
        pending = list(
            OrderChangeProposal.objects.select_for_update().filter(
                order=order, status=ProposalStatus.PENDING
            )
        )
        for proposal in pending:
            cls._expire(proposal, reason, clear_order_state=False)
        return pending

    @staticmethod
    def _expire(proposal, reason, clear_order_state=True):
        proposal.transition_to(ProposalStatus.EXPIRED, reason)
        retract_change_request_notifications(proposal)
        if clear_order_state:
            Order.objects.filter(pk=proposal.order_id).update(
                verification_state=VerificationState.NONE, updated_at=timezone.now()
            )
        logger.info("Change request %s expired: %s", proposal.id, reason)
