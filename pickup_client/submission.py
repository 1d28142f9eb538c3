import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from orders import pricing

from .errors import ErrorKind

logger = logging.getLogger(__name__)

QUEUED_KEY = 'rider_queued_submissions'

DEGRADED_MESSAGE = 'Changes queued: backend unavailable'


def update_path(order_id):
    return f'/api/riders/orders/{order_id}/update/'


@dataclass
class SubmissionResult:
    success: bool
    message: str
    degraded: bool = False
    verification_id: Optional[str] = None
    price_delta: Decimal = Decimal('0.00')
    new_total: Decimal = Decimal('0.00')
    status_code: Optional[int] = None


class ProposalSubmitter:
    """Sends a rider's item edits for customer confirmation."""

    def __init__(self, api, store):
        self.api = api
        self.store = store

    @staticmethod
    def validate(items):
        if not items:
            return "At least one item is required"
        duplicates = pricing.find_duplicate_names(items)
        if duplicates:
            return f"Duplicate item names: {', '.join(duplicates)}"
        try:
            normalized = pricing.normalize_items(items)
        except (TypeError, ValueError) as e:
            return str(e)
        for item in normalized:
            if item['quantity'] <= 0:
                return f"Quantity for {item['name']} must be positive"
            if item['price'] < 0:
                return f"Price for {item['name']} cannot be negative"
        return None

    def _payload(self, current_items, edited_items, notes):
        delta = pricing.price_delta(current_items, edited_items)
        return {
            'items': pricing.serialize_items(edited_items),
            'notes': notes or '',
            'requiresVerification': True,
            'notificationData': {
                'originalTotal': str(pricing.items_total(current_items)),
                'newTotal': str(pricing.items_total(edited_items)),
                'priceChange': str(delta),
            },
        }

    async def submit(self, order_id, current_items, edited_items, notes=''):
        error = self.validate(edited_items)
        if error:
            return SubmissionResult(False, error)

        delta = pricing.price_delta(current_items, edited_items)
        new_total = pricing.items_total(edited_items)
        payload = self._payload(current_items, edited_items, notes)

        result = await self.api.put(update_path(order_id), payload)

        if result.ok:
            data = result.data or {}
            return SubmissionResult(
                True,
                data.get('message', 'Changes sent to the customer for confirmation'),
                verification_id=data.get('verification_id'),
                price_delta=delta,
                new_total=new_total,
                status_code=result.status_code,
            )

        if result.kind == ErrorKind.TRANSIENT_NETWORK:
            self._queue(order_id, payload)
            return SubmissionResult(True, DEGRADED_MESSAGE, degraded=True,
                                    price_delta=delta, new_total=new_total)

        return SubmissionResult(False, result.error_detail, price_delta=delta,
                                new_total=new_total, status_code=result.status_code)

    def queued(self):
        return self.store.get(QUEUED_KEY, [])

    def _queue(self, order_id, payload):
        # A newer edit of the same order replaces the queued one
        queue = [entry for entry in self.queued() if entry['order_id'] != order_id]
        queue.append({'order_id': order_id, 'payload': payload})
        self.store.set(QUEUED_KEY, queue)
        logger.info("Queued edit of order %s until the backend is reachable", order_id)

    async def flush_queued(self):
        """Resubmit queued edits. Returns how many the backend accepted."""
        queue = self.queued()
        accepted = 0
        while queue:
            entry = queue[0]
            result = await self.api.put(update_path(entry['order_id']), entry['payload'])
            if not result.ok and result.kind in (ErrorKind.TRANSIENT_NETWORK, ErrorKind.AUTH_REQUIRED):
                break
            if result.ok:
                accepted += 1
            else:
                logger.warning("Dropping queued edit of order %s: %s", entry['order_id'], result.error_detail)
            queue = queue[1:]
            self.store.set(QUEUED_KEY, queue)
        return accepted
