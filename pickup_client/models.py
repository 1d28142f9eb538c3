import logging
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from decimal import Decimal
from typing import Generic, List, Optional, TypeVar, Union

from orders.pricing import PRIORITY_RANK, items_total, price_delta

logger = logging.getLogger(__name__)

T = TypeVar('T')

ORIGIN_BACKEND = 'backend'
ORIGIN_LOCAL = 'local'


@dataclass(frozen=True)
class ValidationError:
    field: str
    message: str


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Err:
    error: ValidationError


Result = Union[Ok, Err]


def parse_timestamp(value) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)):
        parsed = datetime.fromtimestamp(value, tz=timezone.utc)
    else:
        parsed = datetime.fromisoformat(str(value).replace('Z', '+00:00'))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _first(payload, *keys):
    for key in keys:
        if payload.get(key) is not None:
            return payload[key]
    return None


@dataclass
class Verification:
    """Local copy of a change request waiting for the customer's answer."""
    id: str
    order_id: int
    created_at: datetime
    expires_at: Optional[datetime]
    original_items: List[dict] = field(default_factory=list)
    updated_items: List[dict] = field(default_factory=list)
    order_kind: str = 'regular'
    rider_name: str = ''
    rider_notes: str = ''
    priority: str = 'medium'
    origin: str = ORIGIN_BACKEND

    @property
    def original_total(self) -> Decimal:
        return items_total(self.original_items)

    @property
    def updated_total(self) -> Decimal:
        return items_total(self.updated_items)

    @property
    def price_delta(self) -> Decimal:
        return price_delta(self.original_items, self.updated_items)

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and self.expires_at <= now

    def sort_key(self):
        return (-PRIORITY_RANK.get(self.priority, 0), self.created_at)

    def to_dict(self) -> dict:
        data = asdict(self)
        data['created_at'] = self.created_at.isoformat()
        data['expires_at'] = self.expires_at.isoformat() if self.expires_at else None
        return data

    @classmethod
    def from_payload(cls, payload, origin=None) -> Result:
        """Build from a backend record, a notification ``data`` blob or a stored entry.

        Never raises; anything unusable comes back as ``Err``.
        """
        if not isinstance(payload, dict):
            return Err(ValidationError('payload', 'not an object'))

        verification_id = _first(payload, 'verification_id', 'verificationId', 'id')
        if not verification_id:
            return Err(ValidationError('id', 'missing'))

        order_id = _first(payload, 'order_id', 'orderId')
        if order_id is None:
            return Err(ValidationError('order_id', 'missing'))

        original_items = _first(payload, 'original_items', 'old_items', 'originalItems')
        updated_items = _first(payload, 'updated_items', 'new_items', 'updatedItems')
        if not isinstance(original_items, list):
            return Err(ValidationError('original_items', 'must be a list'))
        if not isinstance(updated_items, list):
            return Err(ValidationError('updated_items', 'must be a list'))

        try:
            price_delta(original_items, updated_items)
        except (KeyError, TypeError, ValueError) as e:
            return Err(ValidationError('items', f'unreadable item: {e}'))

        try:
            created_at = parse_timestamp(_first(payload, 'created_at', 'createdAt'))
            expires_raw = _first(payload, 'expires_at', 'expiresAt')
            expires_at = parse_timestamp(expires_raw) if expires_raw is not None else None
        except (TypeError, ValueError):
            return Err(ValidationError('created_at', 'not a timestamp'))

        priority = payload.get('priority') or 'medium'
        if priority not in PRIORITY_RANK:
            return Err(ValidationError('priority', f'unknown priority {priority!r}'))

        return Ok(cls(
            id=str(verification_id),
            order_id=order_id,
            created_at=created_at,
            expires_at=expires_at,
            original_items=original_items,
            updated_items=updated_items,
            order_kind=_first(payload, 'order_kind', 'orderKind') or 'regular',
            rider_name=_first(payload, 'rider_name', 'riderName') or '',
            rider_notes=_first(payload, 'rider_notes', 'riderNotes') or '',
            priority=priority,
            origin=origin or payload.get('origin') or ORIGIN_BACKEND,
        ))
