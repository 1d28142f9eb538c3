# orders/pricing.py
"""
Item totals, price deltas and item diffs for order change requests.

This module has no Django dependency so the client package can derive the
same numbers the backend does. All arithmetic is Decimal, quantised to cents.
"""
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Iterable, List, Optional

CENT = Decimal('0.01')

PRIORITY_RANK = {'urgent': 4, 'high': 3, 'medium': 2, 'low': 1}


def to_decimal(value) -> Decimal:
    if value is None or value == '':
        return Decimal('0.00')
    try:
        return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValueError(f"Invalid amount: {value!r}")


def normalize_item(item: dict) -> dict:
    """Return ``{name, quantity, price, total}`` with Decimal amounts.

    ``price`` is the unit price; ``unit_price`` is accepted as an alias.
    ``total`` is always recomputed, a stale total in the input is ignored.
    """
    if not isinstance(item, dict):
        raise ValueError(f"Item must be an object, got {type(item).__name__}")
    name = item.get('name') or item.get('service_name') or ''
    if not isinstance(name, str):
        raise ValueError("Item name must be text")
    name = name.strip()
    if not name:
        raise ValueError("Item name is required")
    quantity = int(item.get('quantity', 1))
    price = to_decimal(item.get('price', item.get('unit_price')))
    return {
        'name': name,
        'quantity': quantity,
        'price': price,
        'total': (price * quantity).quantize(CENT, rounding=ROUND_HALF_UP),
    }


def normalize_items(items: Optional[Iterable[dict]]) -> List[dict]:
    return [normalize_item(item) for item in (items or [])]


def serialize_items(items: Optional[Iterable[dict]]) -> List[dict]:
    """JSON-safe copy of ``items`` with amounts as strings."""
    return [
        {
            'name': item['name'],
            'quantity': item['quantity'],
            'price': str(item['price']),
            'total': str(item['total']),
        }
        for item in normalize_items(items)
    ]


def items_total(items: Optional[Iterable[dict]]) -> Decimal:
    return sum((item['total'] for item in normalize_items(items)), Decimal('0.00'))


def price_delta(original_items, updated_items) -> Decimal:
    """New total minus the last committed total.

    An order with no committed items (a fresh quick pickup) has a committed
    total of zero, so the delta is the absolute new total.
    """
    return items_total(updated_items) - items_total(original_items)


def derive_priority(delta: Decimal) -> str:
    return 'high' if delta > 0 else 'medium'


@dataclass
class ItemChange:
    name: str
    old: Optional[dict] = None
    new: Optional[dict] = None

    @property
    def quantity_change(self) -> int:
        old_qty = self.old['quantity'] if self.old else 0
        new_qty = self.new['quantity'] if self.new else 0
        return new_qty - old_qty


@dataclass
class ItemDiff:
    added: List[ItemChange] = field(default_factory=list)
    removed: List[ItemChange] = field(default_factory=list)
    modified: List[ItemChange] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.added or self.removed or self.modified)


def diff_items(original_items, updated_items) -> ItemDiff:
    """Classify items by name as added, removed or modified.

    Modified means the quantity changed; items whose quantity is the same are
    left out. Names are unique within an order.
    """
    original = {item['name']: item for item in normalize_items(original_items)}
    updated = {item['name']: item for item in normalize_items(updated_items)}
    diff = ItemDiff()

    for name, new in updated.items():
        if name not in original:
            diff.added.append(ItemChange(name=name, new=new))

    for name, old in original.items():
        new = updated.get(name)
        if new is None:
            diff.removed.append(ItemChange(name=name, old=old))
        elif old['quantity'] != new['quantity']:
            diff.modified.append(ItemChange(name=name, old=old, new=new))

    return diff


def find_duplicate_names(items: Iterable[dict]) -> List[str]:
    seen, duplicates = set(), []
    for item in items:
        name = item.get('name') if isinstance(item, dict) else None
        if not isinstance(name, str):
            continue
        name = name.strip()
        if name in seen and name not in duplicates:
            duplicates.append(name)
        seen.add(name)
    return duplicates
