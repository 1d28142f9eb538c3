from decimal import Decimal

import pytest

from orders import pricing


ORIGINAL = [
    {'name': 'Shirt wash', 'quantity': 2, 'price': '10.00'},
    {'name': 'Dry clean', 'quantity': 1, 'price': '25.00'},
]


def test_items_total_recomputes_stale_totals():
    items = [{'name': 'Shirt wash', 'quantity': 3, 'price': '10.00', 'total': '999'}]
    assert pricing.items_total(items) == Decimal('30.00')


def test_price_delta_is_updated_minus_original():
    updated = [
        {'name': 'Shirt wash', 'quantity': 3, 'price': '10.00'},
        {'name': 'Dry clean', 'quantity': 1, 'price': '25.00'},
    ]
    assert pricing.price_delta(ORIGINAL, updated) == Decimal('10.00')


def test_price_delta_for_empty_original_is_new_total():
    updated = [{'name': 'Bedding', 'quantity': 1, 'price': '42.50'}]
    assert pricing.price_delta([], updated) == Decimal('42.50')


def test_delta_round_trips_through_serialized_items():
    updated = [{'name': 'Shirt wash', 'quantity': 1, 'price': '10.005'}]
    delta = pricing.price_delta(ORIGINAL, updated)
    again = pricing.price_delta(pricing.serialize_items(ORIGINAL), pricing.serialize_items(updated))
    assert delta == again
    assert pricing.items_total(ORIGINAL) + delta == pricing.items_total(updated)


def test_unit_price_alias_is_accepted():
    item = pricing.normalize_item({'name': 'Rug', 'quantity': 2, 'unit_price': 7})
    assert item['price'] == Decimal('7.00')
    assert item['total'] == Decimal('14.00')


def test_invalid_amount_raises_value_error():
    with pytest.raises(ValueError):
        pricing.to_decimal('ten')


def test_missing_name_raises_value_error():
    with pytest.raises(ValueError):
        pricing.normalize_item({'quantity': 1, 'price': 1})


@pytest.mark.parametrize('item', [None, 'Shirt', {'name': 42, 'quantity': 1, 'price': 1}])
def test_unreadable_item_raises_value_error(item):
    with pytest.raises(ValueError):
        pricing.normalize_item(item)


def test_find_duplicate_names_ignores_unreadable_items():
    assert pricing.find_duplicate_names([None, {'name': 3}, {'name': 'Shirt'}]) == []


def test_derive_priority():
    assert pricing.derive_priority(Decimal('0.01')) == 'high'
    assert pricing.derive_priority(Decimal('0')) == 'medium'
    assert pricing.derive_priority(Decimal('-5')) == 'medium'


def test_diff_items_classifies_changes():
    updated = [
        {'name': 'Shirt wash', 'quantity': 3, 'price': '10.00'},
        {'name': 'Ironing', 'quantity': 4, 'price': '2.00'},
    ]
    diff = pricing.diff_items(ORIGINAL, updated)

    assert [change.name for change in diff.added] == ['Ironing']
    assert [change.name for change in diff.removed] == ['Dry clean']
    assert [change.name for change in diff.modified] == ['Shirt wash']
    assert diff.modified[0].quantity_change == 1
    assert not diff.is_empty


def test_diff_items_omits_unchanged_items():
    diff = pricing.diff_items(ORIGINAL, ORIGINAL)
    assert diff.is_empty


def test_price_only_change_is_not_surfaced():
    updated = [
        {'name': 'Shirt wash', 'quantity': 2, 'price': '12.00'},
        {'name': 'Dry clean', 'quantity': 1, 'price': '25.00'},
    ]
    assert pricing.diff_items(ORIGINAL, updated).is_empty
    assert pricing.price_delta(ORIGINAL, updated) == Decimal('4.00')


def test_find_duplicate_names():
    items = [{'name': 'A'}, {'name': 'B'}, {'name': 'A'}, {'name': 'A'}]
    assert pricing.find_duplicate_names(items) == ['A']
