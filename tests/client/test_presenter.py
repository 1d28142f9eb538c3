import asyncio
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import httpx
import pytest

from pickup_client.models import Verification
from pickup_client.presenter import VerificationPresenter, IDLE, SHOWING
from pickup_client.registry import VerificationRegistry

T0 = datetime(2026, 3, 2, 8, 0, tzinfo=timezone.utc)


@pytest.fixture
def registry(api, store, broadcast, clock):
    return VerificationRegistry(api, store, broadcast, clock=clock)


@pytest.fixture
def presenter(registry, broadcast):
    return VerificationPresenter(registry, broadcast)


def test_new_request_is_shown_when_idle(presenter, registry, payload_factory):
    assert presenter.state == IDLE
    registry.add_pending_verification(payload_factory('A', 1))
    assert presenter.state == SHOWING
    assert presenter.current.id == 'A'


def test_new_request_does_not_replace_the_one_on_screen(presenter, registry, payload_factory):
    registry.add_pending_verification(payload_factory('A', 1))
    registry.add_pending_verification(payload_factory('B', 2, 'high'))
    assert presenter.current.id == 'A'


def test_increase_in_quantity_is_a_modification(presenter, payload_factory):
    presenter.show(registry_entry(payload_factory('A', 1)))

    assert presenter.current.price_delta == Decimal('50.00')
    changes = presenter.changes
    assert [c.name for c in changes.modified] == ['Shirt']
    assert changes.modified[0].quantity_change == 1
    assert changes.added == changes.removed == []


def test_quick_pickup_items_are_all_added(presenter, payload_factory):
    payload = payload_factory('Q', 1, original_items=[], updated_items=[{'name': 'Wash', 'quantity': 5, 'price': '15'}])
    presenter.show(registry_entry(payload))

    assert presenter.current.price_delta == Decimal('75.00')
    assert [c.name for c in presenter.changes.added] == ['Wash']
    assert presenter.changes.modified == []


@pytest.mark.asyncio
async def test_decide_advances_to_next(presenter, registry, payload_factory):
    registry.add_pending_verification(payload_factory('A', 1, 'high', T0))
    registry.add_pending_verification(payload_factory('B', 2, 'medium', T0))
    assert presenter.current.id == 'A'

    result = await presenter.decide(True)

    assert result.success
    assert presenter.current.id == 'B'

    await presenter.decide(False, 'Not needed')
    assert presenter.state == IDLE


def test_skip_cycles_without_resolving(presenter, registry, payload_factory):
    registry.add_pending_verification(payload_factory('A', 1, 'high', T0))
    registry.add_pending_verification(payload_factory('B', 2, 'medium', T0))
    registry.add_pending_verification(payload_factory('C', 3, 'medium', T0 + timedelta(minutes=1)))

    assert [presenter.skip().id for _ in range(3)] == ['B', 'C', 'A']
    assert len(registry.get_pending_verifications()) == 3


def test_close_leaves_request_pending(presenter, registry, payload_factory):
    registry.add_pending_verification(payload_factory('A', 1))
    presenter.close()

    assert presenter.state == IDLE
    assert registry.has_pending_verifications()


@pytest.mark.asyncio
async def test_decision_completes_after_close(presenter, registry, backend, payload_factory):
    release = asyncio.Event()

    async def slow_response(request):
        await release.wait()
        return httpx.Response(200, json={'success': True, 'already_processed': False})

    backend.routes[('POST', '/api/orders/verifications/A/respond/')] = slow_response
    registry.add_pending_verification(payload_factory('A', 1), origin='backend')

    pending = asyncio.ensure_future(presenter.decide(True))
    await asyncio.sleep(0)
    presenter.close()
    release.set()
    result = await pending

    assert result.success and result.backend_confirmed
    assert presenter.state == IDLE
    assert not registry.has_pending_verifications()


@pytest.mark.asyncio
async def test_second_decide_while_first_in_flight_is_refused(presenter, registry, backend, payload_factory):
    release = asyncio.Event()

    async def slow_response(request):
        await release.wait()
        return httpx.Response(200, json={'success': True})

    backend.routes[('POST', '/api/orders/verifications/A/respond/')] = slow_response
    registry.add_pending_verification(payload_factory('A', 1), origin='backend')

    first = asyncio.ensure_future(presenter.decide(True))
    await asyncio.sleep(0)
    second = await presenter.decide(False)
    release.set()

    assert not second.success
    assert (await first).success


@pytest.mark.asyncio
async def test_sibling_decision_advances_screen(api, store, broadcast, clock, payload_factory):
    registry = VerificationRegistry(api, store, broadcast, clock=clock)
    sibling_registry = VerificationRegistry(api, store, broadcast, clock=clock)
    presenter = VerificationPresenter(registry, broadcast)

    registry.add_pending_verification(payload_factory('A', 1, 'high', T0))
    registry.add_pending_verification(payload_factory('B', 2, 'medium', T0))
    assert presenter.current.id == 'A'

    await sibling_registry.process_verification('A', True)

    assert presenter.current.id == 'B'


def registry_entry(payload):
    return Verification.from_payload(payload).value
