from datetime import datetime, timedelta, timezone

import httpx
import pytest

from pickup_client.broadcast import VERIFICATION_PENDING, VERIFICATION_COMPLETED
from pickup_client.errors import MalformedRecord
from pickup_client.registry import VerificationRegistry, PENDING_KEY, PROCESSED_KEY, UNSENT_KEY

T0 = datetime(2026, 3, 2, 8, 0, tzinfo=timezone.utc)


@pytest.fixture
def registry(api, store, broadcast, clock):
    return VerificationRegistry(api, store, broadcast, clock=clock)


def backend_record(payload):
    return dict(payload, id=payload['verification_id'])


def test_pending_ordered_by_priority_then_age(registry, payload_factory):
    registry.add_pending_verification(payload_factory('A', 1, 'medium', T0))
    registry.add_pending_verification(payload_factory('B', 2, 'high', T0 + timedelta(minutes=1)))
    registry.add_pending_verification(payload_factory('C', 3, 'high', T0 + timedelta(minutes=2)))

    assert [v.id for v in registry.get_pending_verifications()] == ['B', 'C', 'A']
    assert registry.get_next_pending_verification().id == 'B'


def test_one_entry_per_order(registry, payload_factory):
    first = registry.add_pending_verification(payload_factory('A', 1))
    second = registry.add_pending_verification(payload_factory('B', 1))

    assert first == second == 'A'
    assert [v.id for v in registry.get_pending_verifications()] == ['A']


def test_expired_entries_are_excluded_and_purged(registry, store, payload_factory, clock):
    registry.add_pending_verification(payload_factory('A', 1, expires_at=clock.now + timedelta(minutes=5)))
    registry.add_pending_verification(payload_factory('B', 2, expires_at=clock.now + timedelta(hours=5)))

    clock.advance(600)

    assert [v.id for v in registry.get_pending_verifications()] == ['B']
    assert [entry['id'] for entry in store.get(PENDING_KEY)] == ['B']


def test_malformed_stored_entries_are_skipped(registry, store, payload_factory):
    good = payload_factory('A', 1)
    store.set(PENDING_KEY, [
        {'id': 'X', 'order_id': 9, 'original_items': 'oops', 'updated_items': []},
        {'id': 'Y'},
        dict(good, id='A', origin='local'),
    ])

    assert [v.id for v in registry.get_pending_verifications()] == ['A']


def test_add_rejects_malformed_payload(registry):
    with pytest.raises(MalformedRecord):
        registry.add_pending_verification({'verification_id': 'A', 'order_id': 1, 'original_items': None})


def test_add_publishes_pending_event(registry, broadcast, payload_factory):
    events = []
    broadcast.subscribe(VERIFICATION_PENDING, events.append)
    registry.add_pending_verification(payload_factory('A', 7))
    assert events == [{'verificationId': 'A', 'orderId': 7}]


@pytest.mark.asyncio
async def test_process_is_idempotent_and_calls_backend_once(registry, backend, payload_factory):
    backend.route('POST', '/api/orders/verifications/A/respond/', json_body={
        'success': True, 'already_processed': False, 'message': 'Changes approved and applied to your order',
    })
    registry.add_pending_verification(payload_factory('A', 1), origin='backend')

    first = await registry.process_verification('A', True)
    second = await registry.process_verification('A', True)

    assert first.success and first.backend_confirmed
    assert second.success and second.already_processed
    assert len(backend.calls_to('POST', '/api/orders/verifications/A/respond/')) == 1
    assert registry.get_pending_verifications() == []


@pytest.mark.asyncio
async def test_process_publishes_completion(registry, broadcast, payload_factory):
    events = []
    broadcast.subscribe(VERIFICATION_COMPLETED, events.append)
    registry.add_pending_verification(payload_factory('A', 1))

    await registry.process_verification('A', False, 'No thanks')

    assert events == [{'verificationId': 'A', 'approved': False}]


@pytest.mark.asyncio
async def test_offline_decision_is_applied_locally_and_queued(registry, backend, store, payload_factory):
    backend.offline = True
    registry.add_pending_verification(payload_factory('A', 1), origin='backend')

    result = await registry.process_verification('A', True)

    assert result.success
    assert not result.backend_confirmed
    assert registry.get_pending_verifications() == []
    assert store.get(UNSENT_KEY)[0]['verification_id'] == 'A'


@pytest.mark.asyncio
async def test_queued_decision_is_sent_on_next_refresh(registry, backend, store, payload_factory):
    backend.offline = True
    registry.add_pending_verification(payload_factory('A', 1), origin='backend')
    await registry.process_verification('A', True)

    backend.offline = False
    backend.route('POST', '/api/orders/verifications/A/respond/', json_body={'success': True})
    backend.route('GET', '/api/orders/verifications/', json_body={'count': 0, 'results': []})

    assert await registry.refresh_verifications(force=True)
    assert store.get(UNSENT_KEY) == []
    assert backend.calls_to('POST', '/api/orders/verifications/A/respond/')[-1][2] == {'approved': True, 'reason': ''}


@pytest.mark.asyncio
async def test_expired_conflict_removes_entry(registry, backend, payload_factory):
    backend.route('POST', '/api/orders/verifications/A/respond/', status=409,
                  json_body={'success': False, 'status': 'expired'})
    registry.add_pending_verification(payload_factory('A', 1), origin='backend')

    result = await registry.process_verification('A', True)

    assert not result.success
    assert result.expired
    assert result.message == 'This change request has expired'
    assert registry.get_pending_verifications() == []


@pytest.mark.asyncio
async def test_locally_expired_entry_is_not_sent(registry, backend, payload_factory, clock):
    registry.add_pending_verification(
        payload_factory('A', 1, expires_at=clock.now + timedelta(minutes=1)), origin='backend'
    )
    clock.advance(120)

    result = await registry.process_verification('A', True)

    assert result.expired
    assert backend.calls == []


@pytest.mark.asyncio
async def test_auth_failure_keeps_entry_pending(registry, backend, payload_factory):
    backend.route('POST', '/api/orders/verifications/A/respond/', status=401, json_body={'detail': 'expired'})
    registry.add_pending_verification(payload_factory('A', 1), origin='backend')

    result = await registry.process_verification('A', True)

    assert not result.success
    assert 'log in' in result.message
    assert [v.id for v in registry.get_pending_verifications()] == ['A']


@pytest.mark.asyncio
async def test_refresh_lets_backend_win(registry, backend, payload_factory):
    registry.add_pending_verification(payload_factory('gone', 1), origin='backend')
    registry.add_pending_verification(payload_factory('local-only', 2), origin='local')
    registry.add_pending_verification(payload_factory('local-dup', 3), origin='local')

    updated = payload_factory('kept', 4, 'high')
    backend.route('GET', '/api/orders/verifications/', json_body={'count': 3, 'results': [
        backend_record(updated),
        backend_record(payload_factory('server', 3)),
        {'id': 'broken', 'order_id': 5, 'original_items': None, 'updated_items': []},
    ]})

    assert await registry.refresh_verifications(force=True)

    assert [v.id for v in registry.get_pending_verifications()] == ['kept', 'local-only', 'server']


@pytest.mark.asyncio
async def test_refresh_is_rate_limited(registry, backend, clock):
    backend.route('GET', '/api/orders/verifications/', json_body={'count': 0, 'results': []})

    assert await registry.refresh_verifications()
    assert not await registry.refresh_verifications()
    clock.advance(121)
    assert await registry.refresh_verifications()
    assert len(backend.calls_to('GET', '/api/orders/verifications/')) == 2


@pytest.mark.asyncio
async def test_failed_refresh_keeps_local_queue(registry, backend, payload_factory):
    registry.add_pending_verification(payload_factory('A', 1), origin='backend')
    backend.offline = True

    assert not await registry.refresh_verifications(force=True)
    assert [v.id for v in registry.get_pending_verifications()] == ['A']


@pytest.mark.asyncio
async def test_sibling_session_sees_decision(api, store, broadcast, clock, backend, payload_factory):
    backend.route('POST', '/api/orders/verifications/A/respond/', json_body={'success': True})
    other_store_registry = VerificationRegistry(api, type(store)(), broadcast, clock=clock)
    this_registry = VerificationRegistry(api, store, broadcast, clock=clock)
    other_store_registry.add_pending_verification(payload_factory('A', 1))
    this_registry.add_pending_verification(payload_factory('A', 1))

    await this_registry.process_verification('A', True)

    assert other_store_registry.get_pending_verifications() == []
    assert len(backend.calls_to('POST', '/api/orders/verifications/A/respond/')) == 1


def test_clear_all(registry, store, payload_factory):
    registry.add_pending_verification(payload_factory('A', 1))
    registry.clear_all_verifications()
    assert registry.get_pending_verifications() == []
    assert store.get(PENDING_KEY) is None


@pytest.mark.asyncio
async def test_request_from_notification_data_is_answered_on_the_backend(registry, backend, payload_factory):
    backend.route('POST', '/api/orders/verifications/N1/respond/', json_body={
        'success': True, 'already_processed': False, 'status': 'approved',
    })
    notification_data = payload_factory('N1', 9)
    notification_data['verificationId'] = notification_data.pop('verification_id')
    registry.add_pending_verification(notification_data)

    result = await registry.process_verification('N1', True, 'Fine')

    assert result.success and result.backend_confirmed
    assert backend.calls_to('POST', '/api/orders/verifications/N1/respond/')[0][2] == {
        'approved': True, 'reason': 'Fine',
    }


@pytest.mark.asyncio
async def test_refresh_skips_record_with_unreadable_items(registry, backend, payload_factory):
    backend.route('GET', '/api/orders/verifications/', json_body={'count': 3, 'results': [
        backend_record(payload_factory('none-item', 1, original_items=[None])),
        backend_record(payload_factory('bad-name', 2, updated_items=[{'name': 7, 'quantity': 1}])),
        backend_record(payload_factory('good', 3)),
    ]})

    assert await registry.refresh_verifications(force=True)

    assert [v.id for v in registry.get_pending_verifications()] == ['good']


@pytest.mark.asyncio
async def test_answering_superseded_request_records_expiry(registry, backend, broadcast, store, payload_factory):
    backend.route('POST', '/api/orders/verifications/P1/respond/', json_body={
        'success': True, 'already_processed': True, 'status': 'expired',
        'message': 'This change request was already processed',
    })
    completed = []
    broadcast.subscribe(VERIFICATION_COMPLETED, completed.append)
    registry.add_pending_verification(payload_factory('P1', 1))

    result = await registry.process_verification('P1', True)

    assert not result.success
    assert result.expired and result.already_processed
    assert store.get(PROCESSED_KEY)['P1']['outcome'] == 'expired'
    assert completed == []
    assert registry.get_pending_verifications() == []


@pytest.mark.asyncio
async def test_already_processed_answer_takes_backend_outcome(registry, backend, store, payload_factory):
    backend.route('POST', '/api/orders/verifications/A/respond/', json_body={
        'success': True, 'already_processed': True, 'status': 'rejected',
    })
    registry.add_pending_verification(payload_factory('A', 1))

    result = await registry.process_verification('A', True)

    assert result.success and result.already_processed
    assert store.get(PROCESSED_KEY)['A']['outcome'] == 'rejected'
