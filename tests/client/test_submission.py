from decimal import Decimal

import pytest

from pickup_client.submission import ProposalSubmitter, DEGRADED_MESSAGE, QUEUED_KEY

CURRENT = [{'name': 'Shirt', 'quantity': 2, 'price': '50.00'}]
EDITED = [{'name': 'Shirt', 'quantity': 3, 'price': '50.00'}]
PATH = '/api/riders/orders/12/update/'


@pytest.fixture
def submitter(api, store):
    return ProposalSubmitter(api, store)


@pytest.mark.asyncio
async def test_submit_sends_items_and_price_change(submitter, backend):
    backend.route('PUT', PATH, json_body={
        'message': 'Changes sent to the customer for confirmation',
        'verification_id': 'abc',
        'price_change': '50.00',
    })

    result = await submitter.submit(12, CURRENT, EDITED, notes='One more shirt')

    assert result.success and not result.degraded
    assert result.verification_id == 'abc'
    assert result.price_delta == Decimal('50.00')
    assert result.new_total == Decimal('150.00')

    body = backend.calls_to('PUT', PATH)[0][2]
    assert body['requiresVerification'] is True
    assert body['items'] == [{'name': 'Shirt', 'quantity': 3, 'price': '50.00', 'total': '150.00'}]
    assert body['notificationData']['priceChange'] == '50.00'


@pytest.mark.asyncio
async def test_invalid_edit_never_reaches_backend(submitter, backend):
    result = await submitter.submit(12, CURRENT, [{'name': 'Shirt', 'quantity': 0, 'price': '50'}])
    assert not result.success
    assert backend.calls == []


@pytest.mark.asyncio
async def test_offline_submission_is_queued_and_flushed(submitter, backend, store):
    backend.offline = True
    result = await submitter.submit(12, CURRENT, EDITED)

    assert result.degraded
    assert result.message == DEGRADED_MESSAGE
    assert [entry['order_id'] for entry in store.get(QUEUED_KEY)] == [12]

    # A newer edit of the same order replaces the queued one
    await submitter.submit(12, CURRENT, [{'name': 'Shirt', 'quantity': 4, 'price': '50.00'}])
    assert len(store.get(QUEUED_KEY)) == 1

    backend.offline = False
    backend.route('PUT', PATH, json_body={'verification_id': 'xyz'})
    assert await submitter.flush_queued() == 1
    assert store.get(QUEUED_KEY) == []
    assert backend.calls_to('PUT', PATH)[-1][2]['items'][0]['quantity'] == 4


@pytest.mark.asyncio
async def test_forbidden_order_reports_server_message(submitter, backend):
    backend.route('PUT', PATH, status=403, json_body={'error': 'This order is not assigned to you.'})
    result = await submitter.submit(12, CURRENT, EDITED)

    assert not result.success
    assert result.status_code == 403
    assert result.message == 'This order is not assigned to you.'
