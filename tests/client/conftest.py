import json
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from pickup_client.broadcast import LocalBroadcast
from pickup_client.config import ClientConfig
from pickup_client.http import ResilientClient
from pickup_client.storage import MemoryStore


class FakeClock:
    def __init__(self):
        self.now = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += timedelta(seconds=seconds)


class FakeBackend:
    """Routes requests to canned responses; ``offline`` makes every call fail to connect."""

    def __init__(self):
        self.routes = {}
        self.calls = []
        self.offline = False

    def route(self, method, path, status=200, json_body=None, handler=None):
        self.routes[(method, path)] = handler or (lambda request: httpx.Response(status, json=json_body))

    def calls_to(self, method, path):
        return [call for call in self.calls if call[0] == method and call[1] == path]

    def __call__(self, request):
        body = json.loads(request.content) if request.content else None
        self.calls.append((request.method, request.url.path, body))
        if self.offline:
            raise httpx.ConnectError('connection refused', request=request)
        handler = self.routes.get((request.method, request.url.path))
        if handler is None:
            return httpx.Response(404, json={'error': 'Not found'})
        return handler(request)


async def no_sleep(seconds):
    return None


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def broadcast():
    return LocalBroadcast()


@pytest.fixture
def config():
    return ClientConfig(base_url='http://pickup.test', retry_delay=0.01)


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def api(config, store, broadcast, backend):
    return ResilientClient(config, store, broadcast, transport=httpx.MockTransport(backend), sleep=no_sleep)


def make_payload(verification_id, order_id, priority='medium', created_at=None, expires_at=None, **extra):
    created_at = created_at or datetime(2026, 3, 2, 8, 0, tzinfo=timezone.utc)
    payload = {
        'verification_id': verification_id,
        'order_id': order_id,
        'order_kind': 'regular',
        'original_items': [{'name': 'Shirt', 'quantity': 2, 'price': '50.00'}],
        'updated_items': [{'name': 'Shirt', 'quantity': 3, 'price': '50.00'}],
        'rider_name': 'Rita',
        'priority': priority,
        'created_at': created_at.isoformat(),
        'expires_at': (expires_at or created_at + timedelta(hours=24)).isoformat(),
    }
    payload.update(extra)
    return payload


@pytest.fixture
def payload_factory():
    return make_payload
