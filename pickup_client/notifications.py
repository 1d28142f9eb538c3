import logging
from datetime import datetime, timezone

from .scheduling import PeriodicTask

logger = logging.getLogger(__name__)

LAST_FETCH_KEY = 'last_notification_fetch'
LAST_COUNT_KEY = 'last_unread_count_{direction}'

CUSTOMER = 'customer'
RIDER = 'rider'

BASE_PATHS = {
    CUSTOMER: '/api/notifications/',
    RIDER: '/api/riders/notifications/',
}


class NotificationInbox:
    """Mailbox access for one direction of the notification channel.

    The customer unread count is fetched at most once per
    ``notification_count_interval``; between fetches, and whenever a fetch
    fails, the last known count is returned.
    """

    def __init__(self, api, store, direction=CUSTOMER, is_active=None, clock=None):
        if direction not in BASE_PATHS:
            raise ValueError(f"Unknown direction: {direction}")
        self.api = api
        self.store = store
        self.direction = direction
        self.base_path = BASE_PATHS[direction]
        self.count_key = LAST_COUNT_KEY.format(direction=direction)
        self.is_active = is_active or (lambda: True)
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    @property
    def poll_interval(self):
        config = self.api.config
        return config.rider_poll_interval if self.direction == RIDER else config.customer_poll_interval

    async def list(self, include_read=False):
        result = await self.api.get(
            self.base_path,
            params={'include_read': 'true' if include_read else 'false'},
            timeout=self.api.config.poll_timeout,
        )
        if not result.ok:
            logger.info("Could not load %s notifications: %s", self.direction, result.kind)
            return []
        data = result.data or {}
        return data.get('results', []) if isinstance(data, dict) else data

    async def unread_count(self, force=False):
        last_count = self.store.get(self.count_key, 0)
        now = self.clock().timestamp()

        if self.direction == CUSTOMER and not force:
            last_fetch = self.store.get(LAST_FETCH_KEY)
            if last_fetch is not None and now - last_fetch < self.api.config.notification_count_interval:
                return last_count

        result = await self.api.get(f'{self.base_path}count/', timeout=self.api.config.poll_timeout)
        if self.direction == CUSTOMER:
            self.store.set(LAST_FETCH_KEY, now)
        if not result.ok:
            return last_count

        count = int((result.data or {}).get('unread_count', 0))
        self.store.set(self.count_key, count)
        return count

    async def mark_read(self, notification_id):
        result = await self.api.post(f'{self.base_path}{notification_id}/read/')
        if result.ok:
            self.store.set(self.count_key, max(self.store.get(self.count_key, 0) - 1, 0))
        return result.ok

    async def mark_all_read(self):
        result = await self.api.post(f'{self.base_path}mark-all-read/')
        if not result.ok:
            return 0
        self.store.set(self.count_key, 0)
        return int((result.data or {}).get('read_count', 0))

    def start_polling(self, on_update=None):
        """Poll the unread count while ``is_active()``. Cancel the returned task on teardown."""
        async def tick():
            count = await self.unread_count()
            if on_update is not None:
                on_update(count)

        return PeriodicTask(self.poll_interval, tick, is_active=self.is_active).start()
