import logging
from collections import defaultdict

logger = logging.getLogger(__name__)

VERIFICATION_PENDING = 'verification.pending'
VERIFICATION_COMPLETED = 'verification.completed'
AUTH_LOGOUT = 'auth.logout'


class LocalBroadcast:
    """In-process topic fan-out shared by every open session on a device.

    Every subscriber sees every message, including the publisher's own.
    """

    def __init__(self):
        self._handlers = defaultdict(list)

    def subscribe(self, topic, handler):
        self._handlers[topic].append(handler)

        def unsubscribe():
            if handler in self._handlers[topic]:
                self._handlers[topic].remove(handler)

        return unsubscribe

    def publish(self, topic, payload=None):
        for handler in list(self._handlers[topic]):
            try:
                handler(payload or {})
            except Exception:
                # One broken listener must not stop delivery to the rest
                logger.exception("Broadcast handler failed for %s", topic)
