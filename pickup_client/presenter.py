import logging

from orders.pricing import diff_items

from .broadcast import VERIFICATION_PENDING, VERIFICATION_COMPLETED
from .registry import ProcessResult

logger = logging.getLogger(__name__)

IDLE = 'idle'
SHOWING = 'showing'


class VerificationPresenter:
    """Decides which change request is on screen.

    At most one request is shown at a time and at most one decision is in
    flight. New requests appear on their own when nothing is shown; when
    another session answers the request on screen, the next one replaces it.
    """

    def __init__(self, registry, broadcast):
        self.registry = registry
        self.current = None
        self._deciding = False
        self._unsubscribers = [
            broadcast.subscribe(VERIFICATION_PENDING, self._on_pending),
            broadcast.subscribe(VERIFICATION_COMPLETED, self._on_completed),
        ]

    @property
    def state(self):
        return SHOWING if self.current is not None else IDLE

    @property
    def is_deciding(self):
        return self._deciding

    @property
    def changes(self):
        """Added, removed and modified items of the request on screen."""
        if self.current is None:
            return None
        return diff_items(self.current.original_items, self.current.updated_items)

    def show(self, verification=None):
        self.current = verification or self.registry.get_next_pending_verification()
        return self.current

    def close(self):
        self.current = None

    def dispose(self):
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []

    def skip(self):
        """Show the next queued request, wrapping around to the first."""
        pending = self.registry.get_pending_verifications()
        if not pending:
            self.current = None
            return None
        ids = [entry.id for entry in pending]
        if self.current is None or self.current.id not in ids:
            self.current = pending[0]
        else:
            self.current = pending[(ids.index(self.current.id) + 1) % len(pending)]
        return self.current

    async def decide(self, approved, reason=None):
        if self.current is None:
            return ProcessResult(False, 'No change request is open')
        if self._deciding:
            return ProcessResult(False, 'A decision is already being sent')

        verification_id = self.current.id
        self._deciding = True
        try:
            result = await self.registry.process_verification(verification_id, approved, reason)
        finally:
            self._deciding = False

        # close() during the call leaves the presenter idle
        if self.current is not None and self.current.id == verification_id:
            if result.success or result.expired:
                self._advance_from(verification_id)
        return result

    def _advance_from(self, verification_id):
        upcoming = self.registry.get_next_pending_verification()
        self.current = upcoming if upcoming is not None and upcoming.id != verification_id else None

    def _on_pending(self, payload):
        if self.current is None and not self._deciding:
            self.show()

    def _on_completed(self, payload):
        if self._deciding or self.current is None:
            return
        if self.current.id == payload.get('verificationId'):
            logger.debug("Verification %s answered elsewhere; advancing", self.current.id)
            self._advance_from(self.current.id)
