"""
Customer-side queue of change requests waiting for an answer.

The registry is the single owner of the device copy of pending requests. Every
mutation is written to the key-value store straight away so another session
on the device (or the same one after a restart) sees it. When the backend is
reachable it is the source of truth; when it is not, decisions are applied
locally and kept in an outbox until they can be delivered.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from .broadcast import VERIFICATION_PENDING, VERIFICATION_COMPLETED
from .errors import ErrorKind, MalformedRecord, USER_MESSAGES
from .models import Verification, Ok, ORIGIN_BACKEND, ORIGIN_LOCAL

logger = logging.getLogger(__name__)

PENDING_KEY = 'customer_pending_verifications'
PROCESSED_KEY = 'customer_processed_verifications'
UNSENT_KEY = 'customer_unsent_decisions'
LAST_FETCH_KEY = 'last_verification_fetch'

VERIFICATIONS_PATH = '/api/orders/verifications/'

EXPIRED_MESSAGE = 'This change request has expired'


def respond_path(verification_id):
    return f'{VERIFICATIONS_PATH}{verification_id}/respond/'


@dataclass
class ProcessResult:
    success: bool
    message: str
    already_processed: bool = False
    backend_confirmed: bool = False
    expired: bool = False


class VerificationRegistry:
    def __init__(self, api, store, broadcast, refresh_interval=120.0, clock=None):
        self.api = api
        self.store = store
        self.broadcast = broadcast
        self.refresh_interval = refresh_interval
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self._unsubscribe = broadcast.subscribe(VERIFICATION_COMPLETED, self._on_completed_elsewhere)

    def close(self):
        self._unsubscribe()

    # -- persistence -------------------------------------------------------

    def _load(self):
        entries = []
        for raw in self.store.get(PENDING_KEY, []):
            result = Verification.from_payload(raw)
            if isinstance(result, Ok):
                entries.append(result.value)
            else:
                logger.warning("Skipping unreadable stored verification: %s %s",
                               result.error.field, result.error.message)
        return entries

    def _save(self, entries):
        self.store.set(PENDING_KEY, [entry.to_dict() for entry in entries])

    def _processed(self):
        return self.store.get(PROCESSED_KEY, {})

    def _mark_processed(self, verification_id, outcome):
        processed = self._processed()
        processed[verification_id] = {'outcome': outcome, 'at': self.clock().isoformat()}
        self.store.set(PROCESSED_KEY, processed)
        self._save([entry for entry in self._load() if entry.id != verification_id])

    def _unsent(self):
        return self.store.get(UNSENT_KEY, [])

    # -- queries -----------------------------------------------------------

    def get_pending_verifications(self):
        """Unexpired, unanswered requests, most urgent first, then oldest first."""
        now = self.clock()
        entries = self._load()
        live = [entry for entry in entries if not entry.is_expired(now)]
        if len(live) != len(entries):
            self._save(live)

        processed = self._processed()
        pending = [entry for entry in live if entry.id not in processed]
        return sorted(pending, key=Verification.sort_key)

    def get_next_pending_verification(self):
        pending = self.get_pending_verifications()
        return pending[0] if pending else None

    def has_pending_verifications(self):
        return bool(self.get_pending_verifications())

    def get_verification(self, verification_id):
        for entry in self._load():
            if entry.id == verification_id:
                return entry
        return None

    # -- mutations ---------------------------------------------------------

    def add_pending_verification(self, payload, origin=None):
        """Queue a request and return its id.

        Payloads are treated as backend records unless ``origin`` or the
        payload itself says otherwise.

        An order has at most one queued request; adding another one for the
        same order returns the id already queued.
        """
        if isinstance(payload, Verification):
            verification = payload
        else:
            result = Verification.from_payload(payload, origin=origin)
            if not isinstance(result, Ok):
                raise MalformedRecord(f"Invalid verification: {result.error.field} {result.error.message}")
            verification = result.value

        if verification.id in self._processed():
            return verification.id

        for entry in self.get_pending_verifications():
            if entry.id == verification.id or entry.order_id == verification.order_id:
                return entry.id

        entries = self._load()
        entries.append(verification)
        self._save(entries)
        self.broadcast.publish(VERIFICATION_PENDING, {
            'verificationId': verification.id,
            'orderId': verification.order_id,
        })
        return verification.id

    async def process_verification(self, verification_id, approved, reason=None):
        """Record the customer's answer. Safe to call more than once."""
        if verification_id in self._processed():
            return ProcessResult(True, 'This change request was already processed', already_processed=True)

        verification = self.get_verification(verification_id)
        if verification is None:
            return ProcessResult(False, 'Change request not found')

        if verification.is_expired(self.clock()):
            self._save([entry for entry in self._load() if entry.id != verification_id])
            return ProcessResult(False, EXPIRED_MESSAGE, expired=True)

        result = await self.api.post(respond_path(verification_id), {'approved': approved, 'reason': reason or ''})

        if result.ok:
            data = result.data if isinstance(result.data, dict) else {}
            already = bool(data.get('already_processed'))
            status = data.get('status')
            if already and status == 'expired':
                self._mark_processed(verification_id, 'expired')
                return ProcessResult(False, EXPIRED_MESSAGE, already_processed=True,
                                     backend_confirmed=True, expired=True)
            if already and status in ('approved', 'rejected'):
                approved = status == 'approved'
            self._complete(verification_id, approved)
            message = data.get('message') or self._decision_message(approved)
            return ProcessResult(True, message, already_processed=already, backend_confirmed=True)

        if result.kind == ErrorKind.TRANSIENT_NETWORK:
            self._queue_decision(verification_id, approved, reason)
            self._complete(verification_id, approved)
            return ProcessResult(True, 'Your answer was saved and will be sent when the connection is back')

        if result.kind == ErrorKind.CONFLICT:
            self._mark_processed(verification_id, 'expired')
            return ProcessResult(False, EXPIRED_MESSAGE, expired=True)

        if result.kind == ErrorKind.PERMANENT_SERVER and result.status_code == 404:
            # The backend never stored this request; it only exists on the device
            logger.info("Verification %s unknown to the backend; applying locally", verification_id)
            self._complete(verification_id, approved)
            return ProcessResult(True, self._decision_message(approved))

        logger.warning("Decision for %s not accepted: %s", verification_id, result.kind)
        return ProcessResult(False, result.error_detail if result.kind != ErrorKind.AUTH_REQUIRED
                             else USER_MESSAGES[ErrorKind.AUTH_REQUIRED])

    def _complete(self, verification_id, approved):
        self._mark_processed(verification_id, 'approved' if approved else 'rejected')
        self.broadcast.publish(VERIFICATION_COMPLETED, {
            'verificationId': verification_id,
            'approved': approved,
        })

    @staticmethod
    def _decision_message(approved):
        return 'Changes approved' if approved else 'Changes rejected'

    def _queue_decision(self, verification_id, approved, reason):
        unsent = [item for item in self._unsent() if item['verification_id'] != verification_id]
        unsent.append({
            'verification_id': verification_id,
            'approved': approved,
            'reason': reason or '',
            'queued_at': self.clock().isoformat(),
        })
        self.store.set(UNSENT_KEY, unsent)

    async def flush_unsent_decisions(self):
        """Deliver queued answers in order. Returns how many left the outbox."""
        unsent = self._unsent()
        delivered = 0
        while unsent:
            decision = unsent[0]
            result = await self.api.post(
                respond_path(decision['verification_id']),
                {'approved': decision['approved'], 'reason': decision['reason']},
            )
            if not result.ok and result.kind in (ErrorKind.TRANSIENT_NETWORK, ErrorKind.AUTH_REQUIRED):
                break
            if not result.ok:
                logger.warning("Dropping queued decision for %s: %s (%s)",
                               decision['verification_id'], result.kind, result.status_code)
            unsent = unsent[1:]
            self.store.set(UNSENT_KEY, unsent)
            delivered += 1
        return delivered

    async def refresh_verifications(self, force=False):
        """Reconcile with the backend. Returns False when nothing was fetched."""
        now = self.clock()
        last_fetch = self.store.get(LAST_FETCH_KEY)
        if not force and last_fetch is not None and now.timestamp() - last_fetch < self.refresh_interval:
            return False

        await self.flush_unsent_decisions()

        result = await self.api.get(VERIFICATIONS_PATH, timeout=self.api.config.poll_timeout)
        if not result.ok:
            logger.info("Verification refresh failed (%s); keeping local queue", result.kind)
            return False
        self.store.set(LAST_FETCH_KEY, now.timestamp())

        records = result.data.get('results', []) if isinstance(result.data, dict) else (result.data or [])
        backend = []
        for record in records:
            parsed = Verification.from_payload(record, origin=ORIGIN_BACKEND)
            if isinstance(parsed, Ok):
                backend.append(parsed.value)
            else:
                logger.warning("Skipping malformed verification from backend: %s %s",
                               parsed.error.field, parsed.error.message)

        backend_ids = {entry.id for entry in backend}
        backend_orders = {entry.order_id for entry in backend}
        unsent_ids = {item['verification_id'] for item in self._unsent()}
        processed = self._processed()

        current = self._load()
        known_ids = {entry.id for entry in current}
        merged = {}
        for entry in current:
            if entry.origin == ORIGIN_BACKEND and entry.id not in backend_ids:
                continue
            if entry.origin == ORIGIN_LOCAL and entry.order_id in backend_orders:
                continue
            merged[entry.id] = entry
        for entry in backend:
            if entry.id in unsent_ids or entry.id in processed:
                continue
            merged[entry.id] = entry

        self._save(list(merged.values()))

        for entry in backend:
            if entry.id in merged and entry.id not in known_ids:
                self.broadcast.publish(VERIFICATION_PENDING, {
                    'verificationId': entry.id,
                    'orderId': entry.order_id,
                })
        return True

    def clear_all_verifications(self):
        for key in (PENDING_KEY, PROCESSED_KEY, UNSENT_KEY, LAST_FETCH_KEY):
            self.store.delete(key)

    def _on_completed_elsewhere(self, payload):
        verification_id = payload.get('verificationId')
        if verification_id and verification_id not in self._processed():
            approved = payload.get('approved')
            self._mark_processed(verification_id, 'approved' if approved else 'rejected')
