"""
Device-side logic for the Pickup platform.

Customers keep a local queue of change requests awaiting their answer and
riders keep an outbox of edits; both talk to the backend through
``ResilientClient`` and keep working when it cannot be reached.
"""
from .config import ClientConfig
from .errors import ApiResult, ErrorKind
from .http import ResilientClient
from .registry import VerificationRegistry, ProcessResult
from .presenter import VerificationPresenter
from .notifications import NotificationInbox
from .submission import ProposalSubmitter, SubmissionResult

__all__ = [
    'ApiResult',
    'ClientConfig',
    'ErrorKind',
    'NotificationInbox',
    'ProcessResult',
    'ProposalSubmitter',
    'ResilientClient',
    'SubmissionResult',
    'VerificationPresenter',
    'VerificationRegistry',
]
