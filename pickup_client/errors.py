import enum
from dataclasses import dataclass
from typing import Any, Optional


class ErrorKind(enum.Enum):
    TRANSIENT_NETWORK = 'transient_network'
    AUTH_REQUIRED = 'auth_required'
    CONFLICT = 'conflict'
    MALFORMED_RECORD = 'malformed_record'
    PERMANENT_SERVER = 'permanent_server'


USER_MESSAGES = {
    ErrorKind.TRANSIENT_NETWORK: 'Cannot reach the server right now. Your changes are saved and will sync later.',
    ErrorKind.AUTH_REQUIRED: 'Your session has ended. Please log in again.',
    ErrorKind.CONFLICT: 'This change request is no longer pending.',
    ErrorKind.MALFORMED_RECORD: 'Received data could not be read.',
    ErrorKind.PERMANENT_SERVER: 'The server could not process this request.',
}


@dataclass
class ApiResult:
    ok: bool
    status_code: Optional[int] = None
    data: Any = None
    kind: Optional[ErrorKind] = None
    degraded: bool = False
    demo: bool = False
    message: str = ''

    @classmethod
    def failure(cls, kind, status_code=None, data=None, message=''):
        return cls(
            ok=False,
            status_code=status_code,
            data=data,
            kind=kind,
            degraded=kind == ErrorKind.TRANSIENT_NETWORK,
            message=message or USER_MESSAGES[kind],
        )

    @property
    def error_detail(self):
        """Server-provided error text when there is one."""
        if isinstance(self.data, dict):
            return self.data.get('error') or self.data.get('detail') or self.message
        return self.message


class ClientError(Exception):
    kind = ErrorKind.PERMANENT_SERVER

    def __init__(self, message=None):
        super().__init__(message or USER_MESSAGES[self.kind])


class AuthRequired(ClientError):
    kind = ErrorKind.AUTH_REQUIRED


class MalformedRecord(ClientError):
    kind = ErrorKind.MALFORMED_RECORD
