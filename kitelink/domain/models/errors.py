"""Classified error taxonomy for the Kite Connect API.

The remote service reports failures with an HTTP status plus an `error_type`
field naming the exception. Every failure observed by a caller is one of the
`KiteError` subclasses below, carrying the original status and message.
"""

from enum import Enum
from typing import Any, Dict, Optional, Type


class KiteExceptionType(str, Enum):
    """Exception kinds named by the remote `error_type` field."""
    TOKEN = "TokenException"
    USER = "UserException"
    ORDER = "OrderException"
    INPUT = "InputException"
    MARGIN = "MarginException"
    HOLDING = "HoldingException"
    NETWORK = "NetworkException"
    DATA = "DataException"
    GENERAL = "GeneralException"
    UNKNOWN = "Unknown"

    @classmethod
    def from_raw(cls, raw: str) -> "KiteExceptionType":
        """Maps a remote error_type string; unrecognised strings become UNKNOWN."""
        for member in cls:
            if member is not cls.UNKNOWN and member.value == raw:
                return member
        return cls.UNKNOWN


class KiteHttpStatus(int, Enum):
    """HTTP status codes documented for the remote API."""
    BAD_REQUEST = 400
    FORBIDDEN = 403
    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405
    GONE = 410
    TOO_MANY_REQUESTS = 429
    INTERNAL_SERVER_ERROR = 500
    BAD_GATEWAY = 502
    SERVICE_UNAVAILABLE = 503
    GATEWAY_TIMEOUT = 504

    @property
    def reason_phrase(self) -> str:
        return _REASON_PHRASES[self]

    def is_client_error(self) -> bool:
        return 400 <= self.value < 500

    def is_server_error(self) -> bool:
        return 500 <= self.value < 600

    def requires_reauth(self) -> bool:
        return self is KiteHttpStatus.FORBIDDEN

    def is_rate_limited(self) -> bool:
        return self is KiteHttpStatus.TOO_MANY_REQUESTS

    def __str__(self) -> str:
        return f"{self.value} {self.reason_phrase}"


_REASON_PHRASES = {
    KiteHttpStatus.BAD_REQUEST: "Bad Request",
    KiteHttpStatus.FORBIDDEN: "Forbidden",
    KiteHttpStatus.NOT_FOUND: "Not Found",
    KiteHttpStatus.METHOD_NOT_ALLOWED: "Method Not Allowed",
    KiteHttpStatus.GONE: "Gone",
    KiteHttpStatus.TOO_MANY_REQUESTS: "Too Many Requests",
    KiteHttpStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
    KiteHttpStatus.BAD_GATEWAY: "Bad Gateway",
    KiteHttpStatus.SERVICE_UNAVAILABLE: "Service Unavailable",
    KiteHttpStatus.GATEWAY_TIMEOUT: "Gateway Timeout",
}


class KiteError(Exception):
    """Base class for every classified API failure.

    Flags are derived, never stored:
      * requires_reauth -- only for TokenException.
      * is_rate_limited -- status 429.
      * is_retryable    -- Network/Data exceptions, or any 429 / 5xx status.
    """

    exception_type: KiteExceptionType = KiteExceptionType.GENERAL
    category: str = "General"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        data: Optional[Any] = None,
        error_type: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.data = data
        self.error_type = error_type or self.exception_type.value

    @property
    def requires_reauth(self) -> bool:
        return self.exception_type is KiteExceptionType.TOKEN

    @property
    def is_rate_limited(self) -> bool:
        return self.status_code == KiteHttpStatus.TOO_MANY_REQUESTS

    @property
    def is_retryable(self) -> bool:
        if self.exception_type in (KiteExceptionType.NETWORK, KiteExceptionType.DATA):
            return True
        if self.status_code is None:
            return False
        return self.status_code == 429 or 500 <= self.status_code < 600

    def is_session_expired(self) -> bool:
        return self.requires_reauth

    def error_category(self) -> str:
        return self.category

    def to_dict(self) -> Dict[str, Any]:
        """Envelope-shaped view, e.g. for logging or re-serialising."""
        return {
            'status': 'error',
            'error_type': self.error_type,
            'message': self.message,
            'status_code': self.status_code,
            'data': self.data,
        }

    def __str__(self) -> str:
        return f"[{self.category}] {self.error_type}: {self.message}"

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(message={self.message!r}, "
            f"status_code={self.status_code!r}, error_type={self.error_type!r})"
        )


class TokenException(KiteError):
    """Session expired or invalidated; the user must log in again."""
    exception_type = KiteExceptionType.TOKEN
    category = "Authentication"


class UserException(KiteError):
    exception_type = KiteExceptionType.USER
    category = "Account"


class OrderException(KiteError):
    exception_type = KiteExceptionType.ORDER
    category = "Order"


class InputException(KiteError):
    """Missing or bad request parameters."""
    exception_type = KiteExceptionType.INPUT
    category = "Input Validation"


class MarginException(KiteError):
    exception_type = KiteExceptionType.MARGIN
    category = "Insufficient Funds"


class HoldingException(KiteError):
    exception_type = KiteExceptionType.HOLDING
    category = "Insufficient Holdings"


class NetworkException(KiteError):
    """The API could not talk to the OMS, or the transport itself failed."""
    exception_type = KiteExceptionType.NETWORK
    category = "Network"


class DataException(KiteError):
    """The API could not understand the OMS response."""
    exception_type = KiteExceptionType.DATA
    category = "System"


class GeneralException(KiteError):
    exception_type = KiteExceptionType.GENERAL
    category = "General"


class UnknownException(KiteError):
    """An error_type this client does not know yet. The raw string is kept in `error_type`."""
    exception_type = KiteExceptionType.UNKNOWN
    category = "Unknown"


EXCEPTION_CLASSES: Dict[KiteExceptionType, Type[KiteError]] = {
    KiteExceptionType.TOKEN: TokenException,
    KiteExceptionType.USER: UserException,
    KiteExceptionType.ORDER: OrderException,
    KiteExceptionType.INPUT: InputException,
    KiteExceptionType.MARGIN: MarginException,
    KiteExceptionType.HOLDING: HoldingException,
    KiteExceptionType.NETWORK: NetworkException,
    KiteExceptionType.DATA: DataException,
    KiteExceptionType.GENERAL: GeneralException,
    KiteExceptionType.UNKNOWN: UnknownException,
}


class TransportError(Exception):
    """Raised by transport adapters when no HTTP response was obtained."""

    def __init__(self, message: str, original_exception: Optional[BaseException] = None):
        self.original_exception = original_exception
        super().__init__(message)
