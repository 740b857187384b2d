"""Maps raw HTTP/network outcomes onto the closed KiteError taxonomy.

Pure functions: the same (status, body) always produce an error of the same
class with the same message and flags.
"""

from typing import Union

from kitelink.domain.models.errors import (
    EXCEPTION_CLASSES,
    DataException,
    GeneralException,
    InputException,
    KiteError,
    KiteExceptionType,
    NetworkException,
    TokenException,
    TransportError,
)
from kitelink.domain.models.responses import parse_error_envelope

Body = Union[bytes, str, None]


def _as_bytes(body: Body) -> bytes:
    if body is None:
        return b""
    if isinstance(body, str):
        return body.encode('utf-8')
    return body


def _fallback_class(status_code: int):
    if status_code == 400:
        return InputException
    if status_code == 403:
        return TokenException
    if status_code == 429:
        return NetworkException
    if 500 <= status_code < 600:
        return DataException
    return GeneralException


def classify(status_code: int, body: Body) -> KiteError:
    """Classifies a non-2xx response.

    An error envelope's `error_type` wins. Without a parseable envelope the
    status decides: 400 Input, 403 Token, 429 Network (rate limited),
    5xx Data, any other status General. Unrecognised `error_type` strings
    become UnknownException with the raw string preserved.
    """
    raw = _as_bytes(body)
    envelope = parse_error_envelope(raw)
    if envelope is not None:
        raw_type = envelope['error_type']
        error_class = EXCEPTION_CLASSES[KiteExceptionType.from_raw(raw_type)]
        message = envelope.get('message') or f"HTTP {status_code}"
        return error_class(
            message,
            status_code=status_code,
            data=envelope.get('data'),
            error_type=raw_type,
        )

    error_class = _fallback_class(status_code)
    text = raw.decode('utf-8', errors='replace').strip()
    message = f"HTTP {status_code} - {text}" if text else f"HTTP {status_code}"
    return error_class(message, status_code=status_code)


def classify_transport_error(error: TransportError) -> NetworkException:
    """A request that never produced an HTTP response is a network failure."""
    return NetworkException(f"Transport failure: {error}", status_code=None)

