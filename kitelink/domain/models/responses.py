"""Response structures returned by the transport and the dispatch pipeline."""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .common import ErrorEnvelope

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransportResponse:
    """Raw outcome of one wire attempt."""
    status_code: int
    body: bytes
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def text(self) -> str:
        return self.body.decode('utf-8', errors='replace')


@dataclass(frozen=True)
class ApiResponse:
    """Successful dispatch result.

    `data` is the unwrapped `data` field of a JSON success envelope, the whole
    JSON document if it is not enveloped, or the body text if it is not JSON
    (the instrument dumps are CSV).
    """
    status_code: int
    data: Any
    raw: bytes = b""
    from_cache: bool = False

    @classmethod
    def from_transport(cls, response: TransportResponse) -> "ApiResponse":
        return cls(
            status_code=response.status_code,
            data=parse_success_body(response.body),
            raw=response.body,
        )

    def cached_copy(self) -> "ApiResponse":
        return ApiResponse(self.status_code, self.data, self.raw, from_cache=True)


def parse_success_body(body: bytes) -> Any:
    """Unwraps `{"status": "success", "data": ...}`; falls back to JSON or text."""
    if not body:
        return None
    text = body.decode('utf-8', errors='replace')
    try:
        document = json.loads(text)
    except json.JSONDecodeError:
        logger.debug("Response body is not JSON, returning text.")
        return text
    if isinstance(document, dict) and document.get('status') == 'success' and 'data' in document:
        return document['data']
    return document


def parse_error_envelope(body: bytes) -> Optional[ErrorEnvelope]:
    """Returns the error envelope if the body is one, otherwise None.

    An envelope is a JSON object with a string `error_type` field.
    """
    if not body:
        return None
    try:
        document = json.loads(body.decode('utf-8', errors='replace'))
    except json.JSONDecodeError:
        return None
    if not isinstance(document, dict):
        return None
    error_type = document.get('error_type')
    if not isinstance(error_type, str) or not error_type:
        return None
    message = document.get('message')
    return ErrorEnvelope(
        status=str(document.get('status', 'error')),
        message=message if isinstance(message, str) else "",
        error_type=error_type,
        data=document.get('data'),
    )
