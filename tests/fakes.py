"""Test doubles shared across the suite."""

import json
from collections import deque
from typing import Any, List, Optional

from kitelink.domain.interfaces.transport import Transport
from kitelink.domain.models.errors import TransportError
from kitelink.domain.models.responses import TransportResponse


def envelope(data: Any) -> bytes:
    """Success envelope as the API sends it."""
    return json.dumps({'status': 'success', 'data': data}).encode()


def error_body(error_type: str, message: str) -> bytes:
    return json.dumps({'status': 'error', 'error_type': error_type, 'message': message}).encode()


class FakeTransport(Transport):
    """Scripted transport: returns queued (status, body) pairs or raises queued TransportErrors.

    Every call is recorded as (method, url, headers, body). When the script
    runs out, the last outcome repeats.
    """

    def __init__(self, *outcomes):
        self._outcomes = deque(outcomes or [(200, envelope({}))])
        self._last = self._outcomes[-1]
        self.calls: List[tuple] = []
        self.closed = False

    def script(self, *outcomes) -> None:
        """Replaces the remaining outcomes."""
        self._outcomes = deque(outcomes)
        self._last = self._outcomes[-1]

    async def perform(self, method: str, url: str, headers, body: Optional[dict] = None) -> TransportResponse:
        self.calls.append((method, url, dict(headers), body))
        outcome = self._outcomes.popleft() if self._outcomes else self._last
        if isinstance(outcome, TransportError):
            raise outcome
        status, payload = outcome
        if isinstance(payload, str):
            payload = payload.encode()
        return TransportResponse(status_code=status, body=payload)

    async def aclose(self) -> None:
        self.closed = True


class FakeSleep:
    """Records requested backoff delays instead of sleeping."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds
