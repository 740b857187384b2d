"""Transport backed by a blocking `requests.Session`.

The session call runs in a worker thread via `asyncio.to_thread`, so the
event loop is never blocked.
"""

import asyncio
import logging
from typing import Optional

import requests

from kitelink.domain.interfaces.transport import Transport
from kitelink.domain.models.common import FormBody, Headers
from kitelink.domain.models.config import DEFAULT_TIMEOUT_SECONDS
from kitelink.domain.models.errors import TransportError
from kitelink.domain.models.responses import TransportResponse

logger = logging.getLogger(__name__)


class RequestsTransport(Transport):
    """Thread-offloaded transport for environments without an async HTTP stack."""

    def __init__(self, timeout: float = DEFAULT_TIMEOUT_SECONDS, session: Optional[requests.Session] = None):
        self.timeout = timeout
        self._session = session or requests.Session()
        logger.info(f"RequestsTransport initialized (timeout={timeout}s)")

    def _perform_sync(self, method: str, url: str, headers: Headers, body: Optional[FormBody]) -> TransportResponse:
        try:
            response = self._session.request(method, url, headers=headers, data=body or None, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logger.warning(f"{method} {url} failed before a response: {type(e).__name__}: {e}")
            raise TransportError(f"{type(e).__name__}: {e}", original_exception=e) from e
        return TransportResponse(
            status_code=response.status_code,
            body=response.content,
            headers=dict(response.headers),
        )

    async def perform(
        self,
        method: str,
        url: str,
        headers: Headers,
        body: Optional[FormBody] = None,
    ) -> TransportResponse:
        logger.debug(f"Making {method} request to: {url}")
        response = await asyncio.to_thread(self._perform_sync, method, url, headers, body)
        logger.debug(f"Response status: {response.status_code}")
        return response

    async def aclose(self) -> None:
        self._session.close()
