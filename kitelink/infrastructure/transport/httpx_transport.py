"""Transport backed by `httpx.AsyncClient`."""

import logging
from typing import Optional

import httpx

from kitelink.domain.interfaces.transport import Transport
from kitelink.domain.models.common import FormBody, Headers
from kitelink.domain.models.config import DEFAULT_TIMEOUT_SECONDS
from kitelink.domain.models.errors import TransportError
from kitelink.domain.models.responses import TransportResponse

logger = logging.getLogger(__name__)


class HttpxTransport(Transport):
    """Native async transport with connection pooling."""

    def __init__(self, timeout: float = DEFAULT_TIMEOUT_SECONDS, client: Optional[httpx.AsyncClient] = None):
        self._client = client or httpx.AsyncClient(timeout=timeout)
        logger.info(f"HttpxTransport initialized (timeout={timeout}s)")

    async def perform(
        self,
        method: str,
        url: str,
        headers: Headers,
        body: Optional[FormBody] = None,
    ) -> TransportResponse:
        logger.debug(f"Making {method} request to: {url}")
        try:
            response = await self._client.request(method, url, headers=headers, data=body or None)
        except httpx.RequestError as e:
            logger.warning(f"{method} {url} failed before a response: {type(e).__name__}: {e}")
            raise TransportError(f"{type(e).__name__}: {e}", original_exception=e) from e
        logger.debug(f"Response status: {response.status_code}")
        return TransportResponse(
            status_code=response.status_code,
            body=response.content,
            headers=dict(response.headers),
        )

    async def aclose(self) -> None:
        await self._client.aclose()
