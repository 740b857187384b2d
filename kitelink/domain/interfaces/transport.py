"""Interface for performing one HTTP request.

The dispatch pipeline never talks to an HTTP library directly. Adapters
(native async or thread-offloaded) implement this contract and are chosen
when the client is constructed.
"""

import abc
from typing import Optional

from ..models.common import FormBody, Headers
from ..models.responses import TransportResponse


class Transport(abc.ABC):
    """Abstract Base Class for a single-shot HTTP request primitive."""

    @abc.abstractmethod
    async def perform(
        self,
        method: str,
        url: str,
        headers: Headers,
        body: Optional[FormBody] = None,
    ) -> TransportResponse:
        """Performs exactly one request. Never retries, never throttles.

        Args:
            method: HTTP verb ("GET", "POST", "PUT", "DELETE").
            url: Absolute URL including any query string.
            headers: Request headers, already carrying authentication.
            body: Optional form fields for POST/PUT/DELETE.

        Returns:
            The status code and raw body of the response, whatever the status.

        Raises:
            TransportError: If no HTTP response could be obtained.
        """
        pass

    async def aclose(self) -> None:
        """Releases pooled connections. Default: nothing to release."""
        return None
