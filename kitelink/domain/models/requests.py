"""A fully built request, ready for the wire."""

from dataclasses import dataclass, field
from typing import Optional

from .common import FormBody, Headers
from .endpoints import Endpoint, KiteEndpoint


@dataclass(frozen=True)
class PreparedRequest:
    """Everything the retry orchestrator needs to repeat one logical call."""
    operation: KiteEndpoint
    endpoint: Endpoint
    url: str
    headers: Headers = field(default_factory=dict)
    body: Optional[FormBody] = None

    @property
    def method(self) -> str:
        return self.endpoint.method.value

    @property
    def name(self) -> str:
        return self.operation.value
