"""HTTP transport adapters implementing the Transport interface.

`HttpxTransport` is natively async; `RequestsTransport` runs a blocking
`requests.Session` in a worker thread. Both are interchangeable.
"""

from kitelink.infrastructure.transport.httpx_transport import HttpxTransport
from kitelink.infrastructure.transport.requests_transport import RequestsTransport

TRANSPORTS = {
    'httpx': HttpxTransport,
    'requests': RequestsTransport,
}

__all__ = ['HttpxTransport', 'RequestsTransport', 'TRANSPORTS']
