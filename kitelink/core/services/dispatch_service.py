"""The single request pipeline every API call funnels through.

registry resolve -> response cache -> category rate limiter ->
retry orchestrator (transport + classifier) -> cache store -> caller.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, Mapping, Optional, Sequence, Tuple, Union
from urllib.parse import urlencode

from kitelink.domain.events.api_events import ApiCallDeferred, ResponseServedFromCache
from kitelink.domain.interfaces.cache import CacheService
from kitelink.domain.interfaces.transport import Transport
from kitelink.domain.models.common import CacheKey, FormBody, Headers
from kitelink.domain.models.config import KiteConnectConfig
from kitelink.domain.models.endpoints import Endpoint, KiteEndpoint, build_path, resolve
from kitelink.domain.models.errors import KiteError
from kitelink.domain.models.requests import PreparedRequest
from kitelink.domain.models.responses import ApiResponse
from kitelink.infrastructure.cache.caching_service import ResponseCache
from kitelink.infrastructure.monitoring.events import EventDispatcher, EventListener
from kitelink.infrastructure.monitoring.request_counter import RequestCounter
from kitelink.infrastructure.resilience.api_retry import ApiRetryService
from kitelink.infrastructure.resilience.rate_limiter import RateLimiter, RateLimiterStats

logger = logging.getLogger(__name__)

QueryParams = Union[Mapping[str, object], Iterable[Tuple[str, object]], None]
HeaderProvider = Callable[[Endpoint], Headers]
SessionExpiryHook = Callable[[], None]


@dataclass
class PipelineContext:
    """The mutable shared state of one client: limiter, cache, counter, events.

    Created with the client and discarded with it; never module-global.
    """
    rate_limiter: RateLimiter
    cache: CacheService
    request_counter: RequestCounter = field(default_factory=RequestCounter)
    dispatch_event: EventDispatcher = field(default_factory=EventDispatcher)

    @classmethod
    def from_config(cls, config: KiteConnectConfig, event_listener: Optional[EventListener] = None) -> "PipelineContext":
        return cls(
            rate_limiter=RateLimiter(enabled=config.enable_rate_limiting),
            cache=ResponseCache(config.cache),
            dispatch_event=EventDispatcher(event_listener),
        )


def _query_pairs(query_params: QueryParams):
    if not query_params:
        return []
    items = query_params.items() if isinstance(query_params, Mapping) else query_params
    pairs = []
    for key, value in items:
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            pairs.extend((key, str(v)) for v in value)
        elif isinstance(value, bool):
            pairs.append((key, "1" if value else "0"))
        else:
            pairs.append((key, str(value)))
    return pairs


def cache_key_for(endpoint: Endpoint, path: str, pairs) -> CacheKey:
    """'GET /instruments/NSE?a=1&b=2' with the query sorted for stability."""
    query = urlencode(sorted(pairs))
    return CacheKey(f"{endpoint.method.value} {path}?{query}" if query else f"{endpoint.method.value} {path}")


class DispatchService:
    """Composes the pipeline around a transport."""

    def __init__(
        self,
        transport: Transport,
        config: Optional[KiteConnectConfig] = None,
        context: Optional[PipelineContext] = None,
        header_provider: Optional[HeaderProvider] = None,
        session_expiry_hook: Optional[SessionExpiryHook] = None,
    ):
        self.config = config or KiteConnectConfig()
        self.context = context or PipelineContext.from_config(self.config)
        self.transport = transport
        self.header_provider = header_provider or (lambda endpoint: {})
        self.session_expiry_hook = session_expiry_hook
        self.retry_service = ApiRetryService(
            transport=transport,
            policy=self.config.retry,
            request_counter=self.context.request_counter,
            dispatch_event=self.context.dispatch_event,
        )

    def build_url(self, path: str, pairs) -> str:
        url = f"{self.config.base_url}{path}"
        if pairs:
            url = f"{url}?{urlencode(pairs)}"
        return url

    async def dispatch(
        self,
        operation: KiteEndpoint,
        path_segments: Sequence[str] = (),
        query_params: QueryParams = None,
        body: Optional[FormBody] = None,
    ) -> ApiResponse:
        """Runs one logical call through the whole pipeline.

        Returns:
            The successful response (`from_cache=True` when served from cache).

        Raises:
            KiteError: The single classified error of the final attempt.
        """
        endpoint = resolve(operation)
        path = build_path(endpoint, path_segments)
        pairs = _query_pairs(query_params)
        events = self.context.dispatch_event

        cache_key = None
        if endpoint.cacheable and self.context.cache.enabled:
            cache_key = cache_key_for(endpoint, path, pairs)
            cached = await self.context.cache.get(cache_key)
            if cached is not None:
                events(ResponseServedFromCache(operation=operation.value, cache_key=cache_key))
                return cached.cached_copy()

        limiter = self.context.rate_limiter
        waited = await limiter.wait_for_request(endpoint)
        if waited > 0:
            events(ApiCallDeferred(operation=operation.value, category=endpoint.category.value, wait_time_seconds=waited))

        request = PreparedRequest(
            operation=operation,
            endpoint=endpoint,
            url=self.build_url(path, pairs),
            headers=self.header_provider(endpoint),
            body=body,
        )
        try:
            response = await self.retry_service.execute(request, before_retry=lambda: limiter.wait_for_request(endpoint))
        except KiteError as e:
            if e.requires_reauth and self.session_expiry_hook is not None:
                logger.warning(f"Session expired while calling {operation.value}; invoking session expiry hook.")
                self.session_expiry_hook()
            raise

        if cache_key is not None:
            await self.context.cache.set(cache_key, response)
        return response

    # --- Introspection ---

    @property
    def is_rate_limiting_enabled(self) -> bool:
        return self.context.rate_limiter.enabled

    def can_request_immediately(self, operation: KiteEndpoint) -> bool:
        return self.context.rate_limiter.can_request_immediately(operation)

    def get_delay_for_request(self, operation: KiteEndpoint) -> float:
        return self.context.rate_limiter.delay_until_next_request(operation)

    def rate_limiter_stats(self) -> RateLimiterStats:
        return self.context.rate_limiter.get_stats()

    def request_count(self) -> int:
        return self.context.request_counter.value
