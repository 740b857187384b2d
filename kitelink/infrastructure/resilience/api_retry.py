"""Service for executing API calls with automatic retries.

Implements capped exponential backoff for transient failures: rate limit
rejections (429), server errors (5xx), and Network/Data exceptions reported
by the remote service or raised by the transport.
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional

from kitelink.domain.events.api_events import (
    ApiCallFailed,
    ApiCallInitiated,
    ApiCallSucceeded,
    RetryScheduled,
)
from kitelink.domain.interfaces.transport import Transport
from kitelink.domain.models.config import RetryPolicy
from kitelink.domain.models.errors import KiteError, TransportError
from kitelink.domain.models.requests import PreparedRequest
from kitelink.domain.models.responses import ApiResponse
from kitelink.infrastructure.monitoring.events import EventDispatcher
from kitelink.infrastructure.monitoring.request_counter import RequestCounter
from kitelink.infrastructure.resilience.error_classifier import classify, classify_transport_error

logger = logging.getLogger(__name__)

RetryGate = Callable[[], Awaitable[object]]


class ApiRetryService:
    """Runs one logical call: attempt, classify, back off, repeat."""

    def __init__(
        self,
        transport: Transport,
        policy: Optional[RetryPolicy] = None,
        request_counter: Optional[RequestCounter] = None,
        dispatch_event: Optional[EventDispatcher] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """Initializes the ApiRetryService.

        Args:
            transport: The single-request primitive used for every attempt.
            policy: Retry budget and backoff settings.
            request_counter: Incremented once per wire attempt.
            dispatch_event: Receives pipeline events.
            sleep: Coroutine used for backoff (injectable for tests).
        """
        self.transport = transport
        self.policy = policy or RetryPolicy()
        self.request_counter = request_counter or RequestCounter()
        self.dispatch_event = dispatch_event or EventDispatcher()
        self._sleep = sleep

        logger.info(
            f"ApiRetryService initialized: max_retries={self.policy.max_retries}, "
            f"base_delay={self.policy.base_delay}s, max_delay={self.policy.max_delay}s, "
            f"exponential={self.policy.exponential_backoff}"
        )

    def backoff_delay(self, attempt: int) -> float:
        return self.policy.backoff_delay(attempt)

    def should_retry(self, error: KiteError, request: PreparedRequest) -> bool:
        """Retryable errors are retried for reads; writes only when rejected with 429."""
        if not error.is_retryable:
            return False
        if request.endpoint.is_idempotent or self.policy.retry_non_idempotent:
            return True
        return error.is_rate_limited

    async def execute(self, request: PreparedRequest, before_retry: Optional[RetryGate] = None) -> ApiResponse:
        """Executes the request, retrying transient failures within the budget.

        Args:
            request: The prepared request. The caller has already passed the
                rate limiter for the first attempt.
            before_retry: Awaited before every retry attempt, after the
                backoff sleep (the dispatcher passes its rate limit gate).

        Returns:
            The successful response.

        Raises:
            KiteError: The classified error of the last attempt.
        """
        last_error: Optional[KiteError] = None
        attempts = 0

        for attempt in range(self.policy.max_retries + 1):
            if attempt > 0 and before_retry is not None:
                await before_retry()

            attempts = attempt + 1
            self.request_counter.increment()
            self.dispatch_event(ApiCallInitiated(
                operation=request.name, method=request.method,
                path=request.endpoint.path, attempt_number=attempts,
            ))
            start_time = time.perf_counter()
            try:
                response = await self.transport.perform(request.method, request.url, request.headers, request.body)
            except TransportError as e:
                error = classify_transport_error(e)
            else:
                if response.is_success:
                    latency_ms = (time.perf_counter() - start_time) * 1000
                    self.dispatch_event(ApiCallSucceeded(
                        operation=request.name, status_code=response.status_code,
                        latency_ms=latency_ms, attempts=attempts,
                    ))
                    return ApiResponse.from_transport(response)
                error = classify(response.status_code, response.body)

            last_error = error
            if not self.should_retry(error, request):
                logger.debug(f"{request.name}: {error.error_type} is not retried (attempt {attempts}).")
                break
            if attempt >= self.policy.max_retries:
                logger.error(f"Max retries ({self.policy.max_retries}) reached for {request.name}. Last error: {error}")
                break

            delay = self.backoff_delay(attempt)
            logger.warning(
                f"Retryable error calling {request.name} on attempt {attempts}/{self.policy.max_retries + 1}: "
                f"{error.error_type} (status={error.status_code}). Waiting {delay:.2f}s..."
            )
            self.dispatch_event(RetryScheduled(
                operation=request.name, attempt_number=attempts,
                delay_seconds=delay, error_type=error.error_type,
            ))
            await self._sleep(delay)

        assert last_error is not None
        self.dispatch_event(ApiCallFailed(
            operation=request.name, error_type=last_error.error_type,
            error_message=last_error.message, status_code=last_error.status_code,
            attempts=attempts,
        ))
        raise last_error
