import pytest
from unittest.mock import AsyncMock, MagicMock

from kitelink.domain.events.api_events import ApiCallFailed, ApiCallSucceeded, RetryScheduled
from kitelink.domain.models.config import RetryPolicy
from kitelink.domain.models.endpoints import KiteEndpoint, resolve
from kitelink.domain.models.errors import DataException, InputException, NetworkException, TokenException, TransportError
from kitelink.domain.models.requests import PreparedRequest
from kitelink.infrastructure.monitoring.request_counter import RequestCounter
from kitelink.infrastructure.resilience.api_retry import ApiRetryService
from tests.fakes import FakeTransport, envelope, error_body


def _request(operation=KiteEndpoint.HOLDINGS, body=None):
    endpoint = resolve(operation)
    return PreparedRequest(operation=operation, endpoint=endpoint, url=f"https://api.kite.trade{endpoint.path}", body=body)


def _service(transport, fake_sleep, **policy):
    return ApiRetryService(
        transport=transport,
        policy=RetryPolicy(**policy),
        request_counter=RequestCounter(),
        dispatch_event=MagicMock(),
        sleep=fake_sleep,
    )


@pytest.mark.asyncio
async def test_success_on_first_attempt(fake_sleep):
    transport = FakeTransport((200, envelope([{'tradingsymbol': 'INFY'}])))
    service = _service(transport, fake_sleep)

    response = await service.execute(_request())

    assert response.data == [{'tradingsymbol': 'INFY'}]
    assert len(transport.calls) == 1
    assert fake_sleep.delays == []
    assert service.request_counter.value == 1
    event = service.dispatch_event.call_args[0][0]
    assert isinstance(event, ApiCallSucceeded)
    assert event.attempts == 1


@pytest.mark.asyncio
async def test_server_errors_exhaust_budget_with_exponential_backoff(fake_sleep):
    transport = FakeTransport((503, b""))
    service = _service(transport, fake_sleep, max_retries=3, base_delay=0.2, max_delay=5.0)

    with pytest.raises(DataException) as exc_info:
        await service.execute(_request())

    assert exc_info.value.status_code == 503
    assert len(transport.calls) == 4
    assert fake_sleep.delays == pytest.approx([0.2, 0.4, 0.8])
    assert service.request_counter.value == 4
    events = [c[0][0] for c in service.dispatch_event.call_args_list]
    assert sum(isinstance(e, RetryScheduled) for e in events) == 3
    assert isinstance(events[-1], ApiCallFailed)
    assert events[-1].attempts == 4


@pytest.mark.asyncio
async def test_backoff_is_capped(fake_sleep):
    transport = FakeTransport((500, b""))
    service = _service(transport, fake_sleep, max_retries=4, base_delay=1.0, max_delay=2.5)

    with pytest.raises(DataException):
        await service.execute(_request())

    assert fake_sleep.delays == pytest.approx([1.0, 2.0, 2.5, 2.5])


@pytest.mark.asyncio
async def test_recovers_after_transient_failure(fake_sleep):
    transport = FakeTransport((429, b""), (200, envelope({'ok': True})))
    service = _service(transport, fake_sleep)

    response = await service.execute(_request())

    assert response.data == {'ok': True}
    assert len(transport.calls) == 2
    assert fake_sleep.delays == pytest.approx([0.2])


@pytest.mark.asyncio
async def test_non_retryable_error_fails_immediately(fake_sleep):
    transport = FakeTransport((400, error_body("InputException", "Missing quantity")))
    service = _service(transport, fake_sleep)

    with pytest.raises(InputException, match="Missing quantity"):
        await service.execute(_request())

    assert len(transport.calls) == 1
    assert fake_sleep.delays == []


@pytest.mark.asyncio
async def test_token_exception_is_not_retried(fake_sleep):
    transport = FakeTransport((403, error_body("TokenException", "Session expired")))
    service = _service(transport, fake_sleep)

    with pytest.raises(TokenException) as exc_info:
        await service.execute(_request())

    assert exc_info.value.requires_reauth
    assert len(transport.calls) == 1


@pytest.mark.asyncio
async def test_zero_retries_means_one_attempt(fake_sleep):
    transport = FakeTransport((502, b""))
    service = _service(transport, fake_sleep, max_retries=0)

    with pytest.raises(DataException):
        await service.execute(_request())

    assert len(transport.calls) == 1
    assert fake_sleep.delays == []


@pytest.mark.asyncio
async def test_transport_errors_are_retried_as_network(fake_sleep):
    transport = FakeTransport(TransportError("ConnectError: refused"))
    service = _service(transport, fake_sleep, max_retries=2)

    with pytest.raises(NetworkException) as exc_info:
        await service.execute(_request())

    assert exc_info.value.status_code is None
    assert len(transport.calls) == 3


@pytest.mark.asyncio
async def test_constant_backoff(fake_sleep):
    transport = FakeTransport((500, b""))
    service = _service(transport, fake_sleep, max_retries=3, base_delay=0.3, exponential_backoff=False)

    with pytest.raises(DataException):
        await service.execute(_request())

    assert fake_sleep.delays == pytest.approx([0.3, 0.3, 0.3])


@pytest.mark.asyncio
async def test_writes_are_not_retried_on_server_error(fake_sleep):
    transport = FakeTransport((500, b""))
    service = _service(transport, fake_sleep)

    with pytest.raises(DataException):
        await service.execute(_request(KiteEndpoint.PLACE_ORDER, body={'quantity': 1}))

    assert len(transport.calls) == 1


@pytest.mark.asyncio
async def test_writes_are_retried_when_rate_limited(fake_sleep):
    transport = FakeTransport((429, b""), (200, envelope({'order_id': '42'})))
    service = _service(transport, fake_sleep)

    response = await service.execute(_request(KiteEndpoint.PLACE_ORDER, body={'quantity': 1}))

    assert response.data == {'order_id': '42'}
    assert len(transport.calls) == 2


@pytest.mark.asyncio
async def test_writes_retried_when_opted_in(fake_sleep):
    transport = FakeTransport((500, b""), (200, envelope({'order_id': '42'})))
    service = _service(transport, fake_sleep, retry_non_idempotent=True)

    response = await service.execute(_request(KiteEndpoint.PLACE_ORDER, body={'quantity': 1}))

    assert response.data == {'order_id': '42'}
    assert len(transport.calls) == 2


@pytest.mark.asyncio
async def test_before_retry_gate_runs_only_for_retries(fake_sleep):
    transport = FakeTransport((503, b""), (503, b""), (200, envelope([])))
    service = _service(transport, fake_sleep)
    gate = AsyncMock()

    await service.execute(_request(), before_retry=gate)

    assert gate.await_count == 2


@pytest.mark.asyncio
async def test_succeeds_on_fourth_attempt_after_three_server_errors(fake_sleep):
    transport = FakeTransport((500, b""), (500, b""), (500, b""), (200, envelope({'ok': True})))
    service = _service(transport, fake_sleep, max_retries=3, base_delay=0.2, max_delay=5.0)

    response = await service.execute(_request())

    assert response.data == {'ok': True}
    assert len(transport.calls) == 4
    assert fake_sleep.delays == pytest.approx([0.2, 0.4, 0.8])
