import hashlib
import json
from urllib.parse import parse_qs, urlparse

import pytest
from unittest.mock import MagicMock

from kitelink import CacheConfig, KiteConnect, KiteConnectConfig, RetryPolicy
from kitelink.domain.models.errors import OrderException, TokenException
from tests.fakes import FakeTransport, envelope, error_body


def _client(transport, cache=None, **kwargs):
    config = KiteConnectConfig(
        enable_rate_limiting=False,
        retry=RetryPolicy(max_retries=1, base_delay=0.001, max_delay=0.001),
        cache=cache,
    )
    return KiteConnect("my_key", "my_token", config=config, transport=transport, **kwargs)


def _query(url):
    return parse_qs(urlparse(url).query)


def test_login_url():
    client = _client(FakeTransport())
    assert client.login_url() == "https://kite.trade/connect/login?api_key=my_key&v=3"


@pytest.mark.asyncio
async def test_authenticated_headers():
    transport = FakeTransport((200, envelope({'user_id': 'AB1234'})))
    client = _client(transport)

    profile = await client.profile()

    assert profile == {'user_id': 'AB1234'}
    _, url, headers, _ = transport.calls[0]
    assert url == "https://api.kite.trade/user/profile"
    assert headers['X-Kite-Version'] == "3"
    assert headers['Authorization'] == "token my_key:my_token"


@pytest.mark.asyncio
async def test_generate_session_stores_access_token():
    transport = FakeTransport((200, envelope({'user_id': 'AB1234', 'access_token': 'fresh_token'})))
    client = KiteConnect("my_key", transport=transport)

    session = await client.generate_session("req_token", "my_secret")

    assert session['access_token'] == "fresh_token"
    assert client.access_token == "fresh_token"
    method, url, headers, body = transport.calls[0]
    assert (method, url) == ("POST", "https://api.kite.trade/session/token")
    assert 'Authorization' not in headers
    assert body == {
        'api_key': 'my_key',
        'request_token': 'req_token',
        'checksum': hashlib.sha256(b"my_keyreq_tokenmy_secret").hexdigest(),
    }


@pytest.mark.asyncio
async def test_renew_access_token():
    transport = FakeTransport((200, envelope({'access_token': 'renewed'})))
    client = _client(transport)

    await client.renew_access_token("refresh_1", "secret")

    _, url, _, body = transport.calls[0]
    assert url == "https://api.kite.trade/session/refresh_token"
    assert body['refresh_token'] == "refresh_1"
    assert body['checksum'] == hashlib.sha256(b"my_keyrefresh_1secret").hexdigest()
    assert client.access_token == "renewed"


@pytest.mark.asyncio
async def test_invalidate_access_token_uses_delete():
    transport = FakeTransport((200, envelope(True)))
    client = _client(transport)

    assert await client.invalidate_access_token() is True
    method, url, _, body = transport.calls[0]
    assert method == "DELETE"
    assert url == "https://api.kite.trade/session/token"
    assert body == {'api_key': 'my_key', 'access_token': 'my_token'}


@pytest.mark.asyncio
async def test_place_order_drops_unset_fields():
    transport = FakeTransport((200, envelope({'order_id': '151220000000000'})))
    client = _client(transport)

    result = await client.place_order(
        "regular", exchange="NSE", tradingsymbol="INFY", transaction_type="BUY",
        quantity=1, product="CNC", order_type="MARKET",
    )

    assert result == {'order_id': '151220000000000'}
    method, url, _, body = transport.calls[0]
    assert (method, url) == ("POST", "https://api.kite.trade/orders/regular")
    assert body == {
        'exchange': 'NSE', 'tradingsymbol': 'INFY', 'transaction_type': 'BUY',
        'quantity': 1, 'product': 'CNC', 'order_type': 'MARKET',
    }


@pytest.mark.asyncio
async def test_rejected_order_raises_order_exception():
    transport = FakeTransport((400, error_body("OrderException", "Insufficient quantity")))
    client = _client(transport)

    with pytest.raises(OrderException, match="Insufficient quantity"):
        await client.cancel_order("regular", "1")

    assert transport.calls[0][:2] == ("DELETE", "https://api.kite.trade/orders/regular/1")


@pytest.mark.asyncio
async def test_order_trades_path():
    transport = FakeTransport((200, envelope([])))
    client = _client(transport)

    await client.order_trades("1234")

    assert transport.calls[0][1] == "https://api.kite.trade/orders/1234/trades"


@pytest.mark.asyncio
async def test_quote_sends_repeated_instrument_params():
    transport = FakeTransport((200, envelope({'NSE:INFY': {'last_price': 1500.0}})))
    client = _client(transport)

    quotes = await client.quote(["NSE:INFY", "NSE:TCS"])

    assert quotes['NSE:INFY']['last_price'] == 1500.0
    url = transport.calls[0][1]
    assert url.startswith("https://api.kite.trade/quote?")
    assert _query(url) == {'i': ['NSE:INFY', 'NSE:TCS']}


@pytest.mark.asyncio
async def test_historical_data_query():
    transport = FakeTransport((200, envelope({'candles': []})))
    client = _client(transport)

    await client.historical_data("5633", "2024-01-01 09:15:00", "2024-01-01 15:30:00", "minute")

    url = transport.calls[0][1]
    assert urlparse(url).path == "/instruments/historical/5633/minute"
    assert _query(url) == {
        'from': ['2024-01-01 09:15:00'], 'to': ['2024-01-01 15:30:00'],
        'continuous': ['0'], 'oi': ['0'],
    }


@pytest.mark.asyncio
async def test_instruments_parsed_and_cached():
    csv_dump = b"instrument_token,tradingsymbol,exchange\n408065,INFY,NSE\n2953217,TCS,NSE\n"
    transport = FakeTransport((200, csv_dump))
    client = _client(transport, cache=CacheConfig())

    first = await client.instruments("NSE")
    second = await client.instruments("NSE")

    assert first == [
        {'instrument_token': '408065', 'tradingsymbol': 'INFY', 'exchange': 'NSE'},
        {'instrument_token': '2953217', 'tradingsymbol': 'TCS', 'exchange': 'NSE'},
    ]
    assert second == first
    assert len(transport.calls) == 1
    assert client.request_count() == 1


@pytest.mark.asyncio
async def test_default_client_does_not_cache_instruments():
    transport = FakeTransport((200, b"tradingsymbol\nINFY\n"))
    client = KiteConnect("k", transport=transport)

    await client.instruments()
    await client.instruments()

    assert KiteConnectConfig().cache is None
    assert not client.context.cache.enabled
    assert len(transport.calls) == 2


@pytest.mark.asyncio
async def test_margins_with_and_without_segment():
    transport = FakeTransport((200, envelope({})))
    client = _client(transport)

    await client.margins()
    await client.margins("equity")

    assert [c[1] for c in transport.calls] == [
        "https://api.kite.trade/user/margins",
        "https://api.kite.trade/user/margins/equity",
    ]


@pytest.mark.asyncio
async def test_mf_and_sip_routing():
    transport = FakeTransport((200, envelope([])))
    client = _client(transport)

    await client.mf_orders()
    await client.mf_orders("abc")
    await client.mf_sips("sip1")
    await client.cancel_mf_sip("sip1")
    await client.place_mf_sip("INF090I01239", amount=1000, instalments=12, frequency="monthly")

    assert [(c[0], urlparse(c[1]).path) for c in transport.calls] == [
        ("GET", "/mf/orders"),
        ("GET", "/mf/orders/abc"),
        ("GET", "/mf/sips/sip1"),
        ("DELETE", "/mf/sips/sip1"),
        ("POST", "/mf/sips"),
    ]
    assert transport.calls[-1][3] == {
        'tradingsymbol': 'INF090I01239', 'amount': 1000, 'instalments': 12, 'frequency': 'monthly',
    }


@pytest.mark.asyncio
async def test_place_gtt_sends_json_fields():
    transport = FakeTransport((200, envelope({'trigger_id': 123})))
    client = _client(transport)
    condition = {'exchange': 'NSE', 'tradingsymbol': 'INFY', 'trigger_values': [1400.0], 'last_price': 1500.0}
    orders = [{'transaction_type': 'SELL', 'quantity': 1, 'price': 1400.0, 'order_type': 'LIMIT', 'product': 'CNC'}]

    result = await client.place_gtt("single", condition, orders)

    assert result == {'trigger_id': 123}
    body = transport.calls[0][3]
    assert body['type'] == "single"
    assert json.loads(body['condition']) == condition
    assert json.loads(body['orders']) == orders


@pytest.mark.asyncio
async def test_session_expiry_hook():
    transport = FakeTransport((403, error_body("TokenException", "Token expired")))
    hook = MagicMock()
    client = _client(transport, session_expiry_hook=hook)

    with pytest.raises(TokenException):
        await client.holdings()

    hook.assert_called_once()


@pytest.mark.asyncio
async def test_session_expiry_hook_can_be_replaced():
    transport = FakeTransport((403, error_body("TokenException", "Token expired")))
    client = _client(transport)
    hook = MagicMock()
    client.set_session_expiry_hook(hook)

    with pytest.raises(TokenException):
        await client.positions()

    assert client.session_expiry_hook is hook
    hook.assert_called_once()


@pytest.mark.asyncio
async def test_context_manager_closes_transport():
    transport = FakeTransport()
    async with _client(transport) as client:
        assert not client.is_rate_limiting_enabled
    assert transport.closed
