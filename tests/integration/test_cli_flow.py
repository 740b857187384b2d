import hashlib

import pytest

from kitelink import main
from kitelink.infrastructure.config import settings
from tests.fakes import FakeTransport, envelope, error_body

WIDE = {'COLUMNS': '200'}


@pytest.fixture
def fake_transport():
    return FakeTransport((200, envelope([{'tradingsymbol': 'INFY', 'quantity': 10}])))


@pytest.fixture(autouse=True)
def cli_dependencies(mocker, monkeypatch, fake_transport):
    """Fresh composition root per test, wired to the scripted transport."""
    monkeypatch.setattr(main, '_dependencies', None)
    mocker.patch('kitelink.main.load_configuration')
    mocker.patch('kitelink.main.setup_logging')
    mocker.patch.dict(main.TRANSPORTS, {'httpx': lambda timeout: fake_transport})
    settings.set_config_for_testing({
        'kite.api_key': 'cli_key',
        'kite.access_token': 'cli_token',
        'rate_limit.enabled': False,
        'retry.max_retries': 0,
    })


def test_endpoints_lists_registry(runner):
    result = runner.invoke(main.app, ["endpoints"], env=WIDE)
    assert result.exit_code == 0
    assert "place_order" in result.stdout
    assert "/portfolio/holdings" in result.stdout


def test_endpoints_filtered_by_category(runner):
    result = runner.invoke(main.app, ["endpoints", "--category", "quote"], env=WIDE)
    assert result.exit_code == 0
    assert "ltp" in result.stdout
    assert "holdings" not in result.stdout


def test_login_url(runner):
    result = runner.invoke(main.app, ["login-url"])
    assert result.exit_code == 0
    assert "https://kite.trade/connect/login?api_key=cli_key&v=3" in result.stdout


def test_login_url_requires_api_key(runner):
    settings.set_config_for_testing({'kite.api_key': ''})
    result = runner.invoke(main.app, ["login-url"], env=WIDE)
    assert result.exit_code == 1
    assert "No API key configured" in result.stdout


def test_session_exchanges_request_token(runner, fake_transport):
    settings.set_config_for_testing({'kite.api_secret': 'cli_secret'})
    fake_transport.script((200, envelope({'user_id': 'AB1234', 'access_token': 'fresh_token'})))

    result = runner.invoke(main.app, ["session", "req_tok"], env=WIDE)

    assert result.exit_code == 0
    assert "fresh_token" in result.stdout
    method, url, headers, body = fake_transport.calls[0]
    assert (method, url) == ("POST", "https://api.kite.trade/session/token")
    assert 'Authorization' not in headers
    assert body['request_token'] == "req_tok"
    assert body['checksum'] == hashlib.sha256(b"cli_keyreq_tokcli_secret").hexdigest()
    assert main.get_dependencies()['client'].access_token == "fresh_token"


def test_session_requires_api_secret(runner, fake_transport):
    result = runner.invoke(main.app, ["session", "req_tok"], env=WIDE)
    assert result.exit_code == 1
    assert "KITE_API_SECRET" in result.stdout
    assert fake_transport.calls == []


def test_call_prints_response(runner, fake_transport):
    result = runner.invoke(main.app, ["call", "holdings"], env=WIDE)

    assert result.exit_code == 0
    assert '"tradingsymbol": "INFY"' in result.stdout
    method, url, headers, _ = fake_transport.calls[0]
    assert (method, url) == ("GET", "https://api.kite.trade/portfolio/holdings")
    assert headers['Authorization'] == "token cli_key:cli_token"
    assert fake_transport.closed


def test_call_with_segments_and_params(runner, fake_transport):
    result = runner.invoke(main.app, ["call", "quote", "--param", "i=NSE:INFY", "--param", "i=NSE:TCS"], env=WIDE)
    assert result.exit_code == 0
    assert fake_transport.calls[0][1] == "https://api.kite.trade/quote?i=NSE%3AINFY&i=NSE%3ATCS"

    result = runner.invoke(main.app, ["call", "order_history", "220101000000001"], env=WIDE)
    assert result.exit_code == 0
    assert fake_transport.calls[1][1] == "https://api.kite.trade/orders/220101000000001"


def test_call_write_sends_form_body(runner, fake_transport):
    result = runner.invoke(main.app, ["call", "place_order", "regular", "-p", "exchange=NSE", "-p", "quantity=1"], env=WIDE)
    assert result.exit_code == 0
    method, url, _, body = fake_transport.calls[0]
    assert (method, url) == ("POST", "https://api.kite.trade/orders/regular")
    assert body == {'exchange': 'NSE', 'quantity': '1'}


def test_call_unknown_operation(runner):
    result = runner.invoke(main.app, ["call", "no_such_thing"], env=WIDE)
    assert result.exit_code == 2
    assert "Unknown operation" in result.stdout


def test_call_reports_classified_error(runner, fake_transport):
    fake_transport.script((403, error_body("TokenException", "Incorrect api_key or access_token.")))

    result = runner.invoke(main.app, ["call", "profile"], env=WIDE)

    assert result.exit_code == 1
    assert "Session expired" in result.stdout
    assert "TokenException" in result.stdout


def test_limits(runner):
    result = runner.invoke(main.app, ["limits"], env=WIDE)
    assert result.exit_code == 0
    assert "historical" in result.stdout
    assert "0.333s" in result.stdout
    assert "disabled" in result.stdout
