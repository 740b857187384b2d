import pytest
from typer.testing import CliRunner

from kitelink.infrastructure.config import settings
from tests.fakes import FakeClock, FakeSleep, FakeTransport


@pytest.fixture
def fake_transport():
    return FakeTransport()


@pytest.fixture
def fake_sleep():
    return FakeSleep()


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture(scope="session")
def runner():
    """Provides a Typer CliRunner instance."""
    return CliRunner()


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch):
    """Keeps tests independent of the developer's environment and config files."""
    for name in ('KITE_API_KEY', 'KITE_ACCESS_TOKEN', 'KITE_API_SECRET', 'KITE_BASE_URL', 'HTTP_TRANSPORT'):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(settings, '_config', {})
    monkeypatch.setattr(settings, '_loaded', False)
    settings.clear_test_config()
    yield
    settings.clear_test_config()
