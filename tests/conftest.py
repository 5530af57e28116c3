"""Root pytest configuration for all tests.

Provides the in-memory hosting API, a controllable clock and a client wired
to both. This conftest applies to all test types (unit, integration).
"""

import logging

import pytest

from tests.helpers.fake_hosting import FakeClock, FakeHostingAPI, make_client

# Keep urllib3 connection chatter out of captured logs
logging.getLogger("urllib3").setLevel(logging.WARNING)


@pytest.fixture(autouse=True)
def no_ambient_token(monkeypatch):
    """Tests never pick up a real GITHUB_TOKEN from the environment or a .env file."""
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    monkeypatch.setattr("src.hosting_client.auth.load_dotenv", lambda *a, **k: False)


@pytest.fixture
def fake_api() -> FakeHostingAPI:
    return FakeHostingAPI()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def client(fake_api, clock):
    return make_client(fake_api, clock=clock)


@pytest.fixture(autouse=True)
def no_backoff_sleep(monkeypatch):
    """Rate-limit backoff never really sleeps in tests."""
    monkeypatch.setattr("src.hosting_client.retry_logic.time.sleep", lambda seconds: None)


@pytest.fixture(autouse=True)
def reset_app_logger():
    """CLI runs attach handlers to the 'src' logger; drop them after each test."""
    yield
    app_logger = logging.getLogger("src")
    app_logger.handlers.clear()
    app_logger.setLevel(logging.NOTSET)
