import logging

import pytest

from aad_token_provider.config import RefreshConfig
from aad_token_provider.logging_config import failure_tracker
from tests.fixtures.token_fixtures import ControlledSleep, FakeClock, FakeCredentialClient, make_token


@pytest.fixture(autouse=True)
def _reset_failure_tracker():
    """Keep failure streaks from leaking between tests."""
    yield
    failure_tracker.clear()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sleeper() -> ControlledSleep:
    return ControlledSleep()


@pytest.fixture
def credential_client() -> FakeCredentialClient:
    return FakeCredentialClient(make_token("token-1"))


@pytest.fixture
def refresh_config() -> RefreshConfig:
    return RefreshConfig(refresh_percentage=80, fetch_max_attempts=1)


@pytest.fixture
def provider_logger() -> logging.Logger:
    return logging.getLogger("tests.token_provider")
