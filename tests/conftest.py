import pytest
from fastapi.testclient import TestClient

from passshare.adapters.memory_store.stores import MemoryRateLimitBackend, MemorySecretBackend
from passshare.dependencies import Backends
from passshare.main import create_app
from passshare.settings import Settings


class FakeClock:
    """Monotonic clock the tests can move forward."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def backends(clock):
    return Backends(
        secrets=MemorySecretBackend(clock=clock),
        rate_limits=MemoryRateLimitBackend(clock=clock),
    )


@pytest.fixture
def settings():
    return Settings(_env_file=None, MODE="dev", DEV_MODE=False)


@pytest.fixture
def app(settings, backends):
    return create_app(settings, backends=backends)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c
