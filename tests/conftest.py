"""Shared test fixtures for pawlog tests."""

from __future__ import annotations

import asyncio
import sys
import threading
from pathlib import Path
from typing import Any

import pytest
import requests

# ---------------------------------------------------------------------------
# Test hermeticity
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _force_hermetic_test_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("REMOTE_URL", "")
    monkeypatch.setenv("USE_REMOTE", "false")
    monkeypatch.setenv("DB_PATH", ":memory:")
    monkeypatch.setenv("ENCRYPTION_KEY", "")
    monkeypatch.setenv("CATALOG_PATH", "")

# Allow running tests without `pip install -e .` by making `src/` importable.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_SRC_DIR = _PROJECT_ROOT / "src"
if str(_SRC_DIR) not in sys.path:
    sys.path.insert(0, str(_SRC_DIR))

from pawlog.core.cache.period_cache import PeriodCache  # noqa: E402
from pawlog.core.remote.gateway import RemoteGateway  # noqa: E402
from pawlog.core.storage.backends import MemoryBackend  # noqa: E402
from pawlog.core.storage.local_store import LocalStore  # noqa: E402
from pawlog.domains.pet_health.engine import ReconciliationEngine  # noqa: E402

REMOTE_URL = "https://sheet.example.test/exec"


# ---------------------------------------------------------------------------
# Fake HTTP session (stands in for requests.Session)
# ---------------------------------------------------------------------------

class FakeResponse:
    """Mimics the parts of requests.Response the gateway uses."""

    def __init__(self, payload: Any = None, *, status_code: int = 200, text: str | None = None):
        self._payload = payload
        self.status_code = status_code
        self._text = text

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self) -> Any:
        if self._text is not None:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self._payload


class FakeSession:
    """Records requests; answers GETs from a per-action table.

    A table value may be a payload, a FakeResponse, or an exception to raise.
    """

    def __init__(self, responses: dict[str, Any] | None = None) -> None:
        self.responses: dict[str, Any] = responses or {}
        self.posts: list[dict[str, Any]] = []
        self.gets: list[dict[str, Any]] = []
        self.post_error: Exception | None = None
        self.closed = False

    def set_response(self, action: str, response: Any) -> None:
        self.responses[action] = response

    def get(self, url: str, params: dict[str, Any] | None = None, timeout: Any = None):
        params = params or {}
        self.gets.append(dict(params))
        response = self.responses.get(params.get("action"))
        if isinstance(response, Exception):
            raise response
        if isinstance(response, FakeResponse):
            return response
        return FakeResponse(response)

    def post(self, url: str, json: Any = None, timeout: Any = None):
        if self.post_error is not None:
            raise self.post_error
        self.posts.append(json)
        return FakeResponse(None)

    def close(self) -> None:
        self.closed = True

    def actions_posted(self) -> list[str]:
        return [body["action"] for body in self.posts]


class BlockingSession(FakeSession):
    """FakeSession whose GETs for one action wait until :meth:`release`.

    Lets a test land a local write while a remote read is in flight.
    """

    def __init__(self, held_action: str, responses: dict[str, Any] | None = None) -> None:
        super().__init__(responses)
        self.held_action = held_action
        self.entered = threading.Event()
        self._released = threading.Event()

    def get(self, url: str, params: dict[str, Any] | None = None, timeout: Any = None):
        if (params or {}).get("action") == self.held_action:
            self.entered.set()
            self._released.wait(5)
        return super().get(url, params=params, timeout=timeout)

    def release(self) -> None:
        self._released.set()

    async def wait_until_held(self) -> None:
        """Block (off the event loop) until a held GET has started."""
        await asyncio.to_thread(self.entered.wait, 5)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def pawlog_db():
    """Create an in-memory PawlogDatabase for testing."""
    from pawlog.core.storage.database import PawlogDatabase

    db = PawlogDatabase(":memory:")
    db.initialize()
    yield db
    db.close()


@pytest.fixture
def memory_store() -> LocalStore:
    return LocalStore(MemoryBackend())


@pytest.fixture
def fake_session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def gateway(fake_session: FakeSession) -> RemoteGateway:
    """Enabled gateway talking to the fake session."""
    return RemoteGateway(REMOTE_URL, session=fake_session)


@pytest.fixture
def offline_gateway() -> RemoteGateway:
    """Gateway with no URL: every remote call is skipped."""
    return RemoteGateway("", session=FakeSession())


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def period_cache(clock: FakeClock) -> PeriodCache:
    return PeriodCache(ttl_seconds=300, clock=clock)


@pytest.fixture
def engine(memory_store, gateway, period_cache) -> ReconciliationEngine:
    """Engine wired to an in-memory store and the fake remote."""
    return ReconciliationEngine(memory_store, gateway, period_cache)


@pytest.fixture
def offline_engine(memory_store, offline_gateway, period_cache) -> ReconciliationEngine:
    """Engine whose remote is disabled."""
    return ReconciliationEngine(memory_store, offline_gateway, period_cache)


@pytest.fixture
def catalog():
    from pawlog.domains.pet_health.catalog import load_catalog

    return load_catalog()
