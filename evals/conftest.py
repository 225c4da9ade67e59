"""
pytest conftest for the closing cost tool suite.

Responsibilities:
1. Isolates every test from the real environment: LodeStar credentials and
   DEMO_MODE are removed and the memoized credentials/mode are forgotten.
2. Provides FakeLodeStar, an in-process stand-in for the remote API served
   through httpx.MockTransport. It counts logins so tests can assert that
   sessions are reused and concurrent refreshes are de-duplicated.
3. Provides FakeClock so session expiry can be simulated without sleeping.
"""

import asyncio
import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import httpx
import pytest
import pytest_asyncio

from tools.config import Credentials, Mode, reset_config_cache
from tools.session_manager import SessionManager

API_BASE_URL = "https://lodestar.test/Live/Acme"

_ENV_VARS = (
    "LODESTAR_CLIENT_NAME",
    "LODESTAR_USERNAME",
    "LODESTAR_PASSWORD",
    "LODESTAR_BASE_URL",
    "LODESTAR_REQUEST_TIMEOUT",
    "LODESTAR_PROACTIVE_REFRESH",
    "DEMO_MODE",
)


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    reset_config_cache()
    yield
    reset_config_cache()


# ---------------------------------------------------------------------------
# Fake clock
# ---------------------------------------------------------------------------

class FakeClock:
    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


# ---------------------------------------------------------------------------
# Fake LodeStar API
# ---------------------------------------------------------------------------

class FakeLodeStar:
    """
    Login answers {"session_id": "sess-<n>"} unless a queued outcome says
    otherwise (an httpx.Response to return or an exception to raise).
    Business endpoints answer from `responses` keyed by path suffix, falling
    back to a small echo payload.
    """

    def __init__(self, delay: float = 0.0):
        self.delay = delay
        self.login_calls = 0
        self.login_outcomes: list = []
        self.responses: dict[str, object] = {}
        self.requests: list[httpx.Request] = []

    @property
    def business_requests(self) -> list[httpx.Request]:
        return [r for r in self.requests if not r.url.path.endswith("/Login/login.php")]

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)

        if request.url.path.endswith("/Login/login.php"):
            self.login_calls += 1
            if self.login_outcomes:
                outcome = self.login_outcomes.pop(0)
                if isinstance(outcome, Exception):
                    raise outcome
                return outcome
            return httpx.Response(
                200, json={"session_id": f"sess-{self.login_calls}", "success": "Login successful"}
            )

        for suffix, outcome in self.responses.items():
            if request.url.path.endswith(suffix):
                if isinstance(outcome, Exception):
                    raise outcome
                return outcome
        return httpx.Response(200, json={"ok": True, "path": request.url.path})

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def fake_lodestar():
    return FakeLodeStar()


@pytest.fixture
def live_credentials():
    return Credentials(
        account_name="Acme",
        username="agent@example.com",
        password="s3cret-pass",
        base_url="https://lodestar.test",
    )


@pytest_asyncio.fixture
async def live_http(fake_lodestar):
    client = httpx.AsyncClient(base_url=API_BASE_URL, transport=fake_lodestar.transport())
    yield client
    await client.aclose()


@pytest.fixture
def live_manager(live_http, live_credentials, clock):
    return SessionManager(live_http, live_credentials, Mode.LIVE, clock=clock)


@pytest.fixture
def demo_manager(clock):
    return SessionManager(None, Credentials(), Mode.DEMO, clock=clock)
