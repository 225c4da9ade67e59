"""
Session Manager — the single cached LodeStar session
=====================================================
Every business call needs a session_id. This module owns the only one in the
process and hands it out through ensure_session().

  EMPTY       no session yet (or cleared)
  VALID       cached token inside the 30-minute TTL, or any demo session
  EXPIRED     token stale, or the last refresh failed
  REFRESHING  a login is in flight

Live mode:
  - inside the TTL the cached token is returned without touching the network
  - otherwise one POST /Login/login.php is made; concurrent callers await the
    same in-flight login instead of issuing their own
  - any login failure raises AuthenticationFailure and leaves no session,
    so the next call tries again

Demo mode:
  - the first call synthesizes "demo-session-<epoch ms>"; it never expires

The manager is constructed once by the runtime and passed to every consumer.
"""

import asyncio
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

import httpx

from tools.config import (
    Credentials,
    Mode,
    PROACTIVE_REFRESH_MARGIN_SECONDS,
    SESSION_TTL_SECONDS,
)
from tools.errors import AuthenticationFailure, remote_error_message
from tools.logging_utils import get_logger

logger = get_logger(__name__)

LOGIN_ENDPOINT = "/Login/login.php"
DEMO_TOKEN_PREFIX = "demo-session-"


def demo_token(now: float) -> str:
    return f"{DEMO_TOKEN_PREFIX}{int(now * 1000)}"


def is_demo_token(token: str) -> bool:
    return token.startswith(DEMO_TOKEN_PREFIX)


@dataclass(frozen=True)
class Session:
    token: str
    issued_at: float


class SessionState(str, Enum):
    EMPTY = "empty"
    VALID = "valid"
    EXPIRED = "expired"
    REFRESHING = "refreshing"


class SessionManager:
    def __init__(
        self,
        http_client: Optional[httpx.AsyncClient],
        credentials: Credentials,
        mode: Mode,
        *,
        clock: Callable[[], float] = time.time,
        ttl_seconds: float = SESSION_TTL_SECONDS,
        proactive_refresh: bool = False,
    ):
        if mode is Mode.LIVE and http_client is None:
            raise ValueError("live mode needs an HTTP client")
        self._http = http_client
        self.credentials = credentials
        self.mode = mode
        self._clock = clock
        self._ttl = ttl_seconds
        self._proactive = proactive_refresh

        self._session: Optional[Session] = None
        self._refresh_task: Optional[asyncio.Task] = None
        self._refresh_generation = 0
        self._refresh_timer: Optional[asyncio.TimerHandle] = None
        self._last_refresh_failed = False
        # bumped by clear_session() so a login that lands afterwards is not cached
        self._generation = 0
        self.login_count = 0

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def is_demo(self) -> bool:
        return self.mode is Mode.DEMO

    @property
    def state(self) -> SessionState:
        if self._refresh_in_flight():
            return SessionState.REFRESHING
        if self._session is None:
            return SessionState.EXPIRED if self._last_refresh_failed else SessionState.EMPTY
        if self._is_fresh(self._session):
            return SessionState.VALID
        return SessionState.EXPIRED

    async def ensure_session(self) -> str:
        """Returns a session token valid at the moment of return, or raises AuthenticationFailure."""
        if self.is_demo:
            if self._session is None:
                now = self._clock()
                self._session = Session(token=demo_token(now), issued_at=now)
                logger.info("demo session created")
            return self._session.token

        session = self._session
        if session is not None and self._is_fresh(session):
            return session.token

        if session is not None:
            logger.info(
                "session expired",
                extra={"age_minutes": int((self._clock() - session.issued_at) // 60)},
            )
        return await self._join_refresh()

    def clear_session(self) -> None:
        """Drops the cached session and any scheduled proactive refresh. Safe to call repeatedly."""
        had_session = self._session is not None
        self._session = None
        self._last_refresh_failed = False
        self._generation += 1
        self._cancel_refresh_timer()
        if had_session:
            logger.info("session cleared")

    def get_session_info(self) -> dict:
        """Diagnostic snapshot. Never logs in."""
        session = self._session
        age_seconds = None
        if session is not None:
            age_seconds = max(0, int(self._clock() - session.issued_at))
        return {
            "is_active": session is not None,
            "age_seconds": age_seconds,
            "age_minutes": age_seconds // 60 if age_seconds is not None else None,
            "mode": self.mode.value,
            "is_demo_mode": self.is_demo,
            "state": self.state.value,
            "login_count": self.login_count,
        }

    async def aclose(self) -> None:
        task = self._refresh_task
        self.clear_session()
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except (asyncio.CancelledError, AuthenticationFailure):
                pass
        self._refresh_task = None

    # ------------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------------

    def _is_fresh(self, session: Session) -> bool:
        if self.is_demo:
            return True
        return (self._clock() - session.issued_at) < self._ttl

    def _refresh_in_flight(self) -> bool:
        task = self._refresh_task
        return (
            task is not None
            and not task.done()
            and self._refresh_generation == self._generation
        )

    async def _join_refresh(self) -> str:
        # a login started before clear_session() is never joined; its token would not be cached
        if self._refresh_in_flight():
            task = self._refresh_task
        else:
            task = asyncio.ensure_future(self._refresh(self._generation))
            task.add_done_callback(self._refresh_finished)
            self._refresh_task = task
            self._refresh_generation = self._generation
        # shield: one caller giving up must not cancel the login for the others
        return await asyncio.shield(task)

    def _refresh_finished(self, task: asyncio.Task) -> None:
        if self._refresh_task is task:
            self._refresh_task = None
        if not task.cancelled():
            # marks the exception as retrieved when every waiter has gone away
            task.exception()

    async def _refresh(self, generation: int) -> str:
        logger.info("refreshing session", extra={"user": self.credentials.masked_username})
        try:
            response = await self._http.post(
                LOGIN_ENDPOINT,
                data={
                    "username": self.credentials.username,
                    "password": self.credentials.password,
                },
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )
        except httpx.HTTPError as exc:
            raise self._login_failed(generation, str(exc) or exc.__class__.__name__) from exc

        if response.is_error:
            raise self._login_failed(generation, remote_error_message(response))

        try:
            body = response.json()
        except ValueError as exc:
            raise self._login_failed(generation, "login response was not JSON") from exc

        session_id = body.get("session_id") if isinstance(body, dict) else None
        if not session_id:
            reason = body.get("error") if isinstance(body, dict) else None
            raise self._login_failed(generation, reason or "No session_id in login response")

        session = Session(token=str(session_id), issued_at=self._clock())
        self.login_count += 1
        if generation == self._generation:
            self._session = session
            self._last_refresh_failed = False
            self._schedule_refresh()
        logger.info("session refreshed", extra={"login_count": self.login_count})
        return session.token

    def _login_failed(self, generation: int, reason: str) -> AuthenticationFailure:
        # a stale login failing must not touch a session cleared or replaced since
        if generation == self._generation:
            self._session = None
            self._last_refresh_failed = True
            self._cancel_refresh_timer()
        logger.error("session refresh failed", extra={"reason": reason})
        return AuthenticationFailure(f"Login failed: {reason}")

    # ------------------------------------------------------------------
    # Optional proactive refresh, TTL - 5 minutes after each live login
    # ------------------------------------------------------------------

    def _schedule_refresh(self) -> None:
        if not self._proactive or self.is_demo:
            return
        self._cancel_refresh_timer()
        delay = max(0.0, self._ttl - PROACTIVE_REFRESH_MARGIN_SECONDS)
        loop = asyncio.get_running_loop()
        self._refresh_timer = loop.call_later(delay, self._start_proactive_refresh)

    def _start_proactive_refresh(self) -> None:
        self._refresh_timer = None
        asyncio.ensure_future(self._proactive_refresh())

    async def _proactive_refresh(self) -> None:
        try:
            await self._join_refresh()
        except AuthenticationFailure as exc:
            logger.warning("proactive session refresh failed", extra={"reason": exc.message})

    def _cancel_refresh_timer(self) -> None:
        if self._refresh_timer is not None:
            self._refresh_timer.cancel()
            self._refresh_timer = None

    @property
    def has_scheduled_refresh(self) -> bool:
        return self._refresh_timer is not None
