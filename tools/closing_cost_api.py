"""
LodeStar closing cost API — dual-mode dispatch
==============================================
Every tool is a stateless request builder:

  1. validate arguments (ValidationFailure, no network)
  2. session_manager.ensure_session()
  3. DEMO: return the synthesized payload from tools.demo_data
     LIVE: one HTTP call to the fixed endpoint with session_id attached;
           the JSON body is passed through unchanged

POST endpoints get {session_id, ...args} as a JSON body, GET endpoints get
session_id and args as query parameters.

call_tool() wraps the outcome in the standard tool result envelope:
  {tool_name, success, tool_result_id, timestamp, mode, endpoint, result}   on success
  {tool_name, success, tool_result_id, timestamp, error: {code, message}}   on failure

Nothing is retried inside a call.
"""

import time
import uuid
from datetime import datetime, timezone
from typing import Optional

import httpx

from tools import demo_data
from tools.errors import ClosingCostError, UnknownTool, UpstreamFailure, remote_error_message
from tools.logging_utils import get_logger
from tools.schemas import TOOL_ARGS, validate_args
from tools.session_manager import LOGIN_ENDPOINT, SessionManager

logger = get_logger(__name__)

# tool name -> (HTTP method, remote path)
ENDPOINTS: dict[str, tuple[str, str]] = {
    "closing_cost_calculations": ("POST", "/closing_cost_calculations.php"),
    "property_tax": ("GET", "/property_tax.php"),
    "get_endorsements": ("GET", "/endorsements.php"),
    "get_sub_agents": ("GET", "/sub_agents.php"),
    "get_counties": ("GET", "/counties.php"),
    "get_townships": ("GET", "/townships.php"),
    "get_questions": ("POST", "/questions.php"),
    "geocode_check": ("GET", "/geocode_check.php"),
    "get_appraisal_modifiers": ("GET", "/appraisal_modifiers.php"),
}
LOGIN_TOOL = "login"

# sent as loan_info[<field>] query parameters
LOAN_INFO_FIELDS = ("prop_type", "amort_type", "loan_type")

_MAX_LOG_ENTRIES = 500


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _response_body(response: httpx.Response):
    try:
        return response.json()
    except ValueError:
        return response.text[:500] or None


def build_query_params(tool_name: str, session_id: str, args: dict) -> dict:
    params: dict = {"session_id": session_id}
    for key, value in args.items():
        if tool_name == "get_appraisal_modifiers" and key in LOAN_INFO_FIELDS:
            params[f"loan_info[{key}]"] = str(value)
        else:
            params[key] = value
    return params


class ClosingCostAPI:
    def __init__(self, session_manager: SessionManager, http_client: Optional[httpx.AsyncClient] = None):
        self.session_manager = session_manager
        self._http = http_client
        self._invocation_log: list[dict] = []

    @property
    def mode(self):
        return self.session_manager.mode

    # ------------------------------------------------------------------
    # Raw operations (raise ClosingCostError subclasses)
    # ------------------------------------------------------------------

    async def execute(self, tool_name: str, args: Optional[dict] = None) -> dict:
        """Runs one tool and returns its payload. Raises on any failure."""
        if tool_name not in TOOL_ARGS:
            raise UnknownTool(f"Unknown tool: {tool_name}")
        cleaned = validate_args(tool_name, args)

        if tool_name == LOGIN_TOOL:
            return await self.login()

        session_id = await self.session_manager.ensure_session()
        if self.session_manager.is_demo:
            logger.debug("demo response", extra={"tool": tool_name})
            return demo_data.synthesize(tool_name, cleaned)
        return await self._send(tool_name, session_id, cleaned)

    async def login(self) -> dict:
        """Forces a fresh live session. In demo mode returns the (stable) demo session."""
        if self.session_manager.is_demo:
            session_id = await self.session_manager.ensure_session()
            return {
                "success": True,
                "demo_mode": True,
                "message": "Login successful (DEMO MODE)",
                "session_id": session_id,
            }
        self.session_manager.clear_session()
        session_id = await self.session_manager.ensure_session()
        return {"success": True, "message": "Login successful", "session_id": session_id}

    async def _send(self, tool_name: str, session_id: str, args: dict) -> dict:
        method, path = ENDPOINTS[tool_name]
        try:
            if method == "POST":
                response = await self._http.post(path, json={"session_id": session_id, **args})
            else:
                response = await self._http.get(path, params=build_query_params(tool_name, session_id, args))
        except httpx.TimeoutException as exc:
            raise UpstreamFailure(f"LodeStar API timed out on {path}") from exc
        except httpx.HTTPError as exc:
            raise UpstreamFailure(f"Request to {path} failed: {exc}") from exc

        if response.is_error:
            raise UpstreamFailure(
                remote_error_message(response),
                status=response.status_code,
                body=_response_body(response),
            )
        try:
            return response.json()
        except ValueError as exc:
            raise UpstreamFailure(
                f"{path} returned a non-JSON body",
                status=response.status_code,
                body=response.text[:500],
            ) from exc

    # ------------------------------------------------------------------
    # Tool boundary (never raises for domain failures)
    # ------------------------------------------------------------------

    async def call_tool(self, tool_name: str, args: Optional[dict] = None) -> dict:
        tool_result_id = f"{tool_name}_{uuid.uuid4().hex[:8]}"
        start = time.monotonic()
        try:
            result = await self.execute(tool_name, args)
        except ClosingCostError as exc:
            logger.warning(
                "tool call failed",
                extra={"tool": tool_name, "code": exc.code, "reason": exc.message},
            )
            self._log_invocation(tool_name, start, success=False)
            return {
                "tool_name": tool_name,
                "success": False,
                "tool_result_id": tool_result_id,
                "timestamp": _now_iso(),
                "error": exc.to_dict(),
            }

        self._log_invocation(tool_name, start, success=True)
        return {
            "tool_name": tool_name,
            "success": True,
            "tool_result_id": tool_result_id,
            "timestamp": _now_iso(),
            "mode": self.mode.value,
            "endpoint": ENDPOINTS.get(tool_name, ("POST", LOGIN_ENDPOINT))[1],
            "result": result,
        }

    # ------------------------------------------------------------------
    # Invocation log (in-memory, bounded, no arguments stored)
    # ------------------------------------------------------------------

    def _log_invocation(self, tool_name: str, start: float, success: bool) -> None:
        self._invocation_log.append({
            "timestamp": _now_iso(),
            "tool": tool_name,
            "mode": self.mode.value,
            "duration_ms": round((time.monotonic() - start) * 1000, 1),
            "success": success,
        })
        if len(self._invocation_log) > _MAX_LOG_ENTRIES:
            del self._invocation_log[: len(self._invocation_log) - _MAX_LOG_ENTRIES]

    def get_invocation_log(self) -> list[dict]:
        return list(self._invocation_log)
