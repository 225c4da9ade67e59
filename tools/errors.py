"""
Closing cost tool errors
========================
Every failure a tool call can surface is one of these. call_tool() converts
them into the standard failure envelope:

  {tool_name, success: False, tool_result_id, timestamp, error: {code, message, ...}}

Missing credentials are NOT an error here: the resolver silently falls back
to demo mode and logs a warning.
"""


def remote_error_message(response) -> str:
    """Best human-readable reason from a failed remote response: its 'error' field, else its text."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("error", "message"):
            if body.get(key):
                return str(body[key])
    text = (response.text or "").strip()
    if text:
        return text[:200]
    return f"HTTP {response.status_code}"


class ClosingCostError(Exception):
    """Base class for all closing cost tool failures."""

    code = "CLOSING_COST_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


class AuthenticationFailure(ClosingCostError):
    """Remote login rejected, unreachable, or answered without a session_id."""

    code = "AUTHENTICATION_ERROR"


class UpstreamFailure(ClosingCostError):
    """A business call failed after a valid session was obtained."""

    code = "UPSTREAM_ERROR"

    def __init__(self, message: str, status: int | None = None, body=None):
        super().__init__(message)
        self.status = status
        self.body = body

    def to_dict(self) -> dict:
        error = super().to_dict()
        if self.status is not None:
            error["status"] = self.status
        if self.body is not None:
            error["body"] = self.body
        return error


class ValidationFailure(ClosingCostError):
    """Malformed tool arguments. Raised before any network call."""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, details: list[dict] | None = None):
        super().__init__(message)
        self.details = details or []

    def to_dict(self) -> dict:
        error = super().to_dict()
        if self.details:
            error["details"] = self.details
        return error


class UnknownTool(ClosingCostError):
    code = "UNKNOWN_TOOL"
