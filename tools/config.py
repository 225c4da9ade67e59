"""
Credential & mode resolution
============================
Reads the LodeStar account configuration once per process and decides whether
the tools run against the live API or in demo mode.

  LODESTAR_CLIENT_NAME   account name          (default: LodeStar_Demo)
  LODESTAR_USERNAME      principal identifier  (empty -> demo mode)
  LODESTAR_PASSWORD      secret                (empty -> demo mode)
  LODESTAR_BASE_URL      base endpoint         (default: https://www.lodestarss.com)
  DEMO_MODE              "true" forces demo mode even with credentials

The resolved mode is memoized: a session created in one mode is never reused
in the other, even if the environment changes mid-process.
"""

import functools
import os
from dataclasses import dataclass, field
from enum import Enum

from tools.logging_utils import get_logger, mask_identifier

logger = get_logger(__name__)

DEFAULT_CLIENT_NAME = "LodeStar_Demo"
DEFAULT_BASE_URL = "https://www.lodestarss.com"
DEFAULT_REQUEST_TIMEOUT_SECONDS = 30.0

SESSION_TTL_SECONDS = 30 * 60
PROACTIVE_REFRESH_MARGIN_SECONDS = 5 * 60

PURPOSE_REFINANCE = "00"
PURPOSE_REFINANCE_REISSUE = "04"
PURPOSE_PURCHASE = "11"
PURPOSE_TYPES = (PURPOSE_REFINANCE, PURPOSE_REFINANCE_REISSUE, PURPOSE_PURCHASE)

SEARCH_TYPES = ("CFPB", "Title")


class Mode(str, Enum):
    LIVE = "live"
    DEMO = "demo"


@dataclass(frozen=True)
class Credentials:
    account_name: str = DEFAULT_CLIENT_NAME
    username: str = ""
    password: str = field(default="", repr=False)
    base_url: str = DEFAULT_BASE_URL
    demo_override: bool = False

    @property
    def api_base_url(self) -> str:
        return f"{self.base_url.rstrip('/')}/Live/{self.account_name}"

    @property
    def masked_username(self) -> str:
        return mask_identifier(self.username)

    @property
    def has_secrets(self) -> bool:
        return bool(self.username) and bool(self.password)


def _env_flag(name: str) -> bool:
    return os.getenv(name, "false").strip().lower() == "true"


@functools.lru_cache(maxsize=None)
def load_credentials() -> Credentials:
    """Builds Credentials from the environment. Read once; later calls return the same object."""
    return Credentials(
        account_name=os.getenv("LODESTAR_CLIENT_NAME") or DEFAULT_CLIENT_NAME,
        username=os.getenv("LODESTAR_USERNAME", "").strip(),
        password=os.getenv("LODESTAR_PASSWORD", ""),
        base_url=os.getenv("LODESTAR_BASE_URL") or DEFAULT_BASE_URL,
        demo_override=_env_flag("DEMO_MODE"),
    )


def request_timeout_seconds() -> float:
    raw = os.getenv("LODESTAR_REQUEST_TIMEOUT", "")
    try:
        value = float(raw)
    except ValueError:
        return DEFAULT_REQUEST_TIMEOUT_SECONDS
    return value if value > 0 else DEFAULT_REQUEST_TIMEOUT_SECONDS


@functools.lru_cache(maxsize=None)
def resolve_mode(credentials: Credentials) -> Mode:
    """
    DEMO when the username or password is missing, or DEMO_MODE=true.
    LIVE otherwise. Memoized per credentials value and never raises.
    """
    if credentials.demo_override:
        logger.info("demo mode enabled explicitly, no remote calls will be made")
        return Mode.DEMO
    if not credentials.has_secrets:
        logger.warning("no LodeStar credentials provided, switching to demo mode")
        return Mode.DEMO
    logger.info(
        "live mode enabled",
        extra={
            "account_name": credentials.account_name,
            "user": credentials.masked_username,
            "api_base_url": credentials.api_base_url,
        },
    )
    return Mode.LIVE


def reset_config_cache() -> None:
    """Forgets memoized credentials and modes. Used in tests."""
    load_credentials.cache_clear()
    resolve_mode.cache_clear()
