"""
Process runtime: everything that exists once per process.

  credentials -> mode -> shared httpx.AsyncClient -> SessionManager -> ClosingCostAPI

Built at startup by whichever transport is serving (MCP stdio or FastAPI) and
closed on shutdown. Demo mode gets no HTTP client at all.
"""

import os
import time
from dataclasses import dataclass
from typing import Callable, Optional

import httpx

from tools.closing_cost_api import ClosingCostAPI
from tools.config import Credentials, Mode, load_credentials, request_timeout_seconds, resolve_mode
from tools.logging_utils import get_logger
from tools.session_manager import SessionManager

logger = get_logger(__name__)

USER_AGENT = "closing-cost-tools/1.0"


@dataclass
class Runtime:
    credentials: Credentials
    mode: Mode
    http_client: Optional[httpx.AsyncClient]
    session_manager: SessionManager
    api: ClosingCostAPI

    async def aclose(self) -> None:
        await self.session_manager.aclose()
        if self.http_client is not None:
            await self.http_client.aclose()
        logger.info("runtime closed", extra={"mode": self.mode.value})


def build_http_client(
    credentials: Credentials,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=credentials.api_base_url,
        timeout=request_timeout_seconds(),
        headers={"Accept": "application/json", "User-Agent": USER_AGENT},
        transport=transport,
    )


def build_runtime(
    credentials: Optional[Credentials] = None,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    clock: Callable[[], float] = time.time,
    proactive_refresh: Optional[bool] = None,
) -> Runtime:
    credentials = credentials or load_credentials()
    mode = resolve_mode(credentials)
    if proactive_refresh is None:
        proactive_refresh = os.getenv("LODESTAR_PROACTIVE_REFRESH", "false").strip().lower() == "true"

    http_client = build_http_client(credentials, transport) if mode is Mode.LIVE else None
    session_manager = SessionManager(
        http_client,
        credentials,
        mode,
        clock=clock,
        proactive_refresh=proactive_refresh,
    )
    logger.info(
        "runtime ready",
        extra={"mode": mode.value, "account_name": credentials.account_name},
    )
    return Runtime(
        credentials=credentials,
        mode=mode,
        http_client=http_client,
        session_manager=session_manager,
        api=ClosingCostAPI(session_manager, http_client),
    )


def api_info_markdown(runtime: Runtime) -> str:
    """Human-readable summary of the configuration and workflows. Served as an MCP resource."""
    info = runtime.session_manager.get_session_info()
    session_status = "Active" if info["is_active"] else "Not logged in"
    return f"""# LodeStar API Information

## Current Configuration
- Client Name: {runtime.credentials.account_name}
- Base URL: {runtime.credentials.api_base_url}
- Mode: {runtime.mode.value.upper()}
- Session Status: {session_status}

## Available Workflows

### Mortgage Originator Simplified
1. closing_cost_calculations
2. property_tax (if required)

### Mortgage Originator Full
1. get_sub_agents
2. get_endorsements
3. get_questions
4. closing_cost_calculations
5. property_tax (if required)

### Title Agent Simplified
1. closing_cost_calculations
2. property_tax (if required)

### Title Agent Full
1. get_endorsements
2. get_questions
3. closing_cost_calculations
4. property_tax (if required)

Sessions are created and refreshed automatically; `login` is optional.

## Purpose Types
- 00: Refinance
- 04: Refinance (Reissue)
- 11: Purchase

## Search Types
- CFPB: Returns tax, recording fees, title fees and title premiums
- Title: Title fees and title premiums only
"""


FEE_NAMES_MARKDOWN = """# Standard Title Fee Names

Common fee names used in LodeStar calculations:
- Settlement Fee
- Closing Fee
- Title Search
- Title Examination
- Title Insurance Binder
- Document Preparation
- Notary Fees
- Attorney Fees
- Title Insurance
- Lender's Title Policy
- Owner's Title Policy
- Recording Fees
- Transfer Taxes

For a complete list, visit: https://www.lodestarss.com/API/Standard_Title_FeeNames.csv
"""
