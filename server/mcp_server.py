"""
MCP server (stdio) exposing the LodeStar closing cost tools.

Each tool forwards its arguments to ClosingCostAPI.call_tool(). Successful
calls return the result envelope; failures are raised as ToolError so the
client sees an error-flagged result instead of a crash.
"""

import json
from contextlib import asynccontextmanager
from typing import Annotated, List, Literal, Optional

from dotenv import load_dotenv
from fastmcp import FastMCP
from fastmcp.exceptions import ToolError
from pydantic import Field

load_dotenv()

from server.runtime import FEE_NAMES_MARKDOWN, Runtime, api_info_markdown, build_runtime
from tools.logging_utils import get_logger

logger = get_logger(__name__)

_runtime: Optional[Runtime] = None


def get_runtime() -> Runtime:
    global _runtime
    if _runtime is None:
        _runtime = build_runtime()
    return _runtime


@asynccontextmanager
async def lifespan(server: FastMCP):
    runtime = get_runtime()
    logger.info("mcp server started", extra={"mode": runtime.mode.value})
    try:
        yield
    finally:
        await shutdown_runtime()


async def shutdown_runtime() -> None:
    global _runtime
    if _runtime is not None:
        await _runtime.aclose()
        _runtime = None


mcp = FastMCP("LodeStar Closing Cost Tools", lifespan=lifespan)


StateCode = Annotated[str, Field(description="2 letter state abbreviation")]
County = Annotated[str, Field(description="County name")]
Purpose = Annotated[
    Literal["00", "04", "11"], Field(description="00=Refinance, 04=Refinance (Reissue), 11=Purchase")
]


async def run_tool(tool_name: str, **arguments) -> dict:
    """Calls a tool with the non-empty arguments. Raises ToolError on failure."""
    args = {key: value for key, value in arguments.items() if value is not None}
    result = await get_runtime().api.call_tool(tool_name, args)
    if not result["success"]:
        raise ToolError(json.dumps(result["error"]))
    return result


# ---------------------------------------------------------------------------
# Tools
# ---------------------------------------------------------------------------

@mcp.tool(description="Log into the LodeStar system and start a fresh session")
async def login() -> dict:
    return await run_tool("login")


@mcp.tool(description="Calculate transfer tax, recording fees, title fees, and title premiums")
async def closing_cost_calculations(
    state: StateCode,
    county: County,
    township: Annotated[str, Field(description="Township or city name")],
    search_type: Annotated[
        Literal["CFPB", "Title"], Field(description="CFPB returns all fees, Title returns only title fees")
    ],
    purpose: Purpose,
    filename: Annotated[Optional[str], Field(description="Unique file/loan name for tracking")] = None,
    loan_amount: Annotated[Optional[float], Field(description="Loan amount")] = None,
    purchase_price: Annotated[Optional[float], Field(description="Purchase price")] = None,
    prior_insurance: Annotated[Optional[float], Field(description="Prior insurance amount (refinance only)")] = None,
    exdebt: Annotated[Optional[float], Field(description="Existing debt (refinance only)")] = None,
    request_endos: Annotated[Optional[List[str]], Field(description="Array of endorsement IDs")] = None,
    close_date: Annotated[Optional[str], Field(description="Closing date (YYYY-MM-DD)")] = None,
    address: Annotated[Optional[str], Field(description="Property address")] = None,
    include_pdf: Annotated[Optional[int], Field(description="1 to include PDF")] = None,
    include_property_tax: Annotated[Optional[int], Field(description="1 to include property tax")] = None,
    include_section: Annotated[Optional[int], Field(description="1 to include LE/CD section info")] = None,
    include_payee_info: Annotated[Optional[int], Field(description="1 to include payee info")] = None,
) -> dict:
    return await run_tool(
        "closing_cost_calculations",
        state=state, county=county, township=township, search_type=search_type, purpose=purpose,
        filename=filename, loan_amount=loan_amount, purchase_price=purchase_price,
        prior_insurance=prior_insurance, exdebt=exdebt, request_endos=request_endos,
        close_date=close_date, address=address, include_pdf=include_pdf,
        include_property_tax=include_property_tax, include_section=include_section,
        include_payee_info=include_payee_info,
    )


@mcp.tool(description="Get property tax information for a specific property")
async def property_tax(
    state: StateCode,
    county: County,
    city: Annotated[str, Field(description="City name")],
    address: Annotated[str, Field(description="Property address")],
    close_date: Annotated[str, Field(description="Closing date (YYYY-MM-DD)")],
    file_name: Annotated[str, Field(description="File name for tracking")],
    purchase_price: Annotated[float, Field(description="Purchase price or market value")],
) -> dict:
    return await run_tool(
        "property_tax",
        state=state, county=county, city=city, address=address,
        close_date=close_date, file_name=file_name, purchase_price=purchase_price,
    )


@mcp.tool(description="Get available endorsements for a location and transaction type")
async def get_endorsements(
    state: StateCode,
    county: County,
    purpose: Purpose,
    sub_agent_id: Annotated[Optional[int], Field(description="Sub agent ID (lenders only)")] = None,
    sub_agent_office_id: Annotated[Optional[int], Field(description="Sub agent office ID (defaults to 1)")] = None,
) -> dict:
    return await run_tool(
        "get_endorsements",
        state=state, county=county, purpose=purpose,
        sub_agent_id=sub_agent_id, sub_agent_office_id=sub_agent_office_id,
    )


@mcp.tool(description="Get available sub agents for a specific transaction")
async def get_sub_agents(
    state: StateCode,
    county: County,
    purpose: Purpose,
    township: Annotated[Optional[str], Field(description="Township name")] = None,
    address: Annotated[Optional[str], Field(description="Property address")] = None,
    get_contact_info: Annotated[Optional[int], Field(description="1 to include contact info")] = None,
) -> dict:
    return await run_tool(
        "get_sub_agents",
        state=state, county=county, purpose=purpose,
        township=township, address=address, get_contact_info=get_contact_info,
    )


@mcp.tool(description="Get available counties for a state")
async def get_counties(state: StateCode) -> dict:
    return await run_tool("get_counties", state=state)


@mcp.tool(description="Get available townships in a county")
async def get_townships(state: StateCode, county: County) -> dict:
    return await run_tool("get_townships", state=state, county=county)


@mcp.tool(description="Get questions for accurate calculation results")
async def get_questions(state: StateCode, purpose: Purpose) -> dict:
    return await run_tool("get_questions", state=state, purpose=purpose)


@mcp.tool(description="Check if an address is in a township with additional taxes/fees")
async def geocode_check(
    state: StateCode,
    county: County,
    township: Annotated[str, Field(description="Township or city name")],
    address: Annotated[str, Field(description="Property address")],
) -> dict:
    return await run_tool("geocode_check", state=state, county=county, township=township, address=address)


@mcp.tool(description="Get available appraisal modifiers")
async def get_appraisal_modifiers(
    state: StateCode,
    county: County,
    purpose: Purpose,
    prop_type: Annotated[
        Optional[int],
        Field(description="1=Single Family, 2=Multi Family, 3=Condo, 4=Coop, 5=PUD, 6=Manufactured, 7=Land"),
    ] = None,
    amort_type: Annotated[Optional[int], Field(description="1=Fixed Rate, 2=Adjustable Rate")] = None,
    loan_type: Annotated[Optional[int], Field(description="1=Conventional, 2=FHA, 3=VA, 4=USDA")] = None,
) -> dict:
    return await run_tool(
        "get_appraisal_modifiers",
        state=state, county=county, purpose=purpose,
        prop_type=prop_type, amort_type=amort_type, loan_type=loan_type,
    )


# ---------------------------------------------------------------------------
# Resources
# ---------------------------------------------------------------------------

@mcp.resource("lodestar://api-info", name="LodeStar API Information", mime_type="text/markdown")
def api_info() -> str:
    return api_info_markdown(get_runtime())


@mcp.resource("lodestar://fee-names", name="Standard Title Fee Names Reference", mime_type="text/markdown")
def fee_names() -> str:
    return FEE_NAMES_MARKDOWN


# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------

@mcp.prompt(description="Calculate closing costs for a home purchase")
def purchase_calculation(
    state: str = "[Required]",
    county: str = "[Required]",
    township: str = "[Required]",
    purchase_price: str = "[Required]",
    loan_amount: str = "[Required]",
) -> str:
    return (
        "Calculate closing costs for a home purchase with these details:\n"
        f"State: {state}\n"
        f"County: {county}\n"
        f"Township: {township}\n"
        f"Purchase Price: {purchase_price}\n"
        f"Loan Amount: {loan_amount}\n\n"
        "Please use the closing_cost_calculations tool with purpose '11' (Purchase) "
        "and search_type 'CFPB' to get complete fee breakdown."
    )


@mcp.prompt(description="Calculate closing costs for a refinance")
def refinance_calculation(
    state: str = "[Required]",
    county: str = "[Required]",
    township: str = "[Required]",
    loan_amount: str = "[Required]",
    with_reissue: bool = False,
) -> str:
    reissue = "Yes (use purpose 04)" if with_reissue else "No (use purpose 00)"
    return (
        "Calculate closing costs for a refinance with these details:\n"
        f"State: {state}\n"
        f"County: {county}\n"
        f"Township: {township}\n"
        f"Loan Amount: {loan_amount}\n"
        f"Reissue Credit: {reissue}\n\n"
        "Please use the closing_cost_calculations tool with the appropriate refinance purpose "
        "and search_type 'CFPB'."
    )


@mcp.prompt(description="Complete workflow for getting a quote")
def full_workflow(workflow_type: str = "Mortgage Originator Simplified") -> str:
    return (
        f"Guide me through the {workflow_type} workflow:\n\n"
        "Available workflows:\n"
        "1. Mortgage Originator Simplified: closing_cost_calculations → property_tax\n"
        "2. Mortgage Originator Full: get_sub_agents → get_endorsements → get_questions → "
        "closing_cost_calculations → property_tax\n"
        "3. Title Agent Simplified: closing_cost_calculations → property_tax\n"
        "4. Title Agent Full: get_endorsements → get_questions → closing_cost_calculations → property_tax\n\n"
        "Please help me gather the required information and execute each step."
    )


def main() -> None:
    mcp.run()


if __name__ == "__main__":
    main()
