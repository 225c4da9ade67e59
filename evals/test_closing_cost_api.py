"""
ClosingCostAPI tests: argument validation, demo/live dispatch, request shape
and the tool result envelope.
"""

import asyncio
import json

import httpx
import pytest

from tools import TOOL_REGISTRY, list_tools
from tools.closing_cost_api import ENDPOINTS, ClosingCostAPI, build_query_params
from tools.config import Credentials, Mode
from tools.errors import UpstreamFailure, ValidationFailure
from tools.schemas import TOOL_ARGS, validate_args
from tools.session_manager import SessionManager

PURCHASE_ARGS = {
    "state": "CA",
    "county": "Los Angeles",
    "township": "Los Angeles",
    "search_type": "CFPB",
    "purpose": "11",
    "loan_amount": 300000,
    "purchase_price": 400000,
}


@pytest.fixture
def demo_api(demo_manager):
    return ClosingCostAPI(demo_manager)


@pytest.fixture
def live_api(live_manager, live_http):
    return ClosingCostAPI(live_manager, live_http)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def test_validate_args_drops_unset_optionals():
    cleaned = validate_args("closing_cost_calculations", dict(PURCHASE_ARGS, filename=None))
    assert "filename" not in cleaned
    assert cleaned["loan_amount"] == 300000


@pytest.mark.parametrize(
    "overrides, field",
    [
        ({"state": "California"}, "state"),
        ({"state": "ca"}, "state"),
        ({"purpose": "12"}, "purpose"),
        ({"search_type": "Full"}, "search_type"),
        ({"loan_amount": 0}, "loan_amount"),
        ({"loan_amount": -5}, "loan_amount"),
        ({"close_date": "06/01/2026"}, "close_date"),
        ({"surprise": 1}, "surprise"),
    ],
)
def test_invalid_closing_cost_args(overrides, field):
    with pytest.raises(ValidationFailure) as exc_info:
        validate_args("closing_cost_calculations", dict(PURCHASE_ARGS, **overrides))
    assert field in [d["field"].split(".")[0] for d in exc_info.value.details]


def test_missing_required_fields_are_all_reported():
    with pytest.raises(ValidationFailure) as exc_info:
        validate_args("property_tax", {"state": "CA"})
    fields = {d["field"].split(".")[0] for d in exc_info.value.details}
    assert {"county", "city", "address", "close_date", "file_name", "purchase_price"} <= fields


@pytest.mark.asyncio
async def test_validation_failure_makes_no_network_call(live_api, fake_lodestar):
    result = await live_api.call_tool("get_counties", {"state": "Texas"})

    assert result["success"] is False
    assert result["error"]["code"] == "VALIDATION_ERROR"
    assert result["error"]["details"][0]["field"] == "state"
    assert fake_lodestar.requests == []


@pytest.mark.asyncio
async def test_unknown_tool(demo_api):
    result = await demo_api.call_tool("delete_everything", {})
    assert result["success"] is False
    assert result["error"]["code"] == "UNKNOWN_TOOL"


# ---------------------------------------------------------------------------
# Demo dispatch
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_demo_call_returns_envelope(demo_api):
    result = await demo_api.call_tool("closing_cost_calculations", PURCHASE_ARGS)

    assert result["success"] is True
    assert result["tool_name"] == "closing_cost_calculations"
    assert result["tool_result_id"].startswith("closing_cost_calculations_")
    assert result["mode"] == "demo"
    assert result["endpoint"] == "/closing_cost_calculations.php"
    assert result["result"]["total_closing_costs"] == 8640


@pytest.mark.asyncio
async def test_demo_login_returns_stable_session(demo_api):
    first = await demo_api.call_tool("login")
    second = await demo_api.call_tool("login")

    assert first["endpoint"] == "/Login/login.php"
    assert first["result"]["session_id"].startswith("demo-session-")
    assert first["result"]["session_id"] == second["result"]["session_id"]


# ---------------------------------------------------------------------------
# Live dispatch
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_live_post_sends_json_body_with_session(live_api, fake_lodestar):
    upstream = {"fees": {"Settlement Fee": 995}, "total": 4321}
    fake_lodestar.responses["/closing_cost_calculations.php"] = httpx.Response(200, json=upstream)

    result = await live_api.call_tool("closing_cost_calculations", PURCHASE_ARGS)

    assert result["success"] is True
    assert result["mode"] == "live"
    assert result["result"] == upstream
    request = fake_lodestar.business_requests[0]
    assert request.method == "POST"
    assert request.url.path == "/Live/Acme/closing_cost_calculations.php"
    body = json.loads(request.content)
    assert body == dict(PURCHASE_ARGS, session_id="sess-1")


@pytest.mark.asyncio
async def test_live_get_sends_query_params(live_api, fake_lodestar):
    await live_api.call_tool("get_townships", {"state": "NJ", "county": "Bergen"})

    request = fake_lodestar.business_requests[0]
    assert request.method == "GET"
    assert request.url.path == "/Live/Acme/townships.php"
    assert dict(request.url.params) == {"session_id": "sess-1", "state": "NJ", "county": "Bergen"}


@pytest.mark.asyncio
async def test_questions_is_a_post(live_api, fake_lodestar):
    await live_api.call_tool("get_questions", {"state": "NY", "purpose": "04"})
    request = fake_lodestar.business_requests[0]
    assert request.method == "POST"
    assert json.loads(request.content) == {"session_id": "sess-1", "state": "NY", "purpose": "04"}


@pytest.mark.asyncio
async def test_appraisal_loan_fields_are_nested(live_api, fake_lodestar):
    await live_api.call_tool(
        "get_appraisal_modifiers",
        {"state": "TX", "county": "Harris", "purpose": "11", "prop_type": 3, "loan_type": 2},
    )
    params = dict(fake_lodestar.business_requests[0].url.params)
    assert params["loan_info[prop_type]"] == "3"
    assert params["loan_info[loan_type]"] == "2"
    assert "prop_type" not in params


def test_build_query_params_leaves_other_tools_flat():
    params = build_query_params("get_sub_agents", "s", {"state": "CA", "get_contact_info": 1})
    assert params == {"session_id": "s", "state": "CA", "get_contact_info": 1}


@pytest.mark.asyncio
async def test_session_reused_across_calls(live_api, fake_lodestar):
    for state in ("CA", "TX", "FL"):
        await live_api.call_tool("get_counties", {"state": state})

    assert fake_lodestar.login_calls == 1
    assert len(fake_lodestar.business_requests) == 3


@pytest.mark.asyncio
async def test_login_tool_forces_new_session(live_api, fake_lodestar):
    await live_api.call_tool("get_counties", {"state": "CA"})
    result = await live_api.call_tool("login")

    assert result["result"] == {"success": True, "message": "Login successful", "session_id": "sess-2"}
    await live_api.call_tool("get_counties", {"state": "CA"})
    assert dict(fake_lodestar.business_requests[-1].url.params)["session_id"] == "sess-2"


@pytest.mark.asyncio
async def test_login_tool_during_inflight_login_returns_the_cached_session(live_api, fake_lodestar):
    fake_lodestar.delay = 0.05
    pending = asyncio.ensure_future(live_api.call_tool("get_counties", {"state": "CA"}))
    await asyncio.sleep(0.01)

    login = await live_api.call_tool("login")
    await live_api.call_tool("get_counties", {"state": "TX"})
    await pending

    session_id = login["result"]["session_id"]
    assert session_id == "sess-2"
    last = [r for r in fake_lodestar.business_requests if r.url.params.get("state") == "TX"][0]
    assert last.url.params["session_id"] == session_id
    assert fake_lodestar.login_calls == 2


# ---------------------------------------------------------------------------
# Live failures
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_upstream_error_keeps_status_and_body(live_api, fake_lodestar):
    fake_lodestar.responses["/property_tax.php"] = httpx.Response(500, json={"error": "Database unavailable"})

    result = await live_api.call_tool("property_tax", {
        "state": "CA", "county": "Orange", "city": "Irvine", "address": "1 Main St",
        "close_date": "2026-06-01", "file_name": "F-1", "purchase_price": 750000,
    })

    error = result["error"]
    assert error["code"] == "UPSTREAM_ERROR"
    assert error["message"] == "Database unavailable"
    assert error["status"] == 500
    assert error["body"] == {"error": "Database unavailable"}


@pytest.mark.asyncio
async def test_timeout_is_an_upstream_failure(live_api, fake_lodestar):
    fake_lodestar.responses["/counties.php"] = httpx.ReadTimeout("too slow")

    with pytest.raises(UpstreamFailure, match="timed out"):
        await live_api.execute("get_counties", {"state": "CA"})


@pytest.mark.asyncio
async def test_non_json_business_body(live_api, fake_lodestar):
    fake_lodestar.responses["/counties.php"] = httpx.Response(200, text="<html/>")

    result = await live_api.call_tool("get_counties", {"state": "CA"})

    assert result["error"]["code"] == "UPSTREAM_ERROR"
    assert result["error"]["status"] == 200


@pytest.mark.asyncio
async def test_authentication_failure_skips_business_call(live_api, fake_lodestar):
    fake_lodestar.login_outcomes.append(httpx.Response(401, json={"error": "Invalid credentials"}))

    result = await live_api.call_tool("get_counties", {"state": "CA"})

    assert result["error"] == {"code": "AUTHENTICATION_ERROR", "message": "Login failed: Invalid credentials"}
    assert fake_lodestar.business_requests == []


# ---------------------------------------------------------------------------
# Invocation log and registry
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_invocation_log_records_outcomes_without_arguments(demo_api):
    await demo_api.call_tool("get_counties", {"state": "CA"})
    await demo_api.call_tool("get_counties", {"state": "nope"})

    log = demo_api.get_invocation_log()
    assert [entry["success"] for entry in log] == [True, False]
    assert all(entry["mode"] == "demo" for entry in log)
    assert all("state" not in entry for entry in log)


def test_registry_covers_every_tool():
    assert set(TOOL_REGISTRY) == set(TOOL_ARGS)
    for name, (method, path) in ENDPOINTS.items():
        assert TOOL_REGISTRY[name]["method"] == method
        assert TOOL_REGISTRY[name]["endpoint"] == path


def test_list_tools_carries_input_schemas():
    tools = {tool["name"]: tool for tool in list_tools()}
    schema = tools["property_tax"]["input_schema"]
    assert set(schema["required"]) == {
        "state", "county", "city", "address", "close_date", "file_name", "purchase_price",
    }
    assert tools["login"]["input_schema"].get("properties", {}) == {}


def test_api_without_http_client_in_demo_mode():
    manager = SessionManager(None, Credentials(), Mode.DEMO)
    assert ClosingCostAPI(manager).mode is Mode.DEMO
