from tools.schemas import input_schema

TOOL_REGISTRY = {
    "login": {
        "name": "login",
        "description": (
            "Authenticates with LodeStar and starts a fresh session. "
            "Sessions are also created automatically by every other tool, so this is optional."
        ),
        "method": "POST",
        "endpoint": "/Login/login.php",
        "returns": "success flag, message, session_id (demo-session-* in demo mode)",
    },
    "closing_cost_calculations": {
        "name": "closing_cost_calculations",
        "description": "Calculates transfer tax, recording fees, title fees and title premiums for a transaction.",
        "method": "POST",
        "endpoint": "/closing_cost_calculations.php",
        "returns": "title_fees, title_insurance, recording_fees, total_closing_costs",
    },
    "property_tax": {
        "name": "property_tax",
        "description": "Returns property tax information and proration for a specific property.",
        "method": "GET",
        "endpoint": "/property_tax.php",
        "returns": "assessment, annual_taxes (county/city/school), monthly_escrow, proration",
    },
    "get_endorsements": {
        "name": "get_endorsements",
        "description": "Lists title insurance endorsements available for a location and transaction type.",
        "method": "GET",
        "endpoint": "/endorsements.php",
        "returns": "available_endorsements with premiums, total_if_all_selected",
    },
    "get_sub_agents": {
        "name": "get_sub_agents",
        "description": "Finds title agents/companies that can handle a transaction.",
        "method": "GET",
        "endpoint": "/sub_agents.php",
        "returns": "sub_agents list with office and contact details",
    },
    "get_counties": {
        "name": "get_counties",
        "description": "Lists all counties available for a state.",
        "method": "GET",
        "endpoint": "/counties.php",
        "returns": "counties list (name, code, active)",
    },
    "get_townships": {
        "name": "get_townships",
        "description": "Lists all townships/cities in a county.",
        "method": "GET",
        "endpoint": "/townships.php",
        "returns": "townships list with additional-tax and geocoding flags",
    },
    "get_questions": {
        "name": "get_questions",
        "description": "Returns state-specific questions that refine a calculation.",
        "method": "POST",
        "endpoint": "/questions.php",
        "returns": "questions list, total_questions, required_questions",
    },
    "geocode_check": {
        "name": "geocode_check",
        "description": "Checks whether an address lies inside a township with additional taxes or fees.",
        "method": "GET",
        "endpoint": "/geocode_check.php",
        "returns": "geocoding_result: in_township_limits, additional_tax_applies, tax_rate, coordinates",
    },
    "get_appraisal_modifiers": {
        "name": "get_appraisal_modifiers",
        "description": "Returns appraisal fee modifiers for a property type and loan type.",
        "method": "GET",
        "endpoint": "/appraisal_modifiers.php",
        "returns": "base_appraisal_fee, modifiers, total_adjustment, final_appraisal_fee",
    },
}

for _name, _entry in TOOL_REGISTRY.items():
    _entry["input_schema"] = input_schema(_name)


def list_tools() -> list[dict]:
    return [dict(entry) for entry in TOOL_REGISTRY.values()]
