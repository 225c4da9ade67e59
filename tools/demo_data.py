"""
Demo synthesis rules
====================
When no LodeStar credentials are configured every tool answers from this
table instead of the network. Each entry is a pure function of the tool
arguments and returns the same field shape as the live endpoint, plus:

  demo_mode: True
  disclaimer: "DEMO MODE - ..."

so callers can tell sample figures from real ones.

Closing costs (purpose 11 = purchase):
  lender premium   max(175, round(loan_amount * 0.0035))
  owner premium    max(200, round(purchase_price * 0.004))   purchase only
  flat title fees  1990
  transfer tax     purchase_price * 0.01                      purchase only
  total            round(sum of the above)

Property tax:
  annual = purchase_price * 0.012, split 60% county / 25% city / 15% school,
  monthly escrow = annual / 12, proration = annual / 365 * 180

geocode_check and the township flags are random on purpose; they are the
only non-deterministic rules here.

Figures are relied on by downstream tools: change them only together with
evals/test_demo_data.py.
"""

import math
import random
from datetime import datetime, timezone
from typing import Callable

from tools.config import PURPOSE_PURCHASE, PURPOSE_REFINANCE, PURPOSE_REFINANCE_REISSUE

DEFAULT_LOAN_AMOUNT = 300000
DEFAULT_PURCHASE_PRICE = 400000


def _round(value: float) -> int:
    """Half-up rounding; round() would send 0.5 to the even neighbour."""
    return int(math.floor(value + 0.5))


def _is_purchase(args: dict) -> bool:
    return args.get("purpose") == PURPOSE_PURCHASE


# ---------------------------------------------------------------------------
# Closing costs
# ---------------------------------------------------------------------------

TITLE_FEES = {
    "Title Search": 450,
    "Title Examination": 225,
    "Title Insurance Binder": 75,
    "Document Preparation": 150,
    "Settlement Fee": 995,
    "Notary Fees": 50,
    "Courier Services": 45,
}
FLAT_TITLE_FEES_TOTAL = sum(TITLE_FEES.values())  # 1990

LENDER_RATE, LENDER_MIN_PREMIUM = 0.0035, 175
OWNER_RATE, OWNER_MIN_PREMIUM = 0.004, 200
TRANSFER_TAX_RATE = 0.01


def lender_premium(loan_amount: float) -> int:
    return max(LENDER_MIN_PREMIUM, _round(loan_amount * LENDER_RATE))


def owner_premium(purchase_price: float) -> int:
    return max(OWNER_MIN_PREMIUM, _round(purchase_price * OWNER_RATE))


def closing_cost_calculations(args: dict) -> dict:
    purchase = _is_purchase(args)
    loan_amount = args.get("loan_amount") or DEFAULT_LOAN_AMOUNT
    purchase_price = args.get("purchase_price") or DEFAULT_PURCHASE_PRICE

    lender = lender_premium(loan_amount)
    owner = owner_premium(purchase_price) if purchase else 0
    transfer_tax = purchase_price * TRANSFER_TAX_RATE if purchase else 0
    total = _round(FLAT_TITLE_FEES_TOTAL + lender + owner + transfer_tax)

    return {
        "success": True,
        "demo_mode": True,
        "transaction_type": "Purchase" if purchase else "Refinance",
        "search_type": args.get("search_type"),
        "location": {
            "state": args.get("state"),
            "county": args.get("county"),
            "township": args.get("township"),
        },
        "loan_details": {
            "loan_amount": loan_amount,
            "purchase_price": purchase_price if purchase else None,
            "purpose": args.get("purpose"),
        },
        "title_fees": dict(TITLE_FEES),
        "title_insurance": {
            "Lender's Title Policy": lender,
            "Owner's Title Policy": owner,
        },
        "recording_fees": {
            "Transfer Tax": transfer_tax,
        },
        "total_closing_costs": total,
        "pdf_available": args.get("include_pdf") == 1,
        "calculation_date": datetime.now(timezone.utc).isoformat(),
        "disclaimer": "DEMO MODE - These are sample calculations for testing purposes only",
    }


# ---------------------------------------------------------------------------
# Property tax
# ---------------------------------------------------------------------------

PROPERTY_TAX_RATE = 0.012
TAX_SPLIT = {"county_tax": 0.6, "city_tax": 0.25, "school_tax": 0.15}
PRORATION_DAYS = 180


def property_tax(args: dict) -> dict:
    purchase_price = args.get("purchase_price") or DEFAULT_PURCHASE_PRICE
    annual = purchase_price * PROPERTY_TAX_RATE
    annual_taxes = {name: annual * share for name, share in TAX_SPLIT.items()}
    annual_taxes["total_annual"] = annual

    return {
        "success": True,
        "demo_mode": True,
        "property_address": args.get("address"),
        "location": {
            "state": args.get("state"),
            "county": args.get("county"),
            "city": args.get("city"),
        },
        "assessment": {
            "market_value": purchase_price,
            "assessed_value": purchase_price * 0.8,
            "tax_rate": "1.2%",
            "exemptions": ["Homestead Exemption"],
        },
        "annual_taxes": annual_taxes,
        "monthly_escrow": annual / 12,
        "proration": {
            "close_date": args.get("close_date"),
            "days_seller_owes": PRORATION_DAYS,
            "proration_amount": (annual / 365) * PRORATION_DAYS,
        },
        "disclaimer": "DEMO MODE - Sample property tax calculation",
    }


# ---------------------------------------------------------------------------
# Endorsements
# ---------------------------------------------------------------------------

ENDORSEMENTS = (
    {"id": "ALTA-4", "name": "ALTA 4 - Condominium", "premium": 50, "required": False},
    {"id": "ALTA-5", "name": "ALTA 5 - Planned Unit Development", "premium": 50, "required": False},
    {"id": "ALTA-6", "name": "ALTA 6 - Variable Rate Mortgage", "premium": 75, "required": False},
    {"id": "ALTA-8.1", "name": "ALTA 8.1 - Environmental Protection", "premium": 100, "required": False},
    {"id": "ALTA-9", "name": "ALTA 9 - Restrictions, Encroachments", "premium": 150, "required": True},
)
PURCHASE_ENDORSEMENT = {"id": "OWNER-1", "name": "Owner's Enhanced Coverage", "premium": 200, "required": False}


def get_endorsements(args: dict) -> dict:
    endorsements = [dict(e) for e in ENDORSEMENTS]
    if _is_purchase(args):
        endorsements.append(dict(PURCHASE_ENDORSEMENT))

    return {
        "success": True,
        "demo_mode": True,
        "location": {"state": args.get("state"), "county": args.get("county")},
        "transaction_type": args.get("purpose"),
        "available_endorsements": endorsements,
        "total_if_all_selected": sum(e["premium"] for e in endorsements),
        "disclaimer": "DEMO MODE - Sample endorsements list",
    }


# ---------------------------------------------------------------------------
# Sub agents, counties, townships, questions
# ---------------------------------------------------------------------------

def get_sub_agents(args: dict) -> dict:
    state = args.get("state") or ""
    agents = [
        {
            "id": 1, "name": "Demo Title Company", "office_id": 1, "office_name": "Main Office",
            "address": f"123 Demo Street, Demo City, {state}", "phone": "555-0100",
            "email": "demo@titlecompany.com", "rating": 4.5, "reviews": 127,
        },
        {
            "id": 2, "name": "Sample Title Services", "office_id": 1, "office_name": "Downtown Branch",
            "address": f"456 Sample Ave, Demo City, {state}", "phone": "555-0200",
            "email": "info@sampletitle.com", "rating": 4.8, "reviews": 89,
        },
        {
            "id": 3, "name": "Test Title Agency", "office_id": 2, "office_name": "Regional Office",
            "address": f"789 Test Blvd, Demo City, {state}", "phone": "555-0300",
            "email": "contact@testtitle.com", "rating": 4.3, "reviews": 56,
        },
    ]
    return {
        "success": True,
        "demo_mode": True,
        "location": {
            "state": args.get("state"),
            "county": args.get("county"),
            "township": args.get("township"),
        },
        "sub_agents": agents,
        "total_agents": len(agents),
        "disclaimer": "DEMO MODE - Sample sub-agents list",
    }


STATE_COUNTIES = {
    "CA": ["Los Angeles", "San Francisco", "San Diego", "Orange", "Alameda", "Santa Clara"],
    "TX": ["Harris", "Dallas", "Travis", "Bexar", "Tarrant", "Fort Bend"],
    "FL": ["Miami-Dade", "Broward", "Palm Beach", "Orange", "Hillsborough", "Duval"],
    "NY": ["New York", "Kings", "Queens", "Bronx", "Nassau", "Suffolk"],
    "IL": ["Cook", "DuPage", "Lake", "Will", "Kane", "McHenry"],
}
FALLBACK_COUNTIES = ["Demo County", "Sample County", "Test County", "Example County"]


def get_counties(args: dict) -> dict:
    names = STATE_COUNTIES.get(args.get("state"), FALLBACK_COUNTIES)
    return {
        "success": True,
        "demo_mode": True,
        "state": args.get("state"),
        "counties": [
            {"name": name, "code": "_".join(name.upper().split()), "active": True}
            for name in names
        ],
        "total_counties": len(names),
        "disclaimer": "DEMO MODE - Sample counties list",
    }


TOWNSHIP_NAMES = (
    "Downtown", "Northside", "Southside", "Eastside", "Westside",
    "Midtown", "Uptown", "Old Town", "New Town", "Riverside",
)


def get_townships(args: dict) -> dict:
    county = args.get("county") or ""
    return {
        "success": True,
        "demo_mode": True,
        "state": args.get("state"),
        "county": args.get("county"),
        "townships": [
            {
                "name": f"{name} {county}",
                "code": name.upper(),
                "has_additional_tax": random.random() > 0.7,
                "geocoding_required": random.random() > 0.5,
            }
            for name in TOWNSHIP_NAMES
        ],
        "total_townships": len(TOWNSHIP_NAMES),
        "disclaimer": "DEMO MODE - Sample townships list",
    }


BASE_QUESTIONS = (
    {"id": "q1", "question": "Is this a first-time home buyer?", "type": "boolean",
     "required": True, "affects_calculation": True},
    {"id": "q2", "question": "Will this be your primary residence?", "type": "boolean",
     "required": True, "affects_calculation": True},
    {"id": "q3", "question": "Are you a veteran?", "type": "boolean",
     "required": False, "affects_calculation": True},
    {"id": "q4", "question": "Property type", "type": "select",
     "options": ["Single Family", "Condo", "Townhouse", "Multi-Family"],
     "required": True, "affects_calculation": True},
)


def get_questions(args: dict) -> dict:
    purpose = args.get("purpose")
    questions = [dict(q) for q in BASE_QUESTIONS]
    if purpose in (PURPOSE_REFINANCE, PURPOSE_REFINANCE_REISSUE):
        questions.append({
            "id": "q5",
            "question": "Original purchase date",
            "type": "date",
            "required": purpose == PURPOSE_REFINANCE_REISSUE,
            "affects_calculation": True,
        })
    return {
        "success": True,
        "demo_mode": True,
        "state": args.get("state"),
        "purpose": purpose,
        "questions": questions,
        "total_questions": len(questions),
        "required_questions": sum(1 for q in questions if q["required"]),
        "disclaimer": "DEMO MODE - Sample questions",
    }


# ---------------------------------------------------------------------------
# Geocode check (random) and appraisal modifiers
# ---------------------------------------------------------------------------

TOWNSHIP_TAX_RATE = 0.0025


def geocode_check(args: dict) -> dict:
    in_township = random.random() > 0.3
    return {
        "success": True,
        "demo_mode": True,
        "address": args.get("address"),
        "location": {
            "state": args.get("state"),
            "county": args.get("county"),
            "township": args.get("township"),
        },
        "geocoding_result": {
            "in_township_limits": in_township,
            "additional_tax_applies": in_township,
            "tax_rate": TOWNSHIP_TAX_RATE if in_township else 0,
            "coordinates": {
                "latitude": 40.7128 + (random.random() - 0.5),
                "longitude": -74.006 + (random.random() - 0.5),
            },
        },
        "disclaimer": "DEMO MODE - Sample geocoding result",
    }


BASE_APPRAISAL_FEE = 500
PROPERTY_TYPE_MODIFIERS = {3: ("Condominium", -50)}
LOAN_TYPE_MODIFIERS = {2: ("FHA Loan", 75), 3: ("VA Loan", 0)}


def get_appraisal_modifiers(args: dict) -> dict:
    modifiers = []
    if args.get("prop_type") in PROPERTY_TYPE_MODIFIERS:
        description, adjustment = PROPERTY_TYPE_MODIFIERS[args["prop_type"]]
        modifiers.append({"type": "property_type", "description": description, "adjustment": adjustment})
    if args.get("loan_type") in LOAN_TYPE_MODIFIERS:
        description, adjustment = LOAN_TYPE_MODIFIERS[args["loan_type"]]
        modifiers.append({"type": "loan_type", "description": description, "adjustment": adjustment})

    total_adjustment = sum(m["adjustment"] for m in modifiers)
    return {
        "success": True,
        "demo_mode": True,
        "location": {"state": args.get("state"), "county": args.get("county")},
        "base_appraisal_fee": BASE_APPRAISAL_FEE,
        "modifiers": modifiers,
        "total_adjustment": total_adjustment,
        "final_appraisal_fee": BASE_APPRAISAL_FEE + total_adjustment,
        "disclaimer": "DEMO MODE - Sample appraisal modifiers",
    }


# ---------------------------------------------------------------------------
# Dispatch table
# ---------------------------------------------------------------------------

DEMO_RESPONSES: dict[str, Callable[[dict], dict]] = {
    "closing_cost_calculations": closing_cost_calculations,
    "property_tax": property_tax,
    "get_endorsements": get_endorsements,
    "get_sub_agents": get_sub_agents,
    "get_counties": get_counties,
    "get_townships": get_townships,
    "get_questions": get_questions,
    "geocode_check": geocode_check,
    "get_appraisal_modifiers": get_appraisal_modifiers,
}


def synthesize(operation: str, args: dict) -> dict:
    """Returns the demo payload for an operation; unknown operations get a generic mock echo."""
    rule = DEMO_RESPONSES.get(operation)
    if rule is None:
        return {
            "success": True,
            "demo_mode": True,
            "message": "Mock response",
            "data": dict(args),
            "disclaimer": "DEMO MODE - Sample response",
        }
    return rule(args)
