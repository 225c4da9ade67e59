"""
smoke_tools.py — Run one call of every closing cost tool and print the outcome.

Usage:
    python scripts/smoke_tools.py

Uses the same environment as the servers:
    LODESTAR_USERNAME / LODESTAR_PASSWORD  (unset -> demo mode)
    LODESTAR_CLIENT_NAME, LODESTAR_BASE_URL, DEMO_MODE
"""

import asyncio
import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from dotenv import load_dotenv

load_dotenv()

from server.runtime import build_runtime

CALLS = [
    ("login", {}),
    ("get_counties", {"state": "CA"}),
    ("get_townships", {"state": "CA", "county": "Los Angeles"}),
    ("get_sub_agents", {"state": "CA", "county": "Los Angeles", "purpose": "11"}),
    ("get_endorsements", {"state": "CA", "county": "Los Angeles", "purpose": "11"}),
    ("get_questions", {"state": "CA", "purpose": "11"}),
    ("geocode_check", {"state": "CA", "county": "Los Angeles", "township": "Pasadena", "address": "100 Main St"}),
    ("get_appraisal_modifiers", {"state": "CA", "county": "Los Angeles", "purpose": "11", "prop_type": 3}),
    ("closing_cost_calculations", {
        "state": "CA", "county": "Los Angeles", "township": "Pasadena", "search_type": "CFPB",
        "purpose": "11", "loan_amount": 300000, "purchase_price": 400000,
    }),
    ("property_tax", {
        "state": "CA", "county": "Los Angeles", "city": "Pasadena", "address": "100 Main St",
        "close_date": "2026-06-01", "file_name": "SMOKE-1", "purchase_price": 400000,
    }),
]


async def smoke() -> None:
    runtime = build_runtime()
    print(f"Mode: {runtime.mode.value}")
    failures = 0
    try:
        for tool_name, args in CALLS:
            result = await runtime.api.call_tool(tool_name, args)
            if result["success"]:
                print(f"  ✓ {tool_name}")
            else:
                failures += 1
                print(f"  ✗ {tool_name}: {result['error']['code']} {result['error']['message']}")
        print(f"Session: {runtime.session_manager.get_session_info()}")
    finally:
        await runtime.aclose()

    if failures:
        print(f"FAILED — {failures} of {len(CALLS)} tools returned an error.")
        sys.exit(1)
    print(f"SUCCESS — {len(CALLS)} tools answered.")


if __name__ == "__main__":
    asyncio.run(smoke())
