"""Argument models for every closing cost tool. Validation happens before any network call."""

from typing import Annotated, List, Literal, Optional, Type, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from tools.errors import ValidationFailure

StateCode = Annotated[
    str, Field(pattern=r"^[A-Z]{2}$", description="2 letter uppercase state abbreviation (e.g. CA, NY)")
]
Purpose = Annotated[
    Literal["00", "04", "11"], Field(description="00=Refinance, 04=Refinance (Reissue), 11=Purchase")
]
SearchType = Annotated[
    Literal["CFPB", "Title"], Field(description="CFPB returns all fees, Title returns only title fees")
]
IsoDate = Annotated[str, Field(pattern=r"^\d{4}-\d{2}-\d{2}$", description="Date (YYYY-MM-DD)")]
Amount = Annotated[Union[int, float], Field(gt=0)]
Flag = Annotated[int, Field(ge=0, le=1, description="1 to include")]
NonEmpty = Annotated[str, Field(min_length=1)]


class ToolArgs(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)


class LoginArgs(ToolArgs):
    pass


class ClosingCostArgs(ToolArgs):
    state: StateCode
    county: NonEmpty = Field(description="County name")
    township: NonEmpty = Field(description="Township or city name")
    search_type: SearchType
    purpose: Purpose
    filename: Optional[str] = Field(None, description="Unique file/loan name for tracking")
    loan_amount: Optional[Amount] = Field(None, description="Loan amount")
    purchase_price: Optional[Amount] = Field(None, description="Purchase price")
    prior_insurance: Optional[Amount] = Field(None, description="Prior insurance amount (refinance only)")
    exdebt: Optional[Amount] = Field(None, description="Existing debt (refinance only)")
    request_endos: Optional[List[str]] = Field(None, description="Endorsement IDs")
    close_date: Optional[IsoDate] = None
    address: Optional[str] = Field(None, description="Property address")
    include_pdf: Optional[Flag] = None
    include_property_tax: Optional[Flag] = None
    include_section: Optional[Flag] = None
    include_payee_info: Optional[Flag] = None


class PropertyTaxArgs(ToolArgs):
    state: StateCode
    county: NonEmpty = Field(description="County name")
    city: NonEmpty = Field(description="City name")
    address: NonEmpty = Field(description="Property address")
    close_date: IsoDate
    file_name: NonEmpty = Field(description="File name for tracking")
    purchase_price: Amount = Field(description="Purchase price or market value")


class EndorsementsArgs(ToolArgs):
    state: StateCode
    county: NonEmpty = Field(description="County name")
    purpose: Purpose
    sub_agent_id: Optional[int] = Field(None, description="Sub agent ID (lenders only)")
    sub_agent_office_id: Optional[int] = Field(None, description="Sub agent office ID (defaults to 1)")


class SubAgentsArgs(ToolArgs):
    state: StateCode
    county: NonEmpty = Field(description="County name")
    purpose: Purpose
    township: Optional[str] = Field(None, description="Township name")
    address: Optional[str] = Field(None, description="Property address")
    get_contact_info: Optional[Flag] = None


class CountiesArgs(ToolArgs):
    state: StateCode


class TownshipsArgs(ToolArgs):
    state: StateCode
    county: NonEmpty = Field(description="County name")


class QuestionsArgs(ToolArgs):
    state: StateCode
    purpose: Purpose


class GeocodeCheckArgs(ToolArgs):
    state: StateCode
    county: NonEmpty = Field(description="County name")
    township: NonEmpty = Field(description="Township or city name")
    address: NonEmpty = Field(description="Property address")


class AppraisalModifiersArgs(ToolArgs):
    state: StateCode
    county: NonEmpty = Field(description="County name")
    purpose: Purpose
    prop_type: Optional[int] = Field(
        None, ge=1, le=7,
        description="1=Single Family, 2=Multi Family, 3=Condo, 4=Coop, 5=PUD, 6=Manufactured, 7=Land",
    )
    amort_type: Optional[int] = Field(None, ge=1, le=2, description="1=Fixed Rate, 2=Adjustable Rate")
    loan_type: Optional[int] = Field(None, ge=1, le=4, description="1=Conventional, 2=FHA, 3=VA, 4=USDA")


TOOL_ARGS: dict[str, Type[ToolArgs]] = {
    "login": LoginArgs,
    "closing_cost_calculations": ClosingCostArgs,
    "property_tax": PropertyTaxArgs,
    "get_endorsements": EndorsementsArgs,
    "get_sub_agents": SubAgentsArgs,
    "get_counties": CountiesArgs,
    "get_townships": TownshipsArgs,
    "get_questions": QuestionsArgs,
    "geocode_check": GeocodeCheckArgs,
    "get_appraisal_modifiers": AppraisalModifiersArgs,
}


def input_schema(tool_name: str) -> dict:
    return TOOL_ARGS[tool_name].model_json_schema()


def validate_args(tool_name: str, args: Optional[dict]) -> dict:
    """
    Parses raw tool arguments against the tool's model.
    Returns the cleaned arguments with unset optionals dropped, or raises
    ValidationFailure listing every offending field.
    """
    model = TOOL_ARGS[tool_name]
    try:
        parsed = model.model_validate(args or {})
    except ValidationError as exc:
        details = [
            {"field": ".".join(str(part) for part in err["loc"]) or "arguments", "message": err["msg"]}
            for err in exc.errors()
        ]
        summary = "; ".join(f"{d['field']}: {d['message']}" for d in details)
        raise ValidationFailure(f"Invalid arguments for {tool_name}: {summary}", details) from exc
    return parsed.model_dump(exclude_none=True)
