"""
Evaluation context preparation and field name helpers
"""
import logging
import re
from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from ..models.profile import UserProfile

logger = logging.getLogger(__name__)

# Medicaid expansion status by state code (as of 2024)
MEDICAID_EXPANSION_STATE_CODES = frozenset([
    "AL", "AK", "AZ", "AR", "CA", "CO", "CT", "DE", "DC", "HI", "ID", "IL", "IN", "IA",
    "KY", "LA", "ME", "MD", "MA", "MI", "MN", "MO", "MT", "NV", "NH", "NJ", "NM", "NY",
    "NC", "ND", "OH", "OK", "OR", "PA", "RI", "SD", "UT", "VT", "VA", "WA", "WV",
])

STATE_NAME_TO_CODE = {
    "Alabama": "AL", "Alaska": "AK", "Arizona": "AZ", "Arkansas": "AR",
    "California": "CA", "Colorado": "CO", "Connecticut": "CT", "Delaware": "DE",
    "Florida": "FL", "Georgia": "GA", "Hawaii": "HI", "Idaho": "ID",
    "Illinois": "IL", "Indiana": "IN", "Iowa": "IA", "Kansas": "KS",
    "Kentucky": "KY", "Louisiana": "LA", "Maine": "ME", "Maryland": "MD",
    "Massachusetts": "MA", "Michigan": "MI", "Minnesota": "MN", "Mississippi": "MS",
    "Missouri": "MO", "Montana": "MT", "Nebraska": "NE", "Nevada": "NV",
    "New Hampshire": "NH", "New Jersey": "NJ", "New Mexico": "NM", "New York": "NY",
    "North Carolina": "NC", "North Dakota": "ND", "Ohio": "OH", "Oklahoma": "OK",
    "Oregon": "OR", "Pennsylvania": "PA", "Rhode Island": "RI", "South Carolina": "SC",
    "South Dakota": "SD", "Tennessee": "TN", "Texas": "TX", "Utah": "UT",
    "Vermont": "VT", "Virginia": "VA", "Washington": "WA", "West Virginia": "WV",
    "Wisconsin": "WI", "Wyoming": "WY", "District of Columbia": "DC",
}

# User-friendly descriptions of context fields
FIELD_NAME_MAPPINGS = {
    # Demographics
    "age": "your age",
    "isPregnant": "pregnancy status",
    "hasChildren": "whether you have children",
    "hasQualifyingDisability": "qualifying disability status",
    "isCitizen": "citizenship status",
    "citizenship": "citizenship status",

    # Financial
    "householdIncome": "your household's monthly income",
    "householdSize": "your household size",
    "income": "your income",
    "grossIncome": "your gross income",
    "netIncome": "your net income",
    "assets": "your household assets",

    # Location
    "state": "your state of residence",
    "stateHasExpanded": "whether your state has expanded coverage",
    "zipCode": "your ZIP code",
    "county": "your county",

    # Program-specific
    "employmentStatus": "your employment status",
    "isStudent": "student status",
    "isVeteran": "veteran status",
    "hasMinorChildren": "whether you have children under 18",
}


def format_field_name(field_name: str) -> str:
    """
    Human readable description of a context field

    Falls back to converting camelCase or snake_case to Title Case.
    """
    if field_name in FIELD_NAME_MAPPINGS:
        return FIELD_NAME_MAPPINGS[field_name]
    spaced = re.sub(r"([A-Z])", r" \1", field_name).replace("_", " ")
    return " ".join(word[:1].upper() + word[1:] for word in spaced.split())


def normalize_state_to_code(state: str) -> str:
    """Convert a state name or code to its 2-letter code"""
    value = state.strip()
    if len(value) == 2:
        return value.upper()
    for name, code in STATE_NAME_TO_CODE.items():
        if name.lower() == value.lower():
            return code
    logger.warning(f"Unknown state value: {state}")
    return value


def is_medicaid_expansion_state(state_code: str) -> bool:
    return state_code in MEDICAID_EXPANSION_STATE_CODES


def calculate_age(date_of_birth: Union[str, date], today: Optional[date] = None) -> int:
    """Whole years since a date of birth (a date or a YYYY-MM-DD string)"""
    if isinstance(date_of_birth, date):
        birth = date_of_birth
    else:
        birth = date.fromisoformat(date_of_birth[:10])
    today = today or date.today()
    age = today.year - birth.year
    if (today.month, today.day) < (birth.month, birth.day):
        age -= 1
    return age


def is_field_provided(context: Mapping[str, Any], field_name: str) -> bool:
    value = context.get(field_name)
    return value is not None and value != ""


def check_missing_fields(context: Mapping[str, Any], required_fields: Iterable[str]) -> List[str]:
    """Required fields that are absent or empty in the context"""
    return [field for field in required_fields if not is_field_provided(context, field)]


def prepare_data_context(profile: Union[UserProfile, Mapping[str, Any]]) -> Dict[str, Any]:
    """
    Build the evaluation context for a profile

    Args:
        profile: UserProfile or a raw mapping of profile answers

    Returns:
        Mapping of camelCase field names to values, with derived fields added
    """
    if isinstance(profile, UserProfile):
        context = profile.to_context()
    else:
        context = {key: value for key, value in profile.items() if value is not None}

    if "age" not in context and context.get("dateOfBirth"):
        try:
            context["age"] = calculate_age(context["dateOfBirth"])
        except ValueError:
            logger.warning(f"Could not derive age from dateOfBirth {context['dateOfBirth']!r}")

    income = context.get("householdIncome")
    if isinstance(income, (int, float)) and not isinstance(income, bool):
        if context.get("incomePeriod") == "annual":
            monthly_income = round(income / 12)
            logger.debug(f"Converted annual income {income} to monthly {monthly_income}")
            context["householdIncome"] = monthly_income

    state = context.get("state")
    if isinstance(state, str) and state.strip():
        state_code = normalize_state_to_code(state)
        context["state"] = state_code
        context["stateHasExpanded"] = is_medicaid_expansion_state(state_code)
        context["livesInState"] = True

    return context
