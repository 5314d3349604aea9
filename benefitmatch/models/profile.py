"""
Pydantic models for user profiles used as rule evaluation context
"""
from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, Field, field_validator, ConfigDict

from .rule import RulePackage


CitizenshipStatus = Literal["us_citizen", "permanent_resident", "refugee", "asylee", "other"]
IncomePeriod = Literal["monthly", "annual"]


class UserProfile(BaseModel):
    """
    Self-reported profile of one person or household.

    Well-known fields are typed; any other field is kept as-is so that
    program-specific rules can reference it. Missing fields are simply absent.
    """
    household_income: Optional[float] = Field(None, alias="householdIncome", ge=0, description="Household income")
    income_period: Optional[IncomePeriod] = Field(None, alias="incomePeriod", description="Period the income was entered in")
    household_size: Optional[int] = Field(None, alias="householdSize", ge=1, le=50, description="People in the household")
    age: Optional[int] = Field(None, ge=0, le=150, description="Age in years")
    date_of_birth: Optional[str] = Field(None, alias="dateOfBirth", description="ISO date of birth (YYYY-MM-DD)")
    citizenship: Optional[CitizenshipStatus] = Field(None, description="Citizenship or immigration status")
    state: Optional[str] = Field(None, description="State code or full state name")
    county: Optional[str] = Field(None, description="County of residence")
    is_pregnant: Optional[bool] = Field(None, alias="isPregnant")
    has_children: Optional[bool] = Field(None, alias="hasChildren")
    has_qualifying_disability: Optional[bool] = Field(None, alias="hasQualifyingDisability")
    is_student: Optional[bool] = Field(None, alias="isStudent")
    is_veteran: Optional[bool] = Field(None, alias="isVeteran")
    employment_status: Optional[str] = Field(None, alias="employmentStatus")
    assets: Optional[float] = Field(None, ge=0, description="Countable household assets")

    model_config = ConfigDict(
        extra="allow",
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "householdIncome": 2000,
                "incomePeriod": "monthly",
                "householdSize": 3,
                "age": 34,
                "citizenship": "us_citizen",
                "state": "GA",
                "hasChildren": True,
            }
        },
    )

    @field_validator("date_of_birth")
    @classmethod
    def validate_date_of_birth(cls, v):
        if v is None:
            return v
        parts = v.split("-")
        if len(parts) != 3 or not all(p.isdigit() for p in parts):
            raise ValueError("dateOfBirth must be formatted as YYYY-MM-DD")
        return v

    @field_validator("state")
    @classmethod
    def strip_state(cls, v):
        if v:
            return v.strip()
        return v

    def to_context(self) -> Dict[str, Any]:
        """Dump the profile with camelCase field names, dropping unset values"""
        return self.model_dump(by_alias=True, exclude_none=True)


class EvaluationRequestOptions(BaseModel):
    """Evaluation options accepted over HTTP"""
    timeout_ms: Optional[int] = Field(None, gt=0, le=60000)
    max_depth: Optional[int] = Field(None, gt=0, le=1000)
    measure_time: Optional[bool] = None
    capture_context: Optional[bool] = None
    strict: Optional[bool] = None


class ExpressionEvaluationRequest(BaseModel):
    """Request to evaluate a single rule expression"""
    expression: Any = Field(..., description="JSON Logic expression")
    context: Dict[str, Any] = Field(default_factory=dict, description="Evaluation context")
    options: Optional[EvaluationRequestOptions] = Field(None)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "expression": {"between": [{"var": "age"}, 18, 64]},
                "context": {"age": 34},
                "options": {"timeout_ms": 1000},
            }
        }
    )


class EligibilityCheckRequest(BaseModel):
    """Request to check a profile against rule packages"""
    profile: UserProfile = Field(..., description="User's profile information")
    rule_packages: List[RulePackage] = Field(..., min_length=1, description="Rule packages to evaluate")
    include_not_qualified: Optional[bool] = Field(None, description="Return programs the user does not qualify for")
