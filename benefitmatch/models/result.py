"""
Pydantic models for evaluation outcomes, program verdicts and categorized results
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional, Union
from pydantic import BaseModel, Field, ConfigDict

from .rule import DocumentRequirement, NextStep


def get_current_utc_time():
    """Get current UTC time for default values"""
    return datetime.now(timezone.utc)


EVAL_INVALID_RULE = "EVAL_INVALID_RULE"
EVAL_INVALID_DATA = "EVAL_INVALID_DATA"
EVAL_MAX_DEPTH = "EVAL_MAX_DEPTH"
EVAL_TIMEOUT = "EVAL_TIMEOUT"
EVAL_OPERATOR_ERROR = "EVAL_OPERATOR_ERROR"
EVAL_UNKNOWN = "EVAL_UNKNOWN"

EvaluationErrorCode = Literal[
    "EVAL_INVALID_RULE",
    "EVAL_INVALID_DATA",
    "EVAL_MAX_DEPTH",
    "EVAL_TIMEOUT",
    "EVAL_OPERATOR_ERROR",
    "EVAL_UNKNOWN",
]

EligibilityStatus = Literal["qualified", "likely", "maybe", "unlikely", "not-qualified"]
ConfidenceLevel = Literal["high", "medium", "low"]


class EvaluationError(BaseModel):
    """Uniform description of a failed rule evaluation"""
    message: str = Field(..., description="Human readable error message")
    code: EvaluationErrorCode = Field(..., description="Error classification")
    rule: Optional[Any] = Field(None, description="Expression that failed")
    data: Optional[Dict[str, Any]] = Field(None, description="Context the expression ran against")
    trace: Optional[str] = Field(None, description="Formatted traceback of the underlying error")


class EvaluationOutcome(BaseModel):
    """Result of evaluating one expression"""
    success: bool = Field(..., description="Whether evaluation completed")
    result: Any = Field(False, description="Value produced by the expression")
    error: Optional[str] = Field(None, description="Error message when success is False")
    error_details: Optional[EvaluationError] = Field(None)
    execution_time_ms: Optional[float] = Field(None, ge=0)
    context: Optional[Dict[str, Any]] = Field(None, description="Captured evaluation context")

    @property
    def code(self) -> Optional[str]:
        return self.error_details.code if self.error_details else None


class Calculation(BaseModel):
    """Explanatory calculation shown alongside a verdict"""
    label: str
    value: Union[str, int, float]
    comparison: Optional[str] = None


class ProgramAggregate(BaseModel):
    """Pass/fail counts and explanation data for one program's rules"""
    program_id: str
    passed_rules: int = Field(0, ge=0)
    total_rules: int = Field(0, ge=0)
    rules_cited: List[str] = Field(default_factory=list)
    details: List[str] = Field(default_factory=list)
    calculations: List[Calculation] = Field(default_factory=list)
    failed_rules: List[str] = Field(default_factory=list)
    has_income_failure: bool = False
    hard_stop_rules: List[str] = Field(default_factory=list)
    missing_fields: List[str] = Field(default_factory=list)
    errored_rules: List[str] = Field(default_factory=list)

    @property
    def incomplete(self) -> bool:
        return bool(self.missing_fields)


class ClassificationResult(BaseModel):
    """Status, confidence tier and score derived from a pass rate"""
    status: EligibilityStatus
    confidence: ConfidenceLevel
    confidence_score: int = Field(..., ge=0, le=100)

    model_config = ConfigDict(frozen=True)


class VerdictExplanation(BaseModel):
    reason: str
    details: List[str] = Field(default_factory=list)
    rules_cited: List[str] = Field(default_factory=list)
    calculations: List[Calculation] = Field(default_factory=list)


class ProgramVerdict(BaseModel):
    """Eligibility verdict for one program"""
    program_id: str = Field(..., description="Program identifier")
    program_name: str = Field(..., description="Program display name")
    program_description: Optional[str] = Field(None)
    jurisdiction: str = Field("US-FEDERAL")
    status: EligibilityStatus
    confidence: ConfidenceLevel
    confidence_score: int = Field(..., ge=0, le=100)
    explanation: VerdictExplanation
    required_documents: List[DocumentRequirement] = Field(default_factory=list)
    next_steps: List[NextStep] = Field(default_factory=list)
    failed_rules: List[str] = Field(default_factory=list)
    hard_stop_rules: List[str] = Field(default_factory=list)
    incomplete: bool = False
    missing_fields: List[str] = Field(default_factory=list)
    evaluated_at: datetime = Field(default_factory=get_current_utc_time)
    rules_version: Optional[str] = Field(None, description="Rule package version (major.minor.patch)")

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "program_id": "snap-federal",
                "program_name": "SNAP",
                "jurisdiction": "US-FEDERAL",
                "status": "qualified",
                "confidence": "high",
                "confidence_score": 95,
                "explanation": {
                    "reason": "You meet all 3 eligibility requirements for this program.",
                    "details": ["✓ Household gross income is at or below 130% of the poverty line"],
                    "rules_cited": ["snap-federal-gross-income"],
                    "calculations": [],
                },
                "required_documents": [{"id": "pay-stubs", "name": "Recent pay stubs", "required": True}],
                "next_steps": [{"step": "Apply online through your state SNAP office"}],
                "rules_version": "1.0.0",
            }
        },
    )


class CategorizedResults(BaseModel):
    """All program verdicts of one evaluation run, grouped by outcome"""
    qualified: List[ProgramVerdict] = Field(default_factory=list)
    likely: List[ProgramVerdict] = Field(default_factory=list)
    maybe: List[ProgramVerdict] = Field(default_factory=list)
    not_qualified: List[ProgramVerdict] = Field(default_factory=list)
    total_programs: int = Field(0, ge=0)
    evaluated_at: datetime = Field(default_factory=get_current_utc_time)

    def partition(self) -> Dict[str, Any]:
        """
        Caller-facing partition of the results

        Returns:
            Mapping with qualified (qualified and likely), maybe,
            not_qualified and total_programs
        """
        return {
            "qualified": self.qualified + self.likely,
            "maybe": list(self.maybe),
            "not_qualified": list(self.not_qualified),
            "total_programs": self.total_programs,
        }
