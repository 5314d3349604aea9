"""
Models package for the benefit eligibility engine
"""

from .rule import (
    RuleVersion,
    DocumentRequirement,
    NextStep,
    RuleDefinition,
    RulePackageMetadata,
    RulePackage
)

from .profile import (
    UserProfile,
    EligibilityCheckRequest,
    EvaluationRequestOptions,
    ExpressionEvaluationRequest
)

from .result import (
    EvaluationError,
    EvaluationOutcome,
    Calculation,
    ProgramAggregate,
    ClassificationResult,
    VerdictExplanation,
    ProgramVerdict,
    CategorizedResults
)

__all__ = [
    # Rule models
    "RuleVersion",
    "DocumentRequirement",
    "NextStep",
    "RuleDefinition",
    "RulePackageMetadata",
    "RulePackage",

    # Profile models
    "UserProfile",
    "EligibilityCheckRequest",
    "EvaluationRequestOptions",
    "ExpressionEvaluationRequest",

    # Result models
    "EvaluationError",
    "EvaluationOutcome",
    "Calculation",
    "ProgramAggregate",
    "ClassificationResult",
    "VerdictExplanation",
    "ProgramVerdict",
    "CategorizedResults"
]
