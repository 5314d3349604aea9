"""
Services package for the benefit eligibility engine
"""

from .operators import OperatorRegistry, BENEFIT_OPERATORS, STANDARD_OPERATORS
from .evaluator import RuleEvaluator, EvaluationOptions, RuleEvaluationError
from .program_runner import ProgramRunner
from .classification import classify, is_income_hard_stop
from .aggregation import ResultAggregator, build_verdict
from .eligibility_service import EligibilityService

__all__ = [
    "OperatorRegistry",
    "BENEFIT_OPERATORS",
    "STANDARD_OPERATORS",
    "RuleEvaluator",
    "EvaluationOptions",
    "RuleEvaluationError",
    "ProgramRunner",
    "classify",
    "is_income_hard_stop",
    "ResultAggregator",
    "build_verdict",
    "EligibilityService"
]
