"""
Classification of per-program pass rates into eligibility verdicts
"""
import logging
import re
from typing import Iterable, List, Optional

from ..models.result import ClassificationResult, ProgramVerdict
from ..models.rule import RuleDefinition

logger = logging.getLogger(__name__)

# (minimum pass rate in percent, status, confidence, score), checked top-down
CLASSIFICATION_THRESHOLDS = [
    (100, "qualified", "high", 95),
    (80, "likely", "medium", 75),
    (50, "maybe", "medium", 60),
    (30, "unlikely", "low", 40),
]
NOT_QUALIFIED = ClassificationResult(status="not-qualified", confidence="high", confidence_score=90)

HARD_STOP_REASON = "You do not meet the income requirements for this program (hard stop)."

INCOME_KEYWORDS = [
    "income",
    "snap_income_eligible",
    "householdincome",
    "income-limit",
    "income_eligible",
    "gross-income",
    "net-income",
    "fpl",
    "poverty",
    "threshold",
]

# Matched only as whole words
SHORT_INCOME_KEYWORDS = ["ami"]

HARD_STOP_RULE_IDS = frozenset([
    "lihtc-federal-income-limits",
    "section8-federal-income-limits",
    "tanf-federal-income-test",
    "medicaid-federal-expansion-income",
    "wic-federal-income-limit",
])

_HARD_STOP_REASON_MARKERS = ("income", "Income", "hard stop")
_HARD_STOP_RULE_MARKERS = ("income", "Income", "income-limit")


def classify(passed_rules: int, total_rules: int) -> ClassificationResult:
    """
    Classify a program from its rule pass counts

    Args:
        passed_rules: Number of rules that passed
        total_rules: Number of rules evaluated

    Returns:
        ClassificationResult with status, confidence and score
    """
    if passed_rules < 0 or total_rules < 0 or passed_rules > total_rules:
        raise ValueError(f"Invalid rule counts: {passed_rules} passed of {total_rules}")
    if total_rules == 0:
        return NOT_QUALIFIED

    # Integer comparison keeps boundaries such as 8/10 exact
    for minimum_percent, status, confidence, score in CLASSIFICATION_THRESHOLDS:
        if passed_rules * 100 >= total_rules * minimum_percent:
            return ClassificationResult(status=status, confidence=confidence, confidence_score=score)
    return NOT_QUALIFIED


def reason_text(status: str, passed_rules: int, total_rules: int) -> str:
    """Human readable reason for a classification"""
    if status == "qualified":
        return f"You meet all {total_rules} eligibility requirements for this program."
    if status == "likely":
        return (
            f"You meet {passed_rules} of {total_rules} eligibility requirements. "
            "You likely qualify for this program."
        )
    if status == "maybe":
        return f"You meet {passed_rules} of {total_rules} requirements. Additional verification may be needed."
    if status == "unlikely":
        return f"You meet only {passed_rules} of {total_rules} requirements. It's unlikely you qualify."
    return "You do not meet the eligibility requirements for this program at this time."


def has_word_boundary(text: str, keyword: str) -> bool:
    return re.search(rf"\b{re.escape(keyword)}\b", text) is not None


def is_income_rule(rule: RuleDefinition) -> bool:
    """
    Whether a rule tests income

    Rules flagged ``is_hard_stop`` always count; otherwise the rule id and
    name are matched against the income keywords.
    """
    if rule.is_hard_stop:
        return True
    rule_id = rule.id.lower()
    rule_name = rule.name.lower()
    if any(keyword in rule_id or keyword in rule_name for keyword in INCOME_KEYWORDS):
        return True
    return any(
        has_word_boundary(rule_id, keyword) or has_word_boundary(rule_name, keyword)
        for keyword in SHORT_INCOME_KEYWORDS
    )


def is_hard_stop_rule_id(rule_id: str, extra_ids: Optional[Iterable[str]] = None) -> bool:
    if rule_id in HARD_STOP_RULE_IDS:
        return True
    if extra_ids and rule_id in set(extra_ids):
        return True
    return any(marker in rule_id for marker in _HARD_STOP_RULE_MARKERS)


def is_income_hard_stop(verdict: ProgramVerdict, extra_ids: Optional[Iterable[str]] = None) -> bool:
    """
    Whether a verdict was decided by a failed income rule

    Args:
        verdict: Program verdict to inspect
        extra_ids: Additional rule IDs to treat as hard stops

    Returns:
        True when the verdict carries flagged hard-stop rules, an income
        related reason, or a failed rule recognised as an income hard stop
    """
    if verdict.hard_stop_rules:
        return True
    if any(marker in verdict.explanation.reason for marker in _HARD_STOP_REASON_MARKERS):
        return True
    extra: List[str] = list(extra_ids or [])
    return any(is_hard_stop_rule_id(rule_id, extra) for rule_id in verdict.failed_rules)
