"""Pytest configuration and fixtures."""

from __future__ import annotations

from typing import Any, Callable

import pytest

from benefitmatch.config import Settings
from benefitmatch.models.result import ProgramVerdict, VerdictExplanation
from benefitmatch.models.rule import RuleDefinition, RulePackage
from benefitmatch.services.evaluator import RuleEvaluator
from benefitmatch.services.operators import OperatorRegistry


@pytest.fixture
def test_settings() -> Settings:
    """Settings with defaults, independent of the environment."""
    return Settings(
        evaluation_timeout_ms=5000,
        evaluation_max_depth=100,
        evaluation_strict=False,
        maybe_confidence_threshold=70,
        include_not_qualified=True,
        hard_stop_rule_ids="",
    )


@pytest.fixture
def evaluator(test_settings: Settings) -> RuleEvaluator:
    """Evaluator whose registry already holds the benefit operators."""
    return RuleEvaluator(registry=OperatorRegistry.with_benefit_operators(), settings=test_settings)


@pytest.fixture
def make_rule() -> Callable[..., RuleDefinition]:
    """Factory for rule definitions with sensible defaults."""

    def _make_rule(rule_id: str, logic: Any = None, **overrides: Any) -> RuleDefinition:
        data = {
            "id": rule_id,
            "programId": "test-program",
            "name": rule_id.replace("-", " "),
            "ruleLogic": {"==": [1, 1]} if logic is None else logic,
        }
        data.update(overrides)
        return RuleDefinition.model_validate(data)

    return _make_rule


@pytest.fixture
def make_verdict() -> Callable[..., ProgramVerdict]:
    """Factory for program verdicts."""

    def _make_verdict(program_id: str, status: str = "qualified", confidence: str = "high",
                      score: int = 95, reason: str = "Test verdict", **overrides: Any) -> ProgramVerdict:
        data = {
            "program_id": program_id,
            "program_name": program_id.upper(),
            "status": status,
            "confidence": confidence,
            "confidence_score": score,
            "explanation": VerdictExplanation(reason=reason),
        }
        data.update(overrides)
        return ProgramVerdict(**data)

    return _make_verdict


@pytest.fixture
def snap_package_data() -> dict[str, Any]:
    """Federal package with a SNAP program and a WIC program."""
    identity_doc = {"id": "proof-of-identity", "name": "Proof of identity", "required": True}
    return {
        "metadata": {
            "id": "federal-benefits",
            "name": "Federal benefit programs",
            "version": "1.2.3",
            "jurisdiction": "US-FEDERAL",
        },
        "rules": [
            {
                "id": "snap-federal-gross-income",
                "programId": "snap-federal",
                "name": "SNAP gross income test",
                "ruleLogic": {"snap_income_eligible": [{"var": "householdIncome"}, {"var": "householdSize"}]},
                "explanation": "Household gross income is at or below 130% of the poverty line",
                "requiredFields": ["householdIncome", "householdSize"],
                "requiredDocuments": [identity_doc, {"id": "pay-stubs", "name": "Recent pay stubs"}],
                "nextSteps": [{"step": "Apply through your state SNAP office", "priority": "high"}],
                "metadata": {"programName": "SNAP"},
            },
            {
                "id": "snap-federal-citizenship",
                "programId": "snap-federal",
                "name": "SNAP citizenship test",
                "ruleLogic": {"in": [{"var": "citizenship"}, ["us_citizen", "permanent_resident"]]},
                "explanation": "Applicant is a citizen or qualified non-citizen",
                "requiredFields": ["citizenship"],
                "requiredDocuments": [identity_doc],
                "nextSteps": [{"step": "Apply through your state SNAP office"}],
            },
            {
                "id": "wic-federal-pregnancy",
                "programId": "wic-federal",
                "name": "WIC categorical test",
                "ruleLogic": {"or": [{"var": "isPregnant"}, {"var": "hasChildren"}]},
                "explanation": "Pregnant, postpartum or caring for young children",
                "requiredFields": ["isPregnant"],
                "metadata": {"programName": "WIC"},
            },
            {
                "id": "wic-federal-draft-rule",
                "programId": "wic-federal",
                "name": "Draft rule",
                "ruleLogic": {"==": [1, 2]},
                "draft": True,
            },
        ],
    }


@pytest.fixture
def snap_package(snap_package_data: dict[str, Any]) -> RulePackage:
    return RulePackage.model_validate(snap_package_data)


@pytest.fixture
def eligible_profile() -> dict[str, Any]:
    """Profile that passes the SNAP rules."""
    return {
        "householdIncome": 2000,
        "incomePeriod": "monthly",
        "householdSize": 3,
        "citizenship": "us_citizen",
        "state": "GA",
        "age": 34,
    }
