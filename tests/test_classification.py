"""Tests for pass-rate classification and hard-stop recognition."""

from __future__ import annotations

import pytest

from benefitmatch.services.classification import (
    classify,
    has_word_boundary,
    is_income_hard_stop,
    is_income_rule,
    reason_text,
)


class TestClassify:
    """Test the pass-rate threshold table."""

    @pytest.mark.parametrize(
        "passed,total,expected",
        [
            (10, 10, ("qualified", "high", 95)),
            (8, 10, ("likely", "medium", 75)),
            (7, 10, ("maybe", "medium", 60)),
            (5, 10, ("maybe", "medium", 60)),
            (3, 10, ("unlikely", "low", 40)),
            (2, 10, ("not-qualified", "high", 90)),
            (0, 0, ("not-qualified", "high", 90)),
        ],
    )
    def test_threshold_boundaries(self, passed: int, total: int, expected: tuple):
        result = classify(passed, total)

        assert (result.status, result.confidence, result.confidence_score) == expected

    def test_classify_is_pure(self):
        assert classify(8, 10) == classify(8, 10)

    def test_invalid_counts(self):
        with pytest.raises(ValueError):
            classify(11, 10)
        with pytest.raises(ValueError):
            classify(-1, 10)


class TestReasonText:
    """Test human readable reasons."""

    def test_reason_strings(self):
        assert reason_text("qualified", 4, 4) == "You meet all 4 eligibility requirements for this program."
        assert reason_text("likely", 4, 5) == (
            "You meet 4 of 5 eligibility requirements. You likely qualify for this program."
        )
        assert reason_text("maybe", 3, 5) == "You meet 3 of 5 requirements. Additional verification may be needed."
        assert reason_text("unlikely", 2, 5) == "You meet only 2 of 5 requirements. It's unlikely you qualify."
        assert reason_text("not-qualified", 0, 5) == (
            "You do not meet the eligibility requirements for this program at this time."
        )


class TestIncomeRules:
    """Test income rule recognition."""

    def test_income_keywords(self, make_rule):
        assert is_income_rule(make_rule("snap-federal-gross-income"))
        assert is_income_rule(make_rule("medicaid-expansion", name="Household FPL test"))
        assert not is_income_rule(make_rule("snap-federal-citizenship"))

    def test_short_keyword_needs_word_boundary(self, make_rule):
        assert is_income_rule(make_rule("lihtc-ami-limit"))
        assert not is_income_rule(make_rule("family-dynamics", name="family dynamics"))
        assert has_word_boundary("housing ami test", "ami")
        assert not has_word_boundary("dynamics", "ami")

    def test_explicit_hard_stop_flag(self, make_rule):
        assert is_income_rule(make_rule("tanf-residency", isHardStop=True))


class TestHardStopRecognition:
    """Test hard-stop detection on verdicts."""

    def test_flagged_hard_stop_rules(self, make_verdict):
        verdict = make_verdict("snap", status="likely", confidence="medium", score=75,
                               hard_stop_rules=["snap-custom-cutoff"], failed_rules=["snap-custom-cutoff"])

        assert is_income_hard_stop(verdict)

    def test_known_rule_id(self, make_verdict):
        verdict = make_verdict("tanf", status="maybe", confidence="medium", score=60,
                               failed_rules=["tanf-federal-income-test"])

        assert is_income_hard_stop(verdict)

    def test_reason_text_marker(self, make_verdict):
        verdict = make_verdict("wic", status="maybe", confidence="medium", score=60,
                               reason="Income exceeds the program limit")

        assert is_income_hard_stop(verdict)

    def test_configured_rule_id(self, make_verdict):
        verdict = make_verdict("lihtc", status="maybe", confidence="medium", score=60,
                               failed_rules=["lihtc-rent-cap"])

        assert not is_income_hard_stop(verdict)
        assert is_income_hard_stop(verdict, extra_ids=["lihtc-rent-cap"])

    def test_non_income_failure(self, make_verdict):
        verdict = make_verdict("snap", status="maybe", confidence="medium", score=60,
                               reason=reason_text("maybe", 3, 5),
                               failed_rules=["snap-federal-citizenship"])

        assert not is_income_hard_stop(verdict)
