"""Tests for the standard and benefit operators."""

from __future__ import annotations

from datetime import date, timedelta

import pytest

from benefitmatch.services.evaluator import ExpressionWalker
from benefitmatch.services.operators import (
    OperatorError,
    OperatorRegistry,
    UnknownOperatorError,
    age_from_dob,
    all_true,
    any_true,
    between,
    count_true,
    date_in_future,
    date_in_past,
    matches_any,
    snap_income_eligible,
    snap_income_threshold,
    within_percent,
)


def _years_ago(today: date, years: int) -> date:
    try:
        return today.replace(year=today.year - years)
    except ValueError:
        # February 29th in a non-leap target year
        return today.replace(year=today.year - years, day=28)


@pytest.fixture
def walk() -> ExpressionWalker:
    return ExpressionWalker(OperatorRegistry.with_benefit_operators())


class TestBenefitOperators:
    """Test the built-in domain operators."""

    def test_between_inclusive(self):
        assert between(5, 1, 10) is True
        assert between(15, 1, 10) is False
        assert between(1, 1, 10) is True
        assert between(10, 1, 10) is True

    def test_between_missing_value(self):
        assert between(None, 1, 10) is False

    def test_within_percent(self):
        assert within_percent(105, 100, 5) is True
        assert within_percent(95, 100, 5) is True
        assert within_percent(106, 100, 5) is False

    def test_age_from_dob_birthday_boundary_fixed_dates(self):
        assert age_from_dob("2000-06-15", today=date(2020, 6, 15)) == 20
        assert age_from_dob("2000-06-15", today=date(2020, 6, 14)) == 19
        assert age_from_dob("2000-06-15", today=date(2020, 7, 1)) == 20

    def test_age_from_dob_around_today(self):
        today = date.today()
        twenty_years_ago = _years_ago(today, 20)

        day_after = (twenty_years_ago + timedelta(days=1)).isoformat()
        day_before = (twenty_years_ago - timedelta(days=1)).isoformat()

        assert age_from_dob(day_after) == 19
        assert age_from_dob(day_before) == 20

    def test_age_from_dob_invalid_date(self):
        with pytest.raises(OperatorError):
            age_from_dob("not-a-date")

    def test_date_in_past_and_future(self):
        yesterday = (date.today() - timedelta(days=2)).isoformat()
        tomorrow = (date.today() + timedelta(days=2)).isoformat()

        assert date_in_past(yesterday) is True
        assert date_in_future(yesterday) is False
        assert date_in_future(tomorrow) is True
        assert date_in_past(tomorrow) is False

    def test_matches_any_is_case_insensitive(self):
        assert matches_any("SNAP", ["snap", "wic"]) is True
        assert matches_any("tanf", ["snap", "wic"]) is False
        assert matches_any(None, ["snap"]) is False

    def test_truthy_array_aggregates(self):
        assert count_true([1, 0, True, "", None, "yes"]) == 3
        assert all_true([1, True, "x"]) is True
        assert all_true([1, 0]) is False
        assert any_true([0, "", None]) is False
        assert any_true([0, 1]) is True

    def test_snap_income_threshold(self):
        assert snap_income_threshold(1) == 1696
        assert snap_income_threshold(3) == 2888
        assert snap_income_threshold(8) == 5867
        assert snap_income_threshold(10) == 5867 + 2 * 596

    def test_snap_income_threshold_rejects_empty_household(self):
        with pytest.raises(OperatorError):
            snap_income_threshold(0)

    def test_snap_income_eligible(self):
        assert snap_income_eligible(2888, 3) is True
        assert snap_income_eligible(2889, 3) is False
        assert snap_income_eligible(None, 3) is False

    def test_switch_picks_matching_case(self, walk: ExpressionWalker):
        expression = {"switch": [
            {"var": "size"},
            {"default": "other"},
            {"case": 1, "do": "single"},
            {"case": 2, "do": {"cat": ["pair of ", {"var": "size"}]}},
        ]}

        assert walk(expression, {"size": 1}) == "single"
        assert walk(expression, {"size": 2}) == "pair of 2"
        assert walk(expression, {"size": 7}) == "other"


class TestStandardOperators:
    """Test the JSON Logic operators."""

    def test_var_reads_nested_paths(self, walk: ExpressionWalker):
        data = {"household": {"members": [{"age": 4}, {"age": 40}]}}

        assert walk({"var": "household.members.1.age"}, data) == 40
        assert walk({"var": ["household.pets", "none"]}, data) == "none"
        assert walk({"var": "missingField"}, data) is None

    def test_missing_fields(self, walk: ExpressionWalker):
        data = {"age": 30, "state": ""}

        assert walk({"missing": ["age", "state", "county"]}, data) == ["state", "county"]
        assert walk({"missing_some": [1, ["age", "county"]]}, data) == []
        assert walk({"missing_some": [2, ["age", "county"]]}, data) == ["county"]

    def test_if_chain(self, walk: ExpressionWalker):
        expression = {"if": [
            {"<": [{"var": "age"}, 18]}, "minor",
            {">=": [{"var": "age"}, 65]}, "senior",
            "adult",
        ]}

        assert walk(expression, {"age": 10}) == "minor"
        assert walk(expression, {"age": 70}) == "senior"
        assert walk(expression, {"age": 40}) == "adult"

    def test_and_or_return_deciding_operand(self, walk: ExpressionWalker):
        assert walk({"and": [1, "", 3]}, {}) == ""
        assert walk({"and": [1, 2, 3]}, {}) == 3
        assert walk({"or": [0, [], "x"]}, {}) == "x"

    def test_equality(self, walk: ExpressionWalker):
        assert walk({"==": ["1", 1]}, {}) is True
        assert walk({"===": ["1", 1]}, {}) is False
        assert walk({"!=": [1, 2]}, {}) is True
        assert walk({"!==": [1, 1.0]}, {}) is False

    def test_comparisons_with_missing_values_fail(self, walk: ExpressionWalker):
        assert walk({"<=": [{"var": "householdIncome"}, 2000]}, {}) is False
        assert walk({">": [{"var": "age"}, 0]}, {}) is False

    def test_three_argument_between_forms(self, walk: ExpressionWalker):
        assert walk({"<": [1, 5, 10]}, {}) is True
        assert walk({"<": [1, 1, 10]}, {}) is False
        assert walk({"<=": [1, 1, 10]}, {}) is True

    def test_three_argument_between_with_missing_bound(self, walk: ExpressionWalker):
        data = {"x": 5}

        assert walk({"<": [1, {"var": "x"}, {"var": "absent"}]}, data) is False
        assert walk({"<=": [1, {"var": "x"}, {"var": "absent"}]}, data) is False
        assert walk({"<": [1, {"var": "x"}]}, data) is True

    def test_arithmetic(self, walk: ExpressionWalker):
        assert walk({"+": [1, 2, "3"]}, {}) == 6
        assert walk({"-": [10, 4]}, {}) == 6
        assert walk({"-": [3]}, {}) == -3
        assert walk({"*": [2, 3, 4]}, {}) == 24
        assert walk({"/": [{"var": "income"}, 12]}, {"income": 36000}) == 3000
        assert walk({"%": [7, 3]}, {}) == 1
        assert walk({"min": [3, 1, 2]}, {}) == 1
        assert walk({"max": [3, 1, 2]}, {}) == 3

    def test_division_by_zero_raises(self, walk: ExpressionWalker):
        with pytest.raises(OperatorError):
            walk({"/": [1, 0]}, {})

    def test_strings(self, walk: ExpressionWalker):
        assert walk({"cat": ["Household of ", 3]}, {}) == "Household of 3"
        assert walk({"substr": ["benefits", 0, 4]}, {}) == "bene"
        assert walk({"substr": ["benefits", -4]}, {}) == "fits"
        assert walk({"in": ["GA", ["GA", "FL"]]}, {}) is True
        assert walk({"in": ["fit", "benefits"]}, {}) is True

    def test_array_operators(self, walk: ExpressionWalker):
        data = {"ages": [3, 16, 40]}

        assert walk({"map": [{"var": "ages"}, {"*": [{"var": ""}, 2]}]}, data) == [6, 32, 80]
        assert walk({"filter": [{"var": "ages"}, {"<": [{"var": ""}, 18]}]}, data) == [3, 16]
        assert walk({"reduce": [
            {"var": "ages"},
            {"+": [{"var": "current"}, {"var": "accumulator"}]},
            0,
        ]}, data) == 59
        assert walk({"all": [{"var": "ages"}, {">": [{"var": ""}, 0]}]}, data) is True
        assert walk({"some": [{"var": "ages"}, {">": [{"var": ""}, 30]}]}, data) is True
        assert walk({"none": [{"var": "ages"}, {">": [{"var": ""}, 65]}]}, data) is True
        assert walk({"all": [[], {"var": ""}]}, data) is False
        assert walk({"merge": [[1], 2, [3, 4]]}, data) == [1, 2, 3, 4]

    def test_unknown_operator_raises(self, walk: ExpressionWalker):
        with pytest.raises(UnknownOperatorError):
            walk({"no_such_operator": [1]}, {})

    def test_multi_key_mapping_is_a_literal(self, walk: ExpressionWalker):
        literal = {"case": 1, "do": 2}
        assert walk(literal, {}) == literal
