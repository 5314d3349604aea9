"""
Per-program rule runner: pass/fail counting and explanation data
"""
import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from ..models.result import Calculation, ProgramAggregate
from ..models.rule import RuleDefinition
from ..utils.context import format_field_name, is_field_provided
from .classification import is_income_rule
from .evaluator import RuleEvaluator, rule_evaluator
from .operators import snap_income_threshold

logger = logging.getLogger(__name__)

CITIZENSHIP_LABELS = {
    "us_citizen": "U.S. Citizen",
    "permanent_resident": "Permanent Resident",
    "refugee": "Refugee",
    "asylee": "Asylee",
}


def _money(amount: Any) -> str:
    if isinstance(amount, float) and amount.is_integer():
        amount = int(amount)
    if isinstance(amount, int):
        return f"${amount:,}"
    return f"${amount:,.2f}"


def snap_income_calculation(context: Mapping[str, Any]) -> Optional[Calculation]:
    income = context.get("householdIncome")
    size = context.get("householdSize")
    if income is None or size is None:
        return None
    threshold = snap_income_threshold(size)
    verdict = "qualifies" if income <= threshold else "exceeds limit"
    return Calculation(
        label="Monthly income limit (130% of poverty)",
        value=_money(threshold),
        comparison=f"Your income: {_money(income)}/month ({verdict})",
    )


def household_calculation(context: Mapping[str, Any]) -> Optional[Calculation]:
    size = context.get("householdSize")
    if size is None:
        return None
    return Calculation(
        label="Household size",
        value=size,
        comparison=f"{size} {'person' if size == 1 else 'people'}",
    )


def citizenship_calculation(context: Mapping[str, Any]) -> Optional[Calculation]:
    citizenship = context.get("citizenship")
    if not citizenship:
        return None
    return Calculation(
        label="Citizenship status",
        value=CITIZENSHIP_LABELS.get(citizenship, citizenship),
        comparison="Meets program requirements",
    )


def age_calculation(context: Mapping[str, Any]) -> Optional[Calculation]:
    age = context.get("age")
    if age is None:
        return None
    return Calculation(label="Age", value=age, comparison=f"{age} years old")


def calculation_for_rule(rule: RuleDefinition, context: Mapping[str, Any]) -> Optional[Calculation]:
    """Explanatory calculation for well-known rule ID patterns"""
    generator: Optional[Callable[[Mapping[str, Any]], Optional[Calculation]]] = None
    if "snap" in rule.id and "income" in rule.id:
        generator = snap_income_calculation
    elif "household" in rule.id:
        generator = household_calculation
    elif "citizenship" in rule.id:
        generator = citizenship_calculation
    elif "age" in rule.id:
        generator = age_calculation
    return generator(context) if generator else None


def order_rules(rules: Sequence[RuleDefinition]) -> List[RuleDefinition]:
    """Income rules first, then by priority (highest first), keeping package order on ties"""
    by_priority = sorted(rules, key=lambda rule: -rule.priority)
    income_rules = [rule for rule in by_priority if is_income_rule(rule)]
    other_rules = [rule for rule in by_priority if not is_income_rule(rule)]
    return income_rules + other_rules


class ProgramRunner:
    """Runs one program's eligibility rules and aggregates the outcomes"""

    def __init__(self, evaluator: Optional[RuleEvaluator] = None):
        self.evaluator = evaluator or rule_evaluator

    def run_program(
        self,
        program_id: str,
        rules: Sequence[RuleDefinition],
        context: Dict[str, Any]
    ) -> ProgramAggregate:
        """
        Evaluate a program's rules against a context

        Args:
            program_id: Program the rules belong to
            rules: Rule definitions (inactive, draft and non-eligibility
                rules are skipped)
            context: Prepared evaluation context

        Returns:
            ProgramAggregate with counts, cited rules and explanation data
        """
        aggregate = ProgramAggregate(program_id=program_id)
        scored = [rule for rule in rules if rule.is_scored]

        for rule in order_rules(scored):
            try:
                outcome = self.evaluator.evaluate_sync(rule.rule_logic, context)
            except Exception as e:
                logger.error(f"Error evaluating rule {rule.id} for program {program_id}: {e}")
                aggregate.errored_rules.append(rule.id)
                continue

            if not outcome.success:
                logger.error(f"Rule {rule.id} for program {program_id} failed to evaluate: {outcome.error}")
                aggregate.errored_rules.append(rule.id)
                continue

            passed = outcome.result is True
            logger.debug(f"Rule {rule.id} for program {program_id}: {'passed' if passed else 'failed'}")
            self._record(aggregate, rule, passed, context)

        logger.info(
            f"Program {program_id}: {aggregate.passed_rules}/{aggregate.total_rules} rules passed"
            + (f", {len(aggregate.errored_rules)} errored" if aggregate.errored_rules else "")
        )
        return aggregate

    def _record(self, aggregate: ProgramAggregate, rule: RuleDefinition, passed: bool,
                context: Mapping[str, Any]) -> None:
        aggregate.total_rules += 1
        aggregate.rules_cited.append(rule.id)
        if passed:
            aggregate.passed_rules += 1
        else:
            aggregate.failed_rules.append(rule.id)
            if is_income_rule(rule):
                aggregate.has_income_failure = True
                aggregate.hard_stop_rules.append(rule.id)

        if rule.explanation:
            aggregate.details.append(f"{'✓' if passed else '✗'} {rule.explanation}")

        for field in rule.required_fields:
            provided = is_field_provided(context, field)
            aggregate.details.append(f"{format_field_name(field)}: {'Met' if provided else 'Not provided'}")
            if not provided and field not in aggregate.missing_fields:
                aggregate.missing_fields.append(field)

        try:
            calculation = calculation_for_rule(rule, context)
        except Exception as e:
            logger.error(f"Error building calculation for rule {rule.id}: {e}")
            return
        if calculation and all(c.label != calculation.label for c in aggregate.calculations):
            aggregate.calculations.append(calculation)
