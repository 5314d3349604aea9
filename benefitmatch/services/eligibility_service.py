"""
Eligibility service for checking a user profile against rule packages
"""
import logging
import time
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from ..config import Settings, settings as app_settings
from ..models.profile import UserProfile
from ..models.result import CategorizedResults, EvaluationOutcome, ProgramVerdict
from ..models.rule import RuleDefinition, RulePackage, RulePackageMetadata
from ..utils.context import prepare_data_context
from .aggregation import ResultAggregator, build_verdict
from .evaluator import EvaluationOptions, RuleEvaluator
from .operators import OperatorRegistry
from .program_runner import ProgramRunner

logger = logging.getLogger(__name__)


def _program_text(rules: Sequence[RuleDefinition], key: str) -> Optional[str]:
    """First non-empty program-level text carried in rule metadata"""
    for rule in rules:
        value = rule.metadata.get(key)
        if value:
            return str(value)
    return None


class EligibilityService:
    """Service for checking user eligibility against rule packages"""

    def __init__(self, registry: Optional[OperatorRegistry] = None, settings: Optional[Settings] = None):
        self.settings = settings or app_settings
        # Benefit operators are registered on this registry for the duration of each run
        self.registry = registry if registry is not None else OperatorRegistry.standard()
        self.evaluator = RuleEvaluator(registry=self.registry, settings=self.settings)
        self.runner = ProgramRunner(self.evaluator)
        self.aggregator = ResultAggregator(
            maybe_confidence_threshold=self.settings.maybe_confidence_threshold,
            hard_stop_rule_ids=self.settings.get_hard_stop_rule_ids(),
        )
        self.expression_evaluator = RuleEvaluator(
            registry=OperatorRegistry.with_benefit_operators(),
            settings=self.settings,
        )

    @staticmethod
    def group_programs(
        packages: Sequence[RulePackage]
    ) -> Dict[str, Tuple[RulePackageMetadata, List[RuleDefinition]]]:
        """
        Group active rules by program across packages

        A program that appears in several packages keeps the metadata of the
        first package it was found in.
        """
        programs: Dict[str, Tuple[RulePackageMetadata, List[RuleDefinition]]] = {}
        for package in packages:
            for program_id, rules in package.rules_by_program().items():
                if program_id in programs:
                    programs[program_id][1].extend(rules)
                else:
                    programs[program_id] = (package.metadata, list(rules))
        return programs

    def evaluate_programs(
        self,
        profile: Union[UserProfile, Mapping[str, Any]],
        packages: Sequence[RulePackage]
    ) -> List[ProgramVerdict]:
        """
        Evaluate every program in the packages for one profile

        Args:
            profile: User profile or raw profile mapping
            packages: Rule packages to evaluate

        Returns:
            One verdict per program, in package order
        """
        context = prepare_data_context(profile)
        verdicts = []
        with self.registry.session():
            for program_id, (metadata, rules) in self.group_programs(packages).items():
                aggregate = self.runner.run_program(program_id, rules, context)
                verdicts.append(build_verdict(
                    aggregate,
                    rules,
                    metadata=metadata,
                    program_name=_program_text(rules, "programName"),
                    program_description=_program_text(rules, "programDescription"),
                ))
        return verdicts

    async def check_eligibility(
        self,
        profile: Union[UserProfile, Mapping[str, Any]],
        packages: Sequence[RulePackage],
        include_not_qualified: Optional[bool] = None
    ) -> CategorizedResults:
        """
        Check user eligibility for all programs in the packages

        Args:
            profile: User's profile information
            packages: Rule packages to evaluate
            include_not_qualified: Return not qualified programs
                (defaults to settings)

        Returns:
            CategorizedResults with every program in one bucket
        """
        start_time = time.time()
        if include_not_qualified is None:
            include_not_qualified = self.settings.include_not_qualified

        try:
            verdicts = self.evaluate_programs(profile, packages)
            results = self.aggregator.aggregate(verdicts, include_not_qualified=include_not_qualified)
        except Exception as e:
            logger.error(f"Error in eligibility check: {e}")
            raise

        processing_time = (time.time() - start_time) * 1000
        logger.info(
            f"Eligibility check completed: {len(results.qualified) + len(results.likely)}/"
            f"{results.total_programs} programs qualified or likely in {processing_time:.1f}ms"
        )
        return results

    async def evaluate_expression(
        self,
        expression: Any,
        context: Any,
        options: Union[EvaluationOptions, Dict[str, Any], None] = None
    ) -> EvaluationOutcome:
        """Evaluate a single, possibly untrusted expression with the guarded evaluator"""
        return await self.expression_evaluator.evaluate(expression, context, options)


# Global eligibility service instance
eligibility_service = EligibilityService()
