"""
Verdict construction and categorization of program verdicts
"""
import logging
from typing import Iterable, List, Optional, Sequence, Tuple

from ..models.result import CategorizedResults, ProgramAggregate, ProgramVerdict, VerdictExplanation
from ..models.rule import DocumentRequirement, NextStep, RuleDefinition, RulePackageMetadata
from .classification import HARD_STOP_REASON, classify, is_income_hard_stop, reason_text

logger = logging.getLogger(__name__)


def deduplicate_documents(documents: Iterable[DocumentRequirement]) -> List[DocumentRequirement]:
    """Keep the first document for each ID, in order"""
    seen = set()
    unique = []
    for document in documents:
        if document.id in seen:
            continue
        seen.add(document.id)
        unique.append(document)
    return unique


def deduplicate_steps(steps: Iterable[NextStep]) -> List[NextStep]:
    """Keep the first step for each step text, in order"""
    seen = set()
    unique = []
    for step in steps:
        if step.step in seen:
            continue
        seen.add(step.step)
        unique.append(step)
    return unique


def collect_requirements(
    rules: Sequence[RuleDefinition],
    passed_rules: int
) -> Tuple[List[DocumentRequirement], List[NextStep]]:
    """
    Documents and next steps for a program, once per program

    Nothing is collected when no rule passed.
    """
    if passed_rules <= 0:
        return [], []
    documents = [document for rule in rules for document in rule.required_documents]
    steps = [step for rule in rules for step in rule.next_steps]
    return deduplicate_documents(documents), deduplicate_steps(steps)


def build_verdict(
    aggregate: ProgramAggregate,
    rules: Sequence[RuleDefinition],
    metadata: Optional[RulePackageMetadata] = None,
    program_name: Optional[str] = None,
    program_description: Optional[str] = None
) -> ProgramVerdict:
    """
    Turn a program's rule aggregate into a verdict

    Args:
        aggregate: Counts and explanation data from the program runner
        rules: The program's active rules, used for documents and next steps
        metadata: Metadata of the package the program came from
        program_name: Display name (defaults to the program ID)
        program_description: Optional description

    Returns:
        ProgramVerdict
    """
    classification = classify(aggregate.passed_rules, aggregate.total_rules)
    documents, steps = collect_requirements(rules, aggregate.passed_rules)

    version = metadata.version if metadata else None
    return ProgramVerdict(
        program_id=aggregate.program_id,
        program_name=program_name or aggregate.program_id,
        program_description=program_description,
        jurisdiction=metadata.jurisdiction if metadata else "US-FEDERAL",
        status=classification.status,
        confidence=classification.confidence,
        confidence_score=classification.confidence_score,
        explanation=VerdictExplanation(
            reason=reason_text(classification.status, aggregate.passed_rules, aggregate.total_rules),
            details=list(aggregate.details),
            rules_cited=list(aggregate.rules_cited),
            calculations=list(aggregate.calculations),
        ),
        required_documents=documents,
        next_steps=steps,
        failed_rules=list(aggregate.failed_rules),
        hard_stop_rules=list(aggregate.hard_stop_rules),
        incomplete=aggregate.incomplete,
        missing_fields=list(aggregate.missing_fields),
        rules_version=f"{version.major}.{version.minor}.{version.patch}" if version else None,
    )


def apply_hard_stop(verdict: ProgramVerdict) -> ProgramVerdict:
    """Copy of a verdict forced to a high-confidence not-qualified result"""
    explanation = verdict.explanation.model_copy(update={"reason": HARD_STOP_REASON})
    return verdict.model_copy(update={
        "status": "not-qualified",
        "confidence": "high",
        "confidence_score": 90,
        "explanation": explanation,
    })


class ResultAggregator:
    """Buckets program verdicts into qualified, likely, maybe and not qualified"""

    def __init__(
        self,
        maybe_confidence_threshold: int = 70,
        hard_stop_rule_ids: Optional[Iterable[str]] = None
    ):
        self.maybe_confidence_threshold = maybe_confidence_threshold
        self.hard_stop_rule_ids = list(hard_stop_rule_ids or [])

    def aggregate(
        self,
        verdicts: Sequence[ProgramVerdict],
        include_not_qualified: bool = True
    ) -> CategorizedResults:
        """
        Place every verdict in exactly one bucket

        Args:
            verdicts: Verdicts for all evaluated programs
            include_not_qualified: When False the not_qualified list is
                returned empty (total_programs still counts every program)

        Returns:
            CategorizedResults
        """
        results = CategorizedResults(total_programs=len(verdicts))

        for verdict in verdicts:
            if verdict.status == "qualified":
                results.qualified.append(verdict)
            elif is_income_hard_stop(verdict, self.hard_stop_rule_ids):
                logger.debug(f"Program {verdict.program_id} failed an income hard stop")
                results.not_qualified.append(apply_hard_stop(verdict))
            elif verdict.status == "likely":
                results.likely.append(verdict)
            elif verdict.incomplete or verdict.confidence_score < self.maybe_confidence_threshold:
                results.maybe.append(verdict)
            else:
                results.not_qualified.append(verdict)

        logger.info(
            f"Categorized {results.total_programs} programs: {len(results.qualified)} qualified, "
            f"{len(results.likely)} likely, {len(results.maybe)} maybe, "
            f"{len(results.not_qualified)} not qualified"
        )

        if not include_not_qualified:
            results.not_qualified = []
        return results
