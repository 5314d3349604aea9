"""
Rule expression evaluator with depth and timeout guards
"""
import asyncio
import logging
import time
import traceback
import threading
from collections.abc import Mapping
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from pydantic import BaseModel, Field, ConfigDict

from ..config import Settings, settings as app_settings
from ..models.result import (
    EVAL_INVALID_DATA,
    EVAL_INVALID_RULE,
    EVAL_MAX_DEPTH,
    EVAL_OPERATOR_ERROR,
    EVAL_TIMEOUT,
    EVAL_UNKNOWN,
    EvaluationError,
    EvaluationOutcome,
)
from .operators import OperatorRegistry, UnknownOperatorError, default_registry, is_lazy

logger = logging.getLogger(__name__)

_LITERAL_TYPES = (dict, list, str, int, float, bool)


class EvaluationOptions(BaseModel):
    """Per-call evaluation options"""
    timeout_ms: int = Field(5000, gt=0, description="Deadline for the guarded evaluation")
    max_depth: int = Field(100, gt=0, description="Maximum structural depth of an expression")
    measure_time: bool = Field(True, description="Report execution time on the outcome")
    capture_context: bool = Field(False, description="Attach a copy of the context to the outcome")
    strict: bool = Field(False, description="Raise instead of returning a failed outcome")
    custom_operators: Dict[str, Any] = Field(default_factory=dict, description="Operators for this call only")

    model_config = ConfigDict(arbitrary_types_allowed=True, extra="forbid")

    @classmethod
    def from_settings(cls, config: Settings) -> "EvaluationOptions":
        return cls(
            timeout_ms=config.evaluation_timeout_ms,
            max_depth=config.evaluation_max_depth,
            strict=config.evaluation_strict,
        )


class RuleEvaluationError(Exception):
    """Raised for failed evaluations in strict mode"""

    def __init__(self, details: EvaluationError):
        super().__init__(details.message)
        self.details = details

    @property
    def code(self) -> str:
        return self.details.code


def is_operator_node(expression: Any) -> bool:
    """An operator node is a mapping with exactly one string key"""
    return isinstance(expression, dict) and len(expression) == 1 and isinstance(next(iter(expression)), str)


def calculate_depth(expression: Any, limit: Optional[int] = None) -> int:
    """
    Structural depth of an expression

    Operator nodes and list literals add one level, ``var`` references and
    scalar literals add none. Stops early once ``limit`` is exceeded.

    Args:
        expression: Expression tree
        limit: Optional depth after which the walk stops

    Returns:
        Depth of the deepest branch (or the first depth found above limit)
    """
    deepest = 0
    stack: List[Tuple[Any, int]] = [(expression, 0)]
    while stack:
        node, depth = stack.pop()
        if is_operator_node(node):
            name, operands = next(iter(node.items()))
            if name == "var":
                children, level = [], depth
            else:
                children = operands if isinstance(operands, list) else [operands]
                level = depth + 1
        elif isinstance(node, list):
            children, level = node, depth + 1
        else:
            children, level = [], depth
        if level > deepest:
            deepest = level
            if limit is not None and deepest > limit:
                return deepest
        stack.extend((child, level) for child in children)
    return deepest


class ExpressionWalker:
    """Evaluates an expression tree against a data context using one registry"""

    def __init__(self, registry: OperatorRegistry):
        self.registry = registry

    def __call__(self, expression: Any, data: Any) -> Any:
        if isinstance(expression, list):
            return [self(item, data) for item in expression]
        if not is_operator_node(expression):
            return expression

        name, operands = next(iter(expression.items()))
        operands = operands if isinstance(operands, list) else [operands]

        operator = self.registry.get(name)
        if operator is None:
            raise UnknownOperatorError(name)
        if is_lazy(operator):
            return operator(self, data, operands)
        return operator(*[self(operand, data) for operand in operands])


class RuleEvaluator:
    """Evaluates rule expressions in lenient or strict mode"""

    def __init__(self, registry: Optional[OperatorRegistry] = None, settings: Optional[Settings] = None):
        self.registry = registry if registry is not None else default_registry
        self.settings = settings or app_settings
        self.default_options = EvaluationOptions.from_settings(self.settings)

    def _resolve_options(self, options: Union[EvaluationOptions, Dict[str, Any], None]) -> EvaluationOptions:
        if options is None:
            return self.default_options
        if isinstance(options, EvaluationOptions):
            return options
        return EvaluationOptions.model_validate({**self.default_options.model_dump(), **options})

    def _error(self, code: str, message: str, expression: Any = None, context: Any = None,
               trace: Optional[str] = None) -> RuleEvaluationError:
        data = dict(context) if isinstance(context, Mapping) else None
        return RuleEvaluationError(
            EvaluationError(message=message, code=code, rule=expression, data=data, trace=trace)
        )

    def _check(self, expression: Any, context: Any, max_depth: int) -> None:
        """Validate inputs and reject expressions deeper than max_depth"""
        if expression is None:
            raise self._error(EVAL_INVALID_RULE, "Rule expression cannot be null", expression, context)
        if not isinstance(expression, _LITERAL_TYPES):
            raise self._error(
                EVAL_INVALID_RULE,
                f"Rule expression must be JSON data, got {type(expression).__name__}",
                None,
                context,
            )
        if context is None or not isinstance(context, Mapping):
            raise self._error(EVAL_INVALID_DATA, "Evaluation context must be a mapping", expression, None)

        depth = calculate_depth(expression, limit=max_depth)
        if depth > max_depth:
            raise self._error(
                EVAL_MAX_DEPTH,
                f"Rule expression depth {depth} exceeds maximum of {max_depth}",
                expression,
                context,
            )

    def _walk(self, registry: OperatorRegistry, expression: Any, context: Mapping) -> Any:
        try:
            return ExpressionWalker(registry)(expression, context)
        except UnknownOperatorError as e:
            logger.warning(f"Unknown operator in rule expression: {e.name}")
            raise self._error(EVAL_OPERATOR_ERROR, str(e), expression, context, traceback.format_exc())
        except RecursionError as e:
            raise self._error(EVAL_UNKNOWN, f"Rule expression too deeply nested: {e}", expression, context)
        except Exception as e:
            raise self._error(EVAL_OPERATOR_ERROR, str(e) or type(e).__name__, expression, context,
                              traceback.format_exc())

    def _start_walk(self, registry: OperatorRegistry, expression: Any, context: Mapping) -> asyncio.Future:
        """
        Run the tree walk on its own daemon thread

        A walk that overruns its deadline keeps only its own thread busy and
        never holds up other evaluations or interpreter exit.
        """
        loop = asyncio.get_running_loop()
        future = loop.create_future()

        def resolve(result: Any, error: Optional[Exception]) -> None:
            if future.done():
                return
            if error is not None:
                future.set_exception(error)
            else:
                future.set_result(result)

        def run() -> None:
            result, error = None, None
            try:
                result = self._walk(registry, expression, context)
            except Exception as e:
                error = e
            try:
                loop.call_soon_threadsafe(resolve, result, error)
            except RuntimeError:
                # Loop already closed after a timeout
                logger.debug("Discarding result of a rule evaluation that finished after its loop closed")

        threading.Thread(target=run, name="rule-eval", daemon=True).start()
        return future

    def _success(self, result: Any, context: Mapping, options: EvaluationOptions,
                 started: float) -> EvaluationOutcome:
        return EvaluationOutcome(
            success=True,
            result=result,
            execution_time_ms=(time.perf_counter() - started) * 1000 if options.measure_time else None,
            context=dict(context) if options.capture_context else None,
        )

    def _failure(self, error: RuleEvaluationError, context: Any, options: EvaluationOptions,
                 started: float) -> EvaluationOutcome:
        return EvaluationOutcome(
            success=False,
            result=False,
            error=error.details.message,
            error_details=error.details,
            execution_time_ms=(time.perf_counter() - started) * 1000 if options.measure_time else None,
            context=dict(context) if options.capture_context and isinstance(context, Mapping) else None,
        )

    async def evaluate(
        self,
        expression: Any,
        context: Any,
        options: Union[EvaluationOptions, Dict[str, Any], None] = None,
    ) -> EvaluationOutcome:
        """
        Evaluate one expression against a context with depth and timeout guards

        The tree walk runs on its own daemon thread and is raced against the
        deadline. A walk that finishes after the deadline is discarded.

        Args:
            expression: JSON Logic expression
            context: Mapping the expression reads from
            options: EvaluationOptions or a dict of overrides (validated;
                invalid values raise pydantic.ValidationError)

        Returns:
            EvaluationOutcome (raises RuleEvaluationError in strict mode)
        """
        opts = self._resolve_options(options)
        started = time.perf_counter()
        # Per-call operators live on a snapshot and never reach the shared registry
        registry = self.registry.merged(opts.custom_operators)

        try:
            self._check(expression, context, opts.max_depth)
            future = self._start_walk(registry, expression, context)
            try:
                result = await asyncio.wait_for(future, timeout=opts.timeout_ms / 1000)
            except asyncio.TimeoutError:
                logger.warning(f"Rule evaluation timed out after {opts.timeout_ms}ms")
                raise self._error(
                    EVAL_TIMEOUT,
                    f"Rule evaluation timed out after {opts.timeout_ms}ms",
                    expression,
                    context,
                )
        except RuleEvaluationError as error:
            if opts.strict:
                raise
            logger.debug(f"Rule evaluation failed ({error.code}): {error}")
            return self._failure(error, context, opts, started)
        except Exception as e:
            error = self._error(EVAL_UNKNOWN, str(e) or type(e).__name__, expression, context,
                                traceback.format_exc())
            if opts.strict:
                raise error from e
            logger.error(f"Unexpected error during rule evaluation: {e}")
            return self._failure(error, context, opts, started)

        return self._success(result, context, opts, started)

    def evaluate_sync(self, expression: Any, context: Any) -> EvaluationOutcome:
        """
        Evaluate without a deadline against the shared registry

        Used for per-rule evaluation inside a program run; operators must
        already be registered for the batch. Always lenient.
        """
        opts = self.default_options
        started = time.perf_counter()
        try:
            self._check(expression, context, opts.max_depth)
            result = self._walk(self.registry, expression, context)
        except RuleEvaluationError as error:
            logger.debug(f"Rule evaluation failed ({error.code}): {error}")
            return self._failure(error, context, opts, started)
        return self._success(result, context, opts, started)

    async def batch_evaluate(
        self,
        expressions: Iterable[Any],
        context: Any,
        options: Union[EvaluationOptions, Dict[str, Any], None] = None,
    ) -> List[EvaluationOutcome]:
        """Evaluate several expressions against one context; output order matches input"""
        expressions = list(expressions)
        outcomes = await asyncio.gather(*[self.evaluate(e, context, options) for e in expressions])
        succeeded = len([o for o in outcomes if o.success])
        logger.info(f"Batch evaluation completed: {succeeded}/{len(outcomes)} expressions succeeded")
        return list(outcomes)

    async def evaluate_multiple(
        self,
        pairs: Iterable[Tuple[Any, Any]],
        options: Union[EvaluationOptions, Dict[str, Any], None] = None,
    ) -> List[EvaluationOutcome]:
        """Evaluate (expression, context) pairs; output order matches input"""
        pairs = list(pairs)
        outcomes = await asyncio.gather(*[self.evaluate(e, c, options) for e, c in pairs])
        succeeded = len([o for o in outcomes if o.success])
        logger.info(f"Multiple evaluation completed: {succeeded}/{len(outcomes)} pairs succeeded")
        return list(outcomes)


# Global evaluator instance
rule_evaluator = RuleEvaluator()
