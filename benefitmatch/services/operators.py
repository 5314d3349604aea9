"""
Operator registry and operator implementations for rule expressions

Operators are plain callables receiving already-evaluated operands. Operators
flagged with ``@lazy_operator`` instead receive ``(walk, data, operands)`` with
the raw operand expressions, so they control evaluation themselves (control flow,
context access, array iteration).
"""
import logging
import threading
from contextlib import contextmanager
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional

from ..utils.context import calculate_age

logger = logging.getLogger(__name__)

OperatorFunc = Callable[..., Any]


class OperatorError(Exception):
    """Raised when an operator cannot be applied"""


class UnknownOperatorError(OperatorError):
    """Raised when an expression references an operator that is not registered"""

    def __init__(self, name: str):
        super().__init__(f"Unrecognized operation {name}")
        self.name = name


def lazy_operator(func: OperatorFunc) -> OperatorFunc:
    """Mark an operator as receiving unevaluated operands"""
    func.lazy = True
    return func


def is_lazy(func: OperatorFunc) -> bool:
    return getattr(func, "lazy", False)


# Value helpers

def truthy(value: Any) -> bool:
    """JSON Logic truthiness: empty arrays are false, everything else follows Python"""
    if isinstance(value, (list, tuple)):
        return len(value) > 0
    return bool(value)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def to_number(value: Any) -> float:
    """Coerce an operand to a number, raising OperatorError when impossible"""
    if isinstance(value, bool):
        return int(value)
    if _is_number(value):
        return value
    if isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            raise OperatorError(f"Cannot convert {value!r} to a number")
        return int(number) if number.is_integer() and "." not in value else number
    raise OperatorError(f"Cannot convert {value!r} to a number")


def _to_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def loose_equals(a: Any, b: Any) -> bool:
    """Loose equality: numbers and numeric strings compare by value"""
    if a is None or b is None:
        return a is None and b is None
    if isinstance(a, str) and isinstance(b, str):
        return a == b
    if isinstance(a, (bool, int, float)) or isinstance(b, (bool, int, float)):
        try:
            return to_number(a) == to_number(b)
        except OperatorError:
            return False
    return a == b


def strict_equals(a: Any, b: Any) -> bool:
    """Strict equality: same kind of value and equal"""
    if _is_number(a) and _is_number(b):
        return a == b
    return type(a) is type(b) and a == b


def _compare(a: Any, b: Any, check: Callable[[Any, Any], bool]) -> bool:
    # Absent values never satisfy a comparison
    if a is None or b is None:
        return False
    if isinstance(a, str) and isinstance(b, str):
        return check(a, b)
    try:
        return check(to_number(a), to_number(b))
    except OperatorError:
        return False


def _parse_date(value: Any) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str) and value.strip():
        text = value.strip().replace("Z", "+00:00")
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            raise OperatorError(f"Invalid date: {value!r}")
    else:
        raise OperatorError(f"Invalid date: {value!r}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


# Standard operators

def _eq(a, b):
    """Equal operator"""
    return loose_equals(a, b)


def _ne(a, b):
    """Not equal operator"""
    return not loose_equals(a, b)


def _strict_eq(a, b):
    return strict_equals(a, b)


def _strict_ne(a, b):
    return not strict_equals(a, b)


def _gt(a, b):
    """Greater than operator"""
    return _compare(a, b, lambda x, y: x > y)


def _gte(a, b):
    """Greater than or equal operator"""
    return _compare(a, b, lambda x, y: x >= y)


def _lt(a, b, *rest):
    """Less than operator; with three operands checks a < b < c"""
    if rest:
        return _compare(a, b, lambda x, y: x < y) and _compare(b, rest[0], lambda x, y: x < y)
    return _compare(a, b, lambda x, y: x < y)


def _lte(a, b, *rest):
    """Less than or equal operator; with three operands checks a <= b <= c"""
    if rest:
        return _compare(a, b, lambda x, y: x <= y) and _compare(b, rest[0], lambda x, y: x <= y)
    return _compare(a, b, lambda x, y: x <= y)


def _not(a=None):
    return not truthy(a)


def _double_not(a=None):
    return truthy(a)


def _add(*args):
    return sum(to_number(a) for a in args)


def _subtract(a, b=None):
    if b is None:
        return -to_number(a)
    return to_number(a) - to_number(b)


def _multiply(*args):
    result = 1
    for a in args:
        result *= to_number(a)
    return result


def _divide(a, b):
    divisor = to_number(b)
    if divisor == 0:
        raise OperatorError("Division by zero")
    return to_number(a) / divisor


def _modulo(a, b):
    divisor = to_number(b)
    if divisor == 0:
        raise OperatorError("Modulo by zero")
    return to_number(a) % divisor


def _min(*args):
    if not args:
        return None
    return min(to_number(a) for a in args)


def _max(*args):
    if not args:
        return None
    return max(to_number(a) for a in args)


def _cat(*args):
    return "".join(_to_text(a) for a in args)


def _substr(source, start, length=None):
    text = _to_text(source)
    start = int(to_number(start))
    if start < 0:
        start = max(len(text) + start, 0)
    if length is None:
        return text[start:]
    length = int(to_number(length))
    if length < 0:
        return text[start:len(text) + length]
    return text[start:start + length]


def _in(a, b):
    """In operator"""
    if isinstance(b, (list, tuple)):
        return a in b
    if isinstance(b, str):
        return _to_text(a) in b
    return False


def _merge(*args):
    merged: List[Any] = []
    for a in args:
        if isinstance(a, (list, tuple)):
            merged.extend(a)
        else:
            merged.append(a)
    return merged


def _log(value=None):
    logger.info(f"Rule log: {value!r}")
    return value


# Lazy standard operators

def _lookup(data: Any, path: Any, default: Any = None) -> Any:
    if path is None or path == "" or path == []:
        return data
    current = data
    for part in str(path).split("."):
        if current is None:
            return default
        if isinstance(current, Mapping):
            if part not in current:
                return default
            current = current[part]
        elif isinstance(current, (list, tuple)):
            try:
                current = current[int(part)]
            except (ValueError, IndexError):
                return default
        else:
            return default
    return current


@lazy_operator
def _var(walk, data, args):
    path = walk(args[0], data) if args else None
    default = walk(args[1], data) if len(args) > 1 else None
    return _lookup(data, path, default)


def _missing_keys(walk, data, args) -> List[Any]:
    keys = [walk(a, data) for a in args]
    if keys and isinstance(keys[0], list):
        keys = keys[0]
    missing = []
    for key in keys:
        value = _lookup(data, key)
        if value is None or value == "":
            missing.append(key)
    return missing


@lazy_operator
def _missing(walk, data, args):
    return _missing_keys(walk, data, args)


@lazy_operator
def _missing_some(walk, data, args):
    if len(args) != 2:
        raise OperatorError("missing_some expects a minimum count and a list of keys")
    need = int(to_number(walk(args[0], data)))
    keys = walk(args[1], data) or []
    missing = _missing_keys(walk, data, [keys])
    if len(keys) - len(missing) >= need:
        return []
    return missing


@lazy_operator
def _if(walk, data, args):
    # Pairs of (condition, value) with an optional trailing else value
    index = 0
    while index < len(args) - 1:
        if truthy(walk(args[index], data)):
            return walk(args[index + 1], data)
        index += 2
    if index == len(args) - 1:
        return walk(args[index], data)
    return None


@lazy_operator
def _and(walk, data, args):
    value = None
    for arg in args:
        value = walk(arg, data)
        if not truthy(value):
            return value
    return value


@lazy_operator
def _or(walk, data, args):
    value = None
    for arg in args:
        value = walk(arg, data)
        if truthy(value):
            return value
    return value


def _scope_items(walk, data, args) -> List[Any]:
    items = walk(args[0], data) if args else None
    if items is None:
        return []
    if not isinstance(items, (list, tuple)):
        raise OperatorError(f"Expected an array, got {type(items).__name__}")
    return list(items)


@lazy_operator
def _map(walk, data, args):
    body = args[1] if len(args) > 1 else None
    return [walk(body, item) for item in _scope_items(walk, data, args)]


@lazy_operator
def _filter(walk, data, args):
    body = args[1] if len(args) > 1 else None
    return [item for item in _scope_items(walk, data, args) if truthy(walk(body, item))]


@lazy_operator
def _reduce(walk, data, args):
    body = args[1] if len(args) > 1 else None
    accumulator = walk(args[2], data) if len(args) > 2 else None
    for item in _scope_items(walk, data, args):
        accumulator = walk(body, {"current": item, "accumulator": accumulator})
    return accumulator


@lazy_operator
def _all(walk, data, args):
    items = _scope_items(walk, data, args)
    if not items:
        return False
    body = args[1] if len(args) > 1 else None
    return all(truthy(walk(body, item)) for item in items)


@lazy_operator
def _some(walk, data, args):
    body = args[1] if len(args) > 1 else None
    return any(truthy(walk(body, item)) for item in _scope_items(walk, data, args))


@lazy_operator
def _none(walk, data, args):
    body = args[1] if len(args) > 1 else None
    return not any(truthy(walk(body, item)) for item in _scope_items(walk, data, args))


STANDARD_OPERATORS: Dict[str, OperatorFunc] = {
    "var": _var,
    "missing": _missing,
    "missing_some": _missing_some,
    "if": _if,
    "?:": _if,
    "and": _and,
    "or": _or,
    "!": _not,
    "!!": _double_not,
    "==": _eq,
    "===": _strict_eq,
    "!=": _ne,
    "!==": _strict_ne,
    ">": _gt,
    ">=": _gte,
    "<": _lt,
    "<=": _lte,
    "+": _add,
    "-": _subtract,
    "*": _multiply,
    "/": _divide,
    "%": _modulo,
    "min": _min,
    "max": _max,
    "cat": _cat,
    "substr": _substr,
    "in": _in,
    "merge": _merge,
    "map": _map,
    "filter": _filter,
    "reduce": _reduce,
    "all": _all,
    "some": _some,
    "none": _none,
    "log": _log,
}


# Benefit domain operators

SNAP_GROSS_INCOME_LIMITS = {
    1: 1696,
    2: 2292,
    3: 2888,
    4: 3483,
    5: 4079,
    6: 4675,
    7: 5271,
    8: 5867,
}
SNAP_ADDITIONAL_MEMBER_AMOUNT = 596


def snap_income_threshold(household_size: Any) -> int:
    """
    Monthly SNAP gross income limit (130% of the federal poverty level, 2024)

    Args:
        household_size: Number of people in the household

    Returns:
        Monthly income limit in dollars
    """
    size = int(to_number(household_size))
    if size < 1:
        raise OperatorError(f"Household size must be at least 1, got {household_size!r}")
    if size <= 8:
        return SNAP_GROSS_INCOME_LIMITS[size]
    return SNAP_GROSS_INCOME_LIMITS[8] + SNAP_ADDITIONAL_MEMBER_AMOUNT * (size - 8)


def between(value, minimum, maximum):
    """Between operator - inclusive on both ends"""
    if value is None or minimum is None or maximum is None:
        return False
    return to_number(minimum) <= to_number(value) <= to_number(maximum)


def within_percent(value, target, percent):
    """Whether value is within percent of target"""
    value, target, percent = to_number(value), to_number(target), to_number(percent)
    return abs(value - target) <= target * (percent / 100)


def age_from_dob(dob, today: Optional[date] = None):
    """Whole years between a date of birth and today"""
    return calculate_age(_parse_date(dob).date(), today)


def date_in_past(value):
    return _parse_date(value) < datetime.now(timezone.utc)


def date_in_future(value):
    return _parse_date(value) > datetime.now(timezone.utc)


def matches_any(value, candidates):
    """Case-insensitive membership test"""
    if value is None or not isinstance(candidates, (list, tuple)):
        return False
    needle = str(value).lower()
    return any(str(candidate).lower() == needle for candidate in candidates)


def count_true(items):
    return len([item for item in (items or []) if truthy(item)])


def all_true(items):
    return all(truthy(item) for item in (items or []))


def any_true(items):
    return any(truthy(item) for item in (items or []))


def snap_income_eligible(household_income, household_size):
    """Whether monthly household income is within the SNAP gross income limit"""
    if household_income is None or household_size is None:
        return False
    return to_number(household_income) <= snap_income_threshold(household_size)


@lazy_operator
def switch(walk, data, args):
    """
    Pick the first case whose value equals the switched value

    Operands: value, then case objects such as {"case": 1, "do": "a"} or
    {"default": "b"}.
    """
    if not args:
        return None
    value = walk(args[0], data)
    default = None
    for option in args[1:]:
        if not isinstance(option, Mapping):
            continue
        if "case" in option:
            if loose_equals(walk(option["case"], data), value):
                return walk(option.get("do"), data)
        elif "default" in option:
            default = option["default"]
    return walk(default, data)


BENEFIT_OPERATORS: Dict[str, OperatorFunc] = {
    "between": between,
    "within_percent": within_percent,
    "age_from_dob": age_from_dob,
    "date_in_past": date_in_past,
    "date_in_future": date_in_future,
    "matches_any": matches_any,
    "count_true": count_true,
    "all_true": all_true,
    "any_true": any_true,
    "snap_income_threshold_130_fpl": snap_income_threshold,
    "snap_income_eligible": snap_income_eligible,
    "switch": switch,
}


class OperatorRegistry:
    """Named operator table consulted by the expression walker"""

    def __init__(self, operators: Optional[Mapping[str, OperatorFunc]] = None):
        self._operators: Dict[str, OperatorFunc] = {}
        self._session_lock = threading.RLock()
        for name, func in (operators or {}).items():
            self.register(name, func)

    @classmethod
    def standard(cls) -> "OperatorRegistry":
        return cls(STANDARD_OPERATORS)

    @classmethod
    def with_benefit_operators(cls) -> "OperatorRegistry":
        registry = cls.standard()
        for name, func in BENEFIT_OPERATORS.items():
            registry.register(name, func)
        return registry

    def register(self, name: str, func: OperatorFunc) -> None:
        if not isinstance(name, str) or not name:
            raise ValueError("Operator name must be a non-empty string")
        if not callable(func):
            raise TypeError(f"Operator {name} must be callable")
        self._operators[name] = func

    def unregister(self, name: str) -> None:
        self._operators.pop(name, None)

    def get(self, name: str) -> Optional[OperatorFunc]:
        return self._operators.get(name)

    def names(self) -> frozenset:
        return frozenset(self._operators)

    def copy(self) -> "OperatorRegistry":
        return OperatorRegistry(self._operators)

    def merged(self, extra: Optional[Mapping[str, OperatorFunc]] = None) -> "OperatorRegistry":
        """Return a new registry with ``extra`` layered over this one"""
        registry = self.copy()
        for name, func in (extra or {}).items():
            registry.register(name, func)
        return registry

    @contextmanager
    def session(self, operators: Optional[Mapping[str, OperatorFunc]] = None) -> Iterator["OperatorRegistry"]:
        """
        Register operators for the duration of a batch

        Only names that were not already registered are added, and exactly
        those names are removed on exit, even if the body raises.

        Args:
            operators: Operators to register (defaults to BENEFIT_OPERATORS)
        """
        operators = BENEFIT_OPERATORS if operators is None else operators
        with self._session_lock:
            added = [name for name in operators if name not in self._operators]
            for name in added:
                self.register(name, operators[name])
            logger.debug(f"Operator session opened with {len(added)} operators")
            try:
                yield self
            finally:
                for name in added:
                    self.unregister(name)
                logger.debug(f"Operator session closed, removed {len(added)} operators")

    def __contains__(self, name: object) -> bool:
        return name in self._operators

    def __len__(self) -> int:
        return len(self._operators)


# Registry shared by callers that use the register/unregister session discipline
default_registry = OperatorRegistry.standard()
