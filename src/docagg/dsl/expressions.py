"""
Expression trees evaluated per document.

An expression is one of:
- Literal: a constant value
- FieldRef: a dotted path into the current document
- OperatorExpr: a named operator applied to argument expressions
- SwitchExpr: ordered (case, then) branches with an optional default

Evaluation never mutates the document it reads. Operator implementations
live in ``operators.py`` and are looked up by name at evaluation time.
"""

from __future__ import annotations

import datetime
import numbers
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Tuple, Union

from .catpy import Just, Maybe, Nothing
from ..docagg_exceptions import ExpressionTypeError, StageError


class _Missing:
    """Sentinel for an absent value, distinct from None (null)."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False

    def __copy__(self):
        return self

    def __deepcopy__(self, memo):
        return self


MISSING = _Missing()


# =============================================================================
# Expression nodes
# =============================================================================

@dataclass(frozen=True)
class Literal:
    """Constant value.

    ::: This is-in-layer Domain-Specific-Language-Layer.
    ::: This is a value-object.
    ::: This is stateless.
    """
    value: Any


@dataclass(frozen=True)
class FieldRef:
    """Reference to a (possibly dotted) field of the current document.

    ``required`` refs raise StageError when the path does not resolve and
    strict field checking is on; non-required refs read as MISSING.

    ::: This is-in-layer Domain-Specific-Language-Layer.
    ::: This is a value-object.
    ::: This is stateless.
    """
    path: str
    required: bool = True


@dataclass(frozen=True)
class OperatorExpr:
    """Operator node: ``name`` applied to positional ``args``.

    ::: This is-in-layer Domain-Specific-Language-Layer.
    ::: This is a value-object.
    ::: This is stateless.
    """
    name: str
    args: Tuple["Expression", ...] = ()


@dataclass(frozen=True)
class SwitchBranch:
    case: "Expression"
    then: "Expression"


@dataclass(frozen=True)
class SwitchExpr:
    """Multi-branch conditional.

    ::: This is-in-layer Domain-Specific-Language-Layer.
    ::: This is a value-object.
    ::: This is stateless.
    """
    branches: Tuple[SwitchBranch, ...]
    default: Optional["Expression"] = None

    @property
    def name(self) -> str:
        return "switch"


Expression = Union[Literal, FieldRef, OperatorExpr, SwitchExpr]

EXPRESSION_TYPES = (Literal, FieldRef, OperatorExpr, SwitchExpr)


def is_expression(value: Any) -> bool:
    return isinstance(value, EXPRESSION_TYPES)


# =============================================================================
# Value helpers
# =============================================================================

def is_sequence(value: Any) -> bool:
    """Arrays are lists or tuples; strings and documents are not sequences."""
    return isinstance(value, (list, tuple))


def is_number(value: Any) -> bool:
    return isinstance(value, numbers.Number) and not isinstance(value, bool)


def is_truthy(value: Any) -> bool:
    """Truthiness used by match, switch, cond and the boolean operators."""
    if value is MISSING or value is None or value is False:
        return False
    if is_number(value):
        return value != 0
    if is_sequence(value):
        return len(value) > 0
    return True


def values_equal(a: Any, b: Any) -> bool:
    """Equality by value. Booleans never equal numbers."""
    if a is MISSING or b is MISSING:
        return a is b
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool) and a == b
    if is_sequence(a) and is_sequence(b):
        return len(a) == len(b) and all(values_equal(x, y) for x, y in zip(a, b))
    if isinstance(a, Mapping) and isinstance(b, Mapping):
        if list(a.keys()) != list(b.keys()):
            return False
        return all(values_equal(a[k], b[k]) for k in a)
    if is_sequence(a) or is_sequence(b) or isinstance(a, Mapping) or isinstance(b, Mapping):
        return False
    return a == b


def contains_value(sequence: Any, value: Any) -> bool:
    return any(values_equal(item, value) for item in sequence)


_ORDERED_KINDS = (
    ("number", is_number),
    ("string", lambda v: isinstance(v, str)),
    ("boolean", lambda v: isinstance(v, bool)),
    ("datetime", lambda v: isinstance(v, datetime.datetime)),
    ("date", lambda v: isinstance(v, datetime.date) and not isinstance(v, datetime.datetime)),
)


def _kind(value: Any) -> Optional[str]:
    for name, check in _ORDERED_KINDS:
        if check(value):
            return name
    return None


def compare_values(op: str, a: Any, b: Any) -> int:
    """Three-way compare two values of the same ordinal kind."""
    kind_a, kind_b = _kind(a), _kind(b)
    if kind_a is None or kind_a != kind_b:
        raise ExpressionTypeError(
            f"{op} cannot compare {_describe(a)} with {_describe(b)}"
        )
    if a < b:
        return -1
    if a > b:
        return 1
    return 0


def _describe(value: Any) -> str:
    if value is MISSING:
        return "missing value"
    return type(value).__name__


# =============================================================================
# Field resolution
# =============================================================================

def resolve_path(document: Mapping[str, Any], path: str) -> Maybe[Any]:
    """
    Resolve a dotted path against a document.

    Traversing through an array maps the rest of the path over its
    document elements, so ``books.title`` yields the list of titles.
    """
    return _resolve_parts(document, path.split("."))


def _resolve_parts(value: Any, parts) -> Maybe[Any]:
    if not parts:
        return Just(value)
    head, rest = parts[0], parts[1:]
    if isinstance(value, Mapping):
        if head not in value:
            return Nothing()
        return _resolve_parts(value[head], rest)
    if is_sequence(value):
        collected = []
        for item in value:
            if isinstance(item, Mapping):
                found = _resolve_parts(item, parts)
                if found.is_just():
                    collected.append(found.get_or_else(None))
        return Just(collected)
    return Nothing()


# =============================================================================
# Evaluation
# =============================================================================

def evaluate(expr: Expression, document: Mapping[str, Any], ctx=None, lenient: bool = False) -> Any:
    """
    Evaluate an expression against a document.

    Args:
        expr: Expression tree
        document: Current document (read only)
        ctx: Optional pipeline Context; supplies ``strict_fields``
        lenient: Treat unresolved field references as MISSING

    Returns:
        The computed value, or MISSING for an absent result
    """
    if isinstance(expr, Literal):
        return expr.value

    if isinstance(expr, FieldRef):
        found = resolve_path(document, expr.path)
        if found.is_just():
            return found.get_or_else(None)
        strict = ctx.settings.strict_fields if ctx is not None else True
        if expr.required and strict and not lenient:
            raise StageError(f"Undefined field reference: ${expr.path}")
        return MISSING

    from .operators import get_operator

    if isinstance(expr, (OperatorExpr, SwitchExpr)):
        spec = get_operator(expr.name)
        if isinstance(expr, OperatorExpr):
            spec.check_arity(len(expr.args))
        return spec.fn(expr, document, ctx, lenient)

    raise StageError(f"Not an expression: {expr!r}")


def evaluate_args(expr: OperatorExpr, document, ctx, lenient: bool = False):
    """Evaluate all operator arguments eagerly, in order."""
    return [evaluate(arg, document, ctx, lenient) for arg in expr.args]


__all__ = [
    "MISSING",
    "Literal", "FieldRef", "OperatorExpr", "SwitchBranch", "SwitchExpr",
    "Expression", "is_expression",
    "is_sequence", "is_number", "is_truthy",
    "values_equal", "contains_value", "compare_values",
    "resolve_path", "evaluate", "evaluate_args",
]
