"""
docagg Operators - Expression operator implementations and registry.

Operators are registered by name with the @operator decorator and looked
up by the expression evaluator. Each implementation receives the
unevaluated operator node so it can control argument evaluation
(short-circuiting boolean operators, switch, lenient ifNull).

Operator groups:
- Array: size, arrayElemAt, setIntersection, in, isArray, array
- Null handling: ifNull
- Conditional: switch, cond
- Comparison: eq, ne, gt, gte, lt, lte
- Boolean: and, or, not
- Document: object
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from .expressions import (
    MISSING,
    OperatorExpr,
    SwitchExpr,
    compare_values,
    contains_value,
    evaluate,
    evaluate_args,
    is_sequence,
    is_truthy,
    values_equal,
)
from ..docagg_exceptions import ExpressionTypeError, NoMatchingCaseError, StageError


OperatorFn = Callable[[Any, Any, Any, bool], Any]


@dataclass(frozen=True)
class OperatorSpec:
    """Registered operator: implementation plus accepted argument counts.

    ``arity`` fixes the exact count; ``min_args`` bounds variadic operators.

    ::: This is-in-layer Domain-Specific-Language-Layer.
    ::: This is a value-object.
    ::: This is stateless.
    """
    name: str
    fn: OperatorFn
    arity: Optional[int] = None
    min_args: int = 0

    def check_arity(self, count: int) -> None:
        if self.arity is not None and count != self.arity:
            raise StageError(
                f"${self.name} takes {self.arity} argument(s), got {count}"
            )
        if count < self.min_args:
            raise StageError(
                f"${self.name} takes at least {self.min_args} argument(s), got {count}"
            )


class OperatorRegistry:
    """
    Global registry of expression operators.

    Example:
        @operator("size", arity=1)
        def op_size(expr, doc, ctx, lenient): ...

        spec = OperatorRegistry.get("size")
    """

    _operators: Dict[str, OperatorSpec] = {}

    @classmethod
    def register(cls, spec: OperatorSpec) -> None:
        cls._operators[spec.name] = spec

    @classmethod
    def get(cls, name: str) -> Optional[OperatorSpec]:
        return cls._operators.get(name)

    @classmethod
    def names(cls) -> List[str]:
        return sorted(cls._operators)


def operator(name: str, *, arity: Optional[int] = None, min_args: int = 0) -> Callable[[OperatorFn], OperatorFn]:
    """Decorator registering an operator implementation under ``name``."""
    def decorator(fn: OperatorFn) -> OperatorFn:
        OperatorRegistry.register(OperatorSpec(name, fn, arity, min_args))
        return fn
    return decorator


def get_operator(name: str) -> OperatorSpec:
    spec = OperatorRegistry.get(name)
    if spec is None:
        raise StageError(f"Unknown operator: ${name}")
    return spec


def _require_sequence(op: str, value: Any, position: str = "argument") -> None:
    if not is_sequence(value):
        shown = "missing value" if value is MISSING else type(value).__name__
        raise ExpressionTypeError(f"${op} {position} must be an array, got {shown}")


# ============================================================
# ARRAY OPERATORS
# ============================================================

@operator("size", arity=1)
def op_size(expr: OperatorExpr, doc, ctx, lenient):
    (value,) = evaluate_args(expr, doc, ctx, lenient)
    _require_sequence("size", value)
    return len(value)


@operator("arrayElemAt", arity=2)
def op_array_elem_at(expr: OperatorExpr, doc, ctx, lenient):
    array, index = evaluate_args(expr, doc, ctx, lenient)
    if array is MISSING or array is None:
        return MISSING
    _require_sequence("arrayElemAt", array, "first argument")
    if isinstance(index, bool) or not isinstance(index, int):
        if isinstance(index, float) and index.is_integer():
            index = int(index)
        else:
            raise ExpressionTypeError(
                f"$arrayElemAt index must be an integer, got {type(index).__name__}"
            )
    if -len(array) <= index < len(array):
        return array[index]
    return MISSING


@operator("setIntersection", arity=2)
def op_set_intersection(expr: OperatorExpr, doc, ctx, lenient):
    first, second = evaluate_args(expr, doc, ctx, lenient)
    _require_sequence("setIntersection", first, "first argument")
    _require_sequence("setIntersection", second, "second argument")
    result = []
    for item in first:
        if contains_value(second, item) and not contains_value(result, item):
            result.append(item)
    return result


@operator("in", arity=2)
def op_in(expr: OperatorExpr, doc, ctx, lenient):
    value, array = evaluate_args(expr, doc, ctx, lenient)
    _require_sequence("in", array, "second argument")
    return contains_value(array, value)


@operator("isArray", arity=1)
def op_is_array(expr: OperatorExpr, doc, ctx, lenient):
    (value,) = evaluate_args(expr, doc, ctx, lenient)
    return is_sequence(value)


@operator("array")
def op_array(expr: OperatorExpr, doc, ctx, lenient):
    return [None if v is MISSING else v for v in evaluate_args(expr, doc, ctx, lenient)]


# ============================================================
# NULL HANDLING
# ============================================================

@operator("ifNull", arity=2)
def op_if_null(expr: OperatorExpr, doc, ctx, lenient):
    value = evaluate(expr.args[0], doc, ctx, lenient=True)
    if value is MISSING or value is None:
        return evaluate(expr.args[1], doc, ctx, lenient)
    return value


# ============================================================
# CONDITIONALS
# ============================================================

@operator("switch")
def op_switch(expr: SwitchExpr, doc, ctx, lenient):
    if not isinstance(expr, SwitchExpr):
        raise StageError("$switch requires branches; build it as a SwitchExpr")
    for branch in expr.branches:
        if is_truthy(evaluate(branch.case, doc, ctx, lenient)):
            return evaluate(branch.then, doc, ctx, lenient)
    if expr.default is None:
        raise NoMatchingCaseError(
            "$switch could not find a matching branch and no default was given"
        )
    return evaluate(expr.default, doc, ctx, lenient)


@operator("cond", arity=3)
def op_cond(expr: OperatorExpr, doc, ctx, lenient):
    if_expr, then_expr, else_expr = expr.args
    if is_truthy(evaluate(if_expr, doc, ctx, lenient)):
        return evaluate(then_expr, doc, ctx, lenient)
    return evaluate(else_expr, doc, ctx, lenient)


# ============================================================
# COMPARISON
# ============================================================

@operator("eq", arity=2)
def op_eq(expr: OperatorExpr, doc, ctx, lenient):
    a, b = evaluate_args(expr, doc, ctx, lenient)
    return values_equal(a, b)


@operator("ne", arity=2)
def op_ne(expr: OperatorExpr, doc, ctx, lenient):
    a, b = evaluate_args(expr, doc, ctx, lenient)
    return not values_equal(a, b)


def _comparison(name: str, accept: Callable[[int], bool]) -> OperatorFn:
    def compare(expr: OperatorExpr, doc, ctx, lenient):
        a, b = evaluate_args(expr, doc, ctx, lenient)
        return accept(compare_values(f"${name}", a, b))
    compare.__name__ = f"op_{name}"
    return operator(name, arity=2)(compare)


op_gt = _comparison("gt", lambda c: c > 0)
op_gte = _comparison("gte", lambda c: c >= 0)
op_lt = _comparison("lt", lambda c: c < 0)
op_lte = _comparison("lte", lambda c: c <= 0)


# ============================================================
# BOOLEAN
# ============================================================

@operator("and", min_args=1)
def op_and(expr: OperatorExpr, doc, ctx, lenient):
    return all(is_truthy(evaluate(arg, doc, ctx, lenient)) for arg in expr.args)


@operator("or", min_args=1)
def op_or(expr: OperatorExpr, doc, ctx, lenient):
    return any(is_truthy(evaluate(arg, doc, ctx, lenient)) for arg in expr.args)


@operator("not", arity=1)
def op_not(expr: OperatorExpr, doc, ctx, lenient):
    return not is_truthy(evaluate(expr.args[0], doc, ctx, lenient))


# ============================================================
# DOCUMENT
# ============================================================

@operator("object")
def op_object(expr: OperatorExpr, doc, ctx, lenient):
    """Build an embedded document from alternating key/value arguments."""
    if len(expr.args) % 2:
        raise StageError("$object takes key/value argument pairs")
    result = {}
    for i in range(0, len(expr.args), 2):
        key = evaluate(expr.args[i], doc, ctx, lenient)
        value = evaluate(expr.args[i + 1], doc, ctx, lenient)
        if value is not MISSING:
            result[key] = value
    return result


__all__ = [
    "OperatorSpec",
    "OperatorRegistry",
    "operator",
    "get_operator",
]
