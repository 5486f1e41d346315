"""
docagg Exception Hierarchy

Contains all exception classes raised by the aggregation evaluator.
"""


class DocAggError(Exception):
    """
    Base exception for all evaluator operations.

    ::: This is-in-layer Utility-Layer.
    ::: This is a exception.
    ::: This is-in-process Main-Process.
    ::: This is stateless.
    """
    pass


class StageError(DocAggError):
    """
    Raised for malformed stage configuration, unknown operators, wrong
    operator arity, and field references that cannot be resolved.

    ::: This is-in-layer Utility-Layer.
    ::: This is a exception.
    ::: This is-in-process Main-Process.
    ::: This is stateless.
    """
    pass


class ExpressionTypeError(DocAggError, TypeError):
    """
    Raised when an operator is applied to a value of the wrong shape,
    e.g. ``size`` on a scalar.

    Subclasses the builtin TypeError so callers can catch either.

    ::: This is-in-layer Utility-Layer.
    ::: This is a exception.
    ::: This is-in-process Main-Process.
    ::: This is stateless.
    """
    pass


class NoMatchingCaseError(DocAggError):
    """
    Raised by ``switch`` when no branch case is truthy and no default is given.

    ::: This is-in-layer Utility-Layer.
    ::: This is a exception.
    ::: This is-in-process Main-Process.
    ::: This is stateless.
    """
    pass


__all__ = [
    "DocAggError",
    "StageError",
    "ExpressionTypeError",
    "NoMatchingCaseError",
]
