"""
docagg - Document aggregation evaluator

Runs small declarative pipelines (lookup, match, project, set) over
in-memory document collections, with an expression engine for derived
fields and set-membership checks.
"""

import logging

__version__ = "0.1.0"

from .docagg_exceptions import (
    DocAggError,
    StageError,
    ExpressionTypeError,
    NoMatchingCaseError,
)
from .dsl import (
    Context,
    Pipeline,
    run,
    MISSING,
    Literal,
    FieldRef,
    OperatorExpr,
    SwitchBranch,
    SwitchExpr,
    compile_pipeline,
    compile_expression,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "DocAggError",
    "StageError",
    "ExpressionTypeError",
    "NoMatchingCaseError",
    "Context",
    "Pipeline",
    "run",
    "MISSING",
    "Literal",
    "FieldRef",
    "OperatorExpr",
    "SwitchBranch",
    "SwitchExpr",
    "compile_pipeline",
    "compile_expression",
]
