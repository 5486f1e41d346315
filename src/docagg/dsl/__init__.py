"""
docagg DSL - declarative aggregation pipelines over in-memory documents.

Modules:
- catpy: Maybe / Result monads and PipelineError
- expressions: expression trees and their evaluation
- operators: operator implementations and registry
- stages: lookup, match, project, set, sort, skip, limit
- compiler: aggregation data structures -> stages and expressions
- core: Context, Pipeline, run
"""

from .catpy import (
    Maybe, Just, Nothing,
    Result, Ok, Err,
    PipelineError, PipelineResult,
    pipeline_ok, pipeline_err,
)
from .expressions import (
    MISSING,
    Literal, FieldRef, OperatorExpr, SwitchBranch, SwitchExpr,
    Expression,
    evaluate, is_truthy, values_equal,
)
from .operators import OperatorRegistry, operator
from .stages import (
    Stage,
    LookupStage, MatchStage, ProjectStage, SetStage,
    SortStage, SkipStage, LimitStage,
)
from .compiler import (
    compile_expression, compile_query, compile_projection,
    compile_stage, compile_pipeline,
)
from .documents import to_documents, to_arrow
from .core import Context, Pipeline, run

__all__ = [
    # Monads
    "Maybe", "Just", "Nothing",
    "Result", "Ok", "Err",
    "PipelineError", "PipelineResult",
    "pipeline_ok", "pipeline_err",
    # Expressions
    "MISSING",
    "Literal", "FieldRef", "OperatorExpr", "SwitchBranch", "SwitchExpr",
    "Expression",
    "evaluate", "is_truthy", "values_equal",
    "OperatorRegistry", "operator",
    # Stages
    "Stage",
    "LookupStage", "MatchStage", "ProjectStage", "SetStage",
    "SortStage", "SkipStage", "LimitStage",
    # Compiler
    "compile_expression", "compile_query", "compile_projection",
    "compile_stage", "compile_pipeline",
    # Documents
    "to_documents", "to_arrow",
    # Core
    "Context", "Pipeline", "run",
]
