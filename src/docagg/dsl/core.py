"""
docagg Core - Pipeline evaluation.

- Context: named foreign collections and evaluator settings
- Pipeline: an ordered, immutable sequence of stages with fluent builders
- run: evaluate a pipeline and return documents or raise the stage error

Stages are Kleisli arrows ``documents -> Result[documents, PipelineError]``;
the pipeline binds them in order so the first failing stage stops the run
and no partial output is returned.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from .catpy import PipelineResult, pipeline_err, pipeline_ok
from .compiler import compile_expression, compile_projection, compile_query, compile_stage
from .documents import Collection, Document, to_documents
from .expressions import Expression
from .stages import (
    LimitStage,
    LookupStage,
    MatchStage,
    SetStage,
    SkipStage,
    SortStage,
    Stage,
)
from ..docagg_exceptions import DocAggError, StageError
from ..services.config_loader import EvaluatorSettings, get_settings

logger = logging.getLogger(__name__)


# =============================================================================
# Pipeline Context
# =============================================================================

@dataclass
class Context:
    """Execution context for pipelines.

    ::: This is-in-layer Domain-Specific-Language-Layer.
    ::: This is a context.
    ::: This is-in-process Main-Process.
    ::: This is stateless.
    """
    collections: Dict[str, List[Document]] = field(default_factory=dict)
    settings: EvaluatorSettings = field(default_factory=EvaluatorSettings)

    @classmethod
    def create(cls, collections: Optional[Mapping[str, Collection]] = None,
               settings: Optional[EvaluatorSettings] = None) -> "Context":
        """Build a context, normalizing every collection to a list of dicts."""
        normalized = {
            name: to_documents(docs, f"collection '{name}'")
            for name, docs in (collections or {}).items()
        }
        return cls(collections=normalized, settings=settings or EvaluatorSettings())

    def get_collection(self, name: str) -> List[Document]:
        """Get a named collection for a lookup stage."""
        if name not in self.collections:
            raise StageError(f"Unknown collection: '{name}'")
        return self.collections[name]


StageLike = Union[Stage, Mapping[str, Any]]


# =============================================================================
# Pipeline
# =============================================================================

class Pipeline:
    """
    Ordered sequence of stages.

    Builder methods return a new Pipeline; an instance is never modified.

    Example:
        pipeline = (
            Pipeline()
            .lookup("books", local_field="email", foreign_field="authorEmail", as_field="books")
            .match({"books": {"$ne": []}})
            .project({"name": 1, "total_books": {"$size": "$books"}})
        )
        result = pipeline.run(authors, Context.create({"books": books}))

    ::: This is-in-layer Domain-Specific-Language-Layer.
    ::: This is a pipeline.
    ::: This is-in-process Main-Process.
    ::: This is stateless.
    """

    def __init__(self, stages: Optional[Iterable[StageLike]] = None):
        compiled = []
        for i, stage in enumerate(stages or ()):
            try:
                compiled.append(compile_stage(stage))
            except StageError as e:
                raise StageError(f"stage {i}: {e}") from e
        self._stages: tuple = tuple(compiled)

    @property
    def stages(self) -> Sequence[Stage]:
        return self._stages

    def __len__(self) -> int:
        return len(self._stages)

    def __repr__(self) -> str:
        return f"Pipeline({list(self._stages)!r})"

    def _add_stage(self, stage: Stage) -> "Pipeline":
        new = Pipeline()
        new._stages = self._stages + (stage,)
        return new

    # -------------------------------------------------------------------------
    # Builders
    # -------------------------------------------------------------------------

    def lookup(self, from_: Union[str, Collection], *, local_field: str,
               foreign_field: str, as_field: str) -> "Pipeline":
        """Join against a named collection or inline foreign documents."""
        if isinstance(from_, str):
            return self._add_stage(LookupStage(local_field, foreign_field, as_field, from_collection=from_))
        return self._add_stage(LookupStage(local_field, foreign_field, as_field, foreign_documents=from_))

    def match(self, predicate: Union[Expression, Mapping[str, Any]]) -> "Pipeline":
        """Filter by an Expression or a query document."""
        return self._add_stage(MatchStage(compile_query(predicate)))

    def project(self, fields: Mapping[str, Any]) -> "Pipeline":
        return self._add_stage(compile_projection(fields))

    def set(self, fields: Mapping[str, Any]) -> "Pipeline":
        return self._add_stage(SetStage({name: compile_expression(v) for name, v in fields.items()}))

    def sort(self, *keys: str, **directions: int) -> "Pipeline":
        """Sort ascending by positional keys, or by ``field=1 | -1`` keywords."""
        ordering = [(k, 1) for k in keys] + list(directions.items())
        return self._add_stage(SortStage(ordering))

    def skip(self, count: int) -> "Pipeline":
        return self._add_stage(SkipStage(count))

    def limit(self, count: int) -> "Pipeline":
        return self._add_stage(LimitStage(count))

    def __rshift__(self, stage: StageLike) -> "Pipeline":
        """Append a stage: pipeline >> stage"""
        return self._add_stage(compile_stage(stage))

    def __or__(self, stage: StageLike) -> "Pipeline":
        """Append a stage: pipeline | stage"""
        return self >> stage

    # -------------------------------------------------------------------------
    # Execution
    # -------------------------------------------------------------------------

    def run(self, documents: Collection, ctx: Optional[Context] = None) -> PipelineResult[List[Document]]:
        """
        Run every stage in order.

        Returns:
            Ok(documents) or the Err of the first failing stage
        """
        ctx = ctx or Context()
        try:
            result = pipeline_ok(to_documents(documents))
        except StageError as e:
            return pipeline_err("input", str(e), e)

        for index, stage in enumerate(self._stages):
            result = result.bind(lambda docs, s=stage, i=index: self._run_stage(i, s, docs, ctx))
            if result.is_err():
                break
        return result

    def _run_stage(self, index: int, stage: Stage, documents: List[Document], ctx: Context):
        result = stage.execute(documents, ctx)
        if result.is_err():
            logger.debug("stage %d (%s) failed: %s", index, stage.name, result.error)
            return result
        logger.debug("stage %d (%s): %d -> %d documents",
                     index, stage.name, len(documents), len(result.value))
        return result

    def execute(self, documents: Collection, ctx: Optional[Context] = None) -> Dict[str, Any]:
        """Run the pipeline and wrap the outcome in a result envelope."""
        result = self.run(documents, ctx)
        if result.is_ok():
            docs = result.unwrap()
            return {"success": True, "results": docs, "count": len(docs)}
        return {"success": False, "error": str(result.error), "stage": result.error.stage}


# =============================================================================
# Entry point
# =============================================================================

def run(
    documents: Collection,
    stages: Union[Pipeline, Iterable[StageLike]],
    collections: Optional[Mapping[str, Collection]] = None,
    settings: Optional[EvaluatorSettings] = None,
) -> List[Document]:
    """
    Evaluate ``stages`` over ``documents``.

    Args:
        documents: Source documents (list of mappings or Arrow table)
        stages: Pipeline, Stage objects, or aggregation stage literals
        collections: Named foreign collections for lookup stages
        settings: Evaluator settings; loaded from configuration if omitted

    Returns:
        The result documents

    Raises:
        StageError, ExpressionTypeError, NoMatchingCaseError: the error of
            the first failing stage; nothing is returned in that case
    """
    pipeline = stages if isinstance(stages, Pipeline) else Pipeline(stages)
    ctx = Context.create(collections, settings or get_settings())

    result = pipeline.run(documents, ctx)
    if result.is_ok():
        return result.unwrap()

    error = result.error
    logger.info("pipeline aborted at %s", error)
    if isinstance(error.cause, DocAggError):
        raise error.cause
    raise StageError(str(error)) from error.cause


__all__ = [
    "Context",
    "Pipeline",
    "run",
]
