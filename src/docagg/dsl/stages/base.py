"""
Stage base class and shared document helpers.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, List, Mapping

from ..catpy import PipelineResult, pipeline_err, pipeline_ok
from ..documents import Document
from ...docagg_exceptions import StageError

if TYPE_CHECKING:
    from ..core import Context


class Stage(ABC):
    """
    A pipeline stage - a Kleisli arrow: documents -> Result[documents, PipelineError]

    Subclasses implement ``transform``; ``execute`` turns any raised error
    into an Err so the pipeline can stop at the failing stage.

    ::: This is-in-layer Domain-Specific-Language-Layer.
    ::: This is a step.
    ::: This is-in-process Main-Process.
    ::: This is stateless.
    """

    name: str = "stage"

    @abstractmethod
    def transform(self, documents: List[Document], ctx: "Context") -> List[Document]:
        """Produce a fresh list of documents from the input list."""

    def execute(self, documents: List[Document], ctx: "Context") -> PipelineResult[List[Document]]:
        try:
            return pipeline_ok(self.transform(documents, ctx))
        except Exception as e:
            return pipeline_err(self.name, f"{type(e).__name__}: {e}", e)

    def __rshift__(self, other: "Stage"):
        """Compose stages into a pipeline: stage1 >> stage2"""
        from ..core import Pipeline
        return Pipeline([self, other])


def split_path(path: Any, what: str) -> List[str]:
    """Validate a dotted output path and return its parts."""
    if not isinstance(path, str) or not path:
        raise StageError(f"{what} must be a non-empty string, got {path!r}")
    parts = path.split(".")
    if any(not p for p in parts) or path.startswith("$"):
        raise StageError(f"Invalid {what}: {path!r}")
    return parts


def assign_path(document: Document, parts: List[str], value: Any) -> None:
    """
    Assign ``value`` at a dotted path inside ``document``.

    Embedded documents along the path are copied before being written to,
    so documents shared with the stage input are never modified.
    """
    target = document
    for part in parts[:-1]:
        current = target.get(part)
        child = dict(current) if isinstance(current, Mapping) else {}
        target[part] = child
        target = child
    target[parts[-1]] = value


def remove_path(document: Document, parts: List[str]) -> None:
    """Remove a dotted path from ``document``, copying embedded documents on the way."""
    target = document
    for part in parts[:-1]:
        current = target.get(part)
        if not isinstance(current, Mapping):
            return
        child = dict(current)
        target[part] = child
        target = child
    target.pop(parts[-1], None)
