"""
Project and Set stages.

- ProjectStage: build a new document holding exactly the requested fields
- SetStage: copy the document and add/overwrite computed fields

Every expression in either stage reads the *input* document, so fields
computed in the same stage cannot see each other.
"""

import numbers
from typing import Dict, List, Mapping, Tuple, Union

from .base import Stage, assign_path, remove_path, split_path
from ..documents import Document
from ..expressions import MISSING, Expression, FieldRef, evaluate, is_expression
from ...docagg_exceptions import StageError

ProjectionSpec = Union[bool, int, Expression]


def _inclusion_flag(spec) -> Union[bool, None]:
    """True/False for include/exclude flags, None for expressions."""
    if isinstance(spec, bool):
        return spec
    if isinstance(spec, numbers.Number):
        return spec != 0
    return None


class ProjectStage(Stage):
    """
    Projection with pass-through and derived fields.

    ``fields`` maps output names to ``1``/``True`` (copy the input field of
    the same name) or to an Expression. A projection made only of
    ``0``/``False`` flags removes those fields and keeps the rest.

    ::: This is-in-layer Domain-Specific-Language-Layer.
    ::: This is a step.
    ::: This is-in-process Main-Process.
    ::: This is stateless.
    """

    name = "project"

    def __init__(self, fields: Mapping[str, ProjectionSpec]):
        if not isinstance(fields, Mapping) or not fields:
            raise StageError("project needs a non-empty mapping of fields")

        flags = {name: _inclusion_flag(spec) for name, spec in fields.items()}
        self.exclusion = all(flag is False for flag in flags.values())
        if not self.exclusion and any(flag is False for flag in flags.values()):
            raise StageError("project cannot mix field exclusion with inclusion")

        self._plan: List[Tuple[List[str], Expression]] = []
        for name, spec in fields.items():
            parts = split_path(name, "project field")
            if flags[name] is None:
                if not is_expression(spec):
                    raise StageError(f"project field {name!r} is neither a flag nor an expression: {spec!r}")
                self._plan.append((parts, spec))
            elif flags[name]:
                self._plan.append((parts, FieldRef(name)))
            else:
                self._plan.append((parts, None))
        self.fields = dict(fields)

    def transform(self, documents: List[Document], ctx) -> List[Document]:
        if self.exclusion:
            return [self._exclude(doc) for doc in documents]
        return [self._include(doc, ctx) for doc in documents]

    def _include(self, doc: Document, ctx) -> Document:
        out: Document = {}
        for parts, expr in self._plan:
            value = evaluate(expr, doc, ctx)
            if value is not MISSING:
                assign_path(out, parts, value)
        return out

    def _exclude(self, doc: Document) -> Document:
        out = dict(doc)
        for parts, _ in self._plan:
            remove_path(out, parts)
        return out

    def __repr__(self) -> str:
        return f"ProjectStage({self.fields!r})"


class SetStage(Stage):
    """
    Add or overwrite fields; all other fields pass through unchanged.

    A field whose expression evaluates to an absent value is removed.

    ::: This is-in-layer Domain-Specific-Language-Layer.
    ::: This is a step.
    ::: This is-in-process Main-Process.
    ::: This is stateless.
    """

    name = "set"

    def __init__(self, fields: Mapping[str, Expression]):
        if not isinstance(fields, Mapping) or not fields:
            raise StageError("set needs a non-empty mapping of fields")
        for name, expr in fields.items():
            if not is_expression(expr):
                raise StageError(f"set field {name!r} is not an expression: {expr!r}")
        self._plan = [(split_path(name, "set field"), expr) for name, expr in fields.items()]
        self.fields: Dict[str, Expression] = dict(fields)

    def transform(self, documents: List[Document], ctx) -> List[Document]:
        result = []
        for doc in documents:
            computed = [(parts, evaluate(expr, doc, ctx)) for parts, expr in self._plan]
            out = dict(doc)
            for parts, value in computed:
                if value is MISSING:
                    remove_path(out, parts)
                else:
                    assign_path(out, parts, value)
            result.append(out)
        return result

    def __repr__(self) -> str:
        return f"SetStage({self.fields!r})"
