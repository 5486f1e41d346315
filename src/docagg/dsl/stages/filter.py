"""
Match (filter) stage.
"""

from typing import List

from .base import Stage
from ..documents import Document
from ..expressions import Expression, evaluate, is_expression, is_truthy
from ...docagg_exceptions import StageError


class MatchStage(Stage):
    """Keep a document iff the predicate evaluates truthy.

    ::: This is-in-layer Domain-Specific-Language-Layer.
    ::: This is a step.
    ::: This is-in-process Main-Process.
    ::: This is stateless.
    """

    name = "match"

    def __init__(self, predicate: Expression):
        if not is_expression(predicate):
            raise StageError(f"match predicate is not an expression: {predicate!r}")
        self.predicate = predicate

    def transform(self, documents: List[Document], ctx) -> List[Document]:
        return [dict(doc) for doc in documents if is_truthy(evaluate(self.predicate, doc, ctx))]

    def __repr__(self) -> str:
        return f"MatchStage({self.predicate!r})"
