"""
Lookup (join) stage.

Populates an output field on every source document with the list of
foreign documents whose ``foreign_field`` equals the source's
``local_field``. The field is always present; no match gives ``[]``.
"""

import copy
import logging
from typing import List, Optional

from .base import Stage, assign_path, split_path
from ..documents import Collection, Document, to_documents
from ..expressions import is_sequence, resolve_path, values_equal
from ...docagg_exceptions import StageError

logger = logging.getLogger(__name__)


class LookupStage(Stage):
    """
    Left-outer-join-like lookup against a foreign collection.

    The foreign collection is either given inline (``foreign_documents``)
    or named (``from_collection``) and resolved from the Context at run
    time. Naming the collection being processed gives a self-join, e.g.
    resolving ``managerId`` back-references to ``id``.

    ::: This is-in-layer Domain-Specific-Language-Layer.
    ::: This is a step.
    ::: This is-in-process Main-Process.
    ::: This is stateless.
    """

    name = "lookup"

    def __init__(
        self,
        local_field: str,
        foreign_field: str,
        as_field: str,
        from_collection: Optional[str] = None,
        foreign_documents: Optional[Collection] = None,
    ):
        split_path(local_field, "localField")
        split_path(foreign_field, "foreignField")
        self._as_parts = split_path(as_field, "as")
        if (from_collection is None) == (foreign_documents is None):
            raise StageError("lookup needs exactly one of 'from' collection name or inline documents")
        if from_collection is not None and (not isinstance(from_collection, str) or not from_collection):
            raise StageError(f"lookup 'from' must be a collection name, got {from_collection!r}")
        self.local_field = local_field
        self.foreign_field = foreign_field
        self.as_field = as_field
        self.from_collection = from_collection
        self.foreign_documents = (
            to_documents(foreign_documents, "lookup documents")
            if foreign_documents is not None else None
        )

    def transform(self, documents: List[Document], ctx) -> List[Document]:
        foreign = self._foreign(ctx)
        keyed = [(resolve_path(f, self.foreign_field).get_or_else(None), f) for f in foreign]

        result = []
        for doc in documents:
            local = resolve_path(doc, self.local_field).get_or_else(None)
            matches = [copy.deepcopy(f) for key, f in keyed if _keys_match(local, key)]
            out = dict(doc)
            assign_path(out, self._as_parts, matches)
            result.append(out)

        logger.debug(
            "lookup %s.%s -> %s: %d documents against %d foreign",
            self.from_collection or "<inline>", self.foreign_field,
            self.as_field, len(documents), len(foreign),
        )
        return result

    def _foreign(self, ctx) -> List[Document]:
        if self.foreign_documents is not None:
            return self.foreign_documents
        if ctx is None:
            raise StageError(f"lookup from '{self.from_collection}' needs a context with collections")
        return ctx.get_collection(self.from_collection)

    def __repr__(self) -> str:
        source = self.from_collection if self.from_collection else f"<{len(self.foreign_documents)} documents>"
        return (
            f"LookupStage(from={source!r}, localField={self.local_field!r}, "
            f"foreignField={self.foreign_field!r}, as={self.as_field!r})"
        )


def _keys_match(local, foreign) -> bool:
    """
    Equality join on key values.

    An array key on either side matches when any of its elements equals
    the other side. Missing keys read as null, so a missing local field
    matches foreign documents whose key is null or missing.
    """
    locals_ = local if is_sequence(local) else [local]
    foreigns = foreign if is_sequence(foreign) else [foreign]
    return any(values_equal(a, b) for a in locals_ for b in foreigns)
