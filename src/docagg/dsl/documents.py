"""
Document collection utilities.

Collections enter the evaluator either as a list of mappings or as a
PyArrow table; both are normalized to a list of plain dicts.
"""

from typing import Any, Dict, List, Mapping, Union

import pyarrow as pa

from ..docagg_exceptions import StageError

Document = Dict[str, Any]
Collection = Union[pa.Table, List[Mapping[str, Any]]]


def is_arrow(data) -> bool:
    """Check if data is a PyArrow table."""
    return isinstance(data, pa.Table)


def to_documents(data: Collection, what: str = "documents") -> List[Document]:
    """
    Convert a collection to a list of dicts.

    Args:
        data: List of mappings or a PyArrow table
        what: Collection description used in error messages

    Arrow tables have a fixed schema, so ``Table.to_pylist()`` gives every
    row every column and fills absent fields with ``None``. Rows that lacked
    a field in the source therefore read as null rather than missing: a
    strict pass-through projection of that field yields ``None`` for a table
    input where the equivalent list input raises StageError.

    Returns:
        A new list holding a shallow dict copy of every document

    Raises:
        StageError: if data is neither a table nor a sequence of mappings
    """
    if is_arrow(data):
        return data.to_pylist()
    if isinstance(data, (str, bytes)) or isinstance(data, Mapping) or not hasattr(data, "__iter__"):
        raise StageError(f"{what} must be a list of documents or an Arrow table, got {type(data).__name__}")
    documents = []
    for i, item in enumerate(data):
        if not isinstance(item, Mapping):
            raise StageError(f"{what}[{i}] is not a document: {type(item).__name__}")
        documents.append(dict(item))
    return documents


def to_arrow(documents: List[Document]) -> pa.Table:
    """Convert documents to a PyArrow table."""
    if not documents:
        return pa.table({})
    return pa.Table.from_pylist(documents)
