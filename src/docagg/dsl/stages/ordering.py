"""
Ordering and paging stages: sort, skip, limit.
"""

import functools
from typing import Any, List, Mapping, Sequence, Tuple, Union

from .base import Stage, split_path
from ..documents import Document
from ..expressions import MISSING, compare_values, is_number, is_sequence, resolve_path, values_equal
from ...docagg_exceptions import ExpressionTypeError, StageError


# Cross-type ordering: absent/null sort first, then numbers, strings,
# documents, arrays, booleans, dates.
def _type_rank(value: Any) -> int:
    if value is MISSING or value is None:
        return 0
    if is_number(value):
        return 1
    if isinstance(value, str):
        return 2
    if isinstance(value, Mapping):
        return 3
    if is_sequence(value):
        return 4
    if isinstance(value, bool):
        return 5
    return 6


def _compare_for_sort(a: Any, b: Any) -> int:
    rank_a, rank_b = _type_rank(a), _type_rank(b)
    if rank_a != rank_b:
        return -1 if rank_a < rank_b else 1
    if rank_a == 0 or values_equal(a, b):
        return 0
    try:
        return compare_values("sort", a, b)
    except ExpressionTypeError:
        left, right = repr(a), repr(b)
        return (left > right) - (left < right)


class SortStage(Stage):
    """Stable multi-key sort. ``keys`` is a sequence of (field, 1 | -1).

    ::: This is-in-layer Domain-Specific-Language-Layer.
    ::: This is a step.
    ::: This is-in-process Main-Process.
    ::: This is stateless.
    """

    name = "sort"

    def __init__(self, keys: Union[Sequence[Tuple[str, int]], Mapping[str, int]]):
        items = list(keys.items()) if isinstance(keys, Mapping) else list(keys)
        if not items:
            raise StageError("sort needs at least one key")
        for field_name, direction in items:
            split_path(field_name, "sort field")
            if direction not in (1, -1) or isinstance(direction, bool):
                raise StageError(f"sort direction for {field_name!r} must be 1 or -1, got {direction!r}")
        self.keys = items

    def transform(self, documents: List[Document], ctx) -> List[Document]:
        result = [dict(doc) for doc in documents]
        # Sort by least significant key first; Python's sort is stable.
        for field_name, direction in reversed(self.keys):
            key = functools.cmp_to_key(
                lambda a, b, f=field_name: _compare_for_sort(
                    resolve_path(a, f).get_or_else(MISSING),
                    resolve_path(b, f).get_or_else(MISSING),
                )
            )
            result.sort(key=key, reverse=direction == -1)
        return result

    def __repr__(self) -> str:
        return f"SortStage({self.keys!r})"


def _check_count(name: str, count: Any) -> int:
    if isinstance(count, bool) or not isinstance(count, int) or count < 0:
        raise StageError(f"{name} needs a non-negative integer, got {count!r}")
    return count


class SkipStage(Stage):
    """Skip the first N documents.

    ::: This is-in-layer Domain-Specific-Language-Layer.
    ::: This is a step.
    ::: This is stateless.
    """

    name = "skip"

    def __init__(self, count: int):
        self.count = _check_count("skip", count)

    def transform(self, documents: List[Document], ctx) -> List[Document]:
        return [dict(doc) for doc in documents[self.count:]]

    def __repr__(self) -> str:
        return f"SkipStage({self.count})"


class LimitStage(Stage):
    """Keep at most N documents.

    ::: This is-in-layer Domain-Specific-Language-Layer.
    ::: This is a step.
    ::: This is stateless.
    """

    name = "limit"

    def __init__(self, count: int):
        self.count = _check_count("limit", count)

    def transform(self, documents: List[Document], ctx) -> List[Document]:
        return [dict(doc) for doc in documents[:self.count]]

    def __repr__(self) -> str:
        return f"LimitStage({self.count})"
