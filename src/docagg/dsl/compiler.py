"""
docagg Compiler - aggregation data structures to Stage and Expression trees.

Pipelines are often written as the nested dict/list literals an
aggregation framework accepts:

    [
        {"$lookup": {"from": "books", "localField": "email",
                     "foreignField": "authorEmail", "as": "books"}},
        {"$match": {"books": {"$ne": []}}},
        {"$project": {"name": 1, "total_books": {"$size": "$books"}}},
    ]

This module converts those structures into the typed trees the evaluator
runs. Input is always an in-memory data structure; there is no text
syntax.

Expression forms:
- ``"$path.to.field"``          -> FieldRef
- ``{"$op": [arg, ...]}``       -> OperatorExpr (a non-list value is one argument)
- ``{"$switch": {...}}``        -> SwitchExpr
- ``{"$cond": [if, then, else]}`` or ``{"$cond": {"if", "then", "else"}}``
- ``{"$literal": value}``       -> Literal, never interpreted
- lists / plain dicts           -> Literal when constant, otherwise built per document
- anything else                 -> Literal

Query forms (``$match``):
- ``{field: value}``                       equality (array fields match on any element)
- ``{field: {"$eq" | "$ne" | "$gt" | "$gte" | "$lt" | "$lte" | "$in" | "$nin" | "$exists": v}}``
- ``{"$and": [...]}``, ``{"$or": [...]}``, ``{"$nor": [...]}``
- ``{"$expr": expression}``
"""

from typing import Any, Iterable, List, Mapping

from .expressions import (
    MISSING,
    Expression,
    FieldRef,
    Literal,
    OperatorExpr,
    SwitchBranch,
    SwitchExpr,
    is_expression,
)
from .operators import OperatorRegistry
from .stages import (
    LimitStage,
    LookupStage,
    MatchStage,
    ProjectStage,
    SetStage,
    SkipStage,
    SortStage,
    Stage,
)
from ..docagg_exceptions import StageError


# ============================================================
# EXPRESSIONS
# ============================================================

def compile_expression(raw: Any) -> Expression:
    """Compile an aggregation expression literal into an Expression tree."""
    if is_expression(raw):
        return raw

    if isinstance(raw, str) and raw.startswith("$"):
        path = raw[1:]
        if not path or path.startswith("$"):
            raise StageError(f"Invalid field reference: {raw!r}")
        return FieldRef(path)

    if isinstance(raw, (list, tuple)):
        items = [compile_expression(item) for item in raw]
        if all(isinstance(item, Literal) for item in items):
            return Literal([item.value for item in items])
        return OperatorExpr("array", tuple(items))

    if isinstance(raw, Mapping):
        operator_keys = [k for k in raw if isinstance(k, str) and k.startswith("$")]
        if operator_keys:
            if len(raw) != 1:
                raise StageError(f"An operator expression must have exactly one key: {list(raw)!r}")
            (key, value), = raw.items()
            return _compile_operator(key[1:], value)
        return _compile_document(raw)

    return Literal(raw)


def _compile_operator(name: str, value: Any) -> Expression:
    if name == "literal":
        return Literal(value)
    if name == "switch":
        return _compile_switch(value)
    if name == "cond" and isinstance(value, Mapping):
        missing = {"if", "then", "else"} - set(value)
        if missing:
            raise StageError(f"$cond is missing {sorted(missing)!r}")
        value = [value["if"], value["then"], value["else"]]

    spec = OperatorRegistry.get(name)
    if spec is None:
        raise StageError(f"Unknown operator: ${name}")

    raw_args = value if isinstance(value, (list, tuple)) else [value]
    args = tuple(compile_expression(arg) for arg in raw_args)
    spec.check_arity(len(args))
    return OperatorExpr(name, args)


def _compile_switch(value: Any) -> SwitchExpr:
    if not isinstance(value, Mapping):
        raise StageError("$switch needs a mapping with 'branches'")
    unknown = set(value) - {"branches", "default"}
    if unknown:
        raise StageError(f"$switch has unknown keys: {sorted(unknown)!r}")
    raw_branches = value.get("branches")
    if not isinstance(raw_branches, (list, tuple)) or not raw_branches:
        raise StageError("$switch needs a non-empty 'branches' list")

    branches = []
    for i, branch in enumerate(raw_branches):
        if not isinstance(branch, Mapping) or set(branch) != {"case", "then"}:
            raise StageError(f"$switch branch {i} must have exactly 'case' and 'then'")
        branches.append(SwitchBranch(compile_expression(branch["case"]), compile_expression(branch["then"])))

    default = compile_expression(value["default"]) if "default" in value else None
    return SwitchExpr(tuple(branches), default)


def _compile_document(raw: Mapping) -> Expression:
    values = {key: compile_expression(v) for key, v in raw.items()}
    if all(isinstance(v, Literal) for v in values.values()):
        return Literal({key: v.value for key, v in values.items()})
    args: List[Expression] = []
    for key, v in values.items():
        args.extend((Literal(key), v))
    return OperatorExpr("object", tuple(args))


# ============================================================
# QUERIES ($match)
# ============================================================

def compile_query(raw: Mapping) -> Expression:
    """Compile a query document into a predicate Expression."""
    if is_expression(raw):
        return raw
    if not isinstance(raw, Mapping):
        raise StageError(f"match needs a query document, got {type(raw).__name__}")

    clauses = []
    for key, condition in raw.items():
        if key in ("$and", "$or", "$nor"):
            clauses.append(_compile_logical(key, condition))
        elif key == "$expr":
            clauses.append(compile_expression(condition))
        elif isinstance(key, str) and key.startswith("$"):
            raise StageError(f"Unknown query operator: {key}")
        else:
            clauses.append(_compile_field_condition(key, condition))

    if not clauses:
        return Literal(True)
    if len(clauses) == 1:
        return clauses[0]
    return OperatorExpr("and", tuple(clauses))


def _compile_logical(key: str, condition: Any) -> Expression:
    if not isinstance(condition, (list, tuple)) or not condition:
        raise StageError(f"{key} needs a non-empty list of query documents")
    parts = tuple(compile_query(sub) for sub in condition)
    if key == "$and":
        return OperatorExpr("and", parts)
    if key == "$or":
        return OperatorExpr("or", parts)
    return OperatorExpr("not", (OperatorExpr("or", parts),))


def _is_operator_document(condition: Any) -> bool:
    return (
        isinstance(condition, Mapping)
        and bool(condition)
        and all(isinstance(k, str) and k.startswith("$") for k in condition)
    )


def _compile_field_condition(field_name: str, condition: Any) -> Expression:
    if not isinstance(field_name, str) or not field_name:
        raise StageError(f"Invalid query field: {field_name!r}")
    ref = FieldRef(field_name, required=False)

    if not _is_operator_document(condition):
        return _query_equals(ref, condition)

    parts = [_compile_field_operator(ref, op, value) for op, value in condition.items()]
    if len(parts) == 1:
        return parts[0]
    return OperatorExpr("and", tuple(parts))


def _query_equals(ref: FieldRef, value: Any) -> Expression:
    """Field equals value, or field is an array containing value; null also matches missing."""
    lhs = OperatorExpr("ifNull", (ref, Literal(None))) if value is None else ref
    return OperatorExpr("or", (
        OperatorExpr("eq", (lhs, Literal(value))),
        OperatorExpr("and", (
            OperatorExpr("isArray", (ref,)),
            OperatorExpr("in", (Literal(value), ref)),
        )),
    ))


def _not_null(ref: FieldRef) -> Expression:
    return OperatorExpr("ne", (OperatorExpr("ifNull", (ref, Literal(None))), Literal(None)))


def _compile_field_operator(ref: FieldRef, op: str, value: Any) -> Expression:
    if op == "$eq":
        return _query_equals(ref, value)
    if op == "$ne":
        return OperatorExpr("not", (_query_equals(ref, value),))
    if op in ("$gt", "$gte", "$lt", "$lte"):
        # Missing and null fields never satisfy a range condition.
        return OperatorExpr("and", (
            _not_null(ref),
            OperatorExpr(op[1:], (ref, Literal(value))),
        ))
    if op in ("$in", "$nin"):
        if not isinstance(value, (list, tuple)):
            raise StageError(f"{op} needs a list, got {type(value).__name__}")
        expr = OperatorExpr("or", tuple(_query_equals(ref, v) for v in value)) if value else Literal(False)
        return expr if op == "$in" else OperatorExpr("not", (expr,))
    if op == "$exists":
        check = "ne" if value else "eq"
        return OperatorExpr(check, (ref, Literal(MISSING)))
    raise StageError(f"Unknown query operator: {op}")


# ============================================================
# STAGES
# ============================================================

def compile_projection(raw: Mapping) -> ProjectStage:
    """Compile a $project mapping; numeric and boolean values are include/exclude flags."""
    if not isinstance(raw, Mapping):
        raise StageError(f"$project needs a mapping, got {type(raw).__name__}")
    fields = {}
    for name, spec in raw.items():
        if isinstance(spec, (bool, int, float)):
            fields[name] = spec
        else:
            fields[name] = compile_expression(spec)
    return ProjectStage(fields)


def _compile_lookup(raw: Any) -> LookupStage:
    if not isinstance(raw, Mapping):
        raise StageError("$lookup needs a mapping")
    required = {"from", "localField", "foreignField", "as"}
    missing = required - set(raw)
    if missing:
        raise StageError(f"$lookup is missing {sorted(missing)!r}")
    unknown = set(raw) - required
    if unknown:
        raise StageError(f"$lookup has unsupported keys: {sorted(unknown)!r}")

    source = raw["from"]
    if isinstance(source, str):
        return LookupStage(raw["localField"], raw["foreignField"], raw["as"], from_collection=source)
    return LookupStage(raw["localField"], raw["foreignField"], raw["as"], foreign_documents=source)


def _compile_set(raw: Any) -> SetStage:
    if not isinstance(raw, Mapping):
        raise StageError("$set needs a mapping")
    return SetStage({name: compile_expression(spec) for name, spec in raw.items()})


def _compile_sort(raw: Any) -> SortStage:
    if not isinstance(raw, Mapping):
        raise StageError("$sort needs a mapping")
    return SortStage(raw)


_STAGE_COMPILERS = {
    "$lookup": _compile_lookup,
    "$match": lambda raw: MatchStage(compile_query(raw)),
    "$project": compile_projection,
    "$set": _compile_set,
    "$addFields": _compile_set,
    "$sort": _compile_sort,
    "$skip": SkipStage,
    "$limit": LimitStage,
}


def compile_stage(raw: Any) -> Stage:
    """Compile one stage literal (``{"$stage": spec}``) into a Stage."""
    if isinstance(raw, Stage):
        return raw
    if not isinstance(raw, Mapping) or len(raw) != 1:
        raise StageError(f"A stage must be a mapping with exactly one key, got {raw!r}")
    (key, spec), = raw.items()
    compiler = _STAGE_COMPILERS.get(key)
    if compiler is None:
        raise StageError(f"Unsupported stage: {key}")
    return compiler(spec)


def compile_pipeline(raw: Iterable[Any]) -> List[Stage]:
    """Compile a list of stage literals, reporting the position of a bad stage."""
    if isinstance(raw, (str, bytes, Mapping)) or not hasattr(raw, "__iter__"):
        raise StageError(f"A pipeline must be a list of stages, got {type(raw).__name__}")
    stages = []
    for i, item in enumerate(raw):
        try:
            stages.append(compile_stage(item))
        except StageError as e:
            raise StageError(f"stage {i}: {e}") from e
    return stages


__all__ = [
    "compile_expression",
    "compile_query",
    "compile_projection",
    "compile_stage",
    "compile_pipeline",
]
