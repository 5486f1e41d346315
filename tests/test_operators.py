"""
Tests for expression operators.
"""

import pytest

from docagg import ExpressionTypeError, NoMatchingCaseError, StageError
from docagg.dsl.compiler import compile_expression
from docagg.dsl.expressions import (
    MISSING,
    FieldRef,
    Literal,
    OperatorExpr,
    SwitchBranch,
    SwitchExpr,
    evaluate,
)
from docagg.dsl.operators import OperatorRegistry


def ev(raw, doc=None):
    """Compile an expression literal and evaluate it against ``doc``."""
    return evaluate(compile_expression(raw), doc or {})


class TestRegistry:
    """Tests for the operator registry."""

    def test_core_operators_registered(self):
        names = OperatorRegistry.names()
        for name in ("size", "arrayElemAt", "ifNull", "switch", "setIntersection", "in", "gt",
                     "eq", "ne", "gte", "lt", "lte", "and", "or", "not", "cond"):
            assert name in names

    def test_unknown_name(self):
        assert OperatorRegistry.get("bogus") is None


class TestArrayOperators:
    """Tests for size, arrayElemAt, setIntersection, in."""

    def test_size(self):
        assert ev({"$size": "$items"}, {"items": [1, 2, 3]}) == 3
        assert ev({"$size": [[]]}) == 0

    def test_size_on_scalar_raises_type_error(self):
        with pytest.raises(TypeError):
            ev({"$size": "$n"}, {"n": 5})

    def test_size_on_missing_raises(self):
        with pytest.raises(ExpressionTypeError, match="missing"):
            evaluate(OperatorExpr("size", (FieldRef("n", required=False),)), {})

    def test_array_elem_at(self):
        assert ev({"$arrayElemAt": [[1, 2, 3], 1]}) == 2
        assert ev({"$arrayElemAt": [[1, 2, 3], -1]}) == 3

    def test_array_elem_at_out_of_range_is_missing(self):
        assert ev({"$arrayElemAt": [[], 0]}) is MISSING
        assert ev({"$arrayElemAt": [[1], 5]}) is MISSING
        assert ev({"$arrayElemAt": [[1], -2]}) is MISSING

    def test_array_elem_at_null_array(self):
        assert ev({"$arrayElemAt": ["$a", 0]}, {"a": None}) is MISSING

    def test_array_elem_at_bad_index(self):
        with pytest.raises(ExpressionTypeError):
            ev({"$arrayElemAt": [[1, 2], "0"]})
        with pytest.raises(ExpressionTypeError):
            ev({"$arrayElemAt": [[1, 2], 0.5]})

    def test_array_elem_at_integral_float(self):
        assert ev({"$arrayElemAt": [[1, 2], 1.0]}) == 2

    def test_array_elem_at_non_array(self):
        with pytest.raises(ExpressionTypeError):
            ev({"$arrayElemAt": ["abc", 0]})

    def test_set_intersection(self):
        assert ev({"$setIntersection": [["b", "a", "b", "c"], ["c", "b"]]}) == ["b", "c"]

    def test_set_intersection_requires_arrays(self):
        with pytest.raises(ExpressionTypeError):
            ev({"$setIntersection": [["a"], "a"]})

    def test_in(self):
        assert ev({"$in": ["laptop", "$items"]}, {"items": ["laptop", "mouse"]}) is True
        assert ev({"$in": ["pen", "$items"]}, {"items": ["laptop"]}) is False

    def test_in_requires_array(self):
        with pytest.raises(TypeError):
            ev({"$in": ["a", "abc"]})

    @pytest.mark.parametrize("items", [[], ["x"], ["x", "y", "x", "x"], ["y"]])
    def test_in_equivalent_to_set_intersection_size(self, items):
        doc = {"items": items}
        via_in = ev({"$in": ["x", "$items"]}, doc)
        via_intersection = ev({"$gt": [{"$size": {"$setIntersection": [["x"], "$items"]}}, 0]}, doc)
        assert via_in == via_intersection == ("x" in items)

    def test_is_array(self):
        assert ev({"$isArray": ["$a"]}, {"a": []}) is True
        assert ev({"$isArray": ["$a"]}, {"a": "[]"}) is False


class TestIfNull:
    """Tests for ifNull."""

    def test_missing_element_falls_back(self):
        assert ev({"$ifNull": [{"$arrayElemAt": [[], 0]}, "No Books"]}) == "No Books"

    def test_null_falls_back(self):
        assert ev({"$ifNull": ["$a", 0]}, {"a": None}) == 0

    def test_undefined_field_falls_back(self):
        assert ev({"$ifNull": ["$nope", "default"]}, {}) == "default"

    def test_present_value(self):
        assert ev({"$ifNull": ["$a", 0]}, {"a": False}) is False


class TestSwitch:
    """Tests for switch and cond."""

    def _switch(self, default=None):
        branch = SwitchBranch(OperatorExpr("gt", (FieldRef("x"), Literal(10))), Literal("big"))
        return SwitchExpr((branch,), default)

    def test_default_used(self):
        assert evaluate(self._switch(Literal("small")), {"x": 5}) == "small"

    def test_branch_wins(self):
        assert evaluate(self._switch(Literal("small")), {"x": 50}) == "big"

    def test_no_default_raises(self):
        with pytest.raises(NoMatchingCaseError):
            evaluate(self._switch(), {"x": 5})

    def test_first_truthy_branch_wins(self):
        raw = {"$switch": {
            "branches": [
                {"case": {"$gt": ["$x", 1]}, "then": "first"},
                {"case": {"$gt": ["$x", 0]}, "then": "second"},
            ],
        }}
        assert ev(raw, {"x": 5}) == "first"
        assert ev(raw, {"x": 1}) == "second"

    def test_later_branches_not_evaluated(self):
        raw = {"$switch": {
            "branches": [
                {"case": True, "then": "ok"},
                {"case": {"$size": "$scalar"}, "then": "never"},
            ],
        }}
        assert ev(raw, {"scalar": 1}) == "ok"

    def test_cond(self):
        assert ev({"$cond": [{"$gt": ["$x", 3]}, "hi", "lo"]}, {"x": 5}) == "hi"
        assert ev({"$cond": {"if": {"$gt": ["$x", 3]}, "then": "hi", "else": "lo"}}, {"x": 1}) == "lo"


class TestComparison:
    """Tests for eq/ne/gt/gte/lt/lte."""

    def test_gt(self):
        assert ev({"$gt": ["$x", 10]}, {"x": 11}) is True
        assert ev({"$gt": ["$x", 10]}, {"x": 10}) is False

    def test_gte_lt_lte(self):
        assert ev({"$gte": [10, 10]}) is True
        assert ev({"$lt": ["a", "b"]}) is True
        assert ev({"$lte": [2, 1]}) is False

    def test_gt_incomparable_raises(self):
        with pytest.raises(ExpressionTypeError):
            ev({"$gt": ["$x", 10]}, {"x": "eleven"})

    def test_gt_wrong_arity(self):
        with pytest.raises(StageError):
            ev({"$gt": [1]})

    def test_eq_ne(self):
        assert ev({"$eq": ["$a", [1, 2]]}, {"a": [1, 2]}) is True
        assert ev({"$ne": [1, True]}) is True


class TestBoolean:
    """Tests for and/or/not."""

    def test_and_or_not(self):
        assert ev({"$and": [1, "x", [0]]}) is True
        assert ev({"$and": [1, []]}) is False
        assert ev({"$or": [0, None, ""]}) is True
        assert ev({"$not": [[]]}) is True

    def test_short_circuit(self):
        assert ev({"$or": [True, {"$size": "$n"}]}, {"n": 1}) is True
        assert ev({"$and": [False, {"$size": "$n"}]}, {"n": 1}) is False

    def test_and_needs_argument(self):
        with pytest.raises(StageError):
            ev({"$and": []})


class TestObject:
    """Tests for computed embedded documents."""

    def test_builds_document(self):
        assert ev({"total": {"$size": "$items"}, "kind": "order"}, {"items": [1]}) == {
            "total": 1, "kind": "order",
        }

    def test_missing_values_omitted(self):
        assert ev({"first": {"$arrayElemAt": ["$items", 0]}}, {"items": []}) == {}
