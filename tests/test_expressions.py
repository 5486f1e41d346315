"""
Tests for expression nodes, value helpers and field resolution.
"""

import copy
import datetime

import pytest

from docagg import ExpressionTypeError, StageError
from docagg.dsl.core import Context
from docagg.dsl.expressions import (
    MISSING,
    FieldRef,
    Literal,
    OperatorExpr,
    compare_values,
    evaluate,
    is_truthy,
    resolve_path,
    values_equal,
)
from docagg.services.config_loader import EvaluatorSettings


class TestMissing:
    """Tests for the absent-value sentinel."""

    def test_is_singleton(self):
        assert copy.copy(MISSING) is MISSING
        assert copy.deepcopy({"a": MISSING})["a"] is MISSING

    def test_is_not_none(self):
        assert MISSING is not None
        assert not values_equal(MISSING, None)
        assert values_equal(MISSING, MISSING)


class TestTruthiness:
    """Tests for is_truthy."""

    @pytest.mark.parametrize("value", [MISSING, None, False, 0, 0.0, [], ()])
    def test_falsy(self, value):
        assert not is_truthy(value)

    @pytest.mark.parametrize("value", [True, 1, -2.5, [0], "", "x", {}, {"a": 1}])
    def test_truthy(self, value):
        assert is_truthy(value)


class TestValuesEqual:
    """Tests for values_equal."""

    def test_bool_never_equals_number(self):
        assert not values_equal(True, 1)
        assert not values_equal(0, False)
        assert values_equal(True, True)

    def test_int_equals_float(self):
        assert values_equal(1, 1.0)

    def test_nested(self):
        assert values_equal({"a": [1, {"b": 2}]}, {"a": [1, {"b": 2}]})
        assert not values_equal({"a": [1]}, {"a": [1, 2]})

    def test_list_never_equals_scalar(self):
        assert not values_equal([1], 1)


class TestCompareValues:
    """Tests for compare_values."""

    def test_numbers(self):
        assert compare_values("$gt", 5, 10) == -1
        assert compare_values("$gt", 10, 10.0) == 0

    def test_strings(self):
        assert compare_values("$gt", "b", "a") == 1

    def test_dates(self):
        assert compare_values("$lt", datetime.date(2020, 1, 1), datetime.date(2021, 1, 1)) == -1

    def test_mixed_kinds_raise(self):
        with pytest.raises(ExpressionTypeError):
            compare_values("$gt", 1, "1")

    def test_null_raises_type_error(self):
        with pytest.raises(TypeError):
            compare_values("$gt", None, 1)

    def test_bool_and_number_incomparable(self):
        with pytest.raises(ExpressionTypeError):
            compare_values("$gt", True, 0)


class TestResolvePath:
    """Tests for dotted path resolution."""

    def test_top_level(self):
        assert resolve_path({"a": 1}, "a").get_or_else(None) == 1

    def test_missing(self):
        assert resolve_path({"a": 1}, "b").is_nothing()

    def test_null_is_present(self):
        found = resolve_path({"a": None}, "a")
        assert found.is_just()

    def test_nested(self):
        assert resolve_path({"a": {"b": {"c": 3}}}, "a.b.c").get_or_else(None) == 3

    def test_through_scalar_is_missing(self):
        assert resolve_path({"a": 5}, "a.b").is_nothing()

    def test_maps_over_arrays(self):
        doc = {"books": [{"title": "T1"}, {"title": "T2"}, {"isbn": 3}]}
        assert resolve_path(doc, "books.title").get_or_else(None) == ["T1", "T2"]


class TestEvaluate:
    """Tests for evaluate on the basic node kinds."""

    def test_literal(self):
        assert evaluate(Literal([1, 2]), {}) == [1, 2]

    def test_field_ref(self):
        assert evaluate(FieldRef("a.b"), {"a": {"b": "x"}}) == "x"

    def test_undefined_field_raises(self):
        with pytest.raises(StageError, match=r"\$nope"):
            evaluate(FieldRef("nope"), {"a": 1})

    def test_optional_field_is_missing(self):
        assert evaluate(FieldRef("nope", required=False), {}) is MISSING

    def test_lenient_field_is_missing(self):
        assert evaluate(FieldRef("nope"), {}, lenient=True) is MISSING

    def test_non_strict_context(self):
        ctx = Context(settings=EvaluatorSettings(strict_fields=False))
        assert evaluate(FieldRef("nope"), {}, ctx) is MISSING

    def test_unknown_operator_raises(self):
        with pytest.raises(StageError, match="Unknown operator"):
            evaluate(OperatorExpr("bogus", (Literal(1),)), {})

    def test_wrong_arity_raises(self):
        with pytest.raises(StageError, match="size"):
            evaluate(OperatorExpr("size", (Literal([]), Literal([]))), {})

    def test_does_not_mutate_document(self):
        doc = {"items": [1, 2], "nested": {"x": 1}}
        snapshot = copy.deepcopy(doc)
        evaluate(OperatorExpr("size", (FieldRef("items"),)), doc)
        evaluate(FieldRef("nested"), doc)
        assert doc == snapshot
