"""Tests for tagged expression values."""

import pytest

from vetguard.errors import EvalError
from vetguard.expr.values import FALSE, NULL, TRUE, Value, ValueKind, contains


class TestValueOf:
    """Tests for wrapping Python data."""

    def test_bool_is_not_number(self):
        """Test bools wrap as BOOL even though bool subclasses int."""
        assert Value.of(True) is TRUE
        assert Value.of(False) is FALSE
        assert Value.of(1).kind is ValueKind.NUMBER

    def test_none_is_null(self):
        assert Value.of(None) is NULL

    def test_containers_are_frozen(self):
        """Test lists become tuples and maps become read-only."""
        value = Value.of({"items": [1, 2], "name": "x"})
        assert value.kind is ValueKind.MAP
        items = value.member("items")
        assert isinstance(items.data, tuple)
        with pytest.raises(TypeError):
            value.data["new"] = Value.of(1)

    def test_round_trip(self):
        """Test to_python undoes of()."""
        data = {"a": [1, "two", None, {"b": False}]}
        assert Value.of(data).to_python() == data

    def test_non_string_keys_rejected(self):
        with pytest.raises(EvalError):
            Value.of({1: "x"})

    def test_unsupported_type(self):
        with pytest.raises(EvalError):
            Value.of(object())


class TestAccess:
    """Tests for member and index access."""

    def test_missing_key_is_error(self):
        """Test undefined fields fail loudly."""
        with pytest.raises(EvalError, match="No such key"):
            Value.of({"a": 1}).member("b")

    def test_member_on_non_map(self):
        with pytest.raises(EvalError):
            Value.of(5).member("stars")

    def test_list_index(self):
        value = Value.of(["a", "b"])
        assert value.index(Value.of(1)).data == "b"
        assert value.index(Value.of(1.0)).data == "b"

    def test_list_index_out_of_range(self):
        with pytest.raises(EvalError, match="out of range"):
            Value.of(["a"]).index(Value.of(3))

    def test_list_index_must_be_integral(self):
        with pytest.raises(EvalError):
            Value.of(["a", "b"]).index(Value.of(0.5))

    def test_map_index_requires_string(self):
        with pytest.raises(EvalError):
            Value.of({"a": 1}).index(Value.of(0))


class TestComparison:
    """Tests for equality and ordering."""

    def test_number_equality_across_int_and_float(self):
        assert Value.of(0).equals(Value.of(0.0))

    def test_deep_equality(self):
        assert Value.of({"a": [1, 2]}).equals(Value.of({"a": [1, 2]}))
        assert not Value.of({"a": [1, 2]}).equals(Value.of({"a": [2, 1]}))
        assert not Value.of({"a": 1}).equals(Value.of({"b": 1}))

    def test_null_equality(self):
        """Test null compares with any kind without error."""
        assert NULL.equals(NULL)
        assert not Value.of(3).equals(NULL)
        assert not NULL.equals(Value.of("x"))

    def test_mixed_kind_equality_is_error(self):
        with pytest.raises(EvalError):
            Value.of("1").equals(Value.of(1))

    def test_ordering(self):
        assert Value.of(5).compare(Value.of(10)) == -1
        assert Value.of("b").compare(Value.of("a")) == 1
        assert Value.of(2).compare(Value.of(2.0)) == 0

    def test_ordering_mixed_kinds_is_error(self):
        with pytest.raises(EvalError):
            Value.of("5").compare(Value.of(10))

    def test_ordering_bools_is_error(self):
        with pytest.raises(EvalError):
            TRUE.compare(FALSE)


class TestContains:
    """Tests for the membership helper."""

    def test_list_membership(self):
        haystack = Value.of(["MIT", "Apache-2.0"])
        assert contains(haystack, Value.of("MIT"))
        assert not contains(haystack, Value.of("GPL-3.0"))

    def test_mixed_list_membership_skips_other_kinds(self):
        assert contains(Value.of([1, "1"]), Value.of("1"))
        assert not contains(Value.of([1, 2]), Value.of("1"))

    def test_map_membership(self):
        assert contains(Value.of({"Maintained": 0}), Value.of("Maintained"))

    def test_membership_on_scalar_is_error(self):
        with pytest.raises(EvalError):
            contains(Value.of("abc"), Value.of("a"))
