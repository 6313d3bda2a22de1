"""Tests for the expression parser."""

import pytest

from vetguard.errors import ParseError
from vetguard.expr import parse
from vetguard.expr.nodes import (
    Binary,
    Call,
    Comprehension,
    Conditional,
    Has,
    Ident,
    Index,
    ListLiteral,
    Literal,
    Logical,
    MapLiteral,
    Member,
    Unary,
)


class TestPrecedence:
    """Tests for operator precedence and grouping."""

    def test_and_binds_tighter_than_or(self):
        """Test a || b && c parses as a || (b && c)."""
        node = parse("a || b && c")
        assert isinstance(node, Logical)
        assert node.op == "||"
        assert isinstance(node.right, Logical)
        assert node.right.op == "&&"

    def test_relation_binds_tighter_than_and(self):
        """Test comparisons group before &&."""
        node = parse('p.type == "GITHUB" && p.stars < 10')
        assert isinstance(node, Logical)
        assert isinstance(node.left, Binary) and node.left.op == "=="
        assert isinstance(node.right, Binary) and node.right.op == "<"

    def test_multiplication_before_addition(self):
        """Test 1 + 2 * 3 groups the product."""
        node = parse("1 + 2 * 3")
        assert node.op == "+"
        assert isinstance(node.right, Binary) and node.right.op == "*"

    def test_parentheses(self):
        """Test parentheses override precedence."""
        node = parse("(a || b) && c")
        assert node.op == "&&"
        assert isinstance(node.left, Logical) and node.left.op == "||"

    def test_unary_not(self):
        """Test negation nests."""
        node = parse("!!a")
        assert isinstance(node, Unary)
        assert isinstance(node.operand, Unary)
        assert isinstance(node.operand.operand, Ident)

    def test_ternary(self):
        """Test conditional expressions."""
        node = parse("a ? 1 : 2")
        assert isinstance(node, Conditional)
        assert node.then.value.data == 1

    def test_chained_comparison_rejected(self):
        """Test a < b < c is a syntax error."""
        with pytest.raises(ParseError):
            parse("a < b < c")


class TestSelectionAndCalls:
    """Tests for member access, indexing and calls."""

    def test_member_chain(self):
        """Test vulns.critical parses as nested members."""
        node = parse("vulns.critical")
        assert isinstance(node, Member)
        assert node.name == "critical"
        assert isinstance(node.target, Ident)
        assert node.target.name == "vulns"

    def test_index(self):
        """Test map indexing with a string key."""
        node = parse('scorecard.scores["Maintained"]')
        assert isinstance(node, Index)
        assert isinstance(node.key, Literal)
        assert node.key.value.data == "Maintained"

    def test_method_call(self):
        """Test receiver-style calls."""
        node = parse('v.id.startsWith("MAL-")')
        assert isinstance(node, Call)
        assert node.name == "startsWith"
        assert isinstance(node.target, Member)
        assert len(node.args) == 1

    def test_exists_macro(self):
        """Test list.exists(x, pred) becomes a comprehension."""
        node = parse("vulns.all.exists(v, true)")
        assert isinstance(node, Comprehension)
        assert node.name == "exists"
        assert node.variable == "v"
        assert isinstance(node.target, Member)

    def test_global_exists_form(self):
        """Test exists(list, x, pred) is the same comprehension."""
        node = parse("exists(projects, p, p.stars < 10)")
        assert isinstance(node, Comprehension)
        assert isinstance(node.target, Ident)
        assert node.target.name == "projects"
        assert node.variable == "p"

    def test_macro_variable_must_be_identifier(self):
        """Test the bound variable must be a plain name."""
        with pytest.raises(ParseError):
            parse("projects.exists(p.x, true)")

    def test_macro_arity(self):
        """Test exists with the wrong number of arguments."""
        with pytest.raises(ParseError):
            parse("projects.exists(p)")

    def test_has_macro(self):
        """Test has(a.b) parses to a presence test."""
        node = parse("has(scorecard.scores.Maintained)")
        assert isinstance(node, Has)
        assert node.name == "Maintained"

    def test_has_requires_selection(self):
        """Test has() without a field selection."""
        with pytest.raises(ParseError):
            parse("has(scorecard)")

    def test_global_function_call(self):
        """Test size(x) parses as a target-less call."""
        node = parse("size(projects)")
        assert isinstance(node, Call)
        assert node.target is None

    def test_list_and_map_literals(self):
        """Test collection literals, with trailing commas."""
        assert isinstance(parse("[1, 2, 3,]"), ListLiteral)
        node = parse('{"a": 1, "b": 2}')
        assert isinstance(node, MapLiteral)
        assert len(node.entries) == 2


class TestSyntaxErrors:
    """Tests for malformed expressions."""

    @pytest.mark.parametrize("source", [
        "",
        "   ",
        "a &&",
        "(a || b",
        "vulns.",
        "a b",
        "scorecard.scores[\"Maintained\"",
        "== 0",
        "f(,)",
    ])
    def test_malformed(self, source):
        """Test malformed expressions raise ParseError."""
        with pytest.raises(ParseError):
            parse(source)

    def test_error_position(self):
        """Test ParseError reports where parsing failed."""
        with pytest.raises(ParseError) as exc_info:
            parse("a && )")
        assert exc_info.value.position == 5

    def test_non_string_source(self):
        """Test non-string input is a ParseError."""
        with pytest.raises(ParseError):
            parse(42)

    def test_deep_nesting_rejected(self):
        """Test pathological nesting is rejected instead of overflowing."""
        with pytest.raises(ParseError):
            parse("(" * 500 + "true" + ")" * 500)

    @pytest.mark.parametrize("source", [
        "!" * 3000 + "true",
        "-" * 3000 + "1 > 0",
        "1" + " + 1" * 3000 + " > 0",
        " && ".join(["true"] * 3000),
        " || ".join(["false"] * 3000),
        "a" + ".b" * 3000,
        "a" + "[0]" * 3000,
    ])
    def test_long_chains_rejected(self, source):
        """Test chains too deep to evaluate fail as ParseError."""
        with pytest.raises(ParseError, match="nested too deeply"):
            parse(source)

    def test_moderate_chains_accepted(self):
        parse(" && ".join(["true"] * 40))
        parse("!" * 20 + "true")
        parse("1" + " + 1" * 40 + " > 0")

    def test_exists_without_list_rejected(self):
        """Test the two-argument call form needs a receiver list."""
        with pytest.raises(ParseError, match="needs a list"):
            parse("exists(p, p.stars < 10)")
