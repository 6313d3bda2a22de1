"""Evaluation of parsed guardrail expressions against a fact snapshot.

Evaluation is a pure walk over the syntax tree. Variables live in an
immutable chain of scopes so comprehensions can bind their loop variable
without touching the facts, and the same Program can be evaluated from
several threads at once.
"""

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Callable, Dict, List, Mapping, Optional

from ..errors import EvalError
from .nodes import (
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
    Node,
    Unary,
)
from .parser import parse
from .values import FALSE, TRUE, Value, ValueKind, boolean, contains


class Scope:
    """Variable bindings: the fact root plus comprehension variables."""

    __slots__ = ("name", "value", "parent", "root")

    def __init__(
        self,
        root: Value,
        name: Optional[str] = None,
        value: Optional[Value] = None,
        parent: Optional["Scope"] = None,
    ):
        self.root = root
        self.name = name
        self.value = value
        self.parent = parent

    def bind(self, name: str, value: Value) -> "Scope":
        return Scope(self.root, name, value, self)

    def lookup(self, name: str) -> Value:
        scope: Optional[Scope] = self
        while scope is not None and scope.name is not None:
            if scope.name == name:
                return scope.value
            scope = scope.parent
        if self.root.kind is ValueKind.MAP and name in self.root.data:
            return self.root.data[name]
        raise EvalError(f"Undefined identifier: '{name}'")


def _string_method(name: str, check: Callable[[str, str], bool]):
    def method(receiver: Value, args: List[Value]) -> Value:
        _arity(name, args, 1)
        text = receiver.expect(ValueKind.STRING, f"{name}() receiver")
        other = args[0].expect(ValueKind.STRING, f"{name}() argument")
        return boolean(check(text, other))

    return method


@lru_cache(maxsize=256)
def _compile_regex(pattern: str):
    try:
        return re.compile(pattern)
    except re.error as e:
        raise EvalError(f"Invalid regular expression {pattern!r}: {e}") from e


def _matches(receiver: Value, args: List[Value]) -> Value:
    _arity("matches", args, 1)
    text = receiver.expect(ValueKind.STRING, "matches() receiver")
    pattern = args[0].expect(ValueKind.STRING, "matches() argument")
    return boolean(_compile_regex(pattern).search(text) is not None)


def _size(receiver: Value, args: List[Value]) -> Value:
    _arity("size", args, 0)
    return Value(ValueKind.NUMBER, receiver.size())


def _case(name: str, convert: Callable[[str], str]):
    def method(receiver: Value, args: List[Value]) -> Value:
        _arity(name, args, 0)
        return Value(ValueKind.STRING, convert(receiver.expect(ValueKind.STRING, name)))

    return method


def _ascii_lower(text: str) -> str:
    return "".join(c.lower() if c.isascii() else c for c in text)


def _ascii_upper(text: str) -> str:
    return "".join(c.upper() if c.isascii() else c for c in text)


def _arity(name: str, args: List[Value], expected: int) -> None:
    if len(args) != expected:
        raise EvalError(f"{name}() takes {expected} argument(s), got {len(args)}")


METHODS: Dict[str, Callable[[Value, List[Value]], Value]] = {
    "startsWith": _string_method("startsWith", str.startswith),
    "endsWith": _string_method("endsWith", str.endswith),
    "contains": _string_method("contains", lambda text, part: part in text),
    "matches": _matches,
    "size": _size,
    "lowerAscii": _case("lowerAscii", _ascii_lower),
    "upperAscii": _case("upperAscii", _ascii_upper),
}


def _global_size(args: List[Value]) -> Value:
    _arity("size", args, 1)
    return Value(ValueKind.NUMBER, args[0].size())


def _global_matches(args: List[Value]) -> Value:
    _arity("matches", args, 2)
    return _matches(args[0], args[1:])


FUNCTIONS: Dict[str, Callable[[List[Value]], Value]] = {
    "size": _global_size,
    "matches": _global_matches,
}


class Evaluator:
    """Walks a syntax tree, producing a Value."""

    def evaluate(self, node: Node, scope: Scope) -> Value:
        handler = getattr(self, f"_eval_{type(node).__name__}", None)
        if handler is None:
            raise EvalError(f"Unsupported expression node: {type(node).__name__}")
        return handler(node, scope)

    def _eval_Literal(self, node: Literal, scope: Scope) -> Value:
        return node.value

    def _eval_Ident(self, node: Ident, scope: Scope) -> Value:
        return scope.lookup(node.name)

    def _eval_Member(self, node: Member, scope: Scope) -> Value:
        return self.evaluate(node.target, scope).member(node.name)

    def _eval_Index(self, node: Index, scope: Scope) -> Value:
        target = self.evaluate(node.target, scope)
        return target.index(self.evaluate(node.key, scope))

    def _eval_Has(self, node: Has, scope: Scope) -> Value:
        target = self.evaluate(node.target, scope)
        if target.kind is not ValueKind.MAP:
            raise EvalError(f"has() expects a map, got {target.type_name}")
        return boolean(node.name in target.data)

    def _eval_Unary(self, node: Unary, scope: Scope) -> Value:
        operand = self.evaluate(node.operand, scope)
        if node.op == "!":
            return boolean(not operand.expect(ValueKind.BOOL, "'!'"))
        return Value(ValueKind.NUMBER, -operand.expect(ValueKind.NUMBER, "Unary '-'"))

    def _eval_Logical(self, node: Logical, scope: Scope) -> Value:
        left = self.evaluate(node.left, scope).expect(ValueKind.BOOL, f"'{node.op}'")
        if node.op == "&&" and not left:
            return FALSE
        if node.op == "||" and left:
            return TRUE
        right = self.evaluate(node.right, scope).expect(ValueKind.BOOL, f"'{node.op}'")
        return boolean(right)

    def _eval_Conditional(self, node: Conditional, scope: Scope) -> Value:
        condition = self.evaluate(node.condition, scope)
        if condition.expect(ValueKind.BOOL, "Ternary condition"):
            return self.evaluate(node.then, scope)
        return self.evaluate(node.otherwise, scope)

    def _eval_Binary(self, node: Binary, scope: Scope) -> Value:
        left = self.evaluate(node.left, scope)
        right = self.evaluate(node.right, scope)
        op = node.op

        if op == "==":
            return boolean(left.equals(right))
        if op == "!=":
            return boolean(not left.equals(right))
        if op == "<":
            return boolean(left.compare(right) < 0)
        if op == "<=":
            return boolean(left.compare(right) <= 0)
        if op == ">":
            return boolean(left.compare(right) > 0)
        if op == ">=":
            return boolean(left.compare(right) >= 0)
        if op == "in":
            return boolean(contains(right, left))
        if op == "+":
            return self._add(left, right)
        return self._arithmetic(op, left, right)

    def _add(self, left: Value, right: Value) -> Value:
        if left.kind is not right.kind or left.kind not in (
            ValueKind.NUMBER,
            ValueKind.STRING,
            ValueKind.LIST,
        ):
            raise EvalError(f"Cannot add {left.type_name} and {right.type_name}")
        return Value(left.kind, left.data + right.data)

    def _arithmetic(self, op: str, left: Value, right: Value) -> Value:
        a = left.expect(ValueKind.NUMBER, f"'{op}'")
        b = right.expect(ValueKind.NUMBER, f"'{op}'")
        if op == "-":
            return Value(ValueKind.NUMBER, a - b)
        if op == "*":
            return Value(ValueKind.NUMBER, a * b)
        if b == 0:
            raise EvalError("Division by zero")
        if op == "/":
            if isinstance(a, int) and isinstance(b, int):
                return Value(ValueKind.NUMBER, int(a / b))
            return Value(ValueKind.NUMBER, a / b)
        if op == "%":
            return Value(ValueKind.NUMBER, a % b)
        raise EvalError(f"Unknown operator: {op}")

    def _eval_Call(self, node: Call, scope: Scope) -> Value:
        args = [self.evaluate(arg, scope) for arg in node.args]
        if node.target is None:
            function = FUNCTIONS.get(node.name)
            if function is None:
                raise EvalError(f"Unknown function: {node.name}()")
            return function(args)
        method = METHODS.get(node.name)
        if method is None:
            raise EvalError(f"Unknown method: {node.name}()")
        return method(self.evaluate(node.target, scope), args)

    def _eval_Comprehension(self, node: Comprehension, scope: Scope) -> Value:
        items = self.evaluate(node.target, scope).iterate(f"{node.name}()")

        if node.name == "map":
            return Value.list_of(
                self.evaluate(node.body, scope.bind(node.variable, item)) for item in items
            )

        matched = []
        for item in items:
            result = self.evaluate(node.body, scope.bind(node.variable, item))
            flag = result.expect(ValueKind.BOOL, f"{node.name}() predicate")
            if node.name == "exists" and flag:
                return TRUE
            if node.name == "all" and not flag:
                return FALSE
            if flag:
                matched.append(item)

        if node.name == "exists":
            return FALSE
        if node.name == "all":
            return TRUE
        if node.name == "exists_one":
            return boolean(len(matched) == 1)
        return Value.list_of(matched)

    def _eval_ListLiteral(self, node: ListLiteral, scope: Scope) -> Value:
        return Value.list_of(self.evaluate(item, scope) for item in node.items)

    def _eval_MapLiteral(self, node: MapLiteral, scope: Scope) -> Value:
        entries: Dict[str, Any] = {}
        for key_node, value_node in node.entries:
            key = self.evaluate(key_node, scope).expect(ValueKind.STRING, "Map key")
            entries[key] = self.evaluate(value_node, scope)
        return Value.of(entries)


_EVALUATOR = Evaluator()


def _root_value(facts: Any) -> Value:
    if hasattr(facts, "to_value"):
        return facts.to_value()
    if isinstance(facts, Value):
        root = facts
    elif isinstance(facts, Mapping):
        root = Value.of(facts)
    else:
        raise EvalError(f"Facts must be a map, got {type(facts).__name__}")
    if root.kind is not ValueKind.MAP:
        raise EvalError(f"Facts must be a map, got {root.type_name}")
    return root


@dataclass(frozen=True)
class Program:
    """A parsed expression ready to be evaluated any number of times."""

    source: str
    root: Node

    def evaluate_value(self, facts: Any) -> Value:
        """Evaluate to a raw Value."""
        try:
            return _EVALUATOR.evaluate(self.root, Scope(_root_value(facts)))
        except RecursionError as e:
            raise EvalError("Expression nested too deeply to evaluate") from e

    def evaluate(self, facts: Any) -> bool:
        """Evaluate to a boolean.

        Args:
            facts: A FactModel, a MAP Value, or a plain mapping

        Returns:
            The boolean result

        Raises:
            EvalError: On undefined references, type mismatches, or a
                non-boolean result
        """
        result = self.evaluate_value(facts)
        if result.kind is not ValueKind.BOOL:
            raise EvalError(f"Expression must produce bool, got {result.type_name}")
        return result.data


def compile_expression(source: str) -> Program:
    """Parse an expression into a reusable Program.

    Raises:
        ParseError: If the expression is malformed
    """
    return Program(source=source, root=parse(source))


def evaluate(source: str, facts: Any) -> bool:
    """Parse and evaluate an expression in one step."""
    return compile_expression(source).evaluate(facts)
