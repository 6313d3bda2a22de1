"""Recursive-descent parser for guardrail expressions.

Precedence, lowest first: ternary, ||, &&, relations (non-associative),
additive, multiplicative, unary, member/index/call.
"""

from dataclasses import fields
from typing import Iterator, List, Optional

from ..errors import ParseError
from .lexer import Token, TokenType, tokenize
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
from .values import FALSE, NULL, TRUE, Value

# Macros taking (variable, body) as arguments
COMPREHENSIONS = {"exists", "all", "exists_one", "filter", "map"}

RELATIONS = {"==", "!=", "<", "<=", ">", ">=", "in"}

# Parser recursion: nested groups, calls and unary operators
MAX_DEPTH = 50

# Evaluated tree, which also grows through left-associated chains like a + a + a
MAX_TREE_DEPTH = 100


class Parser:
    """Parses one expression string into a Node tree."""

    def __init__(self, source: str):
        self.source = source
        self.tokens: List[Token] = tokenize(source)
        self.pos = 0
        self.depth = 0

    def parse(self) -> Node:
        if self._peek().type is TokenType.EOF:
            raise ParseError("Empty expression", 0, self.source)
        node = self._expression()
        token = self._peek()
        if token.type is not TokenType.EOF:
            raise self._error(f"Unexpected token {token.text!r}", token)
        return node

    # Token helpers

    def _peek(self) -> Token:
        return self.tokens[self.pos]

    def _advance(self) -> Token:
        token = self.tokens[self.pos]
        if token.type is not TokenType.EOF:
            self.pos += 1
        return token

    def _check(self, op: str) -> bool:
        token = self._peek()
        return token.type is TokenType.OPERATOR and token.text == op

    def _accept(self, op: str) -> Optional[Token]:
        if self._check(op):
            return self._advance()
        return None

    def _expect(self, op: str) -> Token:
        token = self._peek()
        if not self._check(op):
            found = token.text or "end of expression"
            raise self._error(f"Expected {op!r}, found {found!r}", token)
        return self._advance()

    def _error(self, message: str, token: Token) -> ParseError:
        return ParseError(message, token.position, self.source)

    def _descend(self, token: Token) -> None:
        self.depth += 1
        if self.depth > MAX_DEPTH:
            raise self._error("Expression nested too deeply", token)

    # Grammar

    def _expression(self) -> Node:
        try:
            self._descend(self._peek())
            condition = self._or()
            question = self._accept("?")
            if question is None:
                return condition
            then = self._or()
            self._expect(":")
            otherwise = self._expression()
            return Conditional(condition, then, otherwise, question.position)
        finally:
            self.depth -= 1

    def _or(self) -> Node:
        node = self._and()
        while self._check("||"):
            token = self._advance()
            node = Logical("||", node, self._and(), token.position)
        return node

    def _and(self) -> Node:
        node = self._relation()
        while self._check("&&"):
            token = self._advance()
            node = Logical("&&", node, self._relation(), token.position)
        return node

    def _relation(self) -> Node:
        node = self._additive()
        token = self._peek()
        if token.type is TokenType.OPERATOR and token.text in RELATIONS:
            self._advance()
            node = Binary(token.text, node, self._additive(), token.position)
            following = self._peek()
            if following.type is TokenType.OPERATOR and following.text in RELATIONS:
                raise self._error(
                    "Comparison operators cannot be chained", following
                )
        return node

    def _additive(self) -> Node:
        node = self._multiplicative()
        while self._check("+") or self._check("-"):
            token = self._advance()
            node = Binary(token.text, node, self._multiplicative(), token.position)
        return node

    def _multiplicative(self) -> Node:
        node = self._unary()
        while self._check("*") or self._check("/") or self._check("%"):
            token = self._advance()
            node = Binary(token.text, node, self._unary(), token.position)
        return node

    def _unary(self) -> Node:
        if self._check("!") or self._check("-"):
            token = self._advance()
            try:
                self._descend(token)
                return Unary(token.text, self._unary(), token.position)
            finally:
                self.depth -= 1
        return self._member()

    def _member(self) -> Node:
        node = self._primary()
        while True:
            if self._check("."):
                self._advance()
                name = self._peek()
                if name.type is not TokenType.IDENT:
                    raise self._error("Expected field name after '.'", name)
                self._advance()
                if self._check("("):
                    node = self._call(name, node)
                else:
                    node = Member(node, name.text, name.position)
            elif self._check("["):
                token = self._advance()
                key = self._expression()
                self._expect("]")
                node = Index(node, key, token.position)
            else:
                return node

    def _primary(self) -> Node:
        token = self._peek()

        if token.type is TokenType.NUMBER:
            self._advance()
            return Literal(Value.of(token.value), token.position)
        if token.type is TokenType.STRING:
            self._advance()
            return Literal(Value.of(token.value), token.position)
        if token.type is TokenType.IDENT:
            self._advance()
            if self._check("("):
                return self._call(token, None)
            return Ident(token.text, token.position)

        if token.type is TokenType.OPERATOR:
            if token.text == "true":
                self._advance()
                return Literal(TRUE, token.position)
            if token.text == "false":
                self._advance()
                return Literal(FALSE, token.position)
            if token.text == "null":
                self._advance()
                return Literal(NULL, token.position)
            if token.text == "(":
                self._advance()
                node = self._expression()
                self._expect(")")
                return node
            if token.text == "[":
                return self._list()
            if token.text == "{":
                return self._map()

        found = token.text or "end of expression"
        raise self._error(f"Unexpected {found!r}", token)

    def _arguments(self) -> List[Node]:
        self._expect("(")
        args: List[Node] = []
        if not self._check(")"):
            args.append(self._expression())
            while self._accept(","):
                args.append(self._expression())
        self._expect(")")
        return args

    def _call(self, name: Token, target: Optional[Node]) -> Node:
        args = self._arguments()

        if name.text in COMPREHENSIONS:
            if target is None:
                # exists(list, x, pred) is the same as list.exists(x, pred)
                if len(args) != 3:
                    raise self._error(
                        f"{name.text}() needs a list: write list.{name.text}(variable, predicate) "
                        f"or {name.text}(list, variable, predicate)",
                        name,
                    )
                target, args = args[0], args[1:]
            if len(args) != 2:
                raise self._error(
                    f"{name.text}() expects (variable, predicate)", name
                )
            variable, body = args
            if not isinstance(variable, Ident):
                raise ParseError(
                    f"{name.text}() variable must be an identifier",
                    variable.position,
                    self.source,
                )
            return Comprehension(name.text, target, variable.name, body, name.position)

        if name.text == "has" and target is None:
            if len(args) != 1 or not isinstance(args[0], Member):
                raise self._error("has() expects a field selection like a.b", name)
            return Has(args[0].target, args[0].name, name.position)

        return Call(name.text, target, tuple(args), name.position)

    def _list(self) -> Node:
        token = self._expect("[")
        items: List[Node] = []
        if not self._check("]"):
            items.append(self._expression())
            while self._accept(","):
                if self._check("]"):
                    break
                items.append(self._expression())
        self._expect("]")
        return ListLiteral(tuple(items), token.position)

    def _map(self) -> Node:
        token = self._expect("{")
        entries = []
        if not self._check("}"):
            entries.append(self._entry())
            while self._accept(","):
                if self._check("}"):
                    break
                entries.append(self._entry())
        self._expect("}")
        return MapLiteral(tuple(entries), token.position)

    def _entry(self):
        key = self._expression()
        self._expect(":")
        return key, self._expression()


def parse(source: str) -> Node:
    """Parse an expression into a syntax tree.

    Args:
        source: Expression text

    Returns:
        Root Node of the expression

    Raises:
        ParseError: If the expression is malformed
    """
    if not isinstance(source, str):
        raise ParseError(f"Expression must be a string, got {type(source).__name__}")
    source = source.strip()
    root = Parser(source).parse()
    _check_tree_depth(root, source)
    return root


def _children(node: Node) -> Iterator[Node]:
    for f in fields(node):
        value = getattr(node, f.name)
        if isinstance(value, Node):
            yield value
        elif isinstance(value, tuple):
            for item in value:
                if isinstance(item, Node):
                    yield item
                elif isinstance(item, tuple):
                    # map entries are (key, value) pairs
                    yield from (part for part in item if isinstance(part, Node))


def _check_tree_depth(root: Node, source: str) -> None:
    stack = [(root, 1)]
    while stack:
        node, depth = stack.pop()
        if depth > MAX_TREE_DEPTH:
            raise ParseError("Expression nested too deeply", node.position, source)
        stack.extend((child, depth + 1) for child in _children(node))
