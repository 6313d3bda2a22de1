"""Syntax tree nodes for guardrail expressions.

Nodes are immutable so a parsed program can be shared between threads.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from .values import Value


class Node:
    """Base class for expression nodes."""

    position: int


@dataclass(frozen=True)
class Literal(Node):
    value: Value
    position: int = 0


@dataclass(frozen=True)
class Ident(Node):
    name: str
    position: int = 0


@dataclass(frozen=True)
class Member(Node):
    target: Node
    name: str
    position: int = 0


@dataclass(frozen=True)
class Index(Node):
    target: Node
    key: Node
    position: int = 0


@dataclass(frozen=True)
class Call(Node):
    """Function call; `target` is set for receiver-style calls like s.startsWith(x)."""

    name: str
    target: Optional[Node]
    args: Tuple[Node, ...]
    position: int = 0


@dataclass(frozen=True)
class Comprehension(Node):
    """A quantifier or projection over a list: exists, all, exists_one, filter, map."""

    name: str
    target: Node
    variable: str
    body: Node
    position: int = 0


@dataclass(frozen=True)
class Has(Node):
    """Field presence test, has(a.b)."""

    target: Node
    name: str
    position: int = 0


@dataclass(frozen=True)
class Unary(Node):
    op: str
    operand: Node
    position: int = 0


@dataclass(frozen=True)
class Binary(Node):
    op: str
    left: Node
    right: Node
    position: int = 0


@dataclass(frozen=True)
class Logical(Node):
    """Short-circuiting && and ||."""

    op: str
    left: Node
    right: Node
    position: int = 0


@dataclass(frozen=True)
class Conditional(Node):
    condition: Node
    then: Node
    otherwise: Node
    position: int = 0


@dataclass(frozen=True)
class ListLiteral(Node):
    items: Tuple[Node, ...]
    position: int = 0


@dataclass(frozen=True)
class MapLiteral(Node):
    entries: Tuple[Tuple[Node, Node], ...]
    position: int = 0
