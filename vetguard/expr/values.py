"""Tagged values seen by guardrail expressions.

Every datum an expression touches is wrapped in a Value carrying one of
six kinds. Operators inspect the kind explicitly instead of relying on
Python's own duck typing, so `"3" < 4` is an error rather than a surprise.
"""

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Iterator, Mapping

from ..errors import EvalError


class ValueKind(Enum):
    """Kinds of expression values."""

    BOOL = "bool"
    NUMBER = "number"
    STRING = "string"
    LIST = "list"
    MAP = "map"
    NULL = "null"


@dataclass(frozen=True)
class Value:
    """An immutable, kind-tagged expression value.

    LIST data is a tuple of Values and MAP data is a read-only mapping from
    str to Value. NUMBER data is an int or float, never a bool.
    """

    kind: ValueKind
    data: Any = None

    @classmethod
    def of(cls, obj: Any) -> "Value":
        """Wrap a plain Python object, recursing into containers."""
        if isinstance(obj, Value):
            return obj
        if obj is None:
            return NULL
        if isinstance(obj, bool):
            return TRUE if obj else FALSE
        if isinstance(obj, (int, float)):
            return cls(ValueKind.NUMBER, obj)
        if isinstance(obj, str):
            return cls(ValueKind.STRING, obj)
        if isinstance(obj, Mapping):
            items = {}
            for key, item in obj.items():
                if not isinstance(key, str):
                    raise EvalError(f"Map keys must be strings, got {type(key).__name__}")
                items[key] = cls.of(item)
            return cls(ValueKind.MAP, MappingProxyType(items))
        if isinstance(obj, (list, tuple)):
            return cls(ValueKind.LIST, tuple(cls.of(item) for item in obj))
        raise EvalError(f"Unsupported value type: {type(obj).__name__}")

    @classmethod
    def list_of(cls, items) -> "Value":
        return cls(ValueKind.LIST, tuple(items))

    def to_python(self) -> Any:
        """Unwrap back into plain Python data."""
        if self.kind is ValueKind.LIST:
            return [item.to_python() for item in self.data]
        if self.kind is ValueKind.MAP:
            return {key: item.to_python() for key, item in self.data.items()}
        return self.data

    @property
    def type_name(self) -> str:
        return self.kind.value

    def expect(self, kind: ValueKind, context: str) -> Any:
        """Return the raw data, or raise EvalError if the kind differs."""
        if self.kind is not kind:
            raise EvalError(f"{context} expects {kind.value}, got {self.type_name}")
        return self.data

    def iterate(self, context: str) -> Iterator["Value"]:
        """Iterate list elements, or map keys as string values."""
        if self.kind is ValueKind.LIST:
            return iter(self.data)
        if self.kind is ValueKind.MAP:
            return (Value(ValueKind.STRING, key) for key in self.data)
        raise EvalError(f"{context} expects list or map, got {self.type_name}")

    def member(self, name: str) -> "Value":
        """Look up a map key, failing loudly on anything undefined."""
        if self.kind is not ValueKind.MAP:
            raise EvalError(f"Cannot access field '{name}' on {self.type_name}")
        try:
            return self.data[name]
        except KeyError:
            raise EvalError(f"No such key: '{name}'") from None

    def index(self, key: "Value") -> "Value":
        """Index a list by integral number or a map by string."""
        if self.kind is ValueKind.MAP:
            return self.member(key.expect(ValueKind.STRING, "Map index"))
        if self.kind is ValueKind.LIST:
            position = key.expect(ValueKind.NUMBER, "List index")
            if position != int(position):
                raise EvalError(f"List index must be integral, got {position}")
            position = int(position)
            if position < 0 or position >= len(self.data):
                raise EvalError(
                    f"List index {position} out of range for size {len(self.data)}"
                )
            return self.data[position]
        raise EvalError(f"Cannot index into {self.type_name}")

    def size(self) -> int:
        if self.kind in (ValueKind.STRING, ValueKind.LIST, ValueKind.MAP):
            return len(self.data)
        raise EvalError(f"size() not defined for {self.type_name}")

    def equals(self, other: "Value") -> bool:
        """Deep equality; null compares with anything, other kinds must match."""
        if self.kind is ValueKind.NULL or other.kind is ValueKind.NULL:
            return self.kind is other.kind
        if self.kind is not other.kind:
            raise EvalError(
                f"Cannot compare {self.type_name} with {other.type_name}"
            )
        if self.kind is ValueKind.LIST:
            return len(self.data) == len(other.data) and all(
                a.equals(b) for a, b in zip(self.data, other.data)
            )
        if self.kind is ValueKind.MAP:
            if set(self.data) != set(other.data):
                return False
            return all(self.data[key].equals(other.data[key]) for key in self.data)
        return self.data == other.data

    def compare(self, other: "Value") -> int:
        """Order two numbers or two strings; -1, 0 or 1."""
        if self.kind is not other.kind or self.kind not in (
            ValueKind.NUMBER,
            ValueKind.STRING,
        ):
            raise EvalError(
                f"Cannot order {self.type_name} and {other.type_name}"
            )
        if self.data < other.data:
            return -1
        if self.data > other.data:
            return 1
        return 0

    def __repr__(self) -> str:
        return f"Value({self.type_name}, {self.to_python()!r})"


TRUE = Value(ValueKind.BOOL, True)
FALSE = Value(ValueKind.BOOL, False)
NULL = Value(ValueKind.NULL, None)


def boolean(flag: bool) -> Value:
    return TRUE if flag else FALSE


def contains(container: Value, item: Value) -> bool:
    """Membership test backing the `in` operator."""
    if container.kind is ValueKind.MAP:
        return item.expect(ValueKind.STRING, "'in' on map") in container.data
    if container.kind is ValueKind.LIST:
        for element in container.data:
            if element.kind is ValueKind.NULL or item.kind is ValueKind.NULL:
                if element.kind is item.kind:
                    return True
                continue
            if element.kind is item.kind and element.equals(item):
                return True
        return False
    raise EvalError(f"'in' expects list or map, got {container.type_name}")

