"""Embedded expression language for guardrail rules.

Expressions are parsed once into a Program and evaluated against a fact
snapshot exposed as tagged Values.
"""

from .evaluator import Program, compile_expression, evaluate
from .parser import parse
from .values import Value, ValueKind

__all__ = [
    "Program",
    "Value",
    "ValueKind",
    "compile_expression",
    "evaluate",
    "parse",
]
