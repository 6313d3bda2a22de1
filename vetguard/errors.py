"""Error taxonomy for vetguard.

Load-time problems raise ConfigError. Expression problems raise a subclass
of ExpressionError: ParseError for malformed syntax and EvalError for
undefined references or type mismatches found while evaluating.
"""

from typing import Optional


class VetGuardError(Exception):
    """Base class for all vetguard errors."""


class ConfigError(VetGuardError):
    """Raised when a filter suite, fact document or config is malformed."""

    def __init__(self, message: str, rule_name: Optional[str] = None):
        super().__init__(message)
        self.rule_name = rule_name


class ExpressionError(VetGuardError):
    """Base class for expression failures."""


class ParseError(ExpressionError):
    """Raised when an expression is syntactically invalid."""

    def __init__(self, message: str, position: int = 0, source: str = ""):
        super().__init__(f"{message} (at offset {position})")
        self.position = position
        self.source = source


class EvalError(ExpressionError):
    """Raised when an expression cannot be evaluated against the facts."""
