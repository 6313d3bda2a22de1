"""vetguard: guardrail policies for open-source components."""

from .errors import ConfigError, EvalError, ExpressionError, ParseError, VetGuardError

__version__ = "0.1.0"

__all__ = [
    "ConfigError",
    "EvalError",
    "ExpressionError",
    "ParseError",
    "VetGuardError",
    "__version__",
]
