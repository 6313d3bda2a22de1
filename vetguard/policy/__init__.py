"""Guardrail policy evaluation for vetguard.

Loads filter suites and evaluates them against component fact snapshots.
"""

from .engine import EvaluationResult, PolicyEvaluator, PolicyReport, exit_code
from .loader import (
    FilterSuite,
    RuleLoadIssue,
    list_builtin_suites,
    load_builtin_suite,
    load_suite,
    parse_suite,
)
from .rules import CheckType, Rule

__all__ = [
    "CheckType",
    "EvaluationResult",
    "FilterSuite",
    "PolicyEvaluator",
    "PolicyReport",
    "Rule",
    "RuleLoadIssue",
    "exit_code",
    "list_builtin_suites",
    "load_builtin_suite",
    "load_suite",
    "parse_suite",
]
