"""Guardrail rule definitions for vetguard.

A rule binds a name, a check-type tag and a human-readable summary to one
boolean expression. When the expression is true the rule is triggered,
meaning the component violates the guardrail.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping

from ..errors import ConfigError
from ..expr import Program, compile_expression


class CheckType(str, Enum):
    """Classification of what a rule checks."""

    VULNERABILITY = "CheckTypeVulnerability"
    MALWARE = "CheckTypeMalware"
    POPULARITY = "CheckTypePopularity"
    MAINTENANCE = "CheckTypeMaintenance"
    SECURITY_SCORECARD = "CheckTypeSecurityScorecard"
    LICENSE = "CheckTypeLicense"
    OTHER = "CheckTypeOther"

    @classmethod
    def parse(cls, tag: Any) -> "CheckType":
        """Parse a check-type tag.

        Raises:
            ConfigError: If the tag is not a known check type
        """
        if isinstance(tag, cls):
            return tag
        try:
            return cls(tag)
        except ValueError:
            known = ", ".join(c.value for c in cls)
            raise ConfigError(f"Unknown check_type {tag!r}; expected one of: {known}") from None


@dataclass(frozen=True)
class Rule:
    """
    A single guardrail rule.

    Immutable once created. The expression is compiled up front so a
    syntax error surfaces when the rule is loaded, not when it is run.
    """
    name: str
    check_type: CheckType
    summary: str
    expression: str
    program: Program = field(repr=False, compare=False)

    @classmethod
    def create(
        cls,
        name: str,
        expression: str,
        check_type: Any = CheckType.OTHER,
        summary: str = "",
    ) -> "Rule":
        """Create a rule, compiling its expression.

        Raises:
            ConfigError: If the name is empty or the check type unknown
            ParseError: If the expression is malformed
        """
        if not name or not str(name).strip():
            raise ConfigError("Rule name must not be empty")
        expression = expression.strip()
        return cls(
            name=str(name).strip(),
            check_type=CheckType.parse(check_type),
            summary=summary,
            expression=expression,
            program=compile_expression(expression),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert rule to the filter document spelling."""
        return {
            "name": self.name,
            "check_type": self.check_type.value,
            "summary": self.summary,
            "value": self.expression,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Rule":
        """Create rule from a filter record.

        The expression is read from `value` (filter document spelling) or
        `expression`.
        """
        if not isinstance(data, Mapping):
            raise ConfigError(f"Rule must be a mapping, got {type(data).__name__}")
        name = data.get("name")
        expression = data.get("value", data.get("expression"))
        if not isinstance(expression, str):
            raise ConfigError(f"Rule {name!r} has no expression", rule_name=name)
        return cls.create(
            name=name,
            expression=expression,
            check_type=data.get("check_type", CheckType.OTHER),
            summary=str(data.get("summary", "") or ""),
        )

    def matches(self, facts: Any) -> bool:
        """Evaluate the rule; True means the guardrail is violated.

        Raises:
            EvalError: If the expression cannot be evaluated against facts
        """
        return self.program.evaluate(facts)
