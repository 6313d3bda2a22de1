"""Filter suite loading for vetguard.

A filter suite is a document with `name`, `description`, `tags` and a list
of `filters`, each filter being one guardrail rule. Loading validates the
document, rejects duplicate rule names outright, and isolates problems in
individual rules so the rest of the suite can still be evaluated.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator, List, Mapping, Optional, Union

import yaml
from pydantic import BaseModel, Field, ValidationError

from ..common.config import load_document
from ..common.logger import get_logger
from ..errors import ConfigError, ExpressionError, VetGuardError
from .rules import Rule

logger = get_logger("policy.loader")

BUILTIN_SUITES_DIR = Path(__file__).resolve().parent.parent / "suites"


# Document schemas
class FilterSpec(BaseModel):
    name: str = Field(..., min_length=1)
    check_type: str
    summary: str = ""
    value: Optional[str] = None
    expression: Optional[str] = None


class FilterSuiteDocument(BaseModel):
    name: str = Field(..., min_length=1)
    description: str = ""
    tags: List[str] = Field(default_factory=list)
    filters: List[Any] = Field(default_factory=list)


@dataclass(frozen=True)
class RuleLoadIssue:
    """A filter that could not be loaded, and why."""

    rule_name: str
    error: VetGuardError

    def __str__(self) -> str:
        return f"{self.rule_name}: {self.error}"


@dataclass(frozen=True)
class FilterSuite:
    """A loaded filter suite.

    `rules` holds every filter that loaded, in document order; `rejected`
    holds the filters that were skipped.
    """
    name: str
    description: str = ""
    tags: tuple = ()
    rules: tuple = ()
    rejected: tuple = ()

    def __len__(self) -> int:
        return len(self.rules)

    def __iter__(self) -> Iterator[Rule]:
        return iter(self.rules)

    def get(self, name: str) -> Optional[Rule]:
        """Get a rule by name, or None if no such rule loaded."""
        for rule in self.rules:
            if rule.name == name:
                return rule
        return None

    @property
    def rule_names(self) -> List[str]:
        return [rule.name for rule in self.rules]


def find_duplicate_names(names: List[Any]) -> List[str]:
    """Return names that occur more than once, in first-seen order.

    Names are compared the way Rule.create stores them, with surrounding
    whitespace removed.
    """
    seen = set()
    duplicates: List[str] = []
    for name in names:
        if not isinstance(name, str) or not name.strip():
            continue
        name = name.strip()
        if name in seen and name not in duplicates:
            duplicates.append(name)
        seen.add(name)
    return duplicates


def parse_suite(document: Any) -> FilterSuite:
    """Build a FilterSuite from an already-parsed document.

    Args:
        document: Mapping with `name`, `description`, `tags`, `filters`

    Returns:
        FilterSuite with loaded and rejected rules

    Raises:
        ConfigError: If the document shape is wrong or rule names repeat
    """
    if not isinstance(document, Mapping):
        raise ConfigError(
            f"Filter suite must be a mapping, got {type(document).__name__}"
        )
    try:
        suite_doc = FilterSuiteDocument.model_validate(dict(document))
    except ValidationError as e:
        raise ConfigError(f"Invalid filter suite: {e}") from e

    raw_names = [
        f.get("name") if isinstance(f, Mapping) else None for f in suite_doc.filters
    ]
    duplicates = find_duplicate_names(raw_names)
    if duplicates:
        raise ConfigError(
            f"Duplicate rule names in suite '{suite_doc.name}': {', '.join(map(str, duplicates))}"
        )

    rules: List[Rule] = []
    rejected: List[RuleLoadIssue] = []

    for index, raw in enumerate(suite_doc.filters):
        name = raw.get("name") if isinstance(raw, Mapping) else None
        label = str(name or f"filters[{index}]")
        try:
            rules.append(_parse_filter(raw))
        except (ConfigError, ExpressionError) as e:
            logger.warning(f"Skipping rule '{label}' in suite '{suite_doc.name}': {e}")
            rejected.append(RuleLoadIssue(rule_name=label, error=e))

    logger.info(
        f"Loaded suite '{suite_doc.name}': {len(rules)} rules, {len(rejected)} rejected"
    )
    return FilterSuite(
        name=suite_doc.name,
        description=suite_doc.description.strip(),
        tags=tuple(suite_doc.tags),
        rules=tuple(rules),
        rejected=tuple(rejected),
    )


def _parse_filter(raw: Any) -> Rule:
    if not isinstance(raw, Mapping):
        raise ConfigError(f"Filter must be a mapping, got {type(raw).__name__}")
    try:
        spec = FilterSpec.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(f"Invalid filter: {e}", rule_name=raw.get("name")) from e

    expression = spec.value if spec.value is not None else spec.expression
    if expression is None or not expression.strip():
        raise ConfigError(f"Rule '{spec.name}' has no expression", rule_name=spec.name)

    return Rule.create(
        name=spec.name,
        expression=expression,
        check_type=spec.check_type,
        summary=spec.summary.strip(),
    )


def load_suite(source: Union[str, Path, Mapping[str, Any]]) -> FilterSuite:
    """Load a filter suite from a path, YAML text, or parsed mapping.

    Args:
        source: Path to a suite file, a YAML string, or a mapping

    Returns:
        FilterSuite

    Raises:
        ConfigError: If the suite is malformed or has duplicate rule names
        FileNotFoundError: If a path is given and doesn't exist
    """
    if isinstance(source, Mapping):
        return parse_suite(source)

    if isinstance(source, Path):
        return parse_suite(load_document(source))

    if isinstance(source, str):
        # An existing file, or a single line without a mapping colon, is a path
        if "\n" not in source and (os.path.isfile(source) or ":" not in source):
            return parse_suite(load_document(source))
        try:
            return parse_suite(yaml.safe_load(source))
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid filter suite YAML: {e}") from e

    raise ConfigError(f"Cannot load filter suite from {type(source).__name__}")


def list_builtin_suites() -> List[str]:
    """Names of the suites shipped with vetguard."""
    return sorted(path.stem for path in BUILTIN_SUITES_DIR.glob("*.yaml"))


def load_builtin_suite(name: str) -> FilterSuite:
    """Load a shipped suite by name.

    Raises:
        ConfigError: If no suite by that name ships with vetguard
    """
    path = BUILTIN_SUITES_DIR / f"{name}.yaml"
    if not path.exists():
        available = ", ".join(list_builtin_suites()) or "none"
        raise ConfigError(f"Unknown built-in suite '{name}'; available: {available}")
    return parse_suite(load_document(path))
