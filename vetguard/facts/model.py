"""Fact model for guardrail evaluation.

A FactModel is a read-only snapshot of everything known about one
component: its vulnerabilities, its security scorecard and the source
projects it is published from. Expressions see the snapshot as a tree of
tagged Values rooted at `pkg`, `vulns`, `scorecard`, `projects` and
`licenses`.
"""

from dataclasses import dataclass, field
from enum import Enum
from functools import cached_property
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from ..errors import ConfigError
from ..expr.values import Value


class Severity(str, Enum):
    """Vulnerability severity tiers."""

    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def parse(cls, text: Optional[str]) -> "Severity":
        """Parse a severity label, case-insensitively."""
        if not text:
            return cls.UNKNOWN
        label = str(text).strip().upper()
        if label == "MODERATE":
            # GitHub advisories say "moderate" for medium
            return cls.MEDIUM
        try:
            return cls(label)
        except ValueError:
            return cls.UNKNOWN

    @classmethod
    def from_cvss(cls, score: Optional[float]) -> "Severity":
        """Bucket a CVSS v3 base score into a tier."""
        if score is None:
            return cls.UNKNOWN
        if score >= 9.0:
            return cls.CRITICAL
        if score >= 7.0:
            return cls.HIGH
        if score >= 4.0:
            return cls.MEDIUM
        if score > 0:
            return cls.LOW
        return cls.UNKNOWN


@dataclass(frozen=True)
class Vulnerability:
    """A single vulnerability or malware advisory."""

    id: str
    severity: Severity = Severity.UNKNOWN
    summary: str = ""
    aliases: Tuple[str, ...] = ()
    cvss_score: Optional[float] = None

    @classmethod
    def from_dict(
        cls, data: Mapping[str, Any], severity: Optional[Severity] = None
    ) -> "Vulnerability":
        """Create a vulnerability from a record.

        Accepts `id` or `cve_id` for the identifier. When no severity label
        is present the CVSS score, if any, decides the tier.
        """
        if not isinstance(data, Mapping):
            raise ConfigError(f"Vulnerability record must be a mapping, got {type(data).__name__}")
        vuln_id = data.get("id") or data.get("cve_id")
        if not vuln_id:
            raise ConfigError("Vulnerability record missing 'id'")

        cvss = data.get("cvss_score")
        if cvss is not None:
            try:
                cvss = float(cvss)
            except (TypeError, ValueError) as e:
                raise ConfigError(f"Invalid cvss_score for {vuln_id}: {cvss!r}") from e

        if severity is None:
            severity = Severity.parse(data.get("severity"))
            if severity is Severity.UNKNOWN:
                severity = Severity.from_cvss(cvss)

        return cls(
            id=str(vuln_id),
            severity=severity,
            summary=str(data.get("summary", "") or ""),
            aliases=tuple(str(a) for a in data.get("aliases", []) or []),
            cvss_score=cvss,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "severity": self.severity.value,
            "summary": self.summary,
            "aliases": list(self.aliases),
            "cvss_score": self.cvss_score,
        }


@dataclass(frozen=True)
class VulnerabilitySet:
    """Vulnerabilities grouped by severity tier, plus the full list."""

    critical: Tuple[Vulnerability, ...] = ()
    high: Tuple[Vulnerability, ...] = ()
    medium: Tuple[Vulnerability, ...] = ()
    low: Tuple[Vulnerability, ...] = ()
    unknown: Tuple[Vulnerability, ...] = ()
    all: Tuple[Vulnerability, ...] = ()

    @classmethod
    def from_records(cls, records: Iterable[Vulnerability]) -> "VulnerabilitySet":
        """Group records by severity, keeping input order within each tier."""
        records = tuple(records)
        tiers: Dict[Severity, List[Vulnerability]] = {s: [] for s in Severity}
        for record in records:
            tiers[record.severity].append(record)
        return cls(
            critical=tuple(tiers[Severity.CRITICAL]),
            high=tuple(tiers[Severity.HIGH]),
            medium=tuple(tiers[Severity.MEDIUM]),
            low=tuple(tiers[Severity.LOW]),
            unknown=tuple(tiers[Severity.UNKNOWN]),
            all=records,
        )

    @classmethod
    def from_tiers(cls, tiers: Mapping[str, Any]) -> "VulnerabilitySet":
        """Build from a mapping of tier name to record list.

        An explicit `all` list is only used for records not already listed
        under a tier, so malware advisories without a severity still show up.
        """
        records: List[Vulnerability] = []
        seen = set()
        for severity in (Severity.CRITICAL, Severity.HIGH, Severity.MEDIUM, Severity.LOW, Severity.UNKNOWN):
            for item in _as_list(tiers.get(severity.value.lower()), f"vulns.{severity.value.lower()}"):
                record = Vulnerability.from_dict(item, severity=severity)
                records.append(record)
                seen.add(record.id)
        for item in _as_list(tiers.get("all"), "vulns.all"):
            record = Vulnerability.from_dict(item)
            if record.id not in seen:
                records.append(record)
                seen.add(record.id)
        return cls.from_records(records)

    def __len__(self) -> int:
        return len(self.all)


@dataclass(frozen=True)
class Scorecard:
    """Security scorecard results for the component's source repository."""

    scores: Mapping[str, float] = field(default_factory=lambda: MappingProxyType({}))
    score: Optional[float] = None
    repository: str = ""
    date: str = ""

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "Scorecard":
        if not data:
            return cls()
        if not isinstance(data, Mapping):
            raise ConfigError(f"scorecard must be a mapping, got {type(data).__name__}")

        raw_scores = data.get("scores", {}) or {}
        # Scorecard JSON lists checks as [{"name": ..., "score": ...}]
        if isinstance(data.get("checks"), list) and not raw_scores:
            raw_scores = {
                check.get("name"): check.get("score")
                for check in data["checks"]
                if isinstance(check, Mapping) and check.get("name")
            }
        if not isinstance(raw_scores, Mapping):
            raise ConfigError("scorecard.scores must be a mapping")

        scores = {}
        for name, value in raw_scores.items():
            try:
                scores[str(name)] = float(value)
            except (TypeError, ValueError) as e:
                raise ConfigError(f"Invalid scorecard score for {name}: {value!r}") from e

        score = data.get("score")
        if score is not None:
            try:
                score = float(score)
            except (TypeError, ValueError) as e:
                raise ConfigError(f"Invalid scorecard score: {score!r}") from e

        return cls(
            scores=MappingProxyType(scores),
            score=score,
            repository=str(data.get("repository", "") or ""),
            date=str(data.get("date", "") or ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scores": dict(self.scores),
            "score": self.score,
            "repository": self.repository,
            "date": self.date,
        }


@dataclass(frozen=True)
class Project:
    """A source project (repository) associated with the component."""

    name: str = ""
    type: str = ""
    url: str = ""
    stars: int = 0
    forks: int = 0
    issues: int = 0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Project":
        if not isinstance(data, Mapping):
            raise ConfigError(f"Project record must be a mapping, got {type(data).__name__}")
        try:
            return cls(
                name=str(data.get("name", "") or ""),
                type=str(data.get("type", "") or "").upper(),
                url=str(data.get("url", "") or ""),
                stars=int(data.get("stars", 0) or 0),
                forks=int(data.get("forks", 0) or 0),
                issues=int(data.get("issues", 0) or 0),
            )
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid project record: {e}") from e

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type,
            "url": self.url,
            "stars": self.stars,
            "forks": self.forks,
            "issues": self.issues,
        }


@dataclass(frozen=True)
class Package:
    """Identity of the component under evaluation."""

    ecosystem: str = ""
    name: str = ""
    version: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"ecosystem": self.ecosystem, "name": self.name, "version": self.version}


@dataclass(frozen=True)
class FactModel:
    """Read-only facts for one component, shared by every rule in a pass."""

    package: Package = field(default_factory=Package)
    vulns: VulnerabilitySet = field(default_factory=VulnerabilitySet)
    scorecard: Scorecard = field(default_factory=Scorecard)
    projects: Tuple[Project, ...] = ()
    licenses: Tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FactModel":
        """Build a snapshot from a plain mapping.

        Args:
            data: Mapping with optional `pkg`, `vulns` (tiered) or
                `vulnerabilities` (flat), `scorecard`, `projects` and
                `licenses` sections

        Returns:
            FactModel instance

        Raises:
            ConfigError: If a section has the wrong shape
        """
        if not isinstance(data, Mapping):
            raise ConfigError(f"Facts must be a mapping, got {type(data).__name__}")

        pkg = data.get("pkg", data.get("package")) or {}
        if not isinstance(pkg, Mapping):
            raise ConfigError("pkg must be a mapping")

        if "vulns" in data:
            tiers = data.get("vulns") or {}
            if not isinstance(tiers, Mapping):
                raise ConfigError("vulns must be a mapping of severity tiers")
            vulns = VulnerabilitySet.from_tiers(tiers)
        else:
            vulns = VulnerabilitySet.from_records(
                Vulnerability.from_dict(item)
                for item in _as_list(data.get("vulnerabilities"), "vulnerabilities")
            )

        return cls(
            package=Package(
                ecosystem=str(pkg.get("ecosystem", "") or ""),
                name=str(pkg.get("name", "") or ""),
                version=str(pkg.get("version", "") or ""),
            ),
            vulns=vulns,
            scorecard=Scorecard.from_dict(data.get("scorecard")),
            projects=tuple(
                Project.from_dict(item) for item in _as_list(data.get("projects"), "projects")
            ),
            licenses=tuple(str(l) for l in _as_list(data.get("licenses"), "licenses")),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Plain-data view matching the names expressions use."""
        return {
            "pkg": self.package.to_dict(),
            "vulns": {
                "critical": [v.to_dict() for v in self.vulns.critical],
                "high": [v.to_dict() for v in self.vulns.high],
                "medium": [v.to_dict() for v in self.vulns.medium],
                "low": [v.to_dict() for v in self.vulns.low],
                "unknown": [v.to_dict() for v in self.vulns.unknown],
                "all": [v.to_dict() for v in self.vulns.all],
            },
            "scorecard": self.scorecard.to_dict(),
            "projects": [p.to_dict() for p in self.projects],
            "licenses": list(self.licenses),
        }

    @cached_property
    def _root(self) -> Value:
        return Value.of(self.to_dict())

    def to_value(self) -> Value:
        """The tagged MAP value expressions are evaluated against."""
        return self._root


def _as_list(value: Any, name: str) -> List[Any]:
    if value is None:
        return []
    if not isinstance(value, (list, tuple)):
        raise ConfigError(f"{name} must be a list, got {type(value).__name__}")
    return list(value)
