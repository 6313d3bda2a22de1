"""Fact snapshots that guardrail expressions are evaluated against."""

from .builder import build_fact_model
from .model import (
    FactModel,
    Package,
    Project,
    Scorecard,
    Severity,
    Vulnerability,
    VulnerabilitySet,
)

__all__ = [
    "FactModel",
    "Package",
    "Project",
    "Scorecard",
    "Severity",
    "Vulnerability",
    "VulnerabilitySet",
    "build_fact_model",
]
