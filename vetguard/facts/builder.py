"""Adapters that turn scanner output into a FactModel."""

from typing import Any, Dict, Optional

from ..common.logger import get_logger
from ..errors import ConfigError
from .model import (
    FactModel,
    Package,
    Project,
    Scorecard,
    Vulnerability,
    VulnerabilitySet,
)

logger = get_logger("facts")


def build_fact_model(
    scan_results: Dict[str, Any],
    package_metadata: Optional[Dict[str, Any]] = None,
) -> FactModel:
    """Build a fact snapshot from scan results and package metadata.

    Args:
        scan_results: Scanner output with a flat `vulnerabilities` list and
            optional `scorecard` and `projects` sections
        package_metadata: Package metadata (name, version, ecosystem or
            package_type, license)

    Returns:
        FactModel for the scanned package
    """
    package_metadata = package_metadata or {}

    # Drop records with no identifier, scanners emit those for unnamed findings
    vulnerabilities = []
    for record in scan_results.get("vulnerabilities", []) or []:
        if not isinstance(record, dict) or not (record.get("id") or record.get("cve_id")):
            logger.debug(f"Skipping vulnerability record without id: {record!r}")
            continue
        vulnerabilities.append(Vulnerability.from_dict(record))

    projects = []
    for record in scan_results.get("projects", []) or []:
        projects.append(Project.from_dict(record))

    licenses = package_metadata.get("licenses")
    if licenses is None:
        license_value = package_metadata.get("license")
        licenses = [license_value] if license_value else []
    if not isinstance(licenses, (list, tuple)):
        raise ConfigError("package licenses must be a list")

    facts = FactModel(
        package=Package(
            ecosystem=str(
                package_metadata.get("ecosystem")
                or package_metadata.get("package_type")
                or ""
            ),
            name=str(package_metadata.get("name", "") or ""),
            version=str(package_metadata.get("version", "") or ""),
        ),
        vulns=VulnerabilitySet.from_records(vulnerabilities),
        scorecard=Scorecard.from_dict(scan_results.get("scorecard")),
        projects=tuple(projects),
        licenses=tuple(str(l) for l in licenses),
    )

    logger.debug(
        f"Built facts for {facts.package.name or 'unknown'}: "
        f"{len(facts.vulns)} vulnerabilities, {len(facts.projects)} projects"
    )
    return facts
