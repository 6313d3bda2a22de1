"""Pytest configuration and shared fixtures."""

import pytest

from vetguard.facts import FactModel


@pytest.fixture
def general_suite_document():
    """The general-purpose guardrail suite as a parsed document."""
    return {
        "name": "General Purpose OSS Best Practices",
        "description": "Minimum security guardrails against risky OSS components.\n",
        "tags": ["general"],
        "filters": [
            {
                "name": "critical-or-high-vulns",
                "check_type": "CheckTypeVulnerability",
                "summary": "Critical or high risk vulnerabilities were found",
                "value": "vulns.critical.exists(p, true) || vulns.high.exists(p, true)\n",
            },
            {
                "name": "unmaintained-packages",
                "check_type": "CheckTypeSecurityScorecard",
                "summary": "Unmaintained packages were found",
                "value": 'scorecard.scores["Maintained"] == 0\n',
            },
            {
                "name": "low-popularity",
                "check_type": "CheckTypePopularity",
                "summary": "Component popularity is low by Github stars count",
                "value": 'projects.exists(p, (p.type == "GITHUB") && (p.stars < 10))\n',
            },
            {
                "name": "osv-malware",
                "check_type": "CheckTypeMalware",
                "summary": "Malicious (malware) component detected",
                "value": 'vulns.all.exists(v, v.id.startsWith("MAL-"))\n',
            },
        ],
    }


@pytest.fixture
def clean_facts_dict():
    """Facts for a healthy, popular component with no vulnerabilities."""
    return {
        "pkg": {"ecosystem": "npm", "name": "left-pad", "version": "1.3.0"},
        "vulns": {"critical": [], "high": [], "all": []},
        "scorecard": {"scores": {"Maintained": 10, "Code-Review": 8}, "score": 7.5},
        "projects": [{"name": "left-pad/left-pad", "type": "GITHUB", "stars": 1200}],
        "licenses": ["MIT"],
    }


@pytest.fixture
def clean_facts(clean_facts_dict):
    return FactModel.from_dict(clean_facts_dict)


@pytest.fixture
def risky_facts():
    """Facts that violate every rule of the general suite."""
    return FactModel.from_dict({
        "pkg": {"ecosystem": "pypi", "name": "evil-pkg", "version": "0.0.1"},
        "vulnerabilities": [
            {"id": "GHSA-aaaa-bbbb-cccc", "severity": "CRITICAL"},
            {"id": "MAL-2024-1234", "summary": "Malicious code in evil-pkg"},
        ],
        "scorecard": {"scores": {"Maintained": 0}},
        "projects": [{"name": "someone/evil-pkg", "type": "GITHUB", "stars": 2}],
    })
