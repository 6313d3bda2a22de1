"""End-to-end evaluation of the shipped suites."""

import pytest

from vetguard.facts import FactModel, build_fact_model
from vetguard.policy import PolicyEvaluator, exit_code, load_builtin_suite


@pytest.fixture(params=["general", "strict"])
def evaluator(request):
    return PolicyEvaluator(load_builtin_suite(request.param), max_workers=2)


def test_clean_component_passes(evaluator, clean_facts):
    report = evaluator.evaluate(clean_facts)

    assert report.errors == []
    assert report.triggered == []
    assert exit_code(report, fail_on_error=True) == 0


def test_risky_component_blocked(evaluator, risky_facts):
    report = evaluator.evaluate(risky_facts)

    assert report.errors == []
    assert report.get("osv-malware").triggered
    assert report.get("low-popularity").triggered
    assert exit_code(report) == 1


def test_strict_flags_medium_and_copyleft(clean_facts_dict):
    clean_facts_dict["vulns"]["medium"] = [{"id": "CVE-2024-0001", "severity": "MEDIUM"}]
    clean_facts_dict["licenses"] = ["GPL-3.0-only"]

    report = PolicyEvaluator(load_builtin_suite("strict")).evaluate(
        FactModel.from_dict(clean_facts_dict)
    )

    assert [r.rule_name for r in report.triggered] == ["any-serious-vulns", "copyleft-license"]


def test_scan_results_through_general_suite():
    """Test facts built from raw scan output drive the general suite."""
    facts = build_fact_model(
        {
            "vulnerabilities": [
                {"cve_id": "CVE-2024-9999", "severity": "HIGH", "cvss_score": 8.1},
            ],
            "scorecard": {"checks": [{"name": "Maintained", "score": 0}]},
        },
        package_metadata={"name": "old-lib", "version": "2.0", "package_type": "pypi"},
    )

    report = PolicyEvaluator(load_builtin_suite("general")).evaluate(facts)

    assert report.subject == "old-lib"
    assert {r.rule_name for r in report.triggered} == {
        "critical-or-high-vulns",
        "unmaintained-packages",
    }
    assert report.errors == []
