"""Tests for the vetguard command line."""

import json
import logging

import pytest
import yaml

from vetguard.cli import build_parser, format_report, load_facts, main
from vetguard.common.settings import get_settings
from vetguard.errors import ConfigError
from vetguard.policy import EvaluationResult, PolicyReport


@pytest.fixture(autouse=True)
def isolated_cli(monkeypatch, tmp_path):
    """Keep environment settings and log handlers from leaking between tests."""
    monkeypatch.chdir(tmp_path)
    for var in ("CONFIG_PATH", "LOG_LEVEL", "LOG_DIR", "MAX_WORKERS", "DEFAULT_SUITE"):
        monkeypatch.delenv(f"VETGUARD_{var}", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
    logger = logging.getLogger("vetguard")
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)


@pytest.fixture
def clean_file(tmp_path, clean_facts_dict):
    path = tmp_path / "clean.json"
    path.write_text(json.dumps(clean_facts_dict))
    return path


@pytest.fixture
def risky_file(tmp_path):
    path = tmp_path / "risky.yaml"
    path.write_text(yaml.safe_dump({
        "pkg": {"ecosystem": "pypi", "name": "evil-pkg", "version": "0.0.1"},
        "vulnerabilities": [{"id": "MAL-2024-1234"}],
        "scorecard": {"scores": {"Maintained": 5}},
        "projects": [{"type": "GITHUB", "stars": 5000}],
    }))
    return path


class TestParser:
    """Tests for argument parsing."""

    def test_suite_and_policy_exclusive(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["facts.json", "--suite", "general", "--policy", "p.yaml"])

    def test_defaults(self):
        args = build_parser().parse_args(["facts.json"])
        assert args.suite is None
        assert args.fail_on_error is None
        assert args.json is False


class TestLoadFacts:
    """Tests for load_facts()."""

    def test_single(self, clean_file):
        facts = load_facts(str(clean_file))
        assert [f.package.name for f in facts] == ["left-pad"]

    def test_list(self, tmp_path, clean_facts_dict):
        path = tmp_path / "many.json"
        path.write_text(json.dumps([clean_facts_dict, clean_facts_dict]))
        assert len(load_facts(str(path))) == 2

    def test_scalar_rejected(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("42\n")
        with pytest.raises(ConfigError):
            load_facts(str(path))


class TestFormatReport:
    def test_lines(self):
        report = PolicyReport("suite", [
            EvaluationResult("a", True, summary="bad thing"),
            EvaluationResult("b", False),
        ], subject="pkg")

        text = format_report(report)

        assert "Suite: suite" in text
        assert "TRIGGERED  a: bad thing" in text
        assert "ok         b" in text


class TestMain:
    """Tests for main()."""

    def test_clean_exits_zero(self, clean_file, capsys):
        assert main([str(clean_file)]) == 0
        out = capsys.readouterr().out
        assert "Subject: left-pad" in out
        assert "TRIGGERED" not in out

    def test_violation_exits_one(self, risky_file, capsys):
        assert main([str(risky_file), "--suite", "general"]) == 1
        assert "TRIGGERED  osv-malware" in capsys.readouterr().out

    def test_json_output(self, risky_file, capsys):
        main([str(risky_file), "--json", "--workers", "2"])

        reports = json.loads(capsys.readouterr().out)

        assert len(reports) == 1
        assert reports[0]["subject"] == "evil-pkg"
        triggered = [r["rule_name"] for r in reports[0]["results"] if r["triggered"]]
        assert triggered == ["osv-malware"]

    def test_custom_policy_with_errors(self, tmp_path, clean_file, capsys):
        policy = tmp_path / "policy.yaml"
        policy.write_text(yaml.safe_dump({
            "name": "Custom",
            "filters": [
                {"name": "typo", "check_type": "CheckTypeOther",
                 "value": 'scorecard.scores["Fuzzing"] == 0'},
            ],
        }))

        assert main([str(clean_file), "--policy", str(policy)]) == 0
        assert main([str(clean_file), "--policy", str(policy), "--fail-on-error"]) == 2
        assert "ERROR      typo" in capsys.readouterr().out

    def test_fail_on_error_from_config(self, tmp_path, clean_file):
        policy = tmp_path / "policy.yaml"
        policy.write_text(
            "name: Custom\nfilters:\n"
            "  - name: typo\n    check_type: CheckTypeOther\n    value: missing == 1\n"
        )
        config = tmp_path / "config.yaml"
        config.write_text("evaluation:\n  fail_on_error: true\n")

        assert main([str(clean_file), "--policy", str(policy), "--config", str(config)]) == 2

    def test_unknown_suite(self, clean_file, capsys):
        assert main([str(clean_file), "--suite", "nope"]) == 2
        assert "Unknown built-in suite" in capsys.readouterr().err

    def test_missing_facts(self, tmp_path, capsys):
        assert main([str(tmp_path / "missing.json")]) == 2
        assert "Error:" in capsys.readouterr().err

    def test_default_suite_from_environment(self, monkeypatch, clean_file, capsys):
        monkeypatch.setenv("VETGUARD_DEFAULT_SUITE", "strict")
        get_settings.cache_clear()

        main([str(clean_file)])

        assert "Suite: Strict OSS Guardrails" in capsys.readouterr().out
