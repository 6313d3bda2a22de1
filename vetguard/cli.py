"""Command-line interface for evaluating filter suites."""

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

from .common.config import (
    EvaluationConfig,
    LoggingConfig,
    VetGuardConfig,
    load_document,
    load_typed_config,
)
from .common.logger import get_logger, setup_logger
from .common.settings import get_settings
from .errors import ConfigError
from .facts import FactModel
from .policy import (
    PolicyEvaluator,
    PolicyReport,
    exit_code,
    load_builtin_suite,
    load_suite,
)

logger = get_logger("cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vetguard",
        description="Evaluate guardrail filter suites against component facts.",
    )
    parser.add_argument("facts", help="YAML/JSON fact file (one subject or a list)")
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--suite", help="Built-in suite name")
    source.add_argument("--policy", help="Path to a filter suite file")
    parser.add_argument("--config", help="Path to vetguard config.yaml")
    parser.add_argument("--workers", type=int, help="Threads per evaluation")
    parser.add_argument("--log-level", help="Logging level")
    parser.add_argument("--json", action="store_true", help="Print JSON reports")
    parser.add_argument(
        "--fail-on-error",
        action="store_true",
        default=None,
        help="Exit 2 when rules fail to evaluate",
    )
    return parser


def resolve_config(config_path: Optional[str]) -> VetGuardConfig:
    """Load the YAML config, falling back to environment settings."""
    settings = get_settings()
    path = config_path or settings.config_path
    if path:
        if not Path(path).exists() and not config_path:
            # Environment points at a missing file, keep going on defaults
            logger.warning(f"Config file {path} not found, using defaults")
        else:
            return load_typed_config(path)

    return VetGuardConfig(
        logging=LoggingConfig(level=settings.log_level, log_dir=settings.log_dir),
        evaluation=EvaluationConfig(max_workers=settings.max_workers),
    )


def load_facts(path: str) -> List[FactModel]:
    """Read one or more fact snapshots from a file."""
    document = load_document(path)
    if isinstance(document, list):
        return [FactModel.from_dict(item) for item in document]
    if isinstance(document, dict):
        return [FactModel.from_dict(document)]
    raise ConfigError(f"Fact file must hold a mapping or a list, got {type(document).__name__}")


def format_report(report: PolicyReport) -> str:
    lines = [f"Suite: {report.suite_name}", f"Subject: {report.subject or '-'}"]
    for result in report.results:
        if result.error is not None:
            lines.append(f"  ERROR      {result.rule_name}: {result.error}")
        elif result.triggered:
            lines.append(f"  TRIGGERED  {result.rule_name}: {result.summary}")
        else:
            lines.append(f"  ok         {result.rule_name}")
    if report.cancelled:
        lines.append("  (evaluation cancelled)")
    return "\n".join(lines)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the vetguard CLI."""
    args = build_parser().parse_args(argv)
    settings = get_settings()

    try:
        config = resolve_config(args.config)
        setup_logger(
            "vetguard",
            level=args.log_level or config.logging.level,
            log_dir=config.logging.log_dir,
        )

        if args.policy:
            suite = load_suite(Path(args.policy))
        else:
            suite = load_builtin_suite(args.suite or settings.default_suite)

        evaluator = PolicyEvaluator(
            suite, max_workers=args.workers or config.evaluation.max_workers
        )
        reports = evaluator.evaluate_many(load_facts(args.facts))
    except (ConfigError, FileNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    if args.json:
        print(json.dumps([r.to_dict() for r in reports], indent=2))
    else:
        print("\n\n".join(format_report(r) for r in reports))

    fail_on_error = config.evaluation.fail_on_error
    if args.fail_on_error is not None:
        fail_on_error = args.fail_on_error

    return max((exit_code(r, fail_on_error) for r in reports), default=0)
