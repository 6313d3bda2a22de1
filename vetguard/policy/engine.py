"""Policy evaluation engine for vetguard.

Applies every rule of a filter suite to one fact snapshot and reports a
result per rule. Rules never see each other's results, and a rule that
fails to evaluate does not stop the others, so a report always covers the
whole suite.
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

from ..common.logger import get_logger
from ..errors import ConfigError, VetGuardError
from ..facts import FactModel
from .loader import FilterSuite, RuleLoadIssue, find_duplicate_names
from .rules import CheckType, Rule

logger = get_logger("policy.engine")


@dataclass(frozen=True)
class EvaluationResult:
    """Result of evaluating a single rule against one fact snapshot."""
    rule_name: str
    triggered: bool
    error: Optional[VetGuardError] = None
    check_type: Optional[CheckType] = None
    summary: str = ""

    @property
    def ok(self) -> bool:
        """True when the rule evaluated cleanly and did not trigger."""
        return not self.triggered and self.error is None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rule_name": self.rule_name,
            "triggered": self.triggered,
            "error": str(self.error) if self.error else None,
            "check_type": self.check_type.value if self.check_type else None,
            "summary": self.summary,
        }


@dataclass
class PolicyReport:
    """
    All rule results for one subject, in rule order.
    """
    suite_name: str
    results: List[EvaluationResult] = field(default_factory=list)
    subject: Optional[str] = None
    cancelled: bool = False
    evaluated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def triggered(self) -> List[EvaluationResult]:
        """Rules whose guardrail was violated."""
        return [r for r in self.results if r.triggered]

    @property
    def errors(self) -> List[EvaluationResult]:
        """Rules that could not be evaluated."""
        return [r for r in self.results if r.error is not None]

    @property
    def passed(self) -> List[EvaluationResult]:
        return [r for r in self.results if r.ok]

    @property
    def has_violations(self) -> bool:
        return any(r.triggered for r in self.results)

    def get(self, rule_name: str) -> Optional[EvaluationResult]:
        for result in self.results:
            if result.rule_name == rule_name:
                return result
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert report to dictionary for output."""
        return {
            "suite": self.suite_name,
            "subject": self.subject,
            "cancelled": self.cancelled,
            "evaluated_at": self.evaluated_at.isoformat(),
            "triggered": len(self.triggered),
            "errors": len(self.errors),
            "results": [r.to_dict() for r in self.results],
        }


class PolicyEvaluator:
    """
    Evaluates fact snapshots against a set of guardrail rules.

    Evaluation is pure: the evaluator holds only the immutable rules, so
    one instance can serve many subjects and many threads at once.
    """

    def __init__(
        self,
        rules: Union[FilterSuite, Sequence[Rule]],
        max_workers: int = 1,
        suite_name: Optional[str] = None,
    ):
        """
        Initialize the evaluator.

        Args:
            rules: A loaded FilterSuite, or rules in evaluation order
            max_workers: Threads used to evaluate the rules of one subject
            suite_name: Name used in reports when plain rules are given

        Raises:
            ConfigError: If two rules share a name or max_workers < 1
        """
        if max_workers < 1:
            raise ConfigError(f"max_workers must be at least 1, got {max_workers}")

        rejected: Sequence[RuleLoadIssue] = ()
        if isinstance(rules, FilterSuite):
            suite_name = suite_name or rules.name
            rejected = rules.rejected
            rules = rules.rules

        duplicates = find_duplicate_names(
            [r.name for r in rules] + [issue.rule_name for issue in rejected]
        )
        if duplicates:
            raise ConfigError(f"Duplicate rule names: {', '.join(duplicates)}")

        self.rules = tuple(rules)
        self.rejected = tuple(rejected)
        self.max_workers = max_workers
        self.suite_name = suite_name or "unnamed"

    def evaluate_rule(self, rule: Rule, facts: FactModel) -> EvaluationResult:
        """
        Evaluate one rule, capturing evaluation errors in the result.

        Args:
            rule: Rule to evaluate
            facts: Fact snapshot

        Returns:
            EvaluationResult for the rule
        """
        try:
            triggered = rule.matches(facts)
        except VetGuardError as e:
            logger.warning(f"Rule '{rule.name}' could not be evaluated: {e}")
            return EvaluationResult(
                rule_name=rule.name,
                triggered=False,
                error=e,
                check_type=rule.check_type,
                summary=rule.summary,
            )

        if triggered:
            logger.info(f"Rule '{rule.name}' triggered: {rule.summary}")
        return EvaluationResult(
            rule_name=rule.name,
            triggered=triggered,
            check_type=rule.check_type,
            summary=rule.summary,
        )

    def evaluate(
        self,
        facts: FactModel,
        cancel_event: Optional[threading.Event] = None,
        subject: Optional[str] = None,
    ) -> PolicyReport:
        """
        Evaluate every rule against one fact snapshot.

        Args:
            facts: Fact snapshot for the subject
            cancel_event: Checked before each rule; once set, rules not yet
                started are left out of the report
            subject: Label for the subject, defaults to the package name

        Returns:
            PolicyReport with one result per rule, in rule order
        """
        if subject is None and isinstance(facts, FactModel):
            subject = facts.package.name or None

        def run(rule: Rule) -> Optional[EvaluationResult]:
            if cancel_event is not None and cancel_event.is_set():
                return None
            return self.evaluate_rule(rule, facts)

        if self.max_workers > 1 and len(self.rules) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                outcomes = list(executor.map(run, self.rules))
        else:
            outcomes = [run(rule) for rule in self.rules]

        results = [r for r in outcomes if r is not None]
        completed = len(results)
        cancelled = completed < len(outcomes)

        # Rules rejected at load time still appear in the report
        for issue in self.rejected:
            results.append(
                EvaluationResult(rule_name=issue.rule_name, triggered=False, error=issue.error)
            )

        report = PolicyReport(
            suite_name=self.suite_name,
            results=results,
            subject=subject,
            cancelled=cancelled,
        )
        if cancelled:
            logger.warning(
                f"Evaluation of '{self.suite_name}' cancelled after "
                f"{completed} of {len(outcomes)} rules"
            )
        logger.debug(
            f"Evaluated '{self.suite_name}' for {subject or 'subject'}: "
            f"{len(report.triggered)} triggered, {len(report.errors)} errors"
        )
        return report

    def evaluate_many(
        self,
        fact_models: Iterable[FactModel],
        cancel_event: Optional[threading.Event] = None,
    ) -> List[PolicyReport]:
        """
        Evaluate several subjects independently.

        Args:
            fact_models: One fact snapshot per subject
            cancel_event: Shared cancellation flag

        Returns:
            List of PolicyReports, one per subject, in input order
        """
        return [self.evaluate(facts, cancel_event=cancel_event) for facts in fact_models]


def exit_code(report: PolicyReport, fail_on_error: bool = False) -> int:
    """
    Map a report to a process exit status.

    Returns:
        1 if any rule triggered, 2 if rules failed to evaluate and
        fail_on_error is set, otherwise 0
    """
    if report.has_violations:
        return 1
    if fail_on_error and (report.errors or report.cancelled):
        return 2
    return 0
