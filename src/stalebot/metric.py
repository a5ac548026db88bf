from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Iterable, List, Tuple

from prometheus_client import CollectorRegistry, Counter, Gauge, push_to_gateway
from tabulate import tabulate

from stalebot.staleness.types import Action, PrOutcome, StaleReason


push_registry = CollectorRegistry()

api_call_count = Counter(
    "stalebot_num_api_calls",
    "Total number of GitHub API calls",
    labelnames=["endpoint"],
    registry=push_registry,
)

run_pull_requests = Gauge(
    "stalebot_run_pull_requests",
    "Pull requests seen in the last run, by outcome",
    labelnames=["outcome"],
    registry=push_registry,
)

run_stale_pull_requests = Gauge(
    "stalebot_run_stale_pull_requests",
    "Stale pull requests found in the last run, by reason",
    labelnames=["reason"],
    registry=push_registry,
)


def record_api_call(endpoint: str) -> None:
    api_call_count.labels(endpoint=endpoint).inc()


@dataclass(frozen=True)
class RunMetrics:
    prs_processed: int = 0
    skipped: int = 0
    stale_prs: int = 0
    stale_due_to_changes_requested: int = 0
    stale_due_to_build_failing: int = 0
    stale_due_to_merge_conflicts: int = 0
    warned: int = 0
    closed: int = 0
    merge_conflict_warnings: int = 0
    api_calls: int = 0

    @classmethod
    def from_outcomes(
        cls, outcomes: Iterable[PrOutcome], api_calls: int = 0
    ) -> RunMetrics:
        outcomes = list(outcomes)
        verdicts = [o.verdict for o in outcomes if o.verdict is not None]

        def by_reason(reason: StaleReason) -> int:
            return len([v for v in verdicts if v.reason == reason])

        return cls(
            prs_processed=len(outcomes),
            skipped=len([o for o in outcomes if o.skipped]),
            stale_prs=len(verdicts),
            stale_due_to_changes_requested=by_reason(StaleReason.changes_requested),
            stale_due_to_build_failing=by_reason(StaleReason.build_failing),
            stale_due_to_merge_conflicts=by_reason(StaleReason.merge_conflicts),
            warned=len([o for o in outcomes if o.action == Action.warn]),
            closed=len([o for o in outcomes if o.action == Action.close]),
            merge_conflict_warnings=len(
                [o for o in outcomes if o.merge_conflict_warned]
            ),
            api_calls=api_calls,
        )

    def rows(self) -> List[Tuple[str, int]]:
        return list(asdict(self).items())

    def table(self) -> str:
        return tabulate(self.rows(), headers=("Metric", "Value"), tablefmt="github")


def push_run_metrics(metrics: RunMetrics, gateway: str, job: str) -> None:
    run_pull_requests.labels(outcome="processed").set(metrics.prs_processed)
    run_pull_requests.labels(outcome="skipped").set(metrics.skipped)
    run_pull_requests.labels(outcome="warned").set(metrics.warned)
    run_pull_requests.labels(outcome="closed").set(metrics.closed)
    run_pull_requests.labels(outcome="merge_conflict_warned").set(
        metrics.merge_conflict_warnings
    )
    run_stale_pull_requests.labels(reason="total").set(metrics.stale_prs)
    run_stale_pull_requests.labels(reason="changes_requested").set(
        metrics.stale_due_to_changes_requested
    )
    run_stale_pull_requests.labels(reason="build_failing").set(
        metrics.stale_due_to_build_failing
    )
    run_stale_pull_requests.labels(reason="merge_conflicts").set(
        metrics.stale_due_to_merge_conflicts
    )
    push_to_gateway(gateway, job=job, registry=push_registry)
