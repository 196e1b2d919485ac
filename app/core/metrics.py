# app/core/metrics.py
from __future__ import annotations

"""Prometheus counters for the CMS consistency engine.

Exposed at `/metrics` by `app.main`. Keep label cardinality low: labels are
fixed enums (kind/outcome/transition), never ids.
"""

from prometheus_client import Counter

propagation_runs_total = Counter(
    "cms_propagation_runs_total",
    "Slider fan-out runs by kind and outcome",
    labelnames=("kind", "outcome"),
)
slider_writes_total = Counter(
    "cms_slider_writes_total",
    "Slider documents rewritten by fan-out",
    labelnames=("kind",),
)
stale_pointers_pruned_total = Counter(
    "cms_stale_pointers_pruned_total",
    "Usage pointers deleted because their target slider/item vanished",
)
batch_commits_total = Counter(
    "cms_batch_commits_total",
    "Atomic batch commits issued by fan-out",
)
transaction_conflicts_total = Counter(
    "cms_transaction_conflicts_total",
    "Optimistic transaction attempts aborted by a concurrent write",
)
workflow_transitions_total = Counter(
    "cms_workflow_transitions_total",
    "Series publication transitions by target status and result",
    labelnames=("transition", "result"),
)
redis_errors_total = Counter(
    "redis_errors_total",
    "Redis errors encountered",
    labelnames=("component",),
)


def inc_propagation_run(kind: str, outcome: str) -> None:
    propagation_runs_total.labels(kind=kind, outcome=outcome).inc()


def inc_slider_writes(kind: str, count: int = 1) -> None:
    if count > 0:
        slider_writes_total.labels(kind=kind).inc(count)


def inc_stale_pointers(count: int = 1) -> None:
    if count > 0:
        stale_pointers_pruned_total.inc(count)


def inc_batch_commit() -> None:
    batch_commits_total.inc()


def inc_transaction_conflict() -> None:
    transaction_conflicts_total.inc()


def inc_workflow_transition(transition: str, result: str) -> None:
    workflow_transitions_total.labels(transition=transition, result=result).inc()


def inc_redis_error(component: str) -> None:
    redis_errors_total.labels(component=component).inc()


__all__ = [
    "inc_propagation_run",
    "inc_slider_writes",
    "inc_stale_pointers",
    "inc_batch_commit",
    "inc_transaction_conflict",
    "inc_workflow_transition",
    "inc_redis_error",
]
