"""Prometheus instruments for account lifecycle traffic."""

from __future__ import annotations

from prometheus_client import Counter

from .domain.errors import Outcome

LIFECYCLE_OPERATIONS = Counter(
    "account_lifecycle_operations_total",
    "Account lifecycle operations by outcome.",
    ["operation", "outcome"],
)


def record_outcome(operation: str, outcome: Outcome) -> None:
    label = "ok" if outcome.ok else outcome.error.value
    LIFECYCLE_OPERATIONS.labels(operation=operation, outcome=label).inc()


def record_unavailable(operation: str) -> None:
    """Count an operation aborted by a collaborator failure."""
    LIFECYCLE_OPERATIONS.labels(operation=operation, outcome="unavailable").inc()
