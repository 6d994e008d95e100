"""Prometheus instruments shared by the service."""

from __future__ import annotations

from prometheus_client import Counter

DIRECTORY_OPERATIONS = Counter(
    "user_directory_operations_total",
    "User directory operations grouped by outcome.",
    ["operation", "outcome"],
)


def record_operation(operation: str, outcome: str) -> None:
    """Increment the operation counter for ``operation``/``outcome``."""
    DIRECTORY_OPERATIONS.labels(operation=operation, outcome=outcome).inc()
