"""Errors raised by metric storage and synchronisation."""

from __future__ import annotations


class StorageError(RuntimeError):
    """Raised when a metric store cannot complete an operation."""

    def __init__(self, operation: str, target: str, reason: str) -> None:
        """Initialise with the failing operation, its target, and a reason."""
        self.operation = operation
        self.target = target
        self.reason = reason
        super().__init__(f"Metric store {operation} failed for {target}: {reason}")

