"""Capture femtologging output for log assertions."""

from __future__ import annotations

import contextlib
import dataclasses
import threading
import time
import typing as typ

from femtologging import get_logger


@dataclasses.dataclass(slots=True)
class CapturedRecord:
    """One record delivered to the capture handler."""

    logger: str
    level: str
    message: str


class LogCapture:
    """femtologging handler that keeps records in memory.

    femtologging delivers records on its worker thread, so assertions wait
    on a condition rather than reading the list straight away.
    """

    def __init__(self) -> None:
        self.records: list[CapturedRecord] = []
        self._condition = threading.Condition()

    def handle(self, logger: str, level: str, message: str) -> None:
        """Receive a plain record."""
        self._append(CapturedRecord(str(logger), str(level), message))

    def handle_record(self, record: dict[str, object]) -> None:
        """Receive a structured record."""
        self._append(
            CapturedRecord(
                str(record.get("logger", "")),
                str(record.get("level", "")),
                str(record.get("message", "")),
            )
        )

    def _append(self, record: CapturedRecord) -> None:
        with self._condition:
            self.records.append(record)
            self._condition.notify_all()

    def wait_for_count(self, count: int, timeout: float = 1.0) -> None:
        """Block until ``count`` records arrived, failing after ``timeout``."""
        deadline = time.monotonic() + timeout
        with self._condition:
            while len(self.records) < count:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                self._condition.wait(timeout=remaining)
        assert len(self.records) >= count, (
            f"Expected {count} records, got {len(self.records)}"
        )

    def messages(self, level: str | None = None) -> list[str]:
        """Return captured messages, optionally for one level only.

        ``WARNING`` also matches records femtologging reports as ``WARN``.
        """
        if level is None:
            return [record.message for record in self.records]
        wanted = {"WARN", "WARNING"} if level in {"WARN", "WARNING"} else {level}
        return [record.message for record in self.records if record.level in wanted]


@contextlib.contextmanager
def capture_femto_logs(
    logger_name: str, *, level: str = "TRACE"
) -> typ.Iterator[LogCapture]:
    """Attach a :class:`LogCapture` to ``logger_name`` for the block."""
    logger = get_logger(logger_name)
    previous_level = logger.level
    previous_propagate = logger.propagate
    logger.set_level(level)
    logger.set_propagate(False)
    capture = LogCapture()
    logger.add_handler(capture)
    try:
        yield capture
    finally:
        logger.remove_handler(capture)
        logger.set_level(previous_level)
        logger.set_propagate(previous_propagate)
