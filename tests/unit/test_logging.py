"""Unit tests for femtologging integration helpers.

Run with:
    pytest tests/unit/test_logging.py
"""

from __future__ import annotations

import pytest

from gitwhat.logging import (
    configure_logging,
    log_debug,
    log_error,
    log_info,
    log_warning,
    normalize_log_level,
)


class _FakeLogger:
    """Collects log calls for assertions."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str, object | None, bool]] = []

    def log(
        self,
        level: str,
        message: str,
        /,
        *,
        exc_info: object | None = None,
        stack_info: bool = False,
    ) -> str:
        self.calls.append((level, message, exc_info, stack_info))
        return message


@pytest.mark.parametrize(
    ("raw", "expected", "invalid"),
    [
        ("debug", "DEBUG", False),
        (" warn ", "WARN", False),
        ("Warning", "WARNING", False),
        (None, "INFO", True),
        ("", "INFO", True),
        ("chatty", "INFO", True),
    ],
)
def test_normalize_log_level(
    raw: str | None,
    expected: str,
    invalid: bool,  # noqa: FBT001
) -> None:
    assert normalize_log_level(raw) == (expected, invalid)


def test_log_helpers_format_before_emitting() -> None:
    logger = _FakeLogger()

    log_debug(logger, "page %d of %s", 2, "/orgs/acme/repos")
    log_info(logger, "no arguments: 100%")
    log_error(logger, "failed for %s", "acme")

    assert logger.calls == [
        ("DEBUG", "page 2 of /orgs/acme/repos", None, False),
        ("INFO", "no arguments: 100%", None, False),
        ("ERROR", "failed for acme", None, False),
    ]


def test_log_warning_forwards_exc_info() -> None:
    logger = _FakeLogger()
    exc = OSError("read-only file system")

    log_warning(logger, "cache stats: %s", exc, exc_info=exc)

    assert logger.calls == [
        ("WARNING", "cache stats: read-only file system", exc, False)
    ]


def test_configure_logging_passes_normalized_level(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    captured: dict[str, object] = {}

    def fake_basic_config(**kwargs: object) -> None:
        captured.update(kwargs)

    monkeypatch.setattr("gitwhat.logging.basicConfig", fake_basic_config)

    assert configure_logging("nope") == ("INFO", True)
    assert captured == {"level": "INFO", "force": False}
