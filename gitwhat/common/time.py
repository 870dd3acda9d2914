"""Common time utilities."""

from __future__ import annotations

import datetime as dt


def utcnow() -> dt.datetime:
    """Return an aware UTC timestamp."""
    return dt.datetime.now(dt.UTC)


def parse_github_datetime(value: object) -> dt.datetime | None:
    """Parse a GitHub ISO-8601 timestamp into an aware UTC datetime.

    ``None`` and empty strings yield ``None``; anything else that is not a
    timezone-aware ISO-8601 string raises :class:`ValueError`.
    """
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        msg = f"GitHub datetime must be a string, got {type(value).__name__}"
        raise TypeError(msg)
    parsed = dt.datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        msg = f"GitHub datetime missing timezone: {value}"
        raise ValueError(msg)
    return parsed.astimezone(dt.UTC)


def latest(*values: dt.datetime | None) -> dt.datetime | None:
    """Return the most recent of the supplied timestamps, ignoring ``None``.

    Examples
    --------
    >>> latest(None, None) is None
    True

    """
    present = [value for value in values if value is not None]
    return max(present) if present else None


def minutes_between(start: dt.datetime, end: dt.datetime) -> float:
    """Return the signed number of minutes from ``start`` to ``end``."""
    return (end - start).total_seconds() / 60.0
