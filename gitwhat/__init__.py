"""Incremental GitHub repository metric harvesting."""

from __future__ import annotations

import importlib.metadata

__all__ = ["get_version"]

_DISTRIBUTION = "git-what"


def get_version() -> str:
    """Return the installed distribution version, or ``0+unknown``."""
    try:
        return importlib.metadata.version(_DISTRIBUTION)
    except importlib.metadata.PackageNotFoundError:
        return "0+unknown"
