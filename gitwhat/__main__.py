"""Allow ``python -m gitwhat``."""

from __future__ import annotations

from gitwhat.cli import main

raise SystemExit(main())
