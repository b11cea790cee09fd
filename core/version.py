"""
Version helpers for namereg.

- Exposes __version__ (PEP 440 string).
- Resolution order:
    1) NAMEREG_VERSION env var (authoritative override)
    2) installed distribution metadata ("namereg")
    3) DEFAULT_VERSION

No external dependencies; safe to import very early.
"""

from __future__ import annotations

import os
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _dist_version
from typing import Optional

DEFAULT_VERSION = "0.1.0"
DIST_NAME = "namereg"


def _from_metadata() -> Optional[str]:
    try:
        return _dist_version(DIST_NAME)
    except PackageNotFoundError:
        return None


def resolve_version() -> str:
    env = os.getenv("NAMEREG_VERSION")
    if env:
        return env.strip()
    return _from_metadata() or DEFAULT_VERSION


__version__ = resolve_version()


if __name__ == "__main__":
    print(__version__)
