"""
Repository-wide pytest setup.

- Stable environment defaults for every test run.
- Every test starts without NAMEREG_* overrides and with an empty logging
  context, so config and log assertions never depend on the developer's
  shell.
"""

import os

import pytest

from core import logging as clog

os.environ.setdefault("PYTHONHASHSEED", "0")
os.environ.setdefault("TZ", "UTC")


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch):
    for key in list(os.environ):
        if key.startswith("NAMEREG_"):
            monkeypatch.delenv(key, raising=False)
    clog.clear_context()
    yield
    clog.clear_context()
