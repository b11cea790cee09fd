from __future__ import annotations
"""
nameregistry - name registry for users and applications.

Three independent directories (users, official applications, unofficial
applications) with operator-gated official signups, fee-gated unofficial
signups, signature-authorized deletion, and an audit event stream.

Public surface (lazily loaded):
- config, errors, types, events
- access, treasury, signatures, store
- engine, cli
"""

import importlib
from typing import List

from core.version import __version__

__all__: List[str] = [
    "__version__",
    "RegistryEngine",
    # lazily importable submodules
    "access",
    "cli",
    "config",
    "engine",
    "errors",
    "events",
    "signatures",
    "store",
    "strings",
    "treasury",
    "types",
]

_lazy_modules = set(__all__) - {"__version__", "RegistryEngine"}


def __getattr__(name: str):
    if name in _lazy_modules:
        return importlib.import_module(f".{name}", __name__)
    if name == "RegistryEngine":
        return importlib.import_module(".engine", __name__).RegistryEngine
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def __dir__():
    return sorted(set(globals().keys()) | _lazy_modules | {"RegistryEngine"})
