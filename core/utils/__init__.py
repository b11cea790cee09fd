"""
Namereg - core.utils
--------------------

Small helpers shared by the registry packages. Submodules are loaded lazily
so importing `core.utils` stays cheap:

    from core import utils
    d = utils.hash.keccak256(b"alice")
    h = utils.bytes.to_hex(d)

Submodules
- `bytes` : hex/bytes helpers
- `hash`  : Keccak-256 digests

Names like `bytes` and `hash` shadow builtins if imported directly; prefer
module-qualified access or the aliases `bytes_utils` / `hash_utils`.
"""

from __future__ import annotations

from importlib import import_module
from typing import Any, Dict, List

__all__: List[str] = ["bytes", "hash", "bytes_utils", "hash_utils"]

_SUBMODS: Dict[str, str] = {
    "bytes": "core.utils.bytes",
    "hash": "core.utils.hash",
}

_ALIASES: Dict[str, str] = {
    "bytes_utils": "bytes",
    "hash_utils": "hash",
}


def __getattr__(name: str) -> Any:
    canonical = _ALIASES.get(name, name)
    if canonical in _SUBMODS:
        mod = import_module(_SUBMODS[canonical])
        globals()[canonical] = mod
        if name != canonical:
            globals()[name] = mod
        return mod
    raise AttributeError(f"module 'core.utils' has no attribute '{name}'")
