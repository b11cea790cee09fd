"""
String predicates used for input validation. Pure functions, no state.
"""

from __future__ import annotations


def is_all_lowercase(s: str) -> bool:
    """True when `s` contains no uppercase character (digits and symbols pass)."""
    return not any(c.isupper() for c in s)


def byte_length(s: str) -> int:
    """UTF-8 encoded length of `s`."""
    return len(s.encode("utf-8"))


__all__ = ["is_all_lowercase", "byte_length"]
