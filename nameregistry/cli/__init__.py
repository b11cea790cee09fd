"""Command-line entry points for the name registry."""

from .main import app

__all__ = ["app"]
