"""Unit tests for the shared `core` substrate (db, logging, errors, utils)."""
