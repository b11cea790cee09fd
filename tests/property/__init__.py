"""Hypothesis property tests for registry invariants."""
