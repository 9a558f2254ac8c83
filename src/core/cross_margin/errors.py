"""Exception types for the cross-margin health engine.

Queries never raise for degenerate numerics (they return sentinels). These
types cover malformed inputs: fixed-point overflow, bad registry config and
snapshot invariant violations reported by ``check_or_raise()``.
"""

from __future__ import annotations


class FixedPointOverflowError(ArithmeticError):
    """Raised when a fixed-point value leaves the signed 128-bit range."""


class RegistryConfigError(ValueError):
    """Raised when a market registry config is malformed or violates risk invariants."""


class SnapshotInvariantError(Exception):
    """Raised when a snapshot violates one or more invariants."""

    def __init__(self, violations: list[str]) -> None:
        self.violations = violations
        super().__init__(f"invariant violations: {', '.join(violations)}")
