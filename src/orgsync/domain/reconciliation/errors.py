"""Errors raised by the reconciliation engine."""

from __future__ import annotations


class ReconciliationError(RuntimeError):
    """Base class for reconciliation failures that reach the caller."""


class FatalStoreError(ReconciliationError):
    """Raised when the company row itself cannot be created or updated."""


class CascadeVerificationError(ReconciliationError):
    """A company delete succeeded at the store level but removed no row."""
