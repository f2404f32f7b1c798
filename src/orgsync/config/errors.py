"""Configuration error definitions."""

from __future__ import annotations


class ConfigurationError(RuntimeError):
    """Raised when an ``ORGSYNC_*`` setting cannot be interpreted."""
