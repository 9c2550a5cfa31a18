"""Exception types raised by the triage engine."""

from __future__ import annotations


class ConfigError(ValueError):
    """Invalid or missing configuration. Fatal at load time."""


class StoreError(RuntimeError):
    """An index or signature store operation failed."""


class SignatureInvariantError(RuntimeError):
    """A MinHash signature violated a structural invariant."""
