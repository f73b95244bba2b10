from __future__ import annotations


class CacheError(Exception):
    """Base class for every error raised by the cache engine."""


class ConfigurationError(CacheError, ValueError):
    """Raised when a capacity, TTL, interval or event kind is invalid."""


class StateError(CacheError, RuntimeError):
    """Raised when an operation needs a collaborator that is not bound."""


class EvictionPolicyError(CacheError, LookupError):
    """Raised when an eviction policy selects a key that is not cached."""
