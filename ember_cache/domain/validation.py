from __future__ import annotations

from typing import Optional

from .constraints import MAX_KEY_LENGTH, MIN_CLEANUP_INTERVAL
from .errors import ConfigurationError


def validate_key(key: str) -> None:
    if not isinstance(key, str):
        raise TypeError("Key must be a string")
    if not key:
        raise ValueError("Key cannot be empty")
    if len(key) > MAX_KEY_LENGTH:
        raise ValueError(f"Key is too long (max {MAX_KEY_LENGTH})")


def validate_capacity(capacity: int) -> int:
    if isinstance(capacity, bool) or not isinstance(capacity, int):
        raise ConfigurationError(f"Capacity must be an integer, got {capacity!r}")
    if capacity < 1:
        raise ConfigurationError("Capacity must be greater than 0")
    return capacity


def validate_ttl(ttl: Optional[float]) -> Optional[float]:
    if ttl is None:
        return None
    if ttl <= 0:
        raise ConfigurationError(f"TTL must be greater than 0, got {ttl}")
    return ttl


def validate_cleanup_interval(interval: Optional[float], *, allow_disable: bool = True) -> Optional[float]:
    """
    Return the interval, or None when it disables the sweep.

    ``None`` always disables. ``0`` disables only when ``allow_disable`` is set;
    otherwise it is rejected like any other value below the minimum.
    """
    if interval is None or (allow_disable and interval == 0):
        return None
    if interval < MIN_CLEANUP_INTERVAL:
        raise ConfigurationError(
            f"TTL cleanup interval must be >= {MIN_CLEANUP_INTERVAL}, got {interval}"
        )
    return interval
