from __future__ import annotations

import os
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ember_cache.domain.eviction import POLICIES
from ember_cache.domain.validation import validate_cleanup_interval


def get_env_int(
    env_name: str,
    default_value: int,
    *,
    min_value: Optional[int] = None,
    max_value: Optional[int] = None,
) -> int:
    raw_value = os.getenv(env_name)
    if raw_value is None:
        value = default_value
    else:
        try:
            value = int(raw_value)
        except ValueError as exc:
            raise ValueError(
                f"{env_name} must be an integer, got {raw_value!r}"
            ) from exc

    if min_value is not None and value < min_value:
        raise ValueError(f"{env_name} must be >= {min_value}, got {value}")
    if max_value is not None and value > max_value:
        raise ValueError(f"{env_name} must be <= {max_value}, got {value}")
    return value


def get_env_float(env_name: str, default_value: Optional[float]) -> Optional[float]:
    raw_value = os.getenv(env_name)
    if raw_value is None or not raw_value.strip():
        return default_value
    try:
        return float(raw_value)
    except ValueError as exc:
        raise ValueError(f"{env_name} must be a number, got {raw_value!r}") from exc


def get_env_bool(env_name: str, default_value: bool) -> bool:
    raw_value = os.getenv(env_name)
    if raw_value is None:
        return default_value

    normalized = raw_value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False

    raise ValueError(f"{env_name} must be a boolean, got {raw_value!r}")


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True)

    capacity: int = Field(ge=1)
    default_ttl: float | None = Field(default=None, gt=0)
    ttl_cleanup_interval: float | None = None
    eviction_policy: str = "lru"
    auto_persist: bool = False
    persistence_dir: str | None = None
    persistence_key: str = "ember-cache"
    host: str = "0.0.0.0"
    port: int = Field(default=8080, ge=1, le=65535)
    log_level: str = "INFO"
    log_format: Literal["text", "json"] = "text"

    @field_validator("ttl_cleanup_interval")
    @classmethod
    def _check_cleanup_interval(cls, value: float | None) -> float | None:
        return validate_cleanup_interval(value)

    @field_validator("eviction_policy")
    @classmethod
    def _check_eviction_policy(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in POLICIES:
            raise ValueError(
                f"eviction_policy must be one of {', '.join(sorted(POLICIES))}, got {value!r}"
            )
        return normalized


def load_settings() -> Settings:
    return Settings(
        capacity=get_env_int("CACHE_CAPACITY", 1000, min_value=1),
        default_ttl=get_env_float("CACHE_DEFAULT_TTL", None),
        ttl_cleanup_interval=get_env_float("CACHE_TTL_CLEANUP_INTERVAL", 10),
        eviction_policy=os.getenv("CACHE_EVICTION_POLICY", "lru"),
        auto_persist=get_env_bool("CACHE_AUTO_PERSIST", False),
        persistence_dir=os.getenv("CACHE_PERSISTENCE_DIR") or None,
        persistence_key=os.getenv("CACHE_PERSISTENCE_KEY", "ember-cache"),
        host=os.getenv("CACHE_HOST", "0.0.0.0"),
        port=get_env_int("CACHE_PORT", 8080, min_value=1, max_value=65535),
        log_level=os.getenv("CACHE_LOG_LEVEL", "INFO").upper(),
        log_format=os.getenv("CACHE_LOG_FORMAT", "text").lower(),
    )
