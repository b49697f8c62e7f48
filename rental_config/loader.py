"""
Settings Loader (``rental_config.loader``).

Responsibility
--------------
Loads one YAML document and turns each section into the matching typed
config dataclass.  The dataclasses validate themselves in
``__post_init__``; this module only maps keys and coerces YAML scalars.

Document shape::

    database:
      url: postgresql://rental@localhost/rental
    cache:
      backend: redis          # null | memory | redis
      url: redis://localhost:6379/0
      prefix: rental
      default_ttl_seconds: 300
    availability:
      batch_max_workers: 8
    revenue:
      trend_months: 12
    agreements:
      trial_days: 30
    jobs:
      cron_expression: "0 2 1 * *"

Invariants enforced
-------------------
* Missing sections (or an empty document) take each dataclass's defaults.
* Unknown sections and unknown keys raise ``ValueError``.
* Money and quantum fields are parsed through ``str`` into ``Decimal``, so
  ``20.0`` in YAML becomes ``Decimal("20.0")`` rather than a binary float.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Bad key or value  -> ``ValueError``.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import redis
import yaml

from rental_batch.config import JobConfig
from rental_kernel.cache import InMemoryQueryCache, NullQueryCache, QueryCache, RedisQueryCache
from rental_kernel.domain.clock import Clock
from rental_kernel.logging_config import get_logger
from rental_modules.agreements.config import AgreementConfig
from rental_modules.availability.config import AvailabilityConfig
from rental_modules.revenue.config import RevenueConfig

logger = get_logger("config.loader")

CACHE_BACKENDS = ("null", "memory", "redis")


@dataclass
class CacheSettings:
    backend: str = "null"
    url: str | None = None
    prefix: str = "rental"
    default_ttl_seconds: int = 300

    def __post_init__(self):
        if self.backend not in CACHE_BACKENDS:
            raise ValueError(f"cache backend must be one of {CACHE_BACKENDS}, got {self.backend!r}")
        if self.backend == "redis" and not self.url:
            raise ValueError("cache url is required for the redis backend")


@dataclass
class DatabaseSettings:
    url: str = "sqlite:///rental.db"
    echo: bool = False


@dataclass
class RentalSettings:
    """Every section of a settings document, each already validated."""

    database: DatabaseSettings = field(default_factory=DatabaseSettings)
    cache: CacheSettings = field(default_factory=CacheSettings)
    availability: AvailabilityConfig = field(default_factory=AvailabilityConfig)
    revenue: RevenueConfig = field(default_factory=RevenueConfig)
    agreements: AgreementConfig = field(default_factory=AgreementConfig)
    jobs: JobConfig = field(default_factory=JobConfig)


_SECTIONS: dict[str, type] = {
    "database": DatabaseSettings,
    "cache": CacheSettings,
    "availability": AvailabilityConfig,
    "revenue": RevenueConfig,
    "agreements": AgreementConfig,
    "jobs": JobConfig,
}


def _coerce(name: str, field_type: Any, value: Any) -> Any:
    if field_type in (Decimal, "Decimal"):
        try:
            return Decimal(str(value))
        except InvalidOperation as exc:
            raise ValueError(f"{name} must be a decimal number, got {value!r}") from exc
    if isinstance(value, list):
        return tuple(value)
    return value


def parse_section(section: str, data: dict[str, Any] | None) -> Any:
    """Build the dataclass for ``section`` from its mapping."""
    cls = _SECTIONS[section]
    if data is None:
        return cls()
    if not isinstance(data, dict):
        raise ValueError(f"section '{section}' must be a mapping, got {type(data).__name__}")

    known = {f.name: f.type for f in fields(cls)}
    unknown = sorted(set(data) - set(known))
    if unknown:
        raise ValueError(f"unknown keys in section '{section}': {', '.join(unknown)}")

    kwargs = {
        key: _coerce(f"{section}.{key}", known[key], value)
        for key, value in data.items()
    }
    return cls(**kwargs)


def parse_settings(document: dict[str, Any] | None) -> RentalSettings:
    document = document or {}
    if not isinstance(document, dict):
        raise ValueError("settings document must be a mapping")

    unknown = sorted(set(document) - set(_SECTIONS))
    if unknown:
        raise ValueError(f"unknown settings sections: {', '.join(unknown)}")

    return RentalSettings(
        **{name: parse_section(name, document.get(name)) for name in _SECTIONS}
    )


def load_settings(path: str | Path) -> RentalSettings:
    """Load and validate a settings file."""
    path = Path(path)
    with open(path) as f:
        document = yaml.safe_load(f)
    settings = parse_settings(document)
    logger.info(
        "settings_loaded",
        extra={
            "path": str(path),
            "sections": sorted((document or {}).keys()),
            "cache_backend": settings.cache.backend,
        },
    )
    return settings


def build_cache(settings: CacheSettings, clock: Clock | None = None) -> QueryCache:
    """The query cache described by ``settings``."""
    if settings.backend == "redis":
        client = redis.Redis.from_url(settings.url)
        return RedisQueryCache(
            client, prefix=settings.prefix, default_ttl_seconds=settings.default_ttl_seconds,
        )
    if settings.backend == "memory":
        return InMemoryQueryCache(default_ttl_seconds=settings.default_ttl_seconds, clock=clock)
    return NullQueryCache()
