"""
rental_config -- YAML settings for the rental engines.

``load_settings(path)`` is the single entry point: it returns a
``RentalSettings`` holding every per-module config dataclass.
"""

from rental_config.loader import (
    CacheSettings,
    DatabaseSettings,
    RentalSettings,
    build_cache,
    load_settings,
    parse_settings,
)

__all__ = [
    "CacheSettings",
    "DatabaseSettings",
    "RentalSettings",
    "build_cache",
    "load_settings",
    "parse_settings",
]
