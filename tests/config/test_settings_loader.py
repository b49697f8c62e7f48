"""
Tests for rental_config.loader -- YAML settings into typed configs.
"""

from decimal import Decimal
from pathlib import Path

import pytest
import yaml

import rental_config
from rental_batch.config import JobConfig
from rental_config import CacheSettings, build_cache, load_settings, parse_settings
from rental_kernel.cache import InMemoryQueryCache, NullQueryCache, RedisQueryCache
from rental_kernel.domain.entities import AgreementStatus, CommissionTier

EXAMPLE = Path(rental_config.__file__).parent / "settings.example.yaml"


class TestParseSettings:
    def test_empty_document_takes_defaults(self):
        settings = parse_settings(None)
        assert settings.database.url == "sqlite:///rental.db"
        assert settings.cache.backend == "null"
        assert settings.agreements.trial_days == 30
        assert settings.jobs == JobConfig()

    def test_partial_section_keeps_other_defaults(self):
        settings = parse_settings({"revenue": {"trend_months": 6}})
        assert settings.revenue.trend_months == 6
        assert settings.revenue.pipeline_months == 12

    def test_money_parsed_through_str(self):
        settings = parse_settings({"agreements": {"storage_fee": 20.1, "max_price": "750"}})
        assert settings.agreements.storage_fee == Decimal("20.1")
        assert settings.agreements.max_price == Decimal("750")

    def test_lists_become_enum_tuples(self):
        settings = parse_settings({"availability": {"blocking_statuses": ["active"]}})
        assert settings.availability.blocking_statuses == (AgreementStatus.ACTIVE,)

    def test_unknown_section(self):
        with pytest.raises(ValueError, match="unknown settings sections: billing"):
            parse_settings({"billing": {}})

    def test_unknown_key(self):
        with pytest.raises(ValueError, match="unknown keys in section 'jobs': cron"):
            parse_settings({"jobs": {"cron": "* * * * *"}})

    def test_section_must_be_mapping(self):
        with pytest.raises(ValueError, match="must be a mapping"):
            parse_settings({"cache": "redis"})

    def test_bad_decimal(self):
        with pytest.raises(ValueError, match="agreements.storage_fee"):
            parse_settings({"agreements": {"storage_fee": "twenty"}})

    @pytest.mark.parametrize(
        "document",
        [
            {"jobs": {"cron_expression": "every month"}},
            {"revenue": {"top_units": 0}},
            {"cache": {"backend": "memcached"}},
            {"cache": {"backend": "redis"}},
        ],
    )
    def test_section_validation_surfaces(self, document):
        with pytest.raises(ValueError):
            parse_settings(document)


class TestLoadSettings:
    def test_example_file(self):
        settings = load_settings(EXAMPLE)
        assert settings.cache.backend == "redis"
        assert settings.revenue.rounding_quantum == Decimal("0.01")
        assert settings.agreements.add_on_tier == CommissionTier.PREMIUM
        assert settings.jobs.cron_expression == "0 2 1 * *"

    def test_from_tmp_file(self, tmp_path, captured_logs):
        path = tmp_path / "settings.yaml"
        path.write_text(yaml.safe_dump({"database": {"url": "sqlite:///x.db", "echo": True}}))

        settings = load_settings(path)

        assert settings.database.echo is True
        (entry,) = [r for r in captured_logs() if r["message"] == "settings_loaded"]
        assert entry["sections"] == ["database"]

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_settings(path).cache.backend == "null"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_settings(tmp_path / "absent.yaml")

    def test_malformed_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("jobs: [unclosed")
        with pytest.raises(yaml.YAMLError):
            load_settings(path)


class TestBuildCache:
    def test_null(self):
        assert isinstance(build_cache(CacheSettings()), NullQueryCache)

    def test_memory(self, deterministic_clock):
        cache = build_cache(CacheSettings(backend="memory"), clock=deterministic_clock)
        assert isinstance(cache, InMemoryQueryCache)

    def test_redis_client_built_lazily(self):
        cache = build_cache(CacheSettings(backend="redis", url="redis://localhost:6379/0"))
        assert isinstance(cache, RedisQueryCache)
