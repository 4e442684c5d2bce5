from datetime import date

import pytest

from backend.core.config import load_normalization_config, neighbor_delta_degrees, resolve_evaluation_year
from backend.core.models import ConfigurationError


def test_load_normalization_config_defaults(monkeypatch):
    for name in ("IDEALITY_PRICE_MIN", "IDEALITY_PRICE_MAX", "IDEALITY_COMMUTE_MIN", "IDEALITY_COMMUTE_MAX"):
        monkeypatch.delenv(name, raising=False)
    config = load_normalization_config()
    assert (config.price_range.min, config.price_range.max) == (100000, 2000000)
    assert (config.commute_range.min, config.commute_range.max) == (5, 120)
    assert config.feature_weights.sqft_per_bed == 0.4


def test_load_normalization_config_env_override(monkeypatch):
    monkeypatch.setenv("IDEALITY_PRICE_MAX", "900000")
    monkeypatch.setenv("IDEALITY_COMMUTE_MAX", "60")
    config = load_normalization_config()
    assert config.price_range.max == 900000
    assert config.commute_range.max == 60


def test_collapsed_env_range_fails_on_load(monkeypatch):
    monkeypatch.setenv("IDEALITY_COMMUTE_MIN", "30")
    monkeypatch.setenv("IDEALITY_COMMUTE_MAX", "30")
    with pytest.raises(ConfigurationError):
        load_normalization_config()


def test_non_numeric_env_fails_on_load(monkeypatch):
    monkeypatch.setenv("IDEALITY_PRICE_MIN", "cheap")
    with pytest.raises(ConfigurationError):
        load_normalization_config()


def test_resolve_evaluation_year_precedence(monkeypatch):
    monkeypatch.delenv("IDEALITY_EVALUATION_YEAR", raising=False)
    assert resolve_evaluation_year(today=date(2031, 6, 1)) == 2031
    monkeypatch.setenv("IDEALITY_EVALUATION_YEAR", "2024")
    assert resolve_evaluation_year(today=date(2031, 6, 1)) == 2024
    assert resolve_evaluation_year(2019) == 2019


def test_neighbor_delta_default(monkeypatch):
    monkeypatch.delenv("REPORT_NEIGHBOR_DELTA_DEG", raising=False)
    assert neighbor_delta_degrees() == 0.05
