from __future__ import annotations

import os
from datetime import date

from backend.core.models import ConfigurationError, FeatureWeights, NormalizationConfig, ScoreRange


DEFAULT_NEIGHBOR_DELTA_DEG = 0.05


def load_normalization_config() -> NormalizationConfig:
    """
    Build the normalization config, letting IDEALITY_* env vars override the ranges.
    Fails on load when a range collapses (min == max).
    """
    defaults = NormalizationConfig()
    price_range = ScoreRange(
        _env_float("IDEALITY_PRICE_MIN", defaults.price_range.min),
        _env_float("IDEALITY_PRICE_MAX", defaults.price_range.max),
    )
    commute_range = ScoreRange(
        _env_float("IDEALITY_COMMUTE_MIN", defaults.commute_range.min),
        _env_float("IDEALITY_COMMUTE_MAX", defaults.commute_range.max),
    )
    return NormalizationConfig(
        price_range=price_range,
        commute_range=commute_range,
        feature_weights=FeatureWeights(),
    )


def resolve_evaluation_year(evaluation_year: int | None = None, today: date | None = None) -> int:
    if evaluation_year is not None:
        return int(evaluation_year)
    pinned = _env_int("IDEALITY_EVALUATION_YEAR")
    if pinned is not None:
        return pinned
    return (today or date.today()).year


def neighbor_delta_degrees() -> float:
    return _env_float("REPORT_NEIGHBOR_DELTA_DEG", DEFAULT_NEIGHBOR_DELTA_DEG)


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw.strip())
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be numeric, got {raw!r}.") from exc


def _env_int(name: str) -> int | None:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return None
    try:
        return int(raw.strip())
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}.") from exc
