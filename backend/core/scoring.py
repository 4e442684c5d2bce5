from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import fields, replace
from types import MappingProxyType

from backend.core.config import resolve_evaluation_year
from backend.core.models import (
    FeatureWeights,
    IdealityResult,
    InvalidPropertyError,
    NormalizationConfig,
    PropertyAttributes,
    ScoreBreakdown,
    ScoreRange,
    WeightProfile,
)


SQFT_PER_BED_TARGET = 500.0
BATH_RATIO_TARGET = 1.5
YEARS_PER_POINT = 2.0

DEFAULT_WEIGHTS = WeightProfile(
    price=0.25,
    features=0.20,
    location=0.20,
    safety=0.15,
    schools=0.10,
    commute=0.10,
)

PRESET_WEIGHTS: Mapping[str, WeightProfile] = MappingProxyType(
    {
        "default": DEFAULT_WEIGHTS,
        "budget": WeightProfile(price=0.40, features=0.15, location=0.15, safety=0.15, schools=0.10, commute=0.05),
        "luxury": WeightProfile(price=0.10, features=0.30, location=0.25, safety=0.20, schools=0.10, commute=0.05),
        "family": WeightProfile(price=0.20, features=0.25, location=0.15, safety=0.20, schools=0.15, commute=0.05),
        "urban": WeightProfile(price=0.25, features=0.15, location=0.25, safety=0.10, schools=0.10, commute=0.15),
    }
)

DEFAULT_CONFIG = NormalizationConfig()

WEIGHT_KEYS = tuple(f.name for f in fields(WeightProfile))


def round_half_up(value: float) -> int:
    # 0.5 always rounds up; round() would use banker's rounding.
    return int(math.floor(value + 0.5))


def clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def inverted_linear_score(raw: float, score_range: ScoreRange) -> float:
    """
    Map raw onto [0, 100] where score_range.min scores 100 and score_range.max scores 0.
    Values outside the range saturate.
    """
    normalized = (raw - score_range.min) / (score_range.max - score_range.min)
    return clamp(1 - normalized, 0.0, 1.0) * 100


def features_score(
    sqft: float,
    beds: int,
    baths: float,
    year_built: int,
    evaluation_year: int,
    weights: FeatureWeights | None = None,
) -> float:
    if beds <= 0:
        raise InvalidPropertyError(f"beds must be positive to score features (got {beds}).")
    weights = weights or DEFAULT_CONFIG.feature_weights

    sqft_score = min(100.0, (sqft / beds / SQFT_PER_BED_TARGET) * 100)
    bath_score = min(100.0, (baths / beds / BATH_RATIO_TARGET) * 100)
    age = evaluation_year - year_built
    year_score = max(0.0, 100 - age / YEARS_PER_POINT)

    combined = (
        sqft_score * weights.sqft_per_bed
        + bath_score * weights.bath_ratio
        + year_score * weights.year_built
    )
    return clamp(combined)


def resolve_weights(
    overrides: Mapping[str, float] | WeightProfile | None = None,
    base: WeightProfile | None = None,
) -> WeightProfile:
    """Shallow-merge overrides onto base (the default profile unless given). No re-normalization."""
    base = base or DEFAULT_WEIGHTS
    if overrides is None:
        return base
    if isinstance(overrides, WeightProfile):
        return overrides
    unknown = sorted(set(overrides) - set(WEIGHT_KEYS))
    if unknown:
        raise ValueError(f"Unknown weight keys: {', '.join(unknown)}")
    return replace(base, **{key: float(value) for key, value in overrides.items()})


def get_preset_weights(name: str | None = None) -> WeightProfile:
    if name is None:
        return DEFAULT_WEIGHTS
    return PRESET_WEIGHTS.get(name, DEFAULT_WEIGHTS)


def compute_ideality(
    prop: PropertyAttributes,
    weight_overrides: Mapping[str, float] | WeightProfile | None = None,
    config: NormalizationConfig | None = None,
    evaluation_year: int | None = None,
) -> IdealityResult:
    config = config or DEFAULT_CONFIG
    weights = resolve_weights(weight_overrides)
    year = resolve_evaluation_year(evaluation_year)

    price = inverted_linear_score(prop.price, config.price_range)
    features = features_score(
        prop.sqft,
        prop.beds,
        prop.baths,
        prop.year_built,
        evaluation_year=year,
        weights=config.feature_weights,
    )
    # Externally computed sub-scores are trusted as 0-100 but clamped anyway.
    location = clamp(prop.location_score)
    safety = clamp(prop.safety_score)
    schools = clamp(prop.school_score)
    commute = inverted_linear_score(prop.commute_minutes, config.commute_range)

    total = (
        price * weights.price
        + features * weights.features
        + location * weights.location
        + safety * weights.safety
        + schools * weights.schools
        + commute * weights.commute
    )

    return IdealityResult(
        score=round_half_up(clamp(total)),
        breakdown=ScoreBreakdown(
            price=round_half_up(price),
            features=round_half_up(features),
            location=round_half_up(location),
            safety=round_half_up(safety),
            schools=round_half_up(schools),
            commute=round_half_up(commute),
        ),
    )
