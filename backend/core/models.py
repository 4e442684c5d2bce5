from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any


class ConfigurationError(ValueError):
    """Raised when a normalization config cannot produce finite scores."""


class InvalidPropertyError(ValueError):
    """Raised when a property record cannot be scored at all."""


@dataclass(frozen=True, slots=True)
class PropertyAttributes:
    price: float
    sqft: float
    year_built: int
    beds: int
    baths: float
    location_score: float
    safety_score: float
    school_score: float
    commute_minutes: float


@dataclass(frozen=True, slots=True)
class WeightProfile:
    price: float
    features: float
    location: float
    safety: float
    schools: float
    commute: float

    def total(self) -> float:
        return self.price + self.features + self.location + self.safety + self.schools + self.commute

    def to_dict(self) -> dict[str, float]:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class ScoreRange:
    min: float
    max: float

    def __post_init__(self) -> None:
        if self.min == self.max:
            raise ConfigurationError(f"Score range min and max must differ (got {self.min}).")


@dataclass(frozen=True, slots=True)
class FeatureWeights:
    sqft_per_bed: float = 0.4
    bath_ratio: float = 0.3
    year_built: float = 0.3


@dataclass(frozen=True, slots=True)
class NormalizationConfig:
    price_range: ScoreRange = field(default_factory=lambda: ScoreRange(100_000, 2_000_000))
    commute_range: ScoreRange = field(default_factory=lambda: ScoreRange(5, 120))
    feature_weights: FeatureWeights = field(default_factory=FeatureWeights)


@dataclass(frozen=True, slots=True)
class ScoreBreakdown:
    price: int
    features: int
    location: int
    safety: int
    schools: int
    commute: int

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class IdealityResult:
    score: int
    breakdown: ScoreBreakdown


@dataclass(slots=True)
class PropertyFilters:
    min_price: float | None = None
    max_price: float | None = None
    min_sqft: int | None = None
    max_sqft: int | None = None
    min_year: int | None = None
    max_year: int | None = None
    type: str | None = None
    beds: int | None = None
    baths: float | None = None
    sort_by: str = "ideality_score"
    sort_order: str = "desc"
    limit: int = 20
    cursor: str | None = None


@dataclass(slots=True)
class NeighborhoodStats:
    average_price: int
    average_sqft: int
    total_properties: int
    property_types: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
