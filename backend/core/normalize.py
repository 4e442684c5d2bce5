from __future__ import annotations

from typing import Any

from backend.core.config import resolve_evaluation_year
from backend.core.models import IdealityResult, InvalidPropertyError, PropertyAttributes


REQUIRED_FIELDS = (
    "price",
    "sqft",
    "year_built",
    "beds",
    "baths",
    "location_score",
    "safety_score",
    "school_score",
    "commute_minutes",
)
MIN_PLAUSIBLE_YEAR = 1800


def property_from_record(row: dict[str, Any]) -> PropertyAttributes:
    missing = [name for name in REQUIRED_FIELDS if row.get(name) is None]
    if missing:
        raise InvalidPropertyError(f"Property {row.get('id')} is missing: {', '.join(missing)}")
    try:
        return PropertyAttributes(
            price=float(row["price"]),
            sqft=float(row["sqft"]),
            year_built=int(row["year_built"]),
            beds=int(row["beds"]),
            baths=float(row["baths"]),
            location_score=float(row["location_score"]),
            safety_score=float(row["safety_score"]),
            school_score=float(row["school_score"]),
            commute_minutes=float(row["commute_minutes"]),
        )
    except (TypeError, ValueError) as exc:
        raise InvalidPropertyError(f"Property {row.get('id')} has a non-numeric field: {exc}") from exc


def quality_flags(prop: PropertyAttributes, evaluation_year: int | None = None) -> dict[str, Any]:
    """
    Data-quality problems the scorer tolerates but ingestion should reject.
    Empty dict means the record is inside the intended domain.
    """
    current_year = resolve_evaluation_year(evaluation_year)
    flags: dict[str, Any] = {}
    if prop.price <= 0:
        flags["non_positive_price"] = prop.price
    if prop.sqft <= 0:
        flags["non_positive_sqft"] = prop.sqft
    if prop.beds < 1:
        flags["no_bedrooms"] = prop.beds
    if prop.baths < 0.5:
        flags["too_few_baths"] = prop.baths
    if prop.commute_minutes < 0:
        flags["negative_commute"] = prop.commute_minutes
    if not MIN_PLAUSIBLE_YEAR <= prop.year_built <= current_year:
        flags["implausible_year_built"] = prop.year_built
    for name in ("location_score", "safety_score", "school_score"):
        value = getattr(prop, name)
        if not 0 <= value <= 100:
            flags[f"{name}_out_of_range"] = value
    return flags


def property_detail(row: dict[str, Any], result: IdealityResult) -> dict[str, Any]:
    detail = dict(row)
    detail["ideality_score"] = result.score
    detail["score_breakdown"] = result.breakdown.to_dict()
    return detail
