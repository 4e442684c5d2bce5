from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from backend.core.config import load_normalization_config, resolve_evaluation_year
from backend.core.models import InvalidPropertyError, NormalizationConfig, PropertyFilters, WeightProfile
from backend.core.normalize import property_detail, property_from_record
from backend.core.scoring import compute_ideality
from backend.core.supabase_repo import SupabaseRepo


LOGGER = logging.getLogger(__name__)

SORT_COLUMNS = {
    "ideality_score": "ideality_score",
    "price": "price",
    "sqft": "sqft",
    "year_built": "year_built",
    "yearBuilt": "year_built",
    "created_at": "created_at",
    "createdAt": "created_at",
}
SORT_ORDERS = {"asc", "desc"}
MAX_LIMIT = 100
DEFAULT_LIMIT = 20
MIN_FILTER_YEAR = 1800


def parse_filters(params: Mapping[str, str | None]) -> PropertyFilters:
    """
    Validate listing query-string params (camelCase, as sent by the listing page).
    Raises ValueError on any malformed value.
    """
    sort_by = params.get("sortBy") or "ideality_score"
    if sort_by not in SORT_COLUMNS:
        raise ValueError(f"Unsupported sortBy: {sort_by}")
    sort_order = (params.get("sortOrder") or "desc").lower()
    if sort_order not in SORT_ORDERS:
        raise ValueError(f"Unsupported sortOrder: {sort_order}")

    limit = _parse_int(params, "limit")
    if limit is None:
        limit = DEFAULT_LIMIT
    if not 1 <= limit <= MAX_LIMIT:
        raise ValueError(f"limit must be between 1 and {MAX_LIMIT}")

    filters = PropertyFilters(
        min_price=_parse_float(params, "minPrice"),
        max_price=_parse_float(params, "maxPrice"),
        min_sqft=_parse_int(params, "minSqft"),
        max_sqft=_parse_int(params, "maxSqft"),
        min_year=_parse_int(params, "minYear"),
        max_year=_parse_int(params, "maxYear"),
        type=(params.get("type") or None),
        beds=_parse_int(params, "beds"),
        baths=_parse_float(params, "baths"),
        sort_by=SORT_COLUMNS[sort_by],
        sort_order=sort_order,
        limit=limit,
        cursor=(params.get("cursor") or None),
    )
    for name in ("min_price", "max_price", "min_sqft", "max_sqft", "beds", "baths"):
        value = getattr(filters, name)
        if value is not None and value < 0:
            raise ValueError(f"{name} must be non-negative")
    for name in ("min_year", "max_year"):
        value = getattr(filters, name)
        if value is not None and value < MIN_FILTER_YEAR:
            raise ValueError(f"{name} must be at least {MIN_FILTER_YEAR}")
    cursor_offset(filters.cursor)
    return filters


def matches_filters(row: dict[str, Any], filters: PropertyFilters) -> bool:
    bounds = (
        ("price", filters.min_price, filters.max_price),
        ("sqft", filters.min_sqft, filters.max_sqft),
        ("year_built", filters.min_year, filters.max_year),
    )
    for column, low, high in bounds:
        value = row.get(column)
        if low is None and high is None:
            continue
        if value is None:
            return False
        if low is not None and value < low:
            return False
        if high is not None and value > high:
            return False
    if filters.type and row.get("type") != filters.type:
        return False
    if filters.beds is not None and row.get("beds") != filters.beds:
        return False
    if filters.baths is not None and row.get("baths") != filters.baths:
        return False
    return True


def cursor_offset(cursor: str | None) -> int:
    """Cursors are opaque offsets into the ordered result."""
    if cursor is None or not str(cursor).strip():
        return 0
    try:
        offset = int(str(cursor).strip())
    except ValueError as exc:
        raise ValueError(f"cursor must be a non-negative integer, got {cursor!r}") from exc
    if offset < 0:
        raise ValueError(f"cursor must be a non-negative integer, got {cursor!r}")
    return offset


def score_listings(
    rows: list[dict[str, Any]],
    weights: Mapping[str, float] | WeightProfile | None = None,
    config: NormalizationConfig | None = None,
    evaluation_year: int | None = None,
) -> list[dict[str, Any]]:
    """Attach ideality_score/score_breakdown to each row; rows that cannot be scored are dropped."""
    year = resolve_evaluation_year(evaluation_year)
    config = config or load_normalization_config()
    scored: list[dict[str, Any]] = []
    for row in rows:
        try:
            result = compute_ideality(property_from_record(row), weights, config, evaluation_year=year)
        except InvalidPropertyError as exc:
            LOGGER.warning("Skipping unscorable property id=%s: %s", row.get("id"), exc)
            continue
        scored.append({**row, "ideality_score": result.score, "score_breakdown": result.breakdown.to_dict()})
    return scored


def sort_listings(rows: list[dict[str, Any]], sort_by: str, sort_order: str = "desc") -> list[dict[str, Any]]:
    column = SORT_COLUMNS.get(sort_by, sort_by)
    present = [row for row in rows if row.get(column) is not None]
    missing = [row for row in rows if row.get(column) is None]
    # Stable on id so equal scores keep a reproducible order.
    present.sort(key=lambda row: str(row.get("id") or ""))
    present.sort(key=lambda row: row[column], reverse=sort_order == "desc")
    return present + missing


def paginate(rows: list[dict[str, Any]], limit: int, offset: int = 0) -> dict[str, Any]:
    """Expects limit + 1 rows, starting at offset, when another page exists."""
    has_more = len(rows) > limit
    page = rows[:limit]
    next_cursor = str(offset + limit) if has_more else None
    return {
        "properties": page,
        "pagination": {"has_more": has_more, "next_cursor": next_cursor, "limit": limit},
    }


def query_listings(
    rows: list[dict[str, Any]],
    filters: PropertyFilters,
    weights: Mapping[str, float] | WeightProfile | None = None,
    config: NormalizationConfig | None = None,
    evaluation_year: int | None = None,
) -> dict[str, Any]:
    offset = cursor_offset(filters.cursor)
    matching = [row for row in rows if matches_filters(row, filters)]
    scored = score_listings(matching, weights, config, evaluation_year)
    ordered = sort_listings(scored, filters.sort_by, filters.sort_order)
    return paginate(ordered[offset : offset + filters.limit + 1], filters.limit, offset)


def fetch_listing_page(repo: SupabaseRepo, filters: PropertyFilters) -> dict[str, Any]:
    """Page over stored rows, ordered by the precomputed ideality_score column by default."""
    offset = cursor_offset(filters.cursor)
    return paginate(repo.list_properties(filters, offset), filters.limit, offset)


def get_property_detail(
    repo: SupabaseRepo,
    property_id: str,
    weights: Mapping[str, float] | WeightProfile | None = None,
    config: NormalizationConfig | None = None,
    evaluation_year: int | None = None,
) -> dict[str, Any]:
    row = repo.get_property(property_id)
    if row is None:
        raise LookupError(f"Property {property_id} not found")
    result = compute_ideality(
        property_from_record(row),
        weights,
        config or load_normalization_config(),
        evaluation_year=evaluation_year,
    )
    return property_detail(row, result)


def build_facets(rows: list[dict[str, Any]]) -> dict[str, dict[str, float]]:
    facets: dict[str, dict[str, float]] = {}
    for column in ("price", "sqft", "year_built"):
        values = [row[column] for row in rows if row.get(column) is not None]
        facets[column] = {"min": min(values), "max": max(values)} if values else {"min": 0, "max": 0}
    return facets


def _parse_int(params: Mapping[str, str | None], name: str) -> int | None:
    raw = params.get(name)
    if raw is None or str(raw).strip() == "":
        return None
    try:
        return int(str(raw).strip())
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc


def _parse_float(params: Mapping[str, str | None], name: str) -> float | None:
    raw = params.get(name)
    if raw is None or str(raw).strip() == "":
        return None
    try:
        return float(str(raw).strip())
    except ValueError as exc:
        raise ValueError(f"{name} must be numeric, got {raw!r}") from exc
