import pytest

from backend.core.listing import (
    build_facets,
    fetch_listing_page,
    get_property_detail,
    matches_filters,
    parse_filters,
    query_listings,
    score_listings,
    sort_listings,
)
from backend.core.models import PropertyFilters
from backend.jobs.recompute_scores import recompute_scores


YEAR = 2026


def _row(property_id, price, **overrides):
    row = {
        "id": property_id,
        "price": price,
        "sqft": 2000,
        "year_built": 2000,
        "beds": 3,
        "baths": 2,
        "location_score": 80,
        "safety_score": 70,
        "school_score": 60,
        "commute_minutes": 30,
        "type": "house",
    }
    row.update(overrides)
    return row


@pytest.fixture(autouse=True)
def _no_env_overrides(monkeypatch):
    for name in ("IDEALITY_PRICE_MIN", "IDEALITY_PRICE_MAX", "IDEALITY_COMMUTE_MIN", "IDEALITY_COMMUTE_MAX"):
        monkeypatch.delenv(name, raising=False)


class FakeRepo:
    def __init__(self, rows):
        self.rows = {row["id"]: row for row in rows}
        self.list_calls = []

    def get_property(self, property_id):
        return self.rows.get(property_id)

    def iter_all_properties(self):
        return list(self.rows.values())

    def update_ideality_score(self, property_id, score):
        self.rows[property_id]["ideality_score"] = score

    def list_properties(self, filters, offset=0):
        self.list_calls.append(offset)
        ordered = sort_listings(list(self.rows.values()), filters.sort_by, filters.sort_order)
        return ordered[offset : offset + filters.limit + 1]


def test_parse_filters_defaults():
    filters = parse_filters({})
    assert filters.sort_by == "ideality_score"
    assert filters.sort_order == "desc"
    assert filters.limit == 20
    assert filters.min_price is None


def test_parse_filters_converts_query_params():
    filters = parse_filters(
        {"minPrice": "200000", "maxYear": "2010", "baths": "1.5", "sortBy": "yearBuilt", "sortOrder": "ASC", "limit": "5"}
    )
    assert filters.min_price == 200000
    assert filters.max_year == 2010
    assert filters.baths == 1.5
    assert filters.sort_by == "year_built"
    assert filters.sort_order == "asc"
    assert filters.limit == 5


@pytest.mark.parametrize(
    "params",
    [
        {"sortBy": "garden"},
        {"sortOrder": "sideways"},
        {"limit": "0"},
        {"limit": "101"},
        {"minPrice": "cheap"},
        {"minSqft": "-1"},
        {"minYear": "1700"},
        {"cursor": "abc"},
        {"cursor": "-1"},
    ],
)
def test_parse_filters_rejects_bad_params(params):
    with pytest.raises(ValueError):
        parse_filters(params)


def test_matches_filters_bounds_and_type():
    row = _row("b", 500000)
    assert matches_filters(row, PropertyFilters(min_price=400000, max_price=600000))
    assert not matches_filters(row, PropertyFilters(min_price=600000))
    assert not matches_filters(row, PropertyFilters(type="condo"))


def test_score_listings_drops_unscorable_rows():
    rows = [_row("a", 300000), _row("b", 300000, beds=0), _row("c", 300000, sqft=None)]
    scored = score_listings(rows, evaluation_year=YEAR)
    assert [row["id"] for row in scored] == ["a"]
    assert scored[0]["score_breakdown"]["price"] == 89


def test_sort_listings_puts_missing_values_last():
    rows = [{"id": "a", "price": 2}, {"id": "b", "price": None}, {"id": "c", "price": 5}]
    assert [row["id"] for row in sort_listings(rows, "price", "asc")] == ["a", "c", "b"]
    assert [row["id"] for row in sort_listings(rows, "price", "desc")] == ["c", "a", "b"]


def test_query_listings_ranks_by_score_and_paginates():
    rows = [_row("c", 1500000), _row("a", 300000), _row("b", 900000)]
    page = query_listings(rows, PropertyFilters(limit=2), evaluation_year=YEAR)
    assert [row["id"] for row in page["properties"]] == ["a", "b"]
    assert page["pagination"] == {"has_more": True, "next_cursor": "2", "limit": 2}


def test_query_listings_last_page_has_no_cursor():
    rows = [_row("a", 300000), _row("b", 900000), _row("c", 1500000)]
    page = query_listings(rows, PropertyFilters(min_price=500000), evaluation_year=YEAR)
    assert [row["id"] for row in page["properties"]] == ["b", "c"]
    assert page["pagination"]["has_more"] is False
    assert page["pagination"]["next_cursor"] is None


def test_query_listings_with_preset_weights_changes_scores():
    rows = [_row("a", 300000)]
    default = query_listings(rows, PropertyFilters(), evaluation_year=YEAR)["properties"][0]["ideality_score"]
    price_only = {"price": 1, "features": 0, "location": 0, "safety": 0, "schools": 0, "commute": 0}
    weighted = query_listings(rows, PropertyFilters(), price_only, evaluation_year=YEAR)["properties"][0]
    assert weighted["ideality_score"] == weighted["score_breakdown"]["price"] == 89
    assert default != weighted["ideality_score"]


def test_build_facets():
    rows = [_row("a", 300000, year_built=1990), _row("b", 900000, sqft=1200), {"id": "c", "price": None}]
    facets = build_facets(rows)
    assert facets["price"] == {"min": 300000, "max": 900000}
    assert facets["sqft"] == {"min": 1200, "max": 2000}
    assert facets["year_built"] == {"min": 1990, "max": 2000}
    assert build_facets([])["price"] == {"min": 0, "max": 0}


def test_get_property_detail():
    repo = FakeRepo([_row("a", 1050000)])
    detail = get_property_detail(repo, "a", evaluation_year=YEAR)
    assert detail["score_breakdown"]["price"] == 50
    assert 0 <= detail["ideality_score"] <= 100


def test_get_property_detail_unknown_id():
    with pytest.raises(LookupError):
        get_property_detail(FakeRepo([]), "missing", evaluation_year=YEAR)


def test_walking_pages_returns_every_row_once():
    rows = [_row("c", 300000), _row("a", 900000), _row("b", 1500000)]
    first = query_listings(rows, PropertyFilters(limit=2), evaluation_year=YEAR)
    assert [row["id"] for row in first["properties"]] == ["c", "a"]
    cursor = first["pagination"]["next_cursor"]
    second = query_listings(rows, PropertyFilters(limit=2, cursor=cursor), evaluation_year=YEAR)
    first_ids = {row["id"] for row in first["properties"]}
    second_ids = {row["id"] for row in second["properties"]}
    assert first_ids.isdisjoint(second_ids)
    assert first_ids | second_ids == {"a", "b", "c"}
    assert second["pagination"]["has_more"] is False


def test_fetch_listing_page_walks_stored_scores():
    rows = [_row(name, 300000, ideality_score=score) for name, score in (("a", 60), ("b", 90), ("c", 75))]
    repo = FakeRepo(rows)
    first = fetch_listing_page(repo, PropertyFilters(limit=2))
    second = fetch_listing_page(repo, PropertyFilters(limit=2, cursor=first["pagination"]["next_cursor"]))
    assert [row["id"] for row in first["properties"]] == ["b", "c"]
    assert [row["id"] for row in second["properties"]] == ["a"]
    assert repo.list_calls == [0, 2]


def test_stored_score_matches_detail_under_env_config(monkeypatch):
    monkeypatch.setenv("IDEALITY_PRICE_MAX", "700000")
    repo = FakeRepo([_row("a", 350000)])
    recompute_scores(repo, evaluation_year=YEAR)
    detail = get_property_detail(repo, "a", evaluation_year=YEAR)
    listed = query_listings(list(repo.rows.values()), PropertyFilters(), evaluation_year=YEAR)["properties"][0]
    assert detail["ideality_score"] == repo.rows["a"]["ideality_score"] == listed["ideality_score"]
    assert detail["score_breakdown"]["price"] == 58
