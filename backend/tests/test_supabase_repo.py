import pytest

from backend.core.models import PropertyFilters
from backend.core.supabase_repo import SupabaseRepo


class FakeResponse:
    def __init__(self, data):
        self.data = data


class FakeQuery:
    def __init__(self, log, data):
        self.log = log
        self.data = data

    def __getattr__(self, name):
        def call(*args, **kwargs):
            self.log.append((name, args, kwargs))
            return self

        return call

    def execute(self):
        return FakeResponse(self.data)


class FakeClient:
    def __init__(self, data=None):
        self.log = []
        self.data = data or []

    def table(self, name):
        self.log.append(("table", (name,), {}))
        return FakeQuery(self.log, self.data)


def test_repo_requires_credentials(monkeypatch):
    monkeypatch.delenv("SUPABASE_URL", raising=False)
    monkeypatch.delenv("SUPABASE_SERVICE_ROLE_KEY", raising=False)
    with pytest.raises(ValueError):
        SupabaseRepo()


def test_list_properties_applies_filters_and_fetches_one_extra_row():
    client = FakeClient()
    repo = SupabaseRepo(client=client)
    repo.list_properties(PropertyFilters(min_price=200000, type="condo", sort_by="price", sort_order="asc", limit=10), offset=20)
    calls = [(name, args, kwargs) for name, args, kwargs in client.log]
    assert ("gte", ("price", 200000), {}) in calls
    assert ("eq", ("type", "condo"), {}) in calls
    assert ("order", ("id",), {}) in calls
    assert ("order", ("price",), {"desc": False}) in calls
    assert ("range", (20, 30), {}) in calls
    assert not any(name == "gt" for name, _, _ in calls)


def test_find_neighbors_uses_bounding_box():
    client = FakeClient(data=[{"id": "n1"}])
    repo = SupabaseRepo(client=client)
    rows = repo.find_neighbors(40.0, -74.0, 0.05, exclude_id="p1")
    assert rows == [{"id": "n1"}]
    names = [name for name, _, _ in client.log]
    assert names.count("gte") == 2
    assert names.count("lte") == 2
    assert ("neq", ("id", "p1"), {}) in client.log


def test_get_property_returns_none_when_missing():
    repo = SupabaseRepo(client=FakeClient(data=[]))
    assert repo.get_property("missing") is None


def test_iter_all_properties_stops_on_short_page():
    client = FakeClient(data=[{"id": "a"}, {"id": "b"}])
    assert SupabaseRepo(client=client).iter_all_properties() == [{"id": "a"}, {"id": "b"}]
