from __future__ import annotations

import os
from typing import Any

from supabase import Client, create_client

from backend.core.models import PropertyFilters


PROPERTIES_TABLE = "properties"
PAGE_SIZE = 1000


class SupabaseRepo:
    def __init__(self, url: str | None = None, service_role_key: str | None = None, client: Client | None = None) -> None:
        if client is not None:
            self.client: Client = client
            return
        supabase_url = url or os.environ.get("SUPABASE_URL")
        supabase_key = service_role_key or os.environ.get("SUPABASE_SERVICE_ROLE_KEY")
        if not supabase_url or not supabase_key:
            raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY are required.")
        self.client = create_client(supabase_url, supabase_key)

    def get_property(self, property_id: str) -> dict[str, Any] | None:
        rows = self.client.table(PROPERTIES_TABLE).select("*").eq("id", property_id).limit(1).execute().data or []
        return rows[0] if rows else None

    def list_properties(self, filters: PropertyFilters, offset: int = 0) -> list[dict[str, Any]]:
        """
        Returns up to filters.limit + 1 rows starting at offset, so the caller can tell
        whether another page exists. Ties on the sort column are broken by id.
        """
        query = self.client.table(PROPERTIES_TABLE).select("*")
        if filters.min_price is not None:
            query = query.gte("price", filters.min_price)
        if filters.max_price is not None:
            query = query.lte("price", filters.max_price)
        if filters.min_sqft is not None:
            query = query.gte("sqft", filters.min_sqft)
        if filters.max_sqft is not None:
            query = query.lte("sqft", filters.max_sqft)
        if filters.min_year is not None:
            query = query.gte("year_built", filters.min_year)
        if filters.max_year is not None:
            query = query.lte("year_built", filters.max_year)
        if filters.type:
            query = query.eq("type", filters.type)
        if filters.beds is not None:
            query = query.eq("beds", filters.beds)
        if filters.baths is not None:
            query = query.eq("baths", filters.baths)
        return (
            query.order(filters.sort_by, desc=filters.sort_order == "desc")
            .order("id")
            .range(offset, offset + filters.limit)
            .execute()
            .data
            or []
        )

    def iter_all_properties(self) -> list[dict[str, Any]]:
        out: list[dict[str, Any]] = []
        offset = 0
        while True:
            rows = (
                self.client.table(PROPERTIES_TABLE)
                .select("*")
                .order("id")
                .range(offset, offset + PAGE_SIZE - 1)
                .execute()
                .data
                or []
            )
            out.extend(rows)
            if len(rows) < PAGE_SIZE:
                break
            offset += len(rows)
        return out

    def find_neighbors(self, lat: float, lng: float, delta_deg: float, exclude_id: str | None = None) -> list[dict[str, Any]]:
        # Bounding box, not a true radius: 0.05 degrees is roughly 5 km.
        query = (
            self.client.table(PROPERTIES_TABLE)
            .select("id, price, sqft, type, lat, lng")
            .gte("lat", lat - delta_deg)
            .lte("lat", lat + delta_deg)
            .gte("lng", lng - delta_deg)
            .lte("lng", lng + delta_deg)
        )
        if exclude_id:
            query = query.neq("id", exclude_id)
        return query.execute().data or []

    def update_ideality_score(self, property_id: str, score: int) -> None:
        self.client.table(PROPERTIES_TABLE).update({"ideality_score": score}).eq("id", property_id).execute()
