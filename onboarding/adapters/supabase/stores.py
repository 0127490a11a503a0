"""PostgREST-backed record stores.

Tables: ``profiles``, ``user_plans``, ``user_progress``, ``subscriptions``.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from onboarding.adapters.stores.base import (
    PlanStore,
    ProfileStore,
    ProgressStore,
    SubscriptionStore,
)
from onboarding.adapters.supabase.client import SupabaseClient
from onboarding.core.errors import UpstreamStoreError
from onboarding.schemas.profile import Plan, Profile
from onboarding.schemas.subscription import SubscriptionRecord

REST = "/rest/v1"
_RETURN_ROW = {"Prefer": "return=representation"}


def _first(rows: list[dict[str, Any]]) -> dict[str, Any] | None:
    return rows[0] if rows else None


class SupabaseProfileStore(ProfileStore):
    def __init__(self, client: SupabaseClient) -> None:
        self._client = client

    async def get_by_id(self, user_id: str) -> Profile | None:
        response = await self._client.request(
            "GET",
            f"{REST}/profiles",
            params={"id": f"eq.{user_id}", "select": "*", "limit": "1"},
            operation="profiles.get_by_id",
        )
        self._client.raise_for_store_status(response, store="profile", operation="get_by_id")
        row = _first(response.json())
        return Profile.model_validate(row) if row else None

    async def upsert(self, user_id: str, fields: dict[str, Any]) -> Profile:
        payload = {
            **fields,
            "id": user_id,
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }
        response = await self._client.request(
            "POST",
            f"{REST}/profiles",
            params={"on_conflict": "id"},
            headers={"Prefer": "resolution=merge-duplicates,return=representation"},
            json=payload,
            operation="profiles.upsert",
        )
        self._client.raise_for_store_status(response, store="profile", operation="upsert")
        row = _first(response.json())
        if row is None:
            raise UpstreamStoreError(
                code="store_error",
                message="profile store returned no row for upsert",
                details={"store": "profile", "operation": "upsert"},
            )
        return Profile.model_validate(row)


class SupabasePlanStore(PlanStore):
    _COLUMNS = (
        "user_id,start_date,phase1_activities,phase2_activities,"
        "phase3_activities,generated_at,is_active"
    )

    def __init__(self, client: SupabaseClient) -> None:
        self._client = client

    async def _fetch_one(self, params: dict[str, str], operation: str) -> Plan | None:
        response = await self._client.request(
            "GET",
            f"{REST}/user_plans",
            params={"select": self._COLUMNS, "limit": "1", **params},
            operation=f"user_plans.{operation}",
        )
        self._client.raise_for_store_status(response, store="plan", operation=operation)
        row = _first(response.json())
        return Plan.model_validate(row) if row else None

    async def get_active_or_latest(self, user_id: str) -> Plan | None:
        active = await self._fetch_one(
            {"user_id": f"eq.{user_id}", "is_active": "eq.true"}, "get_active"
        )
        if active is not None:
            return active
        return await self._fetch_one(
            {"user_id": f"eq.{user_id}", "order": "generated_at.desc.nullslast"},
            "get_latest",
        )


class SupabaseProgressStore(ProgressStore):
    def __init__(self, client: SupabaseClient) -> None:
        self._client = client

    async def count_completed(self, user_id: str) -> int:
        response = await self._client.request(
            "HEAD",
            f"{REST}/user_progress",
            params={"user_id": f"eq.{user_id}", "status": "eq.completed", "select": "activity_id"},
            headers={"Prefer": "count=exact"},
            operation="user_progress.count_completed",
        )
        self._client.raise_for_store_status(response, store="progress", operation="count_completed")
        # Content-Range: "0-24/25" or "*/0"
        content_range = response.headers.get("content-range", "")
        _, _, total = content_range.partition("/")
        if not total.isdigit():
            raise UpstreamStoreError(
                code="store_error",
                message="progress store returned no count",
                details={"store": "progress", "operation": "count_completed"},
            )
        return int(total)


class SupabaseSubscriptionStore(SubscriptionStore):
    def __init__(self, client: SupabaseClient) -> None:
        self._client = client

    async def get_by_user(self, user_id: str) -> SubscriptionRecord | None:
        response = await self._client.request(
            "GET",
            f"{REST}/subscriptions",
            params={"user_id": f"eq.{user_id}", "select": "*", "limit": "1"},
            operation="subscriptions.get_by_user",
        )
        self._client.raise_for_store_status(response, store="subscription", operation="get_by_user")
        row = _first(response.json())
        return SubscriptionRecord.model_validate(row) if row else None

    async def mark_cancel_at_period_end(self, user_id: str) -> None:
        response = await self._client.request(
            "PATCH",
            f"{REST}/subscriptions",
            params={"user_id": f"eq.{user_id}"},
            headers=_RETURN_ROW,
            json={
                "cancel_at_period_end": True,
                "updated_at": datetime.now(timezone.utc).isoformat(),
            },
            operation="subscriptions.cancel",
        )
        self._client.raise_for_store_status(response, store="subscription", operation="cancel")
