import asyncio
from datetime import datetime, timezone
from typing import Any, Dict

from src.analytics.time_range import range_start
from src.domain.results import gather_sections, status_block
from src.domain.store import AnalyticsStore

PAYLOAD = "dashboard"

RECENT_ITEM_COLUMNS = ("id", "name", "type", "format", "updated_at")


class DashboardService:
    """Account summary: item counts, recently touched items, collections, keys."""

    def __init__(self, store: AnalyticsStore, recent_items_limit: int = 10):
        self.store = store
        self.recent_items_limit = recent_items_limit

    async def build(self, user_id: str, time_range: str) -> Dict[str, Any]:
        since = range_start(time_range)
        sections = await gather_sections(
            PAYLOAD,
            {
                "summary": (
                    self.summary(user_id, since),
                    {
                        "total_items": 0,
                        "total_collections": 0,
                        "total_api_keys": 0,
                        "items_by_type": {},
                    },
                ),
                "recent_activity": (self.recent_activity(user_id, since), {"items": []}),
            },
        )
        return {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "time_range": time_range,
            "user_id": user_id,
            "summary": sections["summary"].data,
            "recent_activity": sections["recent_activity"].data,
            "status": status_block(sections),
        }

    async def summary(self, user_id: str, since: datetime) -> Dict[str, Any]:
        by_type, collections, api_keys = await asyncio.gather(
            self.store.group_count("items", ("type",), user_id=user_id, since=since),
            # collections and keys are account totals, not range-scoped
            self.store.count("collections", user_id=user_id),
            self.store.count("api_keys", user_id=user_id),
        )
        items_by_type = {row["type"]: row["count"] for row in by_type}
        return {
            "total_items": sum(items_by_type.values()),
            "total_collections": collections,
            "total_api_keys": api_keys,
            "items_by_type": items_by_type,
        }

    async def recent_activity(self, user_id: str, since: datetime) -> Dict[str, Any]:
        items = await self.store.fetch_rows(
            "items",
            RECENT_ITEM_COLUMNS,
            user_id=user_id,
            since=since,
            order_by="updated_at",
            descending=True,
            limit=self.recent_items_limit,
        )
        return {"items": items}
