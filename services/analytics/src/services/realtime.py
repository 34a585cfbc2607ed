from datetime import datetime, timezone
from typing import Any, Dict

from src.core.metrics import REALTIME_EVENTS
from src.domain.models import ActivityEvent
from src.domain.results import gather_sections, status_block
from src.infrastructure.redis.realtime import (
    COUNTER_UPDATES,
    RealtimeRepository,
    parse_system_metrics,
    parse_user_metrics,
)

PAYLOAD = "realtime"


def event_metric_label(event_type: str) -> str:
    # free-form types share one series
    return event_type if event_type in COUNTER_UPDATES else "other"


class RealtimeService:
    def __init__(self, repo: RealtimeRepository):
        self.repo = repo

    async def snapshot(self, user_id: str) -> Dict[str, Any]:
        sections = await gather_sections(
            PAYLOAD,
            {
                "active_jobs": (self.repo.get_active_jobs(user_id), []),
                "recent_activity": (self.repo.get_recent_activity(user_id), []),
                "system_metrics": (self.repo.get_system_metrics(), parse_system_metrics({})),
                "user_metrics": (self.repo.get_user_metrics(user_id), parse_user_metrics({})),
                "alerts": (self.repo.get_active_alerts(user_id), []),
            },
        )
        return {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "user_id": user_id,
            **{name: result.data for name, result in sections.items()},
            "status": status_block(sections),
        }

    async def record(self, user_id: str, event: ActivityEvent) -> Dict[str, Any]:
        """Apply one activity event; store errors propagate to the caller."""
        timestamp = event.timestamp or datetime.now(timezone.utc)
        activity = await self.repo.record_activity(
            user_id, event.type, event.data, timestamp
        )
        REALTIME_EVENTS.labels(event_type=event_metric_label(event.type)).inc()
        return activity
