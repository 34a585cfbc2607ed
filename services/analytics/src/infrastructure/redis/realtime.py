import json
import time
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

from redis.asyncio import Redis
from redis.exceptions import WatchError
from src.analytics.ratios import ema
from src.core.logger import get_logger

from shared.constants import RedisKeys

logger = get_logger("analytics.realtime_repository")

# Activity type -> (counter field, delta)
COUNTER_UPDATES: Dict[str, Tuple[str, int]] = {
    "item_created": ("items_processed", 1),
    "optimization_applied": ("optimizations_today", 1),
    "search_performed": ("searches_today", 1),
    "request_started": ("active_requests", 1),
    "request_completed": ("active_requests", -1),
    "error_occurred": ("error_count", 1),
}

INT_FIELDS = (
    "active_requests",
    "error_count",
    "session_duration",
    "items_processed",
    "optimizations_today",
    "searches_today",
)
FLOAT_FIELDS = ("requests_per_minute", "avg_response_time")


def _int(value: Any) -> int:
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return 0


def _float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def seconds_until_local_midnight(now: datetime) -> int:
    local = now.astimezone()
    tomorrow: date = local.date() + timedelta(days=1)
    midnight = datetime.combine(tomorrow, datetime.min.time()).astimezone()
    return max(1, int((midnight - local).total_seconds()))


def _response_time(data: Dict[str, Any]) -> Optional[float]:
    value = data.get("response_time", data.get("responseTime"))
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    return None


def parse_user_metrics(raw: Dict[str, Any]) -> Dict[str, Any]:
    out: Dict[str, Any] = {name: _int(raw.get(name)) for name in INT_FIELDS}
    out.update({name: _float(raw.get(name)) for name in FLOAT_FIELDS})
    out["last_activity"] = raw.get("last_activity")
    return out


def parse_system_metrics(raw: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "queue_size": _int(raw.get("queue_size")),
        "avg_processing_time": _float(raw.get("avg_processing_time")),
        "error_rate": _float(raw.get("error_rate")),
        "throughput": _float(raw.get("throughput")),
        "cpu_usage": _float(raw.get("cpu_usage")),
        "memory_usage": _float(raw.get("memory_usage")),
        "active_workers": _int(raw.get("active_workers")),
        "last_updated": raw.get("last_updated"),
    }


class RealtimeRepository:
    """Per-user rolling counters, activity list and request-rate window.

    Notes:
        - One activity event is applied in a single MULTI/EXEC transaction
          (list push/trim, counter increment, moving average, window
          add/prune/count). A response-time sample WATCHes the metrics hash
          and the transaction is retried if another writer touched it.
        - ``requests_per_minute`` and the daily expiry are written right
          after the transaction, so the stored rate may lag by one event
          under concurrent writers.
    """

    def __init__(
        self,
        redis: Redis,
        activity_capacity: int = 20,
        activity_ttl: int = 86400,
        window_ms: int = 60_000,
        window_ttl: int = 300,
        ema_weight: float = 0.9,
        alerts_limit: int = 10,
    ):
        self.r = redis
        self.activity_capacity = activity_capacity
        self.activity_ttl = activity_ttl
        self.window_ms = window_ms
        self.window_ttl = window_ttl
        self.ema_weight = ema_weight
        self.alerts_limit = alerts_limit

    # Writes
    async def record_activity(
        self,
        user_id: str,
        event_type: str,
        data: Dict[str, Any],
        timestamp: datetime,
        now_ms: Optional[int] = None,
    ) -> Dict[str, Any]:
        if now_ms is None:
            now_ms = int(time.time() * 1000)
        now = datetime.fromtimestamp(now_ms / 1000, tz=timezone.utc)
        metrics_key = RedisKeys.user_key("metrics", user_id)
        activity_key = RedisKeys.user_key("recent_activity", user_id)
        window_key = RedisKeys.user_key("requests_window", user_id)

        activity = {
            "type": event_type,
            "data": data,
            "timestamp": timestamp.isoformat(),
        }
        sample = _response_time(data) if event_type == "request_completed" else None
        counter = COUNTER_UPDATES.get(event_type)

        async with self.r.pipeline(transaction=True) as pipe:
            while True:
                try:
                    new_avg: Optional[float] = None
                    if sample is not None:
                        await pipe.watch(metrics_key)
                        current = _float(await pipe.hget(metrics_key, "avg_response_time"))
                        new_avg = ema(current, sample, self.ema_weight)
                        pipe.multi()

                    pipe.lpush(activity_key, json.dumps(activity, default=str))
                    pipe.ltrim(activity_key, 0, self.activity_capacity - 1)
                    pipe.expire(activity_key, self.activity_ttl)
                    pipe.hset(metrics_key, "last_activity", now.isoformat())
                    queued = 4

                    counter_idx = None
                    if counter is not None:
                        pipe.hincrby(metrics_key, counter[0], counter[1])
                        counter_idx = queued
                        queued += 1
                    if new_avg is not None:
                        pipe.hset(metrics_key, "avg_response_time", str(new_avg))
                        queued += 1

                    pipe.zadd(window_key, {str(now_ms): now_ms})
                    pipe.zremrangebyscore(window_key, "-inf", f"({now_ms - self.window_ms}")
                    pipe.zcard(window_key)
                    card_idx = queued + 2
                    pipe.expire(window_key, self.window_ttl)
                    results = await pipe.execute()
                    break
                except WatchError:
                    logger.debug(
                        "activity_retry", extra={"user_id": user_id, "event_type": event_type}
                    )
                    continue

        requests_per_minute = int(results[card_idx])
        fields: Dict[str, str] = {"requests_per_minute": str(requests_per_minute)}
        if counter_idx is not None and counter is not None:
            value = int(results[counter_idx])
            # a completion without a matching start (e.g. after the midnight
            # reset) must not leave a negative gauge behind
            if counter[0] == "active_requests" and value < 0:
                fields["active_requests"] = "0"

        follow_up = self.r.pipeline(transaction=False)
        follow_up.hset(metrics_key, mapping=fields)  # type: ignore[arg-type]
        follow_up.expire(metrics_key, seconds_until_local_midnight(now))
        await follow_up.execute()

        logger.debug(
            "activity_recorded",
            extra={
                "user_id": user_id,
                "event_type": event_type,
                "requests_per_minute": requests_per_minute,
            },
        )
        return activity

    async def prune_request_window(self, user_id: str, now_ms: int) -> int:
        window_key = RedisKeys.user_key("requests_window", user_id)
        pipe = self.r.pipeline(transaction=True)
        pipe.zremrangebyscore(window_key, "-inf", f"({now_ms - self.window_ms}")
        pipe.zcard(window_key)
        _, card = await pipe.execute()
        return int(card)

    # Reads
    async def get_user_metrics(self, user_id: str) -> Dict[str, Any]:
        raw = await self.r.hgetall(RedisKeys.user_key("metrics", user_id))
        return parse_user_metrics(raw)

    async def get_recent_activity(self, user_id: str) -> List[Dict[str, Any]]:
        entries = await self.r.lrange(
            RedisKeys.user_key("recent_activity", user_id),
            0,
            self.activity_capacity - 1,
        )
        activities = []
        for entry in entries:
            try:
                activities.append(json.loads(entry))
            except (TypeError, ValueError):
                activities.append({"type": "unknown", "timestamp": None})
        return activities

    async def get_active_jobs(self, user_id: str) -> List[Dict[str, Any]]:
        raw = await self.r.hgetall(RedisKeys.user_key("active_jobs", user_id))
        jobs = []
        for job_type, value in raw.items():
            try:
                parsed = json.loads(value)
            except (TypeError, ValueError):
                parsed = None
            if isinstance(parsed, dict):
                jobs.append(
                    {
                        "type": job_type,
                        "count": _int(parsed.get("count")),
                        "status": parsed.get("status") or "unknown",
                        "started_at": parsed.get("startedAt"),
                        "estimated_completion": parsed.get("estimatedCompletion"),
                    }
                )
            else:
                jobs.append({"type": job_type, "count": _int(value), "status": "unknown"})
        return jobs

    async def get_system_metrics(self) -> Dict[str, Any]:
        raw = await self.r.hgetall(RedisKeys.SYSTEM_METRICS_HASH)
        return parse_system_metrics(raw)

    async def get_active_alerts(self, user_id: str) -> List[Dict[str, Any]]:
        entries = await self.r.lrange(
            RedisKeys.user_key("alerts", user_id), 0, self.alerts_limit - 1
        )
        alerts = []
        for entry in entries:
            try:
                parsed = json.loads(entry)
            except (TypeError, ValueError):
                continue
            if parsed:
                alerts.append(parsed)
        return alerts
