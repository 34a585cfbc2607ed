import asyncio
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Dict

from src.analytics.ratios import ratio
from src.analytics.time_range import range_start
from src.domain.results import gather_sections, status_block
from src.domain.statuses import (
    UNKNOWN,
    OptimizationStatus,
    WorkflowStatus,
    parse_status,
    status_label,
)
from src.domain.store import NOT_NULL, AnalyticsStore

PAYLOAD = "ai_performance"

# Optimization review outcomes expressed as processing outcomes
OPTIMIZATION_OUTCOME = {
    OptimizationStatus.APPROVED: "completed",
    OptimizationStatus.REJECTED: "failed",
    OptimizationStatus.PENDING: "pending",
}


def _usage_entry() -> Dict[str, int]:
    return {"total": 0, "completed": 0, "failed": 0, "pending": 0, "processing": 0}


def _quality_default() -> Dict[str, Any]:
    return {
        "optimization_quality": {"avg_score": 0, "count": 0},
        "content_quality": {
            "avg_confidence": 0,
            "avg_readability": 0,
            "avg_sentiment": 0,
            "count": 0,
        },
    }


def _elapsed_ms(start: Any, end: Any) -> float:
    return (end - start).total_seconds() * 1000


class AIPerformanceService:
    """Model and job-queue performance: usage, latency, errors, cost, quality."""

    def __init__(self, store: AnalyticsStore):
        self.store = store

    async def build(self, user_id: str, time_range: str) -> Dict[str, Any]:
        since = range_start(time_range)
        sections = await gather_sections(
            PAYLOAD,
            {
                "model_usage": (self.model_usage(user_id, since), {}),
                "processing_metrics": (self.processing_metrics(user_id, since), {}),
                "error_analysis": (self.error_analysis(user_id, since), {}),
                "cost_analysis": (self.cost_analysis(user_id, since), {}),
                "quality_metrics": (
                    self.quality_metrics(user_id, since),
                    _quality_default(),
                ),
            },
        )
        usage = sections["model_usage"].data
        total = sum(stats["total"] for stats in usage.values())
        completed = sum(stats["completed"] for stats in usage.values())
        success_rate = ratio(completed, total)
        return {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "time_range": time_range,
            **{name: result.data for name, result in sections.items()},
            "overall_success_rate": success_rate,
            "summary": {
                "total_requests": total,
                "total_completed": completed,
                "total_failed": total - completed,
                "avg_success_rate": success_rate,
                "total_cost": sum(
                    cost["total_cost"] for cost in sections["cost_analysis"].data.values()
                ),
            },
            "status": status_block(sections),
        }

    async def model_usage(self, user_id: str, since: datetime) -> Dict[str, Dict[str, int]]:
        optimizations, jobs = await asyncio.gather(
            self.store.group_count(
                "model_optimizations",
                ("target_model", "status"),
                user_id=user_id,
                since=since,
            ),
            self.store.group_count(
                "workflow_queue", ("type", "status"), user_id=user_id, since=since
            ),
        )
        usage: Dict[str, Dict[str, int]] = defaultdict(_usage_entry)
        for row in optimizations:
            status = parse_status(OptimizationStatus, row["status"])
            outcome = OPTIMIZATION_OUTCOME[status] if status is not None else UNKNOWN
            entry = usage[row["target_model"]]
            entry[outcome] = entry.get(outcome, 0) + row["count"]
            entry["total"] += row["count"]
        for row in jobs:
            label = status_label(WorkflowStatus, row["status"])
            entry = usage[row["type"]]
            entry[label] = entry.get(label, 0) + row["count"]
            entry["total"] += row["count"]
        return dict(usage)

    async def processing_metrics(self, user_id: str, since: datetime) -> Dict[str, Dict[str, float]]:
        jobs, reviews = await asyncio.gather(
            self.store.fetch_rows(
                "workflow_queue",
                ("type", "started_at", "completed_at"),
                user_id=user_id,
                since=since,
                filters={"started_at": NOT_NULL, "completed_at": NOT_NULL},
            ),
            self.store.fetch_rows(
                "model_optimizations",
                ("target_model", "created_at", "reviewed_at"),
                user_id=user_id,
                since=since,
                filters={"reviewed_at": NOT_NULL},
            ),
        )
        metrics: Dict[str, Dict[str, float]] = defaultdict(
            lambda: {"total_time": 0, "count": 0, "avg_time": 0}
        )
        samples = [(row["type"], _elapsed_ms(row["started_at"], row["completed_at"])) for row in jobs]
        samples += [
            (row["target_model"], _elapsed_ms(row["created_at"], row["reviewed_at"]))
            for row in reviews
        ]
        for key, elapsed in samples:
            metrics[key]["total_time"] += elapsed
            metrics[key]["count"] += 1
        for entry in metrics.values():
            entry["avg_time"] = ratio(entry["total_time"], entry["count"])
        return dict(metrics)

    async def error_analysis(self, user_id: str, since: datetime) -> Dict[str, int]:
        failed, rejected = await asyncio.gather(
            self.store.group_count(
                "workflow_queue",
                ("type",),
                user_id=user_id,
                since=since,
                filters={"status": WorkflowStatus.FAILED.value},
            ),
            self.store.group_count(
                "model_optimizations",
                ("target_model",),
                user_id=user_id,
                since=since,
                filters={"status": OptimizationStatus.REJECTED.value},
            ),
        )
        errors = {f"{row['type']}_failed": row["count"] for row in failed}
        errors.update({f"{row['target_model']}_rejected": row["count"] for row in rejected})
        return errors

    async def cost_analysis(self, user_id: str, since: datetime) -> Dict[str, Dict[str, Any]]:
        rows = await self.store.aggregate(
            "model_optimizations",
            sums=("cost_estimate",),
            avgs=("cost_estimate",),
            by=("target_model",),
            user_id=user_id,
            since=since,
            filters={"cost_estimate": NOT_NULL},
        )
        return {
            row["target_model"]: {
                "total_cost": row.get("sum_cost_estimate") or 0,
                "avg_cost": row.get("avg_cost_estimate") or 0,
                "request_count": int(row.get("count") or 0),
            }
            for row in rows
        }

    async def quality_metrics(self, user_id: str, since: datetime) -> Dict[str, Any]:
        scores, content = await asyncio.gather(
            self.store.aggregate(
                "model_optimizations",
                avgs=("quality_score",),
                user_id=user_id,
                since=since,
                filters={"quality_score": NOT_NULL},
            ),
            self.store.aggregate(
                "content_summaries",
                avgs=("confidence", "readability_score", "sentiment_score"),
                user_id=user_id,
                since=since,
            ),
        )
        score = scores[0] if scores else {}
        summary = content[0] if content else {}
        return {
            "optimization_quality": {
                "avg_score": score.get("avg_quality_score") or 0,
                "count": int(score.get("count") or 0),
            },
            "content_quality": {
                "avg_confidence": summary.get("avg_confidence") or 0,
                "avg_readability": summary.get("avg_readability_score") or 0,
                "avg_sentiment": summary.get("avg_sentiment_score") or 0,
                "count": int(summary.get("count") or 0),
            },
        }
