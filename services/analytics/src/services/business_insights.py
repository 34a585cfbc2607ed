import asyncio
from datetime import datetime, timezone
from typing import Any, Dict, List

from src.analytics.ratios import mean, percentage, ratio
from src.analytics.time_range import range_start
from src.domain.results import gather_sections, status_block
from src.domain.statuses import OptimizationStatus, WorkflowStatus, status_label
from src.domain.store import NOT_NULL, AnalyticsStore

PAYLOAD = "business_insights"

# Baselines for the 0-10 productivity score
EXPECTED_ITEMS = 100
EXPECTED_OPTIMIZATIONS = 50
EXPECTED_SEARCHES = 200
EXPECTED_CLASSIFICATIONS = 25

PLATFORM_COST = 100
PROCESSING_COST_PER_JOB = 0.01

AUTOMATED_ACTIONS = ("optimize", "classify", "auto_process")

BENCHMARKS = {
    "industry_avg_roi": 150,
    "industry_avg_productivity": 6.5,
    "industry_avg_quality": 75,
    "performance_ranking": 15,
}


def _productivity_default() -> Dict[str, Any]:
    return {
        "items_created": 0,
        "optimizations_applied": 0,
        "classifications_run": 0,
        "searches_performed": 0,
        "time_to_value": 0,
        "productivity_score": 0,
    }


def _roi_default() -> Dict[str, Any]:
    return {
        "token_savings": 0,
        "cost_savings": 0,
        "optimizations_approved": 0,
        "avg_savings_per_optimization": 0,
        "roi_percentage": 0,
        "payback_period": 0,
    }


def _efficiency_default() -> Dict[str, Any]:
    return {
        "automation_rate": 0,
        "error_reduction": 0,
        "processing_time_improvement": 0,
        "quality_improvement": 0,
        "user_satisfaction": 0,
    }


def productivity_score(items: int, optimizations: int, searches: int, classifications: int) -> float:
    return min(
        10,
        items / EXPECTED_ITEMS * 3
        + optimizations / EXPECTED_OPTIMIZATIONS * 3
        + searches / EXPECTED_SEARCHES * 2
        + classifications / EXPECTED_CLASSIFICATIONS * 2,
    )


def time_to_value_ms(approvals: List[Dict[str, Any]]) -> float:
    """Mean delay between item creation and its first approved optimization.

    ``approvals`` must be ordered by ``created_at``.
    """
    first: Dict[Any, float] = {}
    for row in approvals:
        item_id = row["item_id"]
        if item_id in first or row.get("item_created_at") is None:
            continue
        delay = row["created_at"] - row["item_created_at"]
        first[item_id] = delay.total_seconds() * 1000
    return mean(first.values())


def _tier(value: float, thresholds) -> int:
    for limit, result in thresholds:
        if value > limit:
            return result
    return thresholds[-1][1]


def calculate_trends(productivity, roi, efficiency) -> Dict[str, int]:
    """Coarse tiers of the current period; no previous-period comparison."""
    return {
        "productivity_trend": _tier(
            productivity["productivity_score"], ((7, 12), (5, 5), (float("-inf"), -2))
        ),
        "cost_trend": _tier(roi["roi_percentage"], ((100, 8), (50, 3), (float("-inf"), -1))),
        "quality_trend": _tier(
            efficiency["quality_improvement"], ((80, 10), (60, 4), (float("-inf"), 0))
        ),
        "usage_trend": _tier(
            productivity["items_created"], ((50, 15), (20, 7), (float("-inf"), 2))
        ),
    }


def calculate_projections(productivity, roi, efficiency) -> Dict[str, float]:
    growth = min(1.5, efficiency["automation_rate"] / 50)
    monthly = roi["cost_savings"] * growth
    current_efficiency = (
        efficiency["automation_rate"] + efficiency["quality_improvement"]
    ) / 2
    return {
        "monthly_savings": monthly,
        "annual_savings": monthly * 12,
        "efficiency_gains": min(95, current_efficiency * 1.2),
        "scalability_index": min(
            10,
            efficiency["automation_rate"] / 10 * 0.3
            + productivity["productivity_score"] * 0.4
            + roi["roi_percentage"] / 20 * 0.3,
        ),
    }


class BusinessInsightsService:
    def __init__(self, store: AnalyticsStore):
        self.store = store

    async def build(self, user_id: str, time_range: str) -> Dict[str, Any]:
        since = range_start(time_range)
        sections = await gather_sections(
            PAYLOAD,
            {
                "productivity": (
                    self.productivity(user_id, since),
                    _productivity_default(),
                ),
                "roi": (self.roi(user_id, since), _roi_default()),
                "efficiency": (self.efficiency(user_id, since), _efficiency_default()),
            },
        )
        productivity = sections["productivity"].data
        roi = sections["roi"].data
        efficiency = sections["efficiency"].data
        return {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "time_range": time_range,
            "productivity": productivity,
            "roi": roi,
            "efficiency": efficiency,
            "trends": calculate_trends(productivity, roi, efficiency),
            "projections": calculate_projections(productivity, roi, efficiency),
            "benchmarks": dict(BENCHMARKS),
            "status": status_block(sections),
        }

    async def productivity(self, user_id: str, since: datetime) -> Dict[str, Any]:
        approved = {"status": OptimizationStatus.APPROVED.value}
        items, optimizations, searches, classifications, approvals = await asyncio.gather(
            self.store.count("items", user_id=user_id, since=since),
            self.store.count(
                "model_optimizations", user_id=user_id, since=since, filters=approved
            ),
            self.store.count("semantic_searches", user_id=user_id, since=since),
            self.store.count(
                "workflow_queue",
                user_id=user_id,
                since=since,
                filters={
                    "type": "classification",
                    "status": WorkflowStatus.COMPLETED.value,
                },
            ),
            self.store.fetch_rows(
                "model_optimizations",
                ("item_id", "item_created_at", "created_at"),
                user_id=user_id,
                since=since,
                time_field="item_created_at",
                filters=approved,
                order_by="created_at",
            ),
        )
        return {
            "items_created": items,
            "optimizations_applied": optimizations,
            "classifications_run": classifications,
            "searches_performed": searches,
            "time_to_value": time_to_value_ms(approvals),
            "productivity_score": productivity_score(
                items, optimizations, searches, classifications
            ),
        }

    async def roi(self, user_id: str, since: datetime) -> Dict[str, Any]:
        totals, completed_jobs = await asyncio.gather(
            self.store.aggregate(
                "model_optimizations",
                sums=("token_savings", "cost_estimate"),
                avgs=("cost_estimate",),
                user_id=user_id,
                since=since,
                filters={
                    "status": OptimizationStatus.APPROVED.value,
                    "token_savings": NOT_NULL,
                    "cost_estimate": NOT_NULL,
                },
            ),
            self.store.count(
                "workflow_queue",
                user_id=user_id,
                since=since,
                filters={"status": WorkflowStatus.COMPLETED.value},
            ),
        )
        total = totals[0] if totals else {}
        cost_savings = total.get("sum_cost_estimate") or 0
        investment = PLATFORM_COST + completed_jobs * PROCESSING_COST_PER_JOB
        return {
            "token_savings": total.get("sum_token_savings") or 0,
            "cost_savings": cost_savings,
            "optimizations_approved": int(total.get("count") or 0),
            "avg_savings_per_optimization": total.get("avg_cost_estimate") or 0,
            "roi_percentage": percentage(cost_savings, investment),
            # months, treating the period's savings as monthly
            "payback_period": ratio(investment, cost_savings),
        }

    async def efficiency(self, user_id: str, since: datetime) -> Dict[str, Any]:
        jobs, quality, automated = await asyncio.gather(
            self.store.group_count(
                "workflow_queue", ("status",), user_id=user_id, since=since
            ),
            self.store.aggregate(
                "content_summaries",
                avgs=("confidence", "readability_score"),
                user_id=user_id,
                since=since,
            ),
            self.store.count(
                "audit_logs",
                user_id=user_id,
                since=since,
                filters={"action": list(AUTOMATED_ACTIONS)},
            ),
        )
        by_status: Dict[str, int] = {}
        for row in jobs:
            label = status_label(WorkflowStatus, row["status"])
            by_status[label] = by_status.get(label, 0) + row["count"]
        total_jobs = sum(by_status.values())
        success_rate = percentage(by_status.get(WorkflowStatus.COMPLETED.value, 0), total_jobs)
        error_rate = percentage(by_status.get(WorkflowStatus.FAILED.value, 0), total_jobs)

        # half a manual operation estimated per queued job
        automation_rate = percentage(automated, automated + total_jobs * 0.5)
        avg_confidence = (quality[0] if quality else {}).get("avg_confidence") or 0
        quality_improvement = avg_confidence * 100
        return {
            "automation_rate": automation_rate,
            "error_reduction": max(0, 100 - error_rate),
            "processing_time_improvement": min(90, automation_rate * 0.8),
            "quality_improvement": quality_improvement,
            "user_satisfaction": (success_rate + quality_improvement) / 2,
        }
