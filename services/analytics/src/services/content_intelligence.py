import asyncio
from datetime import datetime, timezone
from typing import Any, Dict, List

from src.analytics.bucketing import Fold, bucket_by_day
from src.analytics.ratios import mean, ratio
from src.analytics.recommendations import (
    RecommendationInputs,
    generate_recommendations,
)
from src.analytics.time_range import range_start
from src.domain.results import SectionResult, gather_sections, status_block
from src.domain.statuses import OptimizationStatus
from src.domain.store import NOT_NULL, AnalyticsStore

PAYLOAD = "content_intelligence"

# Token and cost estimates per duplicate item
TOKENS_PER_DUPLICATE = 100
COST_PER_TOKEN = 0.0001

ITEM_TYPES = ("prompt", "agent", "rule", "template")


def _quality_default() -> Dict[str, Any]:
    return {
        "avg_readability": 0,
        "avg_coherence": 0,
        "avg_relevance": 0,
        "avg_completeness": 0,
        "quality_distribution": [],
    }


def _optimization_default() -> Dict[str, Any]:
    return {
        "total_optimizations": 0,
        "approved_optimizations": 0,
        "avg_improvement": 0,
        "token_savings": 0,
        "cost_savings": 0,
        "optimizations_by_model": {},
        "optimization_trends": [],
    }


def _duplicate_default() -> Dict[str, Any]:
    return {
        "total_items": 0,
        "duplicates_detected": 0,
        "duplicate_rate": 0,
        "duplicates_by_type": {},
        "deduplication_savings": 0,
    }


def _semantic_default() -> Dict[str, Any]:
    return {
        "total_clusters": 0,
        "avg_cluster_size": 0,
        "clustering_quality": 0,
        "content_coverage": 0,
    }


def _evolution_default() -> Dict[str, Any]:
    return {"creation_trend": [], "type_evolution": [], "quality_evolution": []}


def quality_distribution(confidences: List[float]) -> List[Dict[str, Any]]:
    scores = [c * 10 for c in confidences]
    return [
        {"range": "8-10", "count": sum(1 for s in scores if s >= 8)},
        {"range": "6-8", "count": sum(1 for s in scores if 6 <= s < 8)},
        {"range": "4-6", "count": sum(1 for s in scores if 4 <= s < 6)},
        {"range": "0-4", "count": sum(1 for s in scores if s < 4)},
    ]


def _first(rows: List[Dict[str, Any]]) -> Dict[str, Any]:
    return rows[0] if rows else {}


class ContentIntelligenceService:
    """Quality, optimization, duplication and semantic coverage analytics."""

    def __init__(self, store: AnalyticsStore):
        self.store = store

    async def build(self, user_id: str, time_range: str) -> Dict[str, Any]:
        since = range_start(time_range)
        sections = await gather_sections(
            PAYLOAD,
            {
                "quality_metrics": (
                    self.quality_metrics(user_id, since),
                    _quality_default(),
                ),
                "optimization_impact": (
                    self.optimization_impact(user_id, since),
                    _optimization_default(),
                ),
                "duplicate_analysis": (
                    self.duplicate_analysis(user_id, since),
                    _duplicate_default(),
                ),
                "semantic_insights": (
                    self.semantic_insights(user_id, since),
                    _semantic_default(),
                ),
                "content_evolution": (
                    self.content_evolution(user_id, since),
                    _evolution_default(),
                ),
            },
        )
        sections["recommendations"] = self.recommendations(sections)
        return {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "time_range": time_range,
            **{name: result.data for name, result in sections.items()},
            "status": status_block(sections),
        }

    def recommendations(
        self, sections: Dict[str, SectionResult[Any]]
    ) -> SectionResult[List[Dict[str, Any]]]:
        inputs = (
            "quality_metrics",
            "optimization_impact",
            "duplicate_analysis",
            "semantic_insights",
        )
        missing = [name for name in inputs if sections[name].degraded]
        if missing:
            # zeroed inputs would trigger every rule
            return SectionResult(data=[], error=f"inputs degraded: {', '.join(missing)}")

        quality = sections["quality_metrics"].data
        optimization = sections["optimization_impact"].data
        semantic = sections["semantic_insights"].data
        avg_quality = mean(
            [
                quality["avg_readability"],
                quality["avg_coherence"],
                quality["avg_relevance"],
                quality["avg_completeness"],
            ]
        )
        return SectionResult.ok(
            generate_recommendations(
                RecommendationInputs(
                    avg_quality=avg_quality,
                    duplicate_rate=sections["duplicate_analysis"].data["duplicate_rate"],
                    total_optimizations=optimization["total_optimizations"],
                    approved_optimizations=optimization["approved_optimizations"],
                    clustering_quality=semantic["clustering_quality"],
                    content_coverage=semantic["content_coverage"],
                )
            )
        )

    async def quality_metrics(self, user_id: str, since: datetime) -> Dict[str, Any]:
        averages, confidences = await asyncio.gather(
            self.store.aggregate(
                "content_summaries",
                avgs=("readability_score", "confidence"),
                user_id=user_id,
                since=since,
            ),
            self.store.fetch_rows(
                "content_summaries",
                ("confidence",),
                user_id=user_id,
                since=since,
                filters={"confidence": NOT_NULL},
            ),
        )
        avg = _first(averages)
        avg_readability = (avg.get("avg_readability_score") or 0) * 10
        return {
            "avg_readability": avg_readability,
            # coherence and completeness are estimated from readability
            "avg_coherence": avg_readability * 0.9,
            "avg_relevance": (avg.get("avg_confidence") or 0) * 10,
            "avg_completeness": avg_readability * 0.95,
            "quality_distribution": quality_distribution(
                [row["confidence"] or 0 for row in confidences]
            ),
        }

    async def optimization_impact(
        self, user_id: str, since: datetime
    ) -> Dict[str, Any]:
        totals, by_model, rows, approved = await asyncio.gather(
            self.store.aggregate(
                "model_optimizations",
                sums=("token_savings", "cost_estimate"),
                avgs=("quality_score",),
                user_id=user_id,
                since=since,
            ),
            self.store.group_count(
                "model_optimizations", ("target_model",), user_id=user_id, since=since
            ),
            self.store.fetch_rows(
                "model_optimizations",
                ("created_at", "status", "token_savings", "cost_estimate", "quality_score"),
                user_id=user_id,
                since=since,
                order_by="created_at",
            ),
            self.store.count(
                "model_optimizations",
                user_id=user_id,
                since=since,
                filters={"status": OptimizationStatus.APPROVED.value},
            ),
        )
        total = _first(totals)
        trends = bucket_by_day(
            rows,
            [
                Fold("optimizations", "count"),
                Fold("savings", "sum", "cost_estimate"),
                Fold("quality", "average", "quality_score"),
            ],
        )
        return {
            "total_optimizations": int(total.get("count") or 0),
            "approved_optimizations": approved,
            "avg_improvement": total.get("avg_quality_score") or 0,
            "token_savings": total.get("sum_token_savings") or 0,
            "cost_savings": total.get("sum_cost_estimate") or 0,
            "optimizations_by_model": {
                row["target_model"]: row["count"] for row in by_model
            },
            "optimization_trends": trends,
        }

    async def duplicate_analysis(self, user_id: str, since: datetime) -> Dict[str, Any]:
        total_items, duplicates, by_type = await asyncio.gather(
            self.store.count("items", user_id=user_id, since=since),
            self.store.count(
                "items", user_id=user_id, since=since, filters={"is_duplicate": True}
            ),
            self.store.group_count(
                "items",
                ("type",),
                user_id=user_id,
                since=since,
                filters={"is_duplicate": True},
            ),
        )
        return {
            "total_items": total_items,
            "duplicates_detected": duplicates,
            "duplicate_rate": ratio(duplicates, total_items),
            "duplicates_by_type": {row["type"]: row["count"] for row in by_type},
            "deduplication_savings": duplicates * TOKENS_PER_DUPLICATE * COST_PER_TOKEN,
        }

    async def semantic_insights(self, user_id: str, since: datetime) -> Dict[str, Any]:
        clusters, embedded, total_items = await asyncio.gather(
            self.store.group_count(
                "semantic_cluster_items",
                ("cluster_id",),
                user_id=user_id,
                since=since,
                time_field="item_created_at",
            ),
            self.store.count(
                "item_embeddings",
                user_id=user_id,
                since=since,
                time_field="item_created_at",
            ),
            self.store.count("items", user_id=user_id, since=since),
        )
        total_clusters = len(clusters)
        avg_cluster_size = mean(row["count"] for row in clusters)
        return {
            "total_clusters": total_clusters,
            "avg_cluster_size": avg_cluster_size,
            "clustering_quality": min(1, avg_cluster_size / 10) if total_clusters else 0,
            "content_coverage": ratio(embedded, total_items),
        }

    async def content_evolution(self, user_id: str, since: datetime) -> Dict[str, Any]:
        items, summaries = await asyncio.gather(
            self.store.fetch_rows(
                "items",
                ("created_at", "type"),
                user_id=user_id,
                since=since,
                order_by="created_at",
            ),
            self.store.fetch_rows(
                "content_summaries",
                ("created_at", "readability_score", "confidence"),
                user_id=user_id,
                since=since,
                order_by="created_at",
            ),
        )
        return {
            "creation_trend": bucket_by_day(items, [Fold("items", "count")]),
            "type_evolution": bucket_by_day(
                items,
                [Fold("type", "tally", "type")],
                defaults={t: 0 for t in ITEM_TYPES},
            ),
            "quality_evolution": bucket_by_day(
                summaries,
                [
                    Fold(
                        "readability",
                        "average",
                        lambda r: (r.get("readability_score") or 0) * 10,
                    ),
                    Fold(
                        "coherence",
                        "average",
                        lambda r: (r.get("readability_score") or 0) * 9,
                    ),
                    Fold("relevance", "average", lambda r: (r.get("confidence") or 0) * 10),
                ],
            ),
        }
