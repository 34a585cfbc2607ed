"""Columns the analytics service may query, per table.

The tables are denormalised copies of the web app's relational data, each
carrying the owning ``user_id``. Joined tables (embeddings, cluster
membership) carry ``item_created_at`` so they can be scoped by item age.
"""

from typing import Dict, FrozenSet

TABLES: Dict[str, FrozenSet[str]] = {
    "items": frozenset(
        {
            "id",
            "user_id",
            "name",
            "type",
            "format",
            "is_duplicate",
            "has_embedding",
            "created_at",
            "updated_at",
        }
    ),
    "model_optimizations": frozenset(
        {
            "id",
            "user_id",
            "item_id",
            "item_created_at",
            "target_model",
            "status",
            "token_savings",
            "cost_estimate",
            "quality_score",
            "created_at",
            "reviewed_at",
        }
    ),
    "content_summaries": frozenset(
        {
            "user_id",
            "item_id",
            "confidence",
            "readability_score",
            "sentiment_score",
            "created_at",
        }
    ),
    "semantic_searches": frozenset({"user_id", "query", "created_at"}),
    "workflow_queue": frozenset(
        {"id", "user_id", "type", "status", "created_at", "started_at", "completed_at"}
    ),
    "audit_logs": frozenset({"user_id", "action", "created_at"}),
    "collections": frozenset({"id", "user_id", "created_at"}),
    "api_keys": frozenset({"id", "user_id", "created_at"}),
    "item_embeddings": frozenset({"user_id", "item_id", "item_created_at", "created_at"}),
    "semantic_cluster_items": frozenset(
        {"cluster_id", "user_id", "item_id", "item_created_at", "created_at"}
    ),
}


def check_columns(table: str, *columns: str) -> None:
    known = TABLES.get(table)
    if known is None:
        raise ValueError(f"Unknown table: {table}")
    unknown = [c for c in columns if c not in known]
    if unknown:
        raise ValueError(f"Unknown columns for {table}: {', '.join(unknown)}")
