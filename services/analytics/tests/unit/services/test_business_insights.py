from datetime import timedelta

import pytest
from src.services.business_insights import (
    BENCHMARKS,
    BusinessInsightsService,
    calculate_trends,
    productivity_score,
)


def _seed(store, now):
    created = now - timedelta(days=1)
    for i in range(10):
        store.add("items", id=f"i{i}", user_id="u1", created_at=created)
    store.add("items", id="x", user_id="u2", created_at=created)
    for _ in range(20):
        store.add("semantic_searches", user_id="u1", created_at=created)
    for item, hours in [("i0", 1), ("i0", 5), ("i1", 3)]:
        store.add(
            "model_optimizations",
            user_id="u1",
            item_id=item,
            item_created_at=created,
            created_at=created + timedelta(hours=hours),
            status="approved",
            token_savings=50,
            cost_estimate=2.0,
        )
    store.add(
        "model_optimizations",
        user_id="u1",
        item_id="i2",
        item_created_at=created,
        created_at=created,
        status="rejected",
        token_savings=10,
        cost_estimate=1.0,
    )
    jobs = [("classification", "completed")] * 5 + [("import", "completed")] * 3
    jobs += [("import", "failed")] * 2
    for kind, status in jobs:
        store.add("workflow_queue", user_id="u1", type=kind, status=status, created_at=created)
    for action in ["optimize"] * 6 + ["classify"] * 4 + ["login"] * 3:
        store.add("audit_logs", user_id="u1", action=action, created_at=created)
    store.add("content_summaries", user_id="u1", confidence=0.9, readability_score=0.5, created_at=created)


def test_productivity_score_is_capped():
    assert productivity_score(0, 0, 0, 0) == 0
    assert productivity_score(10, 3, 20, 5) == pytest.approx(1.08)
    assert productivity_score(1000, 1000, 1000, 1000) == 10


def test_trend_tiers():
    trends = calculate_trends(
        {"productivity_score": 7.5, "items_created": 21},
        {"roi_percentage": 100},
        {"quality_improvement": 61},
    )
    assert trends == {
        "productivity_trend": 12,
        "cost_trend": 3,
        "quality_trend": 4,
        "usage_trend": 7,
    }


@pytest.mark.asyncio
async def test_full_payload(store, now):
    _seed(store, now)
    payload = await BusinessInsightsService(store).build("u1", "30d")

    productivity = payload["productivity"]
    assert productivity["items_created"] == 10
    assert productivity["optimizations_applied"] == 3
    assert productivity["searches_performed"] == 20
    assert productivity["classifications_run"] == 5
    # first approval per item: 1h and 3h
    assert productivity["time_to_value"] == pytest.approx(2 * 3600 * 1000)
    assert productivity["productivity_score"] == pytest.approx(1.08)

    roi = payload["roi"]
    assert roi["cost_savings"] == pytest.approx(6.0)
    assert roi["token_savings"] == 150
    assert roi["optimizations_approved"] == 3
    assert roi["avg_savings_per_optimization"] == pytest.approx(2.0)
    assert roi["roi_percentage"] == pytest.approx(6.0 / 100.08 * 100)
    assert roi["payback_period"] == pytest.approx(100.08 / 6.0)

    efficiency = payload["efficiency"]
    assert efficiency["automation_rate"] == pytest.approx(10 / 15 * 100)
    assert efficiency["error_reduction"] == pytest.approx(80)
    assert efficiency["processing_time_improvement"] == pytest.approx(10 / 15 * 80)
    assert efficiency["quality_improvement"] == pytest.approx(90)
    assert efficiency["user_satisfaction"] == pytest.approx(85)

    assert payload["trends"] == {
        "productivity_trend": -2,
        "cost_trend": -1,
        "quality_trend": 10,
        "usage_trend": 2,
    }
    projections = payload["projections"]
    assert projections["monthly_savings"] == pytest.approx(8.0)
    assert projections["annual_savings"] == pytest.approx(96.0)
    assert projections["efficiency_gains"] == pytest.approx(94.0)
    assert payload["benchmarks"] == BENCHMARKS
    assert payload["status"]["degraded"] is False


@pytest.mark.asyncio
async def test_unknown_job_statuses_still_count_towards_totals(store, now):
    store.add("workflow_queue", user_id="u1", type="import", status="completed", created_at=now)
    store.add("workflow_queue", user_id="u1", type="import", status="exploded", created_at=now)
    efficiency = await BusinessInsightsService(store).efficiency("u1", now - timedelta(days=1))
    assert efficiency["user_satisfaction"] == pytest.approx(25)


@pytest.mark.asyncio
async def test_empty_account_has_no_division_errors(store):
    payload = await BusinessInsightsService(store).build("nobody", "7d")
    assert payload["roi"]["roi_percentage"] == 0
    assert payload["roi"]["payback_period"] == 0
    assert payload["efficiency"]["automation_rate"] == 0
    assert payload["projections"]["scalability_index"] == 0


@pytest.mark.asyncio
async def test_degraded_roi_section(store, now):
    _seed(store, now)
    store.failing.add("model_optimizations")
    payload = await BusinessInsightsService(store).build("u1", "30d")
    assert payload["status"]["sections"] == {
        "productivity": "degraded",
        "roi": "degraded",
        "efficiency": "ok",
    }
    assert payload["roi"]["cost_savings"] == 0
