from src.analytics.recommendations import RecommendationInputs, generate_recommendations


def _inputs(**overrides):
    values = dict(
        avg_quality=8,
        duplicate_rate=0.0,
        total_optimizations=10,
        approved_optimizations=9,
        clustering_quality=0.9,
        content_coverage=0.95,
    )
    values.update(overrides)
    return RecommendationInputs(**values)


def test_all_rules_fire_in_priority_order():
    recs = generate_recommendations(
        RecommendationInputs(
            avg_quality=4,
            duplicate_rate=0.2,
            total_optimizations=10,
            approved_optimizations=5,
            clustering_quality=0.3,
            content_coverage=0.5,
        )
    )
    assert [r["priority"] for r in recs] == [9, 7, 6, 5, 4]
    assert [r["id"] for r in recs] == [
        "quality_improvement",
        "duplicate_cleanup",
        "optimization_approval",
        "semantic_organization",
        "content_coverage",
    ]
    assert "20.0%" in recs[1]["description"]
    assert set(recs[0]) == {
        "id",
        "type",
        "title",
        "description",
        "impact",
        "effort",
        "priority",
        "action_items",
    }


def test_healthy_metrics_produce_nothing():
    assert generate_recommendations(_inputs()) == []


def test_no_optimizations_does_not_trigger_approval_rule():
    recs = generate_recommendations(_inputs(total_optimizations=0, approved_optimizations=0))
    assert recs == []


def test_thresholds_are_strict():
    recs = generate_recommendations(
        _inputs(avg_quality=6, duplicate_rate=0.1, clustering_quality=0.6, content_coverage=0.8)
    )
    assert recs == []


def test_generation_is_pure():
    inputs = _inputs(avg_quality=3, content_coverage=0.1)
    first = generate_recommendations(inputs)
    first[0]["action_items"].append("mutated")
    assert generate_recommendations(inputs) != first
    assert generate_recommendations(inputs) == generate_recommendations(inputs)
