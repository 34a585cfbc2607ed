"""Threshold rules turning content metrics into recommendations.

Rules are evaluated independently in definition order; the result is sorted
by priority (highest first) with a stable sort, so equal priorities keep
definition order. Pure: identical inputs give identical output.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Tuple

from src.analytics.ratios import ratio


@dataclass(frozen=True)
class RecommendationInputs:
    avg_quality: float
    duplicate_rate: float
    total_optimizations: int
    approved_optimizations: int
    clustering_quality: float
    content_coverage: float

    @property
    def approval_ratio(self) -> float:
        return ratio(self.approved_optimizations, self.total_optimizations)


@dataclass(frozen=True)
class Rule:
    id: str
    type: str
    title: str
    impact: str
    effort: str
    priority: int
    action_items: Tuple[str, ...]
    applies: Callable[[RecommendationInputs], bool]
    describe: Callable[[RecommendationInputs], str]

    def build(self, inputs: RecommendationInputs) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "title": self.title,
            "description": self.describe(inputs),
            "impact": self.impact,
            "effort": self.effort,
            "priority": self.priority,
            "action_items": list(self.action_items),
        }


RULES: Tuple[Rule, ...] = (
    Rule(
        id="quality_improvement",
        type="quality",
        title="Improve Content Quality",
        impact="high",
        effort="medium",
        priority=9,
        action_items=(
            "Review and revise content with low quality scores",
            "Use AI optimization tools for content enhancement",
            "Implement quality guidelines for new content creation",
        ),
        applies=lambda m: m.avg_quality < 6,
        describe=lambda m: (
            "Your average content quality score is below optimal. "
            "Focus on enhancing readability and coherence."
        ),
    ),
    Rule(
        id="duplicate_cleanup",
        type="duplication",
        title="Address Duplicate Content",
        impact="medium",
        effort="low",
        priority=7,
        action_items=(
            "Review and merge similar content items",
            "Implement automated duplicate detection",
            "Create content creation guidelines to prevent duplicates",
        ),
        applies=lambda m: m.duplicate_rate > 0.1,
        describe=lambda m: (
            f"{m.duplicate_rate * 100:.1f}% of your content contains duplicates. "
            "Cleaning this up can improve efficiency."
        ),
    ),
    Rule(
        id="optimization_approval",
        type="optimization",
        title="Increase Optimization Adoption",
        impact="medium",
        effort="low",
        priority=6,
        action_items=(
            "Review pending optimization suggestions",
            "Create approval workflow for optimizations",
            "Train team on optimization benefits",
        ),
        applies=lambda m: m.total_optimizations > 0 and m.approval_ratio < 0.7,
        describe=lambda m: (
            "Many optimization suggestions are not being approved. "
            "Review and apply beneficial optimizations."
        ),
    ),
    Rule(
        id="semantic_organization",
        type="organization",
        title="Improve Content Organization",
        impact="medium",
        effort="medium",
        priority=5,
        action_items=(
            "Run semantic clustering analysis",
            "Reorganize content based on semantic relationships",
            "Create topic-based folder structures",
        ),
        applies=lambda m: m.clustering_quality < 0.6,
        describe=lambda m: (
            "Your content organization could be improved through better "
            "semantic clustering."
        ),
    ),
    Rule(
        id="content_coverage",
        type="optimization",
        title="Expand Content Coverage",
        impact="low",
        effort="high",
        priority=4,
        action_items=(
            "Identify content gaps through semantic analysis",
            "Create content for underrepresented topics",
            "Develop content strategy for complete coverage",
        ),
        applies=lambda m: m.content_coverage < 0.8,
        describe=lambda m: (
            "There are gaps in your content coverage. Consider adding content "
            "in underrepresented areas."
        ),
    ),
)


def generate_recommendations(inputs: RecommendationInputs) -> List[Dict[str, Any]]:
    triggered = [rule.build(inputs) for rule in RULES if rule.applies(inputs)]
    return sorted(triggered, key=lambda r: r["priority"], reverse=True)
