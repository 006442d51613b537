"""
Rule-table driven recommendations.

Rules are evaluated in table order and every matching rule appends one
Recommendation. The output is never re-sorted by priority.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Mapping, Sequence

from .models import Priority, Recommendation

Facts = Mapping[str, Any]


@dataclass(frozen=True)
class RecommendationRule:
    applies: Callable[[Facts], bool]
    title: str
    description: str
    priority: Priority
    category: str

    def build(self, facts: Facts) -> Recommendation:
        return Recommendation(
            title=self.title.format(**facts),
            description=self.description.format(**facts),
            priority=self.priority,
            category=self.category,
        )


def generate(rules: Sequence[RecommendationRule], facts: Facts) -> list[Recommendation]:
    return [rule.build(facts) for rule in rules if rule.applies(facts)]
