from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping

RECENT_QUERY_LIMIT = 10


@dataclass(frozen=True, slots=True)
class QueryStatsState:
    """Bounded query history and popularity counts for one agent."""

    recent_queries: tuple[str, ...] = ()
    popular_queries: Mapping[str, int] = field(default_factory=lambda: MappingProxyType({}))
    total_interactions: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "recentQueries": list(self.recent_queries),
            "popularQueries": dict(self.popular_queries),
            "totalInteractions": self.total_interactions,
        }

    @classmethod
    def from_dict(
        cls, payload: dict[str, Any], recent_limit: int = RECENT_QUERY_LIMIT
    ) -> "QueryStatsState":
        recent = payload.get("recentQueries", [])
        popular = payload.get("popularQueries", {})
        total = payload.get("totalInteractions", 0)
        if not isinstance(recent, list):
            recent = []
        if not isinstance(popular, dict):
            popular = {}
        return cls(
            recent_queries=tuple(q for q in recent if isinstance(q, str))[: max(recent_limit, 0)],
            popular_queries=MappingProxyType(
                {
                    str(q): int(count)
                    for q, count in popular.items()
                    if isinstance(count, int)
                }
            ),
            total_interactions=total if isinstance(total, int) else 0,
        )
