from __future__ import annotations

from app.agents.orchestrator import ArtQueryOrchestrator
from app.services.stats_tracker import QueryStatsTracker, get_stats_tracker


def get_orchestrator() -> ArtQueryOrchestrator:
    """A fresh pipeline per request; nothing is shared between queries."""
    return ArtQueryOrchestrator()


def get_tracker() -> QueryStatsTracker:
    return get_stats_tracker()
