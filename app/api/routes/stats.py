from __future__ import annotations

from fastapi import APIRouter, Depends

from app.api.deps import get_tracker
from app.config import settings
from app.models.schemas import PopularQuery, StatsResponse
from app.services.report_scheduler import top_queries
from app.services.stats_tracker import QueryStatsTracker

router = APIRouter(prefix="/api/stats", tags=["stats"])


@router.get("", response_model=StatsResponse)
async def get_stats(tracker: QueryStatsTracker = Depends(get_tracker)):
    """Current query history plus the top queries report."""
    state = await tracker.load()
    return StatsResponse(
        **state.to_dict(),
        topQueries=[
            PopularQuery(query=query, count=count)
            for query, count in top_queries(state, settings.analytics_report_top_n)
        ],
    )
