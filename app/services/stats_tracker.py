from __future__ import annotations

import asyncio
import json
from pathlib import Path
from types import MappingProxyType

from loguru import logger

from app.config import settings
from app.models.stats import RECENT_QUERY_LIMIT, QueryStatsState


def record_query(
    state: QueryStatsState,
    query: str,
    *,
    recent_limit: int = RECENT_QUERY_LIMIT,
) -> QueryStatsState:
    """Return the state after one more query; the input state is untouched."""
    popular = dict(state.popular_queries)
    popular[query] = popular.get(query, 0) + 1
    return QueryStatsState(
        recent_queries=(query, *state.recent_queries)[: max(recent_limit, 0)],
        popular_queries=MappingProxyType(popular),
        total_interactions=state.total_interactions + 1,
    )


class QueryStatsTracker:
    """Single writer for query stats, optionally mirrored to a JSON file."""

    def __init__(
        self,
        persist_path: str | Path | None = None,
        *,
        recent_limit: int | None = None,
    ):
        self.persist_path = Path(persist_path) if persist_path else None
        self.recent_limit = recent_limit or settings.stats_recent_limit or RECENT_QUERY_LIMIT
        self._state: QueryStatsState | None = None
        self._lock = asyncio.Lock()

    def _load(self) -> QueryStatsState:
        if self.persist_path is None or not self.persist_path.exists():
            return QueryStatsState()
        try:
            payload = json.loads(self.persist_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable stats file {self.persist_path}: {e}")
            return QueryStatsState()
        if not isinstance(payload, dict):
            return QueryStatsState()
        return QueryStatsState.from_dict(payload, self.recent_limit)

    def _save(self, state: QueryStatsState) -> None:
        if self.persist_path is None:
            return
        self.persist_path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.persist_path.with_suffix(".tmp")
        tmp_path.write_text(json.dumps(state.to_dict(), ensure_ascii=False), encoding="utf-8")
        tmp_path.replace(self.persist_path)

    async def load(self) -> QueryStatsState:
        """Read the persisted state off the event loop, once."""
        async with self._lock:
            return await self._ensure_loaded()

    async def _ensure_loaded(self) -> QueryStatsState:
        if self._state is None:
            self._state = await asyncio.to_thread(self._load)
        return self._state

    def snapshot(self) -> QueryStatsState:
        """Current state; falls back to a blocking read if `load` has not run."""
        if self._state is None:
            self._state = self._load()
        return self._state

    async def record(self, query: str) -> QueryStatsState:
        async with self._lock:
            current = await self._ensure_loaded()
            state = record_query(current, query, recent_limit=self.recent_limit)
            self._state = state
            try:
                await asyncio.to_thread(self._save, state)
            except OSError as e:
                logger.error(f"Failed to persist query stats: {e}")
            return state


_tracker: QueryStatsTracker | None = None


def get_stats_tracker() -> QueryStatsTracker:
    global _tracker
    if _tracker is None:
        _tracker = QueryStatsTracker(settings.stats_persist_path or None)
    return _tracker
