from __future__ import annotations

import asyncio
import time
from typing import AsyncGenerator

from loguru import logger

from app.agents.candidate_agent import CandidateEnumerator
from app.agents.illustrator import Illustrator
from app.agents.narrative_agent import NarrativeInterpreter
from app.config import settings
from app.errors import QueryValidationError
from app.llm_client import get_model
from app.models.artwork import QueryResult
from app.models.events import ChannelEvent
from app.services import logger as log_service
from app.services import streaming
from app.services.aggregator import build_query_result


class ArtQueryOrchestrator:
    """Runs the art query pipeline for one query.

    Flow:
      1. Interpret the query into a narrative description and title
      2. Enumerate candidate works depicting the narrative (parsed leniently)
      3. Find an image and write an annotation for every candidate
      4. Group the annotated works by era

    Steps 1 and 2 have no fallback and fail the query. Step 3 absorbs
    per-work failures, so a finished query always carries every candidate.
    """

    def __init__(
        self,
        model: str | None = None,
        *,
        interpreter: NarrativeInterpreter | None = None,
        enumerator: CandidateEnumerator | None = None,
        illustrator: Illustrator | None = None,
        timeout_seconds: float | None = None,
    ):
        self.model = model or get_model()
        self.interpreter = interpreter or NarrativeInterpreter(model=self.model)
        self.enumerator = enumerator or CandidateEnumerator(model=self.model)
        self.illustrator = illustrator or Illustrator(model=self.model)
        self.timeout_seconds = (
            settings.query_timeout_seconds if timeout_seconds is None else timeout_seconds
        )

    async def process_query(self, query: str) -> QueryResult:
        query = query.strip()
        if not query:
            raise QueryValidationError()

        started = time.monotonic()

        log_service.log_pipeline_stage(query, "narrative", "started")
        narrative = await self.interpreter.interpret(query)
        log_service.log_pipeline_stage(query, "narrative", "completed", {"title": narrative.title})

        log_service.log_pipeline_stage(query, "candidates", "started")
        candidates = await self.enumerator.enumerate(narrative.description)
        log_service.log_pipeline_stage(
            query, "candidates", "completed", {"count": len(candidates)}
        )

        log_service.log_pipeline_stage(query, "illustrate", "started")
        works = await self.illustrator.illustrate(candidates, narrative.description, query)
        log_service.log_pipeline_stage(query, "illustrate", "completed", {"count": len(works)})

        result = build_query_result(query, narrative, works)
        logger.info(
            f"Processed query '{query[:80]}' into {len(works)} works across "
            f"{len(result.artworks.by_era)} eras in {int((time.monotonic() - started) * 1000)}ms"
        )
        return result

    async def run(self, query: str) -> QueryResult:
        """`process_query` bounded by the configured timeout."""
        if self.timeout_seconds and self.timeout_seconds > 0:
            return await asyncio.wait_for(self.process_query(query), timeout=self.timeout_seconds)
        return await self.process_query(query)

    async def events(self, query: str) -> AsyncGenerator[ChannelEvent, None]:
        """Status notification, then the results or a single error."""
        yield streaming.processing()
        try:
            result = await self.run(query)
        except QueryValidationError as e:
            yield streaming.error(str(e))
            return
        except Exception as e:
            logger.exception(f"Query processing failed: {e}")
            yield streaming.error()
            return
        yield streaming.results(result)
