from __future__ import annotations

import asyncio
from contextlib import AbstractAsyncContextManager, AsyncExitStack
from dataclasses import dataclass
from typing import Callable

from loguru import logger

from app.agents.annotation_agent import AnnotationAgent, fallback_annotation
from app.config import settings
from app.errors import IllustrationError
from app.models.artwork import AnnotatedWork, CandidateWork
from app.tools.image_search import ImageSearchSession, build_search_query, open_image_search

SessionFactory = Callable[[], AbstractAsyncContextManager[ImageSearchSession]]


@dataclass(slots=True)
class IllustrationOutcome:
    """Either an annotated work or the error that prevented it."""

    candidate: CandidateWork
    work: AnnotatedWork | None = None
    error: IllustrationError | None = None

    @property
    def ok(self) -> bool:
        return self.work is not None

    def recover(self, placeholder_image_url: str) -> AnnotatedWork:
        if self.work is not None:
            return self.work
        return AnnotatedWork.from_candidate(
            self.candidate,
            image_url=placeholder_image_url,
            annotation=fallback_annotation(self.candidate),
        )


class Illustrator:
    """Finds an image and writes an annotation for every candidate work.

    One browser session serves the whole batch and each lookup gets its own
    page. A failure for one candidate yields a degraded entry for that
    candidate only, so the output always matches the input in length and order.
    """

    name = "illustrator"

    def __init__(
        self,
        annotator: AnnotationAgent | None = None,
        *,
        session_factory: SessionFactory | None = None,
        max_parallel: int | None = None,
        placeholder_image_url: str | None = None,
        model: str | None = None,
    ):
        self.annotator = annotator or AnnotationAgent(model=model)
        self._session_factory = session_factory or open_image_search
        self.max_parallel = max(int(max_parallel or settings.illustrator_max_parallel), 1)
        self.placeholder_image_url = placeholder_image_url or settings.placeholder_image_url

    async def illustrate(
        self,
        candidates: list[CandidateWork],
        narrative_description: str,
        original_query: str,
    ) -> list[AnnotatedWork]:
        if not candidates:
            return []

        outcomes: list[IllustrationOutcome] = []
        try:
            async with AsyncExitStack() as stack:
                session: ImageSearchSession | None = None
                try:
                    session = await stack.enter_async_context(self._session_factory())
                except Exception as e:
                    logger.error(f"Could not open image search session: {e}")

                outcomes = await self._run_batch(
                    session, candidates, narrative_description, original_query
                )
        except Exception as e:
            # Only the session's own shutdown can land here; results are already complete.
            logger.warning(f"Image search session did not close cleanly: {e}")

        failed = sum(1 for outcome in outcomes if not outcome.ok)
        logger.info(f"Illustrated {len(outcomes)} works ({failed} degraded)")
        return [outcome.recover(self.placeholder_image_url) for outcome in outcomes]

    async def _run_batch(
        self,
        session: ImageSearchSession | None,
        candidates: list[CandidateWork],
        narrative_description: str,
        original_query: str,
    ) -> list[IllustrationOutcome]:
        if self.max_parallel == 1:
            results = []
            for candidate in candidates:
                results.append(
                    await self._illustrate_one(
                        session, candidate, narrative_description, original_query
                    )
                )
            return results

        semaphore = asyncio.Semaphore(self.max_parallel)

        async def run_one(candidate: CandidateWork) -> IllustrationOutcome:
            async with semaphore:
                return await self._illustrate_one(
                    session, candidate, narrative_description, original_query
                )

        return list(await asyncio.gather(*(run_one(c) for c in candidates)))

    async def _illustrate_one(
        self,
        session: ImageSearchSession | None,
        candidate: CandidateWork,
        narrative_description: str,
        original_query: str,
    ) -> IllustrationOutcome:
        try:
            if session is None:
                raise IllustrationError("image search session unavailable")

            image_url = await session.find_image(
                build_search_query(candidate.title, candidate.artist)
            )
            annotation = await self.annotator.annotate(
                candidate, narrative_description, original_query
            )
        except Exception as e:
            logger.warning(f'Error processing artwork "{candidate.title}": {e}')
            error = e if isinstance(e, IllustrationError) else IllustrationError(str(e))
            return IllustrationOutcome(candidate=candidate, error=error)

        return IllustrationOutcome(
            candidate=candidate,
            work=AnnotatedWork.from_candidate(
                candidate,
                image_url=image_url or self.placeholder_image_url,
                annotation=annotation,
            ),
        )
