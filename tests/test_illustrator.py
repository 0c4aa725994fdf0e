"""Tests for per-work image lookup and annotation."""
from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager

import pytest

from app.agents.annotation_agent import fallback_annotation
from app.agents.illustrator import IllustrationOutcome, Illustrator
from app.errors import IllustrationError
from app.models.artwork import CandidateWork

PLACEHOLDER = "https://placehold.co/600x400?text=Image+Not+Found"

CANDIDATES = [
    CandidateWork("The Last Supper", "Leonardo da Vinci", "1495-1498", "Renaissance"),
    CandidateWork("Supper at Emmaus", "Caravaggio", "1601", "Baroque"),
    CandidateWork("The Sacrament of the Last Supper", "Salvador Dali", "1955", "Modern"),
]


class FakeSession:
    def __init__(self, fail_titles=(), missing_titles=()):
        self.fail_titles = set(fail_titles)
        self.missing_titles = set(missing_titles)
        self.queries: list[str] = []

    async def find_image(self, search_query: str) -> str | None:
        self.queries.append(search_query)
        for title in self.fail_titles:
            if search_query.startswith(title + " "):
                raise TimeoutError(f"image search stalled for {title}")
        for title in self.missing_titles:
            if search_query.startswith(title + " "):
                return None
        return f"https://images.example/{len(self.queries)}.jpg"


class SessionFactory:
    """Counts how often the shared session is opened and released."""

    def __init__(self, session=None, fail_on_open: bool = False):
        self.session = session or FakeSession()
        self.fail_on_open = fail_on_open
        self.opened = 0
        self.released = 0

    @asynccontextmanager
    async def __call__(self):
        if self.fail_on_open:
            raise RuntimeError("browser launch failed")
        self.opened += 1
        try:
            yield self.session
        finally:
            self.released += 1


class FakeAnnotator:
    def __init__(self, fail_titles=(), delay: float = 0.0):
        self.fail_titles = set(fail_titles)
        self.delay = delay
        self.calls: list[tuple[str, str, str]] = []

    async def annotate(self, candidate, narrative_description, original_query):
        self.calls.append((candidate.title, narrative_description, original_query))
        if self.delay:
            await asyncio.sleep(self.delay)
        if candidate.title in self.fail_titles:
            raise RuntimeError("generation failed")
        return f"Annotation for {candidate.title}"


def _illustrator(factory, annotator=None, max_parallel=1) -> Illustrator:
    return Illustrator(
        annotator or FakeAnnotator(),
        session_factory=factory,
        max_parallel=max_parallel,
        placeholder_image_url=PLACEHOLDER,
    )


@pytest.mark.asyncio
async def test_all_candidates_illustrated_in_order():
    factory = SessionFactory()
    annotator = FakeAnnotator()

    works = await _illustrator(factory, annotator).illustrate(CANDIDATES, "narrative", "The Last Supper")

    assert [w.title for w in works] == [c.title for c in CANDIDATES]
    assert [w.image_url for w in works] == [
        "https://images.example/1.jpg",
        "https://images.example/2.jpg",
        "https://images.example/3.jpg",
    ]
    assert works[1].annotation == "Annotation for Supper at Emmaus"
    assert annotator.calls[0] == ("The Last Supper", "narrative", "The Last Supper")
    assert factory.opened == 1
    assert factory.released == 1


@pytest.mark.asyncio
async def test_search_query_includes_title_artist_and_keywords():
    session = FakeSession()
    factory = SessionFactory(session)

    await _illustrator(factory).illustrate(CANDIDATES[:1], "narrative", "q")

    assert session.queries == ["The Last Supper Leonardo da Vinci painting biblical art"]


@pytest.mark.asyncio
async def test_image_failure_degrades_only_that_work():
    factory = SessionFactory(FakeSession(fail_titles={"Supper at Emmaus"}))

    works = await _illustrator(factory).illustrate(CANDIDATES, "narrative", "q")

    assert len(works) == 3
    assert works[0].annotation == "Annotation for The Last Supper"
    assert works[1].image_url == PLACEHOLDER
    assert works[1].annotation == (
        "We couldn't retrieve information for this artwork. The piece \"Supper at Emmaus\" "
        "by Caravaggio (1601) is a notable depiction of this biblical narrative from the Baroque period."
    )
    assert works[2].annotation == "Annotation for The Sacrament of the Last Supper"
    assert factory.released == 1


@pytest.mark.asyncio
async def test_annotation_failure_degrades_only_that_work():
    annotator = FakeAnnotator(fail_titles={"The Last Supper"})

    works = await _illustrator(SessionFactory(), annotator).illustrate(CANDIDATES, "narrative", "q")

    assert works[0].image_url == PLACEHOLDER
    assert works[0].annotation == fallback_annotation(CANDIDATES[0])
    assert works[1].image_url.startswith("https://images.example/")


@pytest.mark.asyncio
async def test_missing_image_uses_placeholder_but_keeps_annotation():
    factory = SessionFactory(FakeSession(missing_titles={"Supper at Emmaus"}))

    works = await _illustrator(factory).illustrate(CANDIDATES, "narrative", "q")

    assert works[1].image_url == PLACEHOLDER
    assert works[1].annotation == "Annotation for Supper at Emmaus"


@pytest.mark.asyncio
async def test_every_candidate_failing_still_returns_full_batch():
    annotator = FakeAnnotator(fail_titles={c.title for c in CANDIDATES})

    works = await _illustrator(SessionFactory(), annotator).illustrate(CANDIDATES, "narrative", "q")

    assert len(works) == len(CANDIDATES)
    assert all(w.image_url == PLACEHOLDER for w in works)


@pytest.mark.asyncio
async def test_session_launch_failure_degrades_every_work():
    factory = SessionFactory(fail_on_open=True)
    annotator = FakeAnnotator()

    works = await _illustrator(factory, annotator).illustrate(CANDIDATES, "narrative", "q")

    assert len(works) == 3
    assert all(w.annotation == fallback_annotation(c) for w, c in zip(works, CANDIDATES))
    assert annotator.calls == []


@pytest.mark.asyncio
async def test_empty_batch_opens_no_session():
    factory = SessionFactory()

    assert await _illustrator(factory).illustrate([], "narrative", "q") == []
    assert factory.opened == 0


@pytest.mark.asyncio
async def test_parallel_mode_preserves_input_order():
    titles = [f"Work {i}" for i in range(6)]
    candidates = [CandidateWork(t, "Anon", "1500", "Renaissance") for t in titles]
    annotator = FakeAnnotator(fail_titles={"Work 2"}, delay=0.01)
    factory = SessionFactory()

    works = await _illustrator(factory, annotator, max_parallel=3).illustrate(candidates, "n", "q")

    assert [w.title for w in works] == titles
    assert works[2].image_url == PLACEHOLDER
    assert factory.released == 1


@pytest.mark.asyncio
async def test_cancellation_mid_batch_releases_session_once():
    candidates = [CandidateWork(f"Work {i}", "Anon", "1500", "Renaissance") for i in range(10)]
    third_done = asyncio.Event()
    blocker = asyncio.Event()

    class BlockingAnnotator(FakeAnnotator):
        async def annotate(self, candidate, narrative_description, original_query):
            self.calls.append((candidate.title, narrative_description, original_query))
            if len(self.calls) == 3:
                third_done.set()
            if len(self.calls) > 3:
                await blocker.wait()
            return "ok"

    factory = SessionFactory()
    annotator = BlockingAnnotator()
    task = asyncio.create_task(
        _illustrator(factory, annotator).illustrate(candidates, "n", "q")
    )

    await third_done.wait()
    await asyncio.sleep(0)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert factory.opened == 1
    assert factory.released == 1
    assert len(annotator.calls) == 4


def test_outcome_recover_prefers_successful_work():
    candidate = CANDIDATES[0]
    failed = IllustrationOutcome(candidate=candidate, error=IllustrationError("boom"))

    recovered = failed.recover(PLACEHOLDER)

    assert not failed.ok
    assert recovered.title == candidate.title
    assert recovered.image_url == PLACEHOLDER
    assert "The Last Supper" in recovered.annotation
