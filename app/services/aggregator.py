from __future__ import annotations

from app.models.artwork import AnnotatedWork, ArtworkCollection, NarrativeAnalysis, QueryResult

UNKNOWN_ERA = "Unknown"


def group_by_era(works: list[AnnotatedWork]) -> dict[str, list[AnnotatedWork]]:
    """Bucket works by their literal era; buckets keep first-seen order."""
    by_era: dict[str, list[AnnotatedWork]] = {}
    for work in works:
        by_era.setdefault(work.era or UNKNOWN_ERA, []).append(work)
    return by_era


def aggregate(works: list[AnnotatedWork]) -> ArtworkCollection:
    return ArtworkCollection(all=list(works), by_era=group_by_era(works))


def build_query_result(
    query: str,
    narrative: NarrativeAnalysis,
    works: list[AnnotatedWork],
) -> QueryResult:
    return QueryResult(
        query=query,
        narrative_title=narrative.title,
        narrative_description=narrative.description,
        artworks=aggregate(works),
    )
