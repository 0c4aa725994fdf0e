from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


@dataclass(frozen=True, slots=True)
class NarrativeAnalysis:
    description: str
    title: str


@dataclass(frozen=True, slots=True)
class CandidateWork:
    """A model-proposed, unverified depiction of the narrative."""

    title: str = ""
    artist: str = ""
    year: str = ""
    era: str = ""

    @classmethod
    def from_mapping(cls, raw: dict[str, Any]) -> "CandidateWork":
        def text(key: str) -> str:
            value = raw.get(key)
            if value is None:
                return ""
            return value if isinstance(value, str) else str(value)

        return cls(
            title=text("title"),
            artist=text("artist"),
            year=text("year"),
            era=text("era"),
        )

    def to_dict(self) -> dict[str, str]:
        return {
            "title": self.title,
            "artist": self.artist,
            "year": self.year,
            "era": self.era,
        }


@dataclass(frozen=True, slots=True)
class AnnotatedWork:
    title: str
    artist: str
    year: str
    era: str
    image_url: str
    annotation: str

    @classmethod
    def from_candidate(
        cls, candidate: CandidateWork, *, image_url: str, annotation: str
    ) -> "AnnotatedWork":
        return cls(
            title=candidate.title,
            artist=candidate.artist,
            year=candidate.year,
            era=candidate.era,
            image_url=image_url,
            annotation=annotation,
        )

    def to_dict(self) -> dict[str, str]:
        return {
            "title": self.title,
            "artist": self.artist,
            "year": self.year,
            "era": self.era,
            "imageUrl": self.image_url,
            "annotation": self.annotation,
        }


@dataclass(slots=True)
class ArtworkCollection:
    all: list[AnnotatedWork] = field(default_factory=list)
    by_era: dict[str, list[AnnotatedWork]] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "all": [work.to_dict() for work in self.all],
            "byEra": {
                era: [work.to_dict() for work in works]
                for era, works in self.by_era.items()
            },
        }


@dataclass(slots=True)
class QueryResult:
    query: str
    narrative_title: str
    narrative_description: str
    artworks: ArtworkCollection

    def to_dict(self) -> dict[str, Any]:
        return {
            "query": self.query,
            "narrativeTitle": self.narrative_title,
            "narrativeDescription": self.narrative_description,
            "artworks": self.artworks.to_dict(),
        }


class ParseMode(StrEnum):
    STRUCTURED = "structured"
    HEURISTIC = "heuristic"
    PLACEHOLDER = "placeholder"


@dataclass(slots=True)
class ParseOutcome:
    mode: ParseMode
    works: list[CandidateWork]

    @property
    def degraded(self) -> bool:
        return self.mode is not ParseMode.STRUCTURED
