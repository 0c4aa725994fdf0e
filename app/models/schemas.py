from __future__ import annotations

from pydantic import BaseModel


# --- Responses ---


class ArtworkResponse(BaseModel):
    title: str
    artist: str
    year: str
    era: str
    imageUrl: str
    annotation: str


class ArtworksResponse(BaseModel):
    all: list[ArtworkResponse]
    byEra: dict[str, list[ArtworkResponse]]


class QueryResultResponse(BaseModel):
    query: str
    narrativeTitle: str
    narrativeDescription: str
    artworks: ArtworksResponse


class ErrorResponse(BaseModel):
    error: str


class PopularQuery(BaseModel):
    query: str
    count: int


class StatsResponse(BaseModel):
    recentQueries: list[str]
    popularQueries: dict[str, int]
    totalInteractions: int
    topQueries: list[PopularQuery]
