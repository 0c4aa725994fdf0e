"""Turn free-text model output into candidate works.

Structured JSON is tried first. Anything that does not decode falls back to a
line scanner, and a scan that finds nothing yields a fixed placeholder set so
downstream stages always have material to work with.
"""
from __future__ import annotations

import json
import re
from enum import Enum
from typing import Any

from loguru import logger

from app.models.artwork import CandidateWork, ParseMode, ParseOutcome

START_NUMBERED = re.compile(r"^\d+\.\s+[\"'](.+)[\"']", re.IGNORECASE)
START_BY = re.compile(r"[\"'](.+)[\"']\s+by", re.IGNORECASE)
QUOTED_TITLE = re.compile(r"[\"']([^\"']+)[\"']")
ARTIST = re.compile(r"by\s+([^,(]+)", re.IGNORECASE)
YEAR = re.compile(r"(\d{4}(?:\s*-\s*\d{4})?)")

ERA_VOCABULARY = (
    "Renaissance",
    "Baroque",
    "Neoclassical",
    "Romantic",
    "Byzantine",
    "Medieval",
    "Gothic",
    "Early Christian",
    "Modern",
    "Contemporary",
)

PLACEHOLDER_WORKS: tuple[CandidateWork, ...] = (
    CandidateWork("The Last Supper", "Leonardo da Vinci", "1495-1498", "Renaissance"),
    CandidateWork("The Creation of Adam", "Michelangelo", "1512", "Renaissance"),
    CandidateWork("The Return of the Prodigal Son", "Rembrandt", "1669", "Baroque"),
    CandidateWork("Christ in the Storm on the Sea of Galilee", "Rembrandt", "1633", "Baroque"),
    CandidateWork("The Crucifixion", "Francisco de Goya", "1780", "Romantic"),
)


class StructuredDecodeError(ValueError):
    pass


def _strip_code_fence(text: str) -> str:
    text = text.strip()
    if text.startswith("```"):
        parts = text.split("```")
        if len(parts) >= 2:
            text = parts[1]
        if text.startswith("json"):
            text = text[4:]
        text = text.strip()
    return text


def _decode_first_value(text: str, opener: str) -> Any:
    """First JSON value starting at an `opener`; trailing prose is ignored."""
    decoder = json.JSONDecoder()
    start = text.find(opener)
    last_error: json.JSONDecodeError | None = None
    while start >= 0:
        try:
            value, _ = decoder.raw_decode(text, start)
            return value
        except json.JSONDecodeError as exc:
            last_error = exc
        start = text.find(opener, start + 1)
    if last_error is None:
        raise StructuredDecodeError("array not found")
    raise StructuredDecodeError(str(last_error)) from last_error


def decode_structured(raw_text: str) -> list[CandidateWork]:
    """Decode a JSON array (or an object holding `artworks`) of work records."""
    text = _strip_code_fence(raw_text)
    parsed: Any = _decode_first_value(text, "{" if text.startswith("{") else "[")

    if isinstance(parsed, dict):
        parsed = parsed.get("artworks")
    if not isinstance(parsed, list) or not parsed:
        raise StructuredDecodeError("expected a non-empty list")
    if not all(isinstance(item, dict) for item in parsed):
        raise StructuredDecodeError("list items must be objects")
    return [CandidateWork.from_mapping(item) for item in parsed]


class ScanState(Enum):
    NO_OPEN_RECORD = "no_open_record"
    OPEN_RECORD = "open_record"


class HeuristicScanner:
    """Line scanner that recognises numbered or `"Title" by Artist` entries."""

    def __init__(self) -> None:
        self.state = ScanState.NO_OPEN_RECORD
        self._current: dict[str, str] = {}
        self.records: list[CandidateWork] = []

    @staticmethod
    def is_start_line(line: str) -> bool:
        return bool(START_NUMBERED.search(line) or START_BY.search(line))

    def feed(self, line: str) -> None:
        if self.is_start_line(line):
            self._flush()
            self._open(line)
        elif self.state is ScanState.OPEN_RECORD:
            self._fill_details(line)

    def finish(self) -> list[CandidateWork]:
        self._flush()
        return self.records

    def _open(self, line: str) -> None:
        self._current = {"title": "", "artist": "", "year": "", "era": ""}
        title_match = QUOTED_TITLE.search(line)
        if title_match:
            self._current["title"] = title_match.group(1)
        artist_match = ARTIST.search(line)
        if artist_match:
            self._current["artist"] = artist_match.group(1).strip()
        self.state = ScanState.OPEN_RECORD

    def _fill_details(self, line: str) -> None:
        if not self._current["year"]:
            year_match = YEAR.search(line)
            if year_match:
                self._current["year"] = year_match.group(1)
        if not self._current["era"]:
            for era in ERA_VOCABULARY:
                if era in line:
                    self._current["era"] = era
                    break

    def _flush(self) -> None:
        if self.state is ScanState.OPEN_RECORD and self._current.get("title"):
            self.records.append(CandidateWork.from_mapping(self._current))
        self._current = {}
        self.state = ScanState.NO_OPEN_RECORD


def _scan(text: str) -> list[CandidateWork]:
    scanner = HeuristicScanner()
    for line in text.split("\n"):
        scanner.feed(line)
    return scanner.finish()


def extract_candidates_heuristically(text: str) -> list[CandidateWork]:
    """Scan free text for works; never returns an empty list."""
    return _scan(text) or list(PLACEHOLDER_WORKS)


def parse(raw_text: str) -> ParseOutcome:
    try:
        return ParseOutcome(mode=ParseMode.STRUCTURED, works=decode_structured(raw_text))
    except StructuredDecodeError as exc:
        logger.warning(f"Structured parse of candidate list failed ({exc}); using line scan")

    records = _scan(raw_text)
    if records:
        return ParseOutcome(mode=ParseMode.HEURISTIC, works=records)

    logger.warning("Line scan found no candidate works; using placeholder set")
    return ParseOutcome(mode=ParseMode.PLACEHOLDER, works=list(PLACEHOLDER_WORKS))


def parse_candidates(raw_text: str) -> list[CandidateWork]:
    return parse(raw_text).works
