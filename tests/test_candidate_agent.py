"""Tests for candidate work enumeration."""
from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.agents.candidate_agent import CandidateEnumerator
from app.errors import UpstreamGenerationError
from app.llm_client import MessageResponse, TextBlock, Usage
from app.models.artwork import CandidateWork, ParseMode


def _client(text: str | None = None, error: Exception | None = None) -> MagicMock:
    client = MagicMock()
    if error is not None:
        client.messages.create = AsyncMock(side_effect=error)
    else:
        client.messages.create = AsyncMock(
            return_value=MessageResponse(content=[TextBlock(type="text", text=text or "")], usage=Usage())
        )
    return client


@pytest.mark.asyncio
async def test_enumerate_parses_structured_reply():
    reply = json.dumps(
        [{"title": "The Last Supper", "artist": "Leonardo da Vinci", "year": "1495-1498", "era": "Renaissance"}]
    )
    client = _client(reply)
    enumerator = CandidateEnumerator(model="test/model", client=client, target_count=10)

    works = await enumerator.enumerate("Jesus shares a final meal with the apostles.")

    assert works == [CandidateWork("The Last Supper", "Leonardo da Vinci", "1495-1498", "Renaissance")]
    assert enumerator.last_outcome.mode is ParseMode.STRUCTURED

    kwargs = client.messages.create.await_args.kwargs
    assert "Generate a list of 10 significant artworks" in kwargs["system"]
    assert '"era": "Art Historical Period"' in kwargs["system"]
    assert kwargs["messages"][0]["content"].endswith("Jesus shares a final meal with the apostles.")


@pytest.mark.asyncio
async def test_enumerate_uses_configured_target_count_in_prompt():
    client = _client("[]")
    enumerator = CandidateEnumerator(model="test/model", client=client, target_count=4)

    await enumerator.enumerate("narrative")

    assert "Generate a list of 4 significant artworks" in client.messages.create.await_args.kwargs["system"]


@pytest.mark.asyncio
async def test_enumerate_falls_back_to_line_scan():
    client = _client('1. "The Tower of Babel" by Pieter Bruegel the Elder\n   Painted 1563, Renaissance.')
    enumerator = CandidateEnumerator(model="test/model", client=client)

    works = await enumerator.enumerate("The Tower of Babel")

    assert works == [
        CandidateWork("The Tower of Babel", "Pieter Bruegel the Elder", "1563", "Renaissance")
    ]
    assert enumerator.last_outcome.mode is ParseMode.HEURISTIC


@pytest.mark.asyncio
async def test_enumerate_propagates_generation_failure():
    enumerator = CandidateEnumerator(model="test/model", client=_client(error=TimeoutError("slow")))

    with pytest.raises(UpstreamGenerationError):
        await enumerator.enumerate("narrative")
