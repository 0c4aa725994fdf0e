from __future__ import annotations

import re

from app.agents.base import BaseAgent
from app.config import settings
from app.models.artwork import NarrativeAnalysis
from app.services.prompt_store import render_prompt

TITLE_MAX_CHARS = 60
TITLE_MAX_WORDS = 10
SENTENCE_BOUNDARY = re.compile(r"\.(?:\s+|$)")


def extract_narrative_title(description: str) -> str:
    """Short title: the first sentence, or the first ten words plus an ellipsis."""
    text = description.strip()
    first_sentence = SENTENCE_BOUNDARY.split(text, maxsplit=1)[0].strip()
    if len(first_sentence) <= TITLE_MAX_CHARS:
        return first_sentence

    words = text.split()
    return " ".join(words[:TITLE_MAX_WORDS]) + "..."


class NarrativeInterpreter(BaseAgent):
    """Identifies the narrative, figures and theology behind a user query."""

    name = "narrative"
    system_prompt = render_prompt("narrative_agent.system_prompt")

    def __init__(self, model=None, client=None):
        super().__init__(model, client=client)
        self.max_tokens = settings.narrative_max_tokens

    async def interpret(self, query: str) -> NarrativeAnalysis:
        description = await self.generate(query)
        return NarrativeAnalysis(
            description=description,
            title=extract_narrative_title(description),
        )
