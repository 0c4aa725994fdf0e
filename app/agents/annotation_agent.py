from __future__ import annotations

from app.agents.base import BaseAgent
from app.config import settings
from app.models.artwork import CandidateWork
from app.services.prompt_store import render_prompt


def fallback_annotation(candidate: CandidateWork) -> str:
    """Annotation built only from the candidate's own fields."""
    return render_prompt(
        "annotation_agent.fallback_annotation",
        title=candidate.title,
        artist=candidate.artist,
        year=candidate.year,
        era=candidate.era,
    )


class AnnotationAgent(BaseAgent):
    """Writes a short educational annotation for one candidate work."""

    name = "annotation"
    system_prompt = render_prompt("annotation_agent.system_prompt")

    def __init__(self, model=None, client=None):
        super().__init__(model, client=client)
        self.max_tokens = settings.annotation_max_tokens

    async def annotate(
        self,
        candidate: CandidateWork,
        narrative_description: str,
        original_query: str,
    ) -> str:
        prompt = render_prompt(
            "annotation_agent.user_prompt",
            title=candidate.title,
            artist=candidate.artist,
            year=candidate.year,
            era=candidate.era,
            narrative_description=narrative_description,
            original_query=original_query,
        )
        return await self.generate(prompt)
