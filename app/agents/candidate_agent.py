from __future__ import annotations

from loguru import logger

from app.agents.base import BaseAgent
from app.config import settings
from app.models.artwork import CandidateWork, ParseOutcome
from app.services import result_parser
from app.services.prompt_store import render_prompt


class CandidateEnumerator(BaseAgent):
    """Asks the model for a period-diverse list of works depicting a narrative."""

    name = "candidates"

    def __init__(self, model=None, client=None, target_count: int | None = None):
        super().__init__(model, client=client)
        self.max_tokens = settings.candidates_max_tokens
        self.target_count = max(int(target_count or settings.candidate_target_count), 1)
        self.last_outcome: ParseOutcome | None = None

    @property
    def system_prompt(self) -> str:
        return render_prompt("candidate_agent.system_prompt", target_count=self.target_count)

    async def enumerate(self, narrative_description: str) -> list[CandidateWork]:
        raw_text = await self.generate(
            render_prompt(
                "candidate_agent.user_prompt",
                narrative_description=narrative_description,
            )
        )
        outcome = result_parser.parse(raw_text)
        self.last_outcome = outcome
        logger.info(
            f"Enumerated {len(outcome.works)} candidate works (parse mode: {outcome.mode.value})"
        )
        return outcome.works
