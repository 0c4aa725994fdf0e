from __future__ import annotations

import time
from typing import Any

from app.errors import UpstreamGenerationError
from app.llm_client import MessageResponse, client as llm_client, get_model
from app.services import logger as log_service


class BaseAgent:
    """Base agent that wraps a single OpenRouter text-generation call.

    Subclasses set `name`, `system_prompt` and `max_tokens`. `generate` always
    returns plain text; transport failures and empty completions are raised as
    `UpstreamGenerationError` so callers never branch on response shape.
    """

    name: str = "base"
    system_prompt: str = ""
    max_tokens: int = 1024

    def __init__(self, model: str | None = None, client: Any | None = None):
        self.model = model or get_model()
        self.client = client

    async def generate(self, user_message: str, *, system: str | None = None) -> str:
        active_client = self.client or llm_client()
        messages: list[dict[str, Any]] = [{"role": "user", "content": user_message}]

        t0 = time.monotonic()
        try:
            response = await active_client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                system=system if system is not None else self.system_prompt,
                messages=messages,
            )
        except Exception as e:
            log_service.log_llm_call(
                model=self.model,
                caller=self.name,
                duration_ms=int((time.monotonic() - t0) * 1000),
                status="error",
                error=str(e),
            )
            raise UpstreamGenerationError(self.name, f"generation call failed: {e}") from e
        elapsed_ms = int((time.monotonic() - t0) * 1000)

        usage = getattr(response, "usage", None)
        log_service.log_llm_call(
            model=self.model,
            caller=self.name,
            input_tokens=getattr(usage, "input_tokens", 0) or 0,
            output_tokens=getattr(usage, "output_tokens", 0) or 0,
            duration_ms=elapsed_ms,
        )

        text = self._extract_response_text(response)
        if not text:
            raise UpstreamGenerationError(self.name, "empty completion")
        return text

    @staticmethod
    def _extract_response_text(response: Any) -> str:
        if isinstance(response, MessageResponse):
            return response.text
        if isinstance(response, str):
            return response.strip()
        blocks = getattr(response, "content", None) or []
        text_parts: list[str] = []
        for block in blocks:
            btype = getattr(block, "type", None)
            btext = getattr(block, "text", None)
            is_text_like_type = btype in (None, "text") or not isinstance(btype, str)
            if is_text_like_type and isinstance(btext, str) and btext.strip():
                text_parts.append(btext)
        return "\n".join(text_parts).strip()
