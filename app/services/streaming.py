from __future__ import annotations

from typing import Any

from app.models.artwork import QueryResult
from app.models.events import ChannelEvent, EventType
from app.services.prompt_store import render_prompt


def welcome() -> ChannelEvent:
    return ChannelEvent(
        event=EventType.WELCOME,
        data={"message": render_prompt("channel.welcome")},
    )


def processing(message: str | None = None) -> ChannelEvent:
    return ChannelEvent(
        event=EventType.STATUS,
        data={
            "status": "processing",
            "message": message or render_prompt("channel.processing"),
        },
    )


def results(result: QueryResult) -> ChannelEvent:
    return ChannelEvent(event=EventType.RESULTS, data={"results": result.to_dict()})


def error(message: str | None = None, **kwargs: Any) -> ChannelEvent:
    data: dict[str, Any] = {"message": message or render_prompt("channel.failure")}
    data.update(kwargs)
    return ChannelEvent(event=EventType.ERROR, data=data)
