from __future__ import annotations

import asyncio
import json as _json

from fastapi import APIRouter, Depends, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse
from loguru import logger
from sse_starlette.sse import EventSourceResponse

from app.agents.orchestrator import ArtQueryOrchestrator
from app.api.deps import get_orchestrator, get_tracker
from app.errors import QueryValidationError
from app.models.schemas import ErrorResponse, QueryResultResponse
from app.services import logger as log_service
from app.services import streaming
from app.services.stats_tracker import QueryStatsTracker

router = APIRouter(tags=["query"])

FAILED_TO_PROCESS = "Failed to process query"


async def _read_query(request: Request) -> str:
    """Accept the query as a form field or as a JSON body."""
    content_type = request.headers.get("content-type", "")
    if "application/json" in content_type:
        try:
            payload = await request.json()
        except ValueError:
            return ""
        if isinstance(payload, dict) and isinstance(payload.get("query"), str):
            return payload["query"]
        return ""

    form = await request.form()
    value = form.get("query")
    return value if isinstance(value, str) else ""


def _require_query(raw: str) -> str:
    query = raw.strip()
    if not query:
        raise QueryValidationError()
    return query


@router.post(
    "/api/query",
    response_model=QueryResultResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def query_artworks(
    request: Request,
    orchestrator: ArtQueryOrchestrator = Depends(get_orchestrator),
    tracker: QueryStatsTracker = Depends(get_tracker),
):
    """Run the full pipeline for one query and return the grouped survey."""
    try:
        query = _require_query(await _read_query(request))
    except QueryValidationError as e:
        return JSONResponse({"error": str(e)}, status_code=400)

    await tracker.record(query)

    try:
        result = await orchestrator.run(query)
    except Exception as e:
        log_service.log_event(
            event_type="query_error",
            message="Error processing query",
            error=repr(e),
            query=query[:100],
        )
        return JSONResponse({"error": FAILED_TO_PROCESS}, status_code=500)

    return QueryResultResponse.model_validate(result.to_dict())


@router.get("/api/query/stream")
async def stream_query(
    query: str = "",
    orchestrator: ArtQueryOrchestrator = Depends(get_orchestrator),
    tracker: QueryStatsTracker = Depends(get_tracker),
):
    """SSE variant: a `status` event, then `results` or `error`."""
    try:
        query = _require_query(query)
    except QueryValidationError as e:
        return JSONResponse({"error": str(e)}, status_code=400)

    await tracker.record(query)

    async def event_generator():
        async for event in orchestrator.events(query):
            yield {
                "event": event.event.value,
                "data": _json.dumps(event.data),
            }

    return EventSourceResponse(event_generator())


async def _stream_query_events(
    websocket: WebSocket,
    query: str,
    orchestrator: ArtQueryOrchestrator,
) -> None:
    try:
        async for event in orchestrator.events(query):
            await websocket.send_json(event.to_message())
    except WebSocketDisconnect:
        logger.debug(f"Client left before query '{query[:80]}' finished")


async def _handle_socket_message(
    websocket: WebSocket,
    raw: str,
    orchestrator: ArtQueryOrchestrator,
    tracker: QueryStatsTracker,
) -> asyncio.Task | None:
    """Answer malformed input inline; start a task for a valid query."""
    try:
        data = _json.loads(raw)
    except _json.JSONDecodeError:
        await websocket.send_json(streaming.error().to_message())
        return None

    if not isinstance(data, dict) or data.get("type") != "query":
        return None

    content = data.get("content")
    try:
        query = _require_query(content if isinstance(content, str) else "")
    except QueryValidationError as e:
        await websocket.send_json(streaming.error(str(e)).to_message())
        return None

    await tracker.record(query)
    return asyncio.create_task(
        _stream_query_events(websocket, query, orchestrator),
        name=f"ws-query:{query[:40]}",
    )


def _log_query_task_failure(task: asyncio.Task) -> None:
    if not task.cancelled() and task.exception() is not None:
        logger.opt(exception=task.exception()).error("WebSocket query task failed")


@router.websocket("/ws")
async def query_socket(
    websocket: WebSocket,
    orchestrator: ArtQueryOrchestrator = Depends(get_orchestrator),
    tracker: QueryStatsTracker = Depends(get_tracker),
):
    """Push variant: welcome on connect, then status and results per query.

    Queries run as tasks so the socket keeps receiving while they work; a
    disconnect cancels whatever is still running.
    """
    await websocket.accept()
    await websocket.send_json(streaming.welcome().to_message())
    running: set[asyncio.Task] = set()
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
            raw = message.get("text")
            if raw is None:
                raw = (message.get("bytes") or b"").decode("utf-8", errors="replace")
            task = await _handle_socket_message(websocket, raw, orchestrator, tracker)
            if task is not None:
                running.add(task)
                task.add_done_callback(running.discard)
                task.add_done_callback(_log_query_task_failure)
    except WebSocketDisconnect:
        logger.debug("Socket closed while answering a message")
    finally:
        pending = list(running)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        log_service.log_event(
            event_type="socket_closed",
            message="Client disconnected",
            cancelled_queries=len(pending),
        )
