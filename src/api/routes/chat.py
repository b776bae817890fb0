"""Chat API routes."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sse_starlette.sse import EventSourceResponse

from src.api.dependencies import get_chat_turn_service, limiter
from src.application.chat.dto import ChatTurnRequest
from src.application.chat.use_case import ChatTurnService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["chat"])


@router.post("/stream")
@limiter.limit("60/minute")
async def chat_stream(
    request: Request,
    chat_request: ChatTurnRequest,
    service: ChatTurnService = Depends(get_chat_turn_service),
) -> EventSourceResponse:
    """Stream one turn as SSE: ``chunk`` events, then ``end`` or ``error``."""

    async def event_generator():
        try:
            async for event in service.execute_stream(chat_request):
                yield {"event": event.type, "data": event.model_dump_json()}
        except Exception:
            logger.exception("Chat stream failed for chat=%s", chat_request.chat_id)
            yield {"event": "error", "data": "Stream failed"}

    return EventSourceResponse(event_generator())


@router.post("/{chat_id}/cancel")
@limiter.limit("60/minute")
async def cancel_stream(
    request: Request,
    chat_id: str,
    service: ChatTurnService = Depends(get_chat_turn_service),
) -> dict:
    """Cancel the in-flight stream of ``chat_id``."""
    if not service.cancel(chat_id):
        raise HTTPException(status_code=404, detail="No active stream for this chat")
    return {"chat_id": chat_id, "cancelled": True}
