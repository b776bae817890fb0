"""Conversations API - list, load and delete saved dialogues."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from src.api.dependencies import default_rate_limit, get_conversation_memory, get_snapshot_store, limiter
from src.infrastructure.persistence.conversation_memory import ConversationMemory
from src.infrastructure.persistence.snapshot_store import FileSnapshotStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/conversations", tags=["conversations"])


@router.get("")
@limiter.limit(default_rate_limit)
async def list_conversations(
    request: Request,
    memory: ConversationMemory = Depends(get_conversation_memory),
) -> list[dict]:
    """List saved conversations with id and title (from the chat summary)."""
    try:
        return memory.list_with_titles()
    except Exception:
        logger.exception("Failed to list conversations")
        raise HTTPException(status_code=500, detail="Failed to list conversations")


@router.get("/{conversation_id}")
@limiter.limit(default_rate_limit)
async def get_conversation(
    conversation_id: str,
    request: Request,
    memory: ConversationMemory = Depends(get_conversation_memory),
) -> list[dict]:
    """Load conversation messages."""
    try:
        messages = memory.load(conversation_id)
    except Exception:
        logger.exception("Failed to load conversation %s", conversation_id)
        raise HTTPException(status_code=500, detail="Failed to load conversation")
    return [{"role": m.role, "content": m.content} for m in messages]


@router.get("/{conversation_id}/snapshot")
@limiter.limit(default_rate_limit)
async def get_snapshot(
    conversation_id: str,
    request: Request,
    snapshots: FileSnapshotStore = Depends(get_snapshot_store),
) -> dict:
    """Last persisted assistant text, for recovering a stream that died mid-turn."""
    text = snapshots.load_snapshot(conversation_id)
    if text is None:
        raise HTTPException(status_code=404, detail="No snapshot for this conversation")
    return {"conversation_id": conversation_id, "text": text}


@router.delete("/{conversation_id}")
@limiter.limit("30/minute")
async def delete_conversation(
    conversation_id: str,
    request: Request,
    memory: ConversationMemory = Depends(get_conversation_memory),
    snapshots: FileSnapshotStore = Depends(get_snapshot_store),
) -> dict:
    """Delete a conversation and its snapshot."""
    if not memory.delete(conversation_id):
        raise HTTPException(status_code=404, detail="Conversation not found")
    snapshots.clear(conversation_id)
    return {"ok": True}
