"""Workflow API routes - per-conversation step control."""

import logging

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from src.api.dependencies import get_workflow_manager, limiter
from src.application.workflow import WorkflowManager
from src.domain.entities.workflow_state import WorkflowState, WorkflowStep

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/workflow", tags=["workflow"])


class ForceStepRequest(BaseModel):
    step: WorkflowStep


@router.get("/{chat_id}", response_model=WorkflowState)
@limiter.limit("100/minute")
async def get_state(
    request: Request,
    chat_id: str,
    manager: WorkflowManager = Depends(get_workflow_manager),
) -> WorkflowState:
    return manager.get_state(chat_id)


@router.post("/{chat_id}/start", response_model=WorkflowState)
@limiter.limit("30/minute")
async def start(
    request: Request,
    chat_id: str,
    manager: WorkflowManager = Depends(get_workflow_manager),
) -> WorkflowState:
    manager.start(chat_id)
    return manager.get_state(chat_id)


@router.post("/{chat_id}/advance", response_model=WorkflowState)
@limiter.limit("30/minute")
async def advance(
    request: Request,
    chat_id: str,
    manager: WorkflowManager = Depends(get_workflow_manager),
) -> WorkflowState:
    """Next step; the state becomes idle after the last step or stays idle if not started."""
    manager.advance(chat_id)
    return manager.get_state(chat_id)


@router.post("/{chat_id}/stop", response_model=WorkflowState)
@limiter.limit("30/minute")
async def stop(
    request: Request,
    chat_id: str,
    manager: WorkflowManager = Depends(get_workflow_manager),
) -> WorkflowState:
    manager.stop(chat_id)
    return manager.get_state(chat_id)


@router.post("/{chat_id}/force", response_model=WorkflowState)
@limiter.limit("30/minute")
async def force(
    request: Request,
    chat_id: str,
    body: ForceStepRequest,
    manager: WorkflowManager = Depends(get_workflow_manager),
) -> WorkflowState:
    manager.force(chat_id, body.step)
    return manager.get_state(chat_id)
