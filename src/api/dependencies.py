"""FastAPI dependencies - resolved from the DI container."""

from typing import TYPE_CHECKING

from slowapi import Limiter
from slowapi.util import get_remote_address

from src.api.container import get_container
from src.application.workflow import WorkflowManager
from src.domain.ports.config import AppConfig

if TYPE_CHECKING:
    from src.application.chat.use_case import ChatTurnService
    from src.infrastructure.persistence.conversation_memory import ConversationMemory
    from src.infrastructure.persistence.guardrail_log import GuardrailLog
    from src.infrastructure.persistence.snapshot_store import FileSnapshotStore

limiter = Limiter(key_func=get_remote_address)


def default_rate_limit() -> str:
    """Per-client limit from ``security.rate_limit_requests_per_minute``."""
    return f"{get_container().config.security.rate_limit_requests_per_minute}/minute"


def get_config() -> AppConfig:
    """Config held by the container (loaded once)."""
    return get_container().config


def get_chat_turn_service() -> "ChatTurnService":
    return get_container().chat_turn_service


def get_workflow_manager() -> WorkflowManager:
    return get_container().workflow_manager


def get_guardrail_log() -> "GuardrailLog":
    return get_container().guardrail_log


def get_conversation_memory() -> "ConversationMemory":
    return get_container().conversation_memory


def get_snapshot_store() -> "FileSnapshotStore":
    return get_container().snapshot_store
