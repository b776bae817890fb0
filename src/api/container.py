"""Dependency Injection Container - centralized service management."""

from functools import cached_property
from pathlib import Path
from typing import TYPE_CHECKING

from src.application.stream import OrchestratorSettings, SessionRegistry, StreamOrchestrator
from src.application.workflow import WorkflowManager
from src.domain.ports.config import AppConfig
from src.domain.ports.llm import LLMPort
from src.domain.services.model_router import ModelRouter
from src.infrastructure.config import load_config

if TYPE_CHECKING:
    from src.application.chat.turn_planner import TurnPlanner
    from src.application.chat.use_case import ChatTurnService
    from src.infrastructure.persistence.conversation_memory import ConversationMemory
    from src.infrastructure.persistence.guardrail_log import GuardrailLog
    from src.infrastructure.persistence.snapshot_store import FileSnapshotStore
    from src.infrastructure.persistence.workflow_store import JsonWorkflowStateStore
    from src.infrastructure.workspace.change_applier import WorkspaceChangeApplier
    from src.infrastructure.workspace.virtual_file_tree import VirtualWorkspace


class Container:
    """Dependency Injection Container with lazy initialization.

    All dependencies are created on first access and cached. The session
    registry lives here, so every request of one process shares it.

    Usage:
        container = Container()
        service = container.chat_turn_service
    """

    def __init__(self, config: AppConfig | None = None, llm: LLMPort | None = None):
        """Initialize container with optional config / LLM override (tests)."""
        self._config_override = config
        self._llm_override = llm

    @cached_property
    def config(self) -> AppConfig:
        """Application configuration."""
        if self._config_override:
            return self._config_override
        return load_config()

    @cached_property
    def llm(self) -> LLMPort:
        if self._llm_override is not None:
            return self._llm_override
        from src.infrastructure.llm.ollama import OllamaAdapter

        return OllamaAdapter(self.config.ollama)

    @cached_property
    def model_router(self) -> ModelRouter:
        return ModelRouter(self.config.models, self.config.task_models)

    @cached_property
    def project_root(self) -> Path:
        return Path(self.config.workspace.project_root).resolve()

    @cached_property
    def session_registry(self) -> SessionRegistry:
        return SessionRegistry()

    @cached_property
    def conversation_memory(self) -> "ConversationMemory":
        """Conversation memory for chat history."""
        from src.infrastructure.persistence.conversation_memory import ConversationMemory

        return ConversationMemory(output_dir=self.config.persistence.output_dir)

    @cached_property
    def workflow_store(self) -> "JsonWorkflowStateStore":
        from src.infrastructure.persistence.workflow_store import JsonWorkflowStateStore

        return JsonWorkflowStateStore(self.config.persistence.output_dir)

    @cached_property
    def snapshot_store(self) -> "FileSnapshotStore":
        from src.infrastructure.persistence.snapshot_store import FileSnapshotStore

        return FileSnapshotStore(self.config.persistence.output_dir)

    @cached_property
    def guardrail_log(self) -> "GuardrailLog":
        from src.infrastructure.persistence.guardrail_log import GuardrailLog

        return GuardrailLog(self.config.persistence.output_dir)

    @cached_property
    def virtual_workspace(self) -> "VirtualWorkspace":
        from src.infrastructure.workspace.virtual_file_tree import VirtualWorkspace

        return VirtualWorkspace(self.project_root)

    @cached_property
    def change_applier(self) -> "WorkspaceChangeApplier":
        from src.infrastructure.workspace.change_applier import WorkspaceChangeApplier

        return WorkspaceChangeApplier(self.project_root)

    @cached_property
    def workflow_manager(self) -> WorkflowManager:
        return WorkflowManager(self.workflow_store)

    @cached_property
    def orchestrator(self) -> StreamOrchestrator:
        from src.application.guardrails.monitor_factory import build_monitor_factory

        guardrails = self.config.guardrails
        return StreamOrchestrator(
            llm=self.llm,
            registry=self.session_registry,
            snapshots=self.snapshot_store,
            settings=OrchestratorSettings.from_config(guardrails),
            monitor_factory=build_monitor_factory(guardrails, self.llm, self.model_router.router_model),
            virtual_fs=self.virtual_workspace,
            guardrail_log=self.guardrail_log,
            provider="ollama",
        )

    @cached_property
    def turn_planner(self) -> "TurnPlanner":
        from src.application.chat.turn_planner import TurnPlanner
        from src.infrastructure.workspace.paths import list_project_files

        return TurnPlanner(
            llm=self.llm,
            workflow=self.workflow_manager,
            router=self.model_router,
            routing=self.config.routing,
            codebase_paths=lambda: list_project_files(self.project_root),
        )

    @cached_property
    def chat_turn_service(self) -> "ChatTurnService":
        """Chat turn service with all dependencies."""
        from src.application.chat.use_case import ChatTurnService

        return ChatTurnService(
            orchestrator=self.orchestrator,
            planner=self.turn_planner,
            registry=self.session_registry,
            memory=self.conversation_memory,
            llm=self.llm,
            router_model=self.model_router.router_model,
            change_applier=self.change_applier,
            auto_approve_changes=self.config.workspace.auto_approve_changes,
            max_context_messages=self.config.persistence.max_context_messages,
            correction_timeout=self.config.guardrails.correction_timeout_seconds,
        )

    def reset(self) -> None:
        """Reset all cached instances (useful for testing)."""
        for attr in list(self.__dict__.keys()):
            if not attr.startswith("_"):
                delattr(self, attr)


# Global container instance
_container: Container | None = None


def get_container() -> Container:
    """Get or create global container instance."""
    global _container
    if _container is None:
        _container = Container()
    return _container


def set_container(container: Container) -> None:
    """Install a prebuilt container (tests)."""
    global _container
    _container = container


def reset_container() -> None:
    """Reset global container (for testing)."""
    global _container
    if _container:
        _container.reset()
    _container = None
