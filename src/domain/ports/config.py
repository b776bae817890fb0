"""Config Port - interface for configuration access."""

from typing import Protocol

from pydantic import BaseModel, ConfigDict, Field


class ModelConfig(BaseModel):
    """Model IDs. Empty string = not configured."""

    default: str = "qwen2.5-coder:7b"
    # Secondary model: prompt classification, streaming corrections, corrective agent.
    router: str = ""
    ultrathink: str = ""

    model_config = ConfigDict(extra="ignore")


class TaskModelsConfig(BaseModel):
    """Per-task-type model overrides (frontend/backend/debugging)."""

    use_task_based_switching: bool = False
    frontend: str = ""
    backend: str = ""
    debugging: str = ""

    def model_for(self, task_type: str) -> str | None:
        """Configured model for a task type, or None."""
        value = getattr(self, task_type, "") if task_type in ("frontend", "backend", "debugging") else ""
        return value or None


class RoutingConfig(BaseModel):
    """Turn routing policy."""

    enable_ai_router: bool = False
    # Debugging classification beats the active workflow step (when a debugging model exists).
    debugging_overrides_workflow: bool = True
    router_timeout_seconds: float = 20.0


class GuardrailsConfig(BaseModel):
    """Stream monitoring and recovery loops."""

    enable_fast_correction: bool = True
    enable_realtime_monitoring: bool = False
    max_correction_attempts: int = Field(default=2, ge=0)
    max_continuation_attempts: int = Field(default=2, ge=0)
    enable_auto_fix_problems: bool = False
    max_autofix_attempts: int = Field(default=2, ge=0)
    correction_timeout_seconds: float = 15.0
    snapshot_interval_ms: int = 150
    split_dependency_commas: bool = False


class OllamaConfig(BaseModel):
    """Ollama connection configuration."""

    host: str = "http://localhost:11434"
    timeout: int = 120
    # Optional: maximize context/throughput. None = use model defaults.
    num_ctx: int | None = None
    num_predict: int | None = None


class WorkspaceConfig(BaseModel):
    """Project tree the directives apply to."""

    project_root: str = "."
    auto_approve_changes: bool = False


class SecurityConfig(BaseModel):
    """Security settings."""

    rate_limit_requests_per_minute: int = 100
    cors_origins: list[str] = ["http://localhost:5173"]


class PersistenceConfig(BaseModel):
    """Persistence settings."""

    output_dir: str = "output"
    max_context_messages: int = 20


class ServerConfig(BaseModel):
    """Server configuration."""

    host: str = "0.0.0.0"
    port: int = 8000


class AppConfig(BaseModel):
    """Full application configuration."""

    server: ServerConfig = ServerConfig()
    ollama: OllamaConfig = OllamaConfig()
    models: ModelConfig = ModelConfig()
    task_models: TaskModelsConfig = TaskModelsConfig()
    routing: RoutingConfig = RoutingConfig()
    guardrails: GuardrailsConfig = GuardrailsConfig()
    workspace: WorkspaceConfig = WorkspaceConfig()
    security: SecurityConfig = SecurityConfig()
    persistence: PersistenceConfig = PersistenceConfig()
    log_level: str = "INFO"
    # Log file: path relative to cwd or absolute. Empty = only stdout. Rotation when file exceeds max_mb.
    log_file: str = ""
    log_rotation_max_mb: int = 5
    log_rotation_backups: int = 3


class ConfigPort(Protocol):
    """Interface for configuration providers."""

    def get_config(self) -> AppConfig:
        """Get the full application configuration."""
        ...
