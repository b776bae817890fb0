"""Model Router - resolve model IDs for task types and router classifications."""

from src.domain.entities.model_selection import RouterCategory, TaskType
from src.domain.ports.config import ModelConfig, TaskModelsConfig


class ModelRouter:
    """Maps task hints to configured model IDs.

    Unconfigured task models fall back to the default model; nothing is
    hardcoded here.
    """

    def __init__(self, models: ModelConfig, task_models: TaskModelsConfig) -> None:
        self._models = models
        self._task_models = task_models

    @property
    def default_model(self) -> str:
        return self._models.default

    @property
    def router_model(self) -> str | None:
        """Secondary model for classification and corrections, if configured."""
        return self._models.router or None

    @property
    def ultrathink_model(self) -> str | None:
        return self._models.ultrathink or None

    @property
    def debugging_model(self) -> str | None:
        return self._task_models.model_for(TaskType.DEBUGGING.value)

    @property
    def task_switching_enabled(self) -> bool:
        return self._task_models.use_task_based_switching

    def model_for_task(self, task_type: TaskType) -> str | None:
        """Task-specific model when switching is enabled and one is configured."""
        if not self.task_switching_enabled or task_type is TaskType.GENERAL:
            return None
        return self._task_models.model_for(task_type.value)

    def model_for_category(self, category: RouterCategory) -> str | None:
        """Model for a router classification, or None to keep the default."""
        if category is RouterCategory.ULTRATHINK:
            return self.ultrathink_model
        if category in (RouterCategory.FRONTEND, RouterCategory.BACKEND, RouterCategory.DEBUGGING):
            return self.model_for_task(TaskType(category.value))
        return None
