"""Tests for ModelRouter."""

from src.domain.entities.model_selection import RouterCategory, TaskType
from src.domain.ports.config import ModelConfig, TaskModelsConfig
from src.domain.services.model_router import ModelRouter

MODELS = ModelConfig(default="coder", router="router", ultrathink="thinker")


class TestModelRouter:
    """Tests for model resolution."""

    def test_defaults(self):
        """Unconfigured optional models read as None."""
        router = ModelRouter(ModelConfig(default="coder"), TaskModelsConfig())
        assert router.default_model == "coder"
        assert router.router_model is None
        assert router.ultrathink_model is None
        assert router.debugging_model is None

    def test_task_models_need_switching(self):
        """Task models apply only when switching is enabled."""
        tasks = TaskModelsConfig(frontend="fe")
        assert ModelRouter(MODELS, tasks).model_for_task(TaskType.FRONTEND) is None
        tasks = TaskModelsConfig(use_task_based_switching=True, frontend="fe")
        assert ModelRouter(MODELS, tasks).model_for_task(TaskType.FRONTEND) == "fe"
        assert ModelRouter(MODELS, tasks).model_for_task(TaskType.BACKEND) is None

    def test_general_has_no_task_model(self):
        """General never maps to a task model."""
        tasks = TaskModelsConfig(use_task_based_switching=True, frontend="fe")
        assert ModelRouter(MODELS, tasks).model_for_task(TaskType.GENERAL) is None

    def test_categories(self):
        """Router categories map to task or ultrathink models."""
        tasks = TaskModelsConfig(use_task_based_switching=True, backend="be")
        router = ModelRouter(MODELS, tasks)
        assert router.model_for_category(RouterCategory.BACKEND) == "be"
        assert router.model_for_category(RouterCategory.ULTRATHINK) == "thinker"
        assert router.model_for_category(RouterCategory.CODE) is None

    def test_debugging_model_ignores_switching(self):
        """The debugging override model is read even with switching off."""
        router = ModelRouter(MODELS, TaskModelsConfig(debugging="dbg"))
        assert router.debugging_model == "dbg"
