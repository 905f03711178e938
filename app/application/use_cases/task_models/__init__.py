"""Task model use cases."""

from app.application.use_cases.task_models.task_model_operations import TaskModelService

__all__ = ["TaskModelService"]
