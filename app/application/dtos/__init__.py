"""Application DTOs (inputs and read-models for use cases)."""

from app.application.dtos.task import KanbanColumn, TaskCreate, TaskFilter, TaskStats

__all__ = [
    "KanbanColumn",
    "TaskCreate",
    "TaskFilter",
    "TaskStats",
]
