"""Workflow use cases."""

from app.application.use_cases.workflows.workflow_operations import (
    StepInput,
    WorkflowService,
)

__all__ = ["StepInput", "WorkflowService"]
