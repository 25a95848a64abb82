"""Database models for the Taskflow workflow engine."""

from .audit import WorkflowAudit
from .task import Task
from .template import Template
from .workflow import Workflow, WorkflowStatus, WorkflowTransition

__all__ = [
    "Task",
    "Template",
    "Workflow",
    "WorkflowAudit",
    "WorkflowStatus",
    "WorkflowTransition",
]
