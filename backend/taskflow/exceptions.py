"""Exception hierarchy raised by the workflow engine.

Blueprints never translate these by hand; ``create_app`` registers one error
handler per type so every route answers with the same status codes.
"""
from __future__ import annotations

from collections.abc import Iterable
from http import HTTPStatus


class WorkflowError(Exception):
    """Base class for errors the engine reports to its callers."""

    status_code = HTTPStatus.BAD_REQUEST

    def to_payload(self) -> dict[str, object]:
        return {"error": str(self)}


class NotFoundError(WorkflowError):
    """Raised when a workflow, version or template does not exist in the space."""

    status_code = HTTPStatus.NOT_FOUND

    def __init__(self, resource: str, resource_id: object | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        message = resource
        if resource_id is not None:
            message += f" {resource_id}"
        super().__init__(f"{message} not found")


class WorkflowValidationError(WorkflowError):
    """Raised when a graph carries blocking authoring issues.

    Every collected issue is kept so the author can fix them in one pass;
    the warnings gathered before rejection travel along for context.
    """

    status_code = HTTPStatus.UNPROCESSABLE_ENTITY

    def __init__(
        self,
        message: str,
        issues: Iterable[str] = (),
        warnings: Iterable[str] = (),
    ) -> None:
        self.issues = list(issues)
        self.warnings = list(warnings)
        super().__init__(message)

    def to_payload(self) -> dict[str, object]:
        return {"error": str(self), "issues": self.issues, "warnings": self.warnings}


class ReferentialIntegrityError(WorkflowError):
    """Raised when deleting a workflow that templates or tasks still use."""

    status_code = HTTPStatus.CONFLICT

    def __init__(self, workflow_id: str, template_count: int, task_count: int) -> None:
        self.workflow_id = workflow_id
        self.template_count = template_count
        self.task_count = task_count
        super().__init__(
            f"Workflow {workflow_id} is referenced by {template_count} template(s) "
            f"and {task_count} task(s) and cannot be deleted"
        )

    def to_payload(self) -> dict[str, object]:
        return {
            "error": str(self),
            "templates": self.template_count,
            "tasks": self.task_count,
        }


class TransitionNotAllowedError(WorkflowError):
    """Raised when a transition does not leave the status a task is in."""

    status_code = HTTPStatus.CONFLICT

    def __init__(self, transition_id: str, current_status_id: str) -> None:
        self.transition_id = transition_id
        self.current_status_id = current_status_id
        super().__init__("Transition cannot be applied from current status")

    def to_payload(self) -> dict[str, object]:
        return {
            "error": str(self),
            "transitionId": self.transition_id,
            "currentStatusId": self.current_status_id,
        }
