"""Which transition a task may take, and which one it probably takes next.

``ensure_transition_allowed`` is the structural legality check: the
transition must belong to the workflow version the task is pinned to and
must leave the status the task sits in. Conditions, validators and
post-functions stay opaque here; evaluating them is up to the caller.

``predict_transition`` is a scoring heuristic over a caller-supplied list of
transitions and never touches the database.
"""
from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

from ..exceptions import NotFoundError, TransitionNotAllowedError, WorkflowError
from ..extensions import db
from ..models.task import Task
from ..models.workflow import WorkflowStatus, WorkflowTransition

MIN_CONFIDENCE = 0.6
_BLOCKED_TRIGGERS = {"HIDDEN", "DISABLED"}


@dataclass(frozen=True)
class TransitionCandidate:
    id: str
    name: str
    from_key: str
    to_key: str
    ui_trigger: str | None = None
    roles: tuple[str, ...] = ()
    disabled: bool = False

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> TransitionCandidate:
        conditions = payload.get("conditions")
        roles = conditions.get("roles") if isinstance(conditions, dict) else None
        trigger = payload.get("uiTrigger")
        return cls(
            id=str(payload.get("id") or ""),
            name=str(payload.get("name") or ""),
            from_key=str(payload.get("fromKey") or ""),
            to_key=str(payload.get("toKey") or ""),
            ui_trigger=trigger if isinstance(trigger, str) else None,
            roles=tuple(str(role) for role in roles) if isinstance(roles, list) else (),
            disabled=payload.get("disabled") is True or payload.get("isDisabled") is True,
        )


@dataclass(frozen=True)
class Hop:
    from_key: str
    to_key: str


@dataclass(frozen=True)
class TransitionPrediction:
    transition_id: str
    transition_key: str
    confidence: float
    rationale: list[str] = field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        return {
            "transitionId": self.transition_id,
            "transitionKey": self.transition_key,
            "confidence": self.confidence,
            "rationale": list(self.rationale),
        }


def _is_eligible(candidate: TransitionCandidate, current_status_key: str | None) -> bool:
    if candidate.disabled:
        return False
    if not candidate.from_key or not candidate.to_key:
        return False
    if candidate.to_key == current_status_key:
        return False
    if (candidate.ui_trigger or "").upper() in _BLOCKED_TRIGGERS:
        return False
    # Role-gated transitions need a membership lookup this heuristic cannot do.
    return not candidate.roles


def _done_weight(priority: str | None) -> float:
    level = (priority or "").upper()
    if level in {"HIGHEST", "HIGH"}:
        return 1.2
    if level in {"LOW", "LOWEST"}:
        return 0.4
    return 0.8


def _qa_weight(tags: Sequence[str]) -> float:
    lowered = [tag.lower() for tag in tags]
    if any("qa" in tag or "test" in tag for tag in lowered):
        return 2.0
    return 1.0


def _score(
    candidate: TransitionCandidate,
    recent_history: Sequence[Hop],
    qa_weight: float,
    done_weight: float,
) -> float:
    target = candidate.to_key.lower()
    score = 1.0
    if "review" in target:
        score += 1.5
    if "qa" in target:
        score += qa_weight
    if "done" in target:
        score += done_weight
    if "progress" in target:
        score += 0.5
    if recent_history:
        last = recent_history[-1]
        if last.from_key == candidate.from_key and last.to_key == candidate.to_key:
            score += 1
    return score


def confidence_for(best_score: float, spread: float, total: int) -> float:
    """Map the winning score onto a 0..0.95 confidence."""

    if best_score <= 0:
        return 0.0
    relative_spread = 0.1 if spread <= 0 else min(spread / max(best_score, 1), 1)
    crowd_factor = min(1, 2 / total) if total > 1 else 1
    base = 0.45 + min(best_score / (best_score + 5), 0.4)
    bonus = 0.1 * relative_spread * crowd_factor
    return min(0.95, round(base + bonus, 3))


def _rationale(
    candidate: TransitionCandidate, tags: Sequence[str], priority: str | None
) -> list[str]:
    target = candidate.to_key.lower()
    reasons: list[str] = []
    if "review" in target:
        reasons.append("tasks usually move to Review after progress")
    if "qa" in target and any("qa" in tag.lower() for tag in tags):
        reasons.append("QA tag detected on task")
    if (priority or "").upper() == "HIGH" and "done" in target:
        reasons.append("high priority items should complete swiftly")
    if not reasons:
        reasons.append("pattern learned from similar tasks")
    return reasons


def predict_transition(
    transitions: Iterable[TransitionCandidate],
    current_status_key: str | None = None,
    recent_history: Sequence[Hop] = (),
    tags: Sequence[str] = (),
    priority: str | None = None,
) -> TransitionPrediction | None:
    """Pick the most likely next transition, or ``None`` when unsure."""

    eligible = [
        candidate for candidate in transitions if _is_eligible(candidate, current_status_key)
    ]
    if not eligible:
        return None

    qa_weight = _qa_weight(tags)
    done_weight = _done_weight(priority)
    scored = sorted(
        (
            (candidate, _score(candidate, recent_history, qa_weight, done_weight))
            for candidate in eligible
        ),
        key=lambda item: item[1],
        reverse=True,
    )
    best, best_score = scored[0]
    confidence = confidence_for(best_score, best_score - scored[-1][1], len(scored))
    if confidence < MIN_CONFIDENCE:
        return None

    return TransitionPrediction(
        transition_id=best.id,
        transition_key=f"{best.from_key}::{best.to_key}",
        confidence=confidence,
        rationale=_rationale(best, tags, priority),
    )


def ensure_transition_allowed(task: Any, transition: Any | None) -> None:
    """Raise unless ``transition`` may move ``task`` out of its current status.

    Both arguments only need the attributes of :class:`Task` and
    :class:`WorkflowTransition` used below.
    """

    if not task.workflow_id or not task.workflow_status_id or not task.workflow_version:
        raise WorkflowError("Task is not using a workflow")
    if transition is None:
        raise NotFoundError("Transition")
    if (
        transition.workflow_id != task.workflow_id
        or transition.version != task.workflow_version
    ):
        raise NotFoundError("Transition", transition.id)
    if transition.from_status_id != task.workflow_status_id:
        raise TransitionNotAllowedError(transition.id, task.workflow_status_id)


def check_task_transition(
    task_id: str,
    transition_id: str | None = None,
    transition_key: str | None = None,
) -> dict[str, Any]:
    """Resolve a transition in the task's pinned version and check it applies."""

    task = db.session.get(Task, task_id)
    if task is None:
        raise NotFoundError("Task", task_id)

    transition: WorkflowTransition | None = None
    if task.workflow_id and task.workflow_version and (transition_id or transition_key):
        query = WorkflowTransition.query.filter_by(
            workflow_id=task.workflow_id, version=task.workflow_version
        )
        if transition_id:
            query = query.filter_by(id=transition_id)
        if transition_key:
            query = query.filter_by(key=transition_key)
        transition = query.first()

    ensure_transition_allowed(task, transition)

    target = db.session.get(WorkflowStatus, transition.to_status_id)
    return {
        "taskId": task.id,
        "transitionId": transition.id,
        "transitionKey": transition.key,
        "workflowVersion": task.workflow_version,
        "toStatus": {
            "id": target.id,
            "key": target.key,
            "name": target.name,
            "category": target.category,
            "color": target.color,
            "isFinal": target.is_final,
        },
    }
