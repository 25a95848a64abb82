"""Heuristic generator proposing a first-draft workflow from hints.

The pipeline is deterministic: prompt analysis, stage sequencing and
transition construction are separate pure functions, and the result always
passes through the same normalise/sanitise/validate passes as authored input.
"""
from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field, replace
from typing import Any

from .graph import StatusDraft, TransitionDraft
from .normalizer import normalize_statuses, sanitize_transitions, validate

DESCRIPTION_LIMIT = 160
NAME_WORD_LIMIT = 4

STANDARD_FLOW_WARNING = (
    "Prompt did not reference specific workflow stages. "
    "Generated a standard To Do -> In Progress -> Done flow."
)

_DESIGN = re.compile(r"\bdesign\b|\bux\b|\bprototype\b|\bwireframe\b")
_REVIEW = re.compile(r"\breview\b|\bapproval\b|\bsign[- ]?off\b|\bpeer\b|\baudit\b")
_TESTING = re.compile(r"\btest\b|\btesting\b|\bvalidate\b|\bverification\b")
_QA = re.compile(r"\bqa\b|\bquality assurance\b|\bquality\b")
_DEPLOY = re.compile(r"\bdeploy\b|\brelease\b|\blaunch\b|\bproduction\b")
_BACKLOG = re.compile(r"\bbacklog\b|\binbox\b")
_PLANNING = re.compile(r"\bplan\b|\bplanning\b|\brefine\b|\bgroom\b")


@dataclass(frozen=True)
class FieldSummary:
    """Template field as described by the suggestion request."""

    id: str
    type: str
    label: str
    required: bool = False

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> FieldSummary:
        return cls(
            id=str(payload.get("id") or ""),
            type=str(payload.get("type") or ""),
            label=str(payload.get("label") or ""),
            required=bool(payload.get("required")),
        )


@dataclass(frozen=True)
class PromptInsights:
    has_design: bool = False
    has_review: bool = False
    has_qa: bool = False
    has_testing: bool = False
    has_deploy: bool = False
    has_backlog: bool = False
    has_planning: bool = False
    derived_name: str | None = None
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True)
class StageFlags:
    backlog: bool = False
    planning: bool = False
    design: bool = False
    review: bool = False
    qa: bool = False
    deploy: bool = False


@dataclass
class Suggestion:
    name: str
    description: str
    statuses: list[StatusDraft]
    transitions: list[TransitionDraft]
    recommendations: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    issues: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.issues

    def to_payload(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "statuses": [status.to_payload() for status in self.statuses],
            "transitions": [transition.to_payload() for transition in self.transitions],
            "recommendations": list(self.recommendations),
            "warnings": list(self.warnings),
        }


def analyse_prompt(prompt: str | None) -> PromptInsights:
    """Detect which workflow stages a free-text prompt mentions."""

    if not isinstance(prompt, str) or not prompt.strip():
        return PromptInsights()

    text = prompt.lower()
    has_design = bool(_DESIGN.search(text))
    has_review = bool(_REVIEW.search(text))
    has_testing = bool(_TESTING.search(text))
    has_qa = bool(_QA.search(text))
    has_deploy = bool(_DEPLOY.search(text))
    has_backlog = bool(_BACKLOG.search(text))
    has_planning = bool(_PLANNING.search(text))

    warnings: tuple[str, ...] = ()
    stages = (has_design, has_review, has_qa or has_testing, has_deploy, has_backlog, has_planning)
    if not any(stages):
        warnings = (STANDARD_FLOW_WARNING,)

    return PromptInsights(
        has_design=has_design,
        has_review=has_review,
        has_qa=has_qa,
        has_testing=has_testing,
        has_deploy=has_deploy,
        has_backlog=has_backlog,
        has_planning=has_planning,
        derived_name=derive_name(prompt),
        warnings=warnings,
    )


def derive_name(prompt: str | None) -> str | None:
    """Title-case the first few words of the prompt's first sentence."""

    if not prompt:
        return None
    cleaned = prompt.strip()
    if not cleaned:
        return None
    first_sentence = re.split(r"[.!?]", cleaned)[0] or cleaned
    words = first_sentence.split()[:NAME_WORD_LIMIT]
    if not words:
        return None
    return " ".join(word[:1].upper() + word[1:].lower() for word in words)


def truncate_prompt(prompt: str, limit: int = DESCRIPTION_LIMIT) -> str:
    normalized = " ".join(prompt.split())
    if len(normalized) <= limit:
        return normalized
    return f"{normalized[:limit]}..."


def _label_mentions(fields: Sequence[FieldSummary], needle: str) -> bool:
    return any(needle in summary.label.lower() for summary in fields)


def stage_flags(insights: PromptInsights, fields: Sequence[FieldSummary]) -> StageFlags:
    """Combine prompt-derived and field-derived stage signals."""

    qa = insights.has_qa or insights.has_testing or _label_mentions(fields, "qa")
    return StageFlags(
        backlog=insights.has_backlog,
        planning=insights.has_planning,
        design=insights.has_design or _label_mentions(fields, "design"),
        review=insights.has_review or _label_mentions(fields, "review"),
        qa=qa,
        deploy=insights.has_deploy,
    )


def build_statuses(flags: StageFlags) -> list[StatusDraft]:
    """Lay the enabled stages out left to right between the fixed anchors."""

    stages: list[StatusDraft] = []
    if flags.backlog:
        stages.append(StatusDraft(key="backlog", name="Backlog", category="TODO", color="#0ea5e9"))
    stages.append(StatusDraft(key="todo", name="To Do", category="TODO", color="#71717a"))
    if flags.planning:
        stages.append(
            StatusDraft(key="planning", name="Planning", category="IN_PROGRESS", color="#6366f1")
        )
    if flags.design:
        stages.append(
            StatusDraft(key="design", name="Design", category="IN_PROGRESS", color="#ec4899")
        )
    stages.append(
        StatusDraft(key="in-progress", name="In Progress", category="IN_PROGRESS", color="#3b82f6")
    )
    if flags.review:
        stages.append(
            StatusDraft(key="review", name="Review", category="IN_PROGRESS", color="#f59e0b")
        )
    if flags.qa:
        stages.append(
            StatusDraft(key="qa", name="QA Testing", category="IN_PROGRESS", color="#8b5cf6")
        )
    if flags.deploy:
        stages.append(StatusDraft(key="deploy", name="Deploy", category="DONE", color="#14b8a6"))
    stages.append(StatusDraft(key="done", name="Done", category="DONE", color="#10b981"))

    last = len(stages) - 1
    return [
        replace(status, is_initial=index == 0, is_final=index == last, order=index)
        for index, status in enumerate(stages)
    ]


def build_transitions(
    statuses: Sequence[StatusDraft], required_field_count: int
) -> list[TransitionDraft]:
    """Chain every status to the next one with a "Move to" transition."""

    transitions: list[TransitionDraft] = []
    for index, (current, following) in enumerate(zip(statuses, statuses[1:])):
        lands_on_done = following.category == "DONE"
        hints = {
            "assigneeOnly": index == 0,
            "adminOnly": False,
            "requirePriority": required_field_count > 0 and lands_on_done,
            "preventOpenSubtasks": lands_on_done,
        }

        conditions: dict[str, Any] = {}
        if hints["assigneeOnly"]:
            conditions["roles"] = ["ASSIGNEE"]
        if hints["requirePriority"]:
            conditions["requiredFields"] = ["priority"]
        validators = {"preventOpenSubtasks": True} if hints["preventOpenSubtasks"] else None

        transitions.append(
            TransitionDraft(
                name=f"Move to {following.name}",
                from_key=current.key,
                to_key=following.key,
                order=index,
                ui_trigger="BUTTON",
                conditions=conditions or None,
                validators=validators,
                hints=hints,
            )
        )
    return transitions


def build_recommendations(status_count: int, required_field_count: int, has_qa: bool) -> list[str]:
    recommendations: list[str] = []
    if status_count <= 3:
        recommendations.append("Consider adding a dedicated review stage to improve quality.")
    if required_field_count > 3:
        recommendations.append(
            "Many required fields detected. Ensure transitions validate critical information."
        )
    if not has_qa:
        recommendations.append(
            "Add a QA Testing status if quality assurance is important for this template."
        )
    if not recommendations:
        recommendations.append(
            "Workflow looks balanced. Review automation rules for additional optimizations."
        )
    return recommendations


def suggest(
    prompt: str | None = None,
    fields: Iterable[FieldSummary] = (),
    template_name: str | None = None,
) -> Suggestion:
    """Generate, repair and validate a candidate workflow."""

    summaries = list(fields)
    insights = analyse_prompt(prompt)
    flags = stage_flags(insights, summaries)
    required_field_count = sum(1 for summary in summaries if summary.required)

    statuses, status_warnings = normalize_statuses(build_statuses(flags))
    transitions, transition_warnings = sanitize_transitions(
        statuses, build_transitions(statuses, required_field_count)
    )
    result = validate(statuses, transitions)

    if template_name and template_name.strip():
        name = f"{template_name.strip()} Flow"
    elif insights.derived_name:
        name = f"{insights.derived_name} Workflow"
    else:
        name = "Suggested Workflow"

    if prompt and prompt.strip():
        description = f"AI generated workflow based on prompt: {truncate_prompt(prompt)}"
    else:
        description = "AI generated workflow based on template fields and requirements."

    return Suggestion(
        name=name,
        description=description,
        statuses=statuses,
        transitions=transitions,
        recommendations=build_recommendations(
            len(statuses), required_field_count, flags.qa
        ),
        warnings=[*status_warnings, *transition_warnings, *insights.warnings],
        issues=result.issues,
    )
