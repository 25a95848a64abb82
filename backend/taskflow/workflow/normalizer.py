"""Repair and validation passes applied to every candidate workflow graph.

Normalisation and sanitisation repair what they can and describe each
correction as a warning. Validation repairs nothing: whatever it finds is an
issue that must block persistence.
"""
from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field, replace
from typing import NamedTuple

from .graph import (
    CATEGORIES,
    COLOR_MAX_LENGTH,
    DEFAULT_CATEGORY,
    KEY_MAX_LENGTH,
    NAME_MAX_LENGTH,
    STATUS_REF_MAX_LENGTH,
    UI_TRIGGER_MAX_LENGTH,
    StatusDraft,
    TransitionDraft,
    key_of,
    normalize_key,
)

FALLBACK_STATUSES = (
    StatusDraft(key="todo", name="To Do", category="TODO", color="#71717a", is_initial=True),
    StatusDraft(key="done", name="Done", category="DONE", color="#10b981", is_final=True),
)


class ValidationResult(NamedTuple):
    is_valid: bool
    issues: list[str]


@dataclass
class GraphPlan:
    """Outcome of running a candidate graph through every pass."""

    statuses: list[StatusDraft]
    transitions: list[TransitionDraft]
    warnings: list[str] = field(default_factory=list)
    issues: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.issues


def normalize_statuses(
    candidates: Iterable[StatusDraft],
) -> tuple[list[StatusDraft], list[str]]:
    """Return a status list with unique keys and exactly one initial and final."""

    warnings: list[str] = []
    seen: set[str] = set()
    kept: list[StatusDraft] = []

    for index, status in enumerate(candidates, start=1):
        key = key_of(status)
        if not key:
            warnings.append(f"Status #{index} has no key and has been skipped.")
            continue
        if key in seen:
            warnings.append(f'Duplicate status key "{key}" ({status.name or "unnamed"}) removed.')
            continue
        seen.add(key)
        if status.category not in CATEGORIES:
            warnings.append(
                f'Status "{status.name or key}" has unknown category "{status.category}" '
                f"and was set to {DEFAULT_CATEGORY}."
            )
            status = replace(status, category=DEFAULT_CATEGORY)
        kept.append(replace(status, key=key))

    if not kept:
        kept = list(FALLBACK_STATUSES)
        warnings.append(
            "Fallback workflow created because no valid statuses were provided."
        )

    kept = [replace(status, order=index) for index, status in enumerate(kept)]

    initial_indexes = [index for index, status in enumerate(kept) if status.is_initial]
    if not initial_indexes:
        kept[0] = replace(kept[0], is_initial=True)
        warnings.append(
            f'No initial status detected. "{kept[0].name}" was marked as initial.'
        )
    for index in initial_indexes[1:]:
        kept[index] = replace(kept[index], is_initial=False)
        warnings.append(
            f'Status "{kept[index].name}" marked as initial has been demoted to regular.'
        )

    final_indexes = [index for index, status in enumerate(kept) if status.is_final]
    if not final_indexes:
        kept[-1] = replace(kept[-1], is_final=True)
        warnings.append(
            f'No final status detected. "{kept[-1].name}" was marked as final.'
        )
    for index in final_indexes[:-1]:
        kept[index] = replace(kept[index], is_final=False)
        warnings.append(
            f'Only one status can be final. "{kept[index].name}" final flag removed.'
        )

    return kept, warnings


def sanitize_transitions(
    statuses: Sequence[StatusDraft],
    candidates: Iterable[TransitionDraft],
) -> tuple[list[TransitionDraft], list[str]]:
    """Drop dangling and duplicate transitions against normalised statuses."""

    status_keys = {key_of(status) for status in statuses}
    warnings: list[str] = []
    unique: dict[tuple[str, str], TransitionDraft] = {}

    for index, transition in enumerate(candidates, start=1):
        label = transition.name or f"#{index}"
        from_key, to_key = transition.pair
        if from_key not in status_keys or to_key not in status_keys:
            warnings.append(
                f'Transition "{label}" references unavailable statuses and has been removed.'
            )
            continue
        if (from_key, to_key) in unique:
            warnings.append(f"Duplicate transition {from_key}->{to_key} ({label}) removed.")
            continue
        unique[(from_key, to_key)] = replace(transition, from_key=from_key, to_key=to_key)

    sanitized = [
        replace(transition, order=index) for index, transition in enumerate(unique.values())
    ]
    if not sanitized:
        warnings.append("No valid transitions were generated.")

    return sanitized, warnings


def _length_issues(
    subject: str, values: Iterable[tuple[str, str | None, int]]
) -> list[str]:
    return [
        f"{subject} {label} exceeds {limit} characters."
        for label, value, limit in values
        if value and len(value) > limit
    ]


def validate(
    statuses: Sequence[StatusDraft],
    transitions: Sequence[TransitionDraft],
) -> ValidationResult:
    """Collect every blocking problem left in a graph."""

    issues: list[str] = []
    status_keys: set[str] = set()
    status_names: set[str] = set()

    for index, status in enumerate(statuses, start=1):
        key = normalize_key(status.key)
        name = (status.name or "").strip()

        if not key:
            issues.append(f"Status {index} is missing a key.")
        elif key in status_keys:
            issues.append(f"Duplicate status key detected: {key}")
        else:
            status_keys.add(key)

        if not name:
            issues.append(f"Status {index} is missing a name.")
        elif name.lower() in status_names:
            issues.append(f"Duplicate status name detected: {name}")
        else:
            status_names.add(name.lower())

        if status.category not in CATEGORIES:
            issues.append(f'Status {index} has unknown category "{status.category}".')
        issues.extend(
            _length_issues(
                f"Status {index}",
                (
                    ("key", key, KEY_MAX_LENGTH),
                    ("name", name, NAME_MAX_LENGTH),
                    ("color", status.color, COLOR_MAX_LENGTH),
                    ("statusRefId", status.status_ref_id, STATUS_REF_MAX_LENGTH),
                ),
            )
        )

    initial_count = sum(1 for status in statuses if status.is_initial)
    final_count = sum(1 for status in statuses if status.is_final)
    if initial_count == 0:
        issues.append("Workflow is missing an initial status.")
    elif initial_count > 1:
        issues.append(f"Workflow has {initial_count} initial statuses; exactly one is allowed.")
    if final_count == 0:
        issues.append("Workflow is missing a final status.")
    elif final_count > 1:
        issues.append(f"Workflow has {final_count} final statuses; exactly one is allowed.")

    names_by_source: dict[str, set[str]] = {}
    for index, transition in enumerate(transitions, start=1):
        from_key, to_key = transition.pair
        name = (transition.name or "").strip()
        label = name or f"#{index}"

        if not from_key or from_key not in status_keys:
            issues.append(
                f'Transition {label} references unknown source status "{transition.from_key}".'
            )
        if not to_key or to_key not in status_keys:
            issues.append(
                f'Transition {label} references unknown target status "{transition.to_key}".'
            )

        if name:
            seen_names = names_by_source.setdefault(from_key, set())
            if name.lower() in seen_names:
                issues.append(
                    f'Transition name "{name}" is duplicated for source status '
                    f'"{from_key or "unknown"}".'
                )
            seen_names.add(name.lower())

        if from_key and from_key == to_key:
            issues.append(f'Transition "{label}" loops to the same status "{from_key}".')

        issues.extend(
            _length_issues(
                f"Transition {label}",
                (
                    ("key", normalize_key(transition.key), KEY_MAX_LENGTH),
                    ("name", name, NAME_MAX_LENGTH),
                    ("uiTrigger", transition.ui_trigger, UI_TRIGGER_MAX_LENGTH),
                ),
            )
        )

    return ValidationResult(not issues, issues)


def prepare_graph(
    statuses: Iterable[StatusDraft],
    transitions: Iterable[TransitionDraft],
) -> GraphPlan:
    """Normalise, sanitise and validate a candidate graph in one go."""

    normalized, status_warnings = normalize_statuses(statuses)
    sanitized, transition_warnings = sanitize_transitions(normalized, transitions)
    result = validate(normalized, sanitized)
    return GraphPlan(
        statuses=normalized,
        transitions=sanitized,
        warnings=status_warnings + transition_warnings,
        issues=result.issues,
    )
