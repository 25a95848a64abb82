"""Tests for the status/transition repair and validation passes."""

from __future__ import annotations

import pytest

from backend.taskflow.workflow.graph import StatusDraft, TransitionDraft, key_of, normalize_key
from backend.taskflow.workflow.normalizer import (
    normalize_statuses,
    prepare_graph,
    sanitize_transitions,
    validate,
)


def _status(key: str, name: str | None = None, **kwargs: object) -> StatusDraft:
    return StatusDraft(key=key, name=name if name is not None else key.title(), **kwargs)


def _transition(from_key: str, to_key: str, name: str | None = None) -> TransitionDraft:
    return TransitionDraft(name=name or f"{from_key} to {to_key}", from_key=from_key, to_key=to_key)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("In Progress", "in-progress"),
        ("  Ready   for  QA ", "ready-for-qa"),
        ("done", "done"),
        ("Tab\tand\nnewline", "tab-and-newline"),
        ("", ""),
        (None, ""),
        (42, "42"),
    ],
)
def test_normalize_key(raw, expected):
    assert normalize_key(raw) == expected
    assert normalize_key(normalize_key(raw)) == normalize_key(raw)


def test_key_of_falls_back_to_name():
    assert key_of(StatusDraft(key="", name="Code Review")) == "code-review"
    assert key_of(StatusDraft(key="Review", name="Code Review")) == "review"


def test_missing_flags_are_promoted_to_first_and_last():
    statuses, warnings = normalize_statuses([_status("a"), _status("b"), _status("c")])

    assert [status.is_initial for status in statuses] == [True, False, False]
    assert [status.is_final for status in statuses] == [False, False, True]
    assert any("initial" in warning for warning in warnings)
    assert any("final" in warning for warning in warnings)


def test_only_first_initial_survives():
    statuses, warnings = normalize_statuses(
        [
            _status("todo", "To Do", is_initial=True),
            _status("ready", "Ready", is_initial=True),
            _status("done", "Done", is_final=True),
        ]
    )

    assert [status.key for status in statuses if status.is_initial] == ["todo"]
    assert warnings == ['Status "Ready" marked as initial has been demoted to regular.']


def test_last_marked_final_survives():
    statuses, warnings = normalize_statuses(
        [
            _status("todo", is_initial=True),
            _status("done", "Done", is_final=True),
            _status("archived", "Archived", is_final=True),
            _status("limbo", "Limbo"),
        ]
    )

    assert [status.key for status in statuses if status.is_final] == ["archived"]
    assert warnings == ['Only one status can be final. "Done" final flag removed.']


def test_duplicate_keys_keep_first_occurrence():
    statuses, warnings = normalize_statuses(
        [
            _status("Todo", "First"),
            _status(" todo ", "Second"),
            _status("done", "Done"),
        ]
    )

    assert [(status.key, status.name) for status in statuses] == [("todo", "First"), ("done", "Done")]
    assert any('"todo"' in warning and "Second" in warning for warning in warnings)


def test_blank_keys_are_dropped_with_warning():
    statuses, warnings = normalize_statuses(
        [_status("", ""), _status("todo"), _status("   ", "  ")]
    )

    assert [status.key for status in statuses] == ["todo"]
    assert warnings[0] == "Status #1 has no key and has been skipped."
    assert warnings[1] == "Status #3 has no key and has been skipped."


def test_empty_input_falls_back_to_todo_done():
    statuses, warnings = normalize_statuses([_status("", "")])

    assert [(status.key, status.category) for status in statuses] == [
        ("todo", "TODO"),
        ("done", "DONE"),
    ]
    assert statuses[0].is_initial and statuses[1].is_final
    assert any("Fallback workflow" in warning for warning in warnings)


def test_status_order_is_contiguous_in_input_order():
    statuses, _ = normalize_statuses(
        [_status("c", order=9), _status("a", order=4), _status("b", order=1)]
    )

    assert [(status.key, status.order) for status in statuses] == [("c", 0), ("a", 1), ("b", 2)]


def test_single_status_is_both_initial_and_final():
    statuses, _ = normalize_statuses([_status("a", "A", category="TODO")])

    assert len(statuses) == 1
    assert statuses[0].is_initial and statuses[0].is_final


def test_dangling_transitions_are_removed():
    statuses, _ = normalize_statuses([_status("todo"), _status("done")])
    transitions, warnings = sanitize_transitions(
        statuses,
        [_transition("todo", "done", "Finish"), _transition("todo", "ghost", "Haunt")],
    )

    assert [transition.name for transition in transitions] == ["Finish"]
    assert warnings == ['Transition "Haunt" references unavailable statuses and has been removed.']


def test_duplicate_pairs_keep_first_and_renumber():
    statuses, _ = normalize_statuses([_status("todo"), _status("doing"), _status("done")])
    transitions, warnings = sanitize_transitions(
        statuses,
        [
            TransitionDraft(name="Start", from_key="Todo", to_key="doing", order=7),
            TransitionDraft(name="Begin", from_key="todo", to_key="DOING", order=3),
            TransitionDraft(name="Finish", from_key="doing", to_key="done", order=1),
        ],
    )

    assert [(t.name, t.from_key, t.to_key, t.order) for t in transitions] == [
        ("Start", "todo", "doing", 0),
        ("Finish", "doing", "done", 1),
    ]
    assert warnings == ["Duplicate transition todo->doing (Begin) removed."]


def test_empty_transition_set_is_reported_not_repaired():
    statuses, _ = normalize_statuses([_status("todo"), _status("done")])
    transitions, warnings = sanitize_transitions(statuses, [])

    assert transitions == []
    assert warnings == ["No valid transitions were generated."]


def test_self_loop_survives_sanitizing_but_fails_validation():
    statuses, _ = normalize_statuses([_status("todo"), _status("done")])
    transitions, warnings = sanitize_transitions(statuses, [_transition("todo", "todo", "Loop")])

    assert [transition.name for transition in transitions] == ["Loop"]
    assert warnings == []

    result = validate(statuses, transitions)
    assert result.is_valid is False
    assert any("Loop" in issue and "same status" in issue for issue in result.issues)


def test_validate_collects_every_issue():
    statuses = [
        StatusDraft(key="todo", name="Open", is_initial=True),
        StatusDraft(key="done", name="open"),
        StatusDraft(key="todo", name=""),
    ]
    transitions = [
        TransitionDraft(name="Go", from_key="todo", to_key="done"),
        TransitionDraft(name="go", from_key="todo", to_key="nowhere"),
    ]

    result = validate(statuses, transitions)

    assert result.is_valid is False
    assert "Duplicate status name detected: open" in result.issues
    assert "Duplicate status key detected: todo" in result.issues
    assert "Status 3 is missing a name." in result.issues
    assert "Workflow is missing a final status." in result.issues
    assert 'Transition go references unknown target status "nowhere".' in result.issues
    assert 'Transition name "go" is duplicated for source status "todo".' in result.issues


def test_validate_flags_multiple_initial_statuses():
    statuses = [
        StatusDraft(key="a", name="A", is_initial=True),
        StatusDraft(key="b", name="B", is_initial=True, is_final=True),
    ]

    result = validate(statuses, [])

    assert result.is_valid is False
    assert result.issues == ["Workflow has 2 initial statuses; exactly one is allowed."]


def test_prepare_graph_accepts_clean_graph():
    plan = prepare_graph(
        [_status("todo"), _status("done")],
        [_transition("todo", "done", "Finish")],
    )

    assert plan.is_valid
    assert plan.issues == []
    assert [status.key for status in plan.statuses] == ["todo", "done"]
    assert len(plan.warnings) == 2


def test_unknown_category_is_reset_with_warning():
    draft = StatusDraft.from_payload({"key": "blocked", "name": "Blocked", "category": "blocked"})
    assert draft.category == "BLOCKED"
    assert StatusDraft.from_payload({"key": "a", "name": "A", "category": "in progress"}).category == (
        "IN_PROGRESS"
    )

    statuses, warnings = normalize_statuses([_status("todo"), draft])

    assert statuses[1].category == "TODO"
    assert 'Status "Blocked" has unknown category "BLOCKED" and was set to TODO.' in warnings


def test_validate_rejects_unknown_category():
    statuses = [StatusDraft(key="a", name="A", category="BLOCKED", is_initial=True, is_final=True)]

    result = validate(statuses, [])

    assert result.issues == ['Status 1 has unknown category "BLOCKED".']


def test_values_wider_than_their_columns_are_issues():
    statuses = [
        StatusDraft(key="k" * 121, name="A", color="#" * 33, is_initial=True),
        StatusDraft(key="done", name="Done", status_ref_id="r" * 65, is_final=True),
    ]
    transitions = [
        TransitionDraft(
            name="Go", from_key="k" * 121, to_key="done", key="t" * 121, ui_trigger="X" * 33
        )
    ]

    result = validate(statuses, transitions)

    assert result.is_valid is False
    assert "Status 1 key exceeds 120 characters." in result.issues
    assert "Status 1 color exceeds 32 characters." in result.issues
    assert "Status 2 statusRefId exceeds 64 characters." in result.issues
    assert "Transition Go key exceeds 120 characters." in result.issues
    assert "Transition Go uiTrigger exceeds 32 characters." in result.issues


def test_values_at_column_width_are_accepted():
    statuses = [
        StatusDraft(key="k" * 120, name="N" * 255, color="#" * 32, is_initial=True),
        StatusDraft(key="done", name="Done", is_final=True),
    ]
    transitions = [TransitionDraft(name="Go", from_key="k" * 120, to_key="done", ui_trigger="B" * 32)]

    assert validate(statuses, transitions).issues == []
