"""Tests for linking task templates to workflows."""

from __future__ import annotations

import pytest

from backend.taskflow.exceptions import NotFoundError
from backend.taskflow.extensions import db
from backend.taskflow.models import Template
from backend.taskflow.workflow.templates import (
    assign_workflow_to_template,
    reconcile_template_links,
)
from backend.taskflow.workflow.versions import create_workflow


@pytest.fixture()
def workflow(space_id, statuses_payload):
    from backend.taskflow.models import Workflow

    workflow_id = create_workflow(
        space_id, {"name": "Linked", "statuses": statuses_payload}
    ).workflow["id"]
    return db.session.get(Workflow, workflow_id)


def _linked(workflow_id):
    return sorted(template.id for template in Template.query.filter_by(workflow_id=workflow_id))


def test_reconcile_sets_exact_membership(workflow, space_id, template_factory):
    keep = template_factory(space_id, "Keep", workflow.id)
    drop = template_factory(space_id, "Drop", workflow.id)
    add = template_factory(space_id, "Add")

    result = reconcile_template_links(workflow, [keep, f" {add} ", keep, None])
    db.session.commit()

    assert result == [keep, add]
    assert _linked(workflow.id) == sorted([keep, add])
    assert db.session.get(Template, drop).workflow_id is None


def test_reconcile_empty_list_detaches_everything(workflow, space_id, template_factory):
    template_factory(space_id, "One", workflow.id)
    template_factory(space_id, "Two", workflow.id)

    assert reconcile_template_links(workflow, []) == []
    db.session.commit()

    assert _linked(workflow.id) == []


def test_reconcile_rejects_templates_from_other_spaces(workflow, space_id, template_factory):
    mine = template_factory(space_id, "Mine")
    foreign = template_factory("other-space", "Foreign")

    with pytest.raises(NotFoundError) as excinfo:
        reconcile_template_links(workflow, [mine, foreign])
    db.session.rollback()

    assert foreign in str(excinfo.value)
    assert _linked(workflow.id) == []


def test_patch_assigns_and_detaches(client, workflow, space_id, template_factory):
    template_id = template_factory(space_id, "Bug")

    response = client.patch(
        f"/api/templates/{template_id}/workflow", json={"workflowId": workflow.id}
    )
    assert response.status_code == 200
    assert response.get_json()["template"] == {
        "id": template_id,
        "spaceId": space_id,
        "workflowId": workflow.id,
    }

    response = client.patch(f"/api/templates/{template_id}/workflow", json={"workflowId": None})
    assert response.status_code == 200
    assert response.get_json()["template"]["workflowId"] is None


def test_patch_validates_request(client, workflow, space_id, template_factory):
    template_id = template_factory(space_id, "Bug")

    assert client.patch(f"/api/templates/{template_id}/workflow", json={}).status_code == 400
    assert (
        client.patch(f"/api/templates/{template_id}/workflow", json={"workflowId": 3}).status_code
        == 400
    )
    assert (
        client.patch("/api/templates/missing/workflow", json={"workflowId": None}).status_code
        == 404
    )


def test_patch_refuses_workflow_of_other_space(client, workflow, template_factory):
    template_id = template_factory("other-space", "Foreign")

    response = client.patch(
        f"/api/templates/{template_id}/workflow", json={"workflowId": workflow.id}
    )

    assert response.status_code == 404
    assert db.session.get(Template, template_id).workflow_id is None


def test_patch_requires_object_body(client, workflow, space_id, template_factory):
    template_id = template_factory(space_id, "Bug", workflow.id)

    for body in ("[]", "null"):
        response = client.patch(
            f"/api/templates/{template_id}/workflow", data=body, content_type="application/json"
        )
        assert response.status_code == 400

    assert db.session.get(Template, template_id).workflow_id == workflow.id


def test_assignment_takes_space_from_template(workflow, space_id, template_factory):
    local = template_factory(space_id, "Local")
    foreign = template_factory("other-space", "Foreign")

    assert assign_workflow_to_template(local, workflow.id) == {
        "id": local,
        "spaceId": space_id,
        "workflowId": workflow.id,
    }
    with pytest.raises(NotFoundError):
        assign_workflow_to_template(foreign, workflow.id)
    assert assign_workflow_to_template(local, None)["workflowId"] is None
