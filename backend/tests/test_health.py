"""Tests for the healthcheck endpoint."""

from __future__ import annotations


def test_health_endpoint_reports_database(client):
    """The healthcheck should confirm the workflow store is reachable."""

    response = client.get("/api/health")

    assert response.status_code == 200
    assert response.get_json() == {"status": "ok", "database": "ok"}
