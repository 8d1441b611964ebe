"""Tests for link generation, listing, and removal."""

from __future__ import annotations

from datetime import UTC, datetime

from fastapi.testclient import TestClient

from crewfit.api.dependencies import build_services, get_services
from crewfit.core.clock import ManualClock
from crewfit.main import app
from crewfit.repos.store import AssessmentStore


def test_list_links_newest_first(client: TestClient) -> None:
    resp = client.get("/v1/links")
    assert resp.status_code == 200
    links = resp.json()
    assert [l["code"] for l in links] == ["checkin-es", "onboarding-pt"]
    assert all(l["expired"] is False for l in links)


def test_list_links_filters_by_assessment(client: TestClient) -> None:
    resp = client.get("/v1/links", params={"assessment_id": "assessment-checkin"})
    assert [l["id"] for l in resp.json()] == ["link-reavaliacao-es"]


def test_list_links_flags_expired(client: TestClient, clock: ManualClock) -> None:
    clock.set(datetime(2024, 7, 2, tzinfo=UTC))
    flags = {l["code"]: l["expired"] for l in client.get("/v1/links").json()}
    assert flags == {"checkin-es": True, "onboarding-pt": False}


def test_create_link(client: TestClient) -> None:
    resp = client.post(
        "/v1/links",
        json={"assessment_id": "assessment-onboarding", "language": "en"},
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body["code"].startswith("avaliacao-integracao-")
    assert body["url"] == f"http://localhost:5173/avaliacoes/{body['code']}"
    assert body["language"] == "en"
    assert body["expires_at"] is None


def test_create_link_with_base_url_and_expiry(client: TestClient) -> None:
    resp = client.post(
        "/v1/links",
        json={
            "assessment_id": "assessment-checkin",
            "base_url": "https://rh.example.com/",
            "expires_at": "2024-12-31T23:59:00Z",
        },
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body["url"].startswith("https://rh.example.com/avaliacoes/checkin-trimestral-")
    assert body["expires_at"].startswith("2024-12-31T23:59:00")


def test_create_link_rejects_naive_expiry(client: TestClient) -> None:
    resp = client.post(
        "/v1/links",
        json={"assessment_id": "assessment-checkin", "expires_at": "2024-12-31T23:59:00"},
    )
    assert resp.status_code == 422


def test_create_link_rejects_past_expiry(client: TestClient) -> None:
    resp = client.post(
        "/v1/links",
        json={"assessment_id": "assessment-checkin", "expires_at": "2024-01-01T00:00:00Z"},
    )
    assert resp.status_code == 422


def test_create_link_rejects_unknown_language(client: TestClient) -> None:
    resp = client.post(
        "/v1/links", json={"assessment_id": "assessment-checkin", "language": "fr"}
    )
    assert resp.status_code == 422


def test_create_link_unknown_assessment(client: TestClient) -> None:
    resp = client.post("/v1/links", json={"assessment_id": "nope"})
    assert resp.status_code == 404


def test_create_link_code_collision_exhausts_retries(
    client: TestClient, store: AssessmentStore, clock: ManualClock
) -> None:
    stuck = build_services(store, clock, suffix_factory=lambda: "aaaa")
    app.dependency_overrides[get_services] = lambda: stuck

    first = client.post("/v1/links", json={"assessment_id": "assessment-checkin"})
    second = client.post("/v1/links", json={"assessment_id": "assessment-checkin"})

    assert first.status_code == 201
    assert first.json()["code"] == "checkin-trimestral-aaaa"
    assert second.status_code == 409


def test_delete_link(client: TestClient) -> None:
    resp = client.delete("/v1/links/link-reavaliacao-es")
    assert resp.status_code == 204
    codes = [l["code"] for l in client.get("/v1/links").json()]
    assert codes == ["onboarding-pt"]


def test_delete_unknown_link(client: TestClient) -> None:
    assert client.delete("/v1/links/nope").status_code == 404


def test_portal_reports_removed_link(client: TestClient) -> None:
    client.delete("/v1/links/link-avaliacao-inicial")
    assert client.get("/v1/portal/onboarding-pt").status_code == 404
