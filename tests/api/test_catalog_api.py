"""Tests for the test catalog and assessment endpoints."""

from __future__ import annotations

from fastapi.testclient import TestClient

# ---- tests (read-only) ----


def test_list_tests_returns_seeded_catalog(client: TestClient) -> None:
    resp = client.get("/v1/tests")
    assert resp.status_code == 200
    tests = resp.json()
    assert {t["id"] for t in tests} == {
        "test-disc-pt",
        "test-collaboration-pt",
        "test-resilience-pt",
    }
    assert all(t["question_count"] == 10 for t in tests)
    assert "questions" not in tests[0]


def test_get_test_includes_questions_and_bands(client: TestClient) -> None:
    resp = client.get("/v1/tests/test-disc-pt")
    assert resp.status_code == 200
    body = resp.json()
    assert len(body["questions"]) == 10
    assert [o["weight"] for o in body["questions"][0]["options"]] == [1, 2, 3, 4]
    assert [b["id"] for b in body["interpretation_bands"]] == ["low", "medium", "high"]


def test_get_test_not_found(client: TestClient) -> None:
    assert client.get("/v1/tests/nope").status_code == 404


# ---- assessments ----


def test_list_assessments_newest_first(client: TestClient) -> None:
    resp = client.get("/v1/assessments")
    assert resp.status_code == 200
    assert [a["id"] for a in resp.json()] == ["assessment-onboarding", "assessment-checkin"]


def test_get_assessment_orders_tests(client: TestClient) -> None:
    resp = client.get("/v1/assessments/assessment-onboarding")
    assert resp.status_code == 200
    body = resp.json()
    assert [t["order"] for t in body["tests"]] == [1, 2, 3]
    assert body["tests"][0]["test_id"] == "test-disc-pt"
    assert body["version"] == 2


def test_get_assessment_not_found(client: TestClient) -> None:
    assert client.get("/v1/assessments/nope").status_code == 404


def test_create_assessment(client: TestClient) -> None:
    resp = client.post(
        "/v1/assessments",
        json={
            "name": "Avaliação de Liderança",
            "test_ids": ["test-resilience-pt", "test-disc-pt"],
            "tags": ["lideranca"],
        },
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body["status"] == "draft"
    assert body["version"] == 1
    assert body["slug"].startswith("avaliacao-de-lideranca-")
    assert [(t["test_id"], t["order"]) for t in body["tests"]] == [
        ("test-resilience-pt", 1),
        ("test-disc-pt", 2),
    ]

    listed = client.get("/v1/assessments").json()
    assert listed[0]["id"] == body["id"]


def test_create_assessment_rejects_unknown_test(client: TestClient) -> None:
    resp = client.post(
        "/v1/assessments", json={"name": "X", "test_ids": ["test-ghost"]}
    )
    assert resp.status_code == 422


def test_create_assessment_rejects_empty_test_list(client: TestClient) -> None:
    resp = client.post("/v1/assessments", json={"name": "X", "test_ids": []})
    assert resp.status_code == 422


def test_create_assessment_rejects_blank_name(client: TestClient) -> None:
    resp = client.post(
        "/v1/assessments", json={"name": "   ", "test_ids": ["test-disc-pt"]}
    )
    assert resp.status_code == 422


def test_duplicate_assessment_defaults_suffix(client: TestClient) -> None:
    resp = client.post("/v1/assessments/assessment-onboarding/duplicate")
    assert resp.status_code == 201
    body = resp.json()
    assert body["id"] != "assessment-onboarding"
    assert body["name"] == "Avaliacao de Integracao (copia)"
    assert body["status"] == "draft"
    assert body["version"] == 1
    assert len(body["history"]) == 1


def test_duplicate_assessment_with_suffix(client: TestClient) -> None:
    resp = client.post(
        "/v1/assessments/assessment-checkin/duplicate", json={"suffix": "Q3"}
    )
    assert resp.status_code == 201
    assert resp.json()["name"] == "Check-in Trimestral (Q3)"
    assert resp.json()["slug"] == "checkin-trimestral-q3"


def test_duplicate_unknown_assessment(client: TestClient) -> None:
    assert client.post("/v1/assessments/nope/duplicate").status_code == 404


def test_update_assessment_status(client: TestClient) -> None:
    resp = client.patch(
        "/v1/assessments/assessment-checkin/status", json={"status": "published"}
    )
    assert resp.status_code == 200
    assert resp.json()["status"] == "published"


def test_update_assessment_status_rejects_unknown_value(client: TestClient) -> None:
    resp = client.patch(
        "/v1/assessments/assessment-checkin/status", json={"status": "live"}
    )
    assert resp.status_code == 422
