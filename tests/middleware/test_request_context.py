"""Request id and link code context for every request."""

from __future__ import annotations

import logging
import uuid

import pytest
from fastapi.testclient import TestClient

from crewfit.middleware.request_context import link_code_from_path


def test_request_id_generated_when_not_provided(client: TestClient) -> None:
    resp = client.get("/health")
    req_id = resp.headers.get("x-request-id")
    assert req_id is not None
    uuid.UUID(req_id)


def test_request_id_echoed_when_provided(client: TestClient) -> None:
    resp = client.get("/health", headers={"X-Request-ID": "my-custom-request-id-123"})
    assert resp.headers.get("x-request-id") == "my-custom-request-id-123"


def test_request_id_present_on_error_responses(client: TestClient) -> None:
    resp = client.get("/v1/portal/no-such-code")
    assert resp.status_code == 404
    assert resp.headers.get("x-request-id") is not None


def test_request_summary_is_logged(
    client: TestClient, caplog: pytest.LogCaptureFixture
) -> None:
    with caplog.at_level(logging.INFO, logger="crewfit.middleware.request_context"):
        client.get("/v1/tests", headers={"X-Request-ID": "req-42"})
    summaries = [
        r for r in caplog.records if r.name == "crewfit.middleware.request_context"
    ]
    assert summaries
    assert summaries[-1].request_id == "req-42"  # type: ignore[attr-defined]
    assert summaries[-1].status_code == 200  # type: ignore[attr-defined]


@pytest.mark.parametrize(
    ("path", "expected"),
    [
        ("/v1/portal/onboarding-pt", "onboarding-pt"),
        ("/v1/portal/onboarding-pt/answer", "onboarding-pt"),
        ("/v1/portal/", None),
        ("/v1/links", None),
    ],
)
def test_link_code_from_path(path: str, expected: str | None) -> None:
    assert link_code_from_path(path) == expected
