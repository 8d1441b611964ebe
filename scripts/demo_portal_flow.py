"""Demo: generate a link, assign it, and take the assessment end to end.

Uses FastAPI TestClient with a manual clock, so autosave and the
countdown can be driven without waiting.

Run with:
    python scripts/demo_portal_flow.py
"""

from __future__ import annotations

from fastapi.testclient import TestClient

from crewfit.api.dependencies import build_services, get_services
from crewfit.core.clock import ManualClock
from crewfit.main import app
from crewfit.repos.store import AssessmentStore
from crewfit.services.seed import seed_demo_data

ASSESSMENT_ID = "assessment-checkin"


def main() -> None:
    clock = ManualClock()
    store = AssessmentStore.in_memory()
    seed_demo_data(store)
    services = build_services(store, clock)
    app.dependency_overrides[get_services] = lambda: services
    client = TestClient(app)

    # ── Step 1: operator generates a link ───────────────────────────
    r = client.post("/v1/links", json={"assessment_id": ASSESSMENT_ID, "language": "pt"})
    link = r.json()
    code = link["code"]
    print(f"1. POST /v1/links           → {r.status_code}  {link['url']}")

    # ── Step 2: operator assigns it ─────────────────────────────────
    r = client.post(
        "/v1/assignments",
        json={
            "assessment_id": ASSESSMENT_ID,
            "assignee_id": "demo",
            "assignee_name": "Demo Respondent",
            "link_id": link["id"],
        },
    )
    assignment_id = r.json()["id"]
    print(f"2. POST /v1/assignments     → {r.status_code}  status={r.json()['status']}")

    # ── Step 3: respondent opens the portal ─────────────────────────
    portal = f"/v1/portal/{code}"
    r = client.get(portal)
    state = r.json()
    print(
        f"3. GET  {portal} → {r.status_code}  mode={state['mode']} "
        f"questions={state['total_questions']} time_left={state['time_left_ms'] // 1000}s"
    )

    # ── Step 4: start and answer everything ─────────────────────────
    client.post(f"{portal}/start")
    for i in range(state["total_questions"]):
        client.post(f"{portal}/answer", json={"value": (i % 4) + 1})
        clock.advance(1_000)
        state = client.post(f"{portal}/next").json()
    print(f"4. answered all             → mode={state['mode']} progress={state['progress_percent']}%")

    # ── Step 5: results ─────────────────────────────────────────────
    r = client.get(f"{portal}/results")
    for result in r.json():
        band = result["band"]["label"] if result["band"] else "-"
        print(f"5. {result['title']:<32} raw={result['raw_score']:>3}  band={band}")

    r = client.get(f"/v1/assignments/{assignment_id}")
    print(f"6. assignment               → status={r.json()['status']}")

    client.delete(portal)
    app.dependency_overrides.pop(get_services, None)


if __name__ == "__main__":
    main()
