from __future__ import annotations

import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from crewfit.api.dependencies import Services, build_services, get_services
from crewfit.core.clock import ManualClock
from crewfit.main import app
from crewfit.repos.store import AssessmentStore
from crewfit.services.seed import seed_demo_data

# Ensure repo root is on sys.path so `import crewfit` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


@pytest.fixture
def clock() -> ManualClock:
    """Starts 2024-06-03 08:00 UTC: the demo check-in link is still valid."""
    return ManualClock()


@pytest.fixture
def store() -> AssessmentStore:
    store = AssessmentStore.in_memory()
    seed_demo_data(store)
    return store


@pytest.fixture
def services(store: AssessmentStore, clock: ManualClock) -> Services:
    return build_services(store, clock)


@pytest.fixture(autouse=True)
def override_services(services: Services):
    """Every test gets a fresh seeded store and a manual clock."""
    app.dependency_overrides[get_services] = lambda: services
    yield
    services.portal.close_all()
    app.dependency_overrides.pop(get_services, None)


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)
