from __future__ import annotations

from datetime import UTC, datetime

import pytest
import redis

from crewfit.models.session import AssessmentSession
from crewfit.repos.session_repo import (
    InMemorySessionRepo,
    RedisSessionRepo,
    SessionStoreError,
    session_from_json,
    session_to_json,
)


class _DictRedis:
    """Just the three commands the repo uses."""

    def __init__(self) -> None:
        self.data: dict[str, str] = {}
        self.ttls: dict[str, int] = {}

    def get(self, key: str) -> str | None:
        return self.data.get(key)

    def setex(self, key: str, ttl: int, value: str) -> None:
        self.data[key] = value
        self.ttls[key] = ttl

    def delete(self, key: str) -> int:
        return 1 if self.data.pop(key, None) is not None else 0


class _DownRedis:
    def get(self, key: str):
        raise redis.ConnectionError("connection refused")

    def setex(self, key: str, ttl: int, value: str):
        raise redis.ConnectionError("connection refused")

    def delete(self, key: str):
        raise redis.ConnectionError("connection refused")


def _session(**overrides) -> AssessmentSession:
    params = {
        "assignment_id": "assignment-ana-onboarding",
        "started_at": datetime(2024, 6, 3, 8, 5, tzinfo=UTC),
        "last_saved_at": datetime(2024, 6, 3, 8, 25, tzinfo=UTC),
        "status": "paused",
        "answers": {"test-disc-pt": {"disc-1": 3, "disc-2": None}},
        "timer_ms": 1_080_000,
        "current_test_index": 1,
        "current_question_index": 4,
    }
    params.update(overrides)
    return AssessmentSession(**params)


def test_json_keeps_answers_and_dates() -> None:
    original = _session(completed_at=datetime(2024, 6, 3, 9, 0, tzinfo=UTC))
    assert session_from_json(session_to_json(original)) == original


def test_in_memory_repo_overwrites_by_assignment() -> None:
    repo = InMemorySessionRepo()
    repo.save(_session(timer_ms=10))
    repo.save(_session(timer_ms=5))

    assert repo.get_by_assignment("assignment-ana-onboarding").timer_ms == 5
    assert repo.remove("assignment-ana-onboarding") is True
    assert repo.remove("assignment-ana-onboarding") is False
    assert repo.get_by_assignment("assignment-ana-onboarding") is None


def test_redis_repo_writes_with_ttl() -> None:
    client = _DictRedis()
    repo = RedisSessionRepo(client, ttl_seconds=3600)

    repo.save(_session())

    assert client.ttls == {"session:assignment-ana-onboarding": 3600}
    assert repo.get_by_assignment("assignment-ana-onboarding") == _session()
    assert repo.get_by_assignment("missing") is None
    assert repo.remove("assignment-ana-onboarding") is True


def test_redis_repo_wraps_connection_errors() -> None:
    repo = RedisSessionRepo(_DownRedis(), ttl_seconds=60)

    with pytest.raises(SessionStoreError, match="write failed"):
        repo.save(_session())
    with pytest.raises(SessionStoreError, match="read failed"):
        repo.get_by_assignment("assignment-ana-onboarding")
