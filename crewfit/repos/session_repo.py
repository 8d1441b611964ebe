"""Storage for persisted portal session snapshots.

Two implementations satisfy ``SessionRepo``:

  InMemorySessionRepo - dict keyed by assignment id, used in dev/tests.
  RedisSessionRepo    - one JSON document per assignment under
                        ``session:<assignment_id>`` with a TTL; every save
                        overwrites the previous snapshot.
"""

from __future__ import annotations

import json
from datetime import datetime
from typing import Protocol

import redis

from crewfit.models.session import AssessmentSession


class SessionStoreError(Exception):
    """The backing store rejected a read or write."""


class SessionRepo(Protocol):
    def get_by_assignment(self, assignment_id: str) -> AssessmentSession | None: ...
    def save(self, session: AssessmentSession) -> None: ...
    def remove(self, assignment_id: str) -> bool: ...


class InMemorySessionRepo:
    def __init__(self) -> None:
        self._store: dict[str, AssessmentSession] = {}

    def get_by_assignment(self, assignment_id: str) -> AssessmentSession | None:
        return self._store.get(assignment_id)

    def save(self, session: AssessmentSession) -> None:
        self._store[session.assignment_id] = session

    def remove(self, assignment_id: str) -> bool:
        return self._store.pop(assignment_id, None) is not None


class RedisSessionRepo:
    _PREFIX = "session:"

    def __init__(self, redis_client, ttl_seconds: int) -> None:
        self._redis = redis_client
        self._ttl = ttl_seconds

    def get_by_assignment(self, assignment_id: str) -> AssessmentSession | None:
        try:
            raw = self._redis.get(f"{self._PREFIX}{assignment_id}")
        except redis.RedisError as exc:
            raise SessionStoreError(f"read failed for {assignment_id}: {exc}") from exc
        if raw is None:
            return None
        return session_from_json(raw)

    def save(self, session: AssessmentSession) -> None:
        try:
            self._redis.setex(
                f"{self._PREFIX}{session.assignment_id}",
                self._ttl,
                session_to_json(session),
            )
        except redis.RedisError as exc:
            raise SessionStoreError(
                f"write failed for {session.assignment_id}: {exc}"
            ) from exc

    def remove(self, assignment_id: str) -> bool:
        try:
            return bool(self._redis.delete(f"{self._PREFIX}{assignment_id}"))
        except redis.RedisError as exc:
            raise SessionStoreError(f"delete failed for {assignment_id}: {exc}") from exc


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _parse(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def session_to_json(session: AssessmentSession) -> str:
    return json.dumps(
        {
            "assignment_id": session.assignment_id,
            "status": session.status,
            "started_at": _iso(session.started_at),
            "last_saved_at": _iso(session.last_saved_at),
            "completed_at": _iso(session.completed_at),
            "answers": session.answers,
            "timer_ms": session.timer_ms,
            "current_test_index": session.current_test_index,
            "current_question_index": session.current_question_index,
        }
    )


def session_from_json(raw: str) -> AssessmentSession:
    data = json.loads(raw)
    return AssessmentSession(
        assignment_id=data["assignment_id"],
        status=data.get("status", "active"),
        started_at=_parse(data["started_at"]),  # type: ignore[arg-type]
        last_saved_at=_parse(data["last_saved_at"]),  # type: ignore[arg-type]
        completed_at=_parse(data.get("completed_at")),
        answers={
            test_id: dict(per_question)
            for test_id, per_question in data.get("answers", {}).items()
        },
        timer_ms=data.get("timer_ms"),
        current_test_index=data.get("current_test_index", 0),
        current_question_index=data.get("current_question_index", 0),
    )
