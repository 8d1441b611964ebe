"""Portal orchestration: turn a link code into a ready-to-run session.

``resolve(code)`` is a pure read that reports one of:

  idle       no code given
  not_found  no link with that code
  expired    the link registry reports the link expired
  missing    the assessment, or every one of its tests, is gone
  ready      link + assessment + ordered tests (+ assignment and stored
             session when they exist)

``open(code)`` builds a ``SessionRuntime`` for a ready portal and keeps it
keyed by code until ``close(code)`` or until it completes.  The runtime
writes back through an ``AssignmentSessionSink`` bound to the assignment
the portal picked.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import partial
from typing import Literal

from crewfit.core.clock import Clock
from crewfit.core.errors import ConflictError, NotFoundError
from crewfit.core.metrics import ACTIVE_SESSIONS
from crewfit.models.assessment import Assessment
from crewfit.models.assignment import AssessmentAssignment
from crewfit.models.link import AssessmentLink
from crewfit.models.session import AssessmentSession
from crewfit.repos.session_repo import SessionRepo, SessionStoreError
from crewfit.repos.store import AssessmentStore
from crewfit.services.assignment_service import (
    AssignmentNotFoundError,
    AssignmentTracker,
)
from crewfit.services.link_service import LinkRegistry
from crewfit.services.session_runtime import (
    PortalTest,
    SessionPersistenceError,
    SessionRuntime,
    SessionSnapshot,
)

logger = logging.getLogger(__name__)

PortalStatus = Literal["idle", "not_found", "expired", "missing", "ready"]


@dataclass(frozen=True, slots=True)
class PortalData:
    status: PortalStatus
    link: AssessmentLink | None = None
    assessment: Assessment | None = None
    assignment: AssessmentAssignment | None = None
    session: AssessmentSession | None = None
    tests: tuple[PortalTest, ...] = ()


class PortalUnavailableError(Exception):
    """The code did not resolve to a ready portal."""

    def __init__(self, code: str | None, status: PortalStatus) -> None:
        super().__init__(f"portal {code!r} is {status}")
        self.code = code
        self.status = status


class PortalLinkNotFoundError(PortalUnavailableError, NotFoundError):
    pass


class PortalExpiredError(PortalUnavailableError, ConflictError):
    pass


def snapshot_to_session(snapshot: SessionSnapshot) -> AssessmentSession:
    if snapshot.mode == "completed":
        status = "completed"
    elif snapshot.is_paused:
        status = "paused"
    else:
        status = "active"
    return AssessmentSession(
        assignment_id=snapshot.assignment_id or "",
        started_at=snapshot.started_at or snapshot.captured_at,
        last_saved_at=snapshot.captured_at,
        status=status,
        answers=snapshot.answers,
        timer_ms=snapshot.time_left_ms,
        current_test_index=snapshot.current_test_index,
        current_question_index=snapshot.current_question_index,
        completed_at=snapshot.completed_at,
    )


class AssignmentSessionSink:
    """Writes runtime progress to the assignment and the session store."""

    def __init__(
        self, tracker: AssignmentTracker, sessions: SessionRepo, assignment_id: str
    ) -> None:
        self._tracker = tracker
        self._sessions = sessions
        self._assignment_id = assignment_id

    def status_changed(self, status: str, progress_percent: int) -> None:
        try:
            self._tracker.update_assignment_status(
                self._assignment_id, status, progress_percent
            )
        except AssignmentNotFoundError:
            logger.warning(
                "Assignment %s was removed; status %s not recorded",
                self._assignment_id,
                status,
                extra={"assignment_id": self._assignment_id},
            )

    def save(self, snapshot: SessionSnapshot) -> None:
        try:
            self._tracker.update_assignment_progress(
                self._assignment_id,
                percentage=snapshot.progress_percent,
                current_test_id=snapshot.current_test_id,
                current_question_id=snapshot.current_question_id,
                completed_tests=snapshot.completed_tests,
                remaining_time_ms=snapshot.time_left_ms,
            )
        except AssignmentNotFoundError:
            logger.warning(
                "Assignment %s was removed; progress not recorded",
                self._assignment_id,
                extra={"assignment_id": self._assignment_id},
            )

        try:
            self._sessions.save(snapshot_to_session(snapshot))
        except SessionStoreError as exc:
            raise SessionPersistenceError(str(exc)) from exc


class PortalService:
    def __init__(
        self,
        store: AssessmentStore,
        clock: Clock,
        *,
        links: LinkRegistry,
        tracker: AssignmentTracker,
        autosave_delay_ms: int = 600,
        default_duration_minutes: int = 30,
    ) -> None:
        self._catalog = store.catalog
        self._sessions = store.sessions
        self._clock = clock
        self._links = links
        self._tracker = tracker
        self._autosave_delay_ms = autosave_delay_ms
        self._default_duration_minutes = default_duration_minutes
        self._runtimes: dict[str, SessionRuntime] = {}

    def resolve(self, code: str | None) -> PortalData:
        if not code:
            return PortalData(status="idle")

        link = self._links.get_by_code(code)
        if link is None:
            return PortalData(status="not_found")
        if self._links.is_expired(link):
            return PortalData(status="expired", link=link)

        assessment = self._catalog.get_assessment(link.assessment_id)
        if assessment is None:
            logger.warning(
                "Link code=%s points to missing assessment=%s",
                code,
                link.assessment_id,
                extra={"link_code": code},
            )
            return PortalData(status="missing", link=link)

        tests = []
        for ref in assessment.ordered_refs():
            test = self._catalog.get_test(ref.test_id)
            if test is None:
                logger.warning(
                    "Assessment %s references missing test=%s",
                    assessment.id,
                    ref.test_id,
                    extra={"link_code": code},
                )
                continue
            tests.append(PortalTest(ref=ref, test=test))
        if not tests:
            return PortalData(status="missing", link=link, assessment=assessment)

        assignment = self._tracker.find_for_link(link.id)
        session = None
        if assignment is not None:
            try:
                session = self._sessions.get_by_assignment(assignment.id)
            except SessionStoreError:
                logger.exception(
                    "Could not load stored session for assignment=%s",
                    assignment.id,
                    extra={"assignment_id": assignment.id, "link_code": code},
                )

        return PortalData(
            status="ready",
            link=link,
            assessment=assessment,
            assignment=assignment,
            session=session,
            tests=tuple(tests),
        )

    def open(self, code: str | None) -> tuple[PortalData, SessionRuntime]:
        """Resolve ``code`` and return its runtime, creating it on first use.

        Only unfinished runtimes are kept.  A completed one is rebuilt from
        the stored state on each call and never held.
        """
        if not code:
            raise PortalUnavailableError(code, "idle")

        data = self.resolve(code)
        if data.status != "ready":
            self.close(code)
            logger.info(
                "Portal code=%s unavailable: %s", code, data.status, extra={"link_code": code}
            )
            if data.status == "expired":
                raise PortalExpiredError(code, data.status)
            if data.status in ("not_found", "missing"):
                raise PortalLinkNotFoundError(code, data.status)
            raise PortalUnavailableError(code, data.status)

        runtime = self._runtimes.get(code)
        if runtime is not None:
            return data, runtime

        sink = None
        if data.assignment is not None:
            sink = AssignmentSessionSink(self._tracker, self._sessions, data.assignment.id)
        runtime = SessionRuntime(
            data.tests,
            clock=self._clock,
            assignment=data.assignment,
            session=data.session,
            assessment_duration_minutes=(
                data.assessment.estimated_duration_minutes if data.assessment else None
            ),
            default_duration_minutes=self._default_duration_minutes,
            autosave_delay_ms=self._autosave_delay_ms,
            sink=sink,
            on_complete=partial(self._evict, code),
        )
        logger.info(
            "Opened portal code=%s mode=%s assignment=%s",
            code,
            runtime.mode,
            runtime.assignment_id,
            extra={"link_code": code, "assignment_id": runtime.assignment_id},
        )
        if runtime.mode == "completed":
            return data, runtime

        self._runtimes[code] = runtime
        ACTIVE_SESSIONS.inc()
        return data, runtime

    def get_runtime(self, code: str) -> SessionRuntime | None:
        return self._runtimes.get(code)

    def _evict(self, code: str, runtime: SessionRuntime) -> None:
        # Called by a runtime as it completes; its timers are already stopped.
        if self._runtimes.get(code) is not runtime:
            return
        del self._runtimes[code]
        ACTIVE_SESSIONS.dec()
        logger.info("Released completed portal code=%s", code, extra={"link_code": code})

    def close(self, code: str) -> bool:
        runtime = self._runtimes.pop(code, None)
        if runtime is None:
            return False
        runtime.dispose()
        ACTIVE_SESSIONS.dec()
        logger.info("Closed portal code=%s", code, extra={"link_code": code})
        return True

    def close_all(self) -> None:
        for code in list(self._runtimes):
            self.close(code)
