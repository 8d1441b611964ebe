"""Assignment tracker: who is taking which assessment, and how far along.

Status diagram::

    pending -> in_progress <-> paused
        \\          |             |
         `-------> completed <---'

``completed`` is terminal.  Percentages are clamped to 0..100 on every
write, and every write refreshes ``last_activity_at``.  Lookup misses on
mutation raise ``AssignmentNotFoundError``.
"""

from __future__ import annotations

import logging
from dataclasses import replace

from crewfit.core.clock import Clock
from crewfit.core.errors import ConflictError, DomainValidationError, NotFoundError
from crewfit.core.metrics import ASSIGNMENT_TRANSITIONS
from crewfit.models.assignment import (
    ASSIGNMENT_STATUSES,
    AssessmentAssignment,
    AssignmentProgress,
)
from crewfit.models.test import SUPPORTED_LANGUAGES
from crewfit.repos.store import AssessmentStore
from crewfit.services.catalog_service import AssessmentNotFoundError, new_id
from crewfit.services.link_service import LinkNotFoundError

logger = logging.getLogger(__name__)

_UNSET = object()


class AssignmentValidationError(DomainValidationError):
    pass


class AssignmentNotFoundError(NotFoundError):
    pass


class InvalidTransitionError(ConflictError):
    pass


def clamp_percentage(value: float) -> int:
    return int(round(min(100, max(0, value))))


class AssignmentTracker:
    def __init__(self, store: AssessmentStore, clock: Clock) -> None:
        self._repo = store.assignments
        self._links = store.links
        self._catalog = store.catalog
        self._clock = clock

    def get_assignment(self, assignment_id: str) -> AssessmentAssignment:
        assignment = self._repo.get_by_id(assignment_id)
        if assignment is None:
            raise AssignmentNotFoundError(assignment_id)
        return assignment

    def list_assignments(
        self, *, link_id: str | None = None, assessment_id: str | None = None
    ) -> list[AssessmentAssignment]:
        items = (
            self._repo.list_by_link(link_id) if link_id is not None else self._repo.list_all()
        )
        if assessment_id is not None:
            items = [a for a in items if a.assessment_id == assessment_id]
        return items

    def find_for_link(self, link_id: str) -> AssessmentAssignment | None:
        """Pick the assignment a portal visit should resume."""
        candidates = self._repo.list_by_link(link_id)
        for status in ("in_progress", "pending"):
            for assignment in candidates:
                if assignment.status == status:
                    return assignment
        return candidates[0] if candidates else None

    def create_assignment(
        self,
        *,
        assessment_id: str,
        assignee_id: str,
        assignee_name: str,
        language: str,
        link_id: str,
    ) -> AssessmentAssignment:
        assignee_id = assignee_id.strip()
        assignee_name = assignee_name.strip()
        if not assignee_name:
            logger.warning("Rejected assignment with blank assignee name")
            raise AssignmentValidationError("assignee name must be non-empty")
        if not assignee_id:
            logger.warning("Rejected assignment with blank assignee id")
            raise AssignmentValidationError("assignee id must be non-empty")
        if language not in SUPPORTED_LANGUAGES:
            raise AssignmentValidationError(f"unsupported language {language!r}")

        if self._catalog.get_assessment(assessment_id) is None:
            raise AssessmentNotFoundError(assessment_id)
        link = self._links.get_by_id(link_id)
        if link is None:
            raise LinkNotFoundError(link_id)
        if link.assessment_id != assessment_id:
            logger.warning(
                "Rejected assignment: link=%s belongs to assessment=%s not %s",
                link_id,
                link.assessment_id,
                assessment_id,
            )
            raise AssignmentValidationError("link does not belong to this assessment")

        # Re-assigning the same person through the same link is a new attempt.
        previous = [
            a for a in self._repo.list_by_link(link_id) if a.assignee_id == assignee_id
        ]
        now = self._clock.now()
        assignment = AssessmentAssignment(
            id=new_id("assignment"),
            assessment_id=assessment_id,
            assignee_id=assignee_id,
            assignee_name=assignee_name,
            link_id=link_id,
            language=language,
            status="pending",
            progress=AssignmentProgress(),
            attempt=len(previous) + 1,
            last_activity_at=now,
        )
        self._repo.add(assignment)
        logger.info(
            "Created assignment id=%s assignee=%s link=%s attempt=%d",
            assignment.id,
            assignee_id,
            link_id,
            assignment.attempt,
        )
        return assignment

    def update_assignment_status(
        self,
        assignment_id: str,
        status: str,
        progress_percentage: float | None = None,
    ) -> AssessmentAssignment:
        if status not in ASSIGNMENT_STATUSES:
            logger.warning("Rejected assignment status=%r", status)
            raise AssignmentValidationError(f"unknown status {status!r}")

        current = self.get_assignment(assignment_id)
        if current.status == "completed" and status != "completed":
            logger.warning(
                "Rejected transition completed -> %s for assignment=%s",
                status,
                assignment_id,
            )
            raise InvalidTransitionError(f"assignment {assignment_id} is completed")

        now = self._clock.now()
        percentage = (
            clamp_percentage(progress_percentage)
            if progress_percentage is not None
            else current.progress.percentage
        )
        started_at = current.started_at
        if started_at is None and status == "in_progress":
            started_at = now

        updated = replace(
            current,
            status=status,
            progress=replace(current.progress, percentage=percentage),
            started_at=started_at,
            completed_at=now if status == "completed" else current.completed_at,
            last_activity_at=now,
        )
        if self._repo.replace(updated) is None:
            raise AssignmentNotFoundError(assignment_id)

        ASSIGNMENT_TRANSITIONS.labels(status=status).inc()
        logger.info(
            "Assignment id=%s %s -> %s (%d%%)",
            assignment_id,
            current.status,
            status,
            percentage,
            extra={"assignment_id": assignment_id},
        )
        return updated

    def update_assignment_progress(
        self,
        assignment_id: str,
        *,
        percentage: float | None = None,
        current_test_id: str | None | object = _UNSET,
        current_question_id: str | None | object = _UNSET,
        completed_tests: tuple[str, ...] | None = None,
        remaining_time_ms: int | None | object = _UNSET,
    ) -> AssessmentAssignment:
        """Write progress fields without touching the status."""
        current = self.get_assignment(assignment_id)
        progress = current.progress
        changes: dict[str, object] = {}
        if percentage is not None:
            changes["percentage"] = clamp_percentage(percentage)
        if current_test_id is not _UNSET:
            changes["current_test_id"] = current_test_id
        if current_question_id is not _UNSET:
            changes["current_question_id"] = current_question_id
        if completed_tests is not None:
            changes["completed_tests"] = tuple(completed_tests)
        if remaining_time_ms is not _UNSET:
            changes["remaining_time_ms"] = (
                max(0, remaining_time_ms) if remaining_time_ms is not None else None  # type: ignore[call-overload]
            )

        updated = replace(
            current,
            progress=replace(progress, **changes),
            last_activity_at=self._clock.now(),
        )
        if self._repo.replace(updated) is None:
            raise AssignmentNotFoundError(assignment_id)
        logger.debug(
            "Assignment id=%s progress=%d%%",
            assignment_id,
            updated.progress.percentage,
            extra={"assignment_id": assignment_id},
        )
        return updated

    def remove_assignment(self, assignment_id: str) -> None:
        if not self._repo.remove(assignment_id):
            logger.warning("Remove of unknown assignment=%s", assignment_id)
            raise AssignmentNotFoundError(assignment_id)
        logger.info("Removed assignment id=%s", assignment_id)
