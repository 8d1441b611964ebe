"""Assignment endpoints.

  GET    /v1/assignments?link_id=&assessment_id=
  GET    /v1/assignments/{assignment_id}
  POST   /v1/assignments                      new attempt, status pending
  PATCH  /v1/assignments/{assignment_id}/status
  DELETE /v1/assignments/{assignment_id}
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import BaseModel

from crewfit.api.dependencies import Services, get_services
from crewfit.models.assignment import AssessmentAssignment
from crewfit.services.assignment_service import (
    AssignmentNotFoundError,
    AssignmentValidationError,
    InvalidTransitionError,
)
from crewfit.services.catalog_service import AssessmentNotFoundError
from crewfit.services.link_service import LinkNotFoundError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/assignments", tags=["assignments"])


class AssignmentCreateIn(BaseModel):
    assessment_id: str
    assignee_id: str
    assignee_name: str
    language: str = "pt"
    link_id: str


class StatusUpdateIn(BaseModel):
    status: str
    progress_percentage: float | None = None


class ProgressOut(BaseModel):
    current_test_id: str | None = None
    current_question_id: str | None = None
    completed_tests: list[str]
    percentage: int
    remaining_time_ms: int | None = None


class AssignmentOut(BaseModel):
    id: str
    assessment_id: str
    assignee_id: str
    assignee_name: str | None = None
    link_id: str
    language: str
    status: str
    progress: ProgressOut
    attempt: int
    started_at: datetime | None = None
    completed_at: datetime | None = None
    last_activity_at: datetime | None = None


def assignment_out(assignment: AssessmentAssignment) -> AssignmentOut:
    progress = assignment.progress
    return AssignmentOut(
        id=assignment.id,
        assessment_id=assignment.assessment_id,
        assignee_id=assignment.assignee_id,
        assignee_name=assignment.assignee_name,
        link_id=assignment.link_id,
        language=assignment.language,
        status=assignment.status,
        progress=ProgressOut(
            current_test_id=progress.current_test_id,
            current_question_id=progress.current_question_id,
            completed_tests=list(progress.completed_tests),
            percentage=progress.percentage,
            remaining_time_ms=progress.remaining_time_ms,
        ),
        attempt=assignment.attempt,
        started_at=assignment.started_at,
        completed_at=assignment.completed_at,
        last_activity_at=assignment.last_activity_at,
    )


def _assignment_not_found() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND, detail="Assignment not found"
    )


@router.get("", response_model=list[AssignmentOut])
def list_assignments(
    services: Annotated[Services, Depends(get_services)],
    link_id: str | None = None,
    assessment_id: str | None = None,
) -> list[AssignmentOut]:
    items = services.tracker.list_assignments(link_id=link_id, assessment_id=assessment_id)
    return [assignment_out(a) for a in items]


@router.get("/{assignment_id}", response_model=AssignmentOut)
def get_assignment(
    assignment_id: str,
    services: Annotated[Services, Depends(get_services)],
) -> AssignmentOut:
    try:
        return assignment_out(services.tracker.get_assignment(assignment_id))
    except AssignmentNotFoundError:
        raise _assignment_not_found() from None


@router.post("", response_model=AssignmentOut, status_code=status.HTTP_201_CREATED)
def create_assignment(
    body: AssignmentCreateIn,
    services: Annotated[Services, Depends(get_services)],
) -> AssignmentOut:
    try:
        assignment = services.tracker.create_assignment(
            assessment_id=body.assessment_id,
            assignee_id=body.assignee_id,
            assignee_name=body.assignee_name,
            language=body.language,
            link_id=body.link_id,
        )
    except AssessmentNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Assessment not found"
        ) from None
    except LinkNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Link not found"
        ) from None
    except AssignmentValidationError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from None
    return assignment_out(assignment)


@router.patch("/{assignment_id}/status", response_model=AssignmentOut)
def update_assignment_status(
    assignment_id: str,
    body: StatusUpdateIn,
    services: Annotated[Services, Depends(get_services)],
) -> AssignmentOut:
    try:
        updated = services.tracker.update_assignment_status(
            assignment_id, body.status, body.progress_percentage
        )
    except AssignmentNotFoundError:
        raise _assignment_not_found() from None
    except AssignmentValidationError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from None
    except InvalidTransitionError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from None
    return assignment_out(updated)


@router.delete("/{assignment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_assignment(
    assignment_id: str,
    services: Annotated[Services, Depends(get_services)],
) -> Response:
    try:
        services.tracker.remove_assignment(assignment_id)
    except AssignmentNotFoundError:
        raise _assignment_not_found() from None
    return Response(status_code=status.HTTP_204_NO_CONTENT)
