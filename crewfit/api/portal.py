"""Respondent-facing portal endpoints, keyed by link code.

  GET    /v1/portal/{code}            resolve the link and open (or resume) the session
  POST   /v1/portal/{code}/start      landing -> active
  POST   /v1/portal/{code}/pause      toggle pause (timer only)
  POST   /v1/portal/{code}/answer     {"value": 1..4 | null} for the current question
  POST   /v1/portal/{code}/next
  POST   /v1/portal/{code}/previous
  POST   /v1/portal/{code}/finish     only once every question is answered
  GET    /v1/portal/{code}/results    per-test scores once completed
  DELETE /v1/portal/{code}            leave: flush pending autosave, drop the runtime

Every mutating endpoint returns the full session state so the client can
re-render from a single response.

Handlers must be ``async``: session timers are scheduled on the running
event loop.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import BaseModel

from crewfit.api.catalog import OptionOut, QuestionOut
from crewfit.api.dependencies import Services, get_services
from crewfit.services.portal_service import (
    PortalData,
    PortalExpiredError,
    PortalLinkNotFoundError,
    PortalUnavailableError,
)
from crewfit.services.session_runtime import (
    SessionRuntime,
    SessionStateError,
    SessionValidationError,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/portal", tags=["portal"])


class AnswerIn(BaseModel):
    value: int | None = None


class PortalTestOut(BaseModel):
    test_id: str
    title: str
    order: int
    question_count: int
    answered: int


class SessionStateOut(BaseModel):
    status: str
    code: str
    language: str
    assessment_id: str
    assessment_name: str
    assignment_id: str | None = None
    mode: str
    is_paused: bool
    time_left_ms: int
    progress_percent: int
    answered_count: int
    total_questions: int
    all_answered: bool
    current_test_index: int
    current_question_index: int
    current_test_id: str
    current_test_title: str
    current_question: QuestionOut | None = None
    current_answer: int | None = None
    is_saving: bool
    last_saved_at: datetime | None = None
    save_error: str | None = None
    tests: list[PortalTestOut]


class BandResultOut(BaseModel):
    id: str
    label: str
    description: str
    color: str | None = None


class TestResultOut(BaseModel):
    test_id: str
    title: str
    raw_score: int
    normalized_score: float
    answered_count: int
    total_questions: int
    min_theoretical: int
    max_theoretical: int
    band: BandResultOut | None = None


def _state_out(data: PortalData, runtime: SessionRuntime) -> SessionStateOut:
    link, assessment = data.link, data.assessment
    if link is None or assessment is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Assessment unavailable"
        )
    question = runtime.current_question
    answers = runtime.answers
    return SessionStateOut(
        status=data.status,
        code=link.code,
        language=link.language,
        assessment_id=assessment.id,
        assessment_name=assessment.name,
        assignment_id=runtime.assignment_id,
        mode=runtime.mode,
        is_paused=runtime.is_paused,
        time_left_ms=runtime.time_left_ms,
        progress_percent=runtime.progress_percent,
        answered_count=runtime.answered_count,
        total_questions=runtime.total_questions,
        all_answered=runtime.all_answered,
        current_test_index=runtime.current_test_index,
        current_question_index=runtime.current_question_index,
        current_test_id=runtime.current_test.id,
        current_test_title=runtime.current_test.title,
        current_question=(
            QuestionOut(
                id=question.id,
                prompt=question.prompt,
                dimension=question.dimension,
                help_text=question.help_text,
                options=[
                    OptionOut(id=o.id, label=o.label, weight=o.weight)
                    for o in question.options
                ],
            )
            if question is not None
            else None
        ),
        current_answer=runtime.current_answer,
        is_saving=runtime.is_saving,
        last_saved_at=runtime.last_saved_at,
        save_error=runtime.save_error,
        tests=[
            PortalTestOut(
                test_id=pt.test.id,
                title=pt.test.title,
                order=pt.ref.order,
                question_count=len(pt.test.questions),
                answered=sum(1 for v in answers[pt.test.id].values() if v is not None),
            )
            for pt in runtime.tests
        ],
    )


def _open(services: Services, code: str) -> tuple[PortalData, SessionRuntime]:
    try:
        return services.portal.open(code)
    except PortalExpiredError:
        raise HTTPException(
            status_code=status.HTTP_410_GONE, detail="Link expired"
        ) from None
    except PortalLinkNotFoundError as exc:
        detail = "Link not found" if exc.status == "not_found" else "Assessment unavailable"
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=detail) from None
    except PortalUnavailableError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Link code required"
        ) from None


def _conflict(code: str, exc: Exception) -> HTTPException:
    logger.warning("Portal code=%s rejected: %s", code, exc, extra={"link_code": code})
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))


@router.get("/{code}", response_model=SessionStateOut)
async def open_portal(
    code: str,
    services: Annotated[Services, Depends(get_services)],
) -> SessionStateOut:
    data, runtime = _open(services, code)
    return _state_out(data, runtime)


@router.post("/{code}/start", response_model=SessionStateOut)
async def start_session(
    code: str,
    services: Annotated[Services, Depends(get_services)],
) -> SessionStateOut:
    data, runtime = _open(services, code)
    try:
        runtime.handle_start()
    except SessionStateError as exc:
        raise _conflict(code, exc) from None
    return _state_out(data, runtime)


@router.post("/{code}/pause", response_model=SessionStateOut)
async def toggle_pause(
    code: str,
    services: Annotated[Services, Depends(get_services)],
) -> SessionStateOut:
    data, runtime = _open(services, code)
    try:
        runtime.handle_toggle_pause()
    except SessionStateError as exc:
        raise _conflict(code, exc) from None
    return _state_out(data, runtime)


@router.post("/{code}/answer", response_model=SessionStateOut)
async def answer_question(
    code: str,
    body: AnswerIn,
    services: Annotated[Services, Depends(get_services)],
) -> SessionStateOut:
    data, runtime = _open(services, code)
    try:
        runtime.handle_answer_change(body.value)
    except SessionValidationError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from None
    except SessionStateError as exc:
        raise _conflict(code, exc) from None
    return _state_out(data, runtime)


@router.post("/{code}/next", response_model=SessionStateOut)
async def next_question(
    code: str,
    services: Annotated[Services, Depends(get_services)],
) -> SessionStateOut:
    data, runtime = _open(services, code)
    try:
        runtime.go_to_next_question()
    except SessionStateError as exc:
        raise _conflict(code, exc) from None
    return _state_out(data, runtime)


@router.post("/{code}/previous", response_model=SessionStateOut)
async def previous_question(
    code: str,
    services: Annotated[Services, Depends(get_services)],
) -> SessionStateOut:
    data, runtime = _open(services, code)
    try:
        runtime.go_to_previous_question()
    except SessionStateError as exc:
        raise _conflict(code, exc) from None
    return _state_out(data, runtime)


@router.post("/{code}/finish", response_model=SessionStateOut)
async def finish_session(
    code: str,
    services: Annotated[Services, Depends(get_services)],
) -> SessionStateOut:
    data, runtime = _open(services, code)
    try:
        runtime.handle_finish()
    except SessionStateError as exc:
        raise _conflict(code, exc) from None
    return _state_out(data, runtime)


@router.get("/{code}/results", response_model=list[TestResultOut])
async def session_results(
    code: str,
    services: Annotated[Services, Depends(get_services)],
) -> list[TestResultOut]:
    _, runtime = _open(services, code)
    if runtime.mode != "completed":
        raise _conflict(code, SessionStateError("results are available once completed"))
    return [
        TestResultOut(
            test_id=r.test_id,
            title=r.title,
            raw_score=r.summary.raw_score,
            normalized_score=r.summary.normalized_score,
            answered_count=r.summary.answered_count,
            total_questions=r.summary.total_questions,
            min_theoretical=r.summary.min_theoretical,
            max_theoretical=r.summary.max_theoretical,
            band=(
                BandResultOut(
                    id=r.band.id,
                    label=r.band.label,
                    description=r.band.description,
                    color=r.band.color,
                )
                if r.band is not None
                else None
            ),
        )
        for r in runtime.results()
    ]


@router.delete("/{code}", status_code=status.HTTP_204_NO_CONTENT)
async def leave_portal(
    code: str,
    services: Annotated[Services, Depends(get_services)],
) -> Response:
    if not services.portal.close(code):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="No open session for this code"
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
