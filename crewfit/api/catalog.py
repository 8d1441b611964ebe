"""Catalog endpoints: tests (read-only) and assessments.

  GET   /v1/tests                          list tests
  GET   /v1/tests/{test_id}                one test with questions and bands
  GET   /v1/assessments                    newest first
  GET   /v1/assessments/{assessment_id}
  POST  /v1/assessments                    create from existing test ids
  POST  /v1/assessments/{id}/duplicate     copy as a new draft
  PATCH /v1/assessments/{id}/status        draft|published|archived
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from crewfit.api.dependencies import Services, get_services
from crewfit.models.assessment import Assessment
from crewfit.models.test import PsychologicalTest
from crewfit.services.catalog_service import (
    AssessmentNotFoundError,
    CatalogTestNotFoundError,
    CatalogValidationError,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1", tags=["catalog"])


class OptionOut(BaseModel):
    id: str
    label: str
    weight: int


class QuestionOut(BaseModel):
    id: str
    prompt: str
    dimension: str | None = None
    help_text: str | None = None
    options: list[OptionOut]


class BandOut(BaseModel):
    id: str
    label: str
    min: int
    max: int
    description: str
    color: str | None = None


class VersionOut(BaseModel):
    version: int
    created_at: datetime
    note: str
    author: str | None = None


class TestSummaryOut(BaseModel):
    id: str
    slug: str
    language: str
    title: str
    description: str
    version: int
    status: str
    question_count: int
    estimated_duration_minutes: int | None = None
    tags: list[str]
    updated_at: datetime


class TestOut(TestSummaryOut):
    available_languages: list[str]
    questions: list[QuestionOut]
    interpretation_bands: list[BandOut]
    history: list[VersionOut]
    created_at: datetime


class TestRefOut(BaseModel):
    test_id: str
    test_version: int
    order: int


class AssessmentOut(BaseModel):
    id: str
    name: str
    slug: str
    description: str | None = None
    tests: list[TestRefOut]
    default_language: str
    status: str
    version: int
    estimated_duration_minutes: int | None = None
    tags: list[str]
    history: list[VersionOut]
    created_at: datetime
    updated_at: datetime


class AssessmentCreateIn(BaseModel):
    name: str
    default_language: str = "pt"
    test_ids: list[str] = Field(min_length=1)
    description: str | None = None
    tags: list[str] = Field(default_factory=list)
    estimated_duration_minutes: int | None = None
    status: str = "draft"


class DuplicateIn(BaseModel):
    suffix: str | None = None


class StatusIn(BaseModel):
    status: str


def _version_out(test_or_assessment) -> list[VersionOut]:
    return [
        VersionOut(version=v.version, created_at=v.created_at, note=v.note, author=v.author)
        for v in test_or_assessment.history
    ]


def _test_summary(test: PsychologicalTest) -> TestSummaryOut:
    return TestSummaryOut(
        id=test.id,
        slug=test.slug,
        language=test.language,
        title=test.title,
        description=test.description,
        version=test.version,
        status=test.status,
        question_count=len(test.questions),
        estimated_duration_minutes=test.estimated_duration_minutes,
        tags=list(test.tags),
        updated_at=test.updated_at,
    )


def _test_out(test: PsychologicalTest) -> TestOut:
    return TestOut(
        **_test_summary(test).model_dump(),
        available_languages=list(test.available_languages),
        questions=[
            QuestionOut(
                id=q.id,
                prompt=q.prompt,
                dimension=q.dimension,
                help_text=q.help_text,
                options=[OptionOut(id=o.id, label=o.label, weight=o.weight) for o in q.options],
            )
            for q in test.questions
        ],
        interpretation_bands=[
            BandOut(
                id=b.id,
                label=b.label,
                min=b.min,
                max=b.max,
                description=b.description,
                color=b.color,
            )
            for b in test.interpretation_bands
        ],
        history=_version_out(test),
        created_at=test.created_at,
    )


def assessment_out(assessment: Assessment) -> AssessmentOut:
    return AssessmentOut(
        id=assessment.id,
        name=assessment.name,
        slug=assessment.slug,
        description=assessment.description,
        tests=[
            TestRefOut(test_id=r.test_id, test_version=r.test_version, order=r.order)
            for r in assessment.ordered_refs()
        ],
        default_language=assessment.default_language,
        status=assessment.status,
        version=assessment.version,
        estimated_duration_minutes=assessment.estimated_duration_minutes,
        tags=list(assessment.tags),
        history=_version_out(assessment),
        created_at=assessment.created_at,
        updated_at=assessment.updated_at,
    )


def _not_found(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


def _unprocessable(exc: Exception) -> HTTPException:
    return HTTPException(status_code=422, detail=str(exc))


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


@router.get("/tests", response_model=list[TestSummaryOut])
def list_tests(
    services: Annotated[Services, Depends(get_services)],
) -> list[TestSummaryOut]:
    return [_test_summary(t) for t in services.catalog.list_tests()]


@router.get("/tests/{test_id}", response_model=TestOut)
def get_test(
    test_id: str,
    services: Annotated[Services, Depends(get_services)],
) -> TestOut:
    try:
        return _test_out(services.catalog.get_test(test_id))
    except CatalogTestNotFoundError:
        raise _not_found("Test not found") from None


# ---------------------------------------------------------------------------
# Assessments
# ---------------------------------------------------------------------------


@router.get("/assessments", response_model=list[AssessmentOut])
def list_assessments(
    services: Annotated[Services, Depends(get_services)],
) -> list[AssessmentOut]:
    return [assessment_out(a) for a in services.catalog.list_assessments()]


@router.get("/assessments/{assessment_id}", response_model=AssessmentOut)
def get_assessment(
    assessment_id: str,
    services: Annotated[Services, Depends(get_services)],
) -> AssessmentOut:
    try:
        return assessment_out(services.catalog.get_assessment(assessment_id))
    except AssessmentNotFoundError:
        raise _not_found("Assessment not found") from None


@router.post(
    "/assessments",
    response_model=AssessmentOut,
    status_code=status.HTTP_201_CREATED,
)
def create_assessment(
    body: AssessmentCreateIn,
    services: Annotated[Services, Depends(get_services)],
) -> AssessmentOut:
    try:
        assessment = services.catalog.create_assessment(
            name=body.name,
            default_language=body.default_language,
            test_ids=body.test_ids,
            description=body.description,
            tags=body.tags,
            estimated_duration_minutes=body.estimated_duration_minutes,
            status=body.status,
        )
    except CatalogValidationError as exc:
        logger.warning("Assessment create rejected: %s", exc)
        raise _unprocessable(exc) from None
    return assessment_out(assessment)


@router.post(
    "/assessments/{assessment_id}/duplicate",
    response_model=AssessmentOut,
    status_code=status.HTTP_201_CREATED,
)
def duplicate_assessment(
    assessment_id: str,
    services: Annotated[Services, Depends(get_services)],
    body: DuplicateIn | None = None,
) -> AssessmentOut:
    try:
        copy = services.catalog.duplicate_assessment(
            assessment_id, body.suffix if body else None
        )
    except AssessmentNotFoundError:
        raise _not_found("Assessment not found") from None
    return assessment_out(copy)


@router.patch("/assessments/{assessment_id}/status", response_model=AssessmentOut)
def update_assessment_status(
    assessment_id: str,
    body: StatusIn,
    services: Annotated[Services, Depends(get_services)],
) -> AssessmentOut:
    try:
        updated = services.catalog.update_assessment_status(assessment_id, body.status)
    except AssessmentNotFoundError:
        raise _not_found("Assessment not found") from None
    except CatalogValidationError as exc:
        raise _unprocessable(exc) from None
    return assessment_out(updated)
