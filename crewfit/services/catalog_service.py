"""Assessment catalog: test definitions and the assessments built from them.

Tests are immutable once loaded.  Assessments can be created, duplicated
and moved between draft/published/archived; every change produces a new
frozen record stored through the catalog repository.
"""

from __future__ import annotations

import logging
import re
import unicodedata
from collections.abc import Iterable
from dataclasses import replace
from uuid import uuid4

from crewfit.core.clock import Clock
from crewfit.core.errors import DomainValidationError, NotFoundError
from crewfit.models.assessment import Assessment, AssessmentTestRef
from crewfit.models.test import (
    CATALOG_STATUSES,
    OPTION_WEIGHTS,
    SUPPORTED_LANGUAGES,
    PsychologicalTest,
    VersionMeta,
)
from crewfit.repos.store import AssessmentStore

logger = logging.getLogger(__name__)

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


class CatalogValidationError(DomainValidationError):
    pass


class CatalogTestNotFoundError(NotFoundError):
    pass


class AssessmentNotFoundError(NotFoundError):
    pass


def slugify(value: str) -> str:
    """Lowercase ASCII slug: accents stripped, runs of other chars -> '-'."""
    normalized = unicodedata.normalize("NFKD", value)
    ascii_only = normalized.encode("ascii", "ignore").decode("ascii")
    return re.sub(r"[^a-z0-9]+", "-", ascii_only.lower()).strip("-")


def to_base36(number: int) -> str:
    if number < 0:
        raise ValueError("number must be non-negative")
    if number == 0:
        return "0"
    digits = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def new_id(prefix: str) -> str:
    return f"{prefix}-{uuid4().hex[:12]}"


def validate_test(test: PsychologicalTest) -> None:
    """Reject a test whose questions or bands break the catalog invariants."""
    if not test.questions:
        raise CatalogValidationError(f"test {test.id} has no questions")

    seen: set[str] = set()
    for question in test.questions:
        if question.id in seen:
            raise CatalogValidationError(
                f"test {test.id} repeats question id {question.id}"
            )
        seen.add(question.id)
        if sorted(question.weights) != list(OPTION_WEIGHTS):
            raise CatalogValidationError(
                f"question {question.id} must have exactly 4 options "
                f"weighted 1..4 (got {list(question.weights)})"
            )

    for band in test.interpretation_bands:
        if band.min > band.max:
            raise CatalogValidationError(
                f"band {band.id} of test {test.id} has min > max"
            )


def validate_assessment(assessment: Assessment) -> None:
    orders = [ref.order for ref in assessment.tests]
    if len(set(orders)) != len(orders):
        raise CatalogValidationError(
            f"assessment {assessment.id} has duplicate test order values"
        )
    if orders != sorted(orders):
        raise CatalogValidationError(
            f"assessment {assessment.id} test order values must be increasing"
        )


class CatalogService:
    def __init__(self, store: AssessmentStore, clock: Clock) -> None:
        self._repo = store.catalog
        self._clock = clock

    # --- reads ---

    def list_tests(self) -> list[PsychologicalTest]:
        return self._repo.list_tests()

    def get_test(self, test_id: str) -> PsychologicalTest:
        test = self._repo.get_test(test_id)
        if test is None:
            raise CatalogTestNotFoundError(test_id)
        return test

    def list_assessments(self) -> list[Assessment]:
        return self._repo.list_assessments()

    def get_assessment(self, assessment_id: str) -> Assessment:
        assessment = self._repo.get_assessment(assessment_id)
        if assessment is None:
            raise AssessmentNotFoundError(assessment_id)
        return assessment

    # --- writes ---

    def add_test(self, test: PsychologicalTest) -> PsychologicalTest:
        validate_test(test)
        self._repo.add_test(test)
        logger.info("Added test id=%s questions=%d", test.id, len(test.questions))
        return test

    def add_assessment(self, assessment: Assessment) -> Assessment:
        validate_assessment(assessment)
        self._repo.add_assessment(assessment)
        return assessment

    def create_assessment(
        self,
        *,
        name: str,
        default_language: str,
        test_ids: list[str],
        description: str | None = None,
        tags: Iterable[str] | None = None,
        estimated_duration_minutes: int | None = None,
        status: str = "draft",
    ) -> Assessment:
        name = name.strip()
        if not name:
            logger.warning("Rejected assessment with blank name")
            raise CatalogValidationError("name must be non-empty")
        if default_language not in SUPPORTED_LANGUAGES:
            raise CatalogValidationError(f"unsupported language {default_language!r}")
        if status not in CATALOG_STATUSES:
            raise CatalogValidationError(f"unknown status {status!r}")
        if not test_ids:
            raise CatalogValidationError("an assessment needs at least one test")
        if len(set(test_ids)) != len(test_ids):
            raise CatalogValidationError("test ids must not repeat")
        if estimated_duration_minutes is not None and estimated_duration_minutes <= 0:
            raise CatalogValidationError("estimated duration must be positive")

        refs = []
        for index, test_id in enumerate(test_ids):
            test = self._repo.get_test(test_id)
            if test is None:
                logger.warning("Rejected assessment with unknown test=%s", test_id)
                raise CatalogValidationError(f"unknown test {test_id!r}")
            refs.append(
                AssessmentTestRef(test_id=test_id, test_version=test.version, order=index + 1)
            )

        now = self._clock.now()
        slug_base = slugify(name) or "avaliacao"
        stamp = to_base36(int(now.timestamp() * 1000))
        assessment = Assessment(
            id=new_id("assessment"),
            name=name,
            slug=f"{slug_base}-{stamp}",
            tests=tuple(refs),
            default_language=default_language,
            created_at=now,
            updated_at=now,
            version=1,
            status=status,
            history=(VersionMeta(version=1, created_at=now, note="Created manually"),),
            description=(description or "").strip() or None,
            estimated_duration_minutes=estimated_duration_minutes,
            tags=tuple(t.strip() for t in (tags or ()) if t.strip()),
        )
        self._repo.add_assessment(assessment)
        logger.info(
            "Created assessment id=%s slug=%s tests=%d",
            assessment.id,
            assessment.slug,
            len(refs),
        )
        return assessment

    def duplicate_assessment(self, assessment_id: str, suffix: str | None = None) -> Assessment:
        source = self.get_assessment(assessment_id)
        now = self._clock.now()
        suffix = (suffix or "").strip() or "copia"

        copy = replace(
            source,
            id=new_id("assessment"),
            name=f"{source.name} ({suffix})",
            slug=slugify(f"{source.slug}-{suffix}")
            or f"{source.slug}-{to_base36(int(now.timestamp() * 1000))}",
            created_at=now,
            updated_at=now,
            version=1,
            status="draft",
            history=(
                VersionMeta(version=1, created_at=now, note=f"Copied from {source.name}"),
            ),
        )
        self._repo.add_assessment(copy)
        logger.info("Duplicated assessment source=%s copy=%s", source.id, copy.id)
        return copy

    def update_assessment_status(self, assessment_id: str, status: str) -> Assessment:
        if status not in CATALOG_STATUSES:
            logger.warning("Rejected assessment status=%r", status)
            raise CatalogValidationError(f"unknown status {status!r}")
        assessment = self.get_assessment(assessment_id)
        updated = replace(assessment, status=status, updated_at=self._clock.now())
        if self._repo.replace_assessment(updated) is None:
            raise AssessmentNotFoundError(assessment_id)
        logger.info("Assessment id=%s status=%s", assessment_id, status)
        return updated
