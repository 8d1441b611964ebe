from __future__ import annotations

from dataclasses import replace
from datetime import timedelta

import pytest

from crewfit.api.dependencies import Services
from crewfit.core.clock import ManualClock
from crewfit.models.test import QuestionOption, ScoreBand, WeightedQuestion
from crewfit.services.catalog_service import (
    AssessmentNotFoundError,
    CatalogTestNotFoundError,
    CatalogValidationError,
    slugify,
    to_base36,
    validate_assessment,
    validate_test,
)
from crewfit.services.seed import demo_assessments, demo_tests


def test_list_tests_returns_seeded_catalog(services: Services) -> None:
    ids = [t.id for t in services.catalog.list_tests()]
    assert ids == ["test-disc-pt", "test-collaboration-pt", "test-resilience-pt"]


def test_list_assessments_newest_first(services: Services) -> None:
    ids = [a.id for a in services.catalog.list_assessments()]
    assert ids == ["assessment-onboarding", "assessment-checkin"]


def test_get_unknown_test_raises(services: Services) -> None:
    with pytest.raises(CatalogTestNotFoundError):
        services.catalog.get_test("nope")


def test_get_unknown_assessment_raises(services: Services) -> None:
    with pytest.raises(AssessmentNotFoundError):
        services.catalog.get_assessment("nope")


# ---- helpers ----


def test_slugify_strips_accents_and_punctuation() -> None:
    assert slugify("Avaliação de Integração!") == "avaliacao-de-integracao"
    assert slugify("  ---  ") == ""


def test_to_base36() -> None:
    assert to_base36(0) == "0"
    assert to_base36(35) == "z"
    assert to_base36(36) == "10"


# ---- validation ----


def test_validate_test_accepts_seeded_tests() -> None:
    for test in demo_tests():
        validate_test(test)


def test_validate_test_rejects_repeated_weights() -> None:
    disc = demo_tests()[0]
    bad_question = WeightedQuestion(
        id="disc-1",
        prompt="?",
        options=tuple(QuestionOption(id=f"o{i}", label="x", weight=w) for i, w in enumerate([1, 2, 2, 4])),
    )
    broken = replace(disc, questions=(bad_question,) + disc.questions[1:])
    with pytest.raises(CatalogValidationError, match="weighted 1..4"):
        validate_test(broken)


def test_validate_test_rejects_three_options() -> None:
    disc = demo_tests()[0]
    q = disc.questions[0]
    broken = replace(disc, questions=(replace(q, options=q.options[:3]),) + disc.questions[1:])
    with pytest.raises(CatalogValidationError):
        validate_test(broken)


def test_validate_test_rejects_inverted_band() -> None:
    disc = demo_tests()[0]
    broken = replace(
        disc, interpretation_bands=(ScoreBand(id="x", label="x", min=30, max=10),)
    )
    with pytest.raises(CatalogValidationError, match="min > max"):
        validate_test(broken)


def test_validate_assessment_rejects_duplicate_orders() -> None:
    onboarding = demo_assessments()[0]
    refs = onboarding.tests
    broken = replace(onboarding, tests=(refs[0], replace(refs[1], order=1)))
    with pytest.raises(CatalogValidationError, match="duplicate"):
        validate_assessment(broken)


# ---- create / duplicate / status ----


def test_create_assessment(services: Services, clock: ManualClock) -> None:
    assessment = services.catalog.create_assessment(
        name="Avaliação Semestral",
        default_language="pt",
        test_ids=["test-resilience-pt", "test-disc-pt"],
        tags=["semestral", "  "],
    )

    assert assessment.slug.startswith("avaliacao-semestral-")
    assert [(r.test_id, r.test_version, r.order) for r in assessment.tests] == [
        ("test-resilience-pt", 1, 1),
        ("test-disc-pt", 3, 2),
    ]
    assert assessment.status == "draft"
    assert assessment.version == 1
    assert assessment.tags == ("semestral",)
    assert assessment.created_at == clock.now()
    assert [h.note for h in assessment.history] == ["Created manually"]
    assert services.catalog.get_assessment(assessment.id) == assessment


def test_create_assessment_blank_name_falls_back_slug(services: Services) -> None:
    assessment = services.catalog.create_assessment(
        name="???", default_language="en", test_ids=["test-disc-pt"]
    )
    assert assessment.slug.startswith("avaliacao-")


@pytest.mark.parametrize(
    ("kwargs", "match"),
    [
        ({"name": "   "}, "name"),
        ({"default_language": "fr"}, "language"),
        ({"test_ids": []}, "at least one"),
        ({"test_ids": ["test-disc-pt", "test-disc-pt"]}, "repeat"),
        ({"test_ids": ["ghost"]}, "unknown test"),
        ({"status": "live"}, "status"),
        ({"estimated_duration_minutes": 0}, "positive"),
    ],
)
def test_create_assessment_rejects(services: Services, kwargs: dict, match: str) -> None:
    params = {"name": "Quarterly", "default_language": "pt", "test_ids": ["test-disc-pt"]}
    params.update(kwargs)
    before = len(services.catalog.list_assessments())
    with pytest.raises(CatalogValidationError, match=match):
        services.catalog.create_assessment(**params)
    assert len(services.catalog.list_assessments()) == before


def test_duplicate_assessment(services: Services, clock: ManualClock) -> None:
    clock.advance(60_000)
    copy = services.catalog.duplicate_assessment("assessment-onboarding")

    assert copy.id != "assessment-onboarding"
    assert copy.name == "Avaliacao de Integracao (copia)"
    assert copy.slug == "avaliacao-integracao-copia"
    assert copy.status == "draft"
    assert copy.version == 1
    assert copy.tests == services.catalog.get_assessment("assessment-onboarding").tests
    assert copy.created_at == clock.now()
    assert services.catalog.list_assessments()[0].id == copy.id


def test_duplicate_unknown_assessment_raises(services: Services) -> None:
    with pytest.raises(AssessmentNotFoundError):
        services.catalog.duplicate_assessment("nope")


def test_update_assessment_status(services: Services, clock: ManualClock) -> None:
    clock.advance(int(timedelta(hours=1).total_seconds() * 1000))
    updated = services.catalog.update_assessment_status("assessment-checkin", "published")

    assert updated.status == "published"
    assert updated.updated_at == clock.now()
    assert services.catalog.get_assessment("assessment-checkin").status == "published"


def test_update_assessment_status_rejects_unknown(services: Services) -> None:
    with pytest.raises(CatalogValidationError):
        services.catalog.update_assessment_status("assessment-checkin", "deleted")
