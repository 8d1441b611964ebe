from __future__ import annotations

from typing import Protocol

from crewfit.models.assessment import Assessment
from crewfit.models.test import PsychologicalTest


class CatalogRepo(Protocol):
    def list_tests(self) -> list[PsychologicalTest]: ...
    def get_test(self, test_id: str) -> PsychologicalTest | None: ...
    def add_test(self, test: PsychologicalTest) -> None: ...
    def list_assessments(self) -> list[Assessment]: ...
    def get_assessment(self, assessment_id: str) -> Assessment | None: ...
    def add_assessment(self, assessment: Assessment) -> None: ...
    def replace_assessment(self, assessment: Assessment) -> Assessment | None: ...


class InMemoryCatalogRepo:
    def __init__(self) -> None:
        self._tests: dict[str, PsychologicalTest] = {}
        self._assessments: dict[str, Assessment] = {}

    def list_tests(self) -> list[PsychologicalTest]:
        return list(self._tests.values())

    def get_test(self, test_id: str) -> PsychologicalTest | None:
        return self._tests.get(test_id)

    def add_test(self, test: PsychologicalTest) -> None:
        if test.id in self._tests:
            raise ValueError("test id already exists")
        self._tests[test.id] = test

    def list_assessments(self) -> list[Assessment]:
        # Newest first, like the operator list view
        return sorted(
            self._assessments.values(), key=lambda a: a.created_at, reverse=True
        )

    def get_assessment(self, assessment_id: str) -> Assessment | None:
        return self._assessments.get(assessment_id)

    def add_assessment(self, assessment: Assessment) -> None:
        if assessment.id in self._assessments:
            raise ValueError("assessment id already exists")
        self._assessments[assessment.id] = assessment

    def replace_assessment(self, assessment: Assessment) -> Assessment | None:
        if assessment.id not in self._assessments:
            return None
        self._assessments[assessment.id] = assessment
        return assessment
