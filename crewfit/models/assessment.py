from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from crewfit.models.test import VersionMeta


@dataclass(frozen=True, slots=True)
class AssessmentTestRef:
    test_id: str
    test_version: int
    order: int


@dataclass(frozen=True, slots=True)
class Assessment:
    """An ordered bundle of tests presented together to a respondent."""

    id: str
    name: str
    slug: str
    tests: tuple[AssessmentTestRef, ...]
    default_language: str
    created_at: datetime
    updated_at: datetime
    version: int = 1
    status: str = "draft"  # draft|published|archived
    history: tuple[VersionMeta, ...] = ()
    description: str | None = None
    estimated_duration_minutes: int | None = None
    tags: tuple[str, ...] = ()

    def ordered_refs(self) -> list[AssessmentTestRef]:
        return sorted(self.tests, key=lambda ref: ref.order)
