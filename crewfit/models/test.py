from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

SupportedLanguage = Literal["pt", "en", "es"]
SUPPORTED_LANGUAGES: tuple[str, ...] = ("pt", "en", "es")

OptionWeight = Literal[1, 2, 3, 4]
OPTION_WEIGHTS: tuple[int, ...] = (1, 2, 3, 4)

CatalogStatus = Literal["draft", "published", "archived"]
CATALOG_STATUSES: tuple[str, ...] = ("draft", "published", "archived")


@dataclass(frozen=True, slots=True)
class QuestionOption:
    id: str
    label: str
    weight: int  # 1..4


@dataclass(frozen=True, slots=True)
class WeightedQuestion:
    id: str
    prompt: str
    options: tuple[QuestionOption, ...]
    dimension: str | None = None
    help_text: str | None = None

    @property
    def weights(self) -> tuple[int, ...]:
        return tuple(o.weight for o in self.options)


@dataclass(frozen=True, slots=True)
class ScoreBand:
    id: str
    label: str
    min: int
    max: int
    description: str = ""
    color: str | None = None


@dataclass(frozen=True, slots=True)
class VersionMeta:
    version: int
    created_at: datetime
    note: str
    author: str | None = None


@dataclass(frozen=True, slots=True)
class PsychologicalTest:
    """Immutable catalog entry: weighted-option questions plus score bands."""

    id: str
    slug: str
    language: str
    title: str
    description: str
    questions: tuple[WeightedQuestion, ...]
    interpretation_bands: tuple[ScoreBand, ...]
    created_at: datetime
    updated_at: datetime
    version: int = 1
    status: str = "draft"  # draft|published|archived
    estimated_duration_minutes: int | None = None
    available_languages: tuple[str, ...] = SUPPORTED_LANGUAGES
    tags: tuple[str, ...] = ()
    history: tuple[VersionMeta, ...] = field(default_factory=tuple)
