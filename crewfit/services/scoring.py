from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from crewfit.models.test import OPTION_WEIGHTS, PsychologicalTest, ScoreBand


@dataclass(frozen=True, slots=True)
class ScoreSummary:
    raw_score: int
    normalized_score: float
    answered_count: int
    total_questions: int
    min_theoretical: int
    max_theoretical: int


def calculate_raw_score(weights: Iterable[int]) -> int:
    return sum(weights)


def calculate_normalized_score(raw_score: int, answered_count: int) -> float:
    """Map a raw score onto 0..100 given how many questions were answered."""
    if answered_count <= 0:
        return 0.0

    min_possible = answered_count * OPTION_WEIGHTS[0]
    max_possible = answered_count * OPTION_WEIGHTS[-1]
    if max_possible == min_possible:
        return 0.0

    normalized = (raw_score - min_possible) / (max_possible - min_possible) * 100
    return max(0.0, min(100.0, normalized))


def summarize_test_score(
    test: PsychologicalTest, answers: Mapping[str, int | None]
) -> ScoreSummary:
    """Score one test from a ``question_id -> weight`` map.

    Unanswered questions (missing or None) are left out of the raw and
    normalized scores but still count toward the theoretical range.
    """
    answered = [
        answers[q.id] for q in test.questions if answers.get(q.id) is not None
    ]
    raw = calculate_raw_score(answered)  # type: ignore[arg-type]
    total = len(test.questions)
    return ScoreSummary(
        raw_score=raw,
        normalized_score=calculate_normalized_score(raw, len(answered)),
        answered_count=len(answered),
        total_questions=total,
        min_theoretical=total * OPTION_WEIGHTS[0],
        max_theoretical=total * OPTION_WEIGHTS[-1],
    )


def find_score_band(bands: Iterable[ScoreBand], value: float) -> ScoreBand | None:
    for band in bands:
        if band.min <= value <= band.max:
            return band
    return None
