from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

# test_id -> question_id -> chosen weight (None = unanswered)
AnswerMap = dict[str, dict[str, int | None]]


@dataclass(frozen=True, slots=True)
class AssessmentSession:
    """Persisted snapshot of a portal session, written on every autosave.

    Loaded again when the respondent reopens the link so answers and the
    remaining time survive a reload.
    """

    assignment_id: str
    started_at: datetime
    last_saved_at: datetime
    status: str = "active"  # active|paused|completed
    answers: AnswerMap = field(default_factory=dict)
    timer_ms: int | None = None
    current_test_index: int = 0
    current_question_index: int = 0
    completed_at: datetime | None = None

    def answer_for(self, test_id: str, question_id: str) -> int | None:
        return self.answers.get(test_id, {}).get(question_id)
