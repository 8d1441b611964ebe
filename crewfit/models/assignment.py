from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

AssignmentStatus = Literal["pending", "in_progress", "paused", "completed"]
ASSIGNMENT_STATUSES: tuple[str, ...] = ("pending", "in_progress", "paused", "completed")


@dataclass(frozen=True, slots=True)
class AssignmentProgress:
    current_test_id: str | None = None
    current_question_id: str | None = None
    completed_tests: tuple[str, ...] = ()
    percentage: int = 0
    remaining_time_ms: int | None = None


@dataclass(frozen=True, slots=True)
class AssessmentAssignment:
    """Binds one respondent to one assessment through one link."""

    id: str
    assessment_id: str
    assignee_id: str
    link_id: str
    language: str
    status: str = "pending"  # pending|in_progress|paused|completed
    progress: AssignmentProgress = field(default_factory=AssignmentProgress)
    attempt: int = 1
    assignee_name: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    last_activity_at: datetime | None = None
