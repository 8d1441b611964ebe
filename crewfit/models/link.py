from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, slots=True)
class AssessmentLink:
    id: str
    assessment_id: str
    code: str  # unique across all links
    language: str
    url: str
    created_at: datetime
    expires_at: datetime | None = None
