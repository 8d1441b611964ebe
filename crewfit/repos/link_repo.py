from __future__ import annotations

from typing import Protocol

from crewfit.models.link import AssessmentLink


class DuplicateLinkCodeError(ValueError):
    """Raised by ``add`` when another link already uses the same code."""


class LinkRepo(Protocol):
    def get_by_id(self, link_id: str) -> AssessmentLink | None: ...
    def get_by_code(self, code: str) -> AssessmentLink | None: ...
    def add(self, link: AssessmentLink) -> None: ...
    def remove(self, link_id: str) -> bool: ...
    def list_all(self, assessment_id: str | None = None) -> list[AssessmentLink]: ...


class InMemoryLinkRepo:
    def __init__(self) -> None:
        self._by_id: dict[str, AssessmentLink] = {}
        self._by_code: dict[str, AssessmentLink] = {}

    def get_by_id(self, link_id: str) -> AssessmentLink | None:
        return self._by_id.get(link_id)

    def get_by_code(self, code: str) -> AssessmentLink | None:
        return self._by_code.get(code)

    def add(self, link: AssessmentLink) -> None:
        # Unique index on code
        if link.code in self._by_code:
            raise DuplicateLinkCodeError(link.code)
        if link.id in self._by_id:
            raise ValueError("link id already exists")
        self._by_id[link.id] = link
        self._by_code[link.code] = link

    def remove(self, link_id: str) -> bool:
        link = self._by_id.pop(link_id, None)
        if link is None:
            return False
        self._by_code.pop(link.code, None)
        return True

    def list_all(self, assessment_id: str | None = None) -> list[AssessmentLink]:
        links = sorted(self._by_id.values(), key=lambda l: l.created_at, reverse=True)
        if assessment_id is None:
            return links
        return [l for l in links if l.assessment_id == assessment_id]
