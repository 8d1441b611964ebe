from __future__ import annotations

from typing import Protocol

from crewfit.models.assignment import AssessmentAssignment


class AssignmentRepo(Protocol):
    def get_by_id(self, assignment_id: str) -> AssessmentAssignment | None: ...
    def add(self, assignment: AssessmentAssignment) -> None: ...
    def replace(self, assignment: AssessmentAssignment) -> AssessmentAssignment | None: ...
    def remove(self, assignment_id: str) -> bool: ...
    def list_all(self) -> list[AssessmentAssignment]: ...
    def list_by_link(self, link_id: str) -> list[AssessmentAssignment]: ...


class InMemoryAssignmentRepo:
    def __init__(self) -> None:
        # Insertion order is creation order
        self._store: dict[str, AssessmentAssignment] = {}

    def get_by_id(self, assignment_id: str) -> AssessmentAssignment | None:
        return self._store.get(assignment_id)

    def add(self, assignment: AssessmentAssignment) -> None:
        if assignment.id in self._store:
            raise ValueError("assignment id already exists")
        self._store[assignment.id] = assignment

    def replace(self, assignment: AssessmentAssignment) -> AssessmentAssignment | None:
        if assignment.id not in self._store:
            return None
        self._store[assignment.id] = assignment
        return assignment

    def remove(self, assignment_id: str) -> bool:
        return self._store.pop(assignment_id, None) is not None

    def list_all(self) -> list[AssessmentAssignment]:
        return list(self._store.values())

    def list_by_link(self, link_id: str) -> list[AssessmentAssignment]:
        return [a for a in self._store.values() if a.link_id == link_id]
