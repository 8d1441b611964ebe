from __future__ import annotations

from dataclasses import dataclass

from crewfit.repos.assignment_repo import AssignmentRepo, InMemoryAssignmentRepo
from crewfit.repos.catalog_repo import CatalogRepo, InMemoryCatalogRepo
from crewfit.repos.link_repo import InMemoryLinkRepo, LinkRepo
from crewfit.repos.session_repo import InMemorySessionRepo, SessionRepo


@dataclass
class AssessmentStore:
    """The repositories every service is constructed with."""

    catalog: CatalogRepo
    links: LinkRepo
    assignments: AssignmentRepo
    sessions: SessionRepo

    @staticmethod
    def in_memory() -> AssessmentStore:
        return AssessmentStore(
            catalog=InMemoryCatalogRepo(),
            links=InMemoryLinkRepo(),
            assignments=InMemoryAssignmentRepo(),
            sessions=InMemorySessionRepo(),
        )
