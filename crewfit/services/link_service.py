"""Link registry: shareable, language-scoped access codes for an assessment.

A link code is ``<assessment-slug>-<4 random base36 chars>``.  The link
repository enforces code uniqueness; on a collision we draw a new suffix,
up to ``_MAX_CODE_ATTEMPTS`` times.

Expiry is evaluated only here (``is_expired``) so the portal and the API
agree on whether a link is still usable.
"""

from __future__ import annotations

import logging
import secrets
from datetime import datetime

from crewfit.core.clock import Clock
from crewfit.core.errors import ConflictError, DomainValidationError, NotFoundError
from crewfit.core.metrics import LINK_CODE_COLLISIONS, LINKS_GENERATED
from crewfit.models.link import AssessmentLink
from crewfit.models.test import SUPPORTED_LANGUAGES
from crewfit.repos.link_repo import DuplicateLinkCodeError
from crewfit.repos.store import AssessmentStore
from crewfit.services.catalog_service import AssessmentNotFoundError, new_id

logger = logging.getLogger(__name__)

_MAX_CODE_ATTEMPTS = 5
_SUFFIX_LENGTH = 4
_ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyz"
PORTAL_PATH = "/avaliacoes"


class LinkValidationError(DomainValidationError):
    pass


class LinkNotFoundError(NotFoundError):
    pass


class LinkCodeCollisionError(ConflictError):
    pass


def random_suffix(length: int = _SUFFIX_LENGTH) -> str:
    return "".join(secrets.choice(_ALPHABET) for _ in range(length))


class LinkRegistry:
    def __init__(
        self,
        store: AssessmentStore,
        clock: Clock,
        *,
        base_url: str = "http://localhost:5173",
        suffix_factory=random_suffix,
    ) -> None:
        self._links = store.links
        self._catalog = store.catalog
        self._clock = clock
        self._base_url = base_url
        self._suffix_factory = suffix_factory

    def generate_link(
        self,
        *,
        assessment_id: str,
        language: str,
        expires_at: datetime | None = None,
        base_url: str | None = None,
    ) -> AssessmentLink:
        assessment = self._catalog.get_assessment(assessment_id)
        if assessment is None:
            logger.warning("Rejected link for unknown assessment=%s", assessment_id)
            raise AssessmentNotFoundError(assessment_id)
        if language not in SUPPORTED_LANGUAGES:
            raise LinkValidationError(f"unsupported language {language!r}")

        now = self._clock.now()
        if expires_at is not None and expires_at <= now:
            logger.warning("Rejected link with past expiry=%s", expires_at.isoformat())
            raise LinkValidationError("expires_at must be in the future")

        url_base = (base_url or self._base_url).rstrip("/")

        for _ in range(_MAX_CODE_ATTEMPTS):
            code = f"{assessment.slug}-{self._suffix_factory()}"
            link = AssessmentLink(
                id=new_id("link"),
                assessment_id=assessment_id,
                code=code,
                language=language,
                url=f"{url_base}{PORTAL_PATH}/{code}",
                created_at=now,
                expires_at=expires_at,
            )
            try:
                self._links.add(link)
            except DuplicateLinkCodeError:
                LINK_CODE_COLLISIONS.inc()
                logger.warning("Link code collision code=%s, retrying", code)
                continue

            LINKS_GENERATED.labels(language=language).inc()
            logger.info(
                "Generated link id=%s code=%s assessment=%s",
                link.id,
                link.code,
                assessment_id,
            )
            return link

        raise LinkCodeCollisionError(
            f"could not generate a unique code for assessment {assessment_id}"
        )

    def remove_link(self, link_id: str) -> None:
        if not self._links.remove(link_id):
            logger.warning("Remove of unknown link=%s", link_id)
            raise LinkNotFoundError(link_id)
        logger.info("Removed link id=%s", link_id)

    def get_link(self, link_id: str) -> AssessmentLink:
        link = self._links.get_by_id(link_id)
        if link is None:
            raise LinkNotFoundError(link_id)
        return link

    def get_by_code(self, code: str) -> AssessmentLink | None:
        return self._links.get_by_code(code)

    def list_links(self, assessment_id: str | None = None) -> list[AssessmentLink]:
        return self._links.list_all(assessment_id)

    def is_expired(self, link: AssessmentLink, now: datetime | None = None) -> bool:
        if link.expires_at is None:
            return False
        return link.expires_at < (now or self._clock.now())
