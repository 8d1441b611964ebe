"""Link endpoints.

  GET    /v1/links?assessment_id=...   newest first, with an ``expired`` flag
  POST   /v1/links                     generate a code + portal URL
  DELETE /v1/links/{link_id}
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import BaseModel

from crewfit.api.dependencies import Services, get_services
from crewfit.models.link import AssessmentLink
from crewfit.services.catalog_service import AssessmentNotFoundError
from crewfit.services.link_service import (
    LinkCodeCollisionError,
    LinkNotFoundError,
    LinkValidationError,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/links", tags=["links"])


class LinkCreateIn(BaseModel):
    assessment_id: str
    language: str = "pt"
    expires_at: datetime | None = None
    base_url: str | None = None


class LinkOut(BaseModel):
    id: str
    assessment_id: str
    code: str
    language: str
    url: str
    created_at: datetime
    expires_at: datetime | None = None
    expired: bool


def link_out(services: Services, link: AssessmentLink) -> LinkOut:
    return LinkOut(
        id=link.id,
        assessment_id=link.assessment_id,
        code=link.code,
        language=link.language,
        url=link.url,
        created_at=link.created_at,
        expires_at=link.expires_at,
        expired=services.links.is_expired(link),
    )


@router.get("", response_model=list[LinkOut])
def list_links(
    services: Annotated[Services, Depends(get_services)],
    assessment_id: str | None = None,
) -> list[LinkOut]:
    return [link_out(services, link) for link in services.links.list_links(assessment_id)]


@router.post("", response_model=LinkOut, status_code=status.HTTP_201_CREATED)
def create_link(
    body: LinkCreateIn,
    services: Annotated[Services, Depends(get_services)],
) -> LinkOut:
    expires_at = body.expires_at
    if expires_at is not None and expires_at.tzinfo is None:
        raise HTTPException(
            status_code=422, detail="expires_at must include a timezone offset"
        )
    try:
        link = services.links.generate_link(
            assessment_id=body.assessment_id,
            language=body.language,
            expires_at=expires_at,
            base_url=body.base_url,
        )
    except AssessmentNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Assessment not found"
        ) from None
    except LinkValidationError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from None
    except LinkCodeCollisionError as exc:
        logger.error("Link generation exhausted retries: %s", exc)
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from None
    return link_out(services, link)


@router.delete("/{link_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_link(
    link_id: str,
    services: Annotated[Services, Depends(get_services)],
) -> Response:
    try:
        services.links.remove_link(link_id)
    except LinkNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Link not found"
        ) from None
    return Response(status_code=status.HTTP_204_NO_CONTENT)
