"""Service container shared by every router.

The API layer never builds services itself: each endpoint asks for the
``Services`` bundle through ``Depends(get_services)``.  Tests swap the
bundle with ``app.dependency_overrides[get_services]`` to get a fresh
seeded store and a manual clock.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from crewfit.core.clock import Clock, SystemClock
from crewfit.core.config import SETTINGS, Settings
from crewfit.db.redis import redis_client
from crewfit.repos.session_repo import RedisSessionRepo, SessionStoreError
from crewfit.repos.store import AssessmentStore
from crewfit.services.assignment_service import AssignmentTracker
from crewfit.services.catalog_service import CatalogService
from crewfit.services.link_service import LinkRegistry, random_suffix
from crewfit.services.portal_service import PortalService
from crewfit.services.seed import seed_demo_data

logger = logging.getLogger(__name__)


@dataclass
class Services:
    store: AssessmentStore
    clock: Clock
    catalog: CatalogService
    links: LinkRegistry
    tracker: AssignmentTracker
    portal: PortalService


def build_services(
    store: AssessmentStore,
    clock: Clock,
    settings: Settings = SETTINGS,
    *,
    suffix_factory=None,
) -> Services:
    links = LinkRegistry(
        store,
        clock,
        base_url=settings.portal_base_url,
        suffix_factory=suffix_factory or random_suffix,
    )
    tracker = AssignmentTracker(store, clock)
    return Services(
        store=store,
        clock=clock,
        catalog=CatalogService(store, clock),
        links=links,
        tracker=tracker,
        portal=PortalService(
            store,
            clock,
            links=links,
            tracker=tracker,
            autosave_delay_ms=settings.autosave_delay_ms,
            default_duration_minutes=settings.default_duration_minutes,
        ),
    )


def _default_store(settings: Settings) -> AssessmentStore:
    store = AssessmentStore.in_memory()
    if redis_client is not None:
        store.sessions = RedisSessionRepo(redis_client, settings.session_ttl_seconds)
    if settings.seed_demo_data:
        try:
            seed_demo_data(store, base_url=settings.portal_base_url)
        except SessionStoreError:
            logger.exception("Demo session snapshot could not be stored")
        logger.info("Seeded demo catalog")
    return store


_services = build_services(_default_store(SETTINGS), SystemClock())


def get_services() -> Services:
    return _services
