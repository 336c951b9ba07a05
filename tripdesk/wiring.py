"""Builds stores and controllers from settings."""

import logging

import redis

from tripdesk.config import Settings, get_settings
from tripdesk.db.engine import create_async_engine_from_settings, create_session_factory
from tripdesk.db.inmemory import InMemoryDocumentStore, InMemoryFallbackStore
from tripdesk.db.redis_fallback import RedisFallbackStore
from tripdesk.db.repositories import DocumentStore, FallbackStore
from tripdesk.db.sql_repositories import SqlDocumentStore
from tripdesk.sync.controller import ItineraryController
from tripdesk.sync.registry import ControllerRegistry
from tripdesk.sync.timers import Timer
from tripdesk.utils.logging import StructuredSaveLogger
from tripdesk.utils.metrics import PrometheusSaveMetrics

logger = logging.getLogger(__name__)


def create_document_store(settings: Settings) -> DocumentStore:
    """SQL document store when DATABASE_URL is set, in-memory otherwise."""
    if not settings.database_url:
        logger.warning("DATABASE_URL not set - using in-memory document store")
        return InMemoryDocumentStore()
    engine = create_async_engine_from_settings(settings)
    return SqlDocumentStore(create_session_factory(engine))


def create_fallback_store(settings: Settings) -> FallbackStore:
    """Redis fallback store when REDIS_URL is set, in-memory otherwise."""
    if not settings.redis_url:
        return InMemoryFallbackStore(prefix=settings.fallback_key_prefix)
    client = redis.Redis.from_url(settings.redis_url)
    return RedisFallbackStore(client, prefix=settings.fallback_key_prefix)


def create_registry(
    settings: Settings | None = None,
    *,
    document_store: DocumentStore | None = None,
    fallback_store: FallbackStore | None = None,
    timer: Timer | None = None,
) -> ControllerRegistry:
    """Registry whose controllers share one pair of stores."""
    resolved = settings or get_settings()
    documents = document_store if document_store is not None else create_document_store(resolved)
    fallback = fallback_store if fallback_store is not None else create_fallback_store(resolved)
    metrics = PrometheusSaveMetrics()
    save_logger = StructuredSaveLogger()

    def factory() -> ItineraryController:
        return ItineraryController(
            documents,
            fallback,
            settings=resolved,
            timer=timer,
            metrics=metrics,
            save_logger=save_logger,
        )

    return ControllerRegistry(factory)
