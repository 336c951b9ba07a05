"""Shared pytest fixtures for all test suites."""

import pytest
from support import RecordingDocumentStore, VirtualTimer, build_scenario_itinerary

from tripdesk.config import Settings
from tripdesk.db.inmemory import InMemoryFallbackStore
from tripdesk.models import CentralItinerary


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from the environment and any .env file."""
    return Settings(_env_file=None, database_url=None, redis_url=None)


@pytest.fixture
def timer() -> VirtualTimer:
    return VirtualTimer()


@pytest.fixture
def fallback_store() -> InMemoryFallbackStore:
    return InMemoryFallbackStore()


@pytest.fixture
def scenario_itinerary() -> CentralItinerary:
    return build_scenario_itinerary()


@pytest.fixture
def document_store(scenario_itinerary: CentralItinerary) -> RecordingDocumentStore:
    """Remote store preloaded with the scenario itinerary under query-1."""
    return RecordingDocumentStore({"query-1": scenario_itinerary.model_dump(mode="json")})
