"""Shared fixtures: in-memory store with a controllable clock"""
import pytest

from app.infra.repositories import RepositoryFactory
from app.infra.store import InMemoryDocumentStore
from app.models.user import User
from tests.helpers import FakeClock


@pytest.fixture
def clock() -> FakeClock:
    """Return a clock fixed at T0."""
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> InMemoryDocumentStore:
    """Return an empty in-memory store."""
    return InMemoryDocumentStore(clock)


@pytest.fixture
def repositories(store: InMemoryDocumentStore, clock: FakeClock) -> RepositoryFactory:
    """Return repositories over the in-memory store."""
    return RepositoryFactory(store, clock)


@pytest.fixture
def owner() -> User:
    """Return the owner of the seeded workspaces."""
    return User(id="u1", email="owner@x.com", display_name="Olga Owner")
