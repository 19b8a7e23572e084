import os

# Keep the app's own engine off disk; every test goes through test_engine below.
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import Session, SQLModel, create_engine  # noqa: E402

from pingpong.database import get_session  # noqa: E402
from pingpong.main import app  # noqa: E402
from pingpong.services.bracket_generator import SeedEntry  # noqa: E402
from pingpong.services.bracket_rules import REFERENCE_SCHEDULE  # noqa: E402
from pingpong.services.match_store import InMemoryMatchStore  # noqa: E402
from pingpong.services.seeding_service import seed_tournament  # noqa: E402

TEST_DATABASE_URL = "sqlite:///:memory:"

# ============================================================================
# Test Database Setup with StaticPool
# ============================================================================
# 1. Use sqlite:///:memory: with StaticPool so ALL sessions share same DB
# 2. check_same_thread=False required for TestClient/threaded access
# 3. All models MUST be imported before create_all() (see session_fixture)
# 4. App dependency overridden to use test_engine (see client_fixture)
# 5. Tables created explicitly, not relying on app startup
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


def override_get_session():
    """Override session to use test engine"""
    with Session(test_engine) as session:
        yield session


@pytest.fixture(name="session", scope="function")
def session_fixture():
    """Provide a test database session on a fresh schema"""
    # Import all models to ensure they're registered BEFORE create_all
    from pingpong.models.match import Match  # noqa: F401
    from pingpong.models.player import Player  # noqa: F401
    from pingpong.models.portfolio_entry import PortfolioEntry  # noqa: F401
    from pingpong.models.tournament import Tournament  # noqa: F401

    SQLModel.metadata.create_all(test_engine)

    with Session(test_engine) as session:
        yield session

    SQLModel.metadata.drop_all(test_engine)


@pytest.fixture(name="client")
def client_fixture(session: Session):
    """Provide a test client with overridden database session

    Override MUST be set BEFORE TestClient() and stay in place for the entire
    duration, so the app never uses its own engine.
    """
    app.dependency_overrides[get_session] = override_get_session

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()


# ============================================================================
# Seed data
# ============================================================================


@pytest.fixture
def seeds():
    """One SeedEntry per rank of the reference schedule: 'Player <rank>'."""
    return [SeedEntry(rank=r, name=f"Player {r}") for r in range(1, REFERENCE_SCHEDULE.entrant_count + 1)]


@pytest.fixture
def seed_csv(seeds):
    lines = ["rank,name"] + [f"{s.rank},{s.name}" for s in seeds]
    return "\n".join(lines) + "\n"


@pytest.fixture
def store(seeds):
    """Seeded in-memory store. Player ids equal ranks; match ids follow round order."""
    memory_store = InMemoryMatchStore()
    seed_tournament(memory_store, seeds)
    return memory_store
