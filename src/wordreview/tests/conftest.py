"""Test configuration."""
import os
from pathlib import Path
from typing import Generator

import pytest
from dotenv import load_dotenv

# Set test environment before any imports
os.environ["ENV"] = "test"

# Load test environment variables
test_env_path = Path(__file__).parents[3] / ".env.test"
load_dotenv(test_env_path)

# Import after environment setup
from faker import Faker
from sqlalchemy.orm import sessionmaker

from wordreview.config import ensure_directories
from wordreview.models.base import init_db, make_engine, make_session_factory
from wordreview.services.document_store import DocumentStore
from wordreview.services.wrong_word_tracker import WrongWordTracker


@pytest.fixture(autouse=True)
def setup_test_environment():
    """Set up test environment before each test."""
    ensure_directories()
    yield


@pytest.fixture
def fake() -> Faker:
    return Faker()


@pytest.fixture
def engine(tmp_path):
    """Fresh database file for each test; the tracker writes from its own thread."""
    engine = make_engine(f"sqlite:///{tmp_path / 'wordreview.db'}")
    init_db(engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def session_factory(engine) -> sessionmaker:
    return make_session_factory(engine)


@pytest.fixture
def store(session_factory) -> DocumentStore:
    return DocumentStore(session_factory)


@pytest.fixture
def tracker(store: DocumentStore) -> Generator[WrongWordTracker, None, None]:
    """Initialized tracker with an empty collection."""
    tracker = WrongWordTracker(store, removal_threshold=2)
    tracker.initialize()
    try:
        yield tracker
    finally:
        tracker.dispose()
