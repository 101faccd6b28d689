"""
Root conftest.py: shared fixtures for the entire test suite.

Guidelines:
    • No __init__.py in test sub-directories (avoids shadowing root packages).
    • pytest.ini_options lives in pyproject.toml with pythonpath=["."].
    • Stores run against a fresh in-memory SQLite database per test.
    • Hosted providers are always mocked; no network calls.
"""

import os

# Required settings must exist before any module calls get_settings()
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("DATABASE_URI", "sqlite:///:memory:")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
for _key in ("GROQ_API_KEY", "HUGGINGFACE_API_KEY", "ELEVENLABS_API_KEY"):
    os.environ.pop(_key, None)

from typing import Dict
from unittest.mock import MagicMock

import pytest

from adapters.database import create_db_engine, init_schema, make_session_factory
from adapters.in_memory_transcript_cache import InMemoryTranscriptCacheAdapter
from adapters.sql_conversation_store import SqlConversationStoreAdapter
from adapters.sql_meeting_store import SqlAgentStoreAdapter, SqlMeetingStoreAdapter
from adapters.sql_task_store import SqlTaskStoreAdapter
from domain.models import AgentRecord, MeetingRecord, MeetingStatus, SentimentResult, UserRecord


# ---------------------------------------------------------------------------
# Marker registration
# ---------------------------------------------------------------------------

def pytest_configure(config):
    config.addinivalue_line("markers", "integration: tests that exercise several layers against SQLite")


# ---------------------------------------------------------------------------
# Minimal required settings kwargs for Settings(**BASE_SETTINGS_KWARGS)
# ---------------------------------------------------------------------------

BASE_SETTINGS_KWARGS: Dict[str, str] = {
    "database_uri": "sqlite:///:memory:",
    "environment": "development",
}


@pytest.fixture()
def base_settings_kwargs() -> Dict[str, str]:
    """Provide the minimal kwargs needed to instantiate ``Settings``."""
    return {**BASE_SETTINGS_KWARGS}


# ---------------------------------------------------------------------------
# Sample transcript fixtures
# ---------------------------------------------------------------------------

SAMPLE_TRANSCRIPT = (
    "Alice: Hello everyone, welcome to the kickoff.\n"
    "Bob: Thanks Alice. I'm good at React and CSS.\n"
    "Alice: Great, I'm experienced with Python. Let's plan the backend API.\n"
    "AI: I'm good at everything.\n"
    "Bob: The frontend deployment works, no problem.\n"
)


@pytest.fixture()
def sample_transcript() -> str:
    return SAMPLE_TRANSCRIPT


# ---------------------------------------------------------------------------
# SQLite-backed stores
# ---------------------------------------------------------------------------

@pytest.fixture()
def session_factory():
    """Fresh in-memory database with the full schema."""
    engine = create_db_engine("sqlite:///:memory:")
    init_schema(engine)
    yield make_session_factory(engine)
    engine.dispose()


@pytest.fixture()
def meeting_store(session_factory) -> SqlMeetingStoreAdapter:
    return SqlMeetingStoreAdapter(session_factory)


@pytest.fixture()
def agent_store(session_factory) -> SqlAgentStoreAdapter:
    return SqlAgentStoreAdapter(session_factory)


@pytest.fixture()
def conversation_store(session_factory) -> SqlConversationStoreAdapter:
    return SqlConversationStoreAdapter(session_factory)


@pytest.fixture()
def task_store(session_factory) -> SqlTaskStoreAdapter:
    return SqlTaskStoreAdapter(session_factory)


@pytest.fixture()
def transcript_cache() -> InMemoryTranscriptCacheAdapter:
    return InMemoryTranscriptCacheAdapter(ttl_seconds=300)


@pytest.fixture()
def seeded(meeting_store, agent_store) -> Dict[str, str]:
    """Users u-alice and u-bob, agent a-1 owned by Alice, active meeting m-1."""
    meeting_store.put_user(UserRecord(user_id="u-alice", name="Alice", email="alice@example.com"))
    meeting_store.put_user(UserRecord(user_id="u-bob", name="Bob", email="bob@example.com"))
    agent_store.add_agent(AgentRecord(
        agent_id="a-1", name="Planner", user_id="u-alice", instructions="You plan projects.",
    ))
    meeting_store.add_meeting(MeetingRecord(
        meeting_id="m-1", name="Kickoff", user_id="u-alice", agent_id="a-1",
        status=MeetingStatus.ACTIVE,
    ))
    return {"user_id": "u-alice", "other_user_id": "u-bob", "agent_id": "a-1", "meeting_id": "m-1"}


# ---------------------------------------------------------------------------
# Mock provider factories
# ---------------------------------------------------------------------------

@pytest.fixture()
def mock_llm() -> MagicMock:
    """Chat-completion provider mock; set ``complete.return_value`` per test."""
    mock = MagicMock()
    mock.complete.return_value = ""
    return mock


@pytest.fixture()
def mock_classifier() -> MagicMock:
    mock = MagicMock()
    mock.classify.return_value = SentimentResult(label="POSITIVE", score=0.8, positive_score=0.8)
    return mock
