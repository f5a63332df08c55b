# tests/factories/fixtures.py
"""
Store and agent fixtures.

Loaded via pytest_plugins in conftest.py. Everything hangs off the
per-test `db` fixture, so no state leaks between tests.
"""

import pytest

from agent_orchestrator.agent import AgentLoop, CrossAgentAggregator
from agent_orchestrator.infrastructure.database import DatabaseManager
from agent_orchestrator.infrastructure.database.repositories import (
    ContextIndex,
    JobTracker,
    MessageLog,
    SessionStore,
)
from agent_orchestrator.orchestrator import Orchestrator
from tests.factories.backends import ScriptedBackend
from tests.factories.tools import build_registry


@pytest.fixture
async def db(tmp_path):
    """Fresh sqlite database with all tables created."""
    manager = DatabaseManager()
    await manager.connect(url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    await manager.create_tables()
    yield manager
    await manager.disconnect()


@pytest.fixture
def sessions(db) -> SessionStore:
    return SessionStore(db)


@pytest.fixture
def messages(db) -> MessageLog:
    return MessageLog(db)


@pytest.fixture
async def context_index(db):
    index = ContextIndex(db)
    yield index
    await index.drain()


@pytest.fixture
def jobs(db) -> JobTracker:
    return JobTracker(db)


@pytest.fixture
def aggregator(messages, context_index, jobs, test_settings) -> CrossAgentAggregator:
    return CrossAgentAggregator(messages, context_index, jobs, test_settings)


@pytest.fixture
def registry():
    return build_registry()


@pytest.fixture
def backend() -> ScriptedBackend:
    return ScriptedBackend()


@pytest.fixture
def make_loop(sessions, messages, context_index, jobs, registry, aggregator, test_settings):
    """Build an AgentLoop around the given backend (and optional retriever or settings)."""

    def _make(backend, retriever=None, settings=None):
        return AgentLoop(
            sessions=sessions,
            messages=messages,
            context=context_index,
            jobs=jobs,
            registry=registry,
            aggregator=aggregator,
            backend=backend,
            settings=settings or test_settings,
            retriever=retriever,
        )

    return _make


@pytest.fixture
async def terminal_session(sessions):
    return await sessions.create(project_id=7, user_id="user-1", session_type="terminal")


@pytest.fixture
async def code_session(sessions):
    return await sessions.create(project_id=7, user_id="user-1", session_type="code")


@pytest.fixture
async def orchestrator(db, registry, backend, test_settings):
    orch = Orchestrator(db, backend, registry=registry, settings=test_settings)
    yield orch
    await orch.context.drain()
