# tests/integration/test_session_store.py
"""Integration tests for SessionStore."""

from datetime import timedelta

import pytest

from agent_orchestrator.domain.exceptions import InvalidParameter, SessionNotFound, ValidationError
from agent_orchestrator.domain.shared_context import VERSION_KEY, hash_shared_context
from agent_orchestrator.infrastructure.database.base_model import utcnow
from agent_orchestrator.infrastructure.database.repositories.session import touch_statement


@pytest.mark.integration
class TestSessionStore:
    """Test session lifecycle operations."""

    async def test_create_session(self, sessions):
        """Test a new session is active with a hashed, versioned shared context."""
        session = await sessions.create(
            project_id=7,
            user_id="user-1",
            session_type="terminal",
            title="Debugging",
            metadata={"source": "ide"},
            shared_context={"branch": "main"},
        )

        assert session.id is not None
        assert session.status == "active"
        assert session.session_type == "terminal"
        assert session.meta == {"source": "ide"}
        assert session.shared_context == {"branch": "main", VERSION_KEY: 1}
        assert session.context_hash == hash_shared_context(session.shared_context)
        assert session.last_activity_at >= session.created_at

    async def test_create_rejects_unknown_type(self, sessions):
        """Test an unknown session type raises InvalidParameter."""
        with pytest.raises(InvalidParameter):
            await sessions.create(project_id=7, user_id="user-1", session_type="chat")

    async def test_require_missing_session(self, sessions):
        """Test require raises SessionNotFound for unknown ids."""
        assert await sessions.get(999) is None
        with pytest.raises(SessionNotFound):
            await sessions.require(999)

    async def test_list_for_project_most_recent_first(self, sessions, messages):
        """Test sessions are ordered by last activity and filtered by project and type."""
        first = await sessions.create(project_id=7, user_id="user-1", session_type="code")
        second = await sessions.create(project_id=7, user_id="user-1", session_type="terminal")
        await sessions.create(project_id=8, user_id="user-1", session_type="code")

        await messages.append(first.id, "user", "bump")

        listed = await sessions.list_for_project(7)
        assert [s.id for s in listed] == [first.id, second.id]

        terminals = await sessions.list_for_project(7, session_type="terminal")
        assert [s.id for s in terminals] == [second.id]

    async def test_touch_updates_status(self, sessions):
        """Test touch bumps activity and can change status."""
        session = await sessions.create(project_id=7, user_id="user-1", session_type="code")

        await sessions.touch(session.id, status="paused")

        refreshed = await sessions.get(session.id)
        assert refreshed.status == "paused"
        assert refreshed.last_activity_at >= session.last_activity_at

    async def test_activity_never_moves_backwards(self, db, sessions):
        """Test an older activity timestamp does not overwrite a newer one."""
        session = await sessions.create(project_id=7, user_id="user-1", session_type="code")
        before = session.last_activity_at

        async with db.session() as s:
            await s.execute(touch_statement(session.id, before - timedelta(hours=1)))

        refreshed = await sessions.get(session.id)
        assert refreshed.last_activity_at == before

        later = utcnow() + timedelta(minutes=5)
        async with db.session() as s:
            await s.execute(touch_statement(session.id, later))

        refreshed = await sessions.get(session.id)
        assert refreshed.last_activity_at == later

    async def test_update_shared_context(self, sessions):
        """Test the context and its hash are replaced together."""
        session = await sessions.create(project_id=7, user_id="user-1", session_type="hybrid")

        updated = await sessions.update_shared_context(session.id, {"cwd": "/app", "open": ["a.ts"]})

        assert updated.shared_context == {"cwd": "/app", "open": ["a.ts"], VERSION_KEY: 1}
        assert updated.context_hash == hash_shared_context(updated.shared_context)
        assert updated.context_hash != session.context_hash

    async def test_update_shared_context_validates(self, sessions):
        session = await sessions.create(project_id=7, user_id="user-1", session_type="code")

        with pytest.raises(ValidationError):
            await sessions.update_shared_context(session.id, {"x": object()})

    async def test_soft_delete(self, sessions):
        """Test deleted sessions disappear from reads and cannot be touched."""
        session = await sessions.create(project_id=7, user_id="user-1", session_type="code")

        assert await sessions.soft_delete(session.id) is True
        assert await sessions.soft_delete(session.id) is False
        assert await sessions.get(session.id) is None
        assert await sessions.list_for_project(7) == []
        with pytest.raises(SessionNotFound):
            await sessions.touch(session.id)
