"""Tests for ProjectLockCoordinator.

Tests cover:
- Acquired path runs only on_lock_acquired inside the lock transaction
- Unknown or malformed project ids are a silent no-op
- Failed path on PostgreSQL (mocked) runs on_lock_failed
- Callback errors propagate and roll back
- Real advisory lock contention (PostgreSQL only)
"""

import threading
import uuid
from unittest.mock import MagicMock

import pytest

from lightdash.core.db.models import Space
from lightdash.core.project.locks import ProjectLockCoordinator


# ── Fixtures ──────────────────────────────────────────────────────────────


def _mock_db(dialect: str = "postgresql"):
    """Create a mock DatabaseManager whose session reports ``dialect``."""
    db = MagicMock()
    session = MagicMock()
    session.get_bind.return_value.dialect.name = dialect
    db.get_session.return_value.__enter__ = MagicMock(return_value=session)
    db.get_session.return_value.__exit__ = MagicMock(return_value=False)
    return db, session


# ── Tests: SQLite ─────────────────────────────────────────────────────────


class TestLockOnSqlite:

    def test_acquired_runs_only_acquired_callback(self, db_manager, source_project):
        on_acquired = MagicMock()
        on_failed = MagicMock()

        ProjectLockCoordinator(db_manager).try_acquire_project_lock(
            str(source_project.project_uuid), on_acquired, on_failed
        )

        on_acquired.assert_called_once()
        on_failed.assert_not_called()

    def test_unknown_project_runs_no_callback(self, db_manager):
        on_acquired = MagicMock()
        on_failed = MagicMock()

        ProjectLockCoordinator(db_manager).try_acquire_project_lock(
            str(uuid.uuid4()), on_acquired, on_failed
        )

        on_acquired.assert_not_called()
        on_failed.assert_not_called()

    def test_callback_writes_commit_with_lock_transaction(self, db_manager, source_project):
        def on_acquired(session):
            session.add(Space(project_id=source_project.project_id, name="Locked"))

        ProjectLockCoordinator(db_manager).try_acquire_project_lock(
            str(source_project.project_uuid), on_acquired
        )

        with db_manager.get_session() as session:
            names = [s.name for s in session.query(Space).all()]
        assert names == ["Locked"]

    def test_callback_error_propagates_and_rolls_back(self, db_manager, source_project):
        def on_acquired(session):
            session.add(Space(project_id=source_project.project_id, name="Locked"))
            session.flush()
            raise RuntimeError("compile failed")

        with pytest.raises(RuntimeError, match="compile failed"):
            ProjectLockCoordinator(db_manager).try_acquire_project_lock(
                str(source_project.project_uuid), on_acquired
            )

        with db_manager.get_session() as session:
            assert session.query(Space).count() == 0


# ── Tests: PostgreSQL (mocked session) ───────────────────────────────────


class TestLockOnPostgresMocked:

    def test_lock_held_elsewhere_runs_failed_callback(self):
        db, session = _mock_db()
        session.execute.return_value.first.return_value = (False,)
        on_acquired = MagicMock()
        on_failed = MagicMock()

        ProjectLockCoordinator(db).try_acquire_project_lock(
            str(uuid.uuid4()), on_acquired, on_failed
        )

        on_acquired.assert_not_called()
        on_failed.assert_called_once_with(session)

    def test_malformed_project_id_is_noop(self):
        db, session = _mock_db()
        on_acquired = MagicMock()
        on_failed = MagicMock()

        ProjectLockCoordinator(db).try_acquire_project_lock("not-a-uuid", on_acquired, on_failed)

        db.get_session.assert_not_called()
        on_acquired.assert_not_called()
        on_failed.assert_not_called()

    def test_lock_held_elsewhere_without_failed_callback(self):
        db, session = _mock_db()
        session.execute.return_value.first.return_value = (False,)
        on_acquired = MagicMock()

        ProjectLockCoordinator(db).try_acquire_project_lock(str(uuid.uuid4()), on_acquired)

        on_acquired.assert_not_called()

    def test_lock_acquired_runs_acquired_callback(self):
        db, session = _mock_db()
        session.execute.return_value.first.return_value = (True,)
        on_acquired = MagicMock()

        ProjectLockCoordinator(db).try_acquire_project_lock(str(uuid.uuid4()), on_acquired)

        on_acquired.assert_called_once_with(session)

    def test_query_uses_transaction_scoped_advisory_lock(self):
        db, session = _mock_db()
        session.execute.return_value.first.return_value = (True,)

        ProjectLockCoordinator(db).try_acquire_project_lock(str(uuid.uuid4()), MagicMock())

        statement = session.execute.call_args[0][0]
        assert "pg_try_advisory_xact_lock" in str(statement)

    def test_missing_project_is_noop(self):
        db, session = _mock_db()
        session.execute.return_value.first.return_value = None
        on_acquired = MagicMock()
        on_failed = MagicMock()

        ProjectLockCoordinator(db).try_acquire_project_lock(
            str(uuid.uuid4()), on_acquired, on_failed
        )

        on_acquired.assert_not_called()
        on_failed.assert_not_called()


# ── Tests: PostgreSQL (real advisory locks) ──────────────────────────────


class TestLockOnPostgres:

    def test_concurrent_holder_makes_second_caller_fail(self, postgres_db_manager):
        from lightdash.core.db.models import Organization, Project

        with postgres_db_manager.get_session() as session:
            organization = Organization(organization_name="Lock test")
            session.add(organization)
            session.flush()
            project = Project(name="Locked", organization_id=organization.organization_id)
            session.add(project)
            session.flush()
            project_uuid = str(project.project_uuid)

        coordinator = ProjectLockCoordinator(postgres_db_manager)
        holding = threading.Event()
        release = threading.Event()
        outcomes = []

        def hold(session):
            holding.set()
            release.wait(timeout=10)

        holder = threading.Thread(
            target=coordinator.try_acquire_project_lock, args=(project_uuid, hold)
        )
        holder.start()
        assert holding.wait(timeout=10)

        coordinator.try_acquire_project_lock(
            project_uuid,
            lambda session: outcomes.append("acquired"),
            lambda session: outcomes.append("failed"),
        )
        release.set()
        holder.join(timeout=10)

        # Released when the holder's transaction ended
        coordinator.try_acquire_project_lock(
            project_uuid,
            lambda session: outcomes.append("acquired"),
            lambda session: outcomes.append("failed"),
        )

        assert outcomes == ["failed", "acquired"]

        with postgres_db_manager.get_session() as session:
            session.delete(session.get(Organization, organization.organization_id))
