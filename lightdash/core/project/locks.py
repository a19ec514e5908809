"""Per-project advisory locking.

Serialises explore cache refreshes across processes sharing the database.
The lock lives in a transaction: it is taken with
``pg_try_advisory_xact_lock`` and released when that transaction commits
or rolls back. There is no explicit unlock.
"""

import logging
from typing import Callable, Optional
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..constants import CACHED_EXPLORES_PG_LOCK_NAMESPACE
from ..db import DatabaseManager, parse_uuid
from ..db.models import Project
from ..errors import NotExistsError

logger = logging.getLogger(__name__)

LockCallback = Callable[[Session], None]


class ProjectLockCoordinator:
    """Runs exactly one of two callbacks depending on lock acquisition."""

    def __init__(self, db_manager: DatabaseManager):
        self.db = db_manager

    def try_acquire_project_lock(
        self,
        project_uuid: str,
        on_lock_acquired: LockCallback,
        on_lock_failed: Optional[LockCallback] = None,
    ) -> None:
        """Try to lock the project without blocking.

        Both callbacks receive the session holding the lock and run inside
        its transaction. An unknown or malformed project id is a no-op.
        Errors raised by a callback propagate and roll the transaction back.
        """
        try:
            parsed_uuid = parse_uuid(project_uuid)
        except NotExistsError:
            logger.debug(f"Malformed project id {project_uuid}, nothing to lock")
            return

        with self.db.get_session() as session:
            acquired = self._try_lock(session, parsed_uuid)

            if acquired is None:
                logger.debug(f"No project {project_uuid} to lock")
                return

            if acquired:
                logger.debug(f"Acquired lock for project {project_uuid}")
                on_lock_acquired(session)
            elif on_lock_failed is not None:
                logger.debug(f"Lock for project {project_uuid} is held elsewhere")
                on_lock_failed(session)

    @staticmethod
    def _try_lock(session: Session, project_uuid: UUID) -> Optional[bool]:
        """Return None if the project does not exist, else whether the lock was taken."""
        if session.get_bind().dialect.name == "postgresql":
            # Keyed on the integer project_id
            row = session.execute(
                select(
                    func.pg_try_advisory_xact_lock(
                        CACHED_EXPLORES_PG_LOCK_NAMESPACE, Project.project_id
                    )
                )
                .where(Project.project_uuid == project_uuid)
                .limit(1)
            ).first()
            return None if row is None else bool(row[0])

        # No advisory locks: hold the project row itself for the transaction
        project_id = session.execute(
            select(Project.project_id).where(Project.project_uuid == project_uuid)
        ).scalar_one_or_none()
        if project_id is None:
            return None

        locked = session.execute(
            select(Project.project_id)
            .where(Project.project_id == project_id)
            .with_for_update(skip_locked=True)
        ).scalar_one_or_none()
        return locked is not None
