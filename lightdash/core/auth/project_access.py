"""Project Access Service.

Manages the project access control list: which users hold which role on a
project. Members are added by email and addressed by user uuid afterwards.

Roles:
- viewer: Read-only access
- editor: Can edit charts and dashboards
- admin: Full control including member management
"""

import logging
from typing import List

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError

from ..constants import PROJECT_MEMBERSHIPS_UNIQUE_CONSTRAINT
from ..db import DatabaseManager, is_constraint_violation, parse_uuid
from ..db.models import Email, Project, ProjectMembership, User
from ..errors import AlreadyExistsError, NotExistsError
from ..project.models import ProjectMemberProfile, ProjectMemberRole

logger = logging.getLogger(__name__)

_MEMBERSHIP_UNIQUE = next(
    constraint for constraint in ProjectMembership.__table__.constraints
    if constraint.name == PROJECT_MEMBERSHIPS_UNIQUE_CONSTRAINT
)


class ProjectAccessService:
    """CRUD over project membership rows."""

    def __init__(self, db_manager: DatabaseManager):
        self.db = db_manager

    def get_project_access(self, project_uuid: str) -> List[ProjectMemberProfile]:
        """List the members of a project with their primary email."""
        with self.db.get_session() as session:
            rows = session.execute(
                select(
                    User.user_uuid,
                    User.first_name,
                    User.last_name,
                    Email.email,
                    Project.project_uuid,
                    ProjectMembership.role,
                )
                .select_from(ProjectMembership)
                .join(User, User.user_id == ProjectMembership.user_id)
                .join(Email, Email.user_id == User.user_id)
                .join(Project, Project.project_id == ProjectMembership.project_id)
                .where(
                    Project.project_uuid == parse_uuid(project_uuid),
                    Email.is_primary.is_(True),
                )
                .order_by(ProjectMembership.project_membership_id)
            ).all()

        return [
            ProjectMemberProfile(
                user_uuid=str(row.user_uuid),
                project_uuid=str(row.project_uuid),
                email=row.email,
                role=ProjectMemberRole(row.role),
                first_name=row.first_name,
                last_name=row.last_name,
            )
            for row in rows
        ]

    def create_project_access(
        self,
        project_uuid: str,
        email: str,
        role: ProjectMemberRole,
    ) -> None:
        """Grant a role to the user owning ``email``.

        Raises:
            NotExistsError: Unknown project, or no user of the project's
                organization has this email
            AlreadyExistsError: The user is already a member
        """
        try:
            with self.db.get_session() as session:
                project = session.execute(
                    select(Project.project_id, Project.organization_id)
                    .where(Project.project_uuid == parse_uuid(project_uuid))
                ).first()
                if project is None:
                    raise NotExistsError(f"Cannot find project with id: {project_uuid}")

                user_id = session.execute(
                    select(User.user_id)
                    .join(Email, Email.user_id == User.user_id)
                    .where(
                        Email.email == email,
                        User.organization_id == project.organization_id,
                    )
                ).scalar_one_or_none()
                if user_id is None:
                    raise NotExistsError(f"Cannot find user with email {email}")

                session.add(ProjectMembership(
                    project_id=project.project_id,
                    user_id=user_id,
                    role=ProjectMemberRole(role).value,
                ))
                session.flush()
        except IntegrityError as e:
            if is_constraint_violation(e, _MEMBERSHIP_UNIQUE):
                raise AlreadyExistsError(
                    f"This user email {email} already has access to this project"
                ) from e
            raise

        logger.info(f"Granted {ProjectMemberRole(role).value} on project {project_uuid} to {email}")

    def update_project_access(
        self,
        project_uuid: str,
        user_uuid: str,
        role: ProjectMemberRole,
    ) -> bool:
        """Change a member's role. Returns False if the user is not a member."""
        with self.db.get_session() as session:
            result = session.execute(
                update(ProjectMembership)
                .where(
                    ProjectMembership.project_id == _project_id_subquery(project_uuid),
                    ProjectMembership.user_id == _user_id_subquery(user_uuid),
                )
                .values(role=ProjectMemberRole(role).value)
                .execution_options(synchronize_session=False)
            )
            updated = result.rowcount > 0

        if updated:
            logger.info(f"Updated role of user {user_uuid} on project {project_uuid}")
        return updated

    def delete_project_access(self, project_uuid: str, user_uuid: str) -> bool:
        """Revoke a membership. Returns False if the user was not a member."""
        with self.db.get_session() as session:
            result = session.execute(
                delete(ProjectMembership)
                .where(
                    ProjectMembership.project_id == _project_id_subquery(project_uuid),
                    ProjectMembership.user_id == _user_id_subquery(user_uuid),
                )
                .execution_options(synchronize_session=False)
            )
            deleted = result.rowcount > 0

        if deleted:
            logger.info(f"Revoked access of user {user_uuid} to project {project_uuid}")
        return deleted


def _project_id_subquery(project_uuid: str):
    return (
        select(Project.project_id)
        .where(Project.project_uuid == parse_uuid(project_uuid))
        .scalar_subquery()
    )


def _user_id_subquery(user_uuid: str):
    return (
        select(User.user_id)
        .where(User.user_uuid == parse_uuid(user_uuid, "user"))
        .scalar_subquery()
    )
