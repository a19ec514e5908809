"""Project Model for Lightdash.

Provides CRUD operations for projects, their encrypted dbt and warehouse
connections, table selection and dbt Cloud integration, with PostgreSQL
persistence. Content cloning is delegated to ProjectContentCloner.
"""

import json
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from ..constants import (
    DEFAULT_SPACE_NAME,
    SENSITIVE_CREDENTIALS_FIELD_NAMES,
    SENSITIVE_DBT_CREDENTIALS_FIELD_NAMES,
)
from ..db import DatabaseManager, upsert, parse_uuid
from ..db.models import (
    DbtCloudIntegration as DbDbtCloudIntegration,
    Organization,
    PinnedList,
    PreviewContent,
    Project as DbProject,
    Space,
    WarehouseCredentials,
)
from ..encryption import EncryptionError, EncryptionService
from ..errors import NotExistsError, UnexpectedServerError
from .content_cloner import ProjectContentCloner
from .models import (
    CreateDbtCloudIntegration,
    CreateProject,
    DbtCloudIntegration,
    OrganizationProject,
    PreviewContentMapping,
    Project,
    ProjectType,
    TableSelection,
    TablesConfiguration,
    UpdateProject,
)

logger = logging.getLogger(__name__)


class ProjectModel:
    """Manages projects and their connections with database persistence."""

    def __init__(self, db_manager: DatabaseManager, encryption_service: EncryptionService):
        self.db = db_manager
        self.encryption_service = encryption_service
        self.content_cloner = ProjectContentCloner(db_manager)
        logger.info("ProjectModel initialized")

    # =========================================================================
    # Organization Projects
    # =========================================================================

    def get_all_by_organization_uuid(self, organization_uuid: str) -> List[OrganizationProject]:
        with self.db.get_session() as session:
            organization_id = self._get_organization_id(session, organization_uuid)
            rows = session.execute(
                select(DbProject.name, DbProject.project_uuid, DbProject.project_type)
                .where(DbProject.organization_id == organization_id)
                .order_by(DbProject.project_id)
            ).all()

            return [
                OrganizationProject(
                    name=row.name,
                    project_uuid=str(row.project_uuid),
                    type=ProjectType(row.project_type),
                )
                for row in rows
            ]

    def has_projects(self, organization_uuid: str) -> bool:
        with self.db.get_session() as session:
            organization_id = self._get_organization_id(session, organization_uuid)
            first = session.execute(
                select(DbProject.project_id)
                .where(DbProject.organization_id == organization_id)
                .limit(1)
            ).first()
            return first is not None

    # =========================================================================
    # Project CRUD
    # =========================================================================

    def create(self, organization_uuid: str, data: CreateProject) -> str:
        """Create a project with its credentials and default space.

        Returns the new project uuid.
        """
        encrypted_dbt_connection = self._encrypt_json(data.dbt_connection, "Could not save credentials.")

        with self.db.get_session() as session:
            organization_id = self._get_organization_id(session, organization_uuid)

            # The copied project must exist and belong to the same organization
            copied_from_project_uuid = None
            if data.copied_from_project_uuid:
                copied_from_project_uuid = session.execute(
                    select(DbProject.project_uuid).where(
                        DbProject.organization_id == organization_id,
                        DbProject.project_uuid == parse_uuid(data.copied_from_project_uuid),
                    )
                ).scalar_one_or_none()

            project = DbProject(
                name=data.name,
                project_type=data.type.value,
                organization_id=organization_id,
                dbt_connection_type=data.dbt_connection.get("type"),
                dbt_connection=encrypted_dbt_connection,
                copied_from_project_uuid=copied_from_project_uuid,
            )
            session.add(project)
            session.flush()

            if data.warehouse_connection:
                self._upsert_warehouse_connection(session, project.project_id, data.warehouse_connection)

            session.add(Space(
                project_id=project.project_id,
                name=DEFAULT_SPACE_NAME,
                is_private=False,
            ))

            logger.info(f"Created project: {project.project_uuid} ({data.name})")
            return str(project.project_uuid)

    def update(self, project_uuid: str, data: UpdateProject) -> None:
        encrypted_dbt_connection = self._encrypt_json(data.dbt_connection, "Could not save credentials.")

        with self.db.get_session() as session:
            project = session.query(DbProject).filter(
                DbProject.project_uuid == parse_uuid(project_uuid)
            ).first()

            if not project:
                raise UnexpectedServerError("Could not update project.")

            project.name = data.name
            project.dbt_connection_type = data.dbt_connection.get("type")
            project.dbt_connection = encrypted_dbt_connection
            session.flush()

            self._upsert_warehouse_connection(session, project.project_id, data.warehouse_connection)
            logger.info(f"Updated project: {project_uuid}")

    def delete(self, project_uuid: str) -> None:
        """Delete a project and all associated data (CASCADE)."""
        with self.db.get_session() as session:
            project = session.query(DbProject).filter(
                DbProject.project_uuid == parse_uuid(project_uuid)
            ).first()

            if project:
                session.delete(project)
                logger.info(f"Deleted project: {project_uuid} ({project.name})")

    def get_with_sensitive_fields(self, project_uuid: str) -> Project:
        """Load a project with its decrypted dbt and warehouse connections."""
        with self.db.get_session() as session:
            row = session.execute(
                select(
                    DbProject.name,
                    DbProject.project_type,
                    DbProject.dbt_connection,
                    WarehouseCredentials.encrypted_credentials,
                    WarehouseCredentials.warehouse_type,
                    Organization.organization_uuid,
                    PinnedList.pinned_list_uuid,
                )
                .select_from(DbProject)
                .outerjoin(WarehouseCredentials, WarehouseCredentials.project_id == DbProject.project_id)
                .outerjoin(Organization, Organization.organization_id == DbProject.organization_id)
                .outerjoin(PinnedList, PinnedList.project_uuid == DbProject.project_uuid)
                .where(DbProject.project_uuid == parse_uuid(project_uuid))
            ).first()

        if row is None:
            raise NotExistsError(f"Cannot find project with id: {project_uuid}")
        if not row.dbt_connection:
            raise NotExistsError("Project has no valid dbt credentials")

        project = Project(
            organization_uuid=str(row.organization_uuid),
            project_uuid=project_uuid,
            name=row.name,
            type=ProjectType(row.project_type),
            dbt_connection=self._decrypt_json(row.dbt_connection, "Failed to load dbt credentials"),
            pinned_list_uuid=str(row.pinned_list_uuid) if row.pinned_list_uuid else None,
        )
        if not row.warehouse_type:
            return project

        project.warehouse_connection = self._decrypt_json(
            row.encrypted_credentials, "Failed to load warehouse credentials"
        )
        return project

    def get(self, project_uuid: str) -> Project:
        """Load a project with secret fields stripped from its connections."""
        project = self.get_with_sensitive_fields(project_uuid)

        warehouse_connection = None
        if project.warehouse_connection is not None:
            warehouse_connection = _without_keys(
                project.warehouse_connection, SENSITIVE_CREDENTIALS_FIELD_NAMES
            )

        return project.model_copy(update={
            "dbt_connection": _without_keys(
                project.dbt_connection, SENSITIVE_DBT_CREDENTIALS_FIELD_NAMES
            ),
            "warehouse_connection": warehouse_connection,
        })

    # =========================================================================
    # Table Selection
    # =========================================================================

    def get_tables_configuration(self, project_uuid: str) -> TablesConfiguration:
        with self.db.get_session() as session:
            row = session.execute(
                select(DbProject.table_selection_type, DbProject.table_selection_value)
                .where(DbProject.project_uuid == parse_uuid(project_uuid))
            ).first()

        if row is None:
            raise NotExistsError(f"Cannot find project with id: {project_uuid}")

        return TablesConfiguration(
            table_selection=TableSelection(
                type=row.table_selection_type,
                value=row.table_selection_value,
            )
        )

    def update_tables_configuration(self, project_uuid: str, data: TablesConfiguration) -> None:
        with self.db.get_session() as session:
            project = session.query(DbProject).filter(
                DbProject.project_uuid == parse_uuid(project_uuid)
            ).first()

            if not project:
                raise NotExistsError(f"Cannot find project with id: {project_uuid}")

            project.table_selection_type = data.table_selection.type.value
            project.table_selection_value = data.table_selection.value

    # =========================================================================
    # Warehouse Credentials
    # =========================================================================

    def get_warehouse_credentials_for_project(self, project_uuid: str) -> Dict[str, Any]:
        with self.db.get_session() as session:
            encrypted = session.execute(
                select(WarehouseCredentials.encrypted_credentials)
                .join(DbProject, DbProject.project_id == WarehouseCredentials.project_id)
                .where(DbProject.project_uuid == parse_uuid(project_uuid))
            ).scalar_one_or_none()

        if encrypted is None:
            raise NotExistsError("Cannot find any warehouse credentials for project.")
        return self._decrypt_json(
            encrypted, "Unexpected error: failed to parse warehouse credentials"
        )

    def _upsert_warehouse_connection(
        self,
        session: Session,
        project_id: int,
        data: Dict[str, Any],
    ) -> None:
        encrypted_credentials = self._encrypt_json(data, "Could not save credentials.")
        upsert(
            session,
            WarehouseCredentials,
            {
                "project_id": project_id,
                "warehouse_type": data.get("type"),
                "encrypted_credentials": encrypted_credentials,
            },
            conflict_columns=["project_id"],
        )

    # =========================================================================
    # dbt Cloud Integration
    # =========================================================================

    def find_dbt_cloud_integration(self, project_uuid: str) -> Optional[DbtCloudIntegration]:
        with self.db.get_session() as session:
            row = self._get_dbt_cloud_row(session, project_uuid)

        if row is None:
            return None
        return DbtCloudIntegration(metrics_job_id=row.metrics_job_id)

    def find_dbt_cloud_integration_with_secrets(
        self, project_uuid: str
    ) -> Optional[CreateDbtCloudIntegration]:
        with self.db.get_session() as session:
            row = self._get_dbt_cloud_row(session, project_uuid)

        if row is None:
            return None
        try:
            service_token = self.encryption_service.decrypt(row.service_token)
        except EncryptionError as e:
            raise UnexpectedServerError("Failed to load dbt Cloud service token") from e
        return CreateDbtCloudIntegration(
            metrics_job_id=row.metrics_job_id,
            service_token=service_token,
        )

    def upsert_dbt_cloud_integration(
        self,
        project_uuid: str,
        integration: CreateDbtCloudIntegration,
    ) -> None:
        try:
            encrypted_service_token = self.encryption_service.encrypt(integration.service_token)
        except EncryptionError as e:
            raise UnexpectedServerError("Could not save dbt Cloud service token.") from e

        with self.db.get_session() as session:
            project_id = self._get_project_id(session, project_uuid)
            upsert(
                session,
                DbDbtCloudIntegration,
                {
                    "project_id": project_id,
                    "service_token": encrypted_service_token,
                    "metrics_job_id": integration.metrics_job_id,
                },
                conflict_columns=["project_id"],
            )

    def delete_dbt_cloud_integration(self, project_uuid: str) -> None:
        with self.db.get_session() as session:
            session.execute(
                delete(DbDbtCloudIntegration).where(
                    DbDbtCloudIntegration.project_id == select(DbProject.project_id)
                    .where(DbProject.project_uuid == parse_uuid(project_uuid))
                    .scalar_subquery()
                )
            )

    @staticmethod
    def _get_dbt_cloud_row(session: Session, project_uuid: str):
        return session.execute(
            select(DbDbtCloudIntegration.metrics_job_id, DbDbtCloudIntegration.service_token)
            .join(DbProject, DbProject.project_id == DbDbtCloudIntegration.project_id)
            .where(DbProject.project_uuid == parse_uuid(project_uuid))
        ).first()

    # =========================================================================
    # Preview Content
    # =========================================================================

    def duplicate_content(self, project_uuid: str, preview_project_uuid: str) -> PreviewContentMapping:
        return self.content_cloner.duplicate(project_uuid, preview_project_uuid)

    def get_preview_content_mapping(
        self,
        project_uuid: str,
        preview_project_uuid: str,
    ) -> List[PreviewContentMapping]:
        """Recorded clone mappings between two projects, oldest first."""
        with self.db.get_session() as session:
            payloads = session.execute(
                select(PreviewContent.content_mapping)
                .where(
                    PreviewContent.project_uuid == parse_uuid(project_uuid),
                    PreviewContent.preview_project_uuid == parse_uuid(preview_project_uuid),
                )
                .order_by(PreviewContent.preview_content_id)
            ).scalars().all()

        return [PreviewContentMapping.model_validate(payload) for payload in payloads]

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _get_organization_id(session: Session, organization_uuid: str) -> int:
        organization_id = session.execute(
            select(Organization.organization_id)
            .where(Organization.organization_uuid == parse_uuid(organization_uuid, "organization"))
        ).scalar_one_or_none()
        if organization_id is None:
            raise NotExistsError("Cannot find organization")
        return organization_id

    @staticmethod
    def _get_project_id(session: Session, project_uuid: str) -> int:
        project_id = session.execute(
            select(DbProject.project_id).where(DbProject.project_uuid == parse_uuid(project_uuid))
        ).scalar_one_or_none()
        if project_id is None:
            raise NotExistsError(f"Cannot find project with id '{project_uuid}'")
        return project_id

    def _encrypt_json(self, data: Dict[str, Any], error_message: str) -> bytes:
        try:
            return self.encryption_service.encrypt(json.dumps(data))
        except (EncryptionError, TypeError, ValueError) as e:
            logger.error(f"{error_message} {e}")
            raise UnexpectedServerError(error_message) from e

    def _decrypt_json(self, encrypted: bytes, error_message: str) -> Dict[str, Any]:
        try:
            return json.loads(self.encryption_service.decrypt(encrypted))
        except (EncryptionError, ValueError) as e:
            logger.error(f"{error_message}: {e}")
            raise UnexpectedServerError(error_message) from e


def _without_keys(config: Dict[str, Any], keys) -> Dict[str, Any]:
    return {key: value for key, value in config.items() if key not in keys}
