"""Project service: preview creation and explore cache refresh."""

from typing import Any, Callable, Dict, List

from sqlalchemy.orm import Session

from ..db import DatabaseManager
from ..project import ExploreCache, ProjectLockCoordinator, ProjectModel
from ..project.models import CreateProject, ProjectType
from .base import BaseService

CompileExplores = Callable[[str], List[Dict[str, Any]]]


class ProjectService(BaseService):
    """Orchestrates project operations spanning several models."""

    def __init__(
        self,
        db_manager: DatabaseManager,
        project_model: ProjectModel,
        explore_cache: ExploreCache,
        lock_coordinator: ProjectLockCoordinator,
    ):
        super().__init__(db_manager)
        self.project_model = project_model
        self.explore_cache = explore_cache
        self.lock_coordinator = lock_coordinator

    def create_preview(self, organization_uuid: str, project_uuid: str, name: str) -> str:
        """Create a preview project copied from ``project_uuid``.

        The preview gets the source's connections and a copy of its content.
        Returns the preview project uuid.
        """
        self._validate_database_available()
        self._log_operation("create_preview", project_uuid=project_uuid, name=name)

        source = self.project_model.get_with_sensitive_fields(project_uuid)
        preview_project_uuid = self.project_model.create(
            organization_uuid,
            CreateProject(
                name=name,
                type=ProjectType.PREVIEW,
                dbt_connection=source.dbt_connection,
                warehouse_connection=source.warehouse_connection or {},
                copied_from_project_uuid=project_uuid,
            ),
        )

        try:
            self.project_model.duplicate_content(project_uuid, preview_project_uuid)
        except Exception as e:
            self._log_error(
                "duplicate_content", e,
                project_uuid=project_uuid,
                preview_project_uuid=preview_project_uuid,
            )
            raise

        return preview_project_uuid

    def refresh_explores(self, project_uuid: str, compile_explores: CompileExplores) -> bool:
        """Recompile and cache the explores unless another refresh holds the lock.

        Returns True when this call refreshed the cache.
        """
        refreshed = False

        def on_lock_acquired(session: Session) -> None:
            nonlocal refreshed
            explores = compile_explores(project_uuid)
            self.explore_cache.save_explores(project_uuid, explores, session=session)
            refreshed = True

        def on_lock_failed(session: Session) -> None:
            self.logger.info(f"Explores of project {project_uuid} are already being refreshed")

        self.lock_coordinator.try_acquire_project_lock(
            project_uuid, on_lock_acquired, on_lock_failed
        )
        return refreshed
