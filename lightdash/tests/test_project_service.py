"""Tests for ProjectService — preview creation and explore refresh."""

import uuid
from unittest.mock import MagicMock

import pytest

from lightdash.core.db.models import PreviewContent, Project as DbProject, SavedQuery
from lightdash.core.errors import NotExistsError
from lightdash.core.project import ExploreCache, ProjectLockCoordinator, ProjectModel
from lightdash.core.project.models import CreateProject, ProjectType
from lightdash.core.services import ProjectService


@pytest.fixture
def project_model(db_manager, encryption_service):
    return ProjectModel(db_manager, encryption_service)


@pytest.fixture
def service(db_manager, project_model):
    return ProjectService(
        db_manager,
        project_model,
        ExploreCache(db_manager),
        ProjectLockCoordinator(db_manager),
    )


@pytest.fixture
def project_uuid(project_model, organization):
    return project_model.create(str(organization.organization_uuid), CreateProject(
        name="Jaffle shop",
        dbt_connection={"type": "github", "personal_access_token": "ghp_secret"},
        warehouse_connection={"type": "postgres", "password": "hunter2"},
    ))


class TestCreatePreview:

    def test_creates_preview_with_copied_content(self, db_manager, seeder, service, project_model, organization, project_uuid):
        with db_manager.get_session() as session:
            source = session.query(DbProject).filter(DbProject.project_uuid == uuid.UUID(project_uuid)).one()
        space = seeder.space(source, "Finance")
        seeder.chart(space, "Revenue")

        preview_uuid = service.create_preview(str(organization.organization_uuid), project_uuid, "Preview")

        preview = project_model.get_with_sensitive_fields(preview_uuid)
        assert preview.type == ProjectType.PREVIEW
        assert preview.name == "Preview"
        assert preview.dbt_connection["personal_access_token"] == "ghp_secret"
        assert preview.warehouse_connection["password"] == "hunter2"

        with db_manager.get_session() as session:
            preview_row = session.query(DbProject).filter(DbProject.project_uuid == uuid.UUID(preview_uuid)).one()
            assert str(preview_row.copied_from_project_uuid) == project_uuid
            assert session.query(SavedQuery).count() == 2
            assert session.query(PreviewContent).count() == 1

        mappings = project_model.get_preview_content_mapping(project_uuid, preview_uuid)
        # Default "Shared" space of the source plus "Finance"
        assert len(mappings[0].spaces) == 2
        assert len(mappings[0].charts) == 1

    def test_missing_source_raises_not_exists(self, service, organization):
        with pytest.raises(NotExistsError):
            service.create_preview(str(organization.organization_uuid), str(uuid.uuid4()), "Preview")

    def test_requires_database(self):
        service = ProjectService(None, MagicMock(), MagicMock(), MagicMock())
        with pytest.raises(RuntimeError, match="Database features are not available"):
            service.create_preview("org", "project", "Preview")


class TestRefreshExplores:

    def test_refresh_saves_compiled_explores(self, service, project_uuid):
        compile_explores = MagicMock(return_value=[{"name": "orders"}])

        assert service.refresh_explores(project_uuid, compile_explores) is True

        compile_explores.assert_called_once_with(project_uuid)
        assert service.explore_cache.get_explores(project_uuid) == [{"name": "orders"}]

    def test_refresh_skips_when_lock_is_held(self, db_manager, project_model):
        lock_coordinator = MagicMock()
        lock_coordinator.try_acquire_project_lock.side_effect = (
            lambda project_uuid, on_acquired, on_failed: on_failed(MagicMock())
        )
        explore_cache = MagicMock()
        service = ProjectService(db_manager, project_model, explore_cache, lock_coordinator)
        compile_explores = MagicMock()

        assert service.refresh_explores(str(uuid.uuid4()), compile_explores) is False

        compile_explores.assert_not_called()
        explore_cache.save_explores.assert_not_called()

    def test_refresh_unknown_project_is_noop(self, service):
        compile_explores = MagicMock()

        assert service.refresh_explores(str(uuid.uuid4()), compile_explores) is False
        compile_explores.assert_not_called()

    def test_compile_error_leaves_cache_untouched(self, service, project_uuid):
        service.refresh_explores(project_uuid, lambda _: [{"name": "orders"}])

        def failing_compile(_):
            raise RuntimeError("dbt compile failed")

        with pytest.raises(RuntimeError):
            service.refresh_explores(project_uuid, failing_compile)

        assert service.explore_cache.get_explores(project_uuid) == [{"name": "orders"}]
