"""Shared fixtures: an in-memory SQLite database and a content seeder."""

import os
import uuid

import pytest

from lightdash.core.db import DatabaseManager
from lightdash.core.db.models import (
    Dashboard,
    DashboardTile,
    DashboardTileChart,
    DashboardTileLoom,
    DashboardTileMarkdown,
    DashboardVersion,
    Email,
    Organization,
    Project,
    SavedQuery,
    SavedQueryVersion,
    SavedQueryVersionAdditionalMetric,
    SavedQueryVersionField,
    SavedQueryVersionSort,
    SavedQueryVersionTableCalculation,
    Space,
    SpaceShare,
    User,
)
from lightdash.core.encryption import EncryptionService

POSTGRES_URL = os.getenv("LIGHTDASH_TEST_DATABASE_URL")


class ContentSeeder:
    """Inserts organizations, users and project content for tests."""

    def __init__(self, db_manager: DatabaseManager):
        self.db = db_manager

    def _add(self, obj):
        with self.db.get_session() as session:
            session.add(obj)
            session.flush()
        return obj

    def organization(self, name: str = "Acme") -> Organization:
        return self._add(Organization(organization_name=name))

    def user(
        self,
        organization: Organization,
        email: str,
        first_name: str = "Ada",
        last_name: str = "Lovelace",
    ) -> User:
        with self.db.get_session() as session:
            user = User(
                organization_id=organization.organization_id,
                first_name=first_name,
                last_name=last_name,
            )
            session.add(user)
            session.flush()
            session.add(Email(user_id=user.user_id, email=email, is_primary=True))
        return user

    def project(self, organization: Organization, name: str = "Jaffle shop") -> Project:
        return self._add(Project(name=name, organization_id=organization.organization_id))

    def space(self, project: Project, name: str = "Shared", is_private: bool = False) -> Space:
        return self._add(Space(project_id=project.project_id, name=name, is_private=is_private))

    def share(self, space: Space, user: User) -> SpaceShare:
        return self._add(SpaceShare(space_id=space.space_id, user_id=user.user_id))

    def chart(self, space: Space, name: str, versions: int = 1) -> SavedQuery:
        """Chart with ``versions`` versions; each version gets one row per sub-table."""
        with self.db.get_session() as session:
            chart = SavedQuery(name=name, space_id=space.space_id)
            session.add(chart)
            session.flush()

            for number in range(1, versions + 1):
                version = SavedQueryVersion(
                    saved_query_id=chart.saved_query_id,
                    explore_name="orders",
                    filters={"dimensions": {"and": []}},
                    row_limit=100 * number,
                    chart_config={"version": number},
                )
                session.add(version)
                session.flush()

                version_id = version.saved_queries_version_id
                session.add_all([
                    SavedQueryVersionField(
                        saved_queries_version_id=version_id,
                        name="orders_status", field_type="dimension", order=0,
                    ),
                    SavedQueryVersionField(
                        saved_queries_version_id=version_id,
                        name="orders_total", field_type="metric", order=1,
                    ),
                    SavedQueryVersionSort(
                        saved_queries_version_id=version_id,
                        field_name="orders_total", descending=True, order=0,
                    ),
                    SavedQueryVersionTableCalculation(
                        saved_queries_version_id=version_id,
                        name="share", display_name="Share",
                        calculation_raw_sql="${orders_total} / 100", order=0,
                    ),
                    SavedQueryVersionAdditionalMetric(
                        saved_queries_version_id=version_id,
                        table="orders", name="max_amount", type="max", sql="${TABLE}.amount",
                    ),
                ])
        return chart

    def dashboard(
        self,
        space: Space,
        name: str,
        chart: SavedQuery = None,
        versions: int = 1,
    ):
        """Dashboard whose versions share the same tile uuids.

        Returns the dashboard and the tile uuids of its latest version.
        """
        tile_uuids = {
            "markdown": uuid.uuid4(),
            "loom": uuid.uuid4(),
            "saved_chart": uuid.uuid4(),
        }
        with self.db.get_session() as session:
            dashboard = Dashboard(name=name, space_id=space.space_id)
            session.add(dashboard)
            session.flush()

            for _ in range(versions):
                version = DashboardVersion(dashboard_id=dashboard.dashboard_id)
                session.add(version)
                session.flush()
                version_id = version.dashboard_version_id

                session.add_all([
                    DashboardTile(dashboard_version_id=version_id, dashboard_tile_uuid=tile_uuids["markdown"], type="markdown"),
                    DashboardTile(dashboard_version_id=version_id, dashboard_tile_uuid=tile_uuids["loom"], type="loom", x_offset=5),
                ])
                if chart is not None:
                    session.add(DashboardTile(
                        dashboard_version_id=version_id,
                        dashboard_tile_uuid=tile_uuids["saved_chart"],
                        type="saved_chart",
                        y_offset=3,
                    ))
                session.flush()

                session.add_all([
                    DashboardTileMarkdown(
                        dashboard_version_id=version_id,
                        dashboard_tile_uuid=tile_uuids["markdown"],
                        title="Notes", content="# Revenue",
                    ),
                    DashboardTileLoom(
                        dashboard_version_id=version_id,
                        dashboard_tile_uuid=tile_uuids["loom"],
                        title="Walkthrough", url="https://www.loom.com/share/abc",
                    ),
                ])
                if chart is not None:
                    session.add(DashboardTileChart(
                        dashboard_version_id=version_id,
                        dashboard_tile_uuid=tile_uuids["saved_chart"],
                        saved_chart_id=chart.saved_query_id,
                    ))

        if chart is None:
            del tile_uuids["saved_chart"]
        return dashboard, set(tile_uuids.values())


@pytest.fixture
def db_manager():
    manager = DatabaseManager("sqlite://")
    manager.init_db()
    yield manager
    manager.dispose()


@pytest.fixture
def seeder(db_manager):
    return ContentSeeder(db_manager)


@pytest.fixture
def encryption_service():
    return EncryptionService("test-secret")


@pytest.fixture
def organization(seeder):
    return seeder.organization()


@pytest.fixture
def source_project(seeder, organization):
    return seeder.project(organization)


@pytest.fixture
def preview_project(seeder, organization):
    return seeder.project(organization, name="Jaffle shop (preview)")


@pytest.fixture
def postgres_db_manager():
    if not POSTGRES_URL:
        pytest.skip("LIGHTDASH_TEST_DATABASE_URL not set")
    manager = DatabaseManager(POSTGRES_URL)
    manager.init_db()
    yield manager
    manager.dispose()
