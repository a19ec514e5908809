"""Preview project content cloning.

Copies a project's spaces, charts and dashboards into an (empty) preview
project in one transaction. Entities are copied in dependency order and
each step records an old->new id mapping that later steps use to rewrite
their foreign keys:

    spaces -> space shares
           -> charts -> latest chart version -> version sub-tables
           -> dashboards -> latest dashboard version -> tiles -> tile content

Only the latest version (highest version id) of each chart and dashboard is
copied. Dashboard tile uuids are kept as they are; every integer key is
regenerated. The resulting mapping is stored in ``preview_content``.
"""

import logging
from typing import Any, Callable, Dict, Generic, Hashable, Iterable, List, Optional, TypeVar
from uuid import UUID

from sqlalchemy import func, inspect as sa_inspect, select
from sqlalchemy.orm import Session

from ..db import DatabaseManager, parse_uuid
from ..db.models import (
    Dashboard,
    DashboardTile,
    DashboardTileChart,
    DashboardTileLoom,
    DashboardTileMarkdown,
    DashboardVersion,
    PreviewContent,
    Project,
    SavedQuery,
    SavedQueryVersion,
    SavedQueryVersionAdditionalMetric,
    SavedQueryVersionField,
    SavedQueryVersionSort,
    SavedQueryVersionTableCalculation,
    Space,
    SpaceShare,
)
from ..errors import CloneMappingError, NotExistsError
from .models import ContentMappingEntry, PreviewContentMapping

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)

# Sub-tables of a chart version, keyed by saved_queries_version_id
CHART_VERSION_CONTENT_MODELS = (
    SavedQueryVersionTableCalculation,
    SavedQueryVersionSort,
    SavedQueryVersionField,
    SavedQueryVersionAdditionalMetric,
)

# Tile content tables, keyed by (dashboard_version_id, dashboard_tile_uuid)
DASHBOARD_TILE_CONTENT_MODELS = (
    DashboardTileChart,
    DashboardTileLoom,
    DashboardTileMarkdown,
)


class IdMapping(Generic[K]):
    """Ordered old->new id map for one entity kind.

    Looking up an id that was never copied raises CloneMappingError: it
    means a row references something outside the cloned graph.
    """

    def __init__(self, kind: str):
        self.kind = kind
        self._ids: Dict[K, K] = {}

    def add(self, old_id: K, new_id: K) -> None:
        self._ids[old_id] = new_id

    def __getitem__(self, old_id: K) -> K:
        try:
            return self._ids[old_id]
        except KeyError:
            raise CloneMappingError(
                f"No copied {self.kind} for id {old_id!r}",
                data={"kind": self.kind, "id": str(old_id)},
            ) from None

    def __contains__(self, old_id: object) -> bool:
        return old_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    def old_ids(self) -> List[K]:
        return list(self._ids)

    def new_ids(self) -> List[K]:
        return list(self._ids.values())

    def entries(self) -> List[ContentMappingEntry]:
        return [ContentMappingEntry(id=old, new_id=new) for old, new in self._ids.items()]


def _primary_key_names(model) -> List[str]:
    return [column.key for column in sa_inspect(model).primary_key]


class ProjectContentCloner:
    """Duplicates a project's content graph into a preview project."""

    def __init__(self, db_manager: DatabaseManager):
        self.db = db_manager

    def duplicate(self, project_uuid: str, preview_project_uuid: str) -> PreviewContentMapping:
        """Copy all content of project_uuid into preview_project_uuid.

        Runs in a single transaction; on any failure nothing is persisted.
        Calling it twice produces two independent copies.
        """
        logger.debug(f"Duplicating content from {project_uuid} to {preview_project_uuid}")

        with self.db.get_session() as session:
            project_id = self._get_project_id(session, project_uuid)
            preview_project_id = self._get_project_id(session, preview_project_uuid)

            spaces = self._copy_spaces(session, project_id, preview_project_id)
            logger.debug(f"Duplicated {len(spaces)} spaces on {preview_project_uuid}")
            self._copy_space_shares(session, spaces)

            charts = self._copy_charts(session, spaces)
            logger.debug(f"Duplicated {len(charts)} charts on {preview_project_uuid}")
            chart_versions = self._copy_latest_chart_versions(session, charts)
            for model in CHART_VERSION_CONTENT_MODELS:
                self._copy_chart_version_content(session, model, chart_versions)

            dashboards = self._copy_dashboards(session, spaces)
            logger.debug(f"Duplicated {len(dashboards)} dashboards on {preview_project_uuid}")
            dashboard_versions = self._copy_latest_dashboard_versions(session, dashboards)
            tiles = self._copy_dashboard_tiles(session, dashboard_versions)
            logger.debug(f"Duplicated {len(tiles)} dashboard tiles on {preview_project_uuid}")
            for model in DASHBOARD_TILE_CONTENT_MODELS:
                self._copy_dashboard_tile_content(
                    session, model, dashboard_versions, tiles, charts
                )

            mapping = PreviewContentMapping(
                charts=charts.entries(),
                chart_versions=chart_versions.entries(),
                spaces=spaces.entries(),
                dashboards=dashboards.entries(),
                dashboard_versions=dashboard_versions.entries(),
            )
            session.add(PreviewContent(
                project_uuid=parse_uuid(project_uuid),
                preview_project_uuid=parse_uuid(preview_project_uuid),
                content_mapping=mapping.model_dump(by_alias=True),
            ))

        logger.info(
            f"Duplicated content from {project_uuid} to {preview_project_uuid}: "
            f"{len(spaces)} spaces, {len(charts)} charts, {len(dashboards)} dashboards"
        )
        return mapping

    # =========================================================================
    # Spaces
    # =========================================================================

    def _copy_spaces(self, session: Session, project_id: int, preview_project_id: int) -> IdMapping[int]:
        spaces = session.query(Space).filter(
            Space.project_id == project_id
        ).order_by(Space.space_id).all()

        new_spaces = self._insert_copies(
            session, Space, spaces,
            exclude=("space_id", "space_uuid"),
            overrides={"project_id": lambda _: preview_project_id},
        )
        return self._build_mapping("space", spaces, new_spaces, "space_id")

    def _copy_space_shares(self, session: Session, spaces: IdMapping[int]) -> None:
        shares = session.query(SpaceShare).filter(
            SpaceShare.space_id.in_(spaces.old_ids())
        ).all()

        self._insert_copies(
            session, SpaceShare, shares,
            overrides={"space_id": lambda row: spaces[row.space_id]},
        )

    # =========================================================================
    # Charts
    # =========================================================================

    def _copy_charts(self, session: Session, spaces: IdMapping[int]) -> IdMapping[int]:
        charts = session.query(SavedQuery).filter(
            SavedQuery.space_id.in_(spaces.old_ids())
        ).order_by(SavedQuery.saved_query_id).all()

        new_charts = self._insert_copies(
            session, SavedQuery, charts,
            exclude=("saved_query_id", "saved_query_uuid"),
            overrides={"space_id": lambda row: spaces[row.space_id]},
        )
        return self._build_mapping("chart", charts, new_charts, "saved_query_id")

    def _copy_latest_chart_versions(self, session: Session, charts: IdMapping[int]) -> IdMapping[int]:
        latest_version_ids = (
            select(func.max(SavedQueryVersion.saved_queries_version_id))
            .where(SavedQueryVersion.saved_query_id.in_(charts.old_ids()))
            .group_by(SavedQueryVersion.saved_query_id)
        )
        versions = session.query(SavedQueryVersion).filter(
            SavedQueryVersion.saved_queries_version_id.in_(latest_version_ids)
        ).order_by(SavedQueryVersion.saved_queries_version_id).all()

        new_versions = self._insert_copies(
            session, SavedQueryVersion, versions,
            exclude=("saved_queries_version_id", "saved_queries_version_uuid"),
            overrides={"saved_query_id": lambda row: charts[row.saved_query_id]},
        )
        return self._build_mapping(
            "chart version", versions, new_versions, "saved_queries_version_id"
        )

    def _copy_chart_version_content(
        self,
        session: Session,
        model,
        chart_versions: IdMapping[int],
    ) -> int:
        rows = session.query(model).filter(
            model.saved_queries_version_id.in_(chart_versions.old_ids())
        ).order_by(*sa_inspect(model).primary_key).all()

        if not rows:
            return 0

        self._insert_copies(
            session, model, rows,
            exclude=_primary_key_names(model),
            overrides={
                "saved_queries_version_id": lambda row: chart_versions[row.saved_queries_version_id],
            },
        )
        return len(rows)

    # =========================================================================
    # Dashboards
    # =========================================================================

    def _copy_dashboards(self, session: Session, spaces: IdMapping[int]) -> IdMapping[int]:
        dashboards = session.query(Dashboard).filter(
            Dashboard.space_id.in_(spaces.old_ids())
        ).order_by(Dashboard.dashboard_id).all()

        new_dashboards = self._insert_copies(
            session, Dashboard, dashboards,
            exclude=("dashboard_id", "dashboard_uuid"),
            overrides={"space_id": lambda row: spaces[row.space_id]},
        )
        return self._build_mapping("dashboard", dashboards, new_dashboards, "dashboard_id")

    def _copy_latest_dashboard_versions(self, session: Session, dashboards: IdMapping[int]) -> IdMapping[int]:
        latest_version_ids = (
            select(func.max(DashboardVersion.dashboard_version_id))
            .where(DashboardVersion.dashboard_id.in_(dashboards.old_ids()))
            .group_by(DashboardVersion.dashboard_id)
        )
        versions = session.query(DashboardVersion).filter(
            DashboardVersion.dashboard_version_id.in_(latest_version_ids)
        ).order_by(DashboardVersion.dashboard_version_id).all()

        new_versions = self._insert_copies(
            session, DashboardVersion, versions,
            exclude=("dashboard_version_id",),
            overrides={"dashboard_id": lambda row: dashboards[row.dashboard_id]},
        )
        return self._build_mapping(
            "dashboard version", versions, new_versions, "dashboard_version_id"
        )

    def _copy_dashboard_tiles(self, session: Session, dashboard_versions: IdMapping[int]) -> IdMapping[UUID]:
        tiles = session.query(DashboardTile).filter(
            DashboardTile.dashboard_version_id.in_(dashboard_versions.old_ids())
        ).order_by(DashboardTile.dashboard_version_id, DashboardTile.dashboard_tile_uuid).all()

        # dashboard_tile_uuid is copied as is
        new_tiles = self._insert_copies(
            session, DashboardTile, tiles,
            overrides={
                "dashboard_version_id": lambda row: dashboard_versions[row.dashboard_version_id],
            },
        )
        return self._build_mapping("dashboard tile", tiles, new_tiles, "dashboard_tile_uuid")

    def _copy_dashboard_tile_content(
        self,
        session: Session,
        model,
        dashboard_versions: IdMapping[int],
        tiles: IdMapping[UUID],
        charts: IdMapping[int],
    ) -> int:
        rows = session.query(model).filter(
            model.dashboard_tile_uuid.in_(tiles.old_ids()),
            model.dashboard_version_id.in_(dashboard_versions.old_ids()),
        ).all()

        if not rows:
            return 0

        overrides: Dict[str, Callable[[Any], Any]] = {
            "dashboard_version_id": lambda row: dashboard_versions[row.dashboard_version_id],
            "dashboard_tile_uuid": lambda row: tiles[row.dashboard_tile_uuid],
        }
        if model is DashboardTileChart:
            overrides["saved_chart_id"] = (
                lambda row: charts[row.saved_chart_id] if row.saved_chart_id is not None else None
            )

        self._insert_copies(session, model, rows, overrides=overrides)
        return len(rows)

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _get_project_id(session: Session, project_uuid: str) -> int:
        project_id = session.execute(
            select(Project.project_id).where(Project.project_uuid == parse_uuid(project_uuid))
        ).scalar_one_or_none()
        if project_id is None:
            raise NotExistsError(f"Cannot find project with id: {project_uuid}")
        return project_id

    @staticmethod
    def _insert_copies(
        session: Session,
        model,
        rows: List[Any],
        exclude: Iterable[str] = (),
        overrides: Optional[Dict[str, Callable[[Any], Any]]] = None,
    ) -> List[Any]:
        """Insert one copy per row and return the flushed copies in row order.

        Excluded columns fall back to their defaults (new surrogate ids and
        uuids); overridden columns take the value computed from the source row.
        """
        if not rows:
            return []

        excluded = set(exclude)
        overrides = overrides or {}
        keys = [
            attr.key for attr in sa_inspect(model).column_attrs
            if attr.key not in excluded
        ]

        copies = []
        for row in rows:
            values = {key: getattr(row, key) for key in keys}
            for key, compute in overrides.items():
                values[key] = compute(row)
            copies.append(model(**values))

        session.add_all(copies)
        session.flush()
        return copies

    @staticmethod
    def _build_mapping(kind: str, rows: List[Any], copies: List[Any], key: str) -> IdMapping:
        mapping: IdMapping = IdMapping(kind)
        for row, row_copy in zip(rows, copies):
            mapping.add(getattr(row, key), getattr(row_copy, key))
        return mapping
