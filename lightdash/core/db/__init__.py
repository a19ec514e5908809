"""
Database module for Lightdash.

Exports:
- DatabaseManager: Database connection and session management
- get_database_manager: Factory function for DatabaseManager
- wait_for_db: Database availability checker with retry logic
- upsert, is_constraint_violation: Dialect-aware write helpers
- parse_uuid: Public id parsing that raises NotExistsError
- Models: Organization, User, Email, Project, Space, SavedQuery, Dashboard, ...
- Base: SQLAlchemy declarative base
"""

from .db import (
    DatabaseManager,
    get_database_manager,
    wait_for_db,
    upsert,
    is_constraint_violation,
    parse_uuid,
)
from .models import (
    Base,
    Organization,
    User,
    Email,
    Project,
    WarehouseCredentials,
    PinnedList,
    ProjectMembership,
    Space,
    SpaceShare,
    SavedQuery,
    SavedQueryVersion,
    SavedQueryVersionTableCalculation,
    SavedQueryVersionSort,
    SavedQueryVersionField,
    SavedQueryVersionAdditionalMetric,
    Dashboard,
    DashboardVersion,
    DashboardTile,
    DashboardTileChart,
    DashboardTileLoom,
    DashboardTileMarkdown,
    PreviewContent,
    CachedExplores,
    CachedWarehouse,
    DbtCloudIntegration,
)

__all__ = [
    # Database management
    "DatabaseManager",
    "get_database_manager",
    "wait_for_db",
    "upsert",
    "is_constraint_violation",
    "parse_uuid",

    # ORM models
    "Base",
    "Organization",
    "User",
    "Email",
    "Project",
    "WarehouseCredentials",
    "PinnedList",
    "ProjectMembership",
    "Space",
    "SpaceShare",
    "SavedQuery",
    "SavedQueryVersion",
    "SavedQueryVersionTableCalculation",
    "SavedQueryVersionSort",
    "SavedQueryVersionField",
    "SavedQueryVersionAdditionalMetric",
    "Dashboard",
    "DashboardVersion",
    "DashboardTile",
    "DashboardTileChart",
    "DashboardTileLoom",
    "DashboardTileMarkdown",
    "PreviewContent",
    "CachedExplores",
    "CachedWarehouse",
    "DbtCloudIntegration",
]
