"""
SQLAlchemy ORM Models for Lightdash

Project metadata models:
- Organization, User, Email: tenants and their members
- Project, WarehouseCredentials, PinnedList: connected dbt projects
- ProjectMembership: Grants users a role on a project
- Space, SpaceShare: Folders of charts and dashboards
- SavedQuery + versions: Charts with their versioned query definitions
- Dashboard + versions, tiles: Dashboards and their tile layout/content
- PreviewContent: Old->new id mappings recorded by preview clones
- CachedExplores, CachedWarehouse: Compiled explores and warehouse catalog
- DbtCloudIntegration: dbt Cloud metrics job settings
"""

from sqlalchemy import (
    Column, String, Integer, Text, TIMESTAMP, ForeignKey, Boolean,
    Index, TypeDecorator, UniqueConstraint, LargeBinary, JSON,
    ForeignKeyConstraint,
)
from sqlalchemy.orm import relationship, declarative_base
from sqlalchemy.dialects.postgresql import UUID as PostgreSQL_UUID, JSONB
import uuid
from datetime import datetime

from ..constants import PROJECT_MEMBERSHIPS_UNIQUE_CONSTRAINT

Base = declarative_base()

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


# UUID type that works with both PostgreSQL and SQLite
class UUID(TypeDecorator):
    """Platform-independent UUID type.

    Uses PostgreSQL's UUID type when available, otherwise stores as String(36).
    """
    impl = String
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == 'postgresql':
            return dialect.type_descriptor(PostgreSQL_UUID(as_uuid=True))
        else:
            return dialect.type_descriptor(String(36))

    def process_bind_param(self, value, dialect):
        if value is None:
            return value
        if not isinstance(value, uuid.UUID):
            value = uuid.UUID(str(value))
        if dialect.name == 'postgresql':
            return value
        return str(value)

    def process_result_value(self, value, dialect):
        if value is None or isinstance(value, uuid.UUID):
            return value
        return uuid.UUID(value)


# =============================================================================
# Organizations & Users
# =============================================================================

class Organization(Base):
    """Tenant owning projects and users."""
    __tablename__ = "organizations"

    organization_id = Column(Integer, primary_key=True, autoincrement=True)
    organization_uuid = Column(UUID(), unique=True, nullable=False, default=uuid.uuid4)
    organization_name = Column(String(255), nullable=False)
    created_at = Column(TIMESTAMP, default=datetime.utcnow, nullable=False)

    # Relationships
    projects = relationship("Project", back_populates="organization", cascade="all, delete-orphan")
    users = relationship("User", back_populates="organization")

    def __repr__(self):
        return f"<Organization(organization_id={self.organization_id}, name='{self.organization_name}')>"


class User(Base):
    """User account within an organization."""
    __tablename__ = "users"

    user_id = Column(Integer, primary_key=True, autoincrement=True)
    user_uuid = Column(UUID(), unique=True, nullable=False, default=uuid.uuid4)
    first_name = Column(String(255), nullable=False, default="")
    last_name = Column(String(255), nullable=False, default="")
    organization_id = Column(Integer, ForeignKey("organizations.organization_id", ondelete="CASCADE"), nullable=True)
    created_at = Column(TIMESTAMP, default=datetime.utcnow, nullable=False)

    # Relationships
    organization = relationship("Organization", back_populates="users")
    emails = relationship("Email", back_populates="user", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<User(user_id={self.user_id}, user_uuid={self.user_uuid})>"


class Email(Base):
    """Email addresses of a user; exactly one is primary."""
    __tablename__ = "emails"
    __table_args__ = (
        Index('idx_emails_user', 'user_id'),
    )

    email_id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False)
    email = Column(String(255), unique=True, nullable=False)
    is_primary = Column(Boolean, default=False, nullable=False)
    created_at = Column(TIMESTAMP, default=datetime.utcnow, nullable=False)

    # Relationships
    user = relationship("User", back_populates="emails")

    def __repr__(self):
        return f"<Email(email='{self.email}', primary={self.is_primary})>"


# =============================================================================
# Projects
# =============================================================================

class Project(Base):
    """Connected dbt project and its warehouse."""
    __tablename__ = "projects"
    __table_args__ = (
        Index('idx_projects_organization', 'organization_id'),
    )

    project_id = Column(Integer, primary_key=True, autoincrement=True)
    project_uuid = Column(UUID(), unique=True, nullable=False, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    project_type = Column(String(20), default='DEFAULT', nullable=False)     # DEFAULT, PREVIEW
    organization_id = Column(Integer, ForeignKey("organizations.organization_id", ondelete="CASCADE"), nullable=False)
    dbt_connection_type = Column(String(50), nullable=True)
    dbt_connection = Column(LargeBinary, nullable=True)                      # encrypted JSON
    table_selection_type = Column(String(20), default='ALL_TABLES', nullable=False)
    table_selection_value = Column(JSONType, nullable=True)
    copied_from_project_uuid = Column(UUID(), nullable=True)
    created_at = Column(TIMESTAMP, default=datetime.utcnow, nullable=False)

    # Relationships
    organization = relationship("Organization", back_populates="projects")
    warehouse_credentials = relationship("WarehouseCredentials", back_populates="project", uselist=False, cascade="all, delete-orphan")
    spaces = relationship("Space", back_populates="project", cascade="all, delete-orphan")
    memberships = relationship("ProjectMembership", back_populates="project", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Project(project_id={self.project_id}, name='{self.name}', type='{self.project_type}')>"


class WarehouseCredentials(Base):
    """Encrypted warehouse connection for a project (one per project)."""
    __tablename__ = "warehouse_credentials"

    warehouse_credentials_id = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(Integer, ForeignKey("projects.project_id", ondelete="CASCADE"), unique=True, nullable=False)
    warehouse_type = Column(String(50), nullable=False)
    encrypted_credentials = Column(LargeBinary, nullable=False)
    created_at = Column(TIMESTAMP, default=datetime.utcnow, nullable=False)

    # Relationships
    project = relationship("Project", back_populates="warehouse_credentials")

    def __repr__(self):
        return f"<WarehouseCredentials(project_id={self.project_id}, type='{self.warehouse_type}')>"


class PinnedList(Base):
    """Pinned items list of a project."""
    __tablename__ = "pinned_list"

    pinned_list_uuid = Column(UUID(), primary_key=True, default=uuid.uuid4)
    project_uuid = Column(UUID(), ForeignKey("projects.project_uuid", ondelete="CASCADE"), unique=True, nullable=False)
    created_at = Column(TIMESTAMP, default=datetime.utcnow, nullable=False)


class ProjectMembership(Base):
    """Grants a user a role on a project.

    Roles:
    - viewer: Read-only access
    - editor: Can edit charts and dashboards
    - admin: Full control including member management
    """
    __tablename__ = "project_memberships"
    __table_args__ = (
        UniqueConstraint('project_id', 'user_id', name=PROJECT_MEMBERSHIPS_UNIQUE_CONSTRAINT),
        Index("idx_project_memberships_user", "user_id"),
    )

    project_membership_id = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(Integer, ForeignKey("projects.project_id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False)
    role = Column(String(20), nullable=False, default="viewer")
    created_at = Column(TIMESTAMP, default=datetime.utcnow, nullable=False)

    # Relationships
    project = relationship("Project", back_populates="memberships")
    user = relationship("User")

    def __repr__(self):
        return f"<ProjectMembership(project_id={self.project_id}, user_id={self.user_id}, role='{self.role}')>"


# =============================================================================
# Spaces
# =============================================================================

class Space(Base):
    """Folder of charts and dashboards within a project."""
    __tablename__ = "spaces"
    __table_args__ = (
        Index('idx_spaces_project', 'project_id'),
    )

    space_id = Column(Integer, primary_key=True, autoincrement=True)
    space_uuid = Column(UUID(), unique=True, nullable=False, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    is_private = Column(Boolean, default=False, nullable=False)
    project_id = Column(Integer, ForeignKey("projects.project_id", ondelete="CASCADE"), nullable=False)
    created_at = Column(TIMESTAMP, default=datetime.utcnow, nullable=False)

    # Relationships
    project = relationship("Project", back_populates="spaces")

    def __repr__(self):
        return f"<Space(space_id={self.space_id}, name='{self.name}', private={self.is_private})>"


class SpaceShare(Base):
    """Shares a private space with a user."""
    __tablename__ = "space_share"

    space_id = Column(Integer, ForeignKey("spaces.space_id", ondelete="CASCADE"), primary_key=True)
    user_id = Column(Integer, ForeignKey("users.user_id", ondelete="CASCADE"), primary_key=True)
    created_at = Column(TIMESTAMP, default=datetime.utcnow, nullable=False)


# =============================================================================
# Charts (saved queries)
# =============================================================================

class SavedQuery(Base):
    """Chart; its definition lives in versions, the highest id is current."""
    __tablename__ = "saved_queries"
    __table_args__ = (
        Index('idx_saved_queries_space', 'space_id'),
    )

    saved_query_id = Column(Integer, primary_key=True, autoincrement=True)
    saved_query_uuid = Column(UUID(), unique=True, nullable=False, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    space_id = Column(Integer, ForeignKey("spaces.space_id", ondelete="CASCADE"), nullable=False)
    created_at = Column(TIMESTAMP, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<SavedQuery(saved_query_id={self.saved_query_id}, name='{self.name}')>"


class SavedQueryVersion(Base):
    """Immutable snapshot of a chart definition."""
    __tablename__ = "saved_queries_versions"
    __table_args__ = (
        Index('idx_saved_queries_versions_chart', 'saved_query_id'),
    )

    saved_queries_version_id = Column(Integer, primary_key=True, autoincrement=True)
    saved_queries_version_uuid = Column(UUID(), unique=True, nullable=False, default=uuid.uuid4)
    saved_query_id = Column(Integer, ForeignKey("saved_queries.saved_query_id", ondelete="CASCADE"), nullable=False)
    explore_name = Column(String(255), nullable=False)
    filters = Column(JSONType, default=dict)
    row_limit = Column(Integer, default=500, nullable=False)
    chart_type = Column(String(50), default='cartesian', nullable=False)
    chart_config = Column(JSONType, nullable=True)
    pivot_dimensions = Column(JSONType, nullable=True)
    created_at = Column(TIMESTAMP, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<SavedQueryVersion(id={self.saved_queries_version_id}, chart={self.saved_query_id})>"


class SavedQueryVersionTableCalculation(Base):
    __tablename__ = "saved_queries_version_table_calculations"

    saved_queries_version_table_calculation_id = Column(Integer, primary_key=True, autoincrement=True)
    saved_queries_version_id = Column(Integer, ForeignKey("saved_queries_versions.saved_queries_version_id", ondelete="CASCADE"), nullable=False)
    name = Column(String(255), nullable=False)
    display_name = Column(String(255), nullable=False)
    calculation_raw_sql = Column(Text, nullable=False)
    order = Column(Integer, nullable=False)


class SavedQueryVersionSort(Base):
    __tablename__ = "saved_queries_version_sorts"

    saved_queries_version_sort_id = Column(Integer, primary_key=True, autoincrement=True)
    saved_queries_version_id = Column(Integer, ForeignKey("saved_queries_versions.saved_queries_version_id", ondelete="CASCADE"), nullable=False)
    field_name = Column(String(255), nullable=False)
    descending = Column(Boolean, default=False, nullable=False)
    order = Column(Integer, nullable=False)


class SavedQueryVersionField(Base):
    __tablename__ = "saved_queries_version_fields"

    saved_queries_version_field_id = Column(Integer, primary_key=True, autoincrement=True)
    saved_queries_version_id = Column(Integer, ForeignKey("saved_queries_versions.saved_queries_version_id", ondelete="CASCADE"), nullable=False)
    name = Column(String(255), nullable=False)
    field_type = Column(String(20), nullable=False)     # dimension, metric
    order = Column(Integer, nullable=False)


class SavedQueryVersionAdditionalMetric(Base):
    __tablename__ = "saved_queries_version_additional_metrics"

    saved_queries_version_additional_metric_id = Column(Integer, primary_key=True, autoincrement=True)
    saved_queries_version_id = Column(Integer, ForeignKey("saved_queries_versions.saved_queries_version_id", ondelete="CASCADE"), nullable=False)
    table = Column(String(255), nullable=False)
    name = Column(String(255), nullable=False)
    type = Column(String(50), nullable=False)
    label = Column(String(255), nullable=True)
    sql = Column(Text, nullable=False)
    description = Column(Text, nullable=True)


# =============================================================================
# Dashboards
# =============================================================================

class Dashboard(Base):
    """Dashboard; its layout lives in versions, the highest id is current."""
    __tablename__ = "dashboards"
    __table_args__ = (
        Index('idx_dashboards_space', 'space_id'),
    )

    dashboard_id = Column(Integer, primary_key=True, autoincrement=True)
    dashboard_uuid = Column(UUID(), unique=True, nullable=False, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    space_id = Column(Integer, ForeignKey("spaces.space_id", ondelete="CASCADE"), nullable=False)
    created_at = Column(TIMESTAMP, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<Dashboard(dashboard_id={self.dashboard_id}, name='{self.name}')>"


class DashboardVersion(Base):
    __tablename__ = "dashboard_versions"
    __table_args__ = (
        Index('idx_dashboard_versions_dashboard', 'dashboard_id'),
    )

    dashboard_version_id = Column(Integer, primary_key=True, autoincrement=True)
    dashboard_id = Column(Integer, ForeignKey("dashboards.dashboard_id", ondelete="CASCADE"), nullable=False)
    created_at = Column(TIMESTAMP, default=datetime.utcnow, nullable=False)


class DashboardTile(Base):
    """Positioned cell of a dashboard version.

    The tile uuid is stable across versions and preview clones, so the
    primary key is the (version, tile uuid) pair.
    """
    __tablename__ = "dashboard_tiles"

    dashboard_version_id = Column(Integer, ForeignKey("dashboard_versions.dashboard_version_id", ondelete="CASCADE"), primary_key=True)
    dashboard_tile_uuid = Column(UUID(), primary_key=True, default=uuid.uuid4)
    type = Column(String(20), nullable=False)           # saved_chart, loom, markdown
    x_offset = Column(Integer, nullable=False, default=0)
    y_offset = Column(Integer, nullable=False, default=0)
    height = Column(Integer, nullable=False, default=3)
    width = Column(Integer, nullable=False, default=5)

    def __repr__(self):
        return f"<DashboardTile(version={self.dashboard_version_id}, uuid={self.dashboard_tile_uuid}, type='{self.type}')>"


def _tile_foreign_key():
    return ForeignKeyConstraint(
        ['dashboard_version_id', 'dashboard_tile_uuid'],
        ['dashboard_tiles.dashboard_version_id', 'dashboard_tiles.dashboard_tile_uuid'],
        ondelete="CASCADE",
    )


class DashboardTileChart(Base):
    __tablename__ = "dashboard_tile_charts"
    __table_args__ = (_tile_foreign_key(),)

    dashboard_version_id = Column(Integer, primary_key=True)
    dashboard_tile_uuid = Column(UUID(), primary_key=True)
    saved_chart_id = Column(Integer, ForeignKey("saved_queries.saved_query_id", ondelete="SET NULL"), nullable=True)


class DashboardTileLoom(Base):
    __tablename__ = "dashboard_tile_looms"
    __table_args__ = (_tile_foreign_key(),)

    dashboard_version_id = Column(Integer, primary_key=True)
    dashboard_tile_uuid = Column(UUID(), primary_key=True)
    title = Column(String(255), nullable=True)
    url = Column(String(2048), nullable=False)


class DashboardTileMarkdown(Base):
    __tablename__ = "dashboard_tile_markdowns"
    __table_args__ = (_tile_foreign_key(),)

    dashboard_version_id = Column(Integer, primary_key=True)
    dashboard_tile_uuid = Column(UUID(), primary_key=True)
    title = Column(String(255), nullable=True)
    content = Column(Text, nullable=False, default="")


# =============================================================================
# Preview Clones & Caches
# =============================================================================

class PreviewContent(Base):
    """Old->new id mapping written once per preview clone."""
    __tablename__ = "preview_content"
    __table_args__ = (
        Index('idx_preview_content_projects', 'project_uuid', 'preview_project_uuid'),
    )

    preview_content_id = Column(Integer, primary_key=True, autoincrement=True)
    project_uuid = Column(UUID(), ForeignKey("projects.project_uuid", ondelete="CASCADE"), nullable=False)
    preview_project_uuid = Column(UUID(), ForeignKey("projects.project_uuid", ondelete="CASCADE"), nullable=False)
    content_mapping = Column(JSONType, nullable=False)  # {charts, chartVersions, spaces, dashboards, dashboardVersions}
    created_at = Column(TIMESTAMP, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<PreviewContent(project={self.project_uuid}, preview={self.preview_project_uuid})>"


class CachedExplores(Base):
    """Latest compiled explores of a project (replaced on every refresh)."""
    __tablename__ = "cached_explores"

    project_uuid = Column(UUID(), ForeignKey("projects.project_uuid", ondelete="CASCADE"), primary_key=True)
    explores = Column(JSONType, nullable=False)


class CachedWarehouse(Base):
    """Latest warehouse catalog of a project (replaced on every refresh)."""
    __tablename__ = "cached_warehouse"

    project_uuid = Column(UUID(), ForeignKey("projects.project_uuid", ondelete="CASCADE"), primary_key=True)
    warehouse = Column(JSONType, nullable=False)


class DbtCloudIntegration(Base):
    __tablename__ = "dbt_cloud_integrations"

    project_id = Column(Integer, ForeignKey("projects.project_id", ondelete="CASCADE"), primary_key=True)
    service_token = Column(LargeBinary, nullable=False)    # encrypted
    metrics_job_id = Column(String(255), nullable=False)
    created_at = Column(TIMESTAMP, default=datetime.utcnow, nullable=False)
