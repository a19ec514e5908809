"""Domain models for projects, memberships and preview clones.

Serialised with camelCase aliases, which is the shape stored in
``preview_content.content_mapping`` and returned by the API.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ProjectType(str, Enum):
    DEFAULT = "DEFAULT"
    PREVIEW = "PREVIEW"


class ProjectMemberRole(str, Enum):
    """Roles a user can hold on a project."""
    VIEWER = "viewer"
    EDITOR = "editor"
    ADMIN = "admin"


class TableSelectionType(str, Enum):
    ALL_TABLES = "ALL_TABLES"
    WITH_TAGS = "WITH_TAGS"
    WITH_NAMES = "WITH_NAMES"


# =============================================================================
# Projects
# =============================================================================

class OrganizationProject(CamelModel):
    name: str
    project_uuid: str
    type: ProjectType


class CreateProject(CamelModel):
    name: str = Field(..., min_length=1)
    type: ProjectType = ProjectType.DEFAULT
    dbt_connection: Dict[str, Any]
    warehouse_connection: Dict[str, Any]
    copied_from_project_uuid: Optional[str] = None


class UpdateProject(CamelModel):
    name: str = Field(..., min_length=1)
    dbt_connection: Dict[str, Any]
    warehouse_connection: Dict[str, Any]


class Project(CamelModel):
    organization_uuid: str
    project_uuid: str
    name: str
    type: ProjectType
    dbt_connection: Dict[str, Any]
    warehouse_connection: Optional[Dict[str, Any]] = None
    pinned_list_uuid: Optional[str] = None


class TableSelection(CamelModel):
    type: TableSelectionType = TableSelectionType.ALL_TABLES
    value: Optional[List[str]] = None


class TablesConfiguration(CamelModel):
    table_selection: TableSelection


class DbtCloudIntegration(CamelModel):
    metrics_job_id: str


class CreateDbtCloudIntegration(DbtCloudIntegration):
    service_token: str


# =============================================================================
# Memberships
# =============================================================================

class ProjectMemberProfile(CamelModel):
    user_uuid: str
    project_uuid: str
    email: str
    role: ProjectMemberRole
    first_name: str
    last_name: str


# =============================================================================
# Preview Clones
# =============================================================================

class ContentMappingEntry(BaseModel):
    """One ``{id, newId}`` pair of a clone mapping."""
    model_config = ConfigDict(populate_by_name=True)

    id: int
    new_id: int = Field(..., alias="newId")


class PreviewContentMapping(CamelModel):
    """Old->new surrogate ids of every entity kind copied by a preview clone."""
    charts: List[ContentMappingEntry] = Field(default_factory=list)
    chart_versions: List[ContentMappingEntry] = Field(default_factory=list)
    spaces: List[ContentMappingEntry] = Field(default_factory=list)
    dashboards: List[ContentMappingEntry] = Field(default_factory=list)
    dashboard_versions: List[ContentMappingEntry] = Field(default_factory=list)
