"""
Project Data Module

Exports:
- ProjectModel: CRUD operations for projects and their connections
- ProjectContentCloner: Copies a project's content into a preview project
- ExploreCache: Cached compiled explores and warehouse catalog
- ProjectLockCoordinator: Per-project advisory locking
- Secret merge helpers for connection updates
"""

from .content_cloner import IdMapping, ProjectContentCloner
from .credentials import (
    merge_missing_dbt_config_secrets,
    merge_missing_project_config_secrets,
    merge_missing_warehouse_secrets,
)
from .explore_cache import ExploreCache, convert_metric_filters_field_ids_to_field_ref
from .locks import ProjectLockCoordinator
from .project_manager import ProjectModel

__all__ = [
    "ProjectModel",
    "ProjectContentCloner",
    "IdMapping",
    "ExploreCache",
    "convert_metric_filters_field_ids_to_field_ref",
    "ProjectLockCoordinator",
    "merge_missing_dbt_config_secrets",
    "merge_missing_warehouse_secrets",
    "merge_missing_project_config_secrets",
]
