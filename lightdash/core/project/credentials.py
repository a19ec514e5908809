"""Secret reconciliation for project connection configs.

The API never returns secret fields, so an update submitted from the UI
arrives without them. These helpers refill the missing secrets from the
stored (complete) config of the same connection type.
"""

from typing import Any, Dict, Iterable

from ..constants import (
    SENSITIVE_CREDENTIALS_FIELD_NAMES,
    SENSITIVE_DBT_CREDENTIALS_FIELD_NAMES,
)
from .models import Project, UpdateProject


def _merge_missing_secrets(
    incomplete: Dict[str, Any],
    complete: Dict[str, Any],
    secret_keys: Iterable[str],
) -> Dict[str, Any]:
    if incomplete.get("type") != complete.get("type"):
        return incomplete

    merged = dict(incomplete)
    for key in secret_keys:
        # Falsy counts as missing: an emptied secret field is refilled
        if not incomplete.get(key) and complete.get(key):
            merged[key] = complete[key]
    return merged


def merge_missing_dbt_config_secrets(
    incomplete_config: Dict[str, Any],
    complete_config: Dict[str, Any],
) -> Dict[str, Any]:
    return _merge_missing_secrets(
        incomplete_config, complete_config, SENSITIVE_DBT_CREDENTIALS_FIELD_NAMES
    )


def merge_missing_warehouse_secrets(
    incomplete_config: Dict[str, Any],
    complete_config: Dict[str, Any],
) -> Dict[str, Any]:
    return _merge_missing_secrets(
        incomplete_config, complete_config, SENSITIVE_CREDENTIALS_FIELD_NAMES
    )


def merge_missing_project_config_secrets(
    incomplete_project_config: UpdateProject,
    complete_project_config: Project,
) -> UpdateProject:
    """Merge dbt and warehouse secrets independently."""
    warehouse_connection = incomplete_project_config.warehouse_connection
    if complete_project_config.warehouse_connection:
        warehouse_connection = merge_missing_warehouse_secrets(
            incomplete_project_config.warehouse_connection,
            complete_project_config.warehouse_connection,
        )

    return incomplete_project_config.model_copy(update={
        "dbt_connection": merge_missing_dbt_config_secrets(
            incomplete_project_config.dbt_connection,
            complete_project_config.dbt_connection,
        ),
        "warehouse_connection": warehouse_connection,
    })
