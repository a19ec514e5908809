"""Shared constants for the Lightdash backend.

This module contains constants that are used across multiple modules
to avoid duplication and ensure consistency.
"""

# =============================================================================
# Advisory Locks
# =============================================================================

# pg_try_advisory_xact_lock(namespace, key) namespace for explore cache refreshes
CACHED_EXPLORES_PG_LOCK_NAMESPACE = 1

# =============================================================================
# Credentials
# =============================================================================

# Secret keys of a stored dbt connection payload
SENSITIVE_DBT_CREDENTIALS_FIELD_NAMES = (
    "personal_access_token",
    "api_key",
)

# Secret keys of a stored warehouse connection payload
SENSITIVE_CREDENTIALS_FIELD_NAMES = (
    "user",
    "password",
    "keyfileContents",
    "personalAccessToken",
    "privateKey",
    "privateKeyPass",
    "sshTunnelPrivateKey",
)

# =============================================================================
# Spaces
# =============================================================================

# Space created alongside every new project
DEFAULT_SPACE_NAME = "Shared"

# =============================================================================
# Constraint Names
# =============================================================================

PROJECT_MEMBERSHIPS_UNIQUE_CONSTRAINT = "project_memberships_project_id_user_id_unique"
