"""Authorization module.

Provides:
- Project access control list (project memberships and roles)
"""

from .project_access import ProjectAccessService

__all__ = [
    "ProjectAccessService",
]
