"""Service layer.

Exports:
- BaseService: Common logging and validation helpers
- ProjectService: Preview creation and explore cache refresh
"""

from .base import BaseService
from .project_service import ProjectService

__all__ = [
    "BaseService",
    "ProjectService",
]
