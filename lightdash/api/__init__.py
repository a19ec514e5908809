"""
REST API module for Lightdash.

Provides FastAPI endpoints for:
- Project access control list
- Preview projects
- Cached explores
"""

from .app import create_app

__all__ = ["create_app"]
