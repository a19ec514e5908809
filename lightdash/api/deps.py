"""FastAPI dependencies for Lightdash.

Provides shared services via FastAPI's Depends() injection system.
"""

from fastapi import Request


async def get_project_service(request: Request):
    """Get ProjectService from app state."""
    return request.app.state.project_service


async def get_access_service(request: Request):
    """Get ProjectAccessService from app state."""
    return request.app.state.access_service


async def get_explore_cache(request: Request):
    """Get ExploreCache from app state."""
    return request.app.state.explore_cache
