"""Project API routes (FastAPI).

Provides the project access control list, preview creation and read
access to cached explores.
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from ...core.errors import NotExistsError
from ...core.project.models import CamelModel, ProjectMemberRole
from ..deps import get_access_service, get_explore_cache, get_project_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/projects", tags=["projects"])


# ── Request/Response models ──────────────────────────────────────────────

class CreateProjectMember(BaseModel):
    email: str = Field(..., min_length=1)
    role: ProjectMemberRole = ProjectMemberRole.VIEWER


class UpdateProjectMember(BaseModel):
    role: ProjectMemberRole


class CreatePreviewRequest(CamelModel):
    name: str = Field(..., min_length=1)
    organization_uuid: str


class ApiResponse(BaseModel):
    status: str = "ok"
    results: Optional[Any] = None


# ── Access control list ──────────────────────────────────────────────────

@router.get("/{project_uuid}/access", response_model=ApiResponse)
async def list_project_access(project_uuid: str, access=Depends(get_access_service)):
    """List project members."""
    members = access.get_project_access(project_uuid)
    return ApiResponse(results=[m.model_dump(mode="json", by_alias=True) for m in members])


@router.post("/{project_uuid}/access", response_model=ApiResponse, status_code=201)
async def create_project_access(
    project_uuid: str,
    data: CreateProjectMember,
    access=Depends(get_access_service),
):
    """Grant a user access to the project by email."""
    access.create_project_access(project_uuid, data.email, data.role)
    return ApiResponse()


@router.patch("/{project_uuid}/access/{user_uuid}", response_model=ApiResponse)
async def update_project_access(
    project_uuid: str,
    user_uuid: str,
    data: UpdateProjectMember,
    access=Depends(get_access_service),
):
    """Change a member's role."""
    if not access.update_project_access(project_uuid, user_uuid, data.role):
        raise NotExistsError(f"User {user_uuid} has no access to project {project_uuid}")
    return ApiResponse()


@router.delete("/{project_uuid}/access/{user_uuid}", response_model=ApiResponse)
async def delete_project_access(
    project_uuid: str,
    user_uuid: str,
    access=Depends(get_access_service),
):
    """Revoke a member's access."""
    if not access.delete_project_access(project_uuid, user_uuid):
        raise NotExistsError(f"User {user_uuid} has no access to project {project_uuid}")
    return ApiResponse()


# ── Previews ─────────────────────────────────────────────────────────────

@router.post("/{project_uuid}/preview", response_model=ApiResponse, status_code=201)
async def create_preview(
    project_uuid: str,
    data: CreatePreviewRequest,
    service=Depends(get_project_service),
):
    """Create a preview project with a copy of this project's content."""
    preview_project_uuid = service.create_preview(
        data.organization_uuid, project_uuid, data.name
    )
    return ApiResponse(results={"projectUuid": preview_project_uuid})


# ── Explores ─────────────────────────────────────────────────────────────

@router.get("/{project_uuid}/explores", response_model=ApiResponse)
async def list_explores(project_uuid: str, cache=Depends(get_explore_cache)):
    """Return the cached explores of the project."""
    explores = cache.get_explores(project_uuid)
    if explores is None:
        raise NotExistsError(f"Explores for project {project_uuid} have not been compiled yet")
    return ApiResponse(results=explores)


@router.get("/{project_uuid}/explores/{explore_name}", response_model=ApiResponse)
async def get_explore(project_uuid: str, explore_name: str, cache=Depends(get_explore_cache)):
    return ApiResponse(results=cache.get_explore(project_uuid, explore_name))
