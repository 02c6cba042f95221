"""
Project and per-project audit routes.
"""

from typing import List

from fastapi import APIRouter, Depends, status

from ..core.auth import get_current_user, get_repository
from ..models.audit import AuditRecord
from ..models.project import Project
from ..models.user import User
from ..schemas.audit import CandidateReport
from ..schemas.project import ProjectCreate, ProjectDeleted, ProjectUpdate
from ..services.repository import AuditRepository

router = APIRouter(prefix="/projects", tags=["projects"])


@router.get("", response_model=List[Project])
async def list_projects(
    current_user: User = Depends(get_current_user),
    repository: AuditRepository = Depends(get_repository),
) -> List[Project]:
    """Projects of the current user, most recently updated first."""
    return await repository.list_user_projects(current_user.user_id)


@router.post("", response_model=Project, status_code=status.HTTP_201_CREATED)
async def create_project(
    payload: ProjectCreate,
    current_user: User = Depends(get_current_user),
    repository: AuditRepository = Depends(get_repository),
) -> Project:
    return await repository.create_project(
        current_user.user_id,
        payload.project_name,
        website_url=payload.website_url,
        description=payload.description,
    )


@router.get("/{project_id}", response_model=Project)
async def get_project(
    project_id: str,
    current_user: User = Depends(get_current_user),
    repository: AuditRepository = Depends(get_repository),
) -> Project:
    return await repository.require_project(project_id, current_user.user_id)


@router.patch("/{project_id}", response_model=Project)
async def update_project(
    project_id: str,
    payload: ProjectUpdate,
    current_user: User = Depends(get_current_user),
    repository: AuditRepository = Depends(get_repository),
) -> Project:
    return await repository.update_project(
        project_id,
        current_user.user_id,
        project_name=payload.project_name,
        website_url=payload.website_url,
        description=payload.description,
    )


@router.delete("/{project_id}", response_model=ProjectDeleted)
async def delete_project(
    project_id: str,
    current_user: User = Depends(get_current_user),
    repository: AuditRepository = Depends(get_repository),
) -> ProjectDeleted:
    """Delete a project together with every audit it owns."""
    await repository.require_project(project_id, current_user.user_id)
    removed = await repository.delete_project(project_id, current_user.user_id)
    return ProjectDeleted(project_id=project_id, audits_deleted=removed)


@router.get("/{project_id}/audits", response_model=List[AuditRecord])
async def list_audits(
    project_id: str,
    current_user: User = Depends(get_current_user),
    repository: AuditRepository = Depends(get_repository),
) -> List[AuditRecord]:
    """Audit history, newest version first."""
    await repository.require_project(project_id, current_user.user_id)
    return await repository.list_project_audits(project_id)


@router.post("/{project_id}/audits", response_model=AuditRecord, status_code=status.HTTP_201_CREATED)
async def save_audit(
    project_id: str,
    payload: CandidateReport,
    current_user: User = Depends(get_current_user),
    repository: AuditRepository = Depends(get_repository),
) -> AuditRecord:
    """
    Store a new audit version.

    Only the violations of the submitted report are used; score,
    compliance and summary are recomputed server-side.
    """
    return await repository.save_audit(project_id, current_user.user_id, payload)
