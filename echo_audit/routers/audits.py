"""
Audit analysis and single-audit routes.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Response, status

from ..core.auth import get_current_user, get_pipeline, get_repository
from ..middleware.rate_limit import analyze_limit, limiter
from ..models.audit import AuditRecord
from ..models.user import User
from ..schemas.analysis import AnalyzeRequest, CaptureSettings
from ..schemas.audit import AuditReport, NotesUpdate
from ..services.audit_pipeline import AuditPipeline
from ..services.frames import format_timestamp, sample_offsets
from ..services.repository import AuditRepository

router = APIRouter(prefix="/audits", tags=["audits"])


@router.post("/analyze", response_model=AuditReport)
@limiter.limit(analyze_limit)
async def analyze(
    request: Request,
    payload: AnalyzeRequest,
    current_user: User = Depends(get_current_user),
    pipeline: AuditPipeline = Depends(get_pipeline),
) -> AuditReport:
    """Run the violation oracle over frames and source, then score locally."""
    return await pipeline.analyze(payload.frames, payload.code, payload.code_filename)


@router.get("/capture-settings", response_model=CaptureSettings, response_model_exclude_none=True)
async def capture_settings(
    request: Request,
    duration: Optional[float] = Query(None, ge=0, description="Video length in seconds"),
) -> CaptureSettings:
    """Frame interval and caps clients must respect before calling analyze."""
    settings = request.app.state.settings
    capture_points = None
    if duration is not None:
        capture_points = [
            format_timestamp(offset)
            for offset in sample_offsets(duration, settings.frame_interval_seconds, settings.max_frames)
        ]
    return CaptureSettings(
        frame_interval_seconds=settings.frame_interval_seconds,
        max_frames=settings.max_frames,
        max_code_chars=settings.max_code_chars,
        capture_points=capture_points,
    )


@router.get("/{audit_id}", response_model=AuditRecord)
async def get_audit(
    audit_id: str,
    current_user: User = Depends(get_current_user),
    repository: AuditRepository = Depends(get_repository),
) -> AuditRecord:
    return await repository.require_audit(audit_id, current_user.user_id)


@router.patch("/{audit_id}/notes", response_model=AuditRecord)
async def update_notes(
    audit_id: str,
    payload: NotesUpdate,
    current_user: User = Depends(get_current_user),
    repository: AuditRepository = Depends(get_repository),
) -> AuditRecord:
    return await repository.update_audit_notes(audit_id, payload.notes, current_user.user_id)


@router.delete("/{audit_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_audit(
    audit_id: str,
    current_user: User = Depends(get_current_user),
    repository: AuditRepository = Depends(get_repository),
) -> Response:
    await repository.delete_audit(audit_id, current_user.user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
