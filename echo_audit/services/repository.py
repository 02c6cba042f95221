"""
Projects and audit records over the key-value store.

Layout (see ``core.keys``)::

    project:{projectId}            Project JSON
    user_projects:{userId}         JSON list of project ids
    audit:{auditId}                AuditRecord JSON
    project_audits:{projectId}     JSON list of audit ids

Index lists and records are written separately and can drift apart
after a partial failure. Readers treat an index entry without a record
as missing and skip it; a corrupted record reads as missing too.
"""

from __future__ import annotations

import json
from typing import Any, Callable, List, Optional, Sequence, Type, TypeVar, Union

import structlog
from pydantic import ValidationError

from ..core import keys
from ..core.exceptions import AuthorizationError, BadRequestError, NotFoundError
from ..core.kv_store import KeyNotFoundError, KeyValueStore
from ..core.security import generate_id, sanitize_input, utc_now
from ..models.audit import AuditRecord
from ..models.base import StoredRecord
from ..models.project import Project
from ..schemas.audit import AuditReport, CandidateReport, Violation
from .audit_builder import build_audit_record
from .saga import Saga
from .scoring import build_report

logger = structlog.get_logger(__name__)

RecordT = TypeVar("RecordT", bound=StoredRecord)
ReportInput = Union[CandidateReport, AuditReport, dict, Sequence[Violation]]


class AuditRepository:
    """CRUD and index maintenance for projects and their audits."""

    def __init__(self, store: KeyValueStore, clock: Callable = utc_now):
        self.store = store
        self.clock = clock

    # ------------------------------------------------------------------
    # Low-level helpers
    # ------------------------------------------------------------------

    async def _read(self, key: str) -> Optional[str]:
        try:
            return await self.store.get(key)
        except KeyNotFoundError:
            return None

    async def _load(self, key: str, model: Type[RecordT]) -> Optional[RecordT]:
        raw = await self._read(key)
        if raw is None:
            return None
        try:
            return model.from_json(raw)
        except ValidationError as e:
            logger.warning("Corrupted record treated as missing", key=key, error_count=e.error_count())
            return None

    async def _load_index(self, key: str) -> Optional[List[str]]:
        """Return the id list under ``key``, or None when the index does not exist."""
        raw = await self._read(key)
        if raw is None:
            return None
        try:
            ids = json.loads(raw)
        except ValueError:
            logger.warning("Corrupted index treated as empty", key=key)
            return []
        if not isinstance(ids, list):
            logger.warning("Malformed index treated as empty", key=key)
            return []
        return [str(item) for item in ids]

    async def _save_index(self, key: str, ids: List[str]) -> None:
        await self.store.set(key, json.dumps(ids))

    async def _append_to_index(self, key: str, item: str) -> None:
        ids = await self._load_index(key) or []
        if item in ids:
            return
        ids.append(item)
        await self._save_index(key, ids)

    async def _remove_from_index(self, key: str, item: str) -> None:
        ids = await self._load_index(key)
        if ids is None:
            return
        await self._save_index(key, [i for i in ids if i != item])

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    async def create_project(
        self,
        user_id: str,
        project_name: str,
        website_url: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Project:
        if not project_name or not project_name.strip():
            raise BadRequestError("Project name is required")

        now = self.clock()
        project = Project(
            project_id=generate_id("proj"),
            user_id=user_id,
            project_name=sanitize_input(project_name),
            website_url=sanitize_input(website_url) if website_url else None,
            description=sanitize_input(description) if description else None,
            created_at=now,
            updated_at=now,
            audit_count=0,
            latest_score=0,
        )
        project_key = keys.project_key(project.project_id)
        user_index = keys.user_projects_key(user_id)

        saga = Saga("create_project", project_id=project.project_id, user_id=user_id)
        saga.add_step(
            "write_project",
            lambda: self.store.set(project_key, project.to_json()),
            compensate=lambda: self.store.delete(project_key),
        )
        saga.add_step("index_project", lambda: self._append_to_index(user_index, project.project_id))
        await saga.run()

        logger.info("Project created", project_id=project.project_id, user_id=user_id)
        return project

    async def get_project(self, project_id: str) -> Optional[Project]:
        return await self._load(keys.project_key(project_id), Project)

    async def require_project(self, project_id: str, user_id: str) -> Project:
        """Load a project the caller owns; raises NotFound or Authorization errors."""
        project = await self.get_project(project_id)
        if project is None:
            raise NotFoundError("Project not found", code="PROJECT_NOT_FOUND")
        if project.user_id != user_id:
            logger.warning("Project ownership mismatch", project_id=project_id, user_id=user_id)
            raise AuthorizationError("Unauthorized")
        return project

    async def list_user_projects(self, user_id: str) -> List[Project]:
        """Projects of ``user_id``, most recently updated first."""
        project_ids = await self._load_index(keys.user_projects_key(user_id)) or []
        projects = []
        for project_id in project_ids:
            project = await self.get_project(project_id)
            if project is not None:
                projects.append(project)
        return sorted(projects, key=lambda p: p.updated_at, reverse=True)

    async def update_project(
        self,
        project_id: str,
        user_id: str,
        *,
        project_name: Optional[str] = None,
        website_url: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Project:
        project = await self.require_project(project_id, user_id)

        updates: dict[str, Any] = {"updated_at": self.clock()}
        if project_name is not None:
            if not project_name.strip():
                raise BadRequestError("Project name is required")
            updates["project_name"] = sanitize_input(project_name)
        if website_url is not None:
            updates["website_url"] = sanitize_input(website_url) or None
        if description is not None:
            updates["description"] = sanitize_input(description) or None

        updated = project.model_copy(update=updates)
        await self.store.set(keys.project_key(project_id), updated.to_json())
        logger.info("Project updated", project_id=project_id, fields=sorted(updates))
        return updated

    async def delete_project(self, project_id: str, user_id: str) -> int:
        """
        Delete a project, every audit in its index, and its index entries.

        Returns the number of audit ids that were removed. A project whose
        record is already gone is still cleaned out of the caller's index.
        """
        project = await self.get_project(project_id)
        if project is not None and project.user_id != user_id:
            logger.warning("Project ownership mismatch on delete", project_id=project_id, user_id=user_id)
            raise AuthorizationError("Unauthorized")

        audits_index = keys.project_audits_key(project_id)
        audit_ids = await self._load_index(audits_index) or []

        saga = Saga("delete_project", project_id=project_id, user_id=user_id)
        for audit_id in audit_ids:
            audit_key = keys.audit_key(audit_id)
            saga.add_step(f"delete_audit:{audit_id}", lambda key=audit_key: self.store.delete(key))
        saga.add_step("delete_audit_index", lambda: self.store.delete(audits_index))
        saga.add_step("delete_project", lambda: self.store.delete(keys.project_key(project_id)))
        saga.add_step(
            "unindex_project",
            lambda: self._remove_from_index(keys.user_projects_key(user_id), project_id),
        )
        await saga.run()

        logger.info("Project deleted", project_id=project_id, audits_deleted=len(audit_ids))
        return len(audit_ids)

    # ------------------------------------------------------------------
    # Audits
    # ------------------------------------------------------------------

    async def save_audit(self, project_id: str, user_id: str, candidate: ReportInput) -> AuditRecord:
        """
        Score ``candidate.violations`` and persist the next audit version.

        Any score, summary or compliance carried by ``candidate`` is
        discarded; the stored report is always recomputed.
        """
        project = await self.require_project(project_id, user_id)

        violations = _extract_violations(candidate)
        report = build_report(violations, clock=self.clock)

        claimed = getattr(candidate, "overall_score", None)
        if claimed is not None and claimed != report.overall_score:
            logger.info(
                "Discarding client-supplied score",
                project_id=project_id,
                claimed=claimed,
                computed=report.overall_score,
            )

        now = self.clock()
        record = build_audit_record(
            report,
            project_id=project_id,
            user_id=user_id,
            audit_version=project.audit_count + 1,
            timestamp=now,
        )
        record_key = keys.audit_key(record.audit_id)
        audits_index = keys.project_audits_key(project_id)
        updated_project = project.model_copy(update={
            "audit_count": record.audit_version,
            "latest_score": record.accessibility_score,
            "updated_at": now,
        })

        saga = Saga("save_audit", project_id=project_id, audit_id=record.audit_id)
        saga.add_step(
            "write_audit",
            lambda: self.store.set(record_key, record.to_json()),
            compensate=lambda: self.store.delete(record_key),
        )
        saga.add_step(
            "index_audit",
            lambda: self._append_to_index(audits_index, record.audit_id),
            compensate=lambda: self._remove_from_index(audits_index, record.audit_id),
        )
        saga.add_step(
            "update_project_stats",
            lambda: self.store.set(keys.project_key(project_id), updated_project.to_json()),
        )
        await saga.run()

        logger.info(
            "Audit saved",
            project_id=project_id,
            audit_id=record.audit_id,
            audit_version=record.audit_version,
            score=record.accessibility_score,
            total_violations=record.total_violations,
        )
        return record

    async def get_audit(self, audit_id: str) -> Optional[AuditRecord]:
        return await self._load(keys.audit_key(audit_id), AuditRecord)

    async def require_audit(self, audit_id: str, user_id: str) -> AuditRecord:
        audit = await self.get_audit(audit_id)
        if audit is None:
            raise NotFoundError("Audit not found", code="AUDIT_NOT_FOUND")
        if audit.user_id != user_id:
            logger.warning("Audit ownership mismatch", audit_id=audit_id, user_id=user_id)
            raise AuthorizationError("Unauthorized")
        return audit

    async def list_project_audits(self, project_id: str) -> List[AuditRecord]:
        """Audits of a project, newest version first; dangling index ids are skipped."""
        audit_ids = await self._load_index(keys.project_audits_key(project_id)) or []
        audits = []
        for audit_id in audit_ids:
            audit = await self.get_audit(audit_id)
            if audit is None:
                logger.debug("Skipping dangling audit id", project_id=project_id, audit_id=audit_id)
                continue
            audits.append(audit)
        return sorted(audits, key=lambda a: a.audit_version, reverse=True)

    async def update_audit_notes(self, audit_id: str, notes: str, user_id: str) -> AuditRecord:
        """Replace the notes of an audit; every other field is left untouched."""
        audit = await self.require_audit(audit_id, user_id)

        updated = audit.with_notes(sanitize_input(notes))
        await self.store.set(keys.audit_key(audit_id), updated.to_json())
        logger.info("Audit notes updated", audit_id=audit_id, notes_length=len(updated.notes))
        return updated

    async def delete_audit(self, audit_id: str, user_id: str) -> None:
        """
        Delete one audit and drop it from its project's index.

        ``auditCount`` is left as is so versions are never reused;
        ``latestScore`` is refreshed from the newest remaining audit.
        """
        audit = await self.require_audit(audit_id, user_id)
        project_id = audit.project_id

        saga = Saga("delete_audit", audit_id=audit_id, project_id=project_id)
        saga.add_step("delete_audit", lambda: self.store.delete(keys.audit_key(audit_id)))
        saga.add_step(
            "unindex_audit",
            lambda: self._remove_from_index(keys.project_audits_key(project_id), audit_id),
        )
        saga.add_step("refresh_latest_score", lambda: self._refresh_latest_score(project_id))
        await saga.run()

        logger.info("Audit deleted", audit_id=audit_id, project_id=project_id)

    async def _refresh_latest_score(self, project_id: str) -> None:
        project = await self.get_project(project_id)
        if project is None:
            return
        remaining = await self.list_project_audits(project_id)
        latest_score = remaining[0].accessibility_score if remaining else 0
        if latest_score == project.latest_score:
            return
        updated = project.model_copy(update={"latest_score": latest_score, "updated_at": self.clock()})
        await self.store.set(keys.project_key(project_id), updated.to_json())


def _extract_violations(candidate: ReportInput) -> List[Violation]:
    if isinstance(candidate, (CandidateReport, AuditReport)):
        return list(candidate.violations)
    if isinstance(candidate, dict):
        return list(CandidateReport.model_validate(candidate).violations)
    return [v if isinstance(v, Violation) else Violation.model_validate(v) for v in candidate]
