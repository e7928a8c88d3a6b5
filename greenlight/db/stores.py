"""SQLAlchemy implementations of the greenlight collaborator contracts.

Both classes work inside the caller's session; the caller commits, so a
project write and its audit entry land in the same transaction.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, List, Mapping, Optional

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from greenlight.core.approval.contracts import (
    AuditLogSink,
    ProjectNotFoundError,
    ProjectRecordStore,
    VersionConflictError,
)
from greenlight.core.approval.engine import AuditEvent
from greenlight.core.approval.roles import ApproverRole
from greenlight.core.approval.state import ProjectApprovalState, RoleApproval
from greenlight.db.models import AuditLog, Project, ProjectRoleApproval


logger = logging.getLogger(__name__)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite drops tzinfo on the way back
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SqlProjectRecordStore(ProjectRecordStore):
    """Project record store backed by the projects tables."""

    def __init__(self, session: Session):
        self.session = session

    def create_project(
        self,
        project_id: str,
        *,
        name: Optional[str] = None,
        assignments: Optional[Mapping[ApproverRole, Optional[str]]] = None,
    ) -> ProjectApprovalState:
        """Create a project with its approver assignments."""
        project = Project(id=project_id, name=name)
        for role, email in (assignments or {}).items():
            project.role_approvals.append(
                ProjectRoleApproval(role=ApproverRole(role).value, assigned_email=email)
            )
        self.session.add(project)
        self.session.flush()
        return self._to_state(project)

    def assign_approver(self, project_id: str, role: ApproverRole, email: Optional[str]) -> ProjectApprovalState:
        """Set or clear the approver email for a role."""
        role = ApproverRole(role)
        project = self._load(project_id)
        row = self._rows_by_role(project).get(role.value)
        if row is None:
            row = ProjectRoleApproval(role=role.value)
            project.role_approvals.append(row)
        row.assigned_email = email
        project.updated_at = _utcnow()
        self.session.flush()
        return self._to_state(project)

    def read(self, project_id: str) -> ProjectApprovalState:
        return self._to_state(self._load(project_id))

    def write(
        self,
        project_id: str,
        state: ProjectApprovalState,
        expected_version: Optional[int] = None,
    ) -> ProjectApprovalState:
        project = self._load(project_id)

        if expected_version is not None and project.version != expected_version:
            raise VersionConflictError(project_id, expected_version, project.version)

        # A stale flush rolls back only this savepoint, never the caller's
        # earlier writes and audit entries in the same transaction
        try:
            with self.session.begin_nested():
                self._apply(project, state)
                self.session.flush()
        except StaleDataError:
            logger.warning("Stale write detected for project %s", project_id)
            raise VersionConflictError(project_id, expected_version, self._load(project_id).version)

        return self._to_state(project)

    def _apply(self, project: Project, state: ProjectApprovalState) -> None:
        rows = self._rows_by_role(project)
        for role in ApproverRole:
            approval = state.approval_for(role)
            row = rows.get(role.value)
            if row is None:
                if approval == RoleApproval():
                    continue
                row = ProjectRoleApproval(role=role.value)
                project.role_approvals.append(row)

            row.assigned_email = approval.assigned_email
            row.approved = approval.approved
            row.approved_at = approval.approved_at
            row.approved_by = approval.approved_by
            row.comment = approval.comment

        project.greenlight_completed_at = state.completed_at
        # Touch the project row so its version is bumped on every write
        project.updated_at = _utcnow()

    def _load(self, project_id: str) -> Project:
        project = self.session.get(Project, project_id, populate_existing=True)
        if project is None:
            raise ProjectNotFoundError(project_id)
        return project

    @staticmethod
    def _rows_by_role(project: Project) -> Dict[str, ProjectRoleApproval]:
        return {row.role: row for row in project.role_approvals}

    def _to_state(self, project: Project) -> ProjectApprovalState:
        approvals = {}
        for row in project.role_approvals:
            approvals[ApproverRole(row.role)] = RoleApproval(
                assigned_email=row.assigned_email,
                approved=bool(row.approved),
                approved_at=_as_utc(row.approved_at),
                approved_by=row.approved_by,
                comment=row.comment,
            )
        return ProjectApprovalState(
            project_id=project.id,
            approvals=approvals,
            completed_at=_as_utc(project.greenlight_completed_at),
            version=project.version,
            project_name=project.name,
        )


class SqlAuditLogSink(AuditLogSink):
    """Audit log sink writing to the append-only audit_logs table."""

    def __init__(self, session: Session):
        self.session = session

    def append(self, event: AuditEvent) -> None:
        entry = AuditLog.create_entry(
            project_id=event.project_id,
            action=event.action,
            target_type=event.target_type,
            actor_identity=event.actor_identity,
            actor_role_label=event.actor_role_label,
            target_id=event.target_id,
            target_name=event.target_name,
            details=dict(event.metadata),
            created_at=event.created_at,
        )
        self.session.add(entry)
        self.session.flush()

    def list_for_project(self, project_id: str) -> List[AuditEvent]:
        entries = (
            self.session.query(AuditLog)
            .filter(AuditLog.project_id == project_id)
            .order_by(AuditLog.id.asc())
            .all()
        )
        return [self._to_event(entry) for entry in entries]

    @staticmethod
    def _to_event(entry: AuditLog) -> AuditEvent:
        return AuditEvent(
            project_id=entry.project_id,
            actor_identity=entry.actor_identity,
            actor_role_label=entry.actor_role_label,
            metadata=dict(entry.details or {}),
            created_at=_as_utc(entry.created_at),
            target_id=entry.target_id,
            target_name=entry.target_name,
            action=entry.action,
            target_type=entry.target_type,
        )
