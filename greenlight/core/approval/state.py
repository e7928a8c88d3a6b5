"""Project approval state records.

A project carries one RoleApproval per approver role plus a single
"greenlight completed at" timestamp. Records are immutable; the engine
produces new records instead of mutating existing ones.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from .roles import ApproverRole, RoleStatus


def _format_ts(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _parse_ts(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


@dataclass(frozen=True)
class RoleApproval:
    """Approval record for one role on one project."""

    assigned_email: Optional[str] = None
    approved: bool = False
    approved_at: Optional[datetime] = None
    approved_by: Optional[str] = None
    comment: Optional[str] = None

    @property
    def is_required(self) -> bool:
        """A role is required iff an approver email is assigned."""
        return bool(self.assigned_email)

    @property
    def status(self) -> RoleStatus:
        if not self.is_required:
            return RoleStatus.NOT_REQUIRED
        if self.approved:
            return RoleStatus.APPROVED
        if self.approved_by:
            return RoleStatus.REJECTED
        return RoleStatus.PENDING

    def to_dict(self) -> Dict[str, Any]:
        return {
            "assigned_email": self.assigned_email,
            "approved": self.approved,
            "approved_at": _format_ts(self.approved_at),
            "approved_by": self.approved_by,
            "comment": self.comment,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RoleApproval":
        return cls(
            assigned_email=data.get("assigned_email"),
            approved=bool(data.get("approved", False)),
            approved_at=_parse_ts(data.get("approved_at")),
            approved_by=data.get("approved_by"),
            comment=data.get("comment"),
        )


_UNASSIGNED = RoleApproval()


@dataclass(frozen=True)
class ProjectApprovalState:
    """
    Snapshot of every role's approval record for a project.

    ``version`` is owned by the project record store and is used as the
    expected version when the snapshot is written back.
    """

    project_id: str
    approvals: Dict[ApproverRole, RoleApproval] = field(default_factory=dict)
    completed_at: Optional[datetime] = None
    version: int = 0
    project_name: Optional[str] = None

    @classmethod
    def new(
        cls,
        project_id: str,
        assignments: Optional[Mapping[ApproverRole, Optional[str]]] = None,
        *,
        project_name: Optional[str] = None,
    ) -> "ProjectApprovalState":
        """Build a fresh state from a ``{role: approver email}`` mapping."""
        approvals = {
            role: RoleApproval(assigned_email=email)
            for role, email in (assignments or {}).items()
        }
        return cls(project_id=project_id, approvals=approvals, project_name=project_name)

    def approval_for(self, role: ApproverRole) -> RoleApproval:
        return self.approvals.get(role, _UNASSIGNED)

    def required_roles(self) -> List[ApproverRole]:
        """Roles with an assigned approver, in canonical order."""
        return [role for role in ApproverRole if self.approval_for(role).is_required]

    def with_approval(self, role: ApproverRole, approval: RoleApproval) -> "ProjectApprovalState":
        approvals = dict(self.approvals)
        approvals[role] = approval
        return replace(self, approvals=approvals)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "project_id": self.project_id,
            "project_name": self.project_name,
            "version": self.version,
            "completed_at": _format_ts(self.completed_at),
            "approvals": {
                role.value: self.approval_for(role).to_dict() for role in ApproverRole
            },
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ProjectApprovalState":
        approvals = {
            ApproverRole(key): RoleApproval.from_dict(value)
            for key, value in (data.get("approvals") or {}).items()
        }
        return cls(
            project_id=data["project_id"],
            approvals=approvals,
            completed_at=_parse_ts(data.get("completed_at")),
            version=int(data.get("version", 0)),
            project_name=data.get("project_name"),
        )
