"""Request and response schemas for greenlight endpoints."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from greenlight.core.approval import (
    ApprovalProgress,
    ApproverRole,
    AuditEvent,
    ProjectApprovalState,
    get_role_definition,
)


class DecisionRequest(BaseModel):
    comment: Optional[str] = Field(None, max_length=4000)


class ProgressResponse(BaseModel):
    required_count: int
    completed_count: int
    percent: int
    all_approved: bool

    @classmethod
    def from_progress(cls, progress: ApprovalProgress) -> "ProgressResponse":
        return cls(**progress.to_dict())


class RoleApprovalResponse(BaseModel):
    role: ApproverRole
    label: str
    title: str
    status: str
    required: bool
    assigned_email: Optional[str]
    approved: bool
    approved_at: Optional[datetime]
    approved_by: Optional[str]
    comment: Optional[str]


class GreenlightStatusResponse(BaseModel):
    project_id: str
    project_name: Optional[str]
    version: int
    greenlit: bool
    completed_at: Optional[datetime]
    progress: ProgressResponse
    roles: List[RoleApprovalResponse]

    @classmethod
    def from_state(cls, state: ProjectApprovalState, progress: ApprovalProgress) -> "GreenlightStatusResponse":
        roles = []
        for role in ApproverRole:
            approval = state.approval_for(role)
            definition = get_role_definition(role)
            roles.append(RoleApprovalResponse(
                role=role,
                label=definition.label,
                title=definition.title,
                status=approval.status.value,
                required=approval.is_required,
                assigned_email=approval.assigned_email,
                approved=approval.approved,
                approved_at=approval.approved_at,
                approved_by=approval.approved_by,
                comment=approval.comment,
            ))
        return cls(
            project_id=state.project_id,
            project_name=state.project_name,
            version=state.version,
            greenlit=progress.all_approved,
            completed_at=state.completed_at,
            progress=ProgressResponse.from_progress(progress),
            roles=roles,
        )


class PendingApproverResponse(BaseModel):
    role: ApproverRole
    label: str
    email: str


class AuditEventResponse(BaseModel):
    project_id: str
    actor_identity: str
    actor_role_label: str
    action: str
    target_type: str
    target_id: Optional[str]
    target_name: Optional[str]
    metadata: Dict[str, Any]
    created_at: datetime

    @classmethod
    def from_event(cls, event: AuditEvent) -> "AuditEventResponse":
        return cls(
            project_id=event.project_id,
            actor_identity=event.actor_identity,
            actor_role_label=event.actor_role_label,
            action=event.action,
            target_type=event.target_type,
            target_id=event.target_id,
            target_name=event.target_name,
            metadata=dict(event.metadata),
            created_at=event.created_at,
        )


class DecisionResponse(BaseModel):
    status: GreenlightStatusResponse
    event: AuditEventResponse
    completed_greenlight: bool
