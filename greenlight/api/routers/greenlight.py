"""Greenlight approval API endpoints."""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from greenlight.api.deps import get_current_identity, get_db, get_greenlight_service
from greenlight.api.schemas.common import ErrorResponse
from greenlight.api.schemas.greenlight import (
    AuditEventResponse,
    DecisionRequest,
    DecisionResponse,
    GreenlightStatusResponse,
    PendingApproverResponse,
)
from greenlight.core.approval import (
    AlreadyDecidedError,
    ApproverRole,
    Decision,
    GreenlightError,
    GreenlightService,
    NotAuthorizedError,
    ProjectNotFoundError,
    RoleNotApplicableError,
    VersionConflictError,
    parse_role,
    role_label,
)

router = APIRouter(prefix="/projects/{project_id}/greenlight", tags=["greenlight"])


ERROR_STATUS = {
    RoleNotApplicableError: 422,
    NotAuthorizedError: status.HTTP_403_FORBIDDEN,
    AlreadyDecidedError: status.HTTP_409_CONFLICT,
}


def _error(status_code: int, error: str, detail: str, code: Optional[str] = None) -> HTTPException:
    body = ErrorResponse(error=error, detail=detail, code=code)
    return HTTPException(status_code=status_code, detail=body.model_dump())


def _resolve_role(role: str) -> ApproverRole:
    try:
        return parse_role(role)
    except ValueError as e:
        raise _error(status.HTTP_404_NOT_FOUND, "unknown_role", str(e))


def _status(service: GreenlightService, project_id: str) -> GreenlightStatusResponse:
    state = service.get_state(project_id)
    return GreenlightStatusResponse.from_state(state, service.engine.progress(state))


def _decide(
    service: GreenlightService,
    db: Session,
    project_id: str,
    role: str,
    identity: str,
    decision: Decision,
    comment: Optional[str],
) -> DecisionResponse:
    approver_role = _resolve_role(role)
    try:
        outcome = service.decide(project_id, approver_role, identity, decision, comment)
        db.commit()
    except ProjectNotFoundError as e:
        db.rollback()
        raise _error(status.HTTP_404_NOT_FOUND, "project_not_found", str(e))
    except GreenlightError as e:
        db.rollback()
        raise _error(ERROR_STATUS.get(type(e), status.HTTP_400_BAD_REQUEST), e.code, str(e), e.role.value)
    except VersionConflictError as e:
        db.rollback()
        raise _error(status.HTTP_409_CONFLICT, "version_conflict", str(e))

    state = outcome.state
    return DecisionResponse(
        status=GreenlightStatusResponse.from_state(state, service.engine.progress(state)),
        event=AuditEventResponse.from_event(outcome.event),
        completed_greenlight=outcome.completed_greenlight,
    )


@router.get("", response_model=GreenlightStatusResponse)
async def get_greenlight_status(
    project_id: str,
    service: GreenlightService = Depends(get_greenlight_service),
):
    """Get every role's approval record and the overall progress."""
    try:
        return _status(service, project_id)
    except ProjectNotFoundError as e:
        raise _error(status.HTTP_404_NOT_FOUND, "project_not_found", str(e))


@router.get("/actionable", response_model=List[ApproverRole])
async def list_actionable_roles(
    project_id: str,
    identity: str = Depends(get_current_identity),
    service: GreenlightService = Depends(get_greenlight_service),
):
    """Roles the current user may approve or reject right now."""
    try:
        return service.actionable_roles(project_id, identity)
    except ProjectNotFoundError as e:
        raise _error(status.HTTP_404_NOT_FOUND, "project_not_found", str(e))


@router.get("/pending", response_model=List[PendingApproverResponse])
async def list_pending_approvers(
    project_id: str,
    service: GreenlightService = Depends(get_greenlight_service),
):
    """Required roles still awaiting approval."""
    try:
        pending = service.pending_approvers(project_id)
    except ProjectNotFoundError as e:
        raise _error(status.HTTP_404_NOT_FOUND, "project_not_found", str(e))

    return [
        PendingApproverResponse(role=role, label=role_label(role), email=email)
        for role, email in pending
    ]


@router.get("/history", response_model=List[AuditEventResponse])
async def get_greenlight_history(
    project_id: str,
    service: GreenlightService = Depends(get_greenlight_service),
):
    """Audit trail of greenlight decisions, oldest first."""
    try:
        events = service.history(project_id)
    except ProjectNotFoundError as e:
        raise _error(status.HTTP_404_NOT_FOUND, "project_not_found", str(e))

    return [AuditEventResponse.from_event(event) for event in events]


@router.post("/{role}/approve", response_model=DecisionResponse)
async def approve_role(
    project_id: str,
    role: str,
    action: DecisionRequest,
    identity: str = Depends(get_current_identity),
    db: Session = Depends(get_db),
    service: GreenlightService = Depends(get_greenlight_service),
):
    """Approve the project as the given role."""
    return _decide(service, db, project_id, role, identity, Decision.APPROVE, action.comment)


@router.post("/{role}/reject", response_model=DecisionResponse)
async def reject_role(
    project_id: str,
    role: str,
    action: DecisionRequest,
    identity: str = Depends(get_current_identity),
    db: Session = Depends(get_db),
    service: GreenlightService = Depends(get_greenlight_service),
):
    """Reject the project as the given role."""
    return _decide(service, db, project_id, role, identity, Decision.REJECT, action.comment)
