"""Greenlight decision engine.

Validates approve/reject decisions against a project approval snapshot,
produces the updated snapshot and the audit event describing the decision.
The engine performs no I/O; persistence belongs to the caller.
"""

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

from .roles import ApproverRole, Decision, role_label
from .state import ProjectApprovalState, RoleApproval


GREENLIGHT_DECISION_ACTION = "greenlight_decision"
GREENLIGHT_TARGET_TYPE = "Project"


class GreenlightError(Exception):
    """Base class for rejected greenlight decisions."""

    code = "greenlight_error"

    def __init__(self, message: str, role: ApproverRole):
        super().__init__(message)
        self.role = role


class RoleNotApplicableError(GreenlightError):
    """Raised when the role has no assigned approver on the project."""

    code = "role_not_applicable"

    def __init__(self, role: ApproverRole):
        super().__init__(f"{role_label(role)} approval is not required for this project", role)


class NotAuthorizedError(GreenlightError):
    """Raised when the acting user is not the role's assigned approver."""

    code = "not_authorized"

    def __init__(self, role: ApproverRole, identity: Optional[str]):
        super().__init__(f"{identity!r} is not the assigned {role_label(role)} approver", role)
        self.identity = identity


class AlreadyDecidedError(GreenlightError):
    """Raised when the role has already been approved."""

    code = "already_decided"

    def __init__(self, role: ApproverRole):
        super().__init__(f"{role_label(role)} approval has already been granted", role)


@dataclass(frozen=True)
class ApprovalProgress:
    """Completion summary across the required roles."""

    required_count: int
    completed_count: int
    percent: int
    all_approved: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "required_count": self.required_count,
            "completed_count": self.completed_count,
            "percent": self.percent,
            "all_approved": self.all_approved,
        }


@dataclass(frozen=True)
class AuditEvent:
    """Immutable record of one accepted greenlight decision."""

    project_id: str
    actor_identity: str
    actor_role_label: str
    metadata: Dict[str, Any]
    created_at: datetime
    target_id: Optional[str] = None
    target_name: Optional[str] = None
    action: str = GREENLIGHT_DECISION_ACTION
    target_type: str = GREENLIGHT_TARGET_TYPE

    @property
    def all_approvals_complete(self) -> bool:
        return bool(self.metadata.get("all_approvals_complete"))


@dataclass(frozen=True)
class DecisionOutcome:
    """Result of an accepted decision."""

    state: ProjectApprovalState
    event: AuditEvent
    completed_greenlight: bool = False


def _percent(completed: int, required: int) -> int:
    # Round half up, computed exactly
    if required == 0:
        return 0
    return (200 * completed + required) // (2 * required)


def compute_progress(state: ProjectApprovalState) -> ApprovalProgress:
    """Derive the approval progress for a snapshot."""
    required = state.required_roles()
    completed = [role for role in required if state.approval_for(role).approved]
    required_count = len(required)
    completed_count = len(completed)
    return ApprovalProgress(
        required_count=required_count,
        completed_count=completed_count,
        percent=_percent(completed_count, required_count),
        all_approved=required_count > 0 and completed_count == required_count,
    )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _clean_comment(comment: Optional[str]) -> Optional[str]:
    if comment is None:
        return None
    comment = comment.strip()
    return comment or None


class GreenlightEngine:
    """
    Decision engine for multi-stakeholder project greenlight.

    Stateless between calls. Every query is derived from the snapshot it is
    given, so ``progress`` and ``decide`` always agree on the completion
    predicate.
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        """
        Initialize the engine.

        Args:
            clock: Callable returning the current time (defaults to UTC now)
        """
        self._clock = clock or _utcnow

    def decide(
        self,
        state: ProjectApprovalState,
        role: ApproverRole,
        acting_identity: str,
        decision: Decision,
        comment: Optional[str] = None,
    ) -> DecisionOutcome:
        """
        Apply an approve/reject decision for a role.

        Args:
            state: Current project approval snapshot
            role: Role being decided
            acting_identity: Email of the acting user
            decision: Approve or reject
            comment: Optional free-text comment

        Returns:
            DecisionOutcome with the new snapshot and its audit event

        Raises:
            RoleNotApplicableError: If the role has no assigned approver
            NotAuthorizedError: If the acting user is not the assigned approver
            AlreadyDecidedError: If the role is already approved
        """
        role = ApproverRole(role)
        decision = Decision(decision)
        current = state.approval_for(role)

        if not current.is_required:
            raise RoleNotApplicableError(role)
        if acting_identity != current.assigned_email:
            raise NotAuthorizedError(role, acting_identity)
        if current.approved:
            raise AlreadyDecidedError(role)

        now = self._clock()
        approved = decision is Decision.APPROVE
        comment = _clean_comment(comment)

        new_state = state.with_approval(
            role,
            RoleApproval(
                assigned_email=current.assigned_email,
                approved=approved,
                approved_at=now,
                approved_by=acting_identity,
                comment=comment,
            ),
        )

        all_approved = compute_progress(new_state).all_approved
        completed_greenlight = False
        if all_approved and approved and state.completed_at is None:
            new_state = replace(new_state, completed_at=now)
            completed_greenlight = True

        event = AuditEvent(
            project_id=state.project_id,
            actor_identity=acting_identity,
            actor_role_label=role_label(role),
            metadata={
                "approval_type": "greenlight",
                "approver_role": role_label(role),
                "decision": "approved" if approved else "rejected",
                "comment": comment,
                "all_approvals_complete": all_approved and approved,
            },
            created_at=now,
            target_id=state.project_id,
            target_name=state.project_name or "Untitled Project",
        )

        return DecisionOutcome(state=new_state, event=event, completed_greenlight=completed_greenlight)

    def progress(self, state: ProjectApprovalState) -> ApprovalProgress:
        """Summarize approval progress. Pure and idempotent."""
        return compute_progress(state)

    def is_greenlit(self, state: ProjectApprovalState) -> bool:
        """Whether every required role has approved."""
        return compute_progress(state).all_approved

    def actionable_roles(self, state: ProjectApprovalState, acting_identity: str) -> List[ApproverRole]:
        """Roles the given user may currently decide on."""
        return [
            role for role in state.required_roles()
            if state.approval_for(role).assigned_email == acting_identity
            and not state.approval_for(role).approved
        ]

    def pending_approvers(self, state: ProjectApprovalState) -> List[Tuple[ApproverRole, str]]:
        """Required roles still awaiting approval, with their assigned email."""
        return [
            (role, state.approval_for(role).assigned_email)
            for role in state.required_roles()
            if not state.approval_for(role).approved
        ]
