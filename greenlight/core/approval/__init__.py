"""Greenlight approval workflow module.

Implements the per-role sign-off engine, its collaborator contracts and
the service that persists decisions.
"""

from .roles import (
    ApproverRole,
    Decision,
    RoleStatus,
    RoleDefinition,
    ROLE_DEFINITIONS,
    get_role_definition,
    parse_role,
    role_label,
)
from .state import RoleApproval, ProjectApprovalState
from .engine import (
    GreenlightEngine,
    GreenlightError,
    RoleNotApplicableError,
    NotAuthorizedError,
    AlreadyDecidedError,
    ApprovalProgress,
    AuditEvent,
    DecisionOutcome,
    compute_progress,
)
from .contracts import (
    ProjectRecordStore,
    AuditLogSink,
    StoreError,
    ProjectNotFoundError,
    VersionConflictError,
)
from .service import GreenlightService

__all__ = [
    "ApproverRole",
    "Decision",
    "RoleStatus",
    "RoleDefinition",
    "ROLE_DEFINITIONS",
    "get_role_definition",
    "parse_role",
    "role_label",
    "RoleApproval",
    "ProjectApprovalState",
    "GreenlightEngine",
    "GreenlightError",
    "RoleNotApplicableError",
    "NotAuthorizedError",
    "AlreadyDecidedError",
    "ApprovalProgress",
    "AuditEvent",
    "DecisionOutcome",
    "compute_progress",
    "ProjectRecordStore",
    "AuditLogSink",
    "StoreError",
    "ProjectNotFoundError",
    "VersionConflictError",
    "GreenlightService",
]
