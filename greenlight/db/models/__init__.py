"""Database models for greenlight."""

from greenlight.db.models.project import Project, ProjectRoleApproval
from greenlight.db.models.audit import AuditLog, ImmutableAuditLogError

__all__ = [
    "Project",
    "ProjectRoleApproval",
    "AuditLog",
    "ImmutableAuditLogError",
]
