"""Audit log model for greenlight.

This table is APPEND-ONLY. ORM hooks refuse UPDATE and DELETE of existing
entries; every greenlight decision is kept permanently.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional
from sqlalchemy import Column, DateTime, Integer, JSON, String, event

from greenlight.db.base import Base


class ImmutableAuditLogError(Exception):
    """Raised when code attempts to modify or delete an audit entry."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditLog(Base):
    """
    Immutable audit log entry.

    Records who decided what on which project, and whether the decision
    completed the project's greenlight.
    """
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)

    project_id = Column(String(64), nullable=False, index=True)

    # Actor information
    actor_identity = Column(String(255), nullable=False, index=True)
    actor_role_label = Column(String(64), nullable=True)

    # Action details
    action = Column(String(100), nullable=False, index=True)
    target_type = Column(String(100), nullable=False)
    target_id = Column(String(64), nullable=True)
    target_name = Column(String(255), nullable=True)

    # Decision context (approver role, decision, comment, completion flag)
    details = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), default=_utcnow, index=True)

    def __repr__(self) -> str:
        return f"<AuditLog {self.action} on {self.target_type} {self.target_id} by {self.actor_identity}>"

    @classmethod
    def create_entry(
        cls,
        project_id: str,
        action: str,
        target_type: str,
        *,
        actor_identity: str,
        actor_role_label: Optional[str] = None,
        target_id: Optional[str] = None,
        target_name: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        created_at: Optional[datetime] = None,
    ) -> "AuditLog":
        """
        Factory method to create a new audit log entry.

        Args:
            project_id: Project the action applies to
            action: Action performed (e.g. 'greenlight_decision')
            target_type: Type of the affected entity (e.g. 'Project')
            actor_identity: Email of the acting user
            actor_role_label: Role the actor acted as
            target_id: ID of the affected entity
            target_name: Display name of the affected entity
            details: Additional context
            created_at: Event time (defaults to now)
        """
        return cls(
            project_id=project_id,
            action=action,
            target_type=target_type,
            actor_identity=actor_identity,
            actor_role_label=actor_role_label,
            target_id=target_id,
            target_name=target_name,
            details=details,
            created_at=created_at or _utcnow(),
        )


@event.listens_for(AuditLog, "before_update")
def _prevent_audit_update(mapper, connection, target):
    raise ImmutableAuditLogError(f"Audit log entry {target.id} cannot be modified")


@event.listens_for(AuditLog, "before_delete")
def _prevent_audit_delete(mapper, connection, target):
    raise ImmutableAuditLogError(f"Audit log entry {target.id} cannot be deleted")
