"""Project and per-role approval models.

A project row carries the greenlight completion timestamp and the version
counter used for optimistic locking. Each approver role assigned on the
project has one ProjectRoleApproval row.
"""

from datetime import datetime, timezone
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from greenlight.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Project(Base):
    """Project entity as seen by the greenlight workflow."""
    __tablename__ = "projects"

    id = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=True)

    # Set once, when every required role has approved
    greenlight_completed_at = Column(DateTime(timezone=True), nullable=True)

    # Optimistic locking counter, bumped on every flush that updates the row
    version = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    role_approvals = relationship(
        "ProjectRoleApproval",
        back_populates="project",
        cascade="all, delete-orphan",
        order_by="ProjectRoleApproval.role",
    )

    __mapper_args__ = {
        "version_id_col": version,
        "version_id_generator": lambda current: (current or 0) + 1,
    }

    def __repr__(self) -> str:
        return f"<Project {self.id} v{self.version}>"


class ProjectRoleApproval(Base):
    """Approval record for one role on one project."""
    __tablename__ = "project_role_approvals"
    __table_args__ = (
        UniqueConstraint("project_id", "role", name="uq_project_role_approvals_project_role"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(String(64), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(String(32), nullable=False)  # ApproverRole value

    assigned_email = Column(String(255), nullable=True)
    approved = Column(Boolean, nullable=False, default=False)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    approved_by = Column(String(255), nullable=True)
    comment = Column(Text, nullable=True)

    project = relationship("Project", back_populates="role_approvals")

    def __repr__(self) -> str:
        return f"<ProjectRoleApproval {self.project_id}:{self.role} approved={self.approved}>"
