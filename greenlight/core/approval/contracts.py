"""Collaborator contracts for the greenlight engine.

The engine reads and writes project approval state through a
ProjectRecordStore and records decisions through an AuditLogSink.

Concurrency: approvers for different roles may decide at the same time.
Stores must implement optimistic locking: ``write`` with an
``expected_version`` fails with VersionConflictError when the stored
version has moved on, so the caller can re-derive the decision against
fresh state instead of overwriting another approver's decision.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from .engine import AuditEvent
from .state import ProjectApprovalState


class StoreError(Exception):
    """Base class for record store failures."""


class ProjectNotFoundError(StoreError):
    """Raised when a project does not exist in the store."""

    def __init__(self, project_id: str):
        super().__init__(f"Project {project_id} not found")
        self.project_id = project_id


class VersionConflictError(StoreError):
    """Raised when a conditional write finds a newer stored version."""

    def __init__(self, project_id: str, expected: Optional[int], actual: Optional[int]):
        super().__init__(
            f"Project {project_id} was modified concurrently "
            f"(expected version {expected}, found {actual})"
        )
        self.project_id = project_id
        self.expected = expected
        self.actual = actual


class ProjectRecordStore(ABC):
    """Holds per-role approval state on the project entity."""

    @abstractmethod
    def read(self, project_id: str) -> ProjectApprovalState:
        """
        Read the current approval snapshot.

        Raises:
            ProjectNotFoundError: If the project does not exist
        """

    @abstractmethod
    def write(
        self,
        project_id: str,
        state: ProjectApprovalState,
        expected_version: Optional[int] = None,
    ) -> ProjectApprovalState:
        """
        Persist the per-role approval records and completion timestamp.

        Args:
            project_id: Project to update
            state: Snapshot to store
            expected_version: Version the snapshot was derived from. When
                given, the write only succeeds if it matches the stored version.

        Returns:
            The stored snapshot carrying its new version

        Raises:
            ProjectNotFoundError: If the project does not exist
            VersionConflictError: If ``expected_version`` is stale
        """


class AuditLogSink(ABC):
    """Append-only activity log."""

    @abstractmethod
    def append(self, event: AuditEvent) -> None:
        """Record one accepted decision. Entries are never modified."""

    @abstractmethod
    def list_for_project(self, project_id: str) -> List[AuditEvent]:
        """Return a project's entries, oldest first."""
