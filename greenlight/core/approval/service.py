"""Greenlight service.

Wraps the decision engine with the fetch, decide, write, append cycle
against the project record store and audit log sink.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

from greenlight.core.config import get_settings

from .contracts import AuditLogSink, ProjectRecordStore, VersionConflictError
from .engine import (
    ApprovalProgress,
    AuditEvent,
    DecisionOutcome,
    GreenlightEngine,
    GreenlightError,
)
from .roles import ApproverRole, Decision, parse_role, role_label
from .state import ProjectApprovalState


logger = logging.getLogger(__name__)


class GreenlightService:
    """
    High-level service for project greenlight approvals.

    Handles:
    - Applying decisions with optimistic-concurrency writes
    - Appending one audit entry per accepted decision
    - Progress and actionable-role queries
    - Batch decisions for users holding several roles
    """

    def __init__(
        self,
        store: ProjectRecordStore,
        sink: AuditLogSink,
        engine: Optional[GreenlightEngine] = None,
        *,
        max_conflict_retries: Optional[int] = None,
    ):
        """
        Initialize the greenlight service.

        Args:
            store: Project record store
            sink: Audit log sink
            engine: Decision engine (a default engine is created if omitted)
            max_conflict_retries: Re-derive attempts after a version conflict
        """
        self.store = store
        self.sink = sink
        self.engine = engine or GreenlightEngine()
        if max_conflict_retries is None:
            max_conflict_retries = get_settings().max_conflict_retries
        self.max_conflict_retries = max(0, max_conflict_retries)

    def get_state(self, project_id: str) -> ProjectApprovalState:
        return self.store.read(project_id)

    def decide(
        self,
        project_id: str,
        role: ApproverRole,
        acting_identity: str,
        decision: Decision,
        comment: Optional[str] = None,
    ) -> DecisionOutcome:
        """
        Decide a role and persist the result.

        The decision is derived from a fresh snapshot and written back with
        that snapshot's version. On a version conflict the decision is
        re-derived against the newest state.

        Returns:
            DecisionOutcome carrying the stored snapshot

        Raises:
            ProjectNotFoundError: If the project does not exist
            GreenlightError: If a decision precondition fails
            VersionConflictError: If conflicts persist past the retry limit
        """
        role = parse_role(role)
        decision = Decision(decision)
        attempt = 0

        while True:
            snapshot = self.store.read(project_id)
            try:
                outcome = self.engine.decide(snapshot, role, acting_identity, decision, comment)
            except GreenlightError as e:
                logger.warning(
                    "Greenlight decision refused for project %s (%s): %s",
                    project_id, e.code, e,
                )
                raise

            try:
                stored = self.store.write(project_id, outcome.state, expected_version=snapshot.version)
            except VersionConflictError:
                if attempt >= self.max_conflict_retries:
                    logger.warning(
                        "Giving up on %s decision for project %s after %d conflicts",
                        role_label(role), project_id, attempt + 1,
                    )
                    raise
                attempt += 1
                logger.warning(
                    "Version conflict on project %s, re-deriving %s decision (attempt %d)",
                    project_id, role_label(role), attempt,
                )
                continue
            break

        self.sink.append(outcome.event)

        logger.info(
            "%s %s project %s as %s",
            acting_identity, outcome.event.metadata["decision"], project_id, role_label(role),
        )
        if outcome.completed_greenlight:
            logger.info("Project %s is greenlit", project_id)

        return DecisionOutcome(
            state=stored,
            event=outcome.event,
            completed_greenlight=outcome.completed_greenlight,
        )

    def approve(
        self,
        project_id: str,
        role: ApproverRole,
        acting_identity: str,
        comment: Optional[str] = None,
    ) -> DecisionOutcome:
        return self.decide(project_id, role, acting_identity, Decision.APPROVE, comment)

    def reject(
        self,
        project_id: str,
        role: ApproverRole,
        acting_identity: str,
        comment: Optional[str] = None,
    ) -> DecisionOutcome:
        return self.decide(project_id, role, acting_identity, Decision.REJECT, comment)

    def batch_decide(
        self,
        project_id: str,
        roles: Iterable[ApproverRole],
        acting_identity: str,
        decision: Decision,
        comment: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Apply one decision to several roles held by the same user.

        Returns:
            Summary of results
        """
        results: Dict[str, List[Any]] = {"decided": [], "failed": []}

        for role in roles:
            try:
                self.decide(project_id, role, acting_identity, decision, comment)
                results["decided"].append(parse_role(role).value)
            except (GreenlightError, VersionConflictError, ValueError) as e:
                results["failed"].append({
                    "role": str(getattr(role, "value", role)),
                    "error": str(e),
                })

        return results

    def progress(self, project_id: str) -> ApprovalProgress:
        return self.engine.progress(self.store.read(project_id))

    def actionable_roles(self, project_id: str, acting_identity: str) -> List[ApproverRole]:
        return self.engine.actionable_roles(self.store.read(project_id), acting_identity)

    def pending_approvers(self, project_id: str) -> List[Tuple[ApproverRole, str]]:
        return self.engine.pending_approvers(self.store.read(project_id))

    def history(self, project_id: str) -> List[AuditEvent]:
        # Raises ProjectNotFoundError for unknown projects
        self.store.read(project_id)
        return self.sink.list_for_project(project_id)
