"""Tests for role definitions and approval state records."""

from datetime import datetime, timezone

import pytest

from greenlight.core.approval import (
    ROLE_DEFINITIONS,
    ApproverRole,
    ProjectApprovalState,
    RoleApproval,
    RoleStatus,
    get_role_definition,
    parse_role,
    role_label,
)


class TestRoleDefinitions:
    """Test the role catalogue."""

    def test_all_roles_defined(self):
        expected = ["producer", "legal", "finance", "executive", "client"]
        assert [role.value for role in ApproverRole] == expected
        assert set(ROLE_DEFINITIONS) == set(ApproverRole)

    def test_labels(self):
        assert role_label(ApproverRole.PRODUCER) == "Producer"
        assert role_label(ApproverRole.EXECUTIVE) == "Executive"
        assert get_role_definition(ApproverRole.FINANCE).title == "Budget Approved by Finance"
        assert get_role_definition(ApproverRole.LEGAL).assignment_field == "legalContactEmail"

    @pytest.mark.parametrize("value,expected", [
        ("legal", ApproverRole.LEGAL),
        ("Legal", ApproverRole.LEGAL),
        (" FINANCE ", ApproverRole.FINANCE),
        (ApproverRole.CLIENT, ApproverRole.CLIENT),
    ])
    def test_parse_role(self, value, expected):
        assert parse_role(value) is expected

    def test_parse_unknown_role(self):
        with pytest.raises(ValueError):
            parse_role("catering")


class TestRoleApproval:
    """Test single-role records."""

    def test_defaults(self):
        record = RoleApproval()
        assert record.is_required is False
        assert record.status is RoleStatus.NOT_REQUIRED

    def test_status_transitions(self):
        assert RoleApproval(assigned_email="a@x.com").status is RoleStatus.PENDING
        assert RoleApproval(assigned_email="a@x.com", approved=True).status is RoleStatus.APPROVED
        rejected = RoleApproval(assigned_email="a@x.com", approved_by="a@x.com")
        assert rejected.status is RoleStatus.REJECTED

    def test_records_are_frozen(self):
        record = RoleApproval(assigned_email="a@x.com")
        with pytest.raises(AttributeError):
            record.approved = True


class TestProjectApprovalState:
    """Test project snapshots."""

    def test_new_from_assignments(self):
        state = ProjectApprovalState.new(
            "p1",
            {ApproverRole.LEGAL: "l@x.com", ApproverRole.PRODUCER: "p@x.com", ApproverRole.CLIENT: None},
            project_name="Pilot",
        )
        assert state.required_roles() == [ApproverRole.PRODUCER, ApproverRole.LEGAL]
        assert state.project_name == "Pilot"
        assert state.version == 0

    def test_missing_role_reads_as_unassigned(self):
        state = ProjectApprovalState(project_id="p1")
        assert state.approval_for(ApproverRole.FINANCE) == RoleApproval()

    def test_with_approval_returns_copy(self):
        state = ProjectApprovalState.new("p1", {ApproverRole.LEGAL: "l@x.com"})
        updated = state.with_approval(
            ApproverRole.LEGAL, RoleApproval(assigned_email="l@x.com", approved=True),
        )
        assert updated.approval_for(ApproverRole.LEGAL).approved is True
        assert state.approval_for(ApproverRole.LEGAL).approved is False

    def test_dict_round_trip(self):
        approved_at = datetime(2026, 3, 1, 12, 30, tzinfo=timezone.utc)
        state = ProjectApprovalState(
            project_id="p1",
            approvals={
                ApproverRole.LEGAL: RoleApproval(
                    assigned_email="l@x.com", approved=True,
                    approved_at=approved_at, approved_by="l@x.com", comment="ok",
                ),
            },
            completed_at=approved_at,
            version=4,
            project_name="Pilot",
        )
        data = state.to_dict()
        assert data["approvals"]["legal"]["approved_at"] == "2026-03-01T12:30:00+00:00"
        assert data["approvals"]["client"]["assigned_email"] is None

        restored = ProjectApprovalState.from_dict(data)
        assert restored.approval_for(ApproverRole.LEGAL) == state.approval_for(ApproverRole.LEGAL)
        assert restored.completed_at == approved_at
        assert restored.version == 4
        assert restored.required_roles() == [ApproverRole.LEGAL]
