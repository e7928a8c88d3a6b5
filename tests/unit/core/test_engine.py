"""Tests for the greenlight decision engine."""

import pytest

from greenlight.core.approval import (
    AlreadyDecidedError,
    ApproverRole,
    Decision,
    NotAuthorizedError,
    RoleNotApplicableError,
    RoleStatus,
)
from greenlight.core.approval.engine import GREENLIGHT_DECISION_ACTION, compute_progress

from tests.factories import make_state


PRODUCER = ApproverRole.PRODUCER
LEGAL = ApproverRole.LEGAL
FINANCE = ApproverRole.FINANCE


@pytest.fixture
def two_role_state():
    return make_state("proj-1", name="Night Shoot", producer="p@x.com", legal="l@x.com")


class TestGreenlightScenarios:
    """Walk through a two-approver project."""

    def test_first_approval_is_partial(self, engine, two_role_state):
        outcome = engine.decide(two_role_state, PRODUCER, "p@x.com", Decision.APPROVE, "")

        progress = engine.progress(outcome.state)
        assert progress.required_count == 2
        assert progress.completed_count == 1
        assert progress.percent == 50
        assert progress.all_approved is False
        assert outcome.state.completed_at is None
        assert outcome.completed_greenlight is False
        assert outcome.event.all_approvals_complete is False

    def test_last_approval_greenlights(self, engine, clock, two_role_state):
        first = engine.decide(two_role_state, PRODUCER, "p@x.com", Decision.APPROVE, "")
        clock.advance(hours=2)
        second = engine.decide(first.state, LEGAL, "l@x.com", Decision.APPROVE, "looks good")

        progress = engine.progress(second.state)
        assert (progress.completed_count, progress.required_count) == (2, 2)
        assert progress.percent == 100
        assert progress.all_approved is True
        assert second.event.all_approvals_complete is True
        assert second.completed_greenlight is True
        assert second.state.completed_at == clock.now

    def test_decision_after_approval_is_refused(self, engine, two_role_state):
        state = engine.decide(two_role_state, PRODUCER, "p@x.com", Decision.APPROVE).state
        state = engine.decide(state, LEGAL, "l@x.com", Decision.APPROVE, "looks good").state

        with pytest.raises(AlreadyDecidedError) as exc:
            engine.decide(state, LEGAL, "l@x.com", Decision.REJECT, "")
        assert exc.value.role is LEGAL
        assert exc.value.code == "already_decided"

    def test_unassigned_role_is_not_applicable(self, engine, two_role_state):
        with pytest.raises(RoleNotApplicableError) as exc:
            engine.decide(two_role_state, FINANCE, "f@x.com", Decision.APPROVE, "")
        assert exc.value.role is FINANCE

    def test_wrong_identity_is_not_authorized(self, engine, two_role_state):
        before = engine.progress(two_role_state)

        with pytest.raises(NotAuthorizedError) as exc:
            engine.decide(two_role_state, PRODUCER, "wrong@x.com", Decision.APPROVE, "")

        assert exc.value.identity == "wrong@x.com"
        assert engine.progress(two_role_state) == before


class TestPreconditionOrder:
    """First failing precondition wins."""

    def test_not_applicable_before_not_authorized(self, engine):
        state = make_state(producer="p@x.com")
        with pytest.raises(RoleNotApplicableError):
            engine.decide(state, LEGAL, "someone@x.com", Decision.APPROVE)

    def test_not_authorized_before_already_decided(self, engine):
        state = make_state(producer="p@x.com", approved=("producer",))
        with pytest.raises(NotAuthorizedError):
            engine.decide(state, PRODUCER, "other@x.com", Decision.APPROVE)

    def test_empty_email_is_not_required(self, engine):
        state = make_state(producer="")
        with pytest.raises(RoleNotApplicableError):
            engine.decide(state, PRODUCER, "", Decision.APPROVE)

    def test_identity_match_is_case_sensitive(self, engine):
        state = make_state(producer="p@x.com")
        with pytest.raises(NotAuthorizedError):
            engine.decide(state, PRODUCER, "P@X.com", Decision.APPROVE)


class TestDecisionEffects:
    """Test the per-role record written by a decision."""

    def test_approve_records_actor_and_time(self, engine, clock):
        state = make_state(producer="p@x.com")
        outcome = engine.decide(state, PRODUCER, "p@x.com", Decision.APPROVE, "  ship it ")

        record = outcome.state.approval_for(PRODUCER)
        assert record.approved is True
        assert record.approved_at == clock.now
        assert record.approved_by == "p@x.com"
        assert record.comment == "ship it"
        assert record.status is RoleStatus.APPROVED

    def test_blank_comment_is_absent(self, engine):
        state = make_state(producer="p@x.com")
        outcome = engine.decide(state, PRODUCER, "p@x.com", Decision.APPROVE, "   ")
        assert outcome.state.approval_for(PRODUCER).comment is None
        assert outcome.event.metadata["comment"] is None

    def test_reject_keeps_role_unapproved(self, engine):
        state = make_state(producer="p@x.com", legal="l@x.com")
        outcome = engine.decide(state, LEGAL, "l@x.com", Decision.REJECT, "missing clearances")

        record = outcome.state.approval_for(LEGAL)
        assert record.approved is False
        assert record.approved_by == "l@x.com"
        assert record.comment == "missing clearances"
        assert record.status is RoleStatus.REJECTED
        assert outcome.event.metadata["decision"] == "rejected"

    def test_rejected_role_can_be_decided_again(self, engine):
        state = make_state(producer="p@x.com")
        state = engine.decide(state, PRODUCER, "p@x.com", Decision.REJECT, "budget too high").state
        outcome = engine.decide(state, PRODUCER, "p@x.com", Decision.APPROVE, "revised budget ok")

        assert outcome.state.approval_for(PRODUCER).approved is True
        assert outcome.completed_greenlight is True

    def test_rejection_does_not_clear_other_roles(self, engine):
        state = make_state(producer="p@x.com", legal="l@x.com", approved=("producer",))
        outcome = engine.decide(state, LEGAL, "l@x.com", Decision.REJECT)
        assert outcome.state.approval_for(PRODUCER).approved is True

    def test_input_state_is_not_mutated(self, engine):
        state = make_state(producer="p@x.com", legal="l@x.com")
        engine.decide(state, PRODUCER, "p@x.com", Decision.APPROVE)
        assert state.approval_for(PRODUCER).approved is False
        assert state.completed_at is None

    def test_accepts_plain_string_values(self, engine):
        state = make_state(producer="p@x.com")
        outcome = engine.decide(state, "producer", "p@x.com", "approve")
        assert outcome.state.approval_for(PRODUCER).approved is True


class TestCompletionTimestamp:
    """Test the set-once greenlight completion timestamp."""

    def test_single_required_role(self, engine, clock):
        state = make_state(executive="e@x.com")
        outcome = engine.decide(state, ApproverRole.EXECUTIVE, "e@x.com", Decision.APPROVE)
        assert outcome.state.completed_at == clock.now

    def test_rejection_never_completes(self, engine):
        state = make_state(producer="p@x.com", legal="l@x.com", approved=("producer",))
        outcome = engine.decide(state, LEGAL, "l@x.com", Decision.REJECT)
        assert outcome.state.completed_at is None
        assert outcome.event.all_approvals_complete is False

    def test_existing_timestamp_is_not_rewritten(self, engine, clock):
        earlier = clock.now
        clock.advance(days=3)
        # A role assigned after the project was first greenlit
        state = make_state(
            producer="p@x.com", client="c@x.com",
            approved=("producer",), completed_at=earlier,
        )
        outcome = engine.decide(state, ApproverRole.CLIENT, "c@x.com", Decision.APPROVE)

        assert outcome.state.completed_at == earlier
        assert outcome.completed_greenlight is False
        assert outcome.event.all_approvals_complete is True


class TestAuditEvent:
    """Test audit event construction."""

    def test_event_fields(self, engine, clock, two_role_state):
        outcome = engine.decide(two_role_state, LEGAL, "l@x.com", Decision.APPROVE, "cleared")
        event = outcome.event

        assert event.project_id == "proj-1"
        assert event.actor_identity == "l@x.com"
        assert event.actor_role_label == "Legal"
        assert event.action == GREENLIGHT_DECISION_ACTION
        assert event.target_type == "Project"
        assert event.target_id == "proj-1"
        assert event.target_name == "Night Shoot"
        assert event.created_at == clock.now
        assert event.metadata == {
            "approval_type": "greenlight",
            "approver_role": "Legal",
            "decision": "approved",
            "comment": "cleared",
            "all_approvals_complete": False,
        }


class TestProgress:
    """Test progress and completion queries."""

    def test_no_required_roles(self, engine):
        progress = engine.progress(make_state())
        assert progress.required_count == 0
        assert progress.percent == 0
        assert progress.all_approved is False
        assert engine.is_greenlit(make_state()) is False

    @pytest.mark.parametrize("completed,required,expected", [
        (1, 3, 33),
        (2, 3, 67),
        (1, 8, 13),  # 12.5 rounds half up
        (3, 8, 38),  # 37.5 rounds half up
        (5, 5, 100),
    ])
    def test_percent_rounding(self, completed, required, expected):
        from greenlight.core.approval.engine import _percent
        assert _percent(completed, required) == expected

    def test_progress_matches_module_function(self, engine):
        state = make_state(producer="p@x.com", legal="l@x.com", finance="f@x.com", approved=("legal",))
        assert engine.progress(state) == compute_progress(state)
        assert engine.progress(state).percent == 33

    def test_progress_to_dict(self, engine):
        state = make_state(producer="p@x.com", approved=("producer",))
        assert engine.progress(state).to_dict() == {
            "required_count": 1,
            "completed_count": 1,
            "percent": 100,
            "all_approved": True,
        }


class TestActionableRoles:
    """Test which roles a user may act on."""

    def test_user_holding_several_roles(self, engine):
        state = make_state(producer="boss@x.com", executive="boss@x.com", legal="l@x.com")
        assert engine.actionable_roles(state, "boss@x.com") == [
            ApproverRole.PRODUCER, ApproverRole.EXECUTIVE,
        ]

    def test_approved_roles_are_excluded(self, engine):
        state = make_state(producer="boss@x.com", executive="boss@x.com", approved=("producer",))
        assert engine.actionable_roles(state, "boss@x.com") == [ApproverRole.EXECUTIVE]

    def test_rejected_roles_remain_actionable(self, engine):
        state = make_state(producer="p@x.com")
        state = engine.decide(state, PRODUCER, "p@x.com", Decision.REJECT).state
        assert engine.actionable_roles(state, "p@x.com") == [PRODUCER]

    def test_unrelated_user_has_nothing(self, engine):
        state = make_state(producer="p@x.com")
        assert engine.actionable_roles(state, "stranger@x.com") == []


class TestPendingApprovers:
    """Test the awaiting-approvals list."""

    def test_pending_in_canonical_order(self, engine):
        state = make_state(client="c@x.com", producer="p@x.com", legal="l@x.com", approved=("legal",))
        assert engine.pending_approvers(state) == [
            (ApproverRole.PRODUCER, "p@x.com"),
            (ApproverRole.CLIENT, "c@x.com"),
        ]

    def test_nothing_pending_when_greenlit(self, engine):
        state = make_state(producer="p@x.com", approved=("producer",))
        assert engine.pending_approvers(state) == []
        assert engine.is_greenlit(state) is True
