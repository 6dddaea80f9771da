"""Tests for lifecycle transition rules and cascade plans (no database)."""

from datetime import datetime, timezone

import pytest

from app.core.errors import (
    AlreadyApproved,
    AlreadyRejected,
    InvalidTransition,
    InvestigatorNotEligible,
    NotFound,
    ValidationFailed,
)
from app.db.enums import (
    AuditAction,
    EntityKind,
    InvestigatorStatus,
    MatchStatus,
    ModerationAction,
    RequestStatus,
)
from app.services.lifecycle_engine import (
    CUSTOMER_PROFILES,
    INVESTIGATION_REQUESTS,
    INVESTIGATOR_MATCHES,
    INVESTIGATOR_PROFILES,
    USERS,
    CustomerSnapshot,
    InvestigatorSnapshot,
    MatchRef,
    RequestRef,
    RequestSnapshot,
    StepKind,
    Transition,
    UserSnapshot,
    archived_email,
    archived_name,
    plan_transition,
)

NOW = datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
NOW_MS = int(NOW.timestamp() * 1000)


def investigator(
    profile_id: int = 42,
    status: InvestigatorStatus = InvestigatorStatus.PENDING,
    version: int = 1,
    requests=(),
    matches=(),
    deleted_at=None,
    user_deleted_at=None,
) -> InvestigatorSnapshot:
    return InvestigatorSnapshot(
        id=profile_id,
        user=UserSnapshot(id=profile_id + 1000, email="sam@example.com", name="Sam", deleted_at=user_deleted_at),
        status=status,
        version=version,
        deleted_at=deleted_at,
        requests=tuple(requests),
        matches=tuple(matches),
    )


def request(
    request_id: int = 100,
    status: RequestStatus = RequestStatus.MATCHING,
    investigator_id: int | None = None,
    matches=(),
    owner_deleted: bool = False,
) -> RequestSnapshot:
    return RequestSnapshot(
        id=request_id,
        user_id=1,
        status=status,
        version=3,
        investigator_id=investigator_id,
        owner_deleted=owner_deleted,
        matches=tuple(matches),
    )


def transition(action: ModerationAction, **kwargs) -> Transition:
    return Transition(action=action, now=NOW, actor_id=1, **kwargs)


# =============================================================================
# Archival helpers
# =============================================================================

def test_archived_email_appends_epoch_millis():
    assert archived_email("a@b.com", NOW) == f"a@b.com#deleted-{NOW_MS}"


def test_archived_name_with_and_without_name():
    assert archived_name("Sam") == "Sam (deleted)"
    assert archived_name(None) == "Deleted account"
    assert archived_name("", "Deleted customer") == "Deleted customer"


# =============================================================================
# Investigator approve
# =============================================================================

def test_approve_pending_sets_review_fields():
    plan = plan_transition(
        EntityKind.INVESTIGATOR, investigator(), transition(ModerationAction.APPROVE, note="ok")
    )

    assert plan.audit_action == AuditAction.INVESTIGATOR_APPROVED
    assert len(plan.steps) == 1
    step = plan.steps[0]
    assert step.kind == StepKind.UPDATE
    assert step.table == INVESTIGATOR_PROFILES
    assert step.ids == (42,)
    assert step.where == {"version": 1, "deleted_at": None}
    assert step.values["status"] == "approved"
    assert step.values["review_note"] == "ok"
    assert step.values["reviewed_at"] == NOW
    assert step.values["reviewed_by_id"] == 1
    assert step.bump_version and step.strict


def test_approve_without_note_stores_null():
    plan = plan_transition(
        EntityKind.INVESTIGATOR, investigator(), transition(ModerationAction.APPROVE, note="   ")
    )
    assert plan.steps[0].values["review_note"] is None


def test_approve_already_approved_fails():
    with pytest.raises(AlreadyApproved):
        plan_transition(
            EntityKind.INVESTIGATOR,
            investigator(status=InvestigatorStatus.APPROVED),
            transition(ModerationAction.APPROVE),
        )


def test_approve_rejected_is_not_allowed():
    with pytest.raises(InvalidTransition):
        plan_transition(
            EntityKind.INVESTIGATOR,
            investigator(status=InvestigatorStatus.REJECTED),
            transition(ModerationAction.APPROVE),
        )


def test_approve_archived_owner_is_not_found():
    with pytest.raises(NotFound):
        plan_transition(
            EntityKind.INVESTIGATOR,
            investigator(user_deleted_at=NOW),
            transition(ModerationAction.APPROVE),
        )


# =============================================================================
# Investigator reject / delete
# =============================================================================

def test_reject_requires_note():
    with pytest.raises(ValidationFailed) as exc:
        plan_transition(
            EntityKind.INVESTIGATOR, investigator(), transition(ModerationAction.REJECT, note=" ")
        )
    assert exc.value.code == "NOTE_REQUIRED"


def test_reject_twice_fails():
    with pytest.raises(AlreadyRejected):
        plan_transition(
            EntityKind.INVESTIGATOR,
            investigator(status=InvestigatorStatus.REJECTED),
            transition(ModerationAction.REJECT, note="spam"),
        )


def test_reject_releases_before_profile_update():
    snapshot = investigator(
        profile_id=7,
        status=InvestigatorStatus.APPROVED,
        requests=[RequestRef(100, RequestStatus.ASSIGNED)],
        matches=[MatchRef(5, 100, 7, MatchStatus.CONFIRMED)],
    )
    plan = plan_transition(
        EntityKind.INVESTIGATOR, snapshot, transition(ModerationAction.REJECT, note="fake license")
    )

    tables = [s.table for s in plan.steps]
    assert tables[-1] == INVESTIGATOR_PROFILES
    assert USERS not in tables
    assert plan.touched["released_request_ids"] == (100,)
    assert plan.touched["removed_match_ids"] == (5,)
    assert plan.steps[-1].values["review_note"] == "fake license"
    assert plan.metadata["previous_status"] == "approved"


def test_delete_investigator_scenario():
    """Profile 7 with request 100 assigned; request 101 is unrelated."""
    snapshot = investigator(
        profile_id=7,
        status=InvestigatorStatus.APPROVED,
        version=4,
        requests=[RequestRef(100, RequestStatus.ASSIGNED)],
        matches=[MatchRef(9, 100, 7, MatchStatus.CONFIRMED)],
    )
    plan = plan_transition(EntityKind.INVESTIGATOR, snapshot, transition(ModerationAction.DELETE))

    reopen, detach, drop_matches, profile, user = plan.steps
    assert reopen.table == INVESTIGATION_REQUESTS
    assert reopen.where == {"investigator_id": 7, "status": ("assigned", "matching")}
    assert reopen.values == {"investigator_id": None, "status": "matching"}
    assert detach.where == {"investigator_id": 7}
    assert detach.values == {"investigator_id": None}
    assert drop_matches.kind == StepKind.DELETE
    assert drop_matches.table == INVESTIGATOR_MATCHES
    assert drop_matches.where == {"investigator_id": 7}
    assert profile.values == {"status": "rejected", "deleted_at": NOW}
    assert profile.where == {"version": 4, "deleted_at": None}
    assert user.table == USERS
    assert user.values["email"] == f"sam@example.com#deleted-{NOW_MS}"
    assert user.values["name"] == "Sam (deleted)"
    assert user.values["deleted_at"] == NOW
    assert plan.touched["released_request_ids"] == (100,)
    assert plan.touched["user_ids"] == (1007,)


def test_delete_already_rejected_is_allowed():
    plan = plan_transition(
        EntityKind.INVESTIGATOR,
        investigator(status=InvestigatorStatus.REJECTED),
        transition(ModerationAction.DELETE),
    )
    assert plan.audit_action == AuditAction.INVESTIGATOR_DELETED


def test_delete_already_deleted_is_not_found():
    with pytest.raises(NotFound):
        plan_transition(
            EntityKind.INVESTIGATOR,
            investigator(deleted_at=NOW),
            transition(ModerationAction.DELETE),
        )


def test_completed_requests_are_not_reported_as_released():
    snapshot = investigator(
        requests=[RequestRef(1, RequestStatus.COMPLETED), RequestRef(2, RequestStatus.ASSIGNED)],
    )
    plan = plan_transition(EntityKind.INVESTIGATOR, snapshot, transition(ModerationAction.DELETE))
    assert plan.touched["released_request_ids"] == (2,)


# =============================================================================
# Customer delete
# =============================================================================

def test_customer_delete_cancels_open_requests_and_archives():
    snapshot = CustomerSnapshot(
        id=3,
        user=UserSnapshot(id=30, email="c@example.com", name=None),
        version=1,
        requests=(
            RequestRef(10, RequestStatus.MATCHING),
            RequestRef(11, RequestStatus.ASSIGNED),
            RequestRef(12, RequestStatus.COMPLETED),
        ),
        matches=(MatchRef(77, 11, 5, MatchStatus.CONFIRMED),),
    )
    plan = plan_transition(EntityKind.CUSTOMER, snapshot, transition(ModerationAction.DELETE))

    matches, cancel, profile, user = plan.steps
    assert matches.table == INVESTIGATOR_MATCHES
    assert matches.where == {"request_id": (10, 11, 12)}
    assert cancel.where == {"user_id": 30, "status": ("assigned", "matching")}
    assert cancel.values == {"status": "cancelled", "investigator_id": None}
    assert profile.table == CUSTOMER_PROFILES
    assert user.values["name"] == "Deleted customer"
    assert plan.touched["cancelled_request_ids"] == (10, 11)
    assert plan.touched["removed_match_ids"] == (77,)


def test_customer_delete_without_requests_skips_match_cleanup():
    snapshot = CustomerSnapshot(
        id=3, user=UserSnapshot(id=30, email="c@example.com", name="Kim"), version=1
    )
    plan = plan_transition(EntityKind.CUSTOMER, snapshot, transition(ModerationAction.DELETE))
    assert [s.table for s in plan.steps] == [INVESTIGATION_REQUESTS, CUSTOMER_PROFILES, USERS]


# =============================================================================
# Investigation requests
# =============================================================================

def test_assign_requires_eligible_investigator():
    for target in (
        None,
        investigator(status=InvestigatorStatus.PENDING),
        investigator(status=InvestigatorStatus.APPROVED, deleted_at=NOW),
        investigator(status=InvestigatorStatus.APPROVED, user_deleted_at=NOW),
    ):
        with pytest.raises(InvestigatorNotEligible):
            plan_transition(
                EntityKind.INVESTIGATION_REQUEST,
                request(),
                transition(ModerationAction.ASSIGN, target=target),
            )


def test_assign_creates_confirmed_match_and_claims_target():
    target = investigator(status=InvestigatorStatus.APPROVED, version=2)
    plan = plan_transition(
        EntityKind.INVESTIGATION_REQUEST, request(), transition(ModerationAction.ASSIGN, target=target)
    )

    claim, update, insert = plan.steps
    assert claim.kind == StepKind.UPDATE
    assert claim.table == INVESTIGATOR_PROFILES
    assert claim.ids == (42,)
    assert claim.where == {"version": 2, "status": "approved", "deleted_at": None}
    assert claim.values == {}
    assert claim.bump_version and claim.strict
    assert update.values == {"status": "assigned", "investigator_id": 42}
    assert update.where == {"version": 3, "status": "matching"}
    assert insert.kind == StepKind.INSERT
    assert insert.values["status"] == "confirmed"


def test_assign_confirms_existing_proposal():
    target = investigator(status=InvestigatorStatus.APPROVED)
    snapshot = request(matches=[MatchRef(8, 100, 42, MatchStatus.PROPOSED)])
    plan = plan_transition(
        EntityKind.INVESTIGATION_REQUEST, snapshot, transition(ModerationAction.ASSIGN, target=target)
    )
    last = plan.steps[-1]
    assert last.kind == StepKind.UPDATE
    assert last.table == INVESTIGATOR_MATCHES
    assert last.ids == (8,)


def test_assign_only_from_matching():
    target = investigator(status=InvestigatorStatus.APPROVED)
    with pytest.raises(InvalidTransition):
        plan_transition(
            EntityKind.INVESTIGATION_REQUEST,
            request(status=RequestStatus.ASSIGNED, investigator_id=1),
            transition(ModerationAction.ASSIGN, target=target),
        )


def test_propose_existing_pair_is_noop():
    target = investigator(status=InvestigatorStatus.APPROVED)
    snapshot = request(matches=[MatchRef(8, 100, 42, MatchStatus.PROPOSED)])
    plan = plan_transition(
        EntityKind.INVESTIGATION_REQUEST,
        snapshot,
        transition(ModerationAction.PROPOSE_MATCH, target=target),
    )
    assert plan.is_noop


def test_propose_new_pair_claims_target_then_inserts():
    target = investigator(status=InvestigatorStatus.APPROVED, version=5)
    plan = plan_transition(
        EntityKind.INVESTIGATION_REQUEST,
        request(),
        transition(ModerationAction.PROPOSE_MATCH, target=target),
    )

    claim, insert = plan.steps
    assert (claim.table, claim.where["version"], claim.bump_version) == (INVESTIGATOR_PROFILES, 5, True)
    assert insert.kind == StepKind.INSERT
    assert insert.values["status"] == "proposed"
    assert not plan.is_noop


def test_cancel_clears_investigator_and_matches():
    snapshot = request(
        status=RequestStatus.ASSIGNED,
        investigator_id=42,
        matches=[MatchRef(8, 100, 42, MatchStatus.CONFIRMED)],
    )
    plan = plan_transition(
        EntityKind.INVESTIGATION_REQUEST, snapshot, transition(ModerationAction.CANCEL)
    )
    drop, update = plan.steps
    assert drop.where == {"request_id": 100}
    assert update.values == {"status": "cancelled", "investigator_id": None}
    assert plan.touched["removed_match_ids"] == (8,)


@pytest.mark.parametrize("status", [RequestStatus.CANCELLED, RequestStatus.COMPLETED])
def test_terminal_requests_cannot_be_cancelled(status):
    with pytest.raises(InvalidTransition):
        plan_transition(
            EntityKind.INVESTIGATION_REQUEST, request(status=status), transition(ModerationAction.CANCEL)
        )


def test_complete_only_from_assigned():
    with pytest.raises(InvalidTransition):
        plan_transition(
            EntityKind.INVESTIGATION_REQUEST, request(), transition(ModerationAction.COMPLETE)
        )
    plan = plan_transition(
        EntityKind.INVESTIGATION_REQUEST,
        request(status=RequestStatus.ASSIGNED, investigator_id=42),
        transition(ModerationAction.COMPLETE),
    )
    assert plan.steps[0].values == {"status": "completed"}


def test_request_of_archived_owner_is_not_found():
    with pytest.raises(NotFound):
        plan_transition(
            EntityKind.INVESTIGATION_REQUEST,
            request(owner_deleted=True),
            transition(ModerationAction.CANCEL),
        )


def test_undefined_action_is_invalid_transition():
    with pytest.raises(InvalidTransition):
        plan_transition(EntityKind.CUSTOMER, None, transition(ModerationAction.APPROVE))


def test_plan_serializes():
    plan = plan_transition(
        EntityKind.INVESTIGATOR, investigator(), transition(ModerationAction.APPROVE, note="ok")
    )
    data = plan.to_dict()
    assert data["entity_kind"] == "InvestigatorProfile"
    assert data["action"] == "approve"
    assert data["audit_action"] == "INVESTIGATOR_APPROVED"
    assert data["steps"][0]["kind"] == "update"
    assert data["steps"][0]["table"] == "investigator_profiles"
