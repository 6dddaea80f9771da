"""Tests for the moderation orchestrator against a real session."""

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from app.core.errors import (
    AlreadyApproved,
    Forbidden,
    InvestigatorNotEligible,
    NotFound,
    StorageError,
)
from app.db.enums import (
    AuditAction,
    EntityKind,
    InvestigatorStatus,
    ModerationAction,
    RequestStatus,
    Role,
)
from app.db.models import (
    CustomerProfile,
    InvestigatorMatch,
    InvestigatorProfile,
    User,
)
from app.services import entity_store, user_service
from app.services.moderation_service import ModerationService


def _matches_for(db, investigator_id):
    return db.execute(
        select(InvestigatorMatch).where(InvestigatorMatch.investigator_id == investigator_id)
    ).scalars().all()


# =============================================================================
# Investigator approve
# =============================================================================

def test_approve_twice_second_fails_and_keeps_review(db, admin_auth, investigator_auth):
    profile_id = investigator_auth.user.investigator_profile.id
    service = ModerationService(db)

    result = service.execute(
        admin_auth.caller, EntityKind.INVESTIGATOR, profile_id, ModerationAction.APPROVE, note="ok"
    )
    assert result.entity.status == InvestigatorStatus.APPROVED.value
    assert result.entity.review_note == "ok"
    assert result.entity.reviewed_by_id == admin_auth.user.id
    assert result.event.action == AuditAction.INVESTIGATOR_APPROVED.value
    reviewed_at = result.entity.reviewed_at

    with pytest.raises(AlreadyApproved):
        service.execute(
            admin_auth.caller, EntityKind.INVESTIGATOR, profile_id, ModerationAction.APPROVE
        )

    profile = db.get(InvestigatorProfile, profile_id)
    db.refresh(profile)
    assert profile.status == InvestigatorStatus.APPROVED.value
    assert profile.reviewed_at == reviewed_at
    assert profile.review_note == "ok"
    assert profile.version == 2


def test_approve_unknown_profile_is_not_found(db, admin_auth):
    with pytest.raises(NotFound):
        ModerationService(db).execute(
            admin_auth.caller, EntityKind.INVESTIGATOR, 999, ModerationAction.APPROVE
        )


def test_non_admin_caller_is_forbidden(db, customer_auth, investigator_auth):
    profile_id = investigator_auth.user.investigator_profile.id
    with pytest.raises(Forbidden):
        ModerationService(db).execute(
            customer_auth.caller, EntityKind.INVESTIGATOR, profile_id, ModerationAction.APPROVE
        )
    assert db.get(InvestigatorProfile, profile_id).status == InvestigatorStatus.PENDING.value


# =============================================================================
# Investigator delete / reject
# =============================================================================

def test_delete_investigator_releases_assignments(
    db, admin_auth, customer_auth, approved_investigator, make_request
):
    profile = approved_investigator.user.investigator_profile
    assigned = make_request(
        customer_auth.user, RequestStatus.ASSIGNED, investigator_id=profile.id, with_match=True
    )
    untouched = make_request(customer_auth.user, RequestStatus.MATCHING, title="Other case")
    original_email = approved_investigator.user.email

    result = ModerationService(db).execute(
        admin_auth.caller, EntityKind.INVESTIGATOR, profile.id, ModerationAction.DELETE
    )

    assert result.ids("released_request_ids") == [assigned.id]
    db.refresh(assigned)
    db.refresh(untouched)
    assert assigned.status == RequestStatus.MATCHING.value
    assert assigned.investigator_id is None
    assert untouched.status == RequestStatus.MATCHING.value
    assert untouched.version == 1
    assert _matches_for(db, profile.id) == []

    db.refresh(profile)
    assert profile.status == InvestigatorStatus.REJECTED.value
    assert profile.deleted_at is not None

    user = db.get(User, approved_investigator.user.id)
    db.refresh(user)
    assert user.deleted_at is not None
    assert user.email.startswith(f"{original_email}#deleted-")
    assert user.name == "Approved Investigator (deleted)"
    assert result.event.metadata["user_id"] == user.id
    assert original_email not in result.event.metadata["email_hash"]


def test_delete_investigator_twice_is_not_found(db, admin_auth, investigator_auth):
    profile_id = investigator_auth.user.investigator_profile.id
    service = ModerationService(db)
    service.execute(admin_auth.caller, EntityKind.INVESTIGATOR, profile_id, ModerationAction.DELETE)

    with pytest.raises(NotFound):
        service.execute(
            admin_auth.caller, EntityKind.INVESTIGATOR, profile_id, ModerationAction.DELETE
        )


def test_deleted_email_can_register_again(db, admin_auth, investigator_auth):
    email = investigator_auth.user.email
    ModerationService(db).execute(
        admin_auth.caller,
        EntityKind.INVESTIGATOR,
        investigator_auth.user.investigator_profile.id,
        ModerationAction.DELETE,
    )

    again = user_service.create_user(db, email, Role.INVESTIGATOR, "Returning")
    assert again.email == email
    assert again.id != investigator_auth.user.id


def test_reject_keeps_account_but_releases_requests(
    db, admin_auth, customer_auth, approved_investigator, make_request
):
    profile = approved_investigator.user.investigator_profile
    assigned = make_request(
        customer_auth.user, RequestStatus.ASSIGNED, investigator_id=profile.id, with_match=True
    )

    result = ModerationService(db).execute(
        admin_auth.caller,
        EntityKind.INVESTIGATOR,
        profile.id,
        ModerationAction.REJECT,
        note="License expired",
    )

    assert result.entity.status == InvestigatorStatus.REJECTED.value
    assert result.entity.deleted_at is None
    assert result.entity.review_note == "License expired"
    db.refresh(assigned)
    assert assigned.status == RequestStatus.MATCHING.value
    assert assigned.investigator_id is None
    assert _matches_for(db, profile.id) == []
    assert db.get(User, approved_investigator.user.id).deleted_at is None


def test_completed_request_stays_completed_on_investigator_delete(
    db, admin_auth, customer_auth, approved_investigator, make_request
):
    profile = approved_investigator.user.investigator_profile
    done = make_request(customer_auth.user, RequestStatus.COMPLETED, investigator_id=profile.id)

    ModerationService(db).execute(
        admin_auth.caller, EntityKind.INVESTIGATOR, profile.id, ModerationAction.DELETE
    )

    db.refresh(done)
    assert done.status == RequestStatus.COMPLETED.value
    assert done.investigator_id is None


# =============================================================================
# Customer delete
# =============================================================================

def test_delete_customer_cancels_requests_and_archives(
    db, admin_auth, customer_auth, approved_investigator, make_request
):
    investigator_id = approved_investigator.user.investigator_profile.id
    open_request = make_request(customer_auth.user)
    assigned = make_request(
        customer_auth.user, RequestStatus.ASSIGNED, investigator_id=investigator_id, with_match=True
    )
    customer_id = customer_auth.user.customer_profile.id
    original_email = customer_auth.user.email

    result = ModerationService(db).execute(
        admin_auth.caller, EntityKind.CUSTOMER, customer_id, ModerationAction.DELETE
    )

    assert sorted(result.ids("cancelled_request_ids")) == sorted([open_request.id, assigned.id])
    for request in (open_request, assigned):
        db.refresh(request)
        assert request.status == RequestStatus.CANCELLED.value
        assert request.investigator_id is None
    assert _matches_for(db, investigator_id) == []

    profile = db.get(CustomerProfile, customer_id)
    db.refresh(profile)
    assert profile.deleted_at is not None
    user = db.get(User, customer_auth.user.id)
    db.refresh(user)
    assert user.deleted_at is not None
    assert user.email != original_email

    with pytest.raises(NotFound):
        ModerationService(db).execute(
            admin_auth.caller, EntityKind.CUSTOMER, customer_id, ModerationAction.DELETE
        )


# =============================================================================
# Requests
# =============================================================================

def test_assign_to_pending_investigator_leaves_request_unchanged(
    db, admin_auth, customer_auth, investigator_auth, make_request
):
    request = make_request(customer_auth.user)

    with pytest.raises(InvestigatorNotEligible):
        ModerationService(db).execute(
            admin_auth.caller,
            EntityKind.INVESTIGATION_REQUEST,
            request.id,
            ModerationAction.ASSIGN,
            target_id=investigator_auth.user.investigator_profile.id,
        )

    db.refresh(request)
    assert request.status == RequestStatus.MATCHING.value
    assert request.investigator_id is None
    assert request.version == 1


def test_assign_then_complete(db, admin_auth, customer_auth, approved_investigator, make_request):
    investigator_id = approved_investigator.user.investigator_profile.id
    profile = db.get(InvestigatorProfile, investigator_id)
    version_before = profile.version
    request = make_request(customer_auth.user)
    service = ModerationService(db)

    assigned = service.execute(
        admin_auth.caller,
        EntityKind.INVESTIGATION_REQUEST,
        request.id,
        ModerationAction.ASSIGN,
        target_id=investigator_id,
    )
    assert assigned.entity.status == RequestStatus.ASSIGNED.value
    assert assigned.entity.investigator_id == investigator_id
    [match] = _matches_for(db, investigator_id)
    assert match.status == "confirmed"
    db.refresh(profile)
    assert profile.version == version_before + 1

    completed = service.execute(
        admin_auth.caller, EntityKind.INVESTIGATION_REQUEST, request.id, ModerationAction.COMPLETE
    )
    assert completed.entity.status == RequestStatus.COMPLETED.value
    assert completed.entity.investigator_id == investigator_id


def test_propose_match_is_idempotent(db, admin_auth, customer_auth, approved_investigator, make_request):
    investigator_id = approved_investigator.user.investigator_profile.id
    profile = db.get(InvestigatorProfile, investigator_id)
    version_before = profile.version
    request = make_request(customer_auth.user)
    service = ModerationService(db)

    for _ in range(2):
        service.execute(
            admin_auth.caller,
            EntityKind.INVESTIGATION_REQUEST,
            request.id,
            ModerationAction.PROPOSE_MATCH,
            target_id=investigator_id,
        )

    [match] = _matches_for(db, investigator_id)
    assert match.status == "proposed"
    # only the first proposal claims the investigator
    db.refresh(profile)
    assert profile.version == version_before + 1


def test_cancel_own_request_of_someone_else_is_not_found(db, make_user, make_request):
    owner = make_user(Role.CUSTOMER)
    other = make_user(Role.CUSTOMER)
    request = make_request(owner.user)

    with pytest.raises(NotFound):
        ModerationService(db).cancel_own_request(other.caller, request.id)

    result = ModerationService(db).cancel_own_request(owner.caller, request.id)
    assert result.entity.status == RequestStatus.CANCELLED.value


# =============================================================================
# Storage failures
# =============================================================================

def test_storage_failure_rolls_back_and_is_retryable(db, admin_auth, investigator_auth, monkeypatch):
    profile_id = investigator_auth.user.investigator_profile.id

    def broken_apply(session, plan):
        raise OperationalError("UPDATE investigator_profiles", {}, Exception("connection lost"))

    monkeypatch.setattr(entity_store, "apply", broken_apply)

    with pytest.raises(StorageError) as exc:
        ModerationService(db).execute(
            admin_auth.caller, EntityKind.INVESTIGATOR, profile_id, ModerationAction.APPROVE
        )

    assert exc.value.retryable is True
    assert "connection lost" not in exc.value.message
    profile = db.get(InvestigatorProfile, profile_id)
    assert profile.status == InvestigatorStatus.PENDING.value


def test_loaders_skip_archived_rows(db, admin_auth, investigator_auth):
    profile_id = investigator_auth.user.investigator_profile.id
    ModerationService(db).execute(
        admin_auth.caller, EntityKind.INVESTIGATOR, profile_id, ModerationAction.DELETE
    )
    assert entity_store.get_investigator(db, profile_id) is None
    assert entity_store.get_live_user(db, investigator_auth.user.id) is None
