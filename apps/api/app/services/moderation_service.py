"""Moderation orchestrator - executes lifecycle transitions atomically.

    load snapshot (locked) -> plan_transition -> apply -> commit -> audit

Each attempt runs in one transaction on the caller's session. A stale
snapshot (guarded write touched the wrong number of rows, or a database
serialization failure) rolls back and re-reads, so the loser of a race
observes the winner's committed state and fails with that state's domain
error. Retries are bounded by MODERATION_CONFLICT_RETRIES.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable

from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import (
    ConcurrentModification,
    DomainError,
    Forbidden,
    NotFound,
    StorageError,
)
from app.core.permissions import Capability
from app.core.structured_logging import build_log_context
from app.db.enums import EntityKind, ModerationAction
from app.db.models import CustomerProfile, InvestigationRequest, InvestigatorProfile
from app.schemas.auth import CallerContext
from app.services import entity_store
from app.services.audit_service import AuditEvent, AuditRecorder, hash_email
from app.services.entity_store import StaleSnapshot
from app.services.lifecycle_engine import CascadePlan, Transition, plan_transition

logger = logging.getLogger(__name__)

# SQLSTATEs that mean "retry the transaction"
RETRYABLE_SQLSTATES = frozenset({"40001", "40P01"})

REQUIRED_CAPABILITY: dict[EntityKind, Capability] = {
    EntityKind.INVESTIGATOR: Capability.INVESTIGATORS_MODERATE,
    EntityKind.CUSTOMER: Capability.CUSTOMERS_MODERATE,
    EntityKind.INVESTIGATION_REQUEST: Capability.REQUESTS_MANAGE,
}

_NOT_FOUND_MESSAGES = {
    EntityKind.INVESTIGATOR: "Investigator not found",
    EntityKind.CUSTOMER: "Customer not found",
    EntityKind.INVESTIGATION_REQUEST: "Investigation request not found",
}


@dataclass
class ModerationResult:
    """Outcome of a committed transition."""
    plan: CascadePlan
    entity: Any = None  # primary row re-read after commit (None once archived)
    event: AuditEvent | None = None
    attempts: int = 1
    touched: dict[str, list[int]] = field(default_factory=dict)

    def ids(self, key: str) -> list[int]:
        return self.touched.get(key, [])


def _is_retryable_db_error(exc: OperationalError) -> bool:
    orig = getattr(exc, "orig", None)
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    return sqlstate in RETRYABLE_SQLSTATES


class ModerationService:
    """Run moderation actions against one session."""

    def __init__(
        self,
        db: Session,
        *,
        max_retries: int | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.db = db
        self.max_retries = (
            settings.MODERATION_CONFLICT_RETRIES if max_retries is None else max(0, max_retries)
        )
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    # -------------------------------------------------------------------------
    # Snapshot loading
    # -------------------------------------------------------------------------

    def _load(self, kind: EntityKind, entity_id: int):
        db = self.db
        if kind == EntityKind.INVESTIGATOR:
            row = entity_store.get_investigator(db, entity_id, for_update=True)
            return entity_store.investigator_snapshot(db, row) if row else None
        if kind == EntityKind.CUSTOMER:
            row = entity_store.get_customer(db, entity_id, for_update=True)
            return entity_store.customer_snapshot(db, row) if row else None
        row = entity_store.get_request(db, entity_id, for_update=True)
        return entity_store.request_snapshot(db, row) if row else None

    def _load_target(self, target_id: int | None):
        if target_id is None:
            return None
        row = entity_store.get_investigator(self.db, target_id, for_update=True)
        return entity_store.investigator_snapshot(self.db, row) if row else None

    # -------------------------------------------------------------------------
    # Execution
    # -------------------------------------------------------------------------

    def execute(
        self,
        caller: CallerContext,
        kind: EntityKind,
        entity_id: int,
        action: ModerationAction,
        *,
        note: str | None = None,
        target_id: int | None = None,
    ) -> ModerationResult:
        """
        Validate and commit one transition.

        Raises:
            Forbidden: caller lacks the capability for this entity kind
            NotFound: entity absent or archived
            DomainError: transition refused by the lifecycle rules
            ConcurrentModification: still losing the race after retries
            StorageError: database failure (rolled back)
        """
        if not caller.can(REQUIRED_CAPABILITY[kind].value):
            raise Forbidden()
        return self._run(caller, kind, entity_id, action, note=note, target_id=target_id)

    def cancel_own_request(self, caller: CallerContext, request_id: int) -> ModerationResult:
        """Customer-initiated cancel; other customers' requests read as not found."""
        if not caller.can(Capability.REQUEST_CREATE.value):
            raise Forbidden()
        request = entity_store.get_request(self.db, request_id)
        if request is None or request.user_id != caller.user_id:
            raise NotFound(_NOT_FOUND_MESSAGES[EntityKind.INVESTIGATION_REQUEST])
        return self._run(
            caller, EntityKind.INVESTIGATION_REQUEST, request_id, ModerationAction.CANCEL
        )

    def _run(self, caller, kind, entity_id, action, *, note=None, target_id=None):
        log_context = build_log_context(
            actor_id=caller.user_id,
            target_type=kind.value,
            target_id=entity_id,
            action=action.value,
        )
        attempts = self.max_retries + 1
        for attempt in range(1, attempts + 1):
            try:
                plan, snapshot = self._attempt(caller, kind, entity_id, action, note, target_id)
            except StaleSnapshot as e:
                self.db.rollback()
                logger.warning(
                    "Moderation conflict (attempt %s/%s): %s", attempt, attempts, e,
                    extra=log_context,
                )
                continue
            except OperationalError as e:
                self.db.rollback()
                if _is_retryable_db_error(e):
                    logger.warning(
                        "Serialization failure (attempt %s/%s)", attempt, attempts,
                        extra=log_context,
                    )
                    continue
                logger.exception("Moderation transaction failed", extra=log_context)
                raise StorageError() from e
            except DomainError:
                self.db.rollback()
                raise
            except SQLAlchemyError as e:
                self.db.rollback()
                logger.exception("Moderation transaction failed", extra=log_context)
                raise StorageError() from e

            logger.info("Moderation committed", extra=log_context)
            return self._result(caller, plan, snapshot, attempt)

        raise ConcurrentModification()

    def _attempt(self, caller, kind, entity_id, action, note, target_id):
        snapshot = self._load(kind, entity_id)
        if snapshot is None:
            raise NotFound(_NOT_FOUND_MESSAGES[kind])
        transition = Transition(
            action=action,
            now=self.clock(),
            actor_id=caller.user_id,
            note=note,
            target=self._load_target(target_id),
        )
        plan = plan_transition(kind, snapshot, transition)
        entity_store.apply(self.db, plan)
        self.db.commit()
        return plan, snapshot

    def _result(self, caller, plan: CascadePlan, snapshot, attempts: int) -> ModerationResult:
        touched = {key: list(ids) for key, ids in plan.touched.items()}
        metadata: dict[str, Any] = {k: v for k, v in plan.metadata.items() if v is not None}
        metadata.update(touched)
        user = getattr(snapshot, "user", None)
        if user is not None and plan.action == ModerationAction.DELETE:
            metadata["user_id"] = user.id
            metadata["email_hash"] = hash_email(user.email)

        event = None
        if plan.audit_action is not None:
            event = AuditEvent(
                actor_id=caller.user_id,
                action=plan.audit_action.value,
                target_type=plan.entity_kind.value,
                target_id=plan.entity_id,
                metadata=metadata,
                timestamp=self.clock(),
            )
        return ModerationResult(
            plan=plan,
            entity=self._reload(plan),
            event=event,
            attempts=attempts,
            touched=touched,
        )

    def _reload(self, plan: CascadePlan):
        model = {
            EntityKind.INVESTIGATOR: InvestigatorProfile,
            EntityKind.CUSTOMER: CustomerProfile,
            EntityKind.INVESTIGATION_REQUEST: InvestigationRequest,
        }[plan.entity_kind]
        return self.db.get(model, plan.entity_id)


def moderate(
    db: Session,
    caller: CallerContext,
    kind: EntityKind,
    entity_id: int,
    action: ModerationAction,
    *,
    note: str | None = None,
    target_id: int | None = None,
    recorder: AuditRecorder | None = None,
) -> ModerationResult:
    """Execute and record inline (CLI and scripts; routes record in the background)."""
    result = ModerationService(db).execute(
        caller, kind, entity_id, action, note=note, target_id=target_id
    )
    if recorder is not None and result.event is not None:
        recorder.record(result.event)
    return result
