"""Audit recorder: persisted events, hashing, and best-effort failure handling."""

import logging

from sqlalchemy import select

from app.db.models import AuditLog
from app.services.audit_service import AuditEvent, AuditRecorder, hash_email, list_audit_logs


def _event(**overrides) -> AuditEvent:
    fields = {
        "actor_id": 1,
        "action": "INVESTIGATOR_APPROVED",
        "target_type": "InvestigatorProfile",
        "target_id": 42,
        "metadata": {"previous_status": "pending", "note": "ok"},
    }
    fields.update(overrides)
    return AuditEvent(**fields)


def test_hash_email_hides_address():
    hashed = hash_email("Someone@Example.com")

    assert hashed.startswith("Som...@[hash:")
    assert "example.com" not in hashed.lower()
    assert hashed == hash_email("Someone@Example.com")
    assert hash_email("") == ""


def test_recorder_persists_event(db):
    AuditRecorder().record(_event())

    [row] = db.execute(select(AuditLog)).scalars().all()
    assert row.action == "INVESTIGATOR_APPROVED"
    assert row.target_id == 42
    assert row.details == {"previous_status": "pending", "note": "ok"}


def test_disabled_recorder_writes_nothing(db):
    AuditRecorder(enabled=False).record(_event())

    assert db.execute(select(AuditLog)).scalars().all() == []


def test_recorder_swallows_session_failures(caplog):
    def broken_factory():
        raise RuntimeError("database unavailable")

    with caplog.at_level(logging.ERROR, logger="app.services.audit_service"):
        AuditRecorder(broken_factory).record(_event())

    assert "Audit session unavailable" in caplog.text


def test_recorder_swallows_write_failures(caplog):
    class FailingSession:
        rolled_back = closed = False

        def add(self, obj):
            pass

        def commit(self):
            raise RuntimeError("disk full")

        def rollback(self):
            self.rolled_back = True

        def close(self):
            self.closed = True

    session = FailingSession()
    with caplog.at_level(logging.ERROR, logger="app.services.audit_service"):
        AuditRecorder(lambda: session).record(_event())

    assert session.rolled_back and session.closed
    assert "Failed to record audit event" in caplog.text


def test_list_audit_logs_filters_and_orders(db):
    recorder = AuditRecorder()
    recorder.record(_event(target_id=1))
    recorder.record(_event(target_id=2, action="INVESTIGATOR_DELETED"))
    recorder.record(_event(target_id=1, action="INVESTIGATOR_REJECTED"))

    items, total = list_audit_logs(db, target_type="InvestigatorProfile", target_id=1)

    assert total == 2
    assert [i.action for i in items] == ["INVESTIGATOR_REJECTED", "INVESTIGATOR_APPROVED"]

    deleted, _ = list_audit_logs(db, action="INVESTIGATOR_DELETED")
    assert [i.target_id for i in deleted] == [2]
