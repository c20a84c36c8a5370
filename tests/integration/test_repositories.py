"""Integration tests for the SQLAlchemy repositories"""

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session
from payment_retry.domain.models import AttemptDraft, AttemptStatus, PaymentTrack
from payment_retry.domain.exceptions import AttemptNotFound, PersistenceFailure, SuccessorAlreadyExists
from payment_retry.infrastructure.database.models import PaymentAttemptRecord
from payment_retry.infrastructure.database.repositories import AttemptRepository, FailureRecorder


def successor_draft(predecessor: PaymentAttemptRecord) -> AttemptDraft:
    return AttemptDraft(
        account_id=predecessor.account_id,
        amount_cents=predecessor.amount_cents,
        date=predecessor.date,
        track=PaymentTrack.BANK_CARD,
        billing_cycle_id=predecessor.billing_cycle_id,
        retry_prev_attempt_id=predecessor.id,
        retry_sequence_nb=predecessor.retry_sequence_nb + 1,
        retry_routing_ctx=[],
        retry_annotation=f"scheduled_friday retry of attempt {predecessor.id}",
        retry_logic_version=1,
        retry_trace_data={"original_attempt_id": predecessor.id},
        memo="Retry attempt #1 for original payment",
    )


def test_create_attempt_persists_successor(db: Session, seed_attempt):
    predecessor = seed_attempt()
    repository = AttemptRepository(db)

    successor = repository.create_attempt(successor_draft(predecessor))

    assert successor.status == AttemptStatus.SCHEDULED
    assert repository.get_successor(predecessor.id).id == successor.id


def test_duplicate_successor_is_rejected(db: Session, seed_attempt):
    """The unique predecessor column turns a second successor into SuccessorAlreadyExists"""
    predecessor = seed_attempt()
    repository = AttemptRepository(db)
    first = repository.create_attempt(successor_draft(predecessor))
    db.commit()

    with pytest.raises(SuccessorAlreadyExists) as exc_info:
        repository.create_attempt(successor_draft(predecessor))

    assert exc_info.value.predecessor_id == predecessor.id
    assert repository.get_successor(predecessor.id).id == first.id
    assert db.query(PaymentAttemptRecord).count() == 2


def test_database_error_is_persistence_failure(db: Session, seed_attempt, monkeypatch):
    predecessor = seed_attempt()
    draft = successor_draft(predecessor)

    def broken_flush(*args, **kwargs):
        raise OperationalError("INSERT INTO payment_attempt", {}, Exception("database is locked"))

    monkeypatch.setattr(db, "flush", broken_flush)

    with pytest.raises(PersistenceFailure):
        AttemptRepository(db).create_attempt(draft)


def test_record_failure_marks_attempt(db: Session, seed_attempt, reference_time):
    attempt = seed_attempt()

    failed, recorded = FailureRecorder(db).record_failure(attempt.id, 904, reference_time)

    assert recorded is True
    assert failed.status == AttemptStatus.FAILED
    assert failed.code == 904
    assert failed.fail_reason == "External system failure"


def test_record_failure_keeps_first_code(db: Session, seed_attempt, reference_time):
    attempt = seed_attempt()
    recorder = FailureRecorder(db)
    recorder.record_failure(attempt.id, 903, reference_time)

    failed, recorded = recorder.record_failure(attempt.id, 904, reference_time)

    assert recorded is False
    assert failed.code == 903


def test_record_failure_unknown_attempt(db: Session, reference_time):
    with pytest.raises(AttemptNotFound):
        FailureRecorder(db).record_failure("missing", 904, reference_time)
