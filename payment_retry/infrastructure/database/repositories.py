"""Data access layer for payment attempts, billing cycles and accounts"""

import logging
from datetime import date, datetime
from typing import List, Optional, Tuple
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from payment_retry.infrastructure.database.models import BillingCycle, CustomerAccount, PaymentAttemptRecord
from payment_retry.domain.models import AttemptDraft, AttemptStatus, PaymentAttempt, PaymentTrack
from payment_retry.domain.exceptions import (
    AttemptNotFound,
    MissingContext,
    PersistenceFailure,
    SuccessorAlreadyExists,
)
from payment_retry.domain.failures import compute_days_overdue, describe_failure


def to_domain(record: PaymentAttemptRecord) -> PaymentAttempt:
    """Map an ORM row to the domain dataclass"""
    return PaymentAttempt(
        id=record.id,
        account_id=record.account_id,
        amount_cents=record.amount_cents,
        status=AttemptStatus(record.status),
        date=record.date,
        billing_cycle_id=record.billing_cycle_id,
        code=record.code,
        track=PaymentTrack(record.track) if record.track else None,
        retry_sequence_nb=record.retry_sequence_nb,
        retry_prev_attempt_id=record.retry_prev_attempt_id,
        retry_routing_ctx=list(record.retry_routing_ctx or []),
        retry_annotation=record.retry_annotation,
        retry_logic_version=record.retry_logic_version,
        retry_trace_data=record.retry_trace_data,
        memo=record.memo,
        fail_reason=record.fail_reason,
    )


class AttemptRepository:
    """Repository for payment attempts"""

    def __init__(self, db: Session):
        self.db = db

    def get_record(self, attempt_id: str) -> Optional[PaymentAttemptRecord]:
        return self.db.get(PaymentAttemptRecord, attempt_id)

    def get_attempt(self, attempt_id: str) -> Optional[PaymentAttempt]:
        record = self.get_record(attempt_id)
        return to_domain(record) if record else None

    def get_successor(self, attempt_id: str) -> Optional[PaymentAttempt]:
        """Fetch the retry scheduled from this attempt, if any"""
        record = (
            self.db.query(PaymentAttemptRecord)
            .filter(PaymentAttemptRecord.retry_prev_attempt_id == attempt_id)
            .first()
        )
        return to_domain(record) if record else None

    def create_attempt(self, draft: AttemptDraft) -> PaymentAttempt:
        """
        Persist a successor attempt.

        A unique-constraint hit on the predecessor means another worker
        already scheduled the retry; the session is rolled back to the last
        committed state so that successor becomes visible.

        Raises:
            SuccessorAlreadyExists: Predecessor already has a successor
            PersistenceFailure: Any other database error
        """
        record = PaymentAttemptRecord(
            account_id=draft.account_id,
            billing_cycle_id=draft.billing_cycle_id,
            amount_cents=draft.amount_cents,
            status=draft.status.value,
            track=draft.track.value if draft.track else None,
            date=draft.date,
            memo=draft.memo,
            retry_prev_attempt_id=draft.retry_prev_attempt_id,
            retry_sequence_nb=draft.retry_sequence_nb,
            retry_routing_ctx=list(draft.retry_routing_ctx),
            retry_annotation=draft.retry_annotation,
            retry_logic_version=draft.retry_logic_version,
            retry_trace_data=draft.retry_trace_data,
        )
        try:
            self.db.add(record)
            self.db.flush()  # Surface constraint violations before commit
        except IntegrityError as e:
            self.db.rollback()
            raise SuccessorAlreadyExists(draft.retry_prev_attempt_id) from e
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceFailure(f"Failed to create retry attempt: {e}") from e

        return to_domain(record)

    def get_lineage(self, attempt_id: str) -> List[PaymentAttempt]:
        """Walk predecessor links back to the first attempt, returned oldest first"""
        chain = []
        record = self.get_record(attempt_id)
        while record is not None:
            chain.append(to_domain(record))
            if record.retry_prev_attempt_id is None:
                break
            record = self.get_record(record.retry_prev_attempt_id)

        chain.reverse()
        return chain


class BillingCycleRepository:
    """Repository for billing cycles"""

    def __init__(self, db: Session):
        self.db = db

    def get_days_overdue(self, billing_cycle_id: str) -> int:
        """
        Raises:
            MissingContext: Cycle is absent, has no age recorded, or the read failed
        """
        try:
            cycle = self.db.get(BillingCycle, billing_cycle_id)
        except SQLAlchemyError as e:
            raise MissingContext(f"Could not fetch billing cycle {billing_cycle_id}") from e

        if cycle is None:
            raise MissingContext(f"Billing cycle {billing_cycle_id} not found")
        if cycle.days_overdue is None:
            raise MissingContext(f"Billing cycle {billing_cycle_id} has no days_overdue")
        return cycle.days_overdue


class AccountRepository:
    """Repository for customer accounts"""

    def __init__(self, db: Session):
        self.db = db

    def get_balance_due_date(self, account_id: str) -> Optional[date]:
        """
        Raises:
            MissingContext: Account is absent or the read failed
        """
        try:
            account = self.db.get(CustomerAccount, account_id)
        except SQLAlchemyError as e:
            raise MissingContext(f"Could not fetch account {account_id}") from e

        if account is None:
            raise MissingContext(f"Account {account_id} not found")
        return account.balance_due_date


class FailureRecorder:
    """Marks attempts failed and refreshes the account state that depends on them"""

    def __init__(self, db: Session):
        self.db = db

    def record_failure(self, attempt_id: str, code: int, ref_time: datetime) -> Tuple[PaymentAttempt, bool]:
        """
        Record a failed collection attempt.

        Actions:
        1. Set status FAILED with code and fail reason (skipped if already failed)
        2. Stamp last failed payment amount/time on the account
        3. Recompute the billing cycle's days_overdue against ref_time

        Returns:
            The attempt, and False when it was already failed. A repeated
            report keeps the first code and changes nothing.

        Raises:
            AttemptNotFound: Attempt does not exist
        """
        record = self.db.get(PaymentAttemptRecord, attempt_id)
        if record is None:
            raise AttemptNotFound(attempt_id)

        if record.status == AttemptStatus.FAILED.value:
            logging.warning(
                "Attempt already in FAILED status, skipping",
                extra={"attempt_id": attempt_id, "payment_code": record.code, "reported_code": code},
            )
            return to_domain(record), False

        record.status = AttemptStatus.FAILED.value
        record.code = code
        record.fail_reason = describe_failure(code)

        account = self.db.get(CustomerAccount, record.account_id)
        if account is not None:
            account.last_failed_payment_amount_cents = record.amount_cents
            account.last_failed_payment_at = ref_time

        if record.billing_cycle_id:
            cycle = self.db.get(BillingCycle, record.billing_cycle_id)
            if cycle is not None:
                cycle.days_overdue = compute_days_overdue(cycle.end_date, ref_time.date())
                logging.info(
                    "Updated billing cycle days_overdue",
                    extra={"attempt_id": attempt_id, "billing_cycle_id": cycle.id, "days_overdue": cycle.days_overdue},
                )

        self.db.flush()
        return to_domain(record), True
