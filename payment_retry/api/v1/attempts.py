"""Payment attempt endpoints - failure reporting and retry lineage"""

import time
import logging
from datetime import datetime, timezone
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from payment_retry.api.v1.schemas import AttemptSchema, FailureReport, LineageResponse, RetryResolutionResponse
from payment_retry.api.dependencies import get_orchestrator, get_request_id
from payment_retry.infrastructure.database.session import get_db
from payment_retry.infrastructure.database.repositories import AttemptRepository, FailureRecorder
from payment_retry.domain.models import PaymentAttempt
from payment_retry.domain.orchestrator import RetryOrchestrator
from payment_retry.domain.exceptions import (
    AttemptNotFound,
    MissingContext,
    PersistenceFailure,
    RetryNotPossible,
    UnknownFailureCode,
)
from payment_retry.infrastructure.observability.metrics import record_not_possible, record_retry_decision
from payment_retry.infrastructure.observability.logging import log_retry_resolution

router = APIRouter()


def to_schema(attempt: PaymentAttempt) -> AttemptSchema:
    return AttemptSchema(
        id=attempt.id,
        account_id=attempt.account_id,
        billing_cycle_id=attempt.billing_cycle_id,
        amount_cents=attempt.amount_cents,
        status=attempt.status.value,
        code=attempt.code,
        track=attempt.track.value if attempt.track else None,
        date=attempt.date,
        fail_reason=attempt.fail_reason,
        memo=attempt.memo,
        retry_sequence_nb=attempt.retry_sequence_nb,
        retry_prev_attempt_id=attempt.retry_prev_attempt_id,
        retry_routing_ctx=attempt.retry_routing_ctx,
        retry_annotation=attempt.retry_annotation,
        retry_logic_version=attempt.retry_logic_version,
        retry_trace_data=attempt.retry_trace_data,
    )


@router.post("/attempts/{attempt_id}/failure", response_model=RetryResolutionResponse)
def report_failure(
    attempt_id: str,
    report: FailureReport,
    request: Request,
    db: Session = Depends(get_db),
    orchestrator: RetryOrchestrator = Depends(get_orchestrator),
):
    """
    Record a failed collection attempt and resolve its retry.

    Flow:
    1. Mark the attempt failed and refresh account / billing cycle state
    2. Resolve the retry decision (may schedule a successor attempt)
    3. Commit both in one transaction
    """
    start_time = time.time()
    request_id = get_request_id(request)
    reference_time = report.reference_time or datetime.now(timezone.utc)

    try:
        failed, recorded = FailureRecorder(db).record_failure(attempt_id, report.code, reference_time)
        resolution = orchestrator.resolve_retry(failed, report.code, reference_time, redelivered=not recorded)
        try:
            db.commit()
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"Failed to commit failure of attempt {attempt_id}: {e}") from e

    except AttemptNotFound as e:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(e))

    except RetryNotPossible as e:
        # The failure itself stands; only the retry is refused
        db.commit()
        record_not_possible(e.code)
        logging.warning(f"Retry not possible: {e}", extra={"request_id": request_id, "attempt_id": attempt_id})
        raise HTTPException(status_code=409, detail=str(e))

    except UnknownFailureCode as e:
        db.rollback()
        logging.error(f"Unknown failure code: {e}", extra={"request_id": request_id, "attempt_id": attempt_id})
        raise HTTPException(status_code=422, detail=str(e))

    except (MissingContext, PersistenceFailure) as e:
        db.rollback()
        logging.error(f"Retry resolution unavailable: {e}", extra={"request_id": request_id, "attempt_id": attempt_id})
        raise HTTPException(status_code=503, detail="Retry resolution temporarily unavailable")

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id, "attempt_id": attempt_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    decision = resolution.decision
    if decision is not None:
        record_retry_decision(decision)

    successor = resolution.attempt if resolution.attempt.id != attempt_id else None
    duration_ms = (time.time() - start_time) * 1000
    log_retry_resolution(
        request_id,
        attempt_id,
        report.code,
        resolution.outcome.value,
        successor.id if successor else None,
        duration_ms,
    )

    return RetryResolutionResponse(
        attempt_id=attempt_id,
        outcome=resolution.outcome.value,
        action=decision.action.value if decision else None,
        time_bucket=decision.bucket.value if decision else None,
        directive=decision.directive.value if decision else None,
        routing_exclusions=list(decision.routing_exclusions) if decision else [],
        successor=to_schema(successor) if successor else None,
    )


@router.get("/attempts/{attempt_id}", response_model=AttemptSchema)
def get_attempt(attempt_id: str, db: Session = Depends(get_db)):
    """Retrieve a single payment attempt"""
    attempt = AttemptRepository(db).get_attempt(attempt_id)
    if attempt is None:
        raise HTTPException(status_code=404, detail="Attempt not found")
    return to_schema(attempt)


@router.get("/attempts/{attempt_id}/lineage", response_model=LineageResponse)
def get_lineage(attempt_id: str, db: Session = Depends(get_db)):
    """
    Retrieve the retry chain ending at this attempt.

    Returns:
        Attempts from the original payment to this one, oldest first
    """
    chain = AttemptRepository(db).get_lineage(attempt_id)
    if not chain:
        raise HTTPException(status_code=404, detail="Attempt not found")
    return LineageResponse(attempt_id=attempt_id, attempts=[to_schema(a) for a in chain])
