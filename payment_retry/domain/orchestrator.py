"""Retry orchestrator - turns a failed attempt into a scheduled successor or a terminal outcome"""

import logging
from datetime import datetime
from payment_retry.domain.models import (
    AttemptStatus,
    FailureContext,
    PaymentAttempt,
    ResolutionOutcome,
    RetryAction,
    RetryAlert,
    RetryResolution,
    TimeBucket,
)
from payment_retry.domain.ports import AccountReader, AlertSink, AttemptStore, BillingCycleReader
from payment_retry.domain.overrides import OverridePolicy
from payment_retry.domain.retry import SCHEDULED_ACTIONS, build_successor_draft, decide, schedule
from payment_retry.domain.exceptions import (
    MissingContext,
    PersistenceFailure,
    RetryNotPossible,
    SuccessorAlreadyExists,
)

logger = logging.getLogger(__name__)


class RetryOrchestrator:
    """Resolves what happens after a collection attempt fails"""

    def __init__(
        self,
        attempts: AttemptStore,
        billing_cycles: BillingCycleReader,
        accounts: AccountReader,
        alerts: AlertSink,
        policy: OverridePolicy | None = None,
        retry_logic_version: int = 1,
    ):
        self.attempts = attempts
        self.billing_cycles = billing_cycles
        self.accounts = accounts
        self.alerts = alerts
        self.policy = policy or OverridePolicy()
        self.retry_logic_version = retry_logic_version

    def resolve_retry(
        self,
        failed_attempt: PaymentAttempt,
        failure_code: int,
        reference_time: datetime,
        redelivered: bool = False,
    ) -> RetryResolution:
        """
        Decide and apply the retry for a failed attempt.

        Flow:
        1. Re-read the attempt; short-circuit if it was already handled
        2. Build the failure context from the billing cycle's days overdue
        3. Classify, look up the rule, apply overrides
        4. Backoff returns the original (alerting first if required);
           rescheduling actions persist exactly one successor

        The code stored on the attempt wins over failure_code. A redelivered
        failure was resolved when it was first recorded, so it is reported as
        already handled without deciding or alerting again.

        Raises:
            RetryNotPossible: Failure class may never be retried
            UnknownFailureCode: Code is not in the rule table
            MissingContext: Attempt, billing cycle or account could not be read
            PersistenceFailure: Successor could not be written
        """
        current = self.attempts.get_attempt(failed_attempt.id)
        if current is None:
            raise MissingContext(f"Payment attempt {failed_attempt.id} not found")

        if current.status != AttemptStatus.FAILED:
            logger.info(
                "Attempt no longer failed, skipping retry",
                extra={"attempt_id": current.id, "status": current.status.value},
            )
            return RetryResolution(outcome=ResolutionOutcome.ALREADY_HANDLED, attempt=current)

        successor = self.attempts.get_successor(current.id)
        if successor is not None:
            logger.info(
                "Retry already scheduled, skipping",
                extra={"attempt_id": current.id, "successor_id": successor.id},
            )
            return RetryResolution(outcome=ResolutionOutcome.ALREADY_HANDLED, attempt=successor)

        if redelivered:
            logger.info(
                "Failure redelivered, retry already resolved",
                extra={"attempt_id": current.id, "payment_code": current.code},
            )
            return RetryResolution(outcome=ResolutionOutcome.ALREADY_HANDLED, attempt=current)

        code = failure_code
        if current.code is not None:
            if current.code != failure_code:
                logger.warning(
                    "Reported code differs from recorded failure, using recorded code",
                    extra={"attempt_id": current.id, "payment_code": current.code, "reported_code": failure_code},
                )
            code = current.code

        if current.billing_cycle_id is None:
            raise MissingContext(f"Payment attempt {current.id} has no billing cycle")

        context = FailureContext(
            code=code,
            days_overdue=self.billing_cycles.get_days_overdue(current.billing_cycle_id),
            retry_count=current.retry_sequence_nb,
            track=current.track,
            reference_time=reference_time,
        )
        decision = decide(context, self.policy)
        log_extra = {
            "attempt_id": current.id,
            "payment_code": code,
            "days_overdue": context.days_overdue,
            "time_bucket": decision.bucket.value,
            "retry_count": context.retry_count,
        }

        if decision.action == RetryAction.NOT_POSSIBLE:
            logger.error("Retry not possible for this failure code", extra=log_extra)
            raise RetryNotPossible(code, decision.bucket.value)

        if decision.action == RetryAction.BACKOFF:
            logger.warning("Backoff retry - no action taken", extra=log_extra)
            return RetryResolution(outcome=ResolutionOutcome.BACKOFF, attempt=current, decision=decision)

        if decision.action == RetryAction.ALERT_AND_BACKOFF:
            logger.warning("Backoff retry with alert", extra=log_extra)
            self._dispatch_alert(current, context, decision.bucket)
            return RetryResolution(outcome=ResolutionOutcome.ALERT_AND_BACKOFF, attempt=current, decision=decision)

        balance_due_date = None
        if decision.action in SCHEDULED_ACTIONS:
            balance_due_date = self.accounts.get_balance_due_date(current.account_id)

        decision = schedule(decision, reference_time.date(), balance_due_date)
        draft = build_successor_draft(current, decision, context, self.retry_logic_version)

        try:
            successor = self.attempts.create_attempt(draft)
        except SuccessorAlreadyExists as e:
            successor = self.attempts.get_successor(current.id)
            if successor is None:
                raise PersistenceFailure(f"Retry attempt for {current.id} was rejected: {e}") from e
            logger.info(
                "Concurrent retry already scheduled",
                extra={"attempt_id": current.id, "successor_id": successor.id},
            )
            return RetryResolution(outcome=ResolutionOutcome.ALREADY_HANDLED, attempt=successor)

        logger.info(
            "Retry scheduled",
            extra={
                **log_extra,
                "successor_id": successor.id,
                "action": decision.action.value,
                "scheduled_date": decision.reschedule_date.isoformat(),
                "routing_ctx": successor.retry_routing_ctx,
            },
        )
        return RetryResolution(outcome=ResolutionOutcome.SCHEDULED, attempt=successor, decision=decision)

    def _dispatch_alert(self, attempt: PaymentAttempt, context: FailureContext, bucket: TimeBucket) -> None:
        """Send the alert; delivery problems never change the decision"""
        alert = RetryAlert(
            attempt_id=attempt.id,
            account_id=attempt.account_id,
            code=context.code,
            bucket=bucket,
            days_overdue=context.days_overdue,
            retry_count=context.retry_count,
        )
        try:
            self.alerts.send_alert(alert)
        except Exception as e:
            logger.error(f"Alert dispatch failed: {e}", extra={"attempt_id": attempt.id})
