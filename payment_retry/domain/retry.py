"""Retry decision engine - core business logic for failed collection attempts"""

from dataclasses import replace
from datetime import date
from typing import Dict, List, Optional
from payment_retry.domain.models import (
    AttemptDraft,
    Decision,
    FailureContext,
    PaymentAttempt,
    PaymentDirective,
    PaymentTrack,
    RetryAction,
)
from payment_retry.domain.buckets import classify
from payment_retry.domain.rules import lookup
from payment_retry.domain.overrides import OverridePolicy, apply_overrides
from payment_retry.utils.date_utils import earliest_of, end_of_month_friday, next_friday

SCHEDULED_ACTIONS = frozenset({RetryAction.SCHEDULED_FRIDAY, RetryAction.SCHEDULED_FRIDAY_EOM})
RESCHEDULING_ACTIONS = SCHEDULED_ACTIONS | {RetryAction.INSTANT}

RETRY_REASONS: Dict[RetryAction, str] = {
    RetryAction.INSTANT: "instant_retry",
    RetryAction.SCHEDULED_FRIDAY: "scheduled_friday_or_balance_due",
    RetryAction.SCHEDULED_FRIDAY_EOM: "scheduled_friday_eom_or_balance_due",
}

DIRECTIVE_TRACKS: Dict[PaymentDirective, PaymentTrack] = {
    PaymentDirective.USE_CARD: PaymentTrack.ANY_CARD,
    PaymentDirective.TRY_BANK_THEN_CARD: PaymentTrack.BANK_CARD,
}


def decide(context: FailureContext, policy: OverridePolicy) -> Decision:
    """
    Resolve the retry decision for a failure, without a concrete date.

    Steps: classify age into a bucket, look up the base rule, apply
    retry-count overrides.

    Raises:
        ValueError: If days_overdue is negative
        UnknownFailureCode: If the code is not in the rule table
    """
    bucket = classify(context.days_overdue)
    rule = lookup(context.code, bucket)
    base = Decision(action=rule.action, directive=rule.directive, bucket=bucket)
    return apply_overrides(base, context, policy)


def compute_reschedule_date(
    action: RetryAction,
    reference_date: date,
    balance_due_date: Optional[date] = None,
) -> date:
    """
    Concrete date for a rescheduling action.

    - instant: the reference date itself
    - scheduled_friday: next Friday or balance-due date, whichever is first
    - scheduled_friday_eom: last Friday of month or balance-due date, whichever is first
    """
    if action == RetryAction.INSTANT:
        return reference_date
    elif action == RetryAction.SCHEDULED_FRIDAY:
        return earliest_of(next_friday(reference_date), balance_due_date, reference_date)
    elif action == RetryAction.SCHEDULED_FRIDAY_EOM:
        return earliest_of(end_of_month_friday(reference_date), balance_due_date, reference_date)

    raise ValueError(f"Action {action.value} does not reschedule")


def merge_routing_context(existing: List[str], exclusions: tuple) -> List[str]:
    """Append exclusions to the predecessor's routing context, keeping order and dropping repeats"""
    merged = list(existing)
    for tag in exclusions:
        if tag not in merged:
            merged.append(tag)
    return merged


def build_successor_draft(
    predecessor: PaymentAttempt,
    decision: Decision,
    context: FailureContext,
    retry_logic_version: int,
) -> AttemptDraft:
    """
    Build the scheduled successor for a failed attempt.

    The decision must carry a reschedule date.
    """
    if decision.reschedule_date is None:
        raise ValueError("Decision has no reschedule date")

    sequence_nb = predecessor.retry_sequence_nb + 1
    track = DIRECTIVE_TRACKS.get(decision.directive, predecessor.track)

    return AttemptDraft(
        account_id=predecessor.account_id,
        amount_cents=predecessor.amount_cents,
        date=decision.reschedule_date,
        track=track,
        billing_cycle_id=predecessor.billing_cycle_id,
        retry_prev_attempt_id=predecessor.id,
        retry_sequence_nb=sequence_nb,
        retry_routing_ctx=merge_routing_context(predecessor.retry_routing_ctx, decision.routing_exclusions),
        retry_annotation=f"{decision.action.value} retry of attempt {predecessor.id}",
        retry_logic_version=retry_logic_version,
        retry_trace_data={
            "original_attempt_id": predecessor.id,
            "original_code": context.code,
            "retry_reason": RETRY_REASONS[decision.action],
            "retry_timestamp": context.reference_time.isoformat(),
            "scheduled_date": decision.reschedule_date.isoformat(),
            "time_bucket": decision.bucket.value,
            "days_overdue": context.days_overdue,
            "directive": decision.directive.value,
        },
        memo=f"Retry attempt #{sequence_nb} for original payment",
    )


def schedule(decision: Decision, reference_date: date, balance_due_date: Optional[date] = None) -> Decision:
    """Attach the concrete reschedule date to a rescheduling decision"""
    return replace(
        decision,
        reschedule_date=compute_reschedule_date(decision.action, reference_date, balance_due_date),
    )
