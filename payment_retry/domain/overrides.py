"""Retry-count overrides applied on top of the base rule table"""

from dataclasses import dataclass, replace
from typing import FrozenSet
from payment_retry.config import Settings
from payment_retry.domain.models import Decision, FailureContext, PaymentDirective, RetryAction, TimeBucket


@dataclass(frozen=True)
class OverridePolicy:
    """
    Thresholds and code lists for the retry-count overrides.

    - Processor exclusion: 31-60D, code in exclusion_codes, retries > exclusion_threshold
    - Forced backoff: 61-180D, code in backoff_codes, retries > backoff_threshold

    Code lists are closed on purpose; new fail codes do not inherit these
    overrides until added here.
    """

    exclusion_threshold: int = 8
    backoff_threshold: int = 12
    excluded_processor_tag: str = "exclude_stripe"
    exclusion_codes: FrozenSet[int] = frozenset({904, 441, 601, 701, 706})
    backoff_codes: FrozenSet[int] = frozenset({441, 701, 706})

    @classmethod
    def from_settings(cls, settings: Settings) -> "OverridePolicy":
        return cls(
            exclusion_threshold=settings.retry_exclusion_threshold,
            backoff_threshold=settings.retry_backoff_threshold,
            excluded_processor_tag=settings.excluded_processor_tag,
        )


def apply_overrides(base: Decision, context: FailureContext, policy: OverridePolicy) -> Decision:
    """
    Adjust the base decision for retry count.

    Both conditions are checked against the base decision. Forced backoff
    replaces the decision entirely, including any exclusions.
    """
    decision = base

    if (
        base.bucket == TimeBucket.DAYS_31_60
        and context.code in policy.exclusion_codes
        and context.retry_count > policy.exclusion_threshold
        and policy.excluded_processor_tag not in base.routing_exclusions
    ):
        decision = replace(
            decision,
            routing_exclusions=base.routing_exclusions + (policy.excluded_processor_tag,),
        )

    if (
        base.bucket == TimeBucket.DAYS_61_180
        and context.code in policy.backoff_codes
        and context.retry_count > policy.backoff_threshold
    ):
        decision = Decision(
            action=RetryAction.BACKOFF,
            directive=PaymentDirective.NO_CHANGE,
            bucket=base.bucket,
        )

    return decision
