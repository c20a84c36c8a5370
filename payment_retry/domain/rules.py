"""
Retry rule table - (failure code, time bucket) -> base retry policy.

The table is plain data. Each row lists the codes it covers and one rule per
bucket, in bucket order. Amending a fail-code policy means editing a row.
"""

from typing import Dict, FrozenSet, Tuple
from payment_retry.domain.models import PaymentDirective, RetryAction, RetryRule, TimeBucket
from payment_retry.domain.exceptions import UnknownFailureCode

BUCKET_ORDER = (
    TimeBucket.DAYS_0_30,
    TimeBucket.DAYS_31_60,
    TimeBucket.DAYS_61_180,
    TimeBucket.DAYS_181_PLUS,
)

INSTANT_CARD = RetryRule(RetryAction.INSTANT, PaymentDirective.USE_CARD)
FRIDAY_BANK_CARD = RetryRule(RetryAction.SCHEDULED_FRIDAY, PaymentDirective.TRY_BANK_THEN_CARD)
FRIDAY_EOM_BANK_CARD = RetryRule(RetryAction.SCHEDULED_FRIDAY_EOM, PaymentDirective.TRY_BANK_THEN_CARD)
ALERT_AND_BACKOFF = RetryRule(RetryAction.ALERT_AND_BACKOFF, PaymentDirective.NO_CHANGE)
BACKOFF = RetryRule(RetryAction.BACKOFF, PaymentDirective.NO_CHANGE)
NOT_POSSIBLE = RetryRule(RetryAction.NOT_POSSIBLE, PaymentDirective.NO_CHANGE)

#                codes                                             0-30D                 31-60D                61-180D               181D+
_RULE_ROWS: Tuple[Tuple[FrozenSet[int], Tuple[RetryRule, ...]], ...] = (
    (frozenset({904}),                                            (INSTANT_CARD,         INSTANT_CARD,         INSTANT_CARD,         BACKOFF)),
    (frozenset({903, 440}),                                       (ALERT_AND_BACKOFF,    ALERT_AND_BACKOFF,    BACKOFF,              BACKOFF)),
    (frozenset({441, 701, 706}),                                  (FRIDAY_BANK_CARD,     FRIDAY_BANK_CARD,     FRIDAY_EOM_BANK_CARD, BACKOFF)),
    (frozenset({601}),                                            (FRIDAY_EOM_BANK_CARD, FRIDAY_EOM_BANK_CARD, BACKOFF,              BACKOFF)),
    (frozenset({603, 604, 605, 606, 607, 777}),                   (ALERT_AND_BACKOFF,    ALERT_AND_BACKOFF,    BACKOFF,              BACKOFF)),
    # EFT failures: never retried
    (frozenset({442, 443, 444, 445, 613, 615, 616, 640, 710}),    (NOT_POSSIBLE,         NOT_POSSIBLE,         NOT_POSSIBLE,         NOT_POSSIBLE)),
)


def _build_table() -> Dict[Tuple[int, TimeBucket], RetryRule]:
    """Expand rule rows into a (code, bucket) mapping, rejecting gaps and overlaps"""
    table: Dict[Tuple[int, TimeBucket], RetryRule] = {}
    for codes, rules in _RULE_ROWS:
        if len(rules) != len(BUCKET_ORDER):
            raise ValueError(f"Rule row for {sorted(codes)} must define {len(BUCKET_ORDER)} buckets")
        for code in codes:
            for bucket, rule in zip(BUCKET_ORDER, rules):
                if (code, bucket) in table:
                    raise ValueError(f"Duplicate retry rule for code {code} in bucket {bucket.value}")
                table[(code, bucket)] = rule
    return table


RETRY_RULES = _build_table()
KNOWN_CODES: FrozenSet[int] = frozenset(code for code, _ in RETRY_RULES)


def lookup(code: int, bucket: TimeBucket) -> RetryRule:
    """
    Base retry rule for a failure code in a time bucket.

    Raises:
        UnknownFailureCode: If the code has no row in the table
    """
    try:
        return RETRY_RULES[(code, bucket)]
    except KeyError:
        raise UnknownFailureCode(code) from None
