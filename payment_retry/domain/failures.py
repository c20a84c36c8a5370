"""Failure bookkeeping helpers: fail reasons and obligation age"""

from datetime import date
from payment_retry.domain.rules import NOT_POSSIBLE, RETRY_RULES, BUCKET_ORDER

FAIL_REASONS = {
    601: "Soft block by issuer",
    903: "Internal system failure",
    904: "External system failure",
}


def describe_failure(code: int) -> str:
    """Human-readable fail reason stored on the failed attempt"""
    if code in FAIL_REASONS:
        return FAIL_REASONS[code]
    if RETRY_RULES.get((code, BUCKET_ORDER[0])) == NOT_POSSIBLE:
        return f"EFT failure {code}, retry not possible"
    return f"Payment failed with code {code}"


def compute_days_overdue(cycle_end_date: date, ref_date: date) -> int:
    """Whole days between the billing cycle end and ref_date, floored at zero"""
    return max(0, (ref_date - cycle_end_date).days)
