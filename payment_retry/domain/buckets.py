"""Time bucket classification by days overdue"""

from payment_retry.domain.models import TimeBucket


def classify(days_overdue: int) -> TimeBucket:
    """
    Map days overdue to a retry time bucket.

    Upper bounds are inclusive: 30 -> 0-30D, 60 -> 31-60D, 180 -> 61-180D.

    Raises:
        ValueError: If days_overdue is negative
    """
    if days_overdue < 0:
        raise ValueError(f"days_overdue must be non-negative, got {days_overdue}")

    if days_overdue <= 30:
        return TimeBucket.DAYS_0_30
    elif days_overdue <= 60:
        return TimeBucket.DAYS_31_60
    elif days_overdue <= 180:
        return TimeBucket.DAYS_61_180
    else:
        return TimeBucket.DAYS_181_PLUS
