"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class TimeBucket(str, Enum):
    """Age classification of an overdue obligation"""

    DAYS_0_30 = "0-30D"
    DAYS_31_60 = "31-60D"
    DAYS_61_180 = "61-180D"
    DAYS_181_PLUS = "181D+"


class RetryAction(str, Enum):
    INSTANT = "instant"
    SCHEDULED_FRIDAY = "scheduled_friday"
    SCHEDULED_FRIDAY_EOM = "scheduled_friday_eom"
    ALERT_AND_BACKOFF = "alert_and_backoff"
    BACKOFF = "backoff"
    NOT_POSSIBLE = "not_possible"


class PaymentDirective(str, Enum):
    """Payment-method instruction for the next attempt"""

    USE_CARD = "use_card"
    TRY_BANK_THEN_CARD = "try_bank_then_card"
    NO_CHANGE = "no_change"


class PaymentTrack(str, Enum):
    BANK_CARD = "BANK_CARD"
    ANY_CARD = "ANY_CARD"
    BANK_EFT = "BANK_EFT"


class AttemptStatus(str, Enum):
    SCHEDULED = "scheduled"
    PROCESSING = "processing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class ResolutionOutcome(str, Enum):
    SCHEDULED = "scheduled"
    BACKOFF = "backoff"
    ALERT_AND_BACKOFF = "alert_and_backoff"
    ALREADY_HANDLED = "already_handled"


@dataclass(frozen=True)
class RetryRule:
    """Base policy for a (failure code, time bucket) pair"""

    action: RetryAction
    directive: PaymentDirective


@dataclass(frozen=True)
class FailureContext:
    """Everything the decision engine needs about one failed attempt"""

    code: int
    days_overdue: int
    retry_count: int
    track: Optional[PaymentTrack]
    reference_time: datetime


@dataclass(frozen=True)
class Decision:
    """Resolved retry decision after overrides"""

    action: RetryAction
    directive: PaymentDirective
    bucket: TimeBucket
    reschedule_date: Optional[date] = None
    routing_exclusions: Tuple[str, ...] = ()


@dataclass
class PaymentAttempt:
    """One collection attempt against an obligation"""

    id: str
    account_id: str
    amount_cents: int
    status: AttemptStatus
    date: date
    billing_cycle_id: Optional[str] = None
    code: Optional[int] = None
    track: Optional[PaymentTrack] = None
    retry_sequence_nb: int = 0
    retry_prev_attempt_id: Optional[str] = None
    retry_routing_ctx: List[str] = field(default_factory=list)
    retry_annotation: Optional[str] = None
    retry_logic_version: Optional[int] = None
    retry_trace_data: Optional[Dict[str, Any]] = None
    memo: Optional[str] = None
    fail_reason: Optional[str] = None


@dataclass
class AttemptDraft:
    """Fields for a successor attempt before it is persisted"""

    account_id: str
    amount_cents: int
    date: date
    track: Optional[PaymentTrack]
    billing_cycle_id: Optional[str]
    retry_prev_attempt_id: str
    retry_sequence_nb: int
    retry_routing_ctx: List[str]
    retry_annotation: str
    retry_logic_version: int
    retry_trace_data: Dict[str, Any]
    memo: str
    status: AttemptStatus = AttemptStatus.SCHEDULED


@dataclass
class RetryAlert:
    """Notification payload for alert-and-backoff decisions"""

    attempt_id: str
    account_id: str
    code: int
    bucket: TimeBucket
    days_overdue: int
    retry_count: int


@dataclass
class RetryResolution:
    """Outcome of resolving one failed attempt"""

    outcome: ResolutionOutcome
    attempt: PaymentAttempt
    decision: Optional[Decision] = None
