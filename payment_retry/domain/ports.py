"""Collaborator interfaces the retry orchestrator depends on"""

from datetime import date
from typing import Optional, Protocol
from payment_retry.domain.models import AttemptDraft, PaymentAttempt, RetryAlert


class AttemptStore(Protocol):
    def get_attempt(self, attempt_id: str) -> Optional[PaymentAttempt]: ...

    def get_successor(self, attempt_id: str) -> Optional[PaymentAttempt]: ...

    def create_attempt(self, draft: AttemptDraft) -> PaymentAttempt:
        """Raises SuccessorAlreadyExists if the predecessor already has a successor"""
        ...


class BillingCycleReader(Protocol):
    def get_days_overdue(self, billing_cycle_id: str) -> int: ...


class AccountReader(Protocol):
    def get_balance_due_date(self, account_id: str) -> Optional[date]: ...


class AlertSink(Protocol):
    def send_alert(self, alert: RetryAlert) -> None: ...
