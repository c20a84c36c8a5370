"""Dependency injection for FastAPI endpoints"""

from fastapi import BackgroundTasks, Depends, Request
from sqlalchemy.orm import Session
from payment_retry.config import settings
from payment_retry.domain.orchestrator import RetryOrchestrator
from payment_retry.domain.overrides import OverridePolicy
from payment_retry.infrastructure.clients.alerts import AlertClient, BackgroundAlertDispatcher
from payment_retry.infrastructure.database.session import get_db
from payment_retry.infrastructure.database.repositories import (
    AccountRepository,
    AttemptRepository,
    BillingCycleRepository,
)


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_alert_client() -> AlertClient:
    """Provide alert webhook client instance"""
    return AlertClient()


def get_override_policy() -> OverridePolicy:
    return OverridePolicy.from_settings(settings)


def get_orchestrator(
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    alert_client: AlertClient = Depends(get_alert_client),
    policy: OverridePolicy = Depends(get_override_policy),
) -> RetryOrchestrator:
    """Wire the retry orchestrator to the request's session and alert queue"""
    return RetryOrchestrator(
        attempts=AttemptRepository(db),
        billing_cycles=BillingCycleRepository(db),
        accounts=AccountRepository(db),
        alerts=BackgroundAlertDispatcher(background_tasks, alert_client),
        policy=policy,
        retry_logic_version=settings.retry_logic_version,
    )
