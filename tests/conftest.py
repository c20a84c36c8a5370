"""Pytest fixtures for testing"""

import pytest
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, Generator, List
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker, Session
from payment_retry.api.main import create_app
from payment_retry.api.dependencies import get_alert_client
from payment_retry.infrastructure.database.models import Base, BillingCycle, CustomerAccount, PaymentAttemptRecord
from payment_retry.infrastructure.database.session import build_engine, get_db


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = build_engine(TEST_DATABASE_URL)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Wednesday
REFERENCE_TIME = datetime(2024, 3, 13, 10, 30, tzinfo=timezone.utc)


class FakeAlertClient:
    """Records alert payloads instead of posting them"""

    def __init__(self):
        self.sent: List[Dict[str, Any]] = []

    async def send_alert(self, payload: Dict[str, Any]) -> None:
        self.sent.append(payload)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def reference_time() -> datetime:
    return REFERENCE_TIME


@pytest.fixture
def alert_client() -> FakeAlertClient:
    return FakeAlertClient()


@pytest.fixture
def client(db: Session, alert_client: FakeAlertClient) -> TestClient:
    """Create FastAPI test client with test database and recorded alerts"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_alert_client] = lambda: alert_client
    return TestClient(app)


@pytest.fixture
def seed_attempt(db: Session) -> Callable[..., PaymentAttemptRecord]:
    """
    Factory creating an account, billing cycle and scheduled attempt.

    days_overdue is expressed through the cycle end date relative to
    REFERENCE_TIME, the same way failure recording computes it.
    """

    def _seed(
        days_overdue: int = 10,
        retry_sequence_nb: int = 0,
        balance_due_date: date | None = None,
        amount_cents: int = 2500,
        routing_ctx: List[str] | None = None,
    ) -> PaymentAttemptRecord:
        account = CustomerAccount(balance_due_date=balance_due_date)
        db.add(account)
        db.flush()

        cycle = BillingCycle(
            account_id=account.id,
            end_date=date.fromordinal(REFERENCE_TIME.date().toordinal() - days_overdue),
        )
        db.add(cycle)
        db.flush()

        attempt = PaymentAttemptRecord(
            account_id=account.id,
            billing_cycle_id=cycle.id,
            amount_cents=amount_cents,
            status="scheduled",
            track="BANK_CARD",
            date=REFERENCE_TIME.date(),
            retry_sequence_nb=retry_sequence_nb,
            retry_routing_ctx=routing_ctx or [],
        )
        db.add(attempt)
        db.commit()
        return attempt

    return _seed
