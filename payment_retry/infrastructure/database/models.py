"""SQLAlchemy ORM models for payment attempts and their obligation context"""

import uuid
from sqlalchemy import Column, String, BigInteger, DateTime, Date, Integer, ForeignKey, Text, JSON
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


def _new_id() -> str:
    return str(uuid.uuid4())


class CustomerAccount(Base):
    """Customer account holding the balance-due date"""

    __tablename__ = "customer_account"

    id = Column(String(36), primary_key=True, default=_new_id)
    balance_due_date = Column(Date, nullable=True)
    last_failed_payment_amount_cents = Column(BigInteger, nullable=True)
    last_failed_payment_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    billing_cycles = relationship("BillingCycle", back_populates="account", cascade="all, delete-orphan")


class BillingCycle(Base):
    """Billing period whose unpaid amount is the obligation being collected"""

    __tablename__ = "billing_cycle"

    id = Column(String(36), primary_key=True, default=_new_id)
    account_id = Column(String(36), ForeignKey("customer_account.id", ondelete="CASCADE"), nullable=False, index=True)
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=False)
    days_overdue = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    account = relationship("CustomerAccount", back_populates="billing_cycles")


class PaymentAttemptRecord(Base):
    """One collection attempt; retries link back to their predecessor"""

    __tablename__ = "payment_attempt"

    id = Column(String(36), primary_key=True, default=_new_id)
    account_id = Column(String(36), ForeignKey("customer_account.id", ondelete="CASCADE"), nullable=False, index=True)
    billing_cycle_id = Column(String(36), ForeignKey("billing_cycle.id"), nullable=True, index=True)
    amount_cents = Column(BigInteger, nullable=False)
    status = Column(Text, nullable=False, default="scheduled")
    code = Column(Integer, nullable=True)
    track = Column(Text, nullable=True)
    date = Column(Date, nullable=False)
    fail_reason = Column(Text, nullable=True)
    memo = Column(Text, nullable=True)

    # Retry lineage: at most one successor per attempt
    retry_prev_attempt_id = Column(String(36), ForeignKey("payment_attempt.id"), nullable=True, unique=True)
    retry_sequence_nb = Column(Integer, nullable=False, default=0)
    retry_routing_ctx = Column(JSON, nullable=False, default=list)
    retry_annotation = Column(Text, nullable=True)
    retry_logic_version = Column(Integer, nullable=True)
    retry_trace_data = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())
