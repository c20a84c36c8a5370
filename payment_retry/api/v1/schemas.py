"""Pydantic schemas for API request/response validation"""

from pydantic import BaseModel, Field
from datetime import date, datetime
from typing import Any, Dict, List, Optional


class FailureReport(BaseModel):
    """Request body for POST /v1/attempts/{attempt_id}/failure"""

    code: int = Field(..., description="Processor failure code")
    reference_time: Optional[datetime] = Field(None, description="Failure time; defaults to now (UTC)")


class AttemptSchema(BaseModel):
    """Payment attempt as stored"""

    id: str
    account_id: str
    billing_cycle_id: Optional[str] = None
    amount_cents: int
    status: str
    code: Optional[int] = None
    track: Optional[str] = None
    date: date
    fail_reason: Optional[str] = None
    memo: Optional[str] = None
    retry_sequence_nb: int
    retry_prev_attempt_id: Optional[str] = None
    retry_routing_ctx: List[str] = []
    retry_annotation: Optional[str] = None
    retry_logic_version: Optional[int] = None
    retry_trace_data: Optional[Dict[str, Any]] = None


class RetryResolutionResponse(BaseModel):
    """Response for POST /v1/attempts/{attempt_id}/failure"""

    attempt_id: str
    outcome: str
    action: Optional[str] = None
    time_bucket: Optional[str] = None
    directive: Optional[str] = None
    routing_exclusions: List[str] = []
    successor: Optional[AttemptSchema] = None


class LineageResponse(BaseModel):
    """Response for GET /v1/attempts/{attempt_id}/lineage"""

    attempt_id: str
    attempts: List[AttemptSchema]
