"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from pythonjsonlogger import jsonlogger
from payment_retry.config import settings


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_retry_resolution(
    request_id: str,
    attempt_id: str,
    code: int,
    outcome: str,
    successor_id: Optional[str],
    duration_ms: float,
) -> None:
    """Log structured retry outcome for analysis"""
    logging.info(
        "Retry resolution completed",
        extra={
            "request_id": request_id,
            "attempt_id": attempt_id,
            "payment_code": code,
            "step": "retry_resolved",
            "retry_outcome": outcome,
            "successor_id": successor_id,
            "duration_ms": duration_ms,
        },
    )
