"""Alert webhook client with exponential backoff retry logic"""

import asyncio
import logging
import httpx
from typing import Any, Dict
from fastapi import BackgroundTasks
from payment_retry.config import settings
from payment_retry.domain.models import RetryAlert
from payment_retry.domain.exceptions import AlertDeliveryError
from payment_retry.infrastructure.observability.metrics import alert_latency_histogram, alert_failure_counter


def alert_payload(alert: RetryAlert) -> Dict[str, Any]:
    return {
        "event": "PAYMENT_RETRY_BACKOFF_ALERT",
        "attempt_id": alert.attempt_id,
        "account_id": alert.account_id,
        "code": alert.code,
        "time_bucket": alert.bucket.value,
        "days_overdue": alert.days_overdue,
        "retry_count": alert.retry_count,
    }


class AlertClient:
    """Client for sending retry alerts to the notification webhook"""

    def __init__(self, webhook_url: str | None = None, transport: httpx.AsyncBaseTransport | None = None):
        self.webhook_url = webhook_url or settings.alert_webhook_url
        self.timeout = settings.http_timeout_seconds
        self.max_retries = settings.webhook_max_retries
        self.backoff_base = settings.webhook_backoff_base
        self.transport = transport

    async def send_alert(self, payload: Dict[str, Any]) -> None:
        """
        Post an alert with retry logic.

        Retry strategy:
        - Exponential backoff: base * 2^(attempt-1) seconds
        - Retries on HTTP errors and network failures

        Raises:
            AlertDeliveryError: After max_retries failed deliveries
        """
        attempt = 0
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            while True:
                try:
                    with alert_latency_histogram.time():
                        response = await client.post(self.webhook_url, json=payload)
                        response.raise_for_status()
                        return

                except (httpx.HTTPStatusError, httpx.RequestError) as e:
                    attempt += 1
                    alert_failure_counter.inc()

                    if attempt >= self.max_retries:
                        raise AlertDeliveryError(
                            f"Alert delivery failed after {attempt} attempts: {e}"
                        ) from e

                    backoff = self.backoff_base * (2 ** (attempt - 1))
                    await asyncio.sleep(backoff)


class BackgroundAlertDispatcher:
    """Alert sink that delivers after the response is sent"""

    def __init__(self, background_tasks: BackgroundTasks, client: AlertClient):
        self.background_tasks = background_tasks
        self.client = client

    def send_alert(self, alert: RetryAlert) -> None:
        self.background_tasks.add_task(self._deliver, alert_payload(alert))

    async def _deliver(self, payload: Dict[str, Any]) -> None:
        try:
            await self.client.send_alert(payload)
        except AlertDeliveryError as e:
            logging.error(f"Alert delivery error: {e}", extra={"attempt_id": payload["attempt_id"]})
