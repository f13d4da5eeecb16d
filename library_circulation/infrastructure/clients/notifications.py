"""Notification delivery: emitter boundary and webhook client with exponential backoff"""

import asyncio
import logging
import httpx
from fastapi import BackgroundTasks
from typing import Optional
from library_circulation.config import settings
from library_circulation.domain.models import NotificationEvent
from library_circulation.infrastructure.observability.metrics import (
    notification_latency_histogram,
    notification_failure_counter,
)

logger = logging.getLogger(__name__)


class NotificationEmitter:
    """Receives notification events from the lifecycle services"""

    def emit(self, event: NotificationEvent) -> None:
        raise NotImplementedError


class LoggingNotificationEmitter(NotificationEmitter):
    """Emitter that only records events in the log"""

    def emit(self, event: NotificationEvent) -> None:
        logger.info(
            "Notification emitted",
            extra={
                "notification_type": event.type.value,
                "user_id": event.user_id,
                "audience": event.audience,
                "related_model": event.related_model,
                "related_id": event.related_id,
            },
        )


class NotificationClient:
    """Client for posting notification events to the notification service"""

    def __init__(
        self,
        webhook_url: str | None = None,
        timeout: float | None = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.webhook_url = webhook_url or settings.notification_webhook_url
        self.timeout = timeout or settings.http_timeout_seconds
        self.max_retries = settings.webhook_max_retries
        self.backoff_base = settings.webhook_backoff_base
        self.transport = transport

    async def send_event(self, event: NotificationEvent) -> bool:
        """
        Deliver one notification event with retry logic.

        Retry strategy:
        - Exponential backoff: 1s, 2s, 4s, 8s (base * 2^attempt)
        - Retries on 5xx errors and network failures
        - Final failure is logged and counted, never raised

        Returns:
            True when the service accepted the event
        """
        attempt = 0
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            while attempt < self.max_retries:
                try:
                    with notification_latency_histogram.time():
                        response = await client.post(self.webhook_url, json=event.to_payload())
                        response.raise_for_status()
                        return True

                except (httpx.HTTPStatusError, httpx.RequestError) as e:
                    attempt += 1
                    notification_failure_counter.inc()

                    if attempt >= self.max_retries:
                        logger.error(
                            f"Notification delivery failed after {attempt} attempts: {e}",
                            extra={"related_id": event.related_id, "notification_type": event.type.value},
                        )
                        return False

                    backoff = self.backoff_base * (2 ** (attempt - 1))
                    await asyncio.sleep(backoff)
        return False


class BackgroundNotificationEmitter(NotificationEmitter):
    """Schedules delivery after the HTTP response has been sent"""

    def __init__(self, background_tasks: BackgroundTasks, client: NotificationClient):
        self.background_tasks = background_tasks
        self.client = client

    def emit(self, event: NotificationEvent) -> None:
        self.background_tasks.add_task(self.client.send_event, event)
