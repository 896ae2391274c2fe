"""Fire-and-forget lifecycle notifications.

Delivery is best-effort: a notifier never raises into the pipeline and
nothing waits for an acknowledgment. Publishing is a coroutine so slow
channels never block the event loop.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

import requests

from leadscore.models import NotificationEvent

logger = logging.getLogger(__name__)

PIPELINE_STARTED = "pipeline_started"
PIPELINE_PROGRESS = "pipeline_progress"
PIPELINE_COMPLETED = "pipeline_completed"
PIPELINE_FAILED = "pipeline_failed"
LEAD_CREATED = "lead_created"
LEAD_SCORED = "lead_scored"
CAMPAIGN_SCORED = "campaign_scored"


class Notifier(ABC):
    @abstractmethod
    async def publish(self, event: NotificationEvent) -> None:
        ...

    async def notify(
        self,
        event_type: str,
        title: str,
        message: str,
        data: Optional[dict[str, Any]] = None,
    ) -> None:
        await self.publish(
            NotificationEvent(type=event_type, title=title, message=message, data=data or {})
        )


class LoggingNotifier(Notifier):
    """Writes events to the application log."""

    async def publish(self, event: NotificationEvent) -> None:
        level = logging.WARNING if event.type == PIPELINE_FAILED else logging.INFO
        logger.log(level, "[%s] %s: %s", event.type, event.title, event.message)


class WebhookNotifier(Notifier):
    """POSTs each event as JSON to a webhook URL.

    The blocking ``requests`` call runs in a worker thread.
    """

    def __init__(self, url: str, timeout_seconds: float = 5.0, session: Optional[requests.Session] = None):
        self.url = url
        self.timeout_seconds = timeout_seconds
        self.session = session or requests.Session()

    async def publish(self, event: NotificationEvent) -> None:
        try:
            resp = await asyncio.to_thread(
                self.session.post, self.url, json=event.to_dict(), timeout=self.timeout_seconds,
            )
        except requests.RequestException as e:
            logger.warning("Notification %s not delivered: %s", event.type, e)
            return
        if resp.status_code >= 400:
            logger.warning(
                "Notification %s rejected: %d %s",
                event.type, resp.status_code, resp.text[:200],
            )


class CompositeNotifier(Notifier):
    """Fans each event out to several notifiers; one failing does not stop the rest."""

    def __init__(self, notifiers: list[Notifier]):
        self.notifiers = notifiers

    async def publish(self, event: NotificationEvent) -> None:
        outcomes = await asyncio.gather(
            *(notifier.publish(event) for notifier in self.notifiers),
            return_exceptions=True,
        )
        for notifier, outcome in zip(self.notifiers, outcomes):
            if isinstance(outcome, Exception):
                logger.warning(
                    "%s failed to publish %s: %s", type(notifier).__name__, event.type, outcome,
                )
