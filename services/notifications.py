"""
Fire-and-forget notification dispatch.

Account operations call :meth:`NotificationDispatcher.send`, which only puts
the request on a bounded in-process queue and returns immediately. A single
background worker drains the queue and talks to the EmailProvider. When the
queue is full the notification is dropped with a warning; the caller is never
blocked and never sees a delivery error.
"""

from __future__ import annotations

import asyncio
from contextlib import suppress
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from infrastructure.email.protocol import EmailProvider
from shared.logging import get_logger

log = get_logger(__name__)

DEFAULT_QUEUE_SIZE = 1000


class NotificationKind(str, Enum):
    VERIFY = "VERIFY"
    RESET = "RESET"
    WELCOME = "WELCOME"


@dataclass(frozen=True)
class Notification:
    kind: NotificationKind
    recipient: str
    template_data: Dict[str, Any] = field(default_factory=dict)


class NotificationDispatcher:
    def __init__(self, provider: EmailProvider, maxsize: int = DEFAULT_QUEUE_SIZE) -> None:
        self._provider = provider
        self._queue: asyncio.Queue[Notification] = asyncio.Queue(maxsize=maxsize)
        self._worker: Optional[asyncio.Task] = None

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    def send(
        self,
        kind: NotificationKind,
        recipient_email: str,
        template_data: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """Queue a notification. Returns False if it was dropped."""
        notification = Notification(kind, recipient_email, dict(template_data or {}))
        try:
            self._queue.put_nowait(notification)
        except asyncio.QueueFull:
            log.warning(
                "notification_dropped",
                reason="queue_full",
                kind=kind.value,
                recipient=recipient_email,
                queue_size=self._queue.maxsize,
            )
            return False
        return True

    def start(self) -> None:
        if self.running:
            return
        self._worker = asyncio.create_task(self._run(), name="notification-worker")
        log.info("notification_worker_started", queue_size=self._queue.maxsize)

    async def stop(self, timeout: float = 5.0) -> None:
        """Give queued notifications *timeout* seconds to go out, then stop."""
        if self._worker is None:
            return
        try:
            await asyncio.wait_for(self._queue.join(), timeout)
        except asyncio.TimeoutError:
            log.warning("notification_worker_stop_timeout", pending=self.pending)
        self._worker.cancel()
        with suppress(asyncio.CancelledError):
            await self._worker
        self._worker = None
        log.info("notification_worker_stopped")

    async def _run(self) -> None:
        while True:
            notification = await self._queue.get()
            try:
                await self.deliver(notification)
            finally:
                self._queue.task_done()

    async def deliver(self, notification: Notification) -> bool:
        """Hand one notification to the provider. Logs failures, never raises."""
        data = notification.template_data
        first_name = data.get("first_name")
        try:
            if notification.kind is NotificationKind.VERIFY:
                ok = await self._provider.send_verification_email(
                    notification.recipient, first_name, data["token"]
                )
            elif notification.kind is NotificationKind.RESET:
                ok = await self._provider.send_password_reset_email(
                    notification.recipient, first_name, data["token"]
                )
            else:
                ok = await self._provider.send_welcome_email(
                    notification.recipient, first_name
                )
        except Exception as e:
            log.error(
                "notification_delivery_error",
                kind=notification.kind.value,
                recipient=notification.recipient,
                error=str(e),
                error_type=type(e).__name__,
            )
            return False

        if not ok:
            log.warning(
                "notification_delivery_failed",
                kind=notification.kind.value,
                recipient=notification.recipient,
            )
        return ok
