"""
Operator notification relay.

Crisis notices are handed to an outbound queue and delivered by a
background worker, so the router never waits on delivery. The relay
owns retry and backoff; delivery failures are logged and dropped.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Dict, Any

import httpx

from safety_triage.audit.events import EventType, TriggerSource
from safety_triage.config import NotificationConfig
from safety_triage.triage.models import RiskLevel
from safety_triage.utils.logging_config import setup_logging

logger = setup_logging("notification_relay")


@dataclass(frozen=True)
class CrisisNotice:
    """Metadata-only crisis alert. Carries no user content."""
    event_id: str
    event_type: EventType
    trigger_source: TriggerSource
    timestamp: datetime
    region_code: Optional[str] = None
    risk_level: RiskLevel = RiskLevel.EMERGENCY

    @property
    def title(self) -> str:
        if self.trigger_source == TriggerSource.MODERATION:
            return "Crisis Mode Activated via AI Moderation"
        return "Crisis Mode Activated"

    def to_payload(self) -> Dict[str, Any]:
        """Build the delivery payload."""
        if self.trigger_source == TriggerSource.MODERATION:
            summary = "A user's assistant message was flagged by the moderation gateway."
            trigger = "AI moderation (content flagged as high-risk)"
        else:
            summary = "A user has been routed to Crisis Mode via the triage flow."
            trigger = "Deterministic triage engine"

        content = "\n".join([
            summary,
            f"Trigger: {trigger}",
            f"Region: {self.region_code or 'Not provided'}",
            f"Risk Level: {self.risk_level.value}",
            f"Time (UTC): {self.timestamp.isoformat()}",
            "",
            "No personal health information or message content is included in this alert.",
        ])

        return {
            "title": self.title,
            "content": content,
            "event_id": self.event_id,
            "event_type": self.event_type.value,
            "region_code": self.region_code,
            "timestamp": self.timestamp.isoformat(),
        }


class LogChannel:
    """Delivers notices to the operational log only."""

    async def deliver(self, notice: CrisisNotice) -> None:
        logger.critical(
            f"CRISIS_NOTICE {notice.event_type.value} event={notice.event_id} "
            f"region={notice.region_code or '-'}"
        )

    async def close(self) -> None:
        return None


class WebhookChannel:
    """Delivers notices as JSON POSTs to an operator webhook."""

    def __init__(
        self,
        url: str,
        timeout: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.url = url
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def deliver(self, notice: CrisisNotice) -> None:
        response = await self._client.post(self.url, json=notice.to_payload())
        response.raise_for_status()

    async def close(self) -> None:
        await self._client.aclose()


class NotificationRelay:
    """
    Best-effort, non-blocking crisis notification relay.

    Example:
        relay = NotificationRelay()
        await relay.start()
        relay.submit(notice)   # returns immediately
        await relay.stop()
    """

    def __init__(
        self,
        channel=None,
        config: Optional[NotificationConfig] = None
    ):
        """
        Initialize the relay.

        Args:
            channel: Object with ``async deliver(notice)`` and ``async close()``;
                defaults to a webhook channel when a URL is configured,
                otherwise the log channel
            config: Relay configuration
        """
        self.config = config or NotificationConfig()

        if channel is None:
            if self.config.webhook_url:
                channel = WebhookChannel(self.config.webhook_url, timeout=self.config.timeout)
            else:
                channel = LogChannel()
        self.channel = channel

        self._queue: asyncio.Queue = asyncio.Queue(maxsize=self.config.queue_size)
        self._worker: Optional[asyncio.Task] = None
        self.delivered_count = 0
        self.failed_count = 0
        self.dropped_count = 0

        logger.info(
            f"NotificationRelay initialized (enabled={self.config.enabled}, "
            f"channel={type(self.channel).__name__})"
        )

    @property
    def enabled(self) -> bool:
        return self.config.enabled

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    async def start(self) -> None:
        """Start the delivery worker."""
        if self.running:
            return
        self._worker = asyncio.create_task(self._run())
        logger.info("NotificationRelay worker started")

    async def stop(self, drain_timeout: float = 5.0) -> None:
        """
        Stop the worker, giving queued notices a bounded chance to go out.

        Args:
            drain_timeout: Seconds to wait for the queue to empty
        """
        if self.running and not self._queue.empty():
            try:
                await asyncio.wait_for(self._queue.join(), timeout=drain_timeout)
            except asyncio.TimeoutError:
                logger.error(f"NotificationRelay stopped with {self.pending} notices undelivered")

        if self._worker is not None:
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
            self._worker = None

        await self.channel.close()
        logger.info("NotificationRelay worker stopped")

    def submit(self, notice: CrisisNotice) -> bool:
        """
        Enqueue a notice without waiting.

        Returns:
            bool: True if the notice was accepted for delivery
        """
        if not self.config.enabled:
            return False
        try:
            self._queue.put_nowait(notice)
        except asyncio.QueueFull:
            self.dropped_count += 1
            logger.error(f"Notification queue full; dropped notice for event {notice.event_id}")
            return False
        return True

    async def _run(self) -> None:
        """Worker loop."""
        while True:
            notice = await self._queue.get()
            try:
                await self._deliver_with_retry(notice)
            finally:
                self._queue.task_done()

    async def _deliver_with_retry(self, notice: CrisisNotice) -> bool:
        """Deliver one notice with linear backoff between attempts."""
        attempts = max(1, self.config.max_attempts)

        for attempt in range(attempts):
            try:
                await asyncio.wait_for(
                    self.channel.deliver(notice),
                    timeout=self.config.timeout
                )
                self.delivered_count += 1
                return True
            except asyncio.TimeoutError:
                logger.warning(f"Notice {notice.event_id} delivery timed out (attempt {attempt + 1})")
            except Exception as e:
                logger.warning(
                    f"Notice {notice.event_id} delivery failed: {type(e).__name__} (attempt {attempt + 1})"
                )

            if attempt < attempts - 1:
                await asyncio.sleep(self.config.backoff_seconds * (attempt + 1))

        self.failed_count += 1
        logger.error(f"Notice {notice.event_id} undeliverable after {attempts} attempts")
        return False
