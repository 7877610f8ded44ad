from __future__ import annotations

import asyncio
import logging
from functools import partial
from typing import Optional, Protocol

from cloudpulse.schemas.common import Outcome

logger = logging.getLogger(__name__)

# SNS rejects subjects longer than 100 characters.
SNS_SUBJECT_MAX = 100


class NotificationChannel(Protocol):
    """Publish-capable transport (SNS topic, chat webhook, ...)."""

    async def publish(self, subject: str, message: str, severity: str) -> None: ...


class SnsChannel:
    """Publishes notifications to an AWS SNS topic with a `severity` message attribute."""

    def __init__(self, topic_arn: str, region: str = "us-east-1", client=None):
        self.topic_arn = topic_arn
        self.region = region
        self._client = client

    def _get_client(self):
        """Lazy-init boto3 SNS client (call from executor)."""
        if self._client is None:
            import boto3

            self._client = boto3.client("sns", region_name=self.region)
        return self._client

    async def _run_sync(self, func, *args, **kwargs):
        """Run a synchronous boto3 call in a thread executor."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, partial(func, *args, **kwargs))

    async def publish(self, subject: str, message: str, severity: str) -> None:
        client = await self._run_sync(self._get_client)
        await self._run_sync(
            client.publish,
            TopicArn=self.topic_arn,
            Subject=subject[:SNS_SUBJECT_MAX],
            Message=message,
            MessageAttributes={"severity": {"DataType": "String", "StringValue": severity}},
        )


class Notifier:
    """Best-effort delivery of critical notifications; never raises."""

    def __init__(self, channel: Optional[NotificationChannel] = None):
        self.channel = channel

    @property
    def configured(self) -> bool:
        return self.channel is not None

    # PUBLIC_INTERFACE
    async def notify(self, subject: str, message: str, severity: str) -> Outcome[bool]:
        """Publish a notification; returns Outcome(False, error) when skipped or failed."""
        if self.channel is None:
            logger.warning("Notification channel not configured, skipping notification subject=%s", subject)
            return Outcome.soft_error(False, "notification channel not configured")

        try:
            await self.channel.publish(subject, message, severity)
        except Exception as exc:
            logger.exception("Failed to send notification subject=%s", subject)
            return Outcome.soft_error(False, str(exc))

        logger.info("Notification sent subject=%s severity=%s", subject, severity)
        return Outcome.success(True)
