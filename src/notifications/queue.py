"""
Email job queue
Emails are pushed onto a Redis list and sent by a worker one job at a time
"""

import json
import uuid
from datetime import datetime, timezone
from typing import Optional

import redis
import structlog
from pydantic import BaseModel, Field

from src.notifications.providers import SmtpEmailProvider

logger = structlog.get_logger()

EMAIL_QUEUE_KEY = "queue:email"


class EmailJob(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    to: str
    subject: str
    html: str
    queued_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class EmailQueue:
    def __init__(self, client: "redis.Redis", key: str = EMAIL_QUEUE_KEY):
        self.client = client
        self.key = key

    def enqueue(self, to_email: str, subject: str, body_html: str) -> bool:
        """Push a job; returns False if Redis rejected it"""
        job = EmailJob(to=to_email, subject=subject, html=body_html)
        try:
            self.client.rpush(self.key, job.model_dump_json())
            logger.info("Email job queued", job_id=job.id, to=to_email)
            return True
        except redis.RedisError as e:
            logger.error("Failed to queue email job", to=to_email, error=str(e))
            return False

    def size(self) -> int:
        return self.client.llen(self.key)

    def process_next(self, provider: SmtpEmailProvider, timeout: int = 5) -> Optional[bool]:
        """
        Pop one job and send it

        Returns:
            None when the queue stayed empty for `timeout` seconds,
            otherwise the send result
        """
        popped = self.client.blpop([self.key], timeout=timeout)
        if popped is None:
            return None

        _, payload = popped
        try:
            job = EmailJob(**json.loads(payload))
        except (ValueError, TypeError) as e:
            logger.error("Dropping malformed email job", error=str(e))
            return False

        sent = provider.send(job.to, job.subject, job.html)
        if sent:
            logger.info("Email job completed", job_id=job.id)
        else:
            logger.error("Email job failed", job_id=job.id, to=job.to)
        return sent


class QueuedEmailProvider:
    """Email provider that hands messages to the worker instead of sending inline"""

    def __init__(self, queue: EmailQueue):
        self.queue = queue

    def is_configured(self) -> bool:
        return True

    def send(self, to_email: str, subject: str, body_html: str) -> bool:
        return self.queue.enqueue(to_email, subject, body_html)
