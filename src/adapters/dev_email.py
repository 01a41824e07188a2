"""
Dev Email Adapter.

Logs emails instead of sending them. Used for local development and
testing when no email provider is configured.

Key behaviors:
- Logs email details
- Returns SKIPPED status (not SENT)
- Stores emails in memory for test assertions
- Can be told to fail for chosen recipients
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import uuid4

from src.core.ports.email import EmailResult, EmailStatus

logger = logging.getLogger(__name__)


@dataclass
class SentEmail:
    """Record of a logged email for test assertions."""

    id: str
    recipient: str
    subject: str
    body_html: str
    body_text: str
    sender: str | None
    logged_at: datetime


@dataclass
class DevEmailAdapter:
    """
    Dev email adapter that logs instead of sending.

    Implements EmailPort.
    """

    sender: str | None = None

    # In-memory storage for test assertions
    sent_emails: list[SentEmail] = field(default_factory=list)

    # False drops sent emails after logging them (long-running dev servers)
    keep_sent: bool = True

    # Recipients for which send_email reports a failure
    failing_recipients: set[str] = field(default_factory=set)

    # Configuration
    log_level: int = logging.INFO
    log_body: bool = True  # Whether to log body content
    body_preview_length: int = 100  # Max chars of body to log

    def send_email(
        self,
        recipient: str,
        subject: str,
        body_html: str,
        body_text: str | None = None,
    ) -> EmailResult:
        """
        Log an email instead of sending.

        Args:
            recipient: Email address of recipient
            subject: Email subject line
            body_html: HTML body content
            body_text: Plain text body (optional)

        Returns:
            EmailResult with SKIPPED status, or FAILED for a failing recipient
        """
        message_id = f"dev-{uuid4().hex[:12]}"

        if recipient in self.failing_recipients:
            logger.warning("EMAIL (dev): simulated failure for %s", recipient)
            return EmailResult.failed(recipient, "Dev mode - simulated failure")

        sent_email = SentEmail(
            id=message_id,
            recipient=recipient,
            subject=subject,
            body_html=body_html,
            body_text=body_text or "",
            sender=self.sender,
            logged_at=datetime.now(UTC),
        )
        if self.keep_sent:
            self.sent_emails.append(sent_email)

        self._log_email(
            recipient=recipient,
            subject=subject,
            body_html=body_html,
            message_id=message_id,
        )

        return EmailResult(
            status=EmailStatus.SKIPPED,
            message_id=message_id,
            recipient=recipient,
            error="Dev mode - email logged, not sent",
        )

    def _log_email(
        self,
        recipient: str,
        subject: str,
        body_html: str,
        message_id: str,
    ) -> None:
        parts = [
            f"EMAIL (dev): To={recipient}",
            f"Subject={subject}",
        ]

        if self.sender:
            parts.append(f"From={self.sender}")

        if self.log_body and body_html:
            preview = body_html[: self.body_preview_length]
            if len(body_html) > self.body_preview_length:
                preview += "..."
            parts.append(f"Body={preview}")

        parts.append(f"MessageID={message_id}")

        logger.log(self.log_level, ", ".join(parts))

    # --- Test Helper Methods ---

    def get_last_email(self) -> SentEmail | None:
        """Get the most recently logged email."""
        return self.sent_emails[-1] if self.sent_emails else None

    def get_emails_to(self, recipient: str) -> list[SentEmail]:
        """Get all emails logged to a specific recipient."""
        return [e for e in self.sent_emails if e.recipient == recipient]

    def clear(self) -> None:
        """Clear all stored emails (for test isolation)."""
        self.sent_emails.clear()

    def close(self) -> None:
        """Release stored emails on shutdown."""
        self.clear()

    @property
    def email_count(self) -> int:
        """Get the number of logged emails."""
        return len(self.sent_emails)
