"""
Newsletter component ports.

Protocol interfaces for the transactional store and email transport
used by the newsletter component.
"""

from __future__ import annotations

from typing import Any, Protocol
from uuid import UUID

from src.components.newsletter.models import (
    ConfirmationToken,
    Subscriber,
    SubscriberStatus,
)
from src.core.ports.email import EmailResult


class SubscriberRepoPort(Protocol):
    """
    Subscriber repository interface.

    Invariants:
    - status is never written back to pending_confirmation
    """

    def add(self, subscriber: Subscriber) -> Subscriber:
        """Insert a new subscriber row."""
        ...

    def get_by_id(self, subscriber_id: UUID) -> Subscriber | None:
        """Get subscriber by ID."""
        ...

    def mark_confirmed(self, subscriber_id: UUID) -> None:
        """Set status to confirmed (idempotent)."""
        ...

    def list_by_status(self, status: SubscriberStatus) -> list[Subscriber]:
        """List all subscribers with the given status."""
        ...


class ConfirmationTokenRepoPort(Protocol):
    """
    Confirmation token repository interface.

    Tokens are insert-only.
    """

    def add(self, token: ConfirmationToken) -> ConfirmationToken:
        """Insert a new token row."""
        ...

    def get(self, token: str) -> ConfirmationToken | None:
        """Look up a token by exact string match."""
        ...


class NewsletterUnitOfWorkPort(Protocol):
    """
    Unit of Work over the subscription store.

    Usage:
        with uow_factory() as uow:
            uow.subscribers.add(subscriber)
            uow.tokens.add(token)
            uow.commit()

    Leaving the block without commit() rolls the transaction back.
    """

    subscribers: SubscriberRepoPort
    tokens: ConfirmationTokenRepoPort

    def __enter__(self) -> NewsletterUnitOfWorkPort:
        ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        ...

    def commit(self) -> None:
        ...

    def rollback(self) -> None:
        ...


class UnitOfWorkFactory(Protocol):
    """Callable producing a fresh unit of work per operation."""

    def __call__(self) -> NewsletterUnitOfWorkPort:
        ...


class NewsletterEmailSenderPort(Protocol):
    """
    Email sender interface for newsletter operations.

    Implementations return a failed EmailResult instead of raising.
    """

    def send_email(
        self,
        recipient: str,
        subject: str,
        body_html: str,
        body_text: str | None = None,
    ) -> EmailResult:
        ...
