"""
Newsletter component models.

Data models for the double opt-in subscription lifecycle and newsletter
fan-out.

State machine: Subscriber pending_confirmation → confirmed (one-way)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from uuid import UUID

# --- State Machine ---


class SubscriberStatus(Enum):
    """
    Subscriber status.

    State transitions:
    - pending_confirmation → confirmed (via confirmation link)

    Confirming an already confirmed subscriber is a no-op.
    """

    PENDING_CONFIRMATION = "pending_confirmation"  # Awaiting email confirmation
    CONFIRMED = "confirmed"  # Eligible for newsletter issues


VALID_TRANSITIONS: dict[SubscriberStatus, set[SubscriberStatus]] = {
    SubscriberStatus.PENDING_CONFIRMATION: {SubscriberStatus.CONFIRMED},
    SubscriberStatus.CONFIRMED: set(),  # Terminal state
}


def can_transition(from_status: SubscriberStatus, to_status: SubscriberStatus) -> bool:
    """Check if state transition is valid."""
    return to_status in VALID_TRANSITIONS.get(from_status, set())


# --- Validated Values ---


@dataclass(frozen=True)
class SubscriberName:
    """A display name that passed validation."""

    value: str

    @classmethod
    def parse(cls, raw: str) -> SubscriberName:
        """Validate ``raw`` or raise InvalidInputError."""
        from src.components.newsletter.component import validate_name

        result = validate_name(raw)
        if result.name is None:
            raise InvalidInputError("name", result.errors[0].message)
        return result.name

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class SubscriberEmail:
    """An email address that passed validation, kept as submitted."""

    value: str

    @classmethod
    def parse(cls, raw: str) -> SubscriberEmail:
        """Validate ``raw`` or raise InvalidInputError."""
        from src.components.newsletter.component import validate_email

        result = validate_email(raw)
        if result.email is None:
            raise InvalidInputError("email", result.errors[0].message)
        return result.email

    def __str__(self) -> str:
        return self.value


# --- Entities ---


@dataclass
class Subscriber:
    """Subscriber entity."""

    id: UUID
    email: str
    name: str
    status: SubscriberStatus = SubscriberStatus.PENDING_CONFIRMATION
    subscribed_at: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass(frozen=True)
class ConfirmationToken:
    """
    Single-use confirmation token.

    The token string is the lookup key; the subscriber id never
    appears in the confirmation link.
    """

    token: str
    subscriber_id: UUID


@dataclass(frozen=True)
class NewsletterIssue:
    """A newsletter issue to fan out. Never persisted."""

    title: str
    html_body: str
    text_body: str


# --- Input Models ---


@dataclass(frozen=True)
class RegisterInput:
    """Raw subscription form."""

    name: str
    email: str


@dataclass(frozen=True)
class ConfirmInput:
    """Input for confirming a subscription."""

    token: str


@dataclass(frozen=True)
class PublishInput:
    """Input for publishing a newsletter issue."""

    issue: NewsletterIssue


# --- Outcomes ---


class RegisterOutcome(Enum):
    SUBSCRIBED = "subscribed"
    VALIDATION_FAILED = "validation_failed"  # client error
    STORAGE_FAILED = "storage_failed"  # server error, nothing persisted
    EMAIL_DELIVERY_FAILED = "email_delivery_failed"  # server error, subscriber persisted


class ConfirmOutcome(Enum):
    CONFIRMED = "confirmed"
    TOKEN_NOT_FOUND = "token_not_found"
    STORAGE_FAILED = "storage_failed"


class PublishOutcome(Enum):
    PUBLISHED = "published"
    UNEXPECTED = "unexpected"


# --- Output Models ---


@dataclass(frozen=True)
class ValidationError:
    """Validation error detail."""

    code: str
    message: str
    field: str | None = None


@dataclass(frozen=True)
class ValidateNameOutput:
    """Output from name validation."""

    is_valid: bool
    name: SubscriberName | None = None
    errors: list[ValidationError] = field(default_factory=list)


@dataclass(frozen=True)
class ValidateEmailOutput:
    """Output from email validation."""

    is_valid: bool
    email: SubscriberEmail | None = None
    errors: list[ValidationError] = field(default_factory=list)


@dataclass(frozen=True)
class RegisterOutput:
    """Output from a registration attempt."""

    success: bool
    outcome: RegisterOutcome
    subscriber_id: UUID | None = None
    errors: list[ValidationError] = field(default_factory=list)


@dataclass(frozen=True)
class ConfirmOutput:
    """Output from a confirmation attempt."""

    success: bool
    outcome: ConfirmOutcome
    already_confirmed: bool = False  # Idempotent success


@dataclass(frozen=True)
class RecipientIssue:
    """A recipient that was skipped or whose delivery failed."""

    subscriber_id: UUID
    email: str
    reason: str


@dataclass(frozen=True)
class PublishOutput:
    """Aggregate result of a newsletter fan-out."""

    success: bool
    outcome: PublishOutcome
    attempted: int = 0
    delivered: int = 0
    skipped: list[RecipientIssue] = field(default_factory=list)
    failed: list[RecipientIssue] = field(default_factory=list)


# --- Configuration ---


@dataclass(frozen=True)
class NewsletterConfig:
    """Newsletter component configuration."""

    base_url: str = "http://127.0.0.1:8000"
    confirmation_path: str = "/subscriptions/confirm"
    confirmation_subject: str = "Welcome!"
    token_length: int = 20


# --- Error Types ---


class NewsletterError(Exception):
    """Base newsletter error."""

    pass


class InvalidInputError(NewsletterError):
    """A raw value failed validation."""

    def __init__(self, field: str, reason: str) -> None:
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid {field}: {reason}")


class StoreError(NewsletterError):
    """A store operation failed."""

    def __init__(self, step: str, cause: BaseException | None = None) -> None:
        self.step = step
        self.cause = cause
        message = f"Store failure while trying to {step}"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)
