"""
Newsletter component.

Functional core for the double opt-in subscription lifecycle and
newsletter delivery.

Key behaviors:
- Validation of raw form fields into SubscriberName / SubscriberEmail
- Cryptographic 20-character alphanumeric confirmation tokens
- Subscriber + token inserted in one transaction, email sent after commit
- Idempotent confirmation by token
- Newsletter fan-out to confirmed subscribers with per-recipient isolation

Invariants:
- A pending subscriber always has a retrievable token once committed
- Status only moves pending_confirmation → confirmed
- Fan-out reads confirmed subscribers only, once, at dispatch start
- At most one delivery attempt per recipient per publish
"""

from __future__ import annotations

import logging
import re
import secrets
import string
import unicodedata
from datetime import UTC, datetime
from uuid import uuid4

from src.components.newsletter.models import (
    ConfirmationToken,
    ConfirmInput,
    ConfirmOutcome,
    ConfirmOutput,
    NewsletterConfig,
    PublishInput,
    PublishOutcome,
    PublishOutput,
    RecipientIssue,
    RegisterInput,
    RegisterOutcome,
    RegisterOutput,
    StoreError,
    Subscriber,
    SubscriberEmail,
    SubscriberName,
    SubscriberStatus,
    ValidateEmailOutput,
    ValidateNameOutput,
    ValidationError,
    can_transition,
)
from src.components.newsletter.ports import (
    NewsletterEmailSenderPort,
    UnitOfWorkFactory,
)
from src.core.ports.email import EmailError, EmailResult, EmailStatus

logger = logging.getLogger(__name__)

# --- Validation Rules ---

EMAIL_REGEX = re.compile(
    r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+@"
    r"[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)+$"
)

MAX_EMAIL_LENGTH = 254
MAX_NAME_LENGTH = 256
FORBIDDEN_NAME_CHARACTERS = frozenset('/()"<>\\{}')

TOKEN_ALPHABET = string.ascii_letters + string.digits
TOKEN_LENGTH = 20


# --- Pure Functions (Functional Core) ---


def _is_forbidden_name_character(char: str) -> bool:
    if char in FORBIDDEN_NAME_CHARACTERS:
        return True
    if char == " ":
        return False
    # Newline, tab, other whitespace, and every control/format character
    return char.isspace() or unicodedata.category(char).startswith("C")


def validate_name(raw: str) -> ValidateNameOutput:
    """
    Validate a subscriber display name.

    Rejects names that are empty after trimming, longer than
    MAX_NAME_LENGTH characters, or contain control characters,
    whitespace other than a plain space, or one of ``/()"<>\\{}``.

    Args:
        raw: Name as submitted

    Returns:
        ValidateNameOutput with the validated name or errors
    """
    if not raw or not raw.strip():
        return ValidateNameOutput(
            is_valid=False,
            errors=[ValidationError("EMPTY_NAME", "Name is required", "name")],
        )

    if len(raw) > MAX_NAME_LENGTH:
        return ValidateNameOutput(
            is_valid=False,
            errors=[ValidationError("NAME_TOO_LONG", "Name is too long", "name")],
        )

    if any(_is_forbidden_name_character(c) for c in raw):
        return ValidateNameOutput(
            is_valid=False,
            errors=[
                ValidationError(
                    "FORBIDDEN_CHARACTERS",
                    "Name contains forbidden characters",
                    "name",
                )
            ],
        )

    return ValidateNameOutput(is_valid=True, name=SubscriberName(raw))


def validate_email(raw: str) -> ValidateEmailOutput:
    """
    Validate an email address.

    The address is kept exactly as submitted: surrounding whitespace is
    an error, not something to trim.

    Args:
        raw: Email address as submitted

    Returns:
        ValidateEmailOutput with the validated email or errors
    """
    if not raw:
        return ValidateEmailOutput(
            is_valid=False,
            errors=[ValidationError("EMPTY_EMAIL", "Email address is required", "email")],
        )

    if raw != raw.strip():
        return ValidateEmailOutput(
            is_valid=False,
            errors=[
                ValidationError(
                    "SURROUNDING_WHITESPACE",
                    "Email address must not start or end with whitespace",
                    "email",
                )
            ],
        )

    if len(raw) > MAX_EMAIL_LENGTH:
        return ValidateEmailOutput(
            is_valid=False,
            errors=[ValidationError("EMAIL_TOO_LONG", "Email address is too long", "email")],
        )

    if not EMAIL_REGEX.match(raw):
        return ValidateEmailOutput(
            is_valid=False,
            errors=[ValidationError("INVALID_FORMAT", "Invalid email format", "email")],
        )

    return ValidateEmailOutput(is_valid=True, email=SubscriberEmail(raw))


def generate_token(length: int = TOKEN_LENGTH) -> str:
    """
    Generate a cryptographically secure alphanumeric token.

    Args:
        length: Number of characters

    Returns:
        Token string, safe to embed in a URL query
    """
    return "".join(secrets.choice(TOKEN_ALPHABET) for _ in range(length))


def create_subscriber(name: SubscriberName, email: SubscriberEmail) -> Subscriber:
    """Create a new subscriber in pending_confirmation status."""
    return Subscriber(
        id=uuid4(),
        email=email.value,
        name=name.value,
        status=SubscriberStatus.PENDING_CONFIRMATION,
        subscribed_at=datetime.now(UTC),
    )


def build_confirmation_url(
    base_url: str,
    token: str,
    path: str = "/subscriptions/confirm",
) -> str:
    """
    Build the confirmation URL for email.

    Args:
        base_url: Site base URL
        token: Confirmation token
        path: URL path for confirmation endpoint

    Returns:
        Full confirmation URL
    """
    base = base_url.rstrip("/")
    return f"{base}{path}?subscription_token={token}"


def render_confirmation_email(confirmation_url: str) -> tuple[str, str]:
    """Return (html, text) bodies for the confirmation email."""
    html = (
        "Welcome to our newsletter!<br />"
        f'Click <a href="{confirmation_url}">here</a> to confirm your subscription.'
    )
    text = (
        "Welcome to our newsletter!\n"
        f"Visit {confirmation_url} to confirm your subscription."
    )
    return html, text


def is_delivered(result: EmailResult) -> bool:
    """Whether an email send attempt should count as delivered."""
    return result.status != EmailStatus.FAILED


# --- Run Handlers ---


def run_register(
    inp: RegisterInput,
    uow_factory: UnitOfWorkFactory,
    email_sender: NewsletterEmailSenderPort,
    *,
    config: NewsletterConfig | None = None,
) -> RegisterOutput:
    """
    Register a new pending subscriber.

    The subscriber row and its token are written in one transaction.
    The confirmation email is sent only after commit, so a failed send
    leaves a persisted pending subscriber behind (no resend path yet).
    """
    cfg = config or NewsletterConfig()

    name_result = validate_name(inp.name)
    email_result = validate_email(inp.email)
    if name_result.name is None or email_result.email is None:
        return RegisterOutput(
            success=False,
            outcome=RegisterOutcome.VALIDATION_FAILED,
            errors=name_result.errors + email_result.errors,
        )

    subscriber = create_subscriber(name_result.name, email_result.email)
    token = ConfirmationToken(
        token=generate_token(cfg.token_length),
        subscriber_id=subscriber.id,
    )

    try:
        with uow_factory() as uow:
            uow.subscribers.add(subscriber)
            uow.tokens.add(token)
            uow.commit()
    except StoreError:
        logger.exception("Failed to persist new subscriber %s", subscriber.id)
        return RegisterOutput(success=False, outcome=RegisterOutcome.STORAGE_FAILED)

    logger.info("Registered pending subscriber %s", subscriber.id)

    confirmation_url = build_confirmation_url(
        cfg.base_url,
        token.token,
        cfg.confirmation_path,
    )
    body_html, body_text = render_confirmation_email(confirmation_url)
    try:
        result = email_sender.send_email(
            subscriber.email,
            cfg.confirmation_subject,
            body_html,
            body_text,
        )
    except EmailError as e:
        result = EmailResult.failed(subscriber.email, str(e))

    if not is_delivered(result):
        logger.error(
            "Failed to send confirmation email for subscriber %s: %s",
            subscriber.id,
            result.error,
        )
        return RegisterOutput(
            success=False,
            outcome=RegisterOutcome.EMAIL_DELIVERY_FAILED,
            subscriber_id=subscriber.id,
        )

    return RegisterOutput(
        success=True,
        outcome=RegisterOutcome.SUBSCRIBED,
        subscriber_id=subscriber.id,
    )


def run_confirm(
    inp: ConfirmInput,
    uow_factory: UnitOfWorkFactory,
) -> ConfirmOutput:
    """
    Confirm the subscriber that owns a token.

    Unknown tokens and tokens pointing at a missing subscriber produce
    the same TOKEN_NOT_FOUND outcome.
    """
    not_found = ConfirmOutput(success=False, outcome=ConfirmOutcome.TOKEN_NOT_FOUND)

    if not inp.token:
        return not_found

    try:
        with uow_factory() as uow:
            token = uow.tokens.get(inp.token)
            if token is None:
                return not_found

            subscriber = uow.subscribers.get_by_id(token.subscriber_id)
            if subscriber is None:
                logger.warning(
                    "Confirmation token resolves to missing subscriber %s",
                    token.subscriber_id,
                )
                return not_found

            already_confirmed = not can_transition(
                subscriber.status, SubscriberStatus.CONFIRMED
            )
            uow.subscribers.mark_confirmed(subscriber.id)
            uow.commit()
    except StoreError:
        logger.exception("Failed to confirm subscription")
        return ConfirmOutput(success=False, outcome=ConfirmOutcome.STORAGE_FAILED)

    if not already_confirmed:
        logger.info("Confirmed subscriber %s", subscriber.id)

    return ConfirmOutput(
        success=True,
        outcome=ConfirmOutcome.CONFIRMED,
        already_confirmed=already_confirmed,
    )


def run_publish(
    inp: PublishInput,
    uow_factory: UnitOfWorkFactory,
    email_sender: NewsletterEmailSenderPort,
) -> PublishOutput:
    """
    Send a newsletter issue to every confirmed subscriber.

    Invalid stored addresses are skipped and failed deliveries are
    recorded; neither stops the loop. Only a failure to fetch the
    recipient list fails the whole publish.
    """
    issue = inp.issue

    try:
        with uow_factory() as uow:
            recipients = uow.subscribers.list_by_status(SubscriberStatus.CONFIRMED)
    except StoreError:
        logger.exception("Failed to fetch confirmed subscribers")
        return PublishOutput(success=False, outcome=PublishOutcome.UNEXPECTED)

    attempted = 0
    delivered = 0
    skipped: list[RecipientIssue] = []
    failed: list[RecipientIssue] = []

    for subscriber in recipients:
        validation = validate_email(subscriber.email)
        if validation.email is None:
            reason = validation.errors[0].message
            skipped.append(RecipientIssue(subscriber.id, subscriber.email, reason))
            logger.warning(
                "Skipping confirmed subscriber %s, stored email %r is invalid: %s",
                subscriber.id,
                subscriber.email,
                reason,
            )
            continue

        attempted += 1
        try:
            result = email_sender.send_email(
                validation.email.value,
                issue.title,
                issue.html_body,
                issue.text_body,
            )
        except EmailError as e:
            result = EmailResult.failed(validation.email.value, str(e))

        if is_delivered(result):
            delivered += 1
            continue

        failed.append(
            RecipientIssue(subscriber.id, subscriber.email, result.error or "unknown error")
        )
        logger.error(
            "Failed to send newsletter issue to %s (subscriber %s): %s",
            subscriber.email,
            subscriber.id,
            result.error,
        )

    logger.info(
        "Published %r: %d attempted, %d delivered, %d skipped, %d failed",
        issue.title,
        attempted,
        delivered,
        len(skipped),
        len(failed),
    )

    return PublishOutput(
        success=True,
        outcome=PublishOutcome.PUBLISHED,
        attempted=attempted,
        delivered=delivered,
        skipped=skipped,
        failed=failed,
    )


def run(
    inp: RegisterInput | ConfirmInput | PublishInput,
    *,
    uow_factory: UnitOfWorkFactory,
    email_sender: NewsletterEmailSenderPort | None = None,
    config: NewsletterConfig | None = None,
) -> RegisterOutput | ConfirmOutput | PublishOutput:
    """
    Main component entry point (Atomic Component Pattern).

    Args:
        inp: Input command
        uow_factory: Unit of work factory (Required)
        email_sender: Email sender port (Required for register and publish)
        config: Configuration (Optional)

    Returns:
        Operation result
    """
    if isinstance(inp, RegisterInput):
        if email_sender is None:
            raise ValueError("email_sender is required to register subscribers")
        return run_register(inp, uow_factory, email_sender, config=config)
    elif isinstance(inp, ConfirmInput):
        return run_confirm(inp, uow_factory)
    elif isinstance(inp, PublishInput):
        if email_sender is None:
            raise ValueError("email_sender is required to publish a newsletter")
        return run_publish(inp, uow_factory, email_sender)
    else:
        raise ValueError(f"Unknown input type: {type(inp)}")
