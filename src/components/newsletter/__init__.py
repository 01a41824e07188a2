"""
Newsletter component.

Double opt-in subscription lifecycle and newsletter fan-out.
"""

from src.components.newsletter.component import (
    EMAIL_REGEX,
    FORBIDDEN_NAME_CHARACTERS,
    MAX_EMAIL_LENGTH,
    MAX_NAME_LENGTH,
    TOKEN_LENGTH,
    build_confirmation_url,
    create_subscriber,
    generate_token,
    render_confirmation_email,
    run,
    run_confirm,
    run_publish,
    run_register,
    validate_email,
    validate_name,
)
from src.components.newsletter.models import (
    VALID_TRANSITIONS,
    ConfirmationToken,
    ConfirmInput,
    ConfirmOutcome,
    ConfirmOutput,
    InvalidInputError,
    NewsletterConfig,
    NewsletterError,
    NewsletterIssue,
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
    ConfirmationTokenRepoPort,
    NewsletterEmailSenderPort,
    NewsletterUnitOfWorkPort,
    SubscriberRepoPort,
    UnitOfWorkFactory,
)

__all__ = [
    # Component
    "run",
    "run_register",
    "run_confirm",
    "run_publish",
    # Pure functions
    "validate_name",
    "validate_email",
    "generate_token",
    "create_subscriber",
    "build_confirmation_url",
    "render_confirmation_email",
    # Constants
    "EMAIL_REGEX",
    "FORBIDDEN_NAME_CHARACTERS",
    "MAX_EMAIL_LENGTH",
    "MAX_NAME_LENGTH",
    "TOKEN_LENGTH",
    # Models
    "Subscriber",
    "SubscriberStatus",
    "SubscriberName",
    "SubscriberEmail",
    "ConfirmationToken",
    "NewsletterIssue",
    "VALID_TRANSITIONS",
    "can_transition",
    "NewsletterConfig",
    # Input/Output
    "RegisterInput",
    "RegisterOutput",
    "RegisterOutcome",
    "ConfirmInput",
    "ConfirmOutput",
    "ConfirmOutcome",
    "PublishInput",
    "PublishOutput",
    "PublishOutcome",
    "RecipientIssue",
    "ValidateNameOutput",
    "ValidateEmailOutput",
    "ValidationError",
    # Errors
    "NewsletterError",
    "InvalidInputError",
    "StoreError",
    # Ports
    "SubscriberRepoPort",
    "ConfirmationTokenRepoPort",
    "NewsletterUnitOfWorkPort",
    "UnitOfWorkFactory",
    "NewsletterEmailSenderPort",
]
