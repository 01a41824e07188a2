from collections.abc import Callable
from functools import lru_cache

from fastapi import Depends, Request

from src.adapters.dev_email import DevEmailAdapter
from src.adapters.http_email import HttpEmailAdapter
from src.adapters.sqlite_db import SQLiteUnitOfWork
from src.components.newsletter.models import NewsletterConfig, SubscriberEmail
from src.components.newsletter.ports import NewsletterEmailSenderPort
from src.config.loader import load_settings
from src.config.models import Settings

# Each request gets its own unit of work. The email adapter is built once
# in the app lifespan and lives on app.state.


# --- Settings ---
@lru_cache
def get_settings() -> Settings:
    return load_settings()


# --- Store ---
def get_uow_factory(
    settings: Settings = Depends(get_settings),
) -> Callable[[], SQLiteUnitOfWork]:
    """Return a factory producing one unit of work (one connection) per call."""
    db_path = settings.database.path
    timeout = settings.database.busy_timeout_seconds

    def factory() -> SQLiteUnitOfWork:
        return SQLiteUnitOfWork(db_path, timeout=timeout)

    return factory


# --- Email ---
EmailAdapter = DevEmailAdapter | HttpEmailAdapter


def build_email_adapter(settings: Settings) -> EmailAdapter:
    """Build the email adapter the settings ask for. The caller closes it."""
    email_settings = settings.email_client
    sender = SubscriberEmail.parse(email_settings.sender_email)

    if not email_settings.enabled:
        # Log only; nothing reads the mailbox outside tests
        return DevEmailAdapter(sender=sender.value, keep_sent=False)

    return HttpEmailAdapter(
        base_url=email_settings.base_url,
        sender=sender.value,
        authorization_token=email_settings.authorization_token.get_secret_value(),
        timeout_seconds=email_settings.timeout_seconds,
    )


def get_email_adapter(request: Request) -> NewsletterEmailSenderPort:
    """The adapter built once by the app lifespan and shared by all requests."""
    return request.app.state.email_adapter


# --- Component configuration ---
def build_newsletter_config(settings: Settings) -> NewsletterConfig:
    return NewsletterConfig(
        base_url=settings.application.base_url,
        confirmation_subject=settings.newsletter.confirmation_subject,
        token_length=settings.newsletter.token_length,
    )


def get_newsletter_config(settings: Settings = Depends(get_settings)) -> NewsletterConfig:
    return build_newsletter_config(settings)
