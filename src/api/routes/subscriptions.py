"""
Public subscription endpoints.

Endpoints:
- POST /subscriptions - Subscribe (form-encoded name, email)
- GET /subscriptions/confirm - Confirm subscription via emailed token
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Annotated

from fastapi import APIRouter, Depends, Form, HTTPException, Response, status
from pydantic import BaseModel, Field

from src.api.deps import get_email_adapter, get_newsletter_config, get_uow_factory
from src.components.newsletter.component import run_confirm, run_register
from src.components.newsletter.models import (
    ConfirmInput,
    ConfirmOutcome,
    NewsletterConfig,
    RegisterInput,
    RegisterOutcome,
)
from src.components.newsletter.ports import (
    NewsletterEmailSenderPort,
    NewsletterUnitOfWorkPort,
)

router = APIRouter()


# --- Response Models ---


class SubscribeResponse(BaseModel):
    """Response for subscription request."""

    success: bool = Field(..., description="Whether the request was processed successfully")
    message: str = Field(..., description="Human-readable message")


class ErrorResponse(BaseModel):
    """Error response."""

    detail: str


# --- Subscribe Endpoint ---


@router.post(
    "/subscriptions",
    response_model=SubscribeResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid name or email"},
        500: {"model": ErrorResponse, "description": "Storage or email failure"},
    },
    summary="Subscribe to the newsletter",
    description="Start the double opt-in flow. Sends a confirmation email.",
)
def subscribe(
    name: Annotated[str | None, Form()] = None,
    email: Annotated[str | None, Form()] = None,
    uow_factory: Callable[[], NewsletterUnitOfWorkPort] = Depends(get_uow_factory),
    email_sender: NewsletterEmailSenderPort = Depends(get_email_adapter),
    config: NewsletterConfig = Depends(get_newsletter_config),
) -> SubscribeResponse:
    """
    Subscribe to the newsletter.

    Missing fields are validated like empty ones, so they produce 400
    rather than a framework 422.
    """
    result = run_register(
        RegisterInput(name=name or "", email=email or ""),
        uow_factory,
        email_sender,
        config=config,
    )

    if result.outcome == RegisterOutcome.VALIDATION_FAILED:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="; ".join(e.message for e in result.errors),
        )
    if not result.success:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Unable to process subscription",
        )

    return SubscribeResponse(
        success=True,
        message="Please check your email to confirm your subscription",
    )


# --- Confirm Endpoint ---


@router.get(
    "/subscriptions/confirm",
    status_code=status.HTTP_200_OK,
    response_class=Response,
    responses={
        200: {"description": "Subscription confirmed"},
        401: {"model": ErrorResponse, "description": "Unknown token"},
        500: {"model": ErrorResponse, "description": "Storage failure"},
    },
    summary="Confirm a pending subscription",
)
def confirm(
    subscription_token: str = "",
    uow_factory: Callable[[], NewsletterUnitOfWorkPort] = Depends(get_uow_factory),
) -> Response:
    """
    Confirm a subscription (idempotent).

    A missing, malformed or unknown token all yield the same 401.
    """
    result = run_confirm(ConfirmInput(token=subscription_token), uow_factory)

    if result.outcome == ConfirmOutcome.TOKEN_NOT_FOUND:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid confirmation link",
        )
    if not result.success:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Unable to confirm subscription",
        )

    return Response(status_code=status.HTTP_200_OK)
