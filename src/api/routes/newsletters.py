"""
Newsletter publishing endpoint.

Endpoints:
- POST /newsletters - Send an issue to every confirmed subscriber
"""

from __future__ import annotations

from collections.abc import Callable

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from src.api.deps import get_email_adapter, get_uow_factory
from src.components.newsletter.component import run_publish
from src.components.newsletter.models import NewsletterIssue, PublishInput
from src.components.newsletter.ports import (
    NewsletterEmailSenderPort,
    NewsletterUnitOfWorkPort,
)

router = APIRouter()


# --- Request/Response Models ---


class IssueContent(BaseModel):
    html: str
    text: str


class PublishRequest(BaseModel):
    """Request body for publishing a newsletter issue."""

    title: str = Field(..., description="Email subject")
    content: IssueContent


class RecipientIssueResponse(BaseModel):
    subscriber_id: str
    reason: str


class PublishResponse(BaseModel):
    """Delivery summary. Individual failures do not change the status code."""

    attempted: int
    delivered: int
    skipped: list[RecipientIssueResponse]
    failed: list[RecipientIssueResponse]


@router.post(
    "/newsletters",
    response_model=PublishResponse,
    responses={
        500: {"description": "Confirmed subscribers could not be fetched"},
    },
    summary="Publish a newsletter issue",
)
def publish_newsletter(
    body: PublishRequest,
    uow_factory: Callable[[], NewsletterUnitOfWorkPort] = Depends(get_uow_factory),
    email_sender: NewsletterEmailSenderPort = Depends(get_email_adapter),
) -> PublishResponse:
    issue = NewsletterIssue(
        title=body.title,
        html_body=body.content.html,
        text_body=body.content.text,
    )
    result = run_publish(PublishInput(issue=issue), uow_factory, email_sender)

    if not result.success:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Unable to publish newsletter",
        )

    return PublishResponse(
        attempted=result.attempted,
        delivered=result.delivered,
        skipped=[
            RecipientIssueResponse(subscriber_id=str(i.subscriber_id), reason=i.reason)
            for i in result.skipped
        ],
        failed=[
            RecipientIssueResponse(subscriber_id=str(i.subscriber_id), reason=i.reason)
            for i in result.failed
        ],
    )
