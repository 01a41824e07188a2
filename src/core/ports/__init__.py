# newsletter-service: Ports (Protocol Interfaces)
# Abstract interfaces for adapters; no implementations here

from src.core.ports.email import (
    EmailError,
    EmailPort,
    EmailResult,
    EmailSendError,
    EmailStatus,
)

__all__ = [
    "EmailError",
    "EmailPort",
    "EmailResult",
    "EmailSendError",
    "EmailStatus",
]
