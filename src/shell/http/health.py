"""
Health endpoints.

- /health_check: 200 with an empty body while the process is serving
- /health: database reachability as JSON, 503 when the store is unusable

The database ping is installed on ``app.state.database_ping`` by the app
lifespan; it raises StoreError when the subscription store cannot be read.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse

from src.components.newsletter.models import StoreError

router = APIRouter(tags=["health"])


@dataclass(frozen=True)
class StoreHealth:
    """Outcome of one database check."""

    reachable: bool
    detail: str
    latency_ms: float


def check_store(ping: Callable[[], None]) -> StoreHealth:
    start = time.perf_counter()
    try:
        ping()
    except StoreError as e:
        return StoreHealth(False, str(e), (time.perf_counter() - start) * 1000)
    return StoreHealth(True, "subscriptions table readable", (time.perf_counter() - start) * 1000)


def get_database_ping(request: Request) -> Callable[[], None]:
    return request.app.state.database_ping


@router.get("/health_check", response_class=Response)
def health_check() -> Response:
    """Liveness check with no body."""
    return Response(status_code=status.HTTP_200_OK)


@router.get(
    "/health",
    response_model=None,
    responses={
        200: {"description": "Subscription store reachable"},
        503: {"description": "Subscription store unusable"},
    },
)
def health(
    request: Request,
    ping: Callable[[], None] = Depends(get_database_ping),
) -> JSONResponse:
    store = check_store(ping)
    return JSONResponse(
        status_code=status.HTTP_200_OK if store.reachable else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "healthy" if store.reachable else "unhealthy",
            "version": request.app.version,
            "database": {
                "reachable": store.reachable,
                "detail": store.detail,
                "latency_ms": round(store.latency_ms, 2),
            },
        },
    )
