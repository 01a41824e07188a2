"""
SQLite Database Adapter.

Implements the newsletter store ports using SQLite.
Designed to be Postgres-compatible (uses standard SQL patterns).

Every sqlite3.Error is re-raised as StoreError naming the step that
failed, so the component never sees driver exceptions.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from typing import Any
from uuid import UUID

from src.components.newsletter.models import (
    ConfirmationToken,
    StoreError,
    Subscriber,
    SubscriberStatus,
)

logger = logging.getLogger(__name__)

DEFAULT_BUSY_TIMEOUT_SECONDS = 5.0

# -----------------------------------------------------------------------------
# Helper functions
# -----------------------------------------------------------------------------


def dict_factory(cursor: sqlite3.Cursor, row: tuple[Any, ...]) -> dict[str, Any]:
    """Convert SQLite row to dictionary."""
    return {col[0]: row[idx] for idx, col in enumerate(cursor.description)}


def connect(db_path: str, timeout: float = DEFAULT_BUSY_TIMEOUT_SECONDS) -> sqlite3.Connection:
    """Open a connection configured the way every repo expects."""
    conn = sqlite3.connect(db_path, timeout=timeout, check_same_thread=False)
    conn.row_factory = dict_factory
    conn.execute("PRAGMA foreign_keys = ON;")
    return conn


@contextmanager
def store_step(step: str) -> Iterator[None]:
    """Translate driver errors and unreadable rows inside the block into StoreError."""
    try:
        yield
    except (sqlite3.Error, ValueError) as e:
        raise StoreError(step, e) from e


# -----------------------------------------------------------------------------
# Base SQLite Repository
# -----------------------------------------------------------------------------


class SQLiteRepoBase:
    """Base class for SQLite repositories."""

    def __init__(
        self,
        db_path: str,
        connection: sqlite3.Connection | None = None,
        timeout: float = DEFAULT_BUSY_TIMEOUT_SECONDS,
    ):
        self.db_path = db_path
        self.timeout = timeout
        self._external_conn = connection

    def _get_conn(self) -> sqlite3.Connection:
        """Get database connection (uses external if provided)."""
        if self._external_conn is not None:
            return self._external_conn
        with store_step("open a database connection"):
            return connect(self.db_path, self.timeout)

    def _should_close(self) -> bool:
        """Whether to close connection after use."""
        return self._external_conn is None


# -----------------------------------------------------------------------------
# Subscriber Repository
# -----------------------------------------------------------------------------


class SQLiteSubscriberRepo(SQLiteRepoBase):
    """SQLite implementation of SubscriberRepoPort."""

    def add(self, subscriber: Subscriber) -> Subscriber:
        conn = self._get_conn()
        try:
            with store_step("insert a new subscriber"):
                conn.execute(
                    """
                    INSERT INTO subscriptions (id, email, name, status, subscribed_at)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (
                        str(subscriber.id),
                        subscriber.email,
                        subscriber.name,
                        subscriber.status.value,
                        subscriber.subscribed_at.isoformat(),
                    ),
                )
                if self._should_close():
                    conn.commit()
            return subscriber
        finally:
            if self._should_close():
                conn.close()

    def get_by_id(self, subscriber_id: UUID) -> Subscriber | None:
        conn = self._get_conn()
        try:
            with store_step("load a subscriber"):
                row = conn.execute(
                    "SELECT * FROM subscriptions WHERE id = ?", (str(subscriber_id),)
                ).fetchone()
                return self._map_row(row) if row else None
        finally:
            if self._should_close():
                conn.close()

    def mark_confirmed(self, subscriber_id: UUID) -> None:
        conn = self._get_conn()
        try:
            with store_step("mark a subscriber as confirmed"):
                conn.execute(
                    "UPDATE subscriptions SET status = ? WHERE id = ?",
                    (SubscriberStatus.CONFIRMED.value, str(subscriber_id)),
                )
                if self._should_close():
                    conn.commit()
        finally:
            if self._should_close():
                conn.close()

    def list_by_status(self, status: SubscriberStatus) -> list[Subscriber]:
        conn = self._get_conn()
        try:
            with store_step(f"list {status.value} subscribers"):
                rows = conn.execute(
                    "SELECT * FROM subscriptions WHERE status = ? ORDER BY subscribed_at",
                    (status.value,),
                ).fetchall()
                return [self._map_row(r) for r in rows]
        finally:
            if self._should_close():
                conn.close()

    def _map_row(self, row: dict[str, Any]) -> Subscriber:
        return Subscriber(
            id=UUID(row["id"]),
            email=row["email"],
            name=row["name"],
            status=SubscriberStatus(row["status"]),
            subscribed_at=datetime.fromisoformat(row["subscribed_at"]),
        )


# -----------------------------------------------------------------------------
# Confirmation Token Repository
# -----------------------------------------------------------------------------


class SQLiteConfirmationTokenRepo(SQLiteRepoBase):
    """SQLite implementation of ConfirmationTokenRepoPort (insert-only)."""

    def add(self, token: ConfirmationToken) -> ConfirmationToken:
        conn = self._get_conn()
        try:
            with store_step("store a subscription token"):
                conn.execute(
                    """
                    INSERT INTO subscription_tokens (subscription_token, subscriber_id)
                    VALUES (?, ?)
                    """,
                    (token.token, str(token.subscriber_id)),
                )
                if self._should_close():
                    conn.commit()
            return token
        finally:
            if self._should_close():
                conn.close()

    def get(self, token: str) -> ConfirmationToken | None:
        conn = self._get_conn()
        try:
            with store_step("look up a subscription token"):
                row = conn.execute(
                    """
                    SELECT subscription_token, subscriber_id
                    FROM subscription_tokens
                    WHERE subscription_token = ?
                    """,
                    (token,),
                ).fetchone()
                if not row:
                    return None
                return ConfirmationToken(
                    token=row["subscription_token"],
                    subscriber_id=UUID(row["subscriber_id"]),
                )
        finally:
            if self._should_close():
                conn.close()


# -----------------------------------------------------------------------------
# Unit of Work (Transaction Management)
# -----------------------------------------------------------------------------


class SQLiteUnitOfWork:
    """
    SQLite Unit of Work implementation.

    Provides transaction management and access to the newsletter
    repositories. All repositories share one connection, so everything
    done inside the block commits or rolls back together. Leaving the
    block without commit() rolls back.
    """

    def __init__(self, db_path: str, timeout: float = DEFAULT_BUSY_TIMEOUT_SECONDS):
        self.db_path = db_path
        self.timeout = timeout
        self._conn: sqlite3.Connection | None = None
        self._committed = False

        # Lazy-initialized repositories
        self._subscribers: SQLiteSubscriberRepo | None = None
        self._tokens: SQLiteConfirmationTokenRepo | None = None

    def __enter__(self) -> SQLiteUnitOfWork:
        with store_step("open a database connection"):
            self._conn = connect(self.db_path, self.timeout)
        self._committed = False
        self._subscribers = None
        self._tokens = None
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> None:
        try:
            if exc_type is not None or not self._committed:
                self.rollback()
        finally:
            if self._conn:
                self._conn.close()
                self._conn = None

    def commit(self) -> None:
        if self._conn:
            with store_step("commit the transaction"):
                self._conn.commit()
            self._committed = True

    def rollback(self) -> None:
        if self._conn:
            try:
                self._conn.rollback()
            except sqlite3.Error:
                logger.exception("Rollback failed; closing connection discards the transaction")

    @property
    def subscribers(self) -> SQLiteSubscriberRepo:
        if self._subscribers is None:
            self._subscribers = SQLiteSubscriberRepo(self.db_path, self._conn)
        return self._subscribers

    @property
    def tokens(self) -> SQLiteConfirmationTokenRepo:
        if self._tokens is None:
            self._tokens = SQLiteConfirmationTokenRepo(self.db_path, self._conn)
        return self._tokens


def ping(db_path: str, timeout: float = DEFAULT_BUSY_TIMEOUT_SECONDS) -> None:
    """Run a trivial query; raises StoreError if the database is unusable."""
    with store_step("ping the database"):
        conn = connect(db_path, timeout)
        try:
            conn.execute("SELECT 1 FROM subscriptions LIMIT 1").fetchall()
        finally:
            conn.close()
