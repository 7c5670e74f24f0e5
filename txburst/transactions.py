"""Transaction support for txburst."""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from collections import deque
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from .drivers import ResultSet
from .exceptions import TransactionClosedError

if TYPE_CHECKING:
    from .client import Client

logger = logging.getLogger(__name__)


class TransactionMode(Enum):
    """Transaction modes accepted by Client.transaction()."""

    WRITE = "write"  # BEGIN IMMEDIATE - reserved lock up front
    READ = "read"  # BEGIN DEFERRED with query_only on
    DEFERRED = "deferred"  # BEGIN DEFERRED - locks acquired lazily

    @property
    def begin_sql(self) -> str:
        if self is TransactionMode.WRITE:
            return "BEGIN IMMEDIATE"
        return "BEGIN DEFERRED"


@dataclass
class TransactionContext:
    """Tracks the state of an open transaction."""

    id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    mode: TransactionMode = TransactionMode.WRITE
    started_at: float = field(default_factory=time.time)
    owner_task: asyncio.Task[Any] | None = None


class TransactionQueue:
    """
    Queue for serializing transactions on the client's single connection.

    Only one transaction can be open at a time. Other requests wait in
    FIFO order.
    """

    def __init__(self) -> None:
        self._active: TransactionContext | None = None
        self._busy = False  # stays True while the slot is handed to a waiter
        self._waiting: deque[asyncio.Event] = deque()
        self._lock = asyncio.Lock()

    @property
    def has_active(self) -> bool:
        """Return True if a transaction is currently open."""
        return self._active is not None

    @property
    def active_context(self) -> TransactionContext | None:
        """Return the open transaction context, if any."""
        return self._active

    async def acquire(self, context: TransactionContext) -> None:
        """
        Acquire the transaction slot.

        Blocks if another transaction is open.
        """
        async with self._lock:
            if not self._busy:
                self._busy = True
                self._active = context
                return

            event = asyncio.Event()
            self._waiting.append(event)

        # Wait outside the lock
        try:
            await event.wait()
        except asyncio.CancelledError:
            async with self._lock:
                if event.is_set():
                    # Slot was already handed to us; pass it on
                    self._hand_off()
                else:
                    self._waiting.remove(event)
            raise

        async with self._lock:
            self._active = context

    async def release(self) -> None:
        """
        Release the transaction slot.

        Wakes up the next waiter, if any.
        """
        async with self._lock:
            self._active = None
            self._hand_off()

    def _hand_off(self) -> None:
        # Caller holds self._lock
        if self._waiting:
            self._waiting.popleft().set()
        else:
            self._busy = False


class Transaction:
    """
    Handle for an open transaction.

    Usage:
        tx = await client.transaction("write")
        try:
            rs = await tx.execute("SELECT value FROM items WHERE id = ?", ["a"])
            await tx.execute("UPDATE items SET value = ? WHERE id = ?", [1, "a"])
            await tx.commit()
        except Exception:
            await tx.rollback()
            raise

        # Or as a context manager (commit on success, rollback on exception):
        async with await client.transaction() as tx:
            await tx.execute("INSERT INTO ...")
    """

    def __init__(self, client: "Client", context: TransactionContext) -> None:
        self._client = client
        self._context = context
        self._closed = False

    @staticmethod
    def _begin_in_thread(client: "Client", mode: TransactionMode) -> None:
        """Run BEGIN (and the read-only pragma) on the worker thread."""
        client._driver.execute(client._conn, mode.begin_sql)
        if mode is TransactionMode.READ:
            try:
                client._driver.execute(client._conn, "PRAGMA query_only = ON")
            except Exception:
                client._driver.execute(client._conn, "ROLLBACK")
                raise

    @staticmethod
    def _end_in_thread(
        client: "Client", mode: TransactionMode, sql: str
    ) -> tuple[Exception | None, bool]:
        """
        Run COMMIT or ROLLBACK on the worker thread.

        Returns (error, still_open). The engine may reject a COMMIT and
        keep the transaction open, or roll it back on its own.
        """
        driver, conn = client._driver, client._conn
        error: Exception | None = None
        try:
            driver.execute(conn, sql)
        except Exception as e:
            error = e
        still_open = driver.in_transaction(conn)
        if mode is TransactionMode.READ and not still_open:
            driver.execute(conn, "PRAGMA query_only = OFF")
        return error, still_open

    @staticmethod
    def _discard_in_thread(client: "Client", mode: TransactionMode) -> None:
        """Roll back if the connection is still inside a transaction."""
        if client._driver.in_transaction(client._conn):
            Transaction._end_in_thread(client, mode, "ROLLBACK")

    def _check_open(self) -> None:
        if self._closed:
            raise TransactionClosedError(f"Transaction {self.id} is closed")
        self._client._check_closed()

    async def _finish(self) -> None:
        self._closed = True
        await self._client._transaction_queue.release()

    async def execute(self, sql: str, args: Sequence[Any] = ()) -> ResultSet:
        """Execute a statement inside this transaction."""
        self._check_open()
        client = self._client
        return await client._worker.run(client._driver.execute, client._conn, sql, args)

    async def commit(self) -> None:
        """
        Commit the transaction.

        If the engine rejects the commit but keeps the transaction open,
        the handle stays open so the caller can roll back.
        """
        self._check_open()
        client = self._client
        try:
            error, still_open = await client._worker.run(
                self._end_in_thread, client, self.mode, "COMMIT"
            )
        except asyncio.CancelledError:
            # Outcome unknown; a rejected COMMIT is rolled back behind it
            client._queue_discard(self.mode)
            await self._finish()
            raise
        if error is not None:
            logger.debug(
                "Transaction %s commit rejected (still open: %s)", self.id, still_open
            )
            if not still_open:
                await self._finish()
            raise error
        logger.debug("Transaction %s committed", self.id)
        await self._finish()

    async def rollback(self) -> None:
        """
        Roll back the transaction. No-op if it is already closed.

        The slot is released even if ROLLBACK itself fails.
        """
        if self._closed:
            return
        client = self._client
        try:
            if not client.closed:
                error, _ = await client._worker.run(
                    self._end_in_thread, client, self.mode, "ROLLBACK"
                )
                if error is not None:
                    raise error
                logger.debug("Transaction %s rolled back", self.id)
        finally:
            await self._finish()

    async def close(self) -> None:
        """Roll back if still open."""
        await self.rollback()

    async def __aenter__(self) -> "Transaction":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> bool:
        """Commit on success, rollback on exception."""
        if exc_type is not None:
            await self.rollback()
        elif not self._closed:
            try:
                await self.commit()
            except Exception:
                await self.rollback()
                raise

        # Don't suppress exceptions
        return False

    @property
    def id(self) -> str:
        return self._context.id

    @property
    def mode(self) -> TransactionMode:
        return self._context.mode

    @property
    def context(self) -> TransactionContext:
        """Return the transaction context."""
        return self._context

    @property
    def closed(self) -> bool:
        """Return True once the transaction was committed or rolled back."""
        return self._closed
