"""Async client for a local SQLite database file."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import Any

from .drivers import Driver, ResultSet, create_driver
from .exceptions import (
    ClientClosedError,
    TransactionNestingError,
    UnsupportedURLError,
)
from .transactions import (
    Transaction,
    TransactionContext,
    TransactionMode,
    TransactionQueue,
)
from .worker import Worker

logger = logging.getLogger(__name__)

MEMORY = ":memory:"


def parse_database_url(url: str) -> str:
    """
    Turn a database URL into a path for the engine.

    Accepts "file:<path>", "file://<path>", ":memory:" and bare paths.
    Remote schemes (libsql:, http:, ws: ...) are not supported.
    """
    if url in (MEMORY, "file::memory:"):
        return MEMORY

    if url.startswith("file:"):
        path = url[len("file:"):]
        if path.startswith("//"):
            path = path[2:]
        if not path:
            raise UnsupportedURLError(f"Missing path in database URL: {url!r}")
        return path

    scheme, sep, _ = url.partition(":")
    # A single letter before ":" is a Windows drive, not a scheme
    if sep and len(scheme) > 1 and scheme.isalpha():
        raise UnsupportedURLError(f"Unsupported database URL scheme: {scheme}:")
    if not url:
        raise UnsupportedURLError("Empty database URL")
    return url


class Client:
    """
    Async client over one SQLite connection.

    The connection lives on a dedicated worker thread. Statements run
    outside a transaction are autocommitted; at most one explicit
    transaction is open at a time.
    """

    def __init__(self, database: str, driver: Driver, worker: Worker, conn: Any) -> None:
        self._database = database
        self._driver = driver
        self._worker = worker
        self._conn = conn
        self._transaction_queue = TransactionQueue()
        self._closed = False

    def _check_closed(self) -> None:
        """Raise an error if the client is closed."""
        if self._closed:
            raise ClientClosedError("Client is closed")

    async def execute(self, sql: str, args: Sequence[Any] = ()) -> ResultSet:
        """
        Execute a single statement outside any explicit transaction.

        Waits for the transaction slot if another task holds an open
        transaction.

        Args:
            sql: SQL statement to execute.
            args: Positional parameters for the statement.

        Returns:
            ResultSet with rows as column-name mappings.
        """
        self._check_closed()

        queue = self._transaction_queue
        active = queue.active_context
        if active is not None and active.owner_task is asyncio.current_task():
            raise TransactionNestingError(
                f"Transaction {active.id} is open in this task; "
                "execute statements through the transaction handle"
            )

        context = TransactionContext(owner_task=asyncio.current_task())
        await queue.acquire(context)
        try:
            self._check_closed()
            return await self._worker.run(self._driver.execute, self._conn, sql, args)
        finally:
            await queue.release()

    async def transaction(
        self, mode: TransactionMode | str = TransactionMode.WRITE
    ) -> Transaction:
        """
        Begin a transaction and return its handle.

        Args:
            mode: "write" (BEGIN IMMEDIATE), "read" or "deferred".

        Returns:
            An open Transaction.
        """
        self._check_closed()
        mode = TransactionMode(mode)

        queue = self._transaction_queue
        context = TransactionContext(mode=mode, owner_task=asyncio.current_task())
        await queue.acquire(context)
        try:
            self._check_closed()
            await self._worker.run(Transaction._begin_in_thread, self, mode)
        except asyncio.CancelledError:
            # BEGIN may still finish on the worker; undo it ahead of anything
            # queued once the slot is free
            self._queue_discard(mode)
            await queue.release()
            raise
        except BaseException:
            await queue.release()
            raise

        logger.debug("Transaction %s begun (%s)", context.id, mode.value)
        return Transaction(self, context)

    def _queue_discard(self, mode: TransactionMode) -> None:
        """Queue a rollback of whatever an abandoned BEGIN or COMMIT leaves open."""
        if not self._closed:
            self._worker.submit(Transaction._discard_in_thread, self, mode)

    @staticmethod
    def _close_in_thread(driver: Driver, conn: Any) -> None:
        driver.close(conn)

    async def close(self) -> None:
        """Close the connection and stop the worker thread."""
        if self._closed:
            return

        self._closed = True
        try:
            await self._worker.run(self._close_in_thread, self._driver, self._conn)
        finally:
            self._worker.close(wait=True)

    @property
    def closed(self) -> bool:
        """Return True if the client is closed."""
        return self._closed

    @property
    def database(self) -> str:
        return self._database

    @property
    def driver_name(self) -> str:
        return self._driver.name

    async def __aenter__(self) -> "Client":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()


async def create_client(
    url: str,
    *,
    driver: str = "sqlite3",
    busy_timeout_ms: int = 5000,
    journal_mode: str | None = "WAL",
) -> Client:
    """
    Create and return a new client.

    Args:
        url: "file:<path>", a bare path or ":memory:".
        driver: "sqlite3" or "apsw".
        busy_timeout_ms: How long SQLite waits on a locked database.
        journal_mode: Journal mode pragma, or None to leave the default.

    Returns:
        A connected Client.

    Example:
        async with await create_client("file:./local.db") as client:
            rs = await client.execute("SELECT 1 AS one")
            rs.rows  # [{"one": 1}]
    """
    path = parse_database_url(url)
    engine = create_driver(driver)
    worker = Worker()
    try:
        conn = await worker.run(engine.connect, path, busy_timeout_ms, journal_mode)
    except BaseException:
        worker.close(wait=True)
        raise
    logger.debug("Opened %s with %s driver", path, engine.name)
    return Client(path, engine, worker, conn)
