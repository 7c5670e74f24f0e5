"""Shared fixtures for txburst tests."""

from __future__ import annotations

import os
import tempfile
from collections.abc import Sequence
from typing import Any

import pytest

from txburst import OperationalError, create_client
from txburst.transactions import TransactionMode


@pytest.fixture
def db_path():
    """Create a temporary database file."""
    fd, path = tempfile.mkstemp(suffix=".db")
    os.close(fd)
    yield path
    try:
        os.unlink(path)
    except OSError:
        pass
    # Cleanup WAL files
    for suffix in ["-wal", "-shm"]:
        try:
            os.unlink(path + suffix)
        except OSError:
            pass


@pytest.fixture(params=["sqlite3", "apsw"])
async def client(request, db_path):
    """A client on a temporary file, once per driver."""
    if request.param == "apsw":
        pytest.importorskip("apsw")
    instance = await create_client(f"file:{db_path}", driver=request.param)
    yield instance
    await instance.close()


class SleepRecorder:
    """Stands in for asyncio.sleep and remembers every requested delay."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def sleep():
    return SleepRecorder()


class FlakyTransaction:
    """Wraps a real Transaction and rejects COMMIT when told to."""

    def __init__(self, tx: Any, fail_commit: bool = False) -> None:
        self._tx = tx
        self._fail_commit = fail_commit
        self.rollbacks = 0

    async def execute(self, sql: str, args: Sequence[Any] = ()) -> Any:
        return await self._tx.execute(sql, args)

    async def commit(self) -> None:
        if self._fail_commit:
            # Leaves the real transaction open, like a busy COMMIT
            raise OperationalError("database is locked")
        await self._tx.commit()

    async def rollback(self) -> None:
        self.rollbacks += 1
        await self._tx.rollback()


class FlakyClient:
    """
    Wraps a real Client and injects failures by transaction number.

    Transaction numbers start at 1 and count every call to transaction().
    """

    def __init__(
        self,
        client: Any,
        *,
        fail_begins: Sequence[int] = (),
        fail_commits: Sequence[int] = (),
        fail_close: bool = False,
    ) -> None:
        self._client = client
        self._fail_begins = set(fail_begins)
        self._fail_commits = set(fail_commits)
        self._fail_close = fail_close
        self.transactions_started = 0
        self.close_calls = 0
        self.handles: list[FlakyTransaction] = []

    async def execute(self, sql: str, args: Sequence[Any] = ()) -> Any:
        return await self._client.execute(sql, args)

    async def transaction(self, mode: TransactionMode | str = TransactionMode.WRITE) -> Any:
        self.transactions_started += 1
        number = self.transactions_started
        if number in self._fail_begins:
            raise OperationalError("database is locked")
        tx = FlakyTransaction(
            await self._client.transaction(mode), fail_commit=number in self._fail_commits
        )
        self.handles.append(tx)
        return tx

    async def close(self) -> None:
        self.close_calls += 1
        await self._client.close()
        if self._fail_close:
            raise OperationalError("unable to close due to unfinalized statements")
