"""Engine bindings used by the client's worker thread."""

from __future__ import annotations

import sqlite3
from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from .exceptions import IntegrityError, OperationalError, ProgrammingError

JOURNAL_MODES = frozenset({"DELETE", "TRUNCATE", "PERSIST", "MEMORY", "WAL", "OFF"})


@dataclass
class ResultSet:
    """Result of a single statement."""

    columns: tuple[str, ...] = ()
    rows: list[dict[str, Any]] = field(default_factory=list)
    rows_affected: int = 0
    last_insert_rowid: int | None = None


class Driver(ABC):
    """
    Base class for synchronous engine bindings.

    Every method is called on the worker thread that owns the connection.
    Connections are opened in autocommit mode; transactions are driven with
    explicit BEGIN/COMMIT/ROLLBACK statements.
    """

    name: str = ""

    @abstractmethod
    def connect(self, path: str, busy_timeout_ms: int, journal_mode: str | None) -> Any:
        """Open a connection and apply pragmas."""
        pass

    @abstractmethod
    def execute(self, conn: Any, sql: str, args: Sequence[Any] = ()) -> ResultSet:
        """Execute one statement and collect its rows."""
        pass

    @abstractmethod
    def in_transaction(self, conn: Any) -> bool:
        """Return True if the connection has an open transaction."""
        pass

    @abstractmethod
    def close(self, conn: Any) -> None:
        """Close the connection."""
        pass


class Sqlite3Driver(Driver):
    """Standard library sqlite3 binding."""

    name = "sqlite3"

    def connect(
        self, path: str, busy_timeout_ms: int, journal_mode: str | None
    ) -> sqlite3.Connection:
        # isolation_level=None: no implicit BEGIN from the sqlite3 module
        conn = sqlite3.connect(path, isolation_level=None)
        try:
            conn.execute(f"PRAGMA busy_timeout={int(busy_timeout_ms)}")
            if journal_mode:
                conn.execute(f"PRAGMA journal_mode={_checked_journal_mode(journal_mode)}")
        except Exception:
            conn.close()
            raise
        return conn

    def execute(
        self, conn: sqlite3.Connection, sql: str, args: Sequence[Any] = ()
    ) -> ResultSet:
        cursor = conn.execute(sql, tuple(args))
        try:
            if cursor.description is None:
                return ResultSet(
                    rows_affected=max(cursor.rowcount, 0),
                    last_insert_rowid=cursor.lastrowid,
                )
            columns = tuple(d[0] for d in cursor.description)
            rows = [dict(zip(columns, row)) for row in cursor.fetchall()]
            return ResultSet(columns=columns, rows=rows)
        finally:
            cursor.close()

    def in_transaction(self, conn: sqlite3.Connection) -> bool:
        return conn.in_transaction

    def close(self, conn: sqlite3.Connection) -> None:
        conn.close()


class APSWDriver(Driver):
    """
    APSW (Another Python SQLite Wrapper) binding.

    APSW raises its own exception classes; they are translated into the
    DB-API family re-exported by txburst.exceptions.
    """

    name = "apsw"

    def __init__(self) -> None:
        import apsw

        self._apsw = apsw

    def _translate(self, exc: Exception) -> Exception:
        apsw = self._apsw
        if isinstance(exc, apsw.ConstraintError):
            return IntegrityError(str(exc))
        if isinstance(exc, apsw.BindingsError):
            return ProgrammingError(str(exc))
        return OperationalError(str(exc))

    def connect(self, path: str, busy_timeout_ms: int, journal_mode: str | None) -> Any:
        try:
            conn = self._apsw.Connection(path)
        except self._apsw.Error as e:
            raise self._translate(e) from e
        try:
            conn.setbusytimeout(int(busy_timeout_ms))
            if journal_mode:
                self.execute(
                    conn, f"PRAGMA journal_mode={_checked_journal_mode(journal_mode)}"
                )
        except Exception:
            conn.close()
            raise
        return conn

    def execute(self, conn: Any, sql: str, args: Sequence[Any] = ()) -> ResultSet:
        apsw = self._apsw
        try:
            changes_before = conn.totalchanges()
            cursor = conn.cursor()
            cursor.execute(sql, tuple(args))
            try:
                columns = tuple(d[0] for d in cursor.getdescription())
            except apsw.ExecutionCompleteError:
                # Statement produced no rows (DML, DDL or empty SELECT).
                # changes() still describes an earlier statement unless this one wrote.
                if conn.totalchanges() == changes_before:
                    return ResultSet()
                return ResultSet(
                    rows_affected=conn.changes(),
                    last_insert_rowid=conn.last_insert_rowid(),
                )
            rows = [dict(zip(columns, row)) for row in cursor]
            return ResultSet(columns=columns, rows=rows)
        except apsw.Error as e:
            raise self._translate(e) from e

    def in_transaction(self, conn: Any) -> bool:
        return conn.in_transaction

    def close(self, conn: Any) -> None:
        conn.close()


def _checked_journal_mode(mode: str) -> str:
    normalized = mode.upper()
    if normalized not in JOURNAL_MODES:
        raise ValueError(f"Unknown journal mode: {mode}")
    return normalized


# Factory function
def create_driver(name: str) -> Driver:
    """Create a driver by name."""
    drivers: dict[str, type[Driver]] = {
        "sqlite3": Sqlite3Driver,
        "apsw": APSWDriver,
    }
    if name not in drivers:
        raise ValueError(f"Unknown driver: {name}")
    return drivers[name]()
