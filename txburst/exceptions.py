"""Custom exceptions for txburst."""

import sqlite3


# Re-export sqlite3 exceptions so both drivers raise one family
DatabaseError = sqlite3.DatabaseError
DataError = sqlite3.DataError
Error = sqlite3.Error
IntegrityError = sqlite3.IntegrityError
InterfaceError = sqlite3.InterfaceError
InternalError = sqlite3.InternalError
NotSupportedError = sqlite3.NotSupportedError
OperationalError = sqlite3.OperationalError
ProgrammingError = sqlite3.ProgrammingError
Warning = sqlite3.Warning


class ClientError(Exception):
    """Base exception for client errors."""

    pass


class ClientClosedError(ClientError):
    """Raised when attempting to use a closed client."""

    pass


class UnsupportedURLError(ClientError):
    """Raised for database URLs that do not point at a local file."""

    pass


class TransactionError(ClientError):
    """Base exception for transaction errors."""

    pass


class TransactionClosedError(TransactionError):
    """Raised when a committed or rolled back transaction is used again."""

    pass


class TransactionNestingError(TransactionError):
    """Raised when Client.execute is called by the task holding the open transaction."""

    pass
