"""
txburst: bursts of read-modify-write transactions against local SQLite.

An async single-connection client plus a probe that hammers it with
sequential write transactions to surface locking problems.
"""

from .client import Client, create_client, parse_database_url
from .config import StressConfig
from .drivers import ResultSet
from .exceptions import (
    ClientClosedError,
    ClientError,
    DatabaseError,
    DataError,
    Error,
    IntegrityError,
    InterfaceError,
    InternalError,
    NotSupportedError,
    OperationalError,
    ProgrammingError,
    TransactionClosedError,
    TransactionError,
    TransactionNestingError,
    UnsupportedURLError,
    Warning,
)
from .stress import perform_transaction_with_loop, run, run_bursts, setup_database
from .transactions import Transaction, TransactionMode

__version__ = "0.1.0"

__all__ = [
    # Client
    "Client",
    "create_client",
    "parse_database_url",
    "ResultSet",
    "Transaction",
    "TransactionMode",
    # Probe
    "StressConfig",
    "setup_database",
    "perform_transaction_with_loop",
    "run_bursts",
    "run",
    # Exceptions
    "ClientError",
    "ClientClosedError",
    "UnsupportedURLError",
    "TransactionError",
    "TransactionClosedError",
    "TransactionNestingError",
    # Re-exported sqlite3 exceptions
    "Error",
    "Warning",
    "DatabaseError",
    "DataError",
    "IntegrityError",
    "InterfaceError",
    "InternalError",
    "NotSupportedError",
    "OperationalError",
    "ProgrammingError",
    # Version
    "__version__",
]
