"""
Best-effort error policies.

The probe deliberately keeps going past some failures. Each such place
goes through one of these functions so the policy has a name.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager, suppress
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .client import Client
    from .transactions import Transaction

logger = logging.getLogger(__name__)


@contextmanager
def best_effort(
    message: str,
    *,
    log: logging.Logger = logger,
    level: int = logging.WARNING,
) -> Iterator[None]:
    """Log any Exception raised in the block with message, then continue."""
    try:
        yield
    except Exception as e:
        log.log(level, "%s: %s", message, e)


async def rollback_quietly(tx: "Transaction") -> None:
    """Roll back, discarding any error; the caller's original error wins."""
    with suppress(Exception):
        await tx.rollback()


async def close_quietly(client: "Client", *, log: logging.Logger = logger) -> bool:
    """Close the client, logging failures instead of raising. Returns success."""
    try:
        await client.close()
    except Exception as e:
        log.error("Error closing client: %s", e)
        return False
    return True
