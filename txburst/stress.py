"""
Burst probe for read-modify-write transactions.

Seeds a small table, then runs bursts of strictly sequential write
transactions. Each transaction reads a counter, increments it and writes
it back for every targeted row before committing. The outcome of each
transaction is reported through logging only; a human reads the log for
contention symptoms such as unexpected commit failures.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Sequence
from typing import Callable

from .client import Client, create_client
from .config import StressConfig
from .policies import best_effort, close_quietly, rollback_quietly
from .transactions import Transaction, TransactionMode

logger = logging.getLogger(__name__)

TABLE_NAME = "items_minimal"

CREATE_TABLE_SQL = f"""
    CREATE TABLE IF NOT EXISTS {TABLE_NAME} (
        id TEXT PRIMARY KEY,
        value INTEGER NOT NULL DEFAULT 0
    )
"""
CLEAR_SQL = f"DELETE FROM {TABLE_NAME}"
INSERT_SQL = f"INSERT INTO {TABLE_NAME} (id, value) VALUES (?, 0)"
SELECT_VALUE_SQL = f"SELECT value FROM {TABLE_NAME} WHERE id = ?"
UPDATE_VALUE_SQL = f"UPDATE {TABLE_NAME} SET value = ? WHERE id = ?"

Sleep = Callable[[float], Awaitable[object]]


async def setup_database(client: Client, config: StressConfig) -> None:
    """Create and clear the table, then seed it. Every step is best effort."""
    logger.info("[SETUP] Ensuring table and seeding items...")

    with best_effort("[SETUP] Could not create table (might be okay if it exists)", log=logger):
        await client.execute(CREATE_TABLE_SQL)

    with best_effort("[SETUP] Could not clear table", log=logger):
        await client.execute(CLEAR_SQL)

    for item_id in config.seed_ids:
        with best_effort(f"[SETUP] Could not insert {item_id}", log=logger):
            await client.execute(INSERT_SQL, [item_id])

    logger.info("[SETUP] Seeded/Ensured %d items.", config.seed_count)


async def perform_transaction_with_loop(
    client: Client, label: str, item_ids: Sequence[str]
) -> bool:
    """
    Increment every existing row in item_ids inside one write transaction.

    Rows that do not exist are skipped. Returns True only if the commit
    succeeded; any other failure rolls back and returns False.
    """
    logger.info("[%s] Attempting transaction with internal update loop...", label)
    tx: Transaction | None = None
    try:
        tx = await client.transaction(TransactionMode.WRITE)

        for item_id in item_ids:
            result = await tx.execute(SELECT_VALUE_SQL, [item_id])
            if not result.rows:
                logger.debug("[%s] Item %s not found, skipping", label, item_id)
                continue

            new_value = result.rows[0]["value"] + 1
            await tx.execute(UPDATE_VALUE_SQL, [new_value, item_id])

        await tx.commit()
    except Exception as e:
        logger.error("[%s] Transaction FAILED: %r", label, e)
        if tx is not None:
            await rollback_quietly(tx)
        return False

    logger.info("[%s] Transaction successful!", label)
    return True


async def run_bursts(
    client: Client, config: StressConfig, *, sleep: Sleep = asyncio.sleep
) -> None:
    """Run num_bursts bursts of transactions_per_burst sequential transactions."""
    for burst in range(config.num_bursts):
        logger.info(
            "===== STARTING BURST %d of %d =====", burst + 1, config.num_bursts
        )
        for i in range(config.transactions_per_burst):
            label = f"B{burst + 1}/T{i + 1}"
            await perform_transaction_with_loop(client, label, config.item_ids)

            if i < config.transactions_per_burst - 1:
                await sleep(config.delay_short)

        if burst < config.num_bursts - 1:
            logger.info(
                "===== ENDING BURST %d, Pausing for %gs =====",
                burst + 1,
                config.delay_long,
            )
            await sleep(config.delay_long)


async def run(
    config: StressConfig,
    *,
    client: Client | None = None,
    sleep: Sleep = asyncio.sleep,
) -> None:
    """
    Set up the table, run every burst and always close the client.

    Errors escaping setup or the burst loop are logged as fatal and do not
    propagate. Only a failure to create the client does.
    """
    if client is None:
        client = await create_client(
            config.database_url,
            driver=config.driver,
            busy_timeout_ms=config.busy_timeout_ms,
            journal_mode=config.journal_mode,
        )
    logger.info("Client initialized (%s).", config.database_url)

    try:
        await setup_database(client, config)
        await run_bursts(client, config, sleep=sleep)
    except Exception:
        logger.exception("FATAL: Unhandled error in main test loop")
    finally:
        logger.info("--- Burst test finished (or crashed) ---")
        logger.info("Closing client...")
        if await close_quietly(client, log=logger):
            logger.info("Client closed.")
