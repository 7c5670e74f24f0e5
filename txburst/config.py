"""Run configuration for the burst probe."""

from __future__ import annotations

from dataclasses import dataclass, field

from .drivers import JOURNAL_MODES

DEFAULT_DATABASE_URL = "file:./local_minimal_test.db"
SEED_ID_PREFIX = "item_m_"


@dataclass(frozen=True)
class StressConfig:
    """
    Immutable parameters of one probe run.

    The defaults reproduce the reference run: two seeded rows, both updated
    by every transaction, 4 bursts of 10 transactions, 200ms between
    transactions and 1s between bursts.
    """

    database_url: str = DEFAULT_DATABASE_URL
    driver: str = "sqlite3"
    seed_count: int = 2
    item_ids: tuple[str, ...] = field(default=("item_m_0", "item_m_1"))
    num_bursts: int = 4
    transactions_per_burst: int = 10
    delay_short: float = 0.2  # seconds, between transactions in a burst
    delay_long: float = 1.0  # seconds, between bursts
    busy_timeout_ms: int = 5000
    journal_mode: str | None = "WAL"

    def __post_init__(self) -> None:
        # Accept any iterable of ids (lists from argparse, generators)
        object.__setattr__(self, "item_ids", tuple(self.item_ids))

        for name in (
            "seed_count",
            "num_bursts",
            "transactions_per_burst",
            "busy_timeout_ms",
            "delay_short",
            "delay_long",
        ):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0, got {getattr(self, name)}")
        if not self.database_url:
            raise ValueError("database_url must not be empty")
        if self.journal_mode is not None and self.journal_mode.upper() not in JOURNAL_MODES:
            raise ValueError(f"Unknown journal mode: {self.journal_mode}")

    @property
    def seed_ids(self) -> list[str]:
        """Ids inserted by the setup routine."""
        return [f"{SEED_ID_PREFIX}{i}" for i in range(self.seed_count)]

    @property
    def total_transactions(self) -> int:
        return self.num_bursts * self.transactions_per_burst
