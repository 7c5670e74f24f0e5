"""Tests for the best-effort error policies."""

import logging

from txburst.policies import best_effort, close_quietly, rollback_quietly


class _Rollback:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.calls = 0

    async def rollback(self) -> None:
        self.calls += 1
        if self.error is not None:
            raise self.error


class _Closeable:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.calls = 0

    async def close(self) -> None:
        self.calls += 1
        if self.error is not None:
            raise self.error


class TestBestEffort:
    def test_logs_and_continues(self, caplog) -> None:
        caplog.set_level(logging.WARNING)
        reached = False
        with best_effort("Could not do the thing"):
            raise RuntimeError("nope")
        reached = True

        assert reached
        assert [r.getMessage() for r in caplog.records] == ["Could not do the thing: nope"]
        assert caplog.records[0].levelno == logging.WARNING

    def test_custom_logger_and_level(self, caplog) -> None:
        log = logging.getLogger("txburst.test")
        caplog.set_level(logging.DEBUG, logger="txburst.test")
        with best_effort("quiet", log=log, level=logging.DEBUG):
            raise ValueError("x")

        assert caplog.records[0].name == "txburst.test"
        assert caplog.records[0].levelno == logging.DEBUG

    def test_no_error_logs_nothing(self, caplog) -> None:
        with best_effort("unused"):
            pass
        assert caplog.records == []


class TestRollbackQuietly:
    async def test_swallows_errors_silently(self, caplog) -> None:
        caplog.set_level(logging.DEBUG)
        tx = _Rollback(RuntimeError("rollback failed"))

        await rollback_quietly(tx)

        assert tx.calls == 1
        assert caplog.records == []

    async def test_success(self) -> None:
        tx = _Rollback()
        await rollback_quietly(tx)
        assert tx.calls == 1


class TestCloseQuietly:
    async def test_success(self) -> None:
        client = _Closeable()
        assert await close_quietly(client) is True
        assert client.calls == 1

    async def test_failure_logged(self, caplog) -> None:
        client = _Closeable(OSError("disk gone"))
        assert await close_quietly(client) is False
        assert client.calls == 1
        assert caplog.records[0].levelno == logging.ERROR
        assert caplog.records[0].getMessage() == "Error closing client: disk gone"
