"""Tests for the single worker thread."""

import threading

import pytest

from txburst.exceptions import ClientClosedError
from txburst.worker import Worker


class TestWorker:
    """Tests for the Worker class."""

    def test_submit_runs_on_worker_thread(self) -> None:
        worker = Worker(name="txburst-test")
        try:
            future = worker.submit(lambda: threading.current_thread().name)
            assert future.result(timeout=5) == "txburst-test"
            assert worker.thread_name == "txburst-test"
        finally:
            worker.close()

    def test_tasks_run_in_order(self) -> None:
        worker = Worker()
        seen: list[int] = []
        try:
            futures = [worker.submit(seen.append, i) for i in range(50)]
            for future in futures:
                future.result(timeout=5)
            assert seen == list(range(50))
        finally:
            worker.close()

    def test_exception_propagates(self) -> None:
        worker = Worker()

        def fail() -> None:
            raise RuntimeError("boom")

        try:
            with pytest.raises(RuntimeError, match="boom"):
                worker.submit(fail).result(timeout=5)
        finally:
            worker.close()

    async def test_run_awaits_result(self) -> None:
        worker = Worker()
        try:
            assert await worker.run(lambda a, b: a + b, 2, b=3) == 5
        finally:
            worker.close()

    def test_closed_worker_rejects_tasks(self) -> None:
        worker = Worker()
        worker.close()
        assert worker.closed

        with pytest.raises(ClientClosedError):
            worker.submit(lambda: None)

        # Closing again is a no-op
        worker.close()

    def test_cancelled_task_is_skipped(self) -> None:
        worker = Worker()
        gate = threading.Event()
        ran: list[str] = []
        try:
            blocker = worker.submit(gate.wait, 5)
            skipped = worker.submit(ran.append, "skipped")
            assert skipped.cancel()
            gate.set()
            blocker.result(timeout=5)
            worker.submit(lambda: None).result(timeout=5)
            assert ran == []
        finally:
            worker.close()
