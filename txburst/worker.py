"""
Single background thread that owns the database connection.

Uses a blocking Queue.get() so the thread sleeps until work arrives.
Every task runs on the same thread, in submission order, which is what
keeps an open transaction on one connection.
"""

from __future__ import annotations

import asyncio
import threading
from concurrent.futures import Future
from dataclasses import dataclass
from queue import Queue
from typing import Any, Callable, TypeVar

from .exceptions import ClientClosedError

T = TypeVar("T")


@dataclass
class Task:
    """A task to be executed on the worker thread."""

    func: Callable[..., Any]
    args: tuple[Any, ...]
    kwargs: dict[str, Any]
    future: Future[Any]


class Worker:
    """
    One thread, one queue.

    SQLite connections are bound to the thread that created them, so the
    connection is opened by the first task and used by every later one.
    """

    def __init__(self, name: str = "txburst-writer") -> None:
        self._queue: Queue[Task | None] = Queue()
        self._closed = False
        self._thread = threading.Thread(
            target=self._loop,
            name=name,
            daemon=True,
        )
        self._thread.start()

    def _loop(self) -> None:
        """Main loop for the worker thread."""
        while True:
            task = self._queue.get()
            if task is None:  # Shutdown sentinel
                break
            self._execute_task(task)

    def _execute_task(self, task: Task) -> None:
        """Execute a task and set its result or exception."""
        if not task.future.set_running_or_notify_cancel():
            return

        try:
            result = task.func(*task.args, **task.kwargs)
            task.future.set_result(result)
        except Exception as e:
            task.future.set_exception(e)

    def submit(
        self,
        func: Callable[..., T],
        *args: Any,
        **kwargs: Any,
    ) -> Future[T]:
        """Queue a task for the worker thread."""
        if self._closed:
            raise ClientClosedError("Worker is closed")

        future: Future[T] = Future()
        self._queue.put(Task(func=func, args=args, kwargs=kwargs, future=future))
        return future

    async def run(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Submit a task and await its result from the event loop."""
        return await asyncio.wrap_future(self.submit(func, *args, **kwargs))

    def close(self, wait: bool = True) -> None:
        """Stop accepting tasks and let the thread drain the queue."""
        if self._closed:
            return

        self._closed = True
        self._queue.put(None)

        if wait:
            self._thread.join(timeout=5.0)

    @property
    def closed(self) -> bool:
        """Return True if the worker is closed."""
        return self._closed

    @property
    def thread_name(self) -> str:
        return self._thread.name
