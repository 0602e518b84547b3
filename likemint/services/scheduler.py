"""Background scheduler that triggers periodic jobs such as the event mirror."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict

LOGGER = logging.getLogger("likemint.scheduler")


@dataclass
class ScheduledTask:
    name: str
    interval: float
    handler: Callable[[], None]
    last_run: float = 0.0


class SchedulerService:
    def __init__(self, tick: float = 1.0):
        self.tick = tick
        self._tasks: Dict[str, ScheduledTask] = {}
        self._thread: threading.Thread | None = None
        self._stop = threading.Event()

    def add_task(self, name: str, interval: float, handler: Callable[[], None]) -> None:
        self._tasks[name] = ScheduledTask(name=name, interval=interval, handler=handler)

    def run_pending(self, now: float | None = None) -> None:
        now = time.time() if now is None else now
        for task in self._tasks.values():
            if now - task.last_run >= task.interval:
                try:
                    task.handler()
                except Exception as exc:
                    LOGGER.exception("Scheduled task %s failed: %s", task.name, exc)
                task.last_run = now

    def start(self) -> None:
        if self._thread:
            return

        def _loop():
            while not self._stop.is_set():
                self.run_pending()
                self._stop.wait(self.tick)

        self._thread = threading.Thread(target=_loop, name="likemint-scheduler", daemon=True)
        self._thread.start()
        LOGGER.info("Scheduler started with tasks: %s", ", ".join(self._tasks) or "-")

    def stop(self) -> None:
        if self._thread:
            self._stop.set()
            self._thread.join(timeout=2)
            self._thread = None
            self._stop.clear()
