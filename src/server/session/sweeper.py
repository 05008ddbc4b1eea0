from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class Sweeper:
    """Repeats ``task`` every ``interval_ms`` on a daemon thread until stopped.

    The thread is a daemon so a forgotten sweeper never keeps the interpreter
    alive. ``stop()`` wakes the thread immediately instead of waiting out the
    current interval.
    """

    def __init__(self, task: Callable[[], object], interval_ms: int, *, name: str = "session-sweeper") -> None:
        if interval_ms <= 0:
            raise ValueError("Sweeper interval must be a positive number of milliseconds")
        self._task = task
        self._interval = interval_ms / 1000
        self._name = name
        self._stopped = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(target=self._loop, name=self._name, daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stopped.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)

    def _loop(self) -> None:
        while not self._stopped.wait(self._interval):
            self._task()
        logger.debug("Sweeper %s stopped", self._name)
