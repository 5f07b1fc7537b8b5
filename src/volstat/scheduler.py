from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class PeriodicTask:
    """Runs func every interval seconds on a daemon thread until stopped.

    stop() only prevents further runs; a run already in progress finishes.
    The first run happens one interval after start().
    """

    def __init__(self, interval: float, func: Callable[[], object], name: str = "volstat-periodic"):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.interval = interval
        self.func = func
        self.name = name
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.runs = 0

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.is_running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name=self.name, daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    def _loop(self) -> None:
        while not self._stop.wait(self.interval):
            try:
                self.func()
            except Exception:
                # next tick is the retry
                logger.exception("%s: run failed", self.name)
            self.runs += 1
