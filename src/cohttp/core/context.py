"""
Server-lifetime context.

Holds the handles of the per-connection threads so the process can wait for
them before exiting. The accept loop registers, shutdown joins; both go
through one lock so a join that races the last registration still sees it.
"""

import logging
import threading
import time
from typing import List, Optional


logger = logging.getLogger(__name__)


class ServerContext:
    """
    Owns the collection of connection threads.

    Finished threads are pruned on every register(), so the collection only
    grows with the number of connections actually in flight.
    """

    def __init__(self):
        self._threads: List[threading.Thread] = []
        self._lock = threading.Lock()
        self.total_registered = 0

    def register(self, thread: threading.Thread) -> None:
        """Track a started connection thread."""
        with self._lock:
            self._threads = [t for t in self._threads if t.is_alive()]
            self._threads.append(thread)
            self.total_registered += 1

    def join_all(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for every registered thread to finish.

        Args:
            timeout: Overall deadline in seconds. None waits forever.

        Returns:
            True if all threads finished, False if the deadline passed first.
        """
        deadline = None if timeout is None else time.monotonic() + timeout

        # Re-snapshot until empty: threads registered mid-join are waited for too
        while True:
            with self._lock:
                self._threads = [t for t in self._threads if t.is_alive()]
                threads = list(self._threads)

            if not threads:
                return True

            if deadline is not None and time.monotonic() >= deadline:
                logger.warning(f"{len(threads)} connection thread(s) still running")
                return False

            logger.debug(f"Waiting for {len(threads)} connection thread(s)")
            for thread in threads:
                if deadline is None:
                    thread.join()
                else:
                    thread.join(max(0.0, deadline - time.monotonic()))

    def __len__(self) -> int:
        """Number of registered threads still running."""
        with self._lock:
            return sum(1 for t in self._threads if t.is_alive())
