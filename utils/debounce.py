"""Timer-based debouncing for search input and profile auto-save."""

import threading
from typing import Any, Callable


class Debouncer:
    """
    Delays a callback until no new call arrived for `delay` seconds.

    Only the latest arguments are used. A delay of 0 or less runs the
    callback immediately on the calling thread. Each scheduled timer carries
    a generation number; a timer that fires after it was replaced or
    cancelled does nothing.
    """

    def __init__(self, delay: float, callback: Callable[..., Any]):
        self.delay = delay
        self._callback = callback
        self._timer: threading.Timer | None = None
        self._pending: tuple[tuple, dict] | None = None
        self._generation = 0
        self._lock = threading.Lock()

    @property
    def pending(self) -> bool:
        return self._pending is not None

    def call(self, *args: Any, **kwargs: Any) -> None:
        if self.delay <= 0:
            self._callback(*args, **kwargs)
            return
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._generation += 1
            self._pending = (args, kwargs)
            self._timer = threading.Timer(self.delay, self._fire, args=(self._generation,))
            self._timer.daemon = True
            self._timer.start()

    def _fire(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation:
                return
            pending = self._pending
            self._pending = None
            self._timer = None
        if pending is not None:
            args, kwargs = pending
            self._callback(*args, **kwargs)

    def flush(self) -> bool:
        """Run a pending call now. Returns True if something ran."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            self._generation += 1
            pending = self._pending
            self._pending = None
        if pending is None:
            return False
        args, kwargs = pending
        self._callback(*args, **kwargs)
        return True

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._generation += 1
            self._timer = None
            self._pending = None
