"""
Hierarchical cancellation and a completion barrier for background workers.

Scopes form a tree: application -> camera -> stream session. Cancelling a
scope cancels every descendant.
"""

import logging
import threading
from collections.abc import Callable

logger = logging.getLogger(__name__)


class CancelScope:
    """
    Cooperative cancellation token with children and callbacks.

    Thread Safety:
        All methods may be called from any thread. Callbacks run on the
        thread that calls cancel(), outside the internal lock.
    """

    def __init__(self, parent: "CancelScope | None" = None, name: str = ""):
        self.name = name
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._children: set[CancelScope] = set()
        self._callbacks: list[Callable[[], None]] = []
        self._parent = parent
        if parent is not None:
            parent._adopt(self)

    def __repr__(self):
        state = "cancelled" if self.cancelled else "active"
        return f"CancelScope({self.name!r}, {state})"

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def child(self, name: str = "") -> "CancelScope":
        """Create a child scope (already cancelled if this scope is)"""
        return CancelScope(parent=self, name=name)

    def _adopt(self, child: "CancelScope") -> None:
        with self._lock:
            if not self._event.is_set():
                self._children.add(child)
                return
        child.cancel()

    def _discard(self, child: "CancelScope") -> None:
        with self._lock:
            self._children.discard(child)

    def add_callback(self, callback: Callable[[], None]) -> None:
        """Run callback once on cancellation (immediately if already cancelled)"""
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(callback)
                return
        callback()

    def remove_callback(self, callback: Callable[[], None]) -> None:
        with self._lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

    def cancel(self) -> None:
        """Cancel this scope and all descendants. Idempotent."""
        with self._lock:
            if self._event.is_set():
                return
            self._event.set()
            children = list(self._children)
            callbacks = self._callbacks
            self._children = set()
            self._callbacks = []

        logger.debug(f"Cancelled {self!r} ({len(children)} child scope(s))")
        for child in children:
            child.cancel()
        for callback in callbacks:
            try:
                callback()
            except Exception:
                logger.exception(f"Cancel callback failed for {self!r}")

    def wait(self, timeout: float | None = None) -> bool:
        """Block until cancelled; returns True if cancelled"""
        return self._event.wait(timeout)

    def close(self) -> None:
        """Detach from the parent once the scope's work is finished"""
        if self._parent is not None:
            self._parent._discard(self)
            self._parent = None

    @property
    def child_count(self) -> int:
        with self._lock:
            return len(self._children)


class CompletionBarrier:
    """Counts outstanding workers so shutdown can wait for all of them"""

    def __init__(self):
        self._pending = 0
        self._condition = threading.Condition()

    def add(self, count: int = 1) -> None:
        with self._condition:
            self._pending += count

    def done(self) -> None:
        with self._condition:
            if self._pending <= 0:
                raise RuntimeError("CompletionBarrier.done() called more times than add()")
            self._pending -= 1
            if self._pending == 0:
                self._condition.notify_all()

    @property
    def pending(self) -> int:
        with self._condition:
            return self._pending

    def wait(self, timeout: float | None = None) -> bool:
        """Wait until no workers are pending; returns False on timeout"""
        with self._condition:
            return self._condition.wait_for(lambda: self._pending == 0, timeout)
