"""
Single-slot, latest-wins frame delivery between a stream session and the display
"""

import logging
import threading
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)


class FrameChannel:
    """
    Capacity-1 channel with non-blocking send and receive.

    offer() replaces any unread frame, so a slow consumer always sees the
    newest frame and the producer never waits. Subscribers are notified on
    the producer's thread after each offer; a Qt consumer should only
    schedule a redraw from the callback and call take() on its own thread.
    """

    def __init__(self, name: str = ""):
        self.name = name
        self._lock = threading.Lock()
        self._frame: Any = None
        self._has_frame = False
        self._subscribers: list[Callable[[Any], None]] = []
        self.frames_offered = 0
        self.frames_replaced = 0
        self.frames_dropped = 0

    def offer(self, frame: Any, accept: Callable[[], bool] | None = None) -> bool:
        """
        Store frame without blocking.

        Args:
            frame: Frame to publish
            accept: Checked under the channel lock; the frame is dropped
                unless it returns True. Lets a producer that may be
                cancelled concurrently never publish after clear().

        Returns:
            True if the slot was empty, False if an unread frame was
            replaced or the frame was dropped
        """
        with self._lock:
            if accept is not None and not accept():
                self.frames_dropped += 1
                return False
            replaced = self._has_frame
            self._frame = frame
            self._has_frame = True
            self.frames_offered += 1
            if replaced:
                self.frames_replaced += 1
            subscribers = list(self._subscribers)

        for callback in subscribers:
            try:
                callback(frame)
            except Exception:
                logger.exception(f"[{self.name}] Frame subscriber failed")
        return not replaced

    def take(self) -> Any:
        """Return and clear the unread frame, or None if there is none"""
        with self._lock:
            if not self._has_frame:
                return None
            frame = self._frame
            self._frame = None
            self._has_frame = False
            return frame

    def clear(self) -> None:
        with self._lock:
            self._frame = None
            self._has_frame = False

    def subscribe(self, callback: Callable[[Any], None]) -> None:
        with self._lock:
            if callback not in self._subscribers:
                self._subscribers.append(callback)

    def unsubscribe(self, callback: Callable[[Any], None]) -> None:
        with self._lock:
            if callback in self._subscribers:
                self._subscribers.remove(callback)
