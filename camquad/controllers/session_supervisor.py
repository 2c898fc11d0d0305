"""
Per-camera stream lifecycle and the command boundary used by the UI
"""

import logging
import threading
from collections.abc import Callable

from camquad.constants import NetworkConstants, StreamConstants
from camquad.controllers.cancel_scope import CancelScope, CompletionBarrier
from camquad.controllers.frame_channel import FrameChannel
from camquad.controllers.stream_session import StreamSession
from camquad.exceptions import StreamError
from camquad.models.camera import Camera, Quality

logger = logging.getLogger(__name__)


class SessionSupervisor:
    """
    Owns the active stream session for one camera.

    At most one session is active at a time. A quality change cancels the
    current session before starting the next one on the new path; the old
    process is torn down in the background and never blocks the caller.
    """

    def __init__(
        self,
        camera: Camera,
        channel: FrameChannel,
        parent_scope: CancelScope,
        barrier: CompletionBarrier,
        session_factory: Callable[..., StreamSession] = StreamSession,
        log: logging.Logger | None = None,
    ):
        self.camera = camera
        self.channel = channel
        self.parent_scope = parent_scope
        self.barrier = barrier
        self.session_factory = session_factory
        self._log = log or logger
        self.quality = Quality.LOW
        self.active_session: StreamSession | None = None
        self._scope: CancelScope | None = None
        self._lock = threading.Lock()

    @property
    def attached(self) -> bool:
        return self._scope is not None and not self._scope.cancelled

    def attach(self) -> None:
        """
        Start streaming the camera at the current quality (LQ at first).

        No-op while attached. After detach() a new scope and session are
        started.

        Raises:
            StreamError: the parent scope is cancelled (manager shut down)
        """
        with self._lock:
            if self.attached:
                return
            if self.parent_scope.cancelled:
                raise StreamError(f"Cannot attach {self.camera}: streams are shut down")
            self._scope = self.parent_scope.child(name=f"camera {self.camera.ip}")
            self._start_session()
        self._log.info(f"Attached {self.camera} ({self.quality.label})")

    def toggle_quality(self) -> Quality:
        """
        Switch between LQ and HQ.

        Returns:
            The quality now being streamed

        Raises:
            StreamError: camera is not attached
        """
        with self._lock:
            if not self.attached:
                raise StreamError(f"{self.camera} is not attached")
            if self.active_session is not None:
                self.active_session.cancel()
            # Old session is cancelled, so it can no longer offer; drop its last frame
            self.channel.clear()
            self.quality = self.quality.toggled()
            self._start_session()
            quality = self.quality
        self._log.info(f"{self.camera.ip} switched to {quality.label}")
        return quality

    def detach(self) -> None:
        """Stop streaming without a quality change"""
        with self._lock:
            scope = self._scope
            if scope is None or scope.cancelled:
                return
            scope.cancel()
            self._scope = None
            self.active_session = None
        self.channel.clear()
        self._log.info(f"Detached {self.camera}")

    def _start_session(self) -> None:
        session_scope = self._scope.child(name=f"{self.camera.ip}/{self.quality.label}")
        session = self.session_factory(
            self.camera,
            self.quality,
            self.channel,
            session_scope,
            barrier=self.barrier,
            log=self._log,
        )
        self.active_session = session
        session.start()


class StreamManager:
    """
    Fixed set of camera slots sharing one root scope and one barrier.

    Shutdown cancels everything at once and waits on the barrier, so the
    caller gets a bounded answer about whether every decoder is gone.
    """

    def __init__(
        self,
        log: logging.Logger | None = None,
        session_factory: Callable[..., StreamSession] = StreamSession,
        max_cameras: int = NetworkConstants.MAX_CAMERAS,
    ):
        self._log = log or logger
        self.session_factory = session_factory
        self.max_cameras = max_cameras
        self.root_scope = CancelScope(name="application")
        self.barrier = CompletionBarrier()
        self._supervisors: list[SessionSupervisor] = []
        self._channels: list[FrameChannel] = []

    def __len__(self) -> int:
        return len(self._supervisors)

    def attach(self, camera: Camera) -> int:
        """
        Add a camera and start its LQ stream.

        Returns:
            Slot index for the camera

        Raises:
            StreamError: all slots are taken or the manager is shut down
        """
        if self.root_scope.cancelled:
            raise StreamError("Stream manager is shut down")
        if len(self._supervisors) >= self.max_cameras:
            raise StreamError(f"All {self.max_cameras} camera slots are in use")

        index = len(self._supervisors)
        channel = FrameChannel(name=f"cam{index}")
        supervisor = SessionSupervisor(
            camera,
            channel,
            self.root_scope,
            self.barrier,
            session_factory=self.session_factory,
            log=self._log,
        )
        self._channels.append(channel)
        self._supervisors.append(supervisor)
        supervisor.attach()
        return index

    def supervisor(self, index: int) -> SessionSupervisor:
        try:
            return self._supervisors[index]
        except IndexError:
            raise StreamError(f"No camera in slot {index}") from None

    def channel(self, index: int) -> FrameChannel:
        self.supervisor(index)
        return self._channels[index]

    def toggle_quality(self, index: int) -> Quality:
        return self.supervisor(index).toggle_quality()

    def detach(self, index: int) -> None:
        self.supervisor(index).detach()

    def shutdown(self, timeout: float = StreamConstants.SHUTDOWN_TIMEOUT_S) -> bool:
        """
        Cancel every session and wait for all of them to finish.

        Returns:
            True if every session finished within timeout
        """
        self._log.info(f"Shutting down {len(self._supervisors)} camera(s)")
        self.root_scope.cancel()
        if self.barrier.wait(timeout):
            self._log.info("All stream sessions stopped")
            return True
        self._log.warning(
            f"{self.barrier.pending} stream session(s) still running after {timeout}s"
        )
        return False
