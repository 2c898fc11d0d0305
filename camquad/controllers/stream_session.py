"""
One ffmpeg decode process bound to one camera and one quality level
"""

import logging
import threading
from collections.abc import Callable
from typing import Any

from camquad.constants import StreamConstants
from camquad.controllers.cancel_scope import CancelScope, CompletionBarrier
from camquad.controllers.child_process import ChildProcess
from camquad.controllers.frame_channel import FrameChannel
from camquad.controllers.frame_extractor import FrameExtractor, decode_jpeg
from camquad.exceptions import DecoderStartError
from camquad.models.camera import Camera, Quality

logger = logging.getLogger(__name__)


def build_ffmpeg_command(url: str, ffmpeg_path: str = StreamConstants.FFMPEG_EXECUTABLE) -> list[str]:
    """ffmpeg arguments: RTSP over TCP in, concatenated JPEG frames on stdout"""
    return [
        ffmpeg_path,
        "-rtsp_transport", "tcp",
        "-i", url,
        "-f", "image2pipe",
        "-vcodec", "mjpeg",
        "-",
    ]


class StreamSession:
    """
    Runs one decoder process and forwards its frames to a FrameChannel.

    The session owns its process group. Teardown (group kill plus closing
    the stdout pipe) happens when the scope is cancelled or when the
    stream ends on its own, whichever comes first; both paths may run and
    the second is harmless. There is no reconnect: a stream that ends stays
    ended until the supervisor starts a new session.
    """

    def __init__(
        self,
        camera: Camera,
        quality: Quality,
        channel: FrameChannel,
        scope: CancelScope,
        barrier: CompletionBarrier | None = None,
        command_builder: Callable[[str], list[str]] = build_ffmpeg_command,
        decoder: Callable[[bytes], Any] = decode_jpeg,
        log: logging.Logger | None = None,
    ):
        self.camera = camera
        self.quality = quality
        self.channel = channel
        self.scope = scope
        self.barrier = barrier
        self.command_builder = command_builder
        self.decoder = decoder
        self._log = log or logger
        self.url = camera.stream_url(quality)
        self.name = f"{camera.ip}/{quality.label}"
        self.frames_delivered = 0
        self._process: ChildProcess | None = None
        self._thread: threading.Thread | None = None
        self._watcher: threading.Thread | None = None
        self._wake = threading.Event()
        self._finished = threading.Event()

    def __repr__(self):
        return f"StreamSession({self.name}, pid={self.pid})"

    @property
    def pid(self) -> int | None:
        return self._process.pid if self._process else None

    @property
    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def finished(self) -> bool:
        return self._finished.is_set()

    def start(self) -> None:
        """Launch the session worker in the background"""
        if self._thread is not None:
            raise RuntimeError(f"{self!r} already started")
        if self.barrier is not None:
            self.barrier.add()
        self._thread = threading.Thread(
            target=self._run, name=f"StreamSession-{self.name}", daemon=True
        )
        self._thread.start()

    def cancel(self) -> None:
        """Request teardown; the worker exits once the process is killed"""
        self.scope.cancel()

    def join(self, timeout: float | None = None) -> bool:
        """Wait for the worker; returns True if it has finished"""
        if self._thread is None:
            return True
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def _run(self) -> None:
        self._log.debug(f"[{self.name}] Session starting")
        try:
            if self.scope.cancelled:
                return

            self._process = ChildProcess(self.command_builder(self.url), log=self._log)
            try:
                self._process.start()
            except DecoderStartError as e:
                self._log.debug(f"[{self.name}] {e}")
                return

            self.scope.add_callback(self._wake.set)
            self._watcher = threading.Thread(
                target=self._watch, name=f"StreamWatcher-{self.name}", daemon=True
            )
            self._watcher.start()

            extractor = FrameExtractor(
                self._process.stdout,
                decoder=self.decoder,
                is_cancelled=lambda: self.scope.cancelled,
                name=self.name,
                log=self._log,
            )
            for frame in extractor:
                if self.scope.cancelled:
                    break
                if not self.channel.offer(frame, accept=self._accepting) and self.scope.cancelled:
                    break
                self.frames_delivered += 1
        except Exception:
            self._log.exception(f"[{self.name}] Stream session crashed")
        finally:
            self._finished.set()
            self._wake.set()
            self._teardown("session finished")
            self.scope.remove_callback(self._wake.set)
            if self._watcher is not None:
                self._watcher.join(StreamConstants.WATCHER_JOIN_TIMEOUT_S)
            self.scope.close()
            self._log.debug(
                f"[{self.name}] Session exiting after {self.frames_delivered} frame(s)"
            )
            if self.barrier is not None:
                self.barrier.done()

    def _accepting(self) -> bool:
        return not self.scope.cancelled

    def _watch(self) -> None:
        """Kill the process as soon as the scope is cancelled"""
        self._wake.wait()
        if self.scope.cancelled and not self._finished.is_set():
            self._teardown("cancelled")

    def _teardown(self, reason: str) -> None:
        if self._process is None:
            return
        self._log.debug(f"[{self.name}] Killing decoder process group ({reason})")
        self._process.kill_group()
