"""
Decoder child process handle with process-group teardown.

The decoder runs in its own process group so that it and everything it
spawns can be killed as a unit. Where process groups cannot be signalled
(Windows), descendants are enumerated with psutil and killed one by one.
"""

import logging
import os
import signal
import subprocess
import threading

import psutil

from camquad.constants import StreamConstants
from camquad.exceptions import DecoderStartError

logger = logging.getLogger(__name__)

HAS_PROCESS_GROUPS = hasattr(os, "killpg") and hasattr(os, "getpgid")


class ChildProcess:
    """Handle for one external process: start, wait, kill_group"""

    def __init__(self, argv: list[str], log: logging.Logger | None = None):
        self.argv = list(argv)
        self._log = log or logger
        self._process: subprocess.Popen | None = None
        self._kill_lock = threading.Lock()
        self._killed = False

    @property
    def pid(self) -> int | None:
        return self._process.pid if self._process else None

    @property
    def stdout(self):
        """Raw (unbuffered) stdout pipe of the running process"""
        return self._process.stdout if self._process else None

    def start(self) -> None:
        """
        Spawn the process in a new process group.

        Raises:
            DecoderStartError: executable missing or not runnable
        """
        kwargs = {}
        if HAS_PROCESS_GROUPS:
            kwargs["start_new_session"] = True
        else:
            kwargs["creationflags"] = getattr(subprocess, "CREATE_NEW_PROCESS_GROUP", 0)

        try:
            self._process = subprocess.Popen(
                self.argv,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.DEVNULL,
                bufsize=0,
                **kwargs,
            )
        except OSError as e:
            raise DecoderStartError(f"Cannot start {self.argv[0]}: {e}") from e

        self._log.debug(f"Started {self.argv[0]} pid={self._process.pid}")

    def poll(self) -> int | None:
        return self._process.poll() if self._process else None

    def wait(self, timeout: float | None = None) -> int | None:
        """Wait for exit; returns the exit code, or None on timeout"""
        if self._process is None:
            return None
        try:
            return self._process.wait(timeout=timeout)
        except subprocess.TimeoutExpired:
            return None

    def kill_group(self) -> None:
        """
        Forcefully kill the process and its group, then close stdout.

        Safe to call repeatedly and from several threads: only the first
        call signals, later calls only re-close the pipe.
        """
        if self._process is None:
            return

        with self._kill_lock:
            first = not self._killed
            self._killed = True

        if first:
            if HAS_PROCESS_GROUPS:
                self._kill_process_group()
            else:
                self._kill_process_tree()
            if self.wait(StreamConstants.KILL_REAP_TIMEOUT_S) is None:
                self._log.warning(f"pid={self._process.pid} still running after kill")

        self._close_stdout()

    def _kill_process_group(self) -> None:
        pid = self._process.pid
        try:
            pgid = os.getpgid(pid)
        except OSError:
            # Process already reaped; fall back to killing the main process only
            self._kill_main()
            return

        try:
            os.killpg(pgid, signal.SIGKILL)
            self._log.debug(f"Killed process group {pgid}")
        except ProcessLookupError:
            pass
        except OSError as e:
            self._log.debug(f"killpg({pgid}) failed: {e}, killing pid={pid} only")
            self._kill_main()

    def _kill_process_tree(self) -> None:
        try:
            parent = psutil.Process(self._process.pid)
            children = parent.children(recursive=True)
        except psutil.NoSuchProcess:
            children = []

        for child in children:
            try:
                child.kill()
            except psutil.NoSuchProcess:
                pass
        self._kill_main()
        self._log.debug(f"Killed pid={self._process.pid} and {len(children)} descendant(s)")

    def _kill_main(self) -> None:
        try:
            self._process.kill()
        except OSError:
            pass

    def _close_stdout(self) -> None:
        stdout = self._process.stdout
        if stdout is None:
            return
        try:
            stdout.close()
        except OSError as e:
            self._log.debug(f"Error closing decoder stdout: {e}")
