"""Shared pytest configuration and fixtures for CamQuad test suite."""

import os
import sys
from pathlib import Path

import pytest

# Qt widgets render without a display server
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

# Ensure the project root is in the path for imports
PROJECT_ROOT = Path(__file__).parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from camquad.models.camera import Camera  # noqa: E402


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "posix: mark test as relying on POSIX process groups"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )


# =============================================================================
# Shared Fixtures
# =============================================================================

@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def camera() -> Camera:
    """Camera with distinct HQ and LQ paths."""
    return Camera.create(
        ip="10.0.0.5",
        username="admin",
        password="secret",
        rtsp_path="/stream1",
        lq_rtsp_path="/stream2",
    )


@pytest.fixture
def config_path(tmp_path) -> Path:
    """Return a camera-list path inside the test's temp dir."""
    return tmp_path / "config" / "cameras.json"


# =============================================================================
# Fake decoder processes
# =============================================================================

# Writes its grandchild's pid to argv[1], then streams fake JPEG frames forever
ENDLESS_DECODER = r"""
import subprocess, sys, time
helper = subprocess.Popen([sys.executable, "-c", "import time; time.sleep(120)"])
with open(sys.argv[1], "w") as f:
    f.write(str(helper.pid))
out = sys.stdout.buffer
while True:
    out.write(b"\xff\xd8" + b"frame" * 20 + b"\xff\xd9")
    out.flush()
    time.sleep(0.01)
"""

# Streams argv[1] fake frames, then exits
FINITE_DECODER = r"""
import sys
out = sys.stdout.buffer
for n in range(int(sys.argv[1])):
    out.write(b"\xff\xd8" + bytes([n]) * 50 + b"\xff\xd9")
out.flush()
"""


@pytest.fixture
def endless_decoder(tmp_path):
    """Command builder for a decoder that never ends, and its helper-pid file."""
    pid_file = tmp_path / "helper.pid"

    def build(url):
        return [sys.executable, "-c", ENDLESS_DECODER, str(pid_file)]

    return build, pid_file


@pytest.fixture
def finite_decoder():
    """Return a command-builder factory for a decoder emitting a fixed frame count."""
    def factory(count):
        return lambda url: [sys.executable, "-c", FINITE_DECODER, str(count)]

    return factory


def wait_for(predicate, timeout: float = 10.0, interval: float = 0.02) -> bool:
    """Poll predicate until it is true or timeout expires."""
    import time

    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


def process_gone(pid: int) -> bool:
    """True if pid no longer runs (a zombie awaiting its reaper counts as gone)."""
    import psutil

    try:
        return psutil.Process(pid).status() == psutil.STATUS_ZOMBIE
    except psutil.NoSuchProcess:
        return True


@pytest.fixture
def poll():
    return wait_for


@pytest.fixture
def gone():
    return process_gone
