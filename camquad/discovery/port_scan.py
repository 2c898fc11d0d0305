"""
TCP port-scan discovery of RTSP cameras on a /24 subnet
"""

import logging
import socket
import threading
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor

from camquad.constants import NetworkConstants, StreamConstants
from camquad.models.camera import Camera
from camquad.ui_strings import UIStrings

logger = logging.getLogger(__name__)

Connector = Callable[[str, int, float], bool]


def probe_tcp(ip: str, port: int, timeout: float) -> bool:
    """Return True if ip:port accepts a TCP connection within timeout"""
    try:
        with socket.create_connection((ip, port), timeout=timeout):
            return True
    except OSError:
        return False


def camera_for_open_port(ip: str, port: int = NetworkConstants.RTSP_DEFAULT_PORT) -> Camera:
    """Camera record for a host found by port scan, with placeholder credentials"""
    return Camera.create(
        ip=ip,
        username=StreamConstants.PLACEHOLDER_USERNAME,
        password=StreamConstants.PLACEHOLDER_PASSWORD,
        rtsp_path=StreamConstants.DEFAULT_RTSP_PATH,
        name=UIStrings.CAMERA_NAME_RTSP,
        rtsp_port=port,
    )


def scan_subnet(
    prefix: str,
    port: int = NetworkConstants.RTSP_DEFAULT_PORT,
    timeout: float = NetworkConstants.PORT_SCAN_TIMEOUT_MS / 1000.0,
    max_results: int = NetworkConstants.MAX_CAMERAS,
    connector: Connector | None = None,
    max_workers: int = NetworkConstants.PORT_SCAN_WORKERS,
    log: logging.Logger | None = None,
) -> list[Camera]:
    """
    Probe prefix.1 - prefix.254 for an open TCP port.

    Attempts run on a bounded worker pool. Once max_results hosts have
    answered, a stop event tells queued attempts to return without
    connecting; attempts already in flight finish but their hits are
    dropped. Returns after every attempt has finished.

    Args:
        prefix: First three octets, e.g. "192.168.0"
        port: TCP port to probe
        timeout: Per-connection timeout in seconds
        max_results: Result cap
        connector: Replacement for probe_tcp (tests)
        max_workers: Worker pool size
        log: Logger for diagnostics (defaults to module logger)

    Returns:
        Cameras for responding hosts, ordered by host number
    """
    log = log or logger
    connect = connector or probe_tcp
    prefix = prefix.rstrip(".")

    if max_results <= 0:
        return []

    found: list[tuple[int, str]] = []
    lock = threading.Lock()
    stop = threading.Event()

    def attempt(host: int) -> None:
        if stop.is_set():
            return
        ip = f"{prefix}.{host}"
        if not connect(ip, port, timeout):
            return
        with lock:
            if len(found) < max_results:
                found.append((host, ip))
                log.debug(f"[Scan] {ip}:{port} open")
            if len(found) >= max_results:
                stop.set()

    log.info(f"[Scan] Probing {prefix}.0/24 port {port} (timeout {timeout * 1000:.0f}ms)")
    with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="PortScan") as pool:
        futures = [
            pool.submit(attempt, host)
            for host in range(
                NetworkConstants.PORT_SCAN_FIRST_HOST, NetworkConstants.PORT_SCAN_LAST_HOST + 1
            )
        ]
        for future in futures:
            future.result()

    cameras = [camera_for_open_port(ip, port) for _host, ip in sorted(found)]
    log.info(f"[Scan] Found {len(cameras)} host(s) with port {port} open")
    return cameras
