"""
Camera discovery: ONVIF first, TCP port scan as fallback
"""

import logging
from collections.abc import Callable

from camquad.constants import NetworkConstants
from camquad.discovery.onvif import discover_onvif
from camquad.discovery.port_scan import scan_subnet
from camquad.models.camera import Camera

logger = logging.getLogger(__name__)


def discover_cameras(
    prefix: str,
    port: int = NetworkConstants.RTSP_DEFAULT_PORT,
    timeout: float = NetworkConstants.PORT_SCAN_TIMEOUT_MS / 1000.0,
    max_results: int = NetworkConstants.MAX_CAMERAS,
    onvif: Callable[..., list[Camera]] = discover_onvif,
    port_scan: Callable[..., list[Camera]] = scan_subnet,
    log: logging.Logger | None = None,
) -> list[Camera]:
    """
    Return ONVIF-discovered cameras, else port-scan hits, else [].

    Args:
        prefix: /24 prefix for the port-scan fallback, e.g. "192.168.0"
        port: TCP port probed by the port scan
        timeout: Per-connection port-scan timeout in seconds
        max_results: Maximum number of cameras returned
        onvif: ONVIF discovery callable
        port_scan: Port-scan callable
        log: Logger for diagnostics (defaults to module logger)
    """
    log = log or logger

    cameras = onvif(log=log)
    if cameras:
        log.info(f"[Discovery] ONVIF found {len(cameras)} camera(s)")
        return cameras[:max_results]

    log.info("[Discovery] No ONVIF cameras, falling back to port scan")
    cameras = port_scan(prefix, port=port, timeout=timeout, max_results=max_results, log=log)
    return cameras[:max_results]


__all__ = ["discover_cameras", "discover_onvif", "scan_subnet"]
