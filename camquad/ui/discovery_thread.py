"""
Background thread for camera discovery
"""

import logging

from PyQt6.QtCore import QThread, pyqtSignal  # type: ignore

from camquad.discovery import discover_cameras

logger = logging.getLogger(__name__)


class DiscoveryThread(QThread):
    """Runs ONVIF discovery and the port-scan fallback without blocking UI"""

    cameras_found = pyqtSignal(list)  # list[Camera], possibly empty

    def __init__(self, prefix: str, port: int, timeout: float, max_results: int):
        super().__init__()
        self.setObjectName("DiscoveryThread")
        self.prefix = prefix
        self.port = port
        self.timeout = timeout
        self.max_results = max_results

    def run(self) -> None:
        """Discover cameras in background"""
        try:
            cameras = discover_cameras(
                self.prefix,
                port=self.port,
                timeout=self.timeout,
                max_results=self.max_results,
                log=logger,
            )
        except Exception:
            logger.exception("Camera discovery failed")
            cameras = []
        self.cameras_found.emit(cameras)
