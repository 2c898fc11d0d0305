"""
Configuration manager for JSON persistence of the camera list
"""

import json
import logging
from pathlib import Path

from camquad.constants import NetworkConstants, StreamConstants
from camquad.exceptions import CameraConfigError, ConfigLoadError, ConfigSaveError
from camquad.models.camera import Camera
from camquad.utils import get_app_data_dir
from camquad.utils.network_interface import default_scan_prefix

logger = logging.getLogger(__name__)


class ConfigManager:
    """Manages camera list and preference persistence"""

    def __init__(self, config_path: Path | str | None = None):
        if config_path is None:
            config_path = get_app_data_dir() / "cameras.json"
        self.config_path = Path(config_path)
        self.config = self._default_schema()

    def load(self) -> dict:
        """
        Load configuration from JSON file.

        A missing file yields the default schema. Invalid JSON, non-UTF-8
        text or an unreadable file raises ConfigLoadError; the current config
        is left unchanged in that case.
        """
        if self.config_path.exists():
            try:
                with self.config_path.open(encoding="utf-8") as f:
                    config = json.load(f)
                if not isinstance(config, dict):
                    raise ConfigLoadError("Top-level JSON value must be an object")
                logger.info(f"Configuration loaded from {self.config_path}")
            except json.JSONDecodeError as e:
                logger.error(f"Invalid JSON in config file: {e}")
                raise ConfigLoadError(f"Invalid JSON: {e}") from e
            except UnicodeDecodeError as e:
                logger.error(f"Config file is not UTF-8: {e}")
                raise ConfigLoadError(f"Not UTF-8 text: {e}") from e
            except OSError as e:
                logger.error(f"Error reading config file: {e}")
                raise ConfigLoadError(f"Cannot read config: {e}") from e
        else:
            # Return default schema
            logger.info("No config file found, using defaults")
            config = self._default_schema()

        defaults = self._default_schema()
        if not isinstance(config.get("cameras"), list):
            config["cameras"] = []
        preferences = config.get("preferences")
        if not isinstance(preferences, dict):
            preferences = {}
        config["preferences"] = {**defaults["preferences"], **preferences}
        config.setdefault("version", defaults["version"])

        self.config = config
        return config

    def save(self) -> None:
        """Save configuration to JSON file"""
        try:
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
            with self.config_path.open("w", encoding="utf-8") as f:
                json.dump(self.config, f, indent=2)
            logger.debug(f"Configuration saved to {self.config_path}")
        except OSError as e:
            logger.error(f"Error saving config: {e}")
            raise ConfigSaveError(f"Cannot save config: {e}") from e

    def _default_schema(self) -> dict:
        """Return default configuration schema"""
        return {
            "version": "1.0",
            "cameras": [],
            "preferences": {
                "scan_subnet": None,  # None = derive from local interface
                "scan_port": NetworkConstants.RTSP_DEFAULT_PORT,
                "scan_timeout_ms": NetworkConstants.PORT_SCAN_TIMEOUT_MS,
                "max_cameras": NetworkConstants.MAX_CAMERAS,
                "ffmpeg_path": StreamConstants.FFMPEG_EXECUTABLE,
                "file_logging_enabled": False,
            },
        }

    def get_cameras(self) -> list[Camera]:
        """Get configured cameras, skipping records without a usable IP"""
        cameras = []
        for index, record in enumerate(self.config.get("cameras", [])):
            try:
                cameras.append(Camera.from_record(record))
            except CameraConfigError as e:
                logger.warning(f"Skipping camera record {index}: {e}")
        return cameras

    def set_cameras(self, cameras: list[Camera]) -> None:
        """Replace the stored camera list and save"""
        self.config["cameras"] = [camera.to_record() for camera in cameras]
        self.save()

    def get_scan_subnet(self) -> str:
        """Get /24 prefix to port-scan (default: local interface subnet)"""
        subnet = self.config["preferences"].get("scan_subnet")
        if subnet:
            return str(subnet).rstrip(".")
        return default_scan_prefix()

    def _number_preference(self, key: str, default, cast):
        """Preference cast to a number; invalid or non-positive values fall back to default"""
        value = self.config["preferences"].get(key, default)
        try:
            number = cast(value)
        except (TypeError, ValueError):
            logger.warning(f"Invalid {key} in config: {value!r}, using {default}")
            return default
        if number <= 0:
            logger.warning(f"Invalid {key} in config: {value!r}, using {default}")
            return default
        return number

    def get_scan_port(self) -> int:
        """Get TCP port probed by the port scan (default 554)"""
        port = self._number_preference("scan_port", NetworkConstants.RTSP_DEFAULT_PORT, int)
        if port > 65535:
            logger.warning(f"Invalid scan_port in config: {port}, using 554")
            return NetworkConstants.RTSP_DEFAULT_PORT
        return port

    def get_scan_timeout(self) -> float:
        """Get per-connection port-scan timeout in seconds (default 0.3)"""
        timeout_ms = self._number_preference(
            "scan_timeout_ms", NetworkConstants.PORT_SCAN_TIMEOUT_MS, float
        )
        return timeout_ms / 1000.0

    def get_max_cameras(self) -> int:
        """Get maximum number of cameras shown (default 4, never more)"""
        value = self._number_preference("max_cameras", NetworkConstants.MAX_CAMERAS, int)
        return min(value, NetworkConstants.MAX_CAMERAS)

    def get_ffmpeg_path(self) -> str:
        """Get ffmpeg executable name or path (default 'ffmpeg')"""
        return self.config["preferences"].get("ffmpeg_path") or StreamConstants.FFMPEG_EXECUTABLE

    def get_file_logging_enabled(self) -> bool:
        """Get file logging preference (default False)"""
        return bool(self.config["preferences"].get("file_logging_enabled", False))
