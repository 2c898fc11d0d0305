"""
Application-wide constants
"""


class NetworkConstants:
    """Network and protocol constants"""

    RTSP_DEFAULT_PORT = 554
    ONVIF_PORT = 80
    ONVIF_SERVICE_PATH = "/onvif/device_service"
    ONVIF_CALL_TIMEOUT_S = 3.0
    WS_DISCOVERY_ADDRESS = ("239.255.255.250", 3702)
    WS_DISCOVERY_TIMEOUT_S = 2.0
    WS_DISCOVERY_MAX_DATAGRAM = 65507
    PORT_SCAN_TIMEOUT_MS = 300
    PORT_SCAN_WORKERS = 64  # Concurrent connection attempts
    PORT_SCAN_FIRST_HOST = 1
    PORT_SCAN_LAST_HOST = 254
    DEFAULT_SCAN_SUBNET = "192.168.0"
    MAX_CAMERAS = 4


class StreamConstants:
    """Decoder process and frame delivery constants"""

    DEFAULT_RTSP_PATH = "/stream1"
    PLACEHOLDER_USERNAME = "user"  # Written to config for the user to edit
    PLACEHOLDER_PASSWORD = "pass"
    FFMPEG_EXECUTABLE = "ffmpeg"
    READ_CHUNK_SIZE = 4096
    SHUTDOWN_TIMEOUT_S = 2.0
    KILL_REAP_TIMEOUT_S = 1.0
    WATCHER_JOIN_TIMEOUT_S = 1.0


class UIConstants:
    """UI timing and sizing constants"""

    WINDOW_TITLE_SUFFIX = "2x2"
    WINDOW_DEFAULT_WIDTH = 800
    WINDOW_DEFAULT_HEIGHT = 600
    TILE_PLACEHOLDER_WIDTH = 640
    TILE_PLACEHOLDER_HEIGHT = 360
    TILE_PLACEHOLDER_GREY = 128
    FRAME_MIN_INTERVAL_MS = 33  # ~30 FPS redraw cap
    GRID_ROWS = 2
    GRID_COLUMNS = 2
