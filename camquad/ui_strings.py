"""
UI string constants for CamQuad application
Centralizes all user-facing strings for consistency and future i18n support
"""


class UIStrings:
    """User interface text constants"""

    # Application
    APP_NAME = "CamQuad"

    # Camera names assigned at discovery / load time
    CAMERA_NAME_ONVIF = "ONVIF Camera"
    CAMERA_NAME_RTSP = "RTSP Camera"
    CAMERA_NAME_CONFIGURED = "Camera"

    # Camera Status
    STATUS_NO_CAMERA = "No camera"
    STATUS_SEARCHING = "Searching for cameras..."
    STATUS_NONE_FOUND = "No cameras found"

    # Buttons
    BTN_QUALITY_LOW = "LQ"
    BTN_QUALITY_HIGH = "HQ"

    # Tooltips
    TOOLTIP_QUALITY_LOW = "Low-quality stream (click for high quality)"
    TOOLTIP_QUALITY_HIGH = "High-quality stream (click for low quality)"

    # Errors
    ERROR_CRITICAL = "Critical Error"
    ERROR_GENERIC = "An unexpected error occurred. The application will attempt to continue."
    ERROR_QT_EVENT = "Qt Event Error"
    ERROR_QT_EVENT_MSG = "An error occurred during UI event processing."
    ERROR_CONFIG_LOAD = "Error loading camera list"
    ERROR_CONFIG_SAVE = "Error saving camera list"
    ERROR_STARTUP = "Startup Error"
