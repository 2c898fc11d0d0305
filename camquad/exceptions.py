"""
Custom exception hierarchy for CamQuad application
"""


class CamQuadException(Exception):
    """Base exception for all CamQuad errors"""
    pass


class CameraException(CamQuadException):
    """Base exception for camera-related errors"""
    pass


class CameraConfigError(CameraException):
    """Camera record is missing required fields"""
    pass


class DiscoveryError(CameraException):
    """Camera discovery errors"""
    pass


class ProbeError(DiscoveryError):
    """WS-Discovery probe could not be sent or a reply could not be parsed"""
    pass


class OnvifError(DiscoveryError):
    """ONVIF media service call failed"""
    pass


class StreamException(CameraException):
    """Video streaming errors"""
    pass


class DecoderStartError(StreamException):
    """Decoder process could not be started (e.g. ffmpeg missing)"""
    pass


class StreamError(StreamException):
    """Invalid stream supervision request"""
    pass


class ConfigException(CamQuadException):
    """Configuration file errors"""
    pass


class ConfigLoadError(ConfigException):
    """Failed to load configuration"""
    pass


class ConfigSaveError(ConfigException):
    """Failed to save configuration"""
    pass
