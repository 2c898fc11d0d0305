"""
CamQuad - 2x2 IP camera viewer with ONVIF discovery and ffmpeg decoding
"""

__version__ = "1.0.0"
