"""
Helpers shared by discovery, config and logging
"""

import ipaddress
import os
import re
from pathlib import Path

APP_DIR_NAME = "CamQuad"

_DOTTED_QUAD = re.compile(r"(?<![\d.])(\d{1,3}(?:\.\d{1,3}){3})(?![\d.])")


def get_app_data_dir() -> Path:
    """
    Folder holding cameras.json and the logs/ directory, created on demand.

    %LOCALAPPDATA%/CamQuad on Windows, $XDG_CONFIG_HOME/CamQuad (usually
    ~/.config/CamQuad) elsewhere.
    """
    if os.name == "nt":
        base = os.getenv("LOCALAPPDATA") or str(Path.home() / "AppData" / "Local")
    else:
        base = os.getenv("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    app_data = Path(base) / APP_DIR_NAME
    app_data.mkdir(parents=True, exist_ok=True)
    return app_data


def ipv4_from_text(text: str) -> str | None:
    """First valid dotted-quad IPv4 address in text, e.g. an XAddr that urlparse rejects"""
    for candidate in _DOTTED_QUAD.findall(text):
        try:
            return str(ipaddress.IPv4Address(candidate))
        except ValueError:
            continue
    return None
