"""
Network interface detection for camera discovery.

The port-scan fallback needs a /24 prefix to sweep. When none is
configured, the prefix is taken from the first usable local IPv4
interface.
"""

import ipaddress
import logging
import socket

import psutil

from camquad.constants import NetworkConstants

logger = logging.getLogger(__name__)


class NetworkInterface:
    """Up IPv4 interface address as reported by psutil"""

    def __init__(self, name: str, ip: str, netmask: str):
        self.name = name
        self.ip = ip
        self.netmask = netmask

    @property
    def scan_prefix(self) -> str:
        """First three octets of the interface address (the /24 to sweep)."""
        return self.ip.rsplit(".", 1)[0]

    def __repr__(self):
        return f"NetworkInterface({self.name}, {self.ip}/{self.netmask})"


def get_network_interfaces() -> list[NetworkInterface]:
    """
    Get all network interfaces on this system.

    Returns:
        List of NetworkInterface objects, excluding loopback and down interfaces.
    """
    interfaces = []

    try:
        stats_by_name = psutil.net_if_stats()
        for iface_name, addrs in psutil.net_if_addrs().items():
            # Skip if interface is down
            stats = stats_by_name.get(iface_name)
            if stats and not stats.isup:
                continue

            for addr in addrs:
                # Only IPv4 addresses
                if addr.family != socket.AF_INET or not addr.netmask:
                    continue

                ip = addr.address
                # Skip loopback and link-local (169.254.x.x)
                if ip.startswith("127.") or ip.startswith("169.254."):
                    continue

                interfaces.append(NetworkInterface(iface_name, ip, addr.netmask))
    except OSError as e:
        logger.warning(f"Could not enumerate network interfaces: {e}")

    return interfaces


def default_scan_prefix() -> str:
    """
    Pick the /24 prefix to port-scan when none is configured.

    Returns:
        Prefix like "192.168.1" from the first private interface, else the
        first usable interface, else NetworkConstants.DEFAULT_SCAN_SUBNET
    """
    interfaces = get_network_interfaces()
    private = [iface for iface in interfaces if ipaddress.IPv4Address(iface.ip).is_private]
    candidates = private or interfaces

    if not candidates:
        logger.info(
            f"No usable interface found, scanning {NetworkConstants.DEFAULT_SCAN_SUBNET}.0/24"
        )
        return NetworkConstants.DEFAULT_SCAN_SUBNET

    chosen = candidates[0]
    logger.info(f"Scan subnet {chosen.scan_prefix}.0/24 from interface {chosen!r}")
    return chosen.scan_prefix
