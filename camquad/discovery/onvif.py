"""
ONVIF camera discovery: WS-Discovery multicast probe followed by
GetProfiles / GetStreamUri negotiation against each responding device.
"""

import logging
import select
import socket
import time
import uuid
import xml.etree.ElementTree as ET
from collections.abc import Callable
from urllib.parse import urlparse

from onvif import ONVIFCamera, ONVIFError
from zeep.exceptions import Error as ZeepError
from zeep.transports import Transport

from camquad.constants import NetworkConstants, StreamConstants
from camquad.exceptions import OnvifError, ProbeError
from camquad.models.camera import Camera, DiscoveredEndpoint
from camquad.ui_strings import UIStrings
from camquad.utils import ipv4_from_text

logger = logging.getLogger(__name__)

NETWORK_VIDEO_TRANSMITTER = "dn:NetworkVideoTransmitter"
NAMESPACES = {"dn": "http://www.onvif.org/ver10/network/wsdl"}

_PROBE_TEMPLATE = """<?xml version="1.0" encoding="UTF-8"?>
<e:Envelope xmlns:e="http://www.w3.org/2003/05/soap-envelope"
            xmlns:w="http://schemas.xmlsoap.org/ws/2004/08/addressing"
            xmlns:d="http://schemas.xmlsoap.org/ws/2005/04/discovery"{namespaces}>
  <e:Header>
    <w:MessageID>uuid:{message_id}</w:MessageID>
    <w:To e:mustUnderstand="true">urn:schemas-xmlsoap-org:ws:2005:04:discovery</w:To>
    <w:Action e:mustUnderstand="true">http://schemas.xmlsoap.org/ws/2005/04/discovery/Probe</w:Action>
  </e:Header>
  <e:Body>
    <d:Probe>
      <d:Types>{types}</d:Types>
    </d:Probe>
  </e:Body>
</e:Envelope>
"""

def build_probe(types: str = NETWORK_VIDEO_TRANSMITTER, namespaces: dict | None = None) -> bytes:
    """Build a WS-Discovery Probe restricted to the given device types"""
    namespaces = NAMESPACES if namespaces is None else namespaces
    declarations = "".join(f'\n            xmlns:{prefix}="{uri}"' for prefix, uri in namespaces.items())
    message = _PROBE_TEMPLATE.format(
        namespaces=declarations, message_id=uuid.uuid4(), types=types
    )
    return message.encode("utf-8")


def send_probe(
    timeout: float = NetworkConstants.WS_DISCOVERY_TIMEOUT_S,
    types: str = NETWORK_VIDEO_TRANSMITTER,
) -> list[str]:
    """
    Send one multicast WS-Discovery probe and collect raw replies.

    Args:
        timeout: Seconds to listen for replies after sending
        types: Device type filter for the probe

    Returns:
        List of reply bodies (XML text)

    Raises:
        ProbeError: socket could not be created or the probe not sent
    """
    replies = []
    try:
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM, socket.IPPROTO_UDP)
    except OSError as e:
        raise ProbeError(f"Cannot create discovery socket: {e}") from e

    try:
        sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_TTL, 2)
        sock.bind(("", 0))
        sock.setblocking(False)
        sock.sendto(build_probe(types), NetworkConstants.WS_DISCOVERY_ADDRESS)

        deadline = time.monotonic() + timeout
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            readable, _, _ = select.select([sock], [], [], remaining)
            if not readable:
                continue
            try:
                data, _addr = sock.recvfrom(NetworkConstants.WS_DISCOVERY_MAX_DATAGRAM)
            except OSError:
                continue
            replies.append(data.decode("utf-8", errors="replace"))
    except OSError as e:
        raise ProbeError(f"WS-Discovery probe failed: {e}") from e
    finally:
        sock.close()

    return replies


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _children(element: ET.Element, name: str) -> list[ET.Element]:
    return [child for child in element if _local_name(child.tag) == name]


def parse_probe_reply(xml_text: str) -> list[DiscoveredEndpoint]:
    """
    Extract endpoints from one ProbeMatches reply.

    Every Body/ProbeMatches/ProbeMatch/XAddrs element yields one endpoint
    built from the first of its whitespace-separated addresses. Elements are
    matched by local name so any namespace prefix is accepted.

    Raises:
        ProbeError: reply is not well-formed XML
    """
    try:
        root = ET.fromstring(xml_text)
    except ET.ParseError as e:
        raise ProbeError(f"Invalid probe reply XML: {e}") from e

    endpoints = []
    for body in _children(root, "Body"):
        for matches in _children(body, "ProbeMatches"):
            for match in _children(matches, "ProbeMatch"):
                for xaddrs in _children(match, "XAddrs"):
                    addresses = (xaddrs.text or "").split()
                    if not addresses:
                        continue
                    parsed = urlparse(addresses[0])
                    host = parsed.netloc
                    ip = parsed.hostname or ipv4_from_text(addresses[0])
                    if not ip:
                        logger.debug(f"[ONVIF] Skipping XAddr without host: {addresses[0]!r}")
                        continue
                    endpoints.append(DiscoveredEndpoint(host=host or ip, ip=ip))
    return endpoints


def extract_rtsp_uri(body: str) -> str:
    """Return the first rtsp:// URI in a GetStreamUri response"""
    start = body.find("rtsp://")
    if start == -1:
        return ""
    for end in range(start, len(body)):
        if body[end] in '<" ':
            return body[start:end]
    return body[start:]


class OnvifMediaClient:
    """
    Media service client for the two calls discovery needs.

    Wraps onvif-zeep's ONVIFCamera. The device is contacted lazily on the
    first call, without WS-Security credentials; library, SOAP and
    transport errors all surface as OnvifError.
    """

    def __init__(
        self,
        ip: str,
        port: int = NetworkConstants.ONVIF_PORT,
        timeout: float = NetworkConstants.ONVIF_CALL_TIMEOUT_S,
    ):
        self.ip = ip
        self.port = port
        self.timeout = timeout
        self.endpoint = f"http://{ip}:{port}{NetworkConstants.ONVIF_SERVICE_PATH}"
        self._media = None

    def _media_service(self):
        if self._media is None:
            try:
                camera = ONVIFCamera(
                    self.ip,
                    self.port,
                    "",
                    "",
                    transport=Transport(timeout=self.timeout, operation_timeout=self.timeout),
                )
                self._media = camera.create_media_service()
            except (ONVIFError, ZeepError, OSError) as e:
                raise OnvifError(f"ONVIF device at {self.endpoint} unavailable: {e}") from e
        return self._media

    def get_profile_token(self) -> str:
        """Call GetProfiles; returns the first profile's token, or "" if there is none"""
        media = self._media_service()
        try:
            profiles = media.GetProfiles()
        except (ONVIFError, ZeepError, OSError) as e:
            raise OnvifError(f"GetProfiles on {self.endpoint} failed: {e}") from e
        if not profiles:
            return ""
        return getattr(profiles[0], "token", None) or ""

    def get_stream_uri(self, profile_token: str) -> str:
        """Call GetStreamUri (RTP-Unicast over RTSP); returns the Uri field, or an empty string"""
        media = self._media_service()
        request = {
            "StreamSetup": {"Stream": "RTP-Unicast", "Transport": {"Protocol": "RTSP"}},
            "ProfileToken": profile_token,
        }
        try:
            result = media.GetStreamUri(request)
        except (ONVIFError, ZeepError, OSError) as e:
            raise OnvifError(f"GetStreamUri on {self.endpoint} failed: {e}") from e
        return getattr(result, "Uri", None) or ""


MediaClientFactory = Callable[[str], OnvifMediaClient]


def negotiate_stream(
    endpoint: DiscoveredEndpoint, client_factory: MediaClientFactory = OnvifMediaClient
) -> DiscoveredEndpoint:
    """
    Ask a device for its stream URL (GetProfiles, then GetStreamUri).

    Fills endpoint.rtsp_url and endpoint.rtsp_path when both calls succeed
    and yield a token and URI. Leaves them empty otherwise.

    Raises:
        OnvifError: either call failed
    """
    client = client_factory(endpoint.ip)
    profile_token = client.get_profile_token()
    if not profile_token:
        logger.debug(f"[ONVIF] {endpoint.ip}: GetProfiles returned no profile")
        return endpoint

    uri = extract_rtsp_uri(client.get_stream_uri(profile_token))
    if not uri:
        logger.debug(f"[ONVIF] {endpoint.ip}: no rtsp:// URI in GetStreamUri response")
        return endpoint

    endpoint.rtsp_url = uri
    endpoint.rtsp_path = urlparse(uri).path
    return endpoint


def camera_from_endpoint(endpoint: DiscoveredEndpoint) -> Camera:
    """Fold an endpoint into a Camera, synthesizing a default URL if negotiation failed"""
    if endpoint.rtsp_url:
        parsed = urlparse(endpoint.rtsp_url)
        try:
            port = parsed.port or NetworkConstants.RTSP_DEFAULT_PORT
        except ValueError:
            port = NetworkConstants.RTSP_DEFAULT_PORT
        return Camera.create(
            ip=endpoint.ip,
            username=parsed.username or "",
            password=parsed.password or "",
            rtsp_path=endpoint.rtsp_path,
            name=UIStrings.CAMERA_NAME_ONVIF,
            rtsp_url=endpoint.rtsp_url,
            rtsp_port=port,
        )

    return Camera.create(
        ip=endpoint.ip,
        username=StreamConstants.PLACEHOLDER_USERNAME,
        password=StreamConstants.PLACEHOLDER_PASSWORD,
        rtsp_path=endpoint.rtsp_path or StreamConstants.DEFAULT_RTSP_PATH,
        name=UIStrings.CAMERA_NAME_ONVIF,
    )


def discover_onvif(
    probe: Callable[[], list[str]] = send_probe,
    client_factory: MediaClientFactory = OnvifMediaClient,
    log: logging.Logger | None = None,
) -> list[Camera]:
    """
    Discover ONVIF video transmitters and negotiate their stream URLs.

    Never raises: a failed probe gives an empty list, a bad reply is
    skipped, and a failed negotiation falls back to a default URL.

    Args:
        probe: Callable returning raw probe replies
        client_factory: Builds a media client for a device IP
        log: Logger for diagnostics (defaults to module logger)

    Returns:
        One Camera per XAddrs element across all replies
    """
    log = log or logger
    cameras: list[Camera] = []

    try:
        replies = probe()
    except ProbeError as e:
        log.debug(f"[ONVIF] Discovery error: {e}")
        return cameras

    for reply in replies:
        try:
            endpoints = parse_probe_reply(reply)
        except ProbeError as e:
            log.debug(f"[ONVIF] XML parse error: {e}")
            continue

        for endpoint in endpoints:
            try:
                negotiate_stream(endpoint, client_factory)
            except OnvifError as e:
                log.debug(f"[ONVIF] Stream negotiation failed for {endpoint.ip}: {e}")

            camera = camera_from_endpoint(endpoint)
            log.info(f"[ONVIF] Found {camera.ip} (path {camera.rtsp_path})")
            cameras.append(camera)

    return cameras
