"""
Split an ffmpeg image2pipe MJPEG byte stream into decoded frames
"""

import logging
from collections.abc import Callable, Iterator
from typing import Any

from PyQt6.QtGui import QImage

from camquad.constants import StreamConstants

logger = logging.getLogger(__name__)

JPEG_EOI = b"\xff\xd9"  # End-of-image marker, sole frame boundary


def decode_jpeg(data: bytes) -> QImage | None:
    """Decode one JPEG frame; returns None if the data is not a valid image"""
    image = QImage.fromData(data, "JPEG")
    if image.isNull():
        return None
    return image


class FrameExtractor:
    """
    Lazy, one-shot iterator of decoded frames from a byte source.

    Bytes accumulate until the buffer ends with the JPEG end-of-image
    marker; everything accumulated since the previous frame is one frame.
    Reads are chunked but boundaries are identical to a byte-at-a-time
    scan: a marker split across two reads is still found, and a frame is
    always longer than the marker itself.
    """

    def __init__(
        self,
        source,
        decoder: Callable[[bytes], Any] = decode_jpeg,
        is_cancelled: Callable[[], bool] | None = None,
        chunk_size: int = StreamConstants.READ_CHUNK_SIZE,
        name: str = "",
        log: logging.Logger | None = None,
    ):
        self.source = source
        self.decoder = decoder
        self.is_cancelled = is_cancelled or (lambda: False)
        self.chunk_size = chunk_size
        self.name = name
        self._log = log or logger
        self._started = False
        self.frames_emitted = 0
        self.frames_dropped = 0

    def __iter__(self) -> Iterator[Any]:
        if self._started:
            raise RuntimeError("FrameExtractor can only be iterated once")
        self._started = True
        return self._frames()

    def _read(self) -> bytes | None:
        """Read one chunk; None means the stream ended (EOF or error)"""
        try:
            chunk = self.source.read(self.chunk_size)
        except (OSError, ValueError) as e:
            # ValueError: pipe closed by teardown while we were reading
            if self.is_cancelled():
                self._log.debug(f"[{self.name}] Stream closed after cancellation")
            else:
                self._log.debug(f"[{self.name}] Decoder read error: {e}")
            return None

        if not chunk:
            if self.is_cancelled():
                self._log.debug(f"[{self.name}] Stream closed after cancellation")
            else:
                self._log.debug(f"[{self.name}] Decoder output ended")
            return None
        return chunk

    def _frames(self) -> Iterator[Any]:
        buffer = bytearray()

        while True:
            if self.is_cancelled():
                self._log.debug(f"[{self.name}] Cancelled in frame read loop")
                return

            chunk = self._read()
            if chunk is None:
                return

            # Back up one byte so a marker split across reads is found
            search_from = max(len(buffer) - 1, 1)
            buffer.extend(chunk)

            while True:
                marker = buffer.find(JPEG_EOI, search_from)
                if marker == -1:
                    break
                end = marker + len(JPEG_EOI)
                data = bytes(buffer[:end])
                del buffer[:end]
                search_from = 1

                image = self.decoder(data)
                if image is None:
                    self.frames_dropped += 1
                    self._log.debug(f"[{self.name}] JPEG decode error, dropped {len(data)} bytes")
                    continue

                self.frames_emitted += 1
                yield image
