import io

import pytest
from PyQt6.QtCore import QBuffer, QIODevice  # type: ignore
from PyQt6.QtGui import QColor, QImage  # type: ignore

from camquad.controllers.frame_extractor import JPEG_EOI, FrameExtractor, decode_jpeg

DECOYS = [b"\xff\xd8", b"\xff\x00", b"\xd9\xff\x00", b"\xd9", b"\xff\xd8\xff\xe0"]


def fake_frame(n: int) -> bytes:
    """JPEG-shaped frame whose payload contains marker-like pairs"""
    payload = b"".join(DECOYS[: (n % len(DECOYS)) + 1]) + bytes([n % 200]) * (n + 1)
    return b"\xff\xd8" + payload + JPEG_EOI


def identity(data: bytes) -> bytes:
    return data


class FailingSource:
    """Returns the given chunks, then raises"""

    def __init__(self, chunks, error):
        self.chunks = list(chunks)
        self.error = error

    def read(self, _size):
        if self.chunks:
            return self.chunks.pop(0)
        raise self.error


def jpeg_bytes(color: QColor) -> bytes:
    image = QImage(16, 8, QImage.Format.Format_RGB32)
    image.fill(color)
    buffer = QBuffer()
    buffer.open(QIODevice.OpenModeFlag.WriteOnly)
    assert image.save(buffer, "JPEG")
    return bytes(buffer.data())


@pytest.mark.parametrize("chunk_size", [1, 2, 3, 7, 4096])
def test_n_frames_with_decoys_give_n_frames(chunk_size):
    frames = [fake_frame(n) for n in range(12)]
    extractor = FrameExtractor(io.BytesIO(b"".join(frames)), decoder=identity, chunk_size=chunk_size)

    assert list(extractor) == frames
    assert extractor.frames_emitted == 12
    assert extractor.frames_dropped == 0


def test_marker_split_across_reads():
    first, second = fake_frame(1), fake_frame(2)
    data = first + second
    split = len(first) - 1  # FF at end of one read, D9 at start of the next

    class TwoReads:
        def __init__(self):
            self.parts = [data[:split], data[split:]]

        def read(self, _size):
            return self.parts.pop(0) if self.parts else b""

    assert list(FrameExtractor(TwoReads(), decoder=identity)) == [first, second]


def test_frame_must_be_longer_than_marker():
    frame = fake_frame(3)
    extractor = FrameExtractor(io.BytesIO(JPEG_EOI + frame), decoder=identity, chunk_size=1)

    assert list(extractor) == [JPEG_EOI + frame]


def test_trailing_partial_frame_is_discarded():
    frame = fake_frame(4)
    extractor = FrameExtractor(io.BytesIO(frame + b"\xff\xd8partial"), decoder=identity)

    assert list(extractor) == [frame]


def test_undecodable_frames_are_dropped():
    frames = [fake_frame(n) for n in range(6)]
    bad = {frames[1], frames[4]}
    extractor = FrameExtractor(
        io.BytesIO(b"".join(frames)), decoder=lambda data: None if data in bad else data
    )

    assert list(extractor) == [f for f in frames if f not in bad]
    assert extractor.frames_emitted == 4
    assert extractor.frames_dropped == 2


@pytest.mark.parametrize("error", [OSError("broken pipe"), ValueError("read of closed file")])
def test_read_error_ends_stream(error):
    frame = fake_frame(5)
    extractor = FrameExtractor(FailingSource([frame], error), decoder=identity)

    assert list(extractor) == [frame]


def test_cancellation_stops_before_next_read():
    frames = [fake_frame(n) for n in range(3)]
    cancelled = []
    extractor = FrameExtractor(
        io.BytesIO(b"".join(frames)),
        decoder=identity,
        is_cancelled=lambda: bool(cancelled),
        chunk_size=len(frames[0]),
    )

    iterator = iter(extractor)
    assert next(iterator) == frames[0]
    cancelled.append(True)
    assert list(iterator) == []


def test_extractor_is_one_shot():
    extractor = FrameExtractor(io.BytesIO(b""), decoder=identity)
    assert list(extractor) == []
    with pytest.raises(RuntimeError):
        iter(extractor)


def test_decode_jpeg(qapp):
    data = jpeg_bytes(QColor(200, 30, 30))
    image = decode_jpeg(data)

    assert image is not None
    assert (image.width(), image.height()) == (16, 8)
    assert decode_jpeg(b"\xff\xd8not a jpeg\xff\xd9") is None


def test_real_jpeg_stream(qapp):
    good = [jpeg_bytes(QColor(n * 40, 0, 0)) for n in range(3)]
    stream = good[0] + b"\xff\xd8garbage\xff\xd9" + good[1] + good[2]
    extractor = FrameExtractor(io.BytesIO(stream), chunk_size=1000)

    images = list(extractor)
    assert len(images) == 3
    assert all(image.width() == 16 for image in images)
    assert extractor.frames_dropped == 1
