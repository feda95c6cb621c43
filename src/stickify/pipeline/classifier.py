"""Media classification by sniffing container bytes.

Animation is decided by walking the GIF block stream and counting image
descriptors, never by file extension or declared MIME type. A single-frame
GIF is static even when it carries a NETSCAPE looping extension.
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass, field

from PIL import Image, UnidentifiedImageError

from stickify.errors import MalformedAssetError
from stickify.models import MediaInfo

logger = logging.getLogger(__name__)

GIF_SIGNATURES = (b"GIF87a", b"GIF89a")
PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
JPEG_SIGNATURE = b"\xff\xd8\xff"

# GIF block introducers and extension labels.
EXTENSION_INTRODUCER = 0x21
IMAGE_DESCRIPTOR = 0x2C
TRAILER = 0x3B
GRAPHIC_CONTROL_LABEL = 0xF9

# Browsers clamp 0/1 centisecond delays to 100 ms.
DEFAULT_FRAME_DELAY_MS = 100


@dataclass
class GifStructure:
    """Facts read from a GIF block stream."""

    width: int
    height: int
    frame_delays_ms: list[int] = field(default_factory=list)
    has_trailer: bool = True

    @property
    def frame_count(self) -> int:
        return len(self.frame_delays_ms)


class GifBlockWalker:
    """Walk a GIF container's blocks without decoding any pixel data."""

    def __init__(self, data: bytes) -> None:
        self._data = data
        self._pos = 0

    def walk(self) -> GifStructure:
        data = self._data
        if data[:6] not in GIF_SIGNATURES:
            msg = "not a GIF container (bad signature)"
            raise MalformedAssetError(msg)
        self._require(13, "logical screen descriptor")

        width = data[6] | (data[7] << 8)
        height = data[8] | (data[9] << 8)
        packed = data[10]
        self._pos = 13
        if packed & 0x80:
            self._skip_colour_table(packed)

        structure = GifStructure(width=width, height=height)
        pending_delay: int | None = None

        while True:
            if self._pos >= len(data):
                # Tolerate encoders that omit the trailer after complete blocks.
                if structure.frame_count:
                    logger.debug("GIF ends without trailer after %d frames", structure.frame_count)
                    structure.has_trailer = False
                    break
                msg = "GIF ends before any image data"
                raise MalformedAssetError(msg)

            introducer = data[self._pos]
            if introducer == TRAILER:
                break
            if introducer == EXTENSION_INTRODUCER:
                delay = self._read_extension()
                if delay is not None:
                    pending_delay = delay
            elif introducer == IMAGE_DESCRIPTOR:
                self._read_image()
                structure.frame_delays_ms.append(_delay_ms(pending_delay))
                pending_delay = None
            else:
                msg = f"unknown GIF block 0x{introducer:02x} at offset {self._pos}"
                raise MalformedAssetError(msg)

        if not structure.frame_count:
            msg = "GIF contains no image frames"
            raise MalformedAssetError(msg)
        return structure

    def _read_extension(self) -> int | None:
        """Skip one extension block, returning its delay if it is a GCE."""
        self._require(self._pos + 2, "extension header")
        label = self._data[self._pos + 1]
        self._pos += 2
        delay = None
        if label == GRAPHIC_CONTROL_LABEL:
            self._require(self._pos + 4, "graphic control extension")
            delay = self._data[self._pos + 2] | (self._data[self._pos + 3] << 8)
        self._skip_sub_blocks()
        return delay

    def _read_image(self) -> None:
        self._require(self._pos + 10, "image descriptor")
        packed = self._data[self._pos + 9]
        self._pos += 10
        if packed & 0x80:
            self._skip_colour_table(packed)
        self._require(self._pos + 1, "LZW minimum code size")
        self._pos += 1
        self._skip_sub_blocks()

    def _skip_colour_table(self, packed: int) -> None:
        self._pos += 3 * (2 ** ((packed & 0x07) + 1))
        self._require(self._pos, "colour table")

    def _skip_sub_blocks(self) -> None:
        while True:
            self._require(self._pos + 1, "data sub-block")
            size = self._data[self._pos]
            self._pos += 1
            if size == 0:
                return
            self._pos += size
            self._require(self._pos, "data sub-block")

    def _require(self, end: int, what: str) -> None:
        if end > len(self._data):
            msg = f"GIF truncated inside {what} (need {end} bytes, have {len(self._data)})"
            raise MalformedAssetError(msg)


def count_gif_frames(data: bytes) -> int:
    """Return the number of image frames in a GIF container."""
    return GifBlockWalker(data).walk().frame_count


def sniff_mime_type(data: bytes) -> str | None:
    """Identify common image containers from their signature bytes."""
    if data[:6] in GIF_SIGNATURES:
        return "image/gif"
    if data.startswith(PNG_SIGNATURE):
        return "image/png"
    if data.startswith(JPEG_SIGNATURE):
        return "image/jpeg"
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    if data[:2] == b"BM":
        return "image/bmp"
    return None


def classify(data: bytes, declared_mime: str | None = None) -> MediaInfo:
    """Determine whether *data* is animated, how many frames it has, and its type.

    Raises
    ------
    MalformedAssetError
        If the buffer is empty, is not a container of its declared type, or
        cannot be parsed.
    """
    if not data:
        msg = "asset is empty"
        raise MalformedAssetError(msg)

    sniffed = sniff_mime_type(data)
    declared = (declared_mime or "").lower().strip()

    if declared == "image/gif" and sniffed != "image/gif":
        msg = f"declared image/gif but content is {sniffed or 'unrecognised'}"
        raise MalformedAssetError(msg)

    if sniffed == "image/gif":
        structure = GifBlockWalker(data).walk()
        animated = structure.frame_count >= 2
        logger.debug("GIF with %d frame(s), animated=%s", structure.frame_count, animated)
        return MediaInfo(
            is_animated=animated,
            frame_count=structure.frame_count,
            mime_type="image/gif",
            width=structure.width,
            height=structure.height,
            frame_durations_ms=structure.frame_delays_ms,
        )

    mime, size = _identify_with_pillow(data, sniffed)
    if declared and declared != mime:
        logger.info("Declared type %s does not match content %s", declared, mime)
    return MediaInfo(
        is_animated=False,
        frame_count=1,
        mime_type=mime,
        width=size[0],
        height=size[1],
    )


def _identify_with_pillow(data: bytes, sniffed: str | None) -> tuple[str, tuple[int, int]]:
    try:
        with Image.open(io.BytesIO(data)) as img:
            mime = sniffed or Image.MIME.get(img.format or "", None)
            size = img.size
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as exc:
        msg = f"unrecognised image container: {exc}"
        raise MalformedAssetError(msg) from exc
    if mime is None:
        msg = "unrecognised image container"
        raise MalformedAssetError(msg)
    return mime, size


def _delay_ms(centiseconds: int | None) -> int:
    if centiseconds is None or centiseconds <= 1:
        return DEFAULT_FRAME_DELAY_MS
    return centiseconds * 10
