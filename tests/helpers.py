"""Image builders and fake collaborators shared by the test modules."""

from __future__ import annotations

import io
import struct
import zlib

from PIL import Image, ImageDraw

from stickify.backend.base import GenerationCandidate, GenerationRequest

WHITE = (255, 255, 255)
RED = (220, 30, 30)

# Minimal 1x1 GIF building blocks.
GIF_HEADER = b"GIF89a" + b"\x01\x00\x01\x00" + b"\x80\x00\x00"
GIF_COLOUR_TABLE = b"\x00\x00\x00\xff\xff\xff"
NETSCAPE_LOOP = b"!\xff\x0bNETSCAPE2.0\x03\x01\x00\x00\x00"
GIF_IMAGE = b",\x00\x00\x00\x00\x01\x00\x01\x00\x00" + b"\x02\x02D\x01\x00"
GIF_TRAILER = b";"

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


def graphic_control(delay_cs: int) -> bytes:
    return b"!\xf9\x04\x00" + delay_cs.to_bytes(2, "little") + b"\x00\x00"


def build_gif(
    frames: int = 1,
    *,
    delay_cs: int = 10,
    netscape: bool = False,
    trailer: bool = True,
) -> bytes:
    """Assemble a GIF block stream with *frames* 1x1 image blocks."""
    body = GIF_HEADER + GIF_COLOUR_TABLE
    if netscape:
        body += NETSCAPE_LOOP
    for _ in range(frames):
        body += graphic_control(delay_cs) + GIF_IMAGE
    if trailer:
        body += GIF_TRAILER
    return body


def _png_chunk(kind: bytes, payload: bytes) -> bytes:
    crc = zlib.crc32(kind + payload) & 0xFFFFFFFF
    return struct.pack(">I", len(payload)) + kind + payload + struct.pack(">I", crc)


def oversized_png(width: int = 20000, height: int = 20000) -> bytes:
    """A PNG whose header declares *width* x *height* but carries no pixels."""
    ihdr = struct.pack(">IIBBBBB", width, height, 8, 2, 0, 0, 0)
    return (
        PNG_SIGNATURE
        + _png_chunk(b"IHDR", ihdr)
        + _png_chunk(b"IDAT", b"")
        + _png_chunk(b"IEND", b"")
    )


def sticker_image(size: tuple[int, int] = (64, 64)) -> Image.Image:
    """A red square subject on a flat white background."""
    img = Image.new("RGB", size, WHITE)
    w, h = size
    ImageDraw.Draw(img).rectangle((w // 4, h // 4, 3 * w // 4, 3 * h // 4), fill=RED)
    return img


def encode(img: Image.Image, fmt: str = "PNG", **kwargs: object) -> bytes:
    buf = io.BytesIO()
    img.save(buf, fmt, **kwargs)
    return buf.getvalue()


def animated_gif(frame_count: int = 5, size: tuple[int, int] = (48, 48)) -> bytes:
    """Encode an animated GIF whose frames have distinct solid colours."""
    frames = []
    for i in range(frame_count):
        img = sticker_image(size)
        ImageDraw.Draw(img).rectangle((0, 0, 4 + i * 3, 4), fill=(i * 40, 200 - i * 30, 90))
        frames.append(img.convert("P", palette=Image.Palette.ADAPTIVE))
    return encode(
        frames[0], "GIF", save_all=True, append_images=frames[1:], duration=80, loop=0,
    )


class FakeClient:
    """Records requests and answers with canned candidates."""

    def __init__(
        self,
        candidates: list[bytes] | None = None,
        *,
        error: Exception | None = None,
    ) -> None:
        self._candidates = candidates or [encode(sticker_image())]
        self._error = error
        self.requests: list[GenerationRequest] = []
        self.close_calls = 0

    async def generate(self, request: GenerationRequest) -> GenerationCandidate:
        self.requests.append(request)
        if self._error is not None:
            raise self._error
        data = self._candidates[min(len(self.requests), len(self._candidates)) - 1]
        return GenerationCandidate(data=data)

    async def aclose(self) -> None:
        self.close_calls += 1


class RecordingFactory:
    """Client factory that remembers which credentials it was asked for."""

    def __init__(self, client: FakeClient | None = None) -> None:
        self.client = client or FakeClient()
        self.credentials: list[str] = []

    def __call__(self, credential: str) -> FakeClient:
        self.credentials.append(credential)
        return self.client
