"""Raster and media asset models."""

from __future__ import annotations

import io

from PIL import Image
from pydantic import BaseModel, ConfigDict, Field, model_validator

from stickify.models.enums import PixelFormat

_CHANNELS = {PixelFormat.RGB: 3, PixelFormat.RGBA: 4}


class RasterImage(BaseModel):
    """An immutable in-memory bitmap.

    ``data`` is the raw row-major pixel buffer in ``format`` order. Pipeline
    stages never mutate a raster; they return a new one.
    """

    model_config = ConfigDict(frozen=True)

    width: int = Field(gt=0)
    height: int = Field(gt=0)
    format: PixelFormat
    data: bytes = Field(repr=False)

    @model_validator(mode="after")
    def _check_buffer(self) -> RasterImage:
        expected = self.width * self.height * _CHANNELS[self.format]
        if len(self.data) != expected:
            msg = f"pixel buffer has {len(self.data)} bytes, expected {expected}"
            raise ValueError(msg)
        return self

    @classmethod
    def from_image(cls, img: Image.Image) -> RasterImage:
        """Snapshot a Pillow image, normalising exotic modes to RGB/RGBA."""
        has_alpha = img.mode in ("RGBA", "LA", "PA") or (
            img.mode == "P" and "transparency" in img.info
        )
        target = PixelFormat.RGBA if has_alpha else PixelFormat.RGB
        if img.mode != target.value:
            img = img.convert(target.value)
        return cls(width=img.width, height=img.height, format=target, data=img.tobytes())

    def to_image(self) -> Image.Image:
        return Image.frombytes(self.format.value, (self.width, self.height), self.data)

    def to_png(self) -> bytes:
        """Encode as PNG, the canonical output encoding."""
        buf = io.BytesIO()
        self.to_image().save(buf, "PNG", optimize=True)
        return buf.getvalue()

    def with_alpha(self) -> RasterImage:
        """Return an RGBA copy; missing alpha becomes fully opaque."""
        if self.format is PixelFormat.RGBA:
            return self
        return RasterImage.from_image(self.to_image().convert("RGBA"))

    @property
    def size(self) -> tuple[int, int]:
        return (self.width, self.height)

    def transparent_fraction(self) -> float:
        """Fraction of pixels whose alpha is below full opacity."""
        if self.format is PixelFormat.RGB:
            return 0.0
        hist = self.to_image().getchannel("A").histogram()
        return sum(hist[:255]) / (self.width * self.height)

    def is_fully_transparent(self) -> bool:
        if self.format is PixelFormat.RGB:
            return False
        hist = self.to_image().getchannel("A").histogram()
        return hist[0] == self.width * self.height


class MediaAsset(BaseModel):
    """A source asset as handed over by the caller: raw bytes plus declared MIME type."""

    model_config = ConfigDict(frozen=True)

    data: bytes = Field(repr=False)
    mime_type: str = "application/octet-stream"

    @property
    def is_empty(self) -> bool:
        return not self.data


class MediaInfo(BaseModel):
    """Container facts established by sniffing an asset's bytes."""

    model_config = ConfigDict(frozen=True)

    is_animated: bool
    frame_count: int = Field(ge=1)
    mime_type: str
    width: int | None = None
    height: int | None = None
    frame_durations_ms: list[int] = Field(default_factory=list)
