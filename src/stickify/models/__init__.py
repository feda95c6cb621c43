"""Stickify data models - pure Pydantic, no I/O."""

from stickify.models.enums import (
    Mode,
    PixelFormat,
    Resolution,
    StickerStyle,
    Tier,
    TransformKind,
)
from stickify.models.media import MediaAsset, MediaInfo, RasterImage
from stickify.models.transform import TransformRequest, TransformResult

__all__ = [
    "MediaAsset",
    "MediaInfo",
    "Mode",
    "PixelFormat",
    "RasterImage",
    "Resolution",
    "StickerStyle",
    "Tier",
    "TransformKind",
    "TransformRequest",
    "TransformResult",
]
