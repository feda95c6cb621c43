"""Decoding and canonical re-encoding of rasters with Pillow."""

from __future__ import annotations

import io
import logging

from PIL import Image, ImageOps, UnidentifiedImageError

from stickify.errors import AssetDecodeError, StickifyError
from stickify.models import RasterImage

logger = logging.getLogger(__name__)

CANONICAL_MIME = "image/png"


def decode_raster(
    data: bytes,
    *,
    frame: int = 0,
    error: type[StickifyError] = AssetDecodeError,
) -> RasterImage:
    """Decode one frame of an encoded image into a :class:`RasterImage`.

    EXIF orientation is applied so the pixels match what a viewer shows.
    Any decoder failure is raised as *error*.
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            if frame:
                img.seek(frame)
            img.load()
            oriented = ImageOps.exif_transpose(img) if frame == 0 else img
            return RasterImage.from_image(oriented)
    except (
        UnidentifiedImageError, Image.DecompressionBombError, OSError, EOFError, ValueError,
    ) as exc:
        msg = f"could not decode image data: {exc}"
        raise error(msg) from exc


def canonical_png(raster: RasterImage) -> bytes:
    """Re-encode pixels as PNG, the only encoding sent to the backend."""
    png = raster.to_png()
    logger.debug("Canonicalised %dx%d %s raster to %d PNG bytes",
                 raster.width, raster.height, raster.format, len(png))
    return png
