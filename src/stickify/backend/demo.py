"""Demo simulator for running the pipeline without a credential.

Everything here is local pixel work with Pillow; nothing touches the network.
"""

from __future__ import annotations

import functools
import logging
from typing import TYPE_CHECKING

from PIL import Image, ImageDraw, ImageFont, ImageStat

from stickify.codec import decode_raster
from stickify.errors import AssetDecodeError
from stickify.models import RasterImage

if TYPE_CHECKING:
    from stickify.config import DemoSettings
    from stickify.models import MediaAsset, Resolution

logger = logging.getLogger(__name__)

PLACEHOLDER_FILL = (255, 196, 0, 255)
PLACEHOLDER_OUTLINE = (255, 255, 255, 255)
PLACEHOLDER_TEXT = (40, 40, 40, 255)


class DemoSimulator:
    """Illustrative, deterministic stand-in for the generative backend.

    Text removal paints over the regions where captions and watermarks usually
    sit. Prompt generation returns one fixed placeholder sticker.
    """

    def __init__(self, settings: DemoSettings) -> None:
        self._settings = settings

    def remove_text(self, asset: MediaAsset) -> RasterImage:
        """Decode *asset* and scrub its caption band and watermark corner."""
        raster = decode_raster(asset.data, error=AssetDecodeError)
        return self.scrub_text(raster)

    def scrub_text(self, raster: RasterImage) -> RasterImage:
        img = raster.with_alpha().to_image()
        width, height = img.size
        draw = ImageDraw.Draw(img)

        # Caption band along the bottom edge.
        band_height = max(1, round(height * self._settings.caption_band_ratio))
        band_top = height - band_height
        sample_row = band_top - 1 if band_top > 0 else band_top
        band_colour = _row_colour(img, sample_row)
        draw.rectangle((0, band_top, width - 1, height - 1), fill=band_colour)

        # Watermark box in the top-right corner.
        mark_w = max(1, round(width * self._settings.watermark_width_ratio))
        mark_h = max(1, round(height * self._settings.watermark_height_ratio))
        mark_left = width - mark_w
        sample_xy = (mark_left, min(mark_h, height - 1))
        mark_colour = img.getpixel(sample_xy)
        draw.rectangle((mark_left, 0, width - 1, mark_h - 1), fill=mark_colour)

        logger.info(
            "Demo text removal: band %dpx at y=%d, watermark %dx%d", band_height, band_top,
            mark_w, mark_h,
        )
        return RasterImage.from_image(img)

    def generate(self, prompt: str, resolution: Resolution) -> RasterImage:
        """Return the fixed placeholder; *prompt* and *resolution* are ignored."""
        logger.info("Demo generation for %r at %s returns the placeholder", prompt[:40], resolution)
        return _placeholder(self._settings.placeholder_size)


def _row_colour(img: Image.Image, row: int) -> tuple[int, ...]:
    """Mean colour of one pixel row."""
    strip = img.crop((0, row, img.width, row + 1))
    return tuple(round(v) for v in ImageStat.Stat(strip).mean)


@functools.lru_cache(maxsize=4)
def _placeholder(size: int) -> RasterImage:
    img = Image.new("RGBA", (size, size), (0, 0, 0, 0))
    draw = ImageDraw.Draw(img)

    margin = size // 10
    outline = max(2, size // 32)
    draw.ellipse(
        (margin, margin, size - margin, size - margin),
        fill=PLACEHOLDER_FILL,
        outline=PLACEHOLDER_OUTLINE,
        width=outline,
    )

    try:
        font = ImageFont.truetype("/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf", size // 6)
    except OSError:
        font = ImageFont.load_default()

    left, top, right, bottom = draw.textbbox((0, 0), "DEMO", font=font)
    origin = ((size - (right - left)) // 2 - left, (size - (bottom - top)) // 2 - top)
    draw.text(origin, "DEMO", fill=PLACEHOLDER_TEXT, font=font)
    return RasterImage.from_image(img)
