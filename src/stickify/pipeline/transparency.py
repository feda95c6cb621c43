"""Tiered background removal that guarantees an RGBA output.

Strategies are tried in order and each one answers :class:`Accepted` or
:class:`Skipped`; the first acceptance wins:

1. ``ML`` - learned foreground segmentation (rembg), accepted only when the
   matte is non-degenerate.
2. ``HEURISTIC`` - corner-sampled chroma key with a feathered edge.
3. ``PASSTHROUGH`` - the input with alpha forced opaque. Always accepted, and
   a soft-failure signal for callers: transparency was not achieved.
"""

from __future__ import annotations

import asyncio
import io
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, ClassVar, Protocol, TypeAlias

import numpy as np
from PIL import Image

from stickify.models import RasterImage, Tier

if TYPE_CHECKING:
    from stickify.config import TransparencySettings

logger = logging.getLogger(__name__)

# (input image) -> image with a foreground alpha matte
Segmenter: TypeAlias = Callable[[Image.Image], Image.Image]


@dataclass(frozen=True)
class Accepted:
    raster: RasterImage


@dataclass(frozen=True)
class Skipped:
    reason: str


StrategyOutcome: TypeAlias = Accepted | Skipped


@dataclass(frozen=True)
class EnforcedRaster:
    """An RGBA raster and the tier that produced its alpha channel."""

    raster: RasterImage
    tier: Tier


class TransparencyStrategy(Protocol):
    tier: Tier

    async def apply(self, raster: RasterImage) -> StrategyOutcome:
        ...


def degenerate_reason(raster: RasterImage, min_transparent_fraction: float) -> str | None:
    """Explain why a matte is unusable, or return None if it is fine.

    A matte is degenerate when (almost) every pixel is still opaque, which is
    what a segmentation call that silently did nothing looks like, or when
    every pixel was removed.
    """
    fraction = raster.transparent_fraction()
    if fraction <= min_transparent_fraction:
        return f"matte is effectively opaque ({fraction:.2%} transparent)"
    if raster.is_fully_transparent():
        return "matte removed every pixel"
    return None


def _new_rembg_session(model_name: str) -> object:
    from rembg import new_session

    return new_session(model_name)


class RembgSegmenter:
    """Segment foregrounds with rembg, caching one session per model.

    The cache is shared by worker threads and guarded by a lock, so each
    model is loaded at most once per process.
    """

    _sessions: ClassVar[dict[str, object]] = {}
    _sessions_lock: ClassVar[threading.Lock] = threading.Lock()

    def __init__(
        self,
        model_name: str = "isnet-general-use",
        *,
        session_factory: Callable[[str], object] = _new_rembg_session,
    ) -> None:
        self.model_name = model_name
        self._session_factory = session_factory

    def session(self) -> object:
        with self._sessions_lock:
            session = self._sessions.get(self.model_name)
            if session is None:
                logger.info("Loading segmentation model '%s'", self.model_name)
                session = self._session_factory(self.model_name)
                self._sessions[self.model_name] = session
            return session

    def __call__(self, img: Image.Image) -> Image.Image:
        from rembg import remove

        session = self.session()
        buf = io.BytesIO()
        img.save(buf, "PNG")
        out = remove(buf.getvalue(), session=session)
        return Image.open(io.BytesIO(out)).convert("RGBA")


class MLSegmentationTier:
    """Learned background/foreground segmentation."""

    tier = Tier.ML

    def __init__(
        self,
        *,
        segmenter: Segmenter,
        timeout: float,
        min_transparent_fraction: float,
    ) -> None:
        self._segmenter = segmenter
        self._timeout = timeout
        self._min_fraction = min_transparent_fraction

    async def apply(self, raster: RasterImage) -> StrategyOutcome:
        # A timed-out worker thread is abandoned, not killed.
        try:
            matte_img = await asyncio.wait_for(
                asyncio.to_thread(self._segmenter, raster.to_image()),
                timeout=self._timeout,
            )
        except TimeoutError:
            return Skipped(f"segmentation timed out after {self._timeout:g}s")
        except Exception as exc:  # noqa: BLE001
            return Skipped(f"segmentation failed: {exc}")

        if matte_img.size != raster.size:
            return Skipped(f"segmentation changed size {raster.size} -> {matte_img.size}")

        matte = RasterImage.from_image(matte_img.convert("RGBA"))
        reason = degenerate_reason(matte, self._min_fraction)
        if reason is not None:
            return Skipped(reason)
        return Accepted(matte)


class ChromaKeyTier:
    """Clear pixels close to the colour sampled from the four corners.

    Pixels within ``tolerance`` (Euclidean RGB distance) of the sampled colour
    become fully transparent; alpha ramps linearly back to opaque over the
    next ``feather`` units so the cut edge is not jagged. Existing alpha is
    kept where it is lower.
    """

    tier = Tier.HEURISTIC

    def __init__(
        self,
        *,
        tolerance: float = 30.0,
        feather: float = 10.0,
        corner_sample_size: int = 5,
    ) -> None:
        self.tolerance = tolerance
        self.feather = feather
        self.corner_sample_size = corner_sample_size

    def sample_background(self, rgb: np.ndarray) -> np.ndarray:
        h, w = rgb.shape[:2]
        n = max(1, min(self.corner_sample_size, h, w))
        corners = (rgb[:n, :n], rgb[:n, w - n:], rgb[h - n:, :n], rgb[h - n:, w - n:])
        return np.concatenate([c.reshape(-1, 3) for c in corners]).mean(axis=0)

    def key(self, raster: RasterImage) -> RasterImage:
        """Return the keyed RGBA raster. Never raises on a valid raster."""
        rgba = np.asarray(raster.with_alpha().to_image(), dtype=np.uint8)
        rgb = rgba[..., :3].astype(np.float32)

        background = self.sample_background(rgb)
        distance = np.sqrt(((rgb - background) ** 2).sum(axis=-1))

        if self.feather > 0:
            keep = np.clip((distance - self.tolerance) / self.feather, 0.0, 1.0)
        else:
            keep = (distance >= self.tolerance).astype(np.float32)

        alpha = np.minimum(rgba[..., 3], np.rint(keep * 255).astype(np.uint8))
        out = rgba.copy()
        out[..., 3] = alpha
        return RasterImage.from_image(Image.fromarray(out))

    async def apply(self, raster: RasterImage) -> StrategyOutcome:
        keyed = self.key(raster)
        if keyed.transparent_fraction() == 0.0:
            return Skipped("no pixels matched the sampled background colour")
        if keyed.is_fully_transparent():
            return Skipped("keying removed every pixel")
        return Accepted(keyed)


class PassthroughTier:
    """Return the input untouched, with opaque alpha added if missing."""

    tier = Tier.PASSTHROUGH

    async def apply(self, raster: RasterImage) -> StrategyOutcome:
        return Accepted(raster.with_alpha())


class TransparencyEnforcer:
    """Run the strategy chain until one accepts."""

    def __init__(self, strategies: list[TransparencyStrategy]) -> None:
        self.strategies = strategies

    @classmethod
    def from_settings(
        cls,
        settings: TransparencySettings,
        *,
        segmenter: Segmenter | None = None,
    ) -> TransparencyEnforcer:
        strategies: list[TransparencyStrategy] = []
        if settings.ml_enabled:
            strategies.append(
                MLSegmentationTier(
                    segmenter=segmenter or RembgSegmenter(settings.ml_model),
                    timeout=settings.ml_timeout,
                    min_transparent_fraction=settings.min_transparent_fraction,
                )
            )
        strategies.append(
            ChromaKeyTier(
                tolerance=settings.tolerance,
                feather=settings.feather,
                corner_sample_size=settings.corner_sample_size,
            )
        )
        strategies.append(PassthroughTier())
        return cls(strategies)

    async def enforce(self, raster: RasterImage) -> EnforcedRaster:
        for strategy in self.strategies:
            outcome = await strategy.apply(raster)
            if isinstance(outcome, Accepted):
                if strategy.tier is Tier.PASSTHROUGH:
                    logger.warning("Transparency not achieved, returning opaque image")
                else:
                    logger.info("Transparency satisfied by %s tier", strategy.tier)
                return EnforcedRaster(raster=outcome.raster.with_alpha(), tier=strategy.tier)
            logger.warning("%s tier skipped: %s", strategy.tier, outcome.reason)

        logger.warning("No transparency strategy accepted, returning opaque image")
        return EnforcedRaster(raster=raster.with_alpha(), tier=Tier.PASSTHROUGH)
