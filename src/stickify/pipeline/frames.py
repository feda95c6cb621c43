"""Single representative frame handling for animated assets."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

from stickify.codec import decode_raster
from stickify.errors import MalformedAssetError

if TYPE_CHECKING:
    from stickify.models import MediaAsset, MediaInfo, RasterImage, TransformResult

logger = logging.getLogger(__name__)

StaticTransform = Callable[["RasterImage"], Awaitable["TransformResult"]]


class FrameProcessor:
    """Run the static pipeline on the first frame of an animation.

    The output is one static raster standing in for the whole animation,
    tagged ``approximated`` so callers know motion was dropped. Transforming
    every frame would cost one backend call per frame.
    """

    representative_index = 0

    def representative_frame(self, asset: MediaAsset) -> RasterImage:
        frame = decode_raster(
            asset.data, frame=self.representative_index, error=MalformedAssetError,
        )
        return frame.with_alpha()

    async def process(
        self,
        asset: MediaAsset,
        info: MediaInfo,
        transform: StaticTransform,
    ) -> TransformResult:
        frame = self.representative_frame(asset)
        logger.info(
            "Animated asset with %d frames reduced to frame %d (%dx%d)",
            info.frame_count, self.representative_index, frame.width, frame.height,
        )
        result = await transform(frame)
        return result.model_copy(
            update={"approximated": True, "source_frame_count": info.frame_count},
        )
