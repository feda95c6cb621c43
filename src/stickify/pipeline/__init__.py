"""Stickify transformation pipeline - classify, generate, enforce transparency."""

from stickify.pipeline.classifier import GifBlockWalker, classify, count_gif_frames
from stickify.pipeline.frames import FrameProcessor
from stickify.pipeline.orchestrator import TransformationPipeline
from stickify.pipeline.transparency import (
    ChromaKeyTier,
    EnforcedRaster,
    MLSegmentationTier,
    PassthroughTier,
    TransparencyEnforcer,
)
from stickify.pipeline.usage import UsageCounter

__all__ = [
    "ChromaKeyTier",
    "EnforcedRaster",
    "FrameProcessor",
    "GifBlockWalker",
    "MLSegmentationTier",
    "PassthroughTier",
    "TransformationPipeline",
    "TransparencyEnforcer",
    "UsageCounter",
    "classify",
    "count_gif_frames",
]
