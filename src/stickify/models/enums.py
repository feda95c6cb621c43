"""Enumerations used throughout Stickify."""

from enum import StrEnum


class PixelFormat(StrEnum):
    RGB = "RGB"
    RGBA = "RGBA"


class Mode(StrEnum):
    LIVE = "live"
    DEMO = "demo"


class Tier(StrEnum):
    NONE = "none"
    ML = "ml"
    HEURISTIC = "heuristic"
    PASSTHROUGH = "passthrough"


class TransformKind(StrEnum):
    TEXT_REMOVAL = "text_removal"
    GENERATION = "generation"
    REIMAGINE = "reimagine"


class Resolution(StrEnum):
    LOW = "1K"
    MID = "2K"
    HIGH = "4K"


class StickerStyle(StrEnum):
    CARTOON = "cartoon"
    EMOJI = "emoji"
    CHIBI = "chibi"
    MINIMALIST = "minimalist"
