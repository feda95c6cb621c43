"""Stickify - sticker transformation pipeline with guaranteed transparency."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("stickify")
except PackageNotFoundError:
    __version__ = "unknown"
