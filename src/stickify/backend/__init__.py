"""Generative backends and mode resolution."""

from stickify.backend.base import GenerationCandidate, GenerationRequest, GenerativeClient
from stickify.backend.demo import DemoSimulator
from stickify.backend.gemini import GeminiClient
from stickify.backend.mode import (
    ModeDecision,
    ModeResolver,
    SettingsModeResolver,
    StaticModeResolver,
)

__all__ = [
    "DemoSimulator",
    "GeminiClient",
    "GenerationCandidate",
    "GenerationRequest",
    "GenerativeClient",
    "ModeDecision",
    "ModeResolver",
    "SettingsModeResolver",
    "StaticModeResolver",
]
