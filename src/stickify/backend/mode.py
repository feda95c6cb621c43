"""Live/demo mode resolution."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from stickify.config import AppConfig

logger = logging.getLogger(__name__)

PLACEHOLDER_KEY = "PLACEHOLDER_API_KEY"
MIN_KEY_LENGTH = 11
ENV_KEY_NAMES = ("GEMINI_API_KEY", "GOOGLE_API_KEY")


@dataclass(frozen=True)
class ModeDecision:
    """Whether to call the live backend and, if so, with which credential."""

    live: bool
    credential: str | None = None


@runtime_checkable
class ModeResolver(Protocol):
    """Answers "live or demo?" once per pipeline invocation."""

    async def resolve_mode(self) -> ModeDecision:
        ...


class StaticModeResolver:
    """Always returns the same decision."""

    def __init__(self, live: bool = False, credential: str | None = None) -> None:
        if live and not credential:
            msg = "a live decision needs a credential"
            raise ValueError(msg)
        self._decision = ModeDecision(live=live, credential=credential if live else None)

    async def resolve_mode(self) -> ModeDecision:
        return self._decision


class SettingsModeResolver:
    """Resolve the credential from configuration, falling back to the environment.

    A missing or placeholder key is not an error; it selects demo mode.
    ``demo.force`` reports demo regardless of any stored key.
    """

    def __init__(self, config: AppConfig) -> None:
        self._config = config

    async def resolve_mode(self) -> ModeDecision:
        if self._config.demo.force:
            logger.info("Demo mode forced by configuration")
            return ModeDecision(live=False)

        key = _usable_key(self._config.gemini.api_key)
        if key is None:
            for name in ENV_KEY_NAMES:
                key = _usable_key(os.environ.get(name, ""))
                if key is not None:
                    break

        if key is None:
            logger.info("No Gemini API key found, running in demo mode")
            return ModeDecision(live=False)
        return ModeDecision(live=True, credential=key)


def _usable_key(raw: str) -> str | None:
    key = raw.strip()
    if not key or key == PLACEHOLDER_KEY or len(key) < MIN_KEY_LENGTH:
        return None
    return key
