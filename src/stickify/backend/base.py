"""Backend protocols and shared types for generative image calls."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable


@dataclass
class GenerationRequest:
    """A single request/response exchange with the image backend."""

    instruction: str
    model: str
    # Canonical PNG bytes for edit-style requests; None for text-to-image.
    image: bytes | None = None
    image_mime_type: str = "image/png"
    image_size: str | None = None
    aspect_ratio: str | None = None


@dataclass
class GenerationCandidate:
    """The first inline image returned by the backend."""

    data: bytes
    mime_type: str = "image/png"
    metadata: dict[str, object] = field(default_factory=dict)


@runtime_checkable
class GenerativeClient(Protocol):
    """Protocol for stateless image generation/editing backends.

    One call yields one candidate image or raises a typed
    :class:`~stickify.errors.StickifyError`.
    """

    async def generate(self, request: GenerationRequest) -> GenerationCandidate:
        """Run one exchange and return the first inline image candidate."""
        ...

    async def aclose(self) -> None:
        """Release any transport the client owns."""
        ...
