"""Transform request and result models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator

from stickify.errors import InvalidRequestError
from stickify.models.enums import Mode, Resolution, StickerStyle, Tier, TransformKind
from stickify.models.media import MediaAsset, RasterImage


class TransformRequest(BaseModel):
    """One unit of work for the pipeline.

    Text removal and reimagining need a non-empty asset; generation needs a
    prompt that is non-empty once trimmed. The stored prompt is trimmed.
    """

    model_config = ConfigDict(frozen=True)

    kind: TransformKind
    asset: MediaAsset | None = None
    prompt: str | None = None
    resolution: Resolution = Resolution.LOW
    style: StickerStyle | None = None

    @model_validator(mode="before")
    @classmethod
    def _trim_prompt(cls, data: object) -> object:
        if isinstance(data, dict) and isinstance(data.get("prompt"), str):
            data = {**data, "prompt": data["prompt"].strip()}
        return data

    @classmethod
    def text_removal(cls, asset: MediaAsset) -> TransformRequest:
        return cls._checked(kind=TransformKind.TEXT_REMOVAL, asset=asset)

    @classmethod
    def generation(
        cls, prompt: str, resolution: Resolution = Resolution.LOW,
    ) -> TransformRequest:
        return cls._checked(kind=TransformKind.GENERATION, prompt=prompt, resolution=resolution)

    @classmethod
    def reimagine(
        cls, asset: MediaAsset, style: StickerStyle = StickerStyle.CARTOON,
    ) -> TransformRequest:
        return cls._checked(kind=TransformKind.REIMAGINE, asset=asset, style=style)

    @classmethod
    def _checked(cls, **fields: object) -> TransformRequest:
        request = cls.model_validate(fields)
        request.validate_invariants()
        return request

    def validate_invariants(self) -> None:
        """Raise :class:`InvalidRequestError` when the request cannot be run."""
        if self.kind is TransformKind.GENERATION:
            if not self.prompt:
                msg = "generation requires a non-empty prompt"
                raise InvalidRequestError(msg)
        elif self.asset is None or self.asset.is_empty:
            msg = f"{self.kind} requires a non-empty asset"
            raise InvalidRequestError(msg)


class TransformResult(BaseModel):
    """A terminal raster together with how it was produced."""

    model_config = ConfigDict(frozen=True)

    raster: RasterImage
    mode: Mode
    kind: TransformKind
    used_fallback_tier: Tier = Tier.NONE
    approximated: bool = False
    source_frame_count: int = Field(default=1, ge=1)

    @property
    def is_transparent(self) -> bool:
        """True only when a removal tier produced the alpha channel."""
        return self.used_fallback_tier in (Tier.ML, Tier.HEURISTIC)

    def png_bytes(self) -> bytes:
        return self.raster.to_png()
