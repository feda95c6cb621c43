"""Transformation pipeline: classify, generate or simulate, enforce transparency."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, TypeAlias

from stickify.backend.base import GenerationRequest, GenerativeClient
from stickify.backend.demo import DemoSimulator
from stickify.backend.gemini import GeminiClient
from stickify.backend.mode import ModeDecision, ModeResolver, SettingsModeResolver
from stickify.codec import CANONICAL_MIME, canonical_png, decode_raster
from stickify.errors import EmptyGenerationError, LiveModeRequiredError, MalformedAssetError
from stickify.models import (
    MediaAsset,
    Mode,
    RasterImage,
    Resolution,
    StickerStyle,
    TransformKind,
    TransformRequest,
    TransformResult,
)
from stickify.pipeline.classifier import classify
from stickify.pipeline.frames import FrameProcessor
from stickify.pipeline.instructions import (
    generation_instruction,
    reimagine_instruction,
    text_removal_instruction,
)
from stickify.pipeline.transparency import Segmenter, TransparencyEnforcer
from stickify.pipeline.usage import UsageCounter

if TYPE_CHECKING:
    from stickify.config import AppConfig

logger = logging.getLogger(__name__)

# credential -> client
ClientFactory: TypeAlias = Callable[[str], GenerativeClient]

GENERATION_ASPECT_RATIO = "1:1"


class TransformationPipeline:
    """Compose classification, generation and transparency into public operations.

    Every operation resolves the mode once, runs one sequential chain of
    stages, and increments the usage counter exactly once on success. Stage
    failures propagate as typed errors; nothing is retried here.
    """

    def __init__(
        self,
        *,
        config: AppConfig,
        mode_resolver: ModeResolver,
        client_factory: ClientFactory,
        demo: DemoSimulator,
        enforcer: TransparencyEnforcer,
        counter: UsageCounter,
        frames: FrameProcessor | None = None,
    ) -> None:
        self._config = config
        self._mode_resolver = mode_resolver
        self._client_factory = client_factory
        self._demo = demo
        self._enforcer = enforcer
        self._counter = counter
        self._frames = frames or FrameProcessor()

    @classmethod
    def from_config(
        cls,
        config: AppConfig,
        *,
        mode_resolver: ModeResolver | None = None,
        counter: UsageCounter | None = None,
        segmenter: Segmenter | None = None,
    ) -> TransformationPipeline:
        """Wire the default collaborators from configuration."""

        def client_factory(credential: str) -> GenerativeClient:
            return GeminiClient(credential, config.gemini)

        return cls(
            config=config,
            mode_resolver=mode_resolver or SettingsModeResolver(config),
            client_factory=client_factory,
            demo=DemoSimulator(config.demo),
            enforcer=TransparencyEnforcer.from_settings(config.transparency, segmenter=segmenter),
            counter=counter or UsageCounter(
                daily_budget_cents=config.usage.daily_budget_cents,
                cost_per_frame_cents=config.usage.cost_per_frame_cents,
            ),
        )

    @property
    def usage(self) -> int:
        """Number of successful transformations so far."""
        return self._counter.value

    @property
    def counter(self) -> UsageCounter:
        return self._counter

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    async def run(self, request: TransformRequest) -> TransformResult:
        """Dispatch a validated request to the matching operation."""
        request.validate_invariants()
        if request.kind is TransformKind.GENERATION:
            return await self.generate_from_prompt(request.prompt or "", request.resolution)
        if request.kind is TransformKind.REIMAGINE:
            return await self.reimagine(request.asset, request.style or StickerStyle.CARTOON)
        return await self.remove_text(request.asset)

    async def remove_text(self, asset: MediaAsset | None) -> TransformResult:
        """Scrub text from a still image or the first frame of an animation."""
        request = TransformRequest.text_removal(asset)
        asset = request.asset
        info = classify(asset.data, asset.mime_type)
        decision = await self._resolve()

        async def on_frame(frame: RasterImage) -> TransformResult:
            return await self._remove_text_from_raster(frame, decision, animated=True)

        if info.is_animated:
            result = await self._frames.process(asset, info, on_frame)
        elif decision.live:
            raster = decode_raster(asset.data, error=MalformedAssetError)
            result = await self._remove_text_from_raster(raster, decision, animated=False)
        else:
            result = TransformResult(
                raster=self._demo.remove_text(asset),
                mode=Mode.DEMO,
                kind=TransformKind.TEXT_REMOVAL,
            )
        return self._record(result)

    async def generate_from_prompt(
        self,
        prompt: str,
        resolution: Resolution = Resolution.LOW,
    ) -> TransformResult:
        """Generate a new sticker from a text prompt."""
        request = TransformRequest.generation(prompt, resolution)
        decision = await self._resolve()

        if not decision.live:
            result = TransformResult(
                raster=self._demo.generate(request.prompt or "", request.resolution),
                mode=Mode.DEMO,
                kind=TransformKind.GENERATION,
            )
            return self._record(result)

        gen_request = GenerationRequest(
            instruction=generation_instruction(request.prompt or ""),
            model=self._config.gemini.generation_model,
            image_size=request.resolution.value,
            aspect_ratio=GENERATION_ASPECT_RATIO,
        )
        result = await self._generate_live(gen_request, decision, TransformKind.GENERATION)
        return self._record(result)

    async def reimagine(
        self,
        asset: MediaAsset | None,
        style: StickerStyle = StickerStyle.CARTOON,
    ) -> TransformResult:
        """Redraw the asset's subject in a sticker style. Live mode only."""
        request = TransformRequest.reimagine(asset, style)
        asset = request.asset
        info = classify(asset.data, asset.mime_type)
        decision = await self._resolve()
        if not decision.live:
            msg = "reimagining a sticker requires a Gemini API key"
            raise LiveModeRequiredError(msg)

        async def on_raster(raster: RasterImage) -> TransformResult:
            gen_request = GenerationRequest(
                instruction=reimagine_instruction(style),
                model=self._config.gemini.edit_model,
                image=canonical_png(raster),
                image_mime_type=CANONICAL_MIME,
            )
            return await self._generate_live(gen_request, decision, TransformKind.REIMAGINE)

        if info.is_animated:
            result = await self._frames.process(asset, info, on_raster)
        else:
            result = await on_raster(decode_raster(asset.data, error=MalformedAssetError))
        return self._record(result)

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def _resolve(self) -> ModeDecision:
        decision = await self._mode_resolver.resolve_mode()
        logger.info("Pipeline running in %s mode", Mode.LIVE if decision.live else Mode.DEMO)
        return decision

    async def _remove_text_from_raster(
        self,
        raster: RasterImage,
        decision: ModeDecision,
        *,
        animated: bool,
    ) -> TransformResult:
        if not decision.live:
            return TransformResult(
                raster=self._demo.scrub_text(raster),
                mode=Mode.DEMO,
                kind=TransformKind.TEXT_REMOVAL,
            )
        gen_request = GenerationRequest(
            instruction=text_removal_instruction(animated=animated),
            model=self._config.gemini.edit_model,
            image=canonical_png(raster),
            image_mime_type=CANONICAL_MIME,
        )
        return await self._generate_live(gen_request, decision, TransformKind.TEXT_REMOVAL)

    async def _generate_live(
        self,
        gen_request: GenerationRequest,
        decision: ModeDecision,
        kind: TransformKind,
    ) -> TransformResult:
        self._counter.check_budget()
        client = self._client_factory(decision.credential or "")
        try:
            candidate = await client.generate(gen_request)
        finally:
            await client.aclose()

        raster = decode_raster(candidate.data, error=EmptyGenerationError)

        enforced = await self._enforcer.enforce(raster)
        return TransformResult(
            raster=enforced.raster,
            mode=Mode.LIVE,
            kind=kind,
            used_fallback_tier=enforced.tier,
        )

    def _record(self, result: TransformResult) -> TransformResult:
        count = self._counter.increment(live=result.mode is Mode.LIVE)
        logger.info(
            "%s finished (%s, tier=%s, approximated=%s); usage=%d",
            result.kind, result.mode, result.used_fallback_tier, result.approximated, count,
        )
        return result

