"""End-to-end tests for the transformation pipeline with injected collaborators."""

from __future__ import annotations

import pytest
from helpers import FakeClient, RecordingFactory, encode, sticker_image

from stickify.backend.demo import DemoSimulator
from stickify.backend.mode import ModeDecision, StaticModeResolver
from stickify.errors import (
    EmptyGenerationError,
    InvalidRequestError,
    LiveModeRequiredError,
    MalformedAssetError,
    StageTimeoutError,
    UsageLimitExceededError,
)
from stickify.models import (
    MediaAsset,
    Mode,
    PixelFormat,
    Resolution,
    StickerStyle,
    Tier,
    TransformKind,
    TransformRequest,
)
from stickify.pipeline import TransformationPipeline, TransparencyEnforcer, UsageCounter
from stickify.pipeline.instructions import FRAME_TEXT_REMOVAL_INSTRUCTION

CREDENTIAL = "test-key-0123456789"


class CountingResolver:
    """Resolver that records how often it is consulted."""

    def __init__(self, live: bool) -> None:
        self.calls = 0
        self._decision = ModeDecision(live=live, credential=CREDENTIAL if live else None)

    async def resolve_mode(self) -> ModeDecision:
        self.calls += 1
        return self._decision


def make_pipeline(
    app_config,
    *,
    live: bool,
    factory: RecordingFactory | None = None,
    counter: UsageCounter | None = None,
    resolver=None,
) -> TransformationPipeline:
    return TransformationPipeline(
        config=app_config,
        mode_resolver=resolver or StaticModeResolver(
            live=live, credential=CREDENTIAL if live else None,
        ),
        client_factory=factory or RecordingFactory(),
        demo=DemoSimulator(app_config.demo),
        enforcer=TransparencyEnforcer.from_settings(app_config.transparency),
        counter=counter or UsageCounter(),
    )


# --- Live mode ---


@pytest.mark.asyncio
async def test_live_text_removal_enforces_transparency(app_config, png_asset):
    factory = RecordingFactory()
    pipeline = make_pipeline(app_config, live=True, factory=factory)

    result = await pipeline.remove_text(png_asset)

    assert result.mode is Mode.LIVE
    assert result.kind is TransformKind.TEXT_REMOVAL
    assert result.used_fallback_tier is Tier.HEURISTIC
    assert result.is_transparent
    assert result.raster.format is PixelFormat.RGBA
    assert factory.credentials == [CREDENTIAL]
    assert factory.client.close_calls == 1

    request = factory.client.requests[0]
    assert request.model == app_config.gemini.edit_model
    assert request.image is not None
    assert request.image.startswith(b"\x89PNG")
    assert request.image_mime_type == "image/png"


@pytest.mark.asyncio
async def test_animated_gif_uses_first_frame_live(app_config, gif_asset):
    factory = RecordingFactory()
    pipeline = make_pipeline(app_config, live=True, factory=factory)

    result = await pipeline.remove_text(gif_asset)

    assert result.mode is Mode.LIVE
    assert result.used_fallback_tier is not Tier.NONE
    assert result.approximated is True
    assert result.source_frame_count == 5
    # One backend call for the representative frame, not one per frame.
    assert len(factory.client.requests) == 1
    assert factory.client.requests[0].instruction == FRAME_TEXT_REMOVAL_INSTRUCTION


@pytest.mark.asyncio
async def test_live_generation_request_shape(app_config):
    factory = RecordingFactory()
    pipeline = make_pipeline(app_config, live=True, factory=factory)

    result = await pipeline.generate_from_prompt("  happy taco  ", Resolution.MID)

    assert result.kind is TransformKind.GENERATION
    assert result.mode is Mode.LIVE
    request = factory.client.requests[0]
    assert request.model == app_config.gemini.generation_model
    assert request.image is None
    assert request.image_size == "2K"
    assert request.aspect_ratio == "1:1"
    assert "happy taco" in request.instruction
    assert "  happy taco  " not in request.instruction


@pytest.mark.asyncio
async def test_live_reimagine_uses_style(app_config, png_asset):
    factory = RecordingFactory()
    pipeline = make_pipeline(app_config, live=True, factory=factory)

    result = await pipeline.reimagine(png_asset, StickerStyle.CHIBI)

    assert result.kind is TransformKind.REIMAGINE
    assert "chibi" in factory.client.requests[0].instruction.lower()


@pytest.mark.asyncio
async def test_unkeyable_candidate_is_passthrough(app_config, png_asset):
    noisy = sticker_image()
    noisy.paste((0, 0, 0), (0, 0, 32, 64))
    factory = RecordingFactory(FakeClient([encode(noisy)]))
    pipeline = make_pipeline(app_config, live=True, factory=factory)

    result = await pipeline.remove_text(png_asset)

    assert result.used_fallback_tier is Tier.PASSTHROUGH
    assert result.is_transparent is False
    assert result.raster.format is PixelFormat.RGBA


@pytest.mark.asyncio
async def test_live_results_may_differ_between_runs(app_config, png_asset):
    other = sticker_image()
    other.paste((10, 200, 10), (20, 20, 40, 40))
    factory = RecordingFactory(FakeClient([encode(sticker_image()), encode(other)]))
    pipeline = make_pipeline(app_config, live=True, factory=factory)

    first = await pipeline.remove_text(png_asset)
    second = await pipeline.remove_text(png_asset)
    assert first.raster != second.raster


# --- Live failures ---


@pytest.mark.asyncio
async def test_empty_generation_is_not_retried(app_config, png_asset):
    client = FakeClient(error=EmptyGenerationError("the model did not return an image"))
    counter = UsageCounter()
    pipeline = make_pipeline(
        app_config, live=True, factory=RecordingFactory(client), counter=counter,
    )

    with pytest.raises(EmptyGenerationError):
        await pipeline.remove_text(png_asset)
    assert len(client.requests) == 1
    assert counter.value == 0
    assert client.close_calls == 1


@pytest.mark.asyncio
async def test_undecodable_candidate_is_empty_generation(app_config, png_asset):
    factory = RecordingFactory(FakeClient([b"not an image at all"]))
    pipeline = make_pipeline(app_config, live=True, factory=factory)

    with pytest.raises(EmptyGenerationError):
        await pipeline.remove_text(png_asset)


@pytest.mark.asyncio
async def test_timeout_propagates(app_config):
    client = FakeClient(error=StageTimeoutError("image generation", 90))
    pipeline = make_pipeline(app_config, live=True, factory=RecordingFactory(client))

    with pytest.raises(StageTimeoutError, match="90s"):
        await pipeline.generate_from_prompt("cat")
    assert pipeline.usage == 0
    assert client.close_calls == 1


@pytest.mark.asyncio
async def test_budget_exhausted_blocks_before_backend(app_config, png_asset):
    counter = UsageCounter(daily_budget_cents=0.03, cost_per_frame_cents=0.03)
    counter.increment(live=True)
    factory = RecordingFactory()
    pipeline = make_pipeline(app_config, live=True, factory=factory, counter=counter)

    with pytest.raises(UsageLimitExceededError):
        await pipeline.remove_text(png_asset)
    assert factory.credentials == []
    assert factory.client.requests == []


# --- Demo mode ---


@pytest.mark.asyncio
async def test_demo_text_removal_skips_enforcement(app_config, png_asset):
    pipeline = make_pipeline(app_config, live=False)
    result = await pipeline.remove_text(png_asset)

    assert result.mode is Mode.DEMO
    assert result.used_fallback_tier is Tier.NONE
    assert result.is_transparent is False
    assert result.raster.format is PixelFormat.RGBA


@pytest.mark.asyncio
async def test_demo_makes_no_backend_calls(app_config, png_asset, gif_asset, no_network):
    factory = RecordingFactory()
    pipeline = make_pipeline(app_config, live=False, factory=factory)

    await pipeline.remove_text(png_asset)
    await pipeline.remove_text(gif_asset)
    await pipeline.generate_from_prompt("a cat")

    assert factory.credentials == []
    assert factory.client.requests == []
    assert no_network == []


@pytest.mark.asyncio
async def test_demo_is_idempotent(app_config, png_asset):
    pipeline = make_pipeline(app_config, live=False)
    first = await pipeline.remove_text(png_asset)
    second = await pipeline.remove_text(png_asset)
    assert first.raster == second.raster


@pytest.mark.asyncio
async def test_demo_animated_gif_is_approximated(app_config, gif_asset):
    pipeline = make_pipeline(app_config, live=False)
    result = await pipeline.remove_text(gif_asset)

    assert result.mode is Mode.DEMO
    assert result.approximated is True
    assert result.source_frame_count == 5
    assert result.raster.size == (48, 48)


@pytest.mark.asyncio
async def test_demo_generation_returns_placeholder(app_config):
    pipeline = make_pipeline(app_config, live=False)
    cat = await pipeline.generate_from_prompt("cat", Resolution.HIGH)
    dog = await pipeline.generate_from_prompt("dog")
    assert cat.raster == dog.raster
    assert cat.raster.size == (64, 64)


@pytest.mark.asyncio
async def test_demo_reimagine_needs_live_mode(app_config, png_asset):
    pipeline = make_pipeline(app_config, live=False)
    with pytest.raises(LiveModeRequiredError):
        await pipeline.reimagine(png_asset)
    assert pipeline.usage == 0


# --- Validation and bookkeeping ---


@pytest.mark.asyncio
@pytest.mark.parametrize("prompt", ["", "   ", "\n\t"])
async def test_blank_prompt_rejected_before_resolution(app_config, prompt):
    resolver = CountingResolver(live=True)
    pipeline = make_pipeline(app_config, live=True, resolver=resolver)
    with pytest.raises(InvalidRequestError):
        await pipeline.generate_from_prompt(prompt)
    assert resolver.calls == 0


@pytest.mark.asyncio
async def test_empty_asset_rejected(app_config):
    pipeline = make_pipeline(app_config, live=False)
    with pytest.raises(InvalidRequestError):
        await pipeline.remove_text(MediaAsset(data=b"", mime_type="image/png"))


@pytest.mark.asyncio
async def test_malformed_asset_rejected_before_resolution(app_config):
    resolver = CountingResolver(live=True)
    factory = RecordingFactory()
    pipeline = make_pipeline(app_config, live=True, resolver=resolver, factory=factory)

    with pytest.raises(MalformedAssetError):
        await pipeline.remove_text(MediaAsset(data=b"GIF89a\x00", mime_type="image/gif"))
    assert resolver.calls == 0
    assert factory.client.requests == []


@pytest.mark.asyncio
async def test_mode_resolved_once_per_operation(app_config, png_asset):
    resolver = CountingResolver(live=False)
    pipeline = make_pipeline(app_config, live=False, resolver=resolver)
    await pipeline.remove_text(png_asset)
    await pipeline.generate_from_prompt("cat")
    assert resolver.calls == 2


@pytest.mark.asyncio
async def test_usage_counts_each_success_once(app_config, png_asset):
    counter = UsageCounter()
    pipeline = make_pipeline(app_config, live=True, counter=counter)

    await pipeline.remove_text(png_asset)
    await pipeline.generate_from_prompt("cat")

    assert pipeline.usage == 2
    assert counter.spent_today_cents == pytest.approx(0.06)


@pytest.mark.asyncio
async def test_run_dispatches_on_kind(app_config, png_asset):
    factory = RecordingFactory()
    pipeline = make_pipeline(app_config, live=True, factory=factory)

    generated = await pipeline.run(TransformRequest.generation("cat", Resolution.HIGH))
    cleaned = await pipeline.run(TransformRequest.text_removal(png_asset))
    restyled = await pipeline.run(TransformRequest.reimagine(png_asset, StickerStyle.EMOJI))

    assert generated.kind is TransformKind.GENERATION
    assert cleaned.kind is TransformKind.TEXT_REMOVAL
    assert restyled.kind is TransformKind.REIMAGINE
    assert factory.client.requests[0].image_size == "4K"


def test_from_config_wires_defaults(app_config):
    pipeline = TransformationPipeline.from_config(app_config)
    assert pipeline.usage == 0
    assert pipeline.counter.remaining_budget_cents == app_config.usage.daily_budget_cents
