"""CLI entry point using Typer."""

from __future__ import annotations

import mimetypes
from pathlib import Path
from typing import TYPE_CHECKING, Annotated

import typer

from stickify.models import Resolution, StickerStyle, Tier

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from stickify.models import MediaAsset, TransformResult
    from stickify.pipeline import TransformationPipeline

app = typer.Typer(
    name="stickify",
    help="Turn images and GIFs into clean, transparent stickers.",
    no_args_is_help=False,
)

DemoOption = Annotated[
    bool, typer.Option("--demo", help="Force demo mode even if an API key is set"),
]


def _load_asset(path: Path) -> MediaAsset:
    from stickify.models import MediaAsset

    try:
        data = path.read_bytes()
    except OSError as e:
        typer.echo(f"Error: cannot read {path}: {e}", err=True)
        raise typer.Exit(1) from None
    mime, _ = mimetypes.guess_type(path.name)
    return MediaAsset(data=data, mime_type=mime or "application/octet-stream")


def _build_pipeline(demo: bool) -> TransformationPipeline:
    from stickify.backend.mode import StaticModeResolver
    from stickify.config import load_config
    from stickify.pipeline import TransformationPipeline

    config = load_config()
    resolver = StaticModeResolver(live=False) if demo else None
    return TransformationPipeline.from_config(config, mode_resolver=resolver)


def _run(
    operation: Callable[[], Awaitable[TransformResult]],
    output: Path,
) -> None:
    import asyncio

    from stickify.errors import StickifyError, user_message

    try:
        result = asyncio.run(operation())
    except StickifyError as e:
        typer.echo(f"Error: {user_message(e)}", err=True)
        typer.echo(f"  ({e})", err=True)
        raise typer.Exit(1) from None

    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_bytes(result.png_bytes())
    typer.echo(f"Saved: {output} ({result.raster.width}x{result.raster.height}, {result.mode})")
    if result.approximated:
        typer.echo(
            f"Note: animated source with {result.source_frame_count} frames; "
            "only the first frame was transformed."
        )
    if result.used_fallback_tier is Tier.PASSTHROUGH:
        typer.echo("Warning: background could not be removed; image is not transparent.")


@app.command("remove-text")
def remove_text(
    source: Annotated[Path, typer.Argument(help="Image or GIF to clean")],
    output: Annotated[
        Path | None, typer.Option("--output", "-o", help="Output PNG path"),
    ] = None,
    demo: DemoOption = False,
) -> None:
    """Remove captions and watermarks from an image or GIF."""
    asset = _load_asset(source)
    pipeline = _build_pipeline(demo)
    _run(
        lambda: pipeline.remove_text(asset),
        output or source.with_name(f"{source.stem}-clean.png"),
    )


@app.command()
def generate(
    prompt: Annotated[str, typer.Argument(help="Sticker description")],
    resolution: Annotated[
        Resolution, typer.Option("--resolution", "-r", help="Output size hint"),
    ] = Resolution.LOW,
    output: Annotated[
        Path, typer.Option("--output", "-o", help="Output PNG path"),
    ] = Path("sticker.png"),
    demo: DemoOption = False,
) -> None:
    """Generate a new sticker from a prompt."""
    pipeline = _build_pipeline(demo)
    _run(lambda: pipeline.generate_from_prompt(prompt, resolution), output)


@app.command()
def reimagine(
    source: Annotated[Path, typer.Argument(help="Image or GIF to restyle")],
    style: Annotated[
        StickerStyle, typer.Option("--style", "-s", help="Sticker style"),
    ] = StickerStyle.CARTOON,
    output: Annotated[
        Path | None, typer.Option("--output", "-o", help="Output PNG path"),
    ] = None,
) -> None:
    """Redraw an image's subject as a stylised sticker (needs an API key)."""
    asset = _load_asset(source)
    pipeline = _build_pipeline(demo=False)
    _run(
        lambda: pipeline.reimagine(asset, style),
        output or source.with_name(f"{source.stem}-{style.value}.png"),
    )


@app.command()
def classify(
    source: Annotated[Path, typer.Argument(help="File to inspect")],
) -> None:
    """Report container type and animation facts for a file."""
    from stickify.errors import MalformedAssetError
    from stickify.pipeline.classifier import classify as classify_bytes

    asset = _load_asset(source)
    try:
        info = classify_bytes(asset.data, asset.mime_type)
    except MalformedAssetError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None

    typer.echo(f"Type: {info.mime_type}")
    if info.width and info.height:
        typer.echo(f"Size: {info.width}x{info.height}")
    typer.echo(f"Frames: {info.frame_count}")
    typer.echo(f"Animated: {'yes' if info.is_animated else 'no'}")
    if info.is_animated:
        total = sum(info.frame_durations_ms)
        typer.echo(f"Duration: {total} ms")


@app.command()
def check() -> None:
    """Report the active mode and backend connectivity."""
    import asyncio

    from stickify.backend.gemini import check_gemini_available
    from stickify.backend.mode import SettingsModeResolver
    from stickify.config import config_file, load_config

    config = load_config()

    async def _run_check() -> None:
        decision = await SettingsModeResolver(config).resolve_mode()
        path = config_file()
        typer.echo(f"Config: {path}" + ("" if path.exists() else " (not found, using defaults)"))
        ml = "enabled" if config.transparency.ml_enabled else "disabled"
        typer.echo(f"ML background removal: {ml} ({config.transparency.ml_model})")
        if not decision.live:
            typer.echo("Mode: demo (no Gemini API key configured)")
            typer.echo("Status: ready")
            return
        available = await check_gemini_available(decision.credential or "")
        if available:
            typer.echo("Mode: live")
            typer.echo(f"Models: {config.gemini.edit_model}, {config.gemini.generation_model}")
            typer.echo("Status: ready")
        else:
            typer.echo("Mode: live (Gemini unreachable or key rejected)")
            typer.echo("Status: offline")
            raise typer.Exit(1)

    asyncio.run(_run_check())


def _version_callback(value: bool) -> None:
    if value:
        from stickify import __version__

        typer.echo(f"stickify {__version__}")
        raise typer.Exit()


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: Annotated[
        bool,
        typer.Option(
            "--version", "-v", help="Show version", is_eager=True, callback=_version_callback,
        ),
    ] = False,
    verbose: Annotated[
        bool, typer.Option("--verbose", help="Log pipeline stages to stderr")
    ] = False,
) -> None:
    """Stickify - clean, transparent stickers from images, GIFs and prompts."""
    if verbose:
        from stickify.logging_setup import setup_logging

        setup_logging("DEBUG")
    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
