"""Shared fixtures for Stickify tests."""

from __future__ import annotations

import socket
from collections.abc import Callable

import pytest

from helpers import (
    FakeClient,
    RecordingFactory,
    animated_gif,
    encode,
    sticker_image,
)
from stickify.config import AppConfig, DemoSettings, TransparencySettings
from stickify.models import MediaAsset, RasterImage


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    """Keep tests away from real credentials and the user's config dir."""
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    for name in ("GEMINI_API_KEY", "GOOGLE_API_KEY", "STICKIFY_GEMINI__API_KEY",
                 "STICKIFY_DEMO__FORCE"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def no_network(monkeypatch: pytest.MonkeyPatch):
    """Fail the test if anything tries to open an outbound connection."""
    attempts: list[object] = []

    def guarded_connect(self: socket.socket, address: object) -> None:
        attempts.append(address)
        msg = f"network access attempted: {address!r}"
        raise OSError(msg)

    def guarded_create_connection(address: object, *args: object, **kwargs: object) -> None:
        attempts.append(address)
        msg = f"network access attempted: {address!r}"
        raise OSError(msg)

    monkeypatch.setattr(socket.socket, "connect", guarded_connect)
    monkeypatch.setattr(socket.socket, "connect_ex", guarded_connect)
    monkeypatch.setattr(socket, "create_connection", guarded_create_connection)
    yield attempts
    if attempts:
        pytest.fail(f"outbound network calls attempted: {attempts}")


@pytest.fixture
def app_config() -> AppConfig:
    return AppConfig(
        transparency=TransparencySettings(ml_enabled=False),
        demo=DemoSettings(placeholder_size=64),
    )


@pytest.fixture
def sticker_raster() -> RasterImage:
    return RasterImage.from_image(sticker_image())


@pytest.fixture
def png_asset() -> MediaAsset:
    return MediaAsset(data=encode(sticker_image()), mime_type="image/png")


@pytest.fixture
def gif_asset() -> MediaAsset:
    return MediaAsset(data=animated_gif(5), mime_type="image/gif")


@pytest.fixture
def fake_client() -> FakeClient:
    return FakeClient()


@pytest.fixture
def make_factory() -> Callable[..., RecordingFactory]:
    return RecordingFactory
