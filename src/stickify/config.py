"""Application configuration with pydantic-settings + TOML."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict, TomlConfigSettingsSource


def config_file() -> Path:
    """Location of the optional TOML config file."""
    return Path.home() / ".stickify" / "config.toml"


class GeminiSettings(BaseSettings):
    """Gemini image backend configuration."""

    api_key: str = ""
    edit_model: str = "gemini-2.5-flash-image"
    generation_model: str = "gemini-3-pro-image-preview"
    timeout: float = Field(default=90.0, gt=0)


class TransparencySettings(BaseSettings):
    """Background removal tiers."""

    ml_enabled: bool = True
    ml_model: str = "isnet-general-use"
    ml_timeout: float = Field(default=45.0, gt=0)
    min_transparent_fraction: float = Field(default=0.01, ge=0.0, lt=1.0)
    tolerance: float = Field(default=30.0, gt=0)
    feather: float = Field(default=10.0, ge=0)
    corner_sample_size: int = Field(default=5, gt=0)


class DemoSettings(BaseSettings):
    """Local simulation used when no credential is available."""

    force: bool = False
    caption_band_ratio: float = Field(default=0.25, gt=0, le=1)
    watermark_width_ratio: float = Field(default=0.2, gt=0, le=1)
    watermark_height_ratio: float = Field(default=0.1, gt=0, le=1)
    placeholder_size: int = Field(default=512, ge=16, le=4096)


class UsageSettings(BaseSettings):
    """Daily spend tracking for live generations."""

    daily_budget_cents: float = Field(default=2500.0, gt=0)
    cost_per_frame_cents: float = Field(default=0.03, ge=0)


class AppConfig(BaseSettings):
    """Root application configuration."""

    model_config = SettingsConfigDict(
        env_prefix="STICKIFY_",
        env_nested_delimiter="__",
    )

    gemini: GeminiSettings = Field(default_factory=GeminiSettings)
    transparency: TransparencySettings = Field(default_factory=TransparencySettings)
    demo: DemoSettings = Field(default_factory=DemoSettings)
    usage: UsageSettings = Field(default_factory=UsageSettings)

    @classmethod
    def settings_customise_sources(cls, settings_cls, **kwargs):  # type: ignore[override]
        toml_path = config_file()
        sources = (
            kwargs.get("init_settings"),
            kwargs.get("env_settings"),
        )
        if toml_path.exists():
            sources = (*sources, TomlConfigSettingsSource(settings_cls, toml_file=toml_path))
        return (*sources, kwargs.get("dotenv_settings"), kwargs.get("file_secret_settings"))


def load_config() -> AppConfig:
    """Load application config from the environment and the optional TOML file."""
    return AppConfig()
