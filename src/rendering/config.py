"""Configuration settings for the document renderer."""

from __future__ import annotations

import re
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

PACKAGE_TEMPLATE_DIR = Path(__file__).parent / "templates"

HEX_COLOR = re.compile(r"^#(?:[0-9a-fA-F]{3}){1,2}$")


class RenderConfig(BaseSettings):
    """Configuration for PDF rendering.

    Settings can be overridden via environment variables prefixed with RENDER_.
    """

    model_config = SettingsConfigDict(
        env_prefix="RENDER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    template_dir: Path = Field(
        default=PACKAGE_TEMPLATE_DIR,
        description="Directory containing HTML/CSS templates",
    )
    asset_dir: Path | None = Field(
        default=None,
        description="Directory with optional logo.svg / avatar.jpg (defaults to <template_dir>/assets)",
    )
    default_style: str = Field(
        default="modern",
        description="Resume template style, selects resume-<style>.html",
    )
    default_accent_color: str = Field(
        default="#3B82F6",
        description="Accent color used when the caller supplies none",
    )
    cover_letter_template: str = Field(default="cover-letter.html")

    @field_validator("template_dir", mode="before")
    @classmethod
    def convert_to_path(cls, v: str | Path) -> Path:
        """Convert string paths to Path objects."""
        if isinstance(v, str):
            return Path(v)
        return v

    @field_validator("default_accent_color")
    @classmethod
    def validate_color(cls, v: str) -> str:
        """Require a #RGB or #RRGGBB color."""
        if not HEX_COLOR.match(v):
            raise ValueError(f"Invalid accent color: {v}")
        return v

    def resume_template_name(self, style: str | None = None) -> str:
        """Template filename for a resume style."""
        return f"resume-{style or self.default_style}.html"

    def get_asset_dir(self) -> Path:
        """Directory holding optional image assets."""
        return self.asset_dir or self.template_dir / "assets"

    def get_styles_path(self) -> Path:
        """Get full path to the shared stylesheet."""
        return self.template_dir / "styles.css"


# Singleton instance
_render_config: RenderConfig | None = None


def get_render_config() -> RenderConfig:
    """Get the render configuration singleton."""
    global _render_config
    if _render_config is None:
        _render_config = RenderConfig()
    return _render_config


def reset_render_config() -> None:
    """Reset the configuration singleton (useful for testing)."""
    global _render_config
    _render_config = None
