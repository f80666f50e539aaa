"""Document rendering (Jinja2 templates to PDF via WeasyPrint)."""

from src.rendering.config import RenderConfig, get_render_config, reset_render_config
from src.rendering.renderer import (
    PDFRenderer,
    RenderError,
    build_filename,
    format_letter_date,
    format_month_year,
)

__all__ = [
    "PDFRenderer",
    "RenderError",
    "RenderConfig",
    "get_render_config",
    "reset_render_config",
    "build_filename",
    "format_letter_date",
    "format_month_year",
]
