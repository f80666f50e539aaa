"""PDF Renderer using WeasyPrint.

Renders generated resume and cover letter content to PDF bytes using
Jinja2 HTML/CSS templates.
"""

from __future__ import annotations

import base64
import hashlib
import logging
import re
from datetime import date as date_type
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, Template
from weasyprint import HTML

from src.content.models import CoverLetterContent, ResumeContent
from src.rendering.config import PACKAGE_TEMPLATE_DIR, RenderConfig, get_render_config

logger = logging.getLogger(__name__)

MONTHS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]


class RenderError(Exception):
    """Exception raised when a document cannot be rendered."""

    def __init__(self, message: str, original_error: Exception | None = None):
        super().__init__(message)
        self.original_error = original_error


def format_month_year(value: str | None) -> str:
    """Format "YYYY-MM" as "Mon YYYY"; empty means the role is current."""
    if not value:
        return "Present"
    match = re.match(r"^(\d{4})-(\d{1,2})", value)
    if not match:
        return value
    year, month = match.groups()
    index = int(month) - 1
    if not 0 <= index < 12:
        return value
    return f"{MONTHS[index]} {year}"


def format_letter_date(day: date_type) -> str:
    """Format a date as "Month D, YYYY"."""
    return f"{day:%B} {day.day}, {day.year}"


def join_items(items: list[str] | None, separator: str = ", ") -> str:
    return separator.join(items or [])


def build_filename(name: str, company: str, document_type: str, request_id: str) -> str:
    """Build `<name>-<company>-<document_type>-<suffix>.pdf` with whitespace dashed.

    The suffix is a short hash of the request id, so the name is stable for
    one request and distinct across requests.
    """

    def dashed(value: str) -> str:
        return re.sub(r"\s+", "-", value.strip())

    suffix = hashlib.sha256(request_id.encode()).hexdigest()[:12]
    return f"{dashed(name)}-{dashed(company)}-{document_type}-{suffix}.pdf"


class PDFRenderer:
    """PDF renderer for generated documents.

    Compiled templates are cached for the renderer's lifetime.
    """

    def __init__(self, config: RenderConfig | None = None):
        """Initialize the PDF renderer.

        Args:
            config: Optional RenderConfig. Uses global config if not provided.
        """
        self.config = config or get_render_config()
        self._templates: dict[str, Template] = {}
        self._setup_jinja()

    def _setup_jinja(self) -> None:
        """Set up Jinja2 template environment."""
        template_dir = self.config.template_dir
        if not template_dir.exists():
            template_dir = PACKAGE_TEMPLATE_DIR

        self.jinja_env = Environment(
            loader=FileSystemLoader(str(template_dir)),
            autoescape=True,
        )
        self.jinja_env.filters["format_date"] = format_month_year
        self.jinja_env.filters["join"] = join_items

    def _get_template(self, name: str) -> Template:
        template = self._templates.get(name)
        if template is None:
            template = self.jinja_env.get_template(name)
            self._templates[name] = template
        return template

    def _load_styles(self) -> str:
        """Load the shared stylesheet."""
        styles_path = self.config.get_styles_path()
        if not styles_path.exists():
            styles_path = PACKAGE_TEMPLATE_DIR / "styles.css"
        if styles_path.exists():
            return styles_path.read_text(encoding="utf-8")
        return ""

    def _load_asset(self, filename: str, mime_type: str) -> str:
        """Load an optional asset as a data URL, or "" when it is absent."""
        path: Path = self.config.get_asset_dir() / filename
        if not path.is_file():
            logger.warning(f"Asset file not found: {filename}, proceeding without it")
            return ""
        encoded = base64.b64encode(path.read_bytes()).decode("ascii")
        return f"data:{mime_type};base64,{encoded}"

    def render_resume_html(
        self,
        content: ResumeContent,
        style: str | None = None,
        accent_color: str | None = None,
    ) -> str:
        """Render resume content to HTML."""
        template = self._get_template(self.config.resume_template_name(style))
        return template.render(
            **content.model_dump(mode="python"),
            accent_color=accent_color or self.config.default_accent_color,
            logo_data_url=self._load_asset("logo.svg", "image/svg+xml"),
            avatar_data_url=self._load_asset("avatar.jpg", "image/jpeg"),
            styles=self._load_styles(),
        )

    def render_cover_letter_html(
        self,
        content: CoverLetterContent,
        name: str,
        email: str,
        accent_color: str | None = None,
        date: str | None = None,
    ) -> str:
        """Render cover letter content to HTML."""
        template = self._get_template(self.config.cover_letter_template)
        return template.render(
            **content.model_dump(mode="python"),
            name=name,
            email=email,
            date=date or format_letter_date(date_type.today()),
            accent_color=accent_color or self.config.default_accent_color,
            styles=self._load_styles(),
        )

    def render_resume(
        self,
        content: ResumeContent,
        style: str | None = None,
        accent_color: str | None = None,
    ) -> bytes:
        """Render a resume to PDF bytes.

        Raises:
            RenderError: If the template or PDF conversion fails.
        """
        style = style or self.config.default_style
        logger.info(f"Generating resume PDF (style={style})")
        try:
            html = self.render_resume_html(content, style, accent_color)
            pdf = HTML(string=html).write_pdf()
        except Exception as e:
            logger.error(f"Failed to render resume: {e}")
            raise RenderError(f"PDF generation failed: {e}", e) from e
        logger.info(f"Resume PDF generated ({len(pdf)} bytes)")
        return pdf

    def render_cover_letter(
        self,
        content: CoverLetterContent,
        name: str,
        email: str,
        accent_color: str | None = None,
        date: str | None = None,
    ) -> bytes:
        """Render a cover letter to PDF bytes.

        Raises:
            RenderError: If the template or PDF conversion fails.
        """
        logger.info("Generating cover letter PDF")
        try:
            html = self.render_cover_letter_html(content, name, email, accent_color, date)
            pdf = HTML(string=html).write_pdf()
        except Exception as e:
            logger.error(f"Failed to render cover letter: {e}")
            raise RenderError(f"PDF generation failed: {e}", e) from e
        logger.info(f"Cover letter PDF generated ({len(pdf)} bytes)")
        return pdf
