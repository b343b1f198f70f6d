# File location: src/portal/utils/pdf_renderer.py
import asyncio
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict

from jinja2 import Environment, FileSystemLoader, select_autoescape
from jinja2.exceptions import TemplateError
from playwright.async_api import async_playwright, Error as PlaywrightError

from src.portal.config.settings import PDF_RENDER_TIMEOUT_SECONDS
from src.portal.utils.exceptions import GenerationException

logger = logging.getLogger(__name__)

TEMPLATES_DIR = os.path.join(os.path.dirname(os.path.dirname(__file__)), "templates")

PDF_MAGIC = b"%PDF-"
MIN_PDF_BYTES = 1000


@dataclass
class PageLayout:
    landscape: bool = False
    page_format: str = "A4"
    margin: Dict[str, str] = field(
        default_factory=lambda: {"top": "0", "right": "0", "bottom": "0", "left": "0"}
    )


def validate_pdf(data: bytes) -> bytes:
    """Reject renderer output that is not a plausible PDF file."""
    if not data or not data.startswith(PDF_MAGIC):
        raise GenerationException("Renderer returned a malformed PDF", step="validate")
    if len(data) < MIN_PDF_BYTES:
        raise GenerationException(
            f"Renderer returned a truncated PDF ({len(data)} bytes)", step="validate"
        )
    return data


class PlaywrightPdfRenderer:
    """Renders Jinja2 HTML templates to PDF with headless Chromium."""

    def __init__(self, templates_dir: str = TEMPLATES_DIR, timeout_seconds: float = PDF_RENDER_TIMEOUT_SECONDS):
        self.env = Environment(
            loader=FileSystemLoader(templates_dir),
            autoescape=select_autoescape(["html"]),
        )
        self.timeout_seconds = timeout_seconds

    def render_html(self, template_name: str, context: Dict[str, Any]) -> str:
        try:
            return self.env.get_template(template_name).render(**context)
        except TemplateError as e:
            logger.error(f"Template {template_name} failed to render: {e}", exc_info=True)
            raise GenerationException(f"Template error: {e}", step="render", retryable=False) from e

    async def _print_pdf(self, html: str, layout: PageLayout) -> bytes:
        async with async_playwright() as playwright:
            browser = await playwright.chromium.launch(args=["--no-sandbox", "--disable-dev-shm-usage"])
            try:
                page = await browser.new_page()
                await page.set_content(html, wait_until="networkidle")
                return await page.pdf(
                    format=layout.page_format,
                    landscape=layout.landscape,
                    print_background=True,
                    margin=layout.margin,
                )
            finally:
                await browser.close()

    async def render(self, template_name: str, context: Dict[str, Any], layout: PageLayout) -> bytes:
        html = self.render_html(template_name, context)
        try:
            pdf = await asyncio.wait_for(self._print_pdf(html, layout), timeout=self.timeout_seconds)
        except asyncio.TimeoutError as e:
            logger.error(f"PDF rendering of {template_name} timed out after {self.timeout_seconds}s")
            raise GenerationException("PDF rendering timed out", step="render") from e
        except PlaywrightError as e:
            logger.error(f"Headless browser failed rendering {template_name}: {e}", exc_info=True)
            raise GenerationException(f"PDF rendering failed: {e}", step="render") from e
        return validate_pdf(pdf)
