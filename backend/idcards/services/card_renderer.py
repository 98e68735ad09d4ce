"""Card Renderer

Builds the HTML for one ID card and converts it to a PDF sized to the card.

Layout source:
- the template's card_design.html_template when set, with {{employee.<key>}},
  {{company.<key>}}, {{photo}} and {{qrCode}} substituted (values are
  HTML-escaped);
- otherwise templates/basic_card.html rendered through Jinja2.
"""

import base64
import html
import io
import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, Optional

import qrcode
from jinja2 import Environment, FileSystemLoader, select_autoescape
from weasyprint import CSS, HTML

from idcards.config import DEFAULT_CARD_HEIGHT_MM, DEFAULT_CARD_WIDTH_MM
from idcards.models.cards import CardData

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"
DEFAULT_CARD_TEMPLATE = "basic_card.html"

# Employee keys never listed as info rows on the default layout
HIDDEN_INFO_KEYS = {"photo", "qrCode", "id"}

_PLACEHOLDER = re.compile(r"\{\{\s*(employee|company)\.(\w+)\s*\}\}")

_jinja_env = Environment(
    loader=FileSystemLoader(str(TEMPLATES_DIR)),
    autoescape=select_autoescape(["html"]),
)


def build_qr_payload(employee: Dict[str, Any], company: Dict[str, Any], submission_id: str) -> str:
    """Compact JSON encoded in the card QR code: id, name and company name."""
    payload = {
        "id": employee.get("id") or submission_id,
        "name": employee.get("name"),
        "c": company.get("name"),
    }
    return json.dumps({k: v for k, v in payload.items() if v is not None}, separators=(",", ":"))


def generate_qr_data_url(data: str) -> str:
    """Encode data as a PNG QR code and return it as a data: URL."""
    qr = qrcode.QRCode(
        version=1,
        error_correction=qrcode.constants.ERROR_CORRECT_L,
        box_size=10,
        border=1,
    )
    qr.add_data(data)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")
    img_buffer = io.BytesIO()
    img.save(img_buffer, format="PNG")

    img_base64 = base64.b64encode(img_buffer.getvalue()).decode("utf-8")
    return f"data:image/png;base64,{img_base64}"


def _display(value: Any) -> str:
    return "" if value is None else str(value)


def interpolate_template(template_html: str, card: CardData) -> str:
    """Substitute placeholders in a custom layout.

    Unknown keys render as the empty string.
    """
    def replace(match: "re.Match[str]") -> str:
        source = card.employee if match.group(1) == "employee" else card.company
        return html.escape(_display(source.get(match.group(2))))

    rendered = _PLACEHOLDER.sub(replace, template_html)
    rendered = re.sub(r"\{\{\s*photo\s*\}\}", lambda _: html.escape(card.photo or ""), rendered)
    rendered = re.sub(r"\{\{\s*qrCode\s*\}\}", lambda _: card.qr_code, rendered)
    return rendered


def format_info_label(key: str) -> str:
    return key.replace("_", " ")


def render_default_card(card: CardData) -> str:
    info_rows = [
        (format_info_label(key), _display(value))
        for key, value in card.employee.items()
        if key not in HIDDEN_INFO_KEYS
    ]
    template = _jinja_env.get_template(DEFAULT_CARD_TEMPLATE)
    return template.render(
        company=card.company,
        photo=card.photo,
        qr_code=card.qr_code,
        info_rows=info_rows,
        width=card.width,
        height=card.height,
    )


def render_card_html(card: CardData, html_template: Optional[str] = None) -> str:
    if html_template:
        return interpolate_template(html_template, card)
    return render_default_card(card)


def build_card_data(
    template: Dict[str, Any],
    company: Dict[str, Any],
    submission: Dict[str, Any],
    qr_code: str,
) -> CardData:
    card_design = template.get("card_design") or {}
    return CardData(
        company=company,
        employee=submission.get("employee_data") or {},
        photo=submission.get("photo_url"),
        qr_code=qr_code,
        width=card_design.get("width") or DEFAULT_CARD_WIDTH_MM,
        height=card_design.get("height") or DEFAULT_CARD_HEIGHT_MM,
    )


class PdfRenderer:
    """HTML to PDF with WeasyPrint. Synchronous; callers run it in an executor."""

    def render(self, html_content: str, width_mm: float, height_mm: float) -> bytes:
        page_css = CSS(string=f"@page {{ size: {width_mm}mm {height_mm}mm; margin: 0 }}")
        pdf_bytes = HTML(string=html_content).write_pdf(stylesheets=[page_css])
        logger.debug(f"Rendered card PDF {width_mm}x{height_mm}mm ({len(pdf_bytes)} bytes)")
        return pdf_bytes


pdf_renderer = PdfRenderer()
