"""
Signed agreement renderer.

The document is drawn straight onto a ReportLab canvas (A4 portrait):

    header band   theme colour, business name + event title, first page only
    details       light grey rounded panel of label/value rows
    terms         bordered box with the template's terms, line breaks kept
    notes         bordered box with the invite notes, when present
    signature     customer-name box and signature box side by side
    footer band   theme colour, sign date, business contact, tagline, every page

Content that does not fit continues on the next page; boxed blocks are
split into one box segment per page. Rendering is split in two steps:
build_layout() turns the input into a DocumentLayout (rows, strings, decoded
signature), PdfRenderer draws it. The canvas runs in invariant mode so equal
inputs give equal bytes.
"""

import logging
import os
from dataclasses import dataclass
from datetime import date, datetime, timezone
from io import BytesIO
from typing import Callable, Dict, List, Optional, Tuple, Union
from zoneinfo import ZoneInfo

from PIL import Image
from reportlab.lib.colors import Color, HexColor, white
from reportlab.lib.pagesizes import A4
from reportlab.lib.utils import ImageReader
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont, TTFError
from reportlab.pdfgen import canvas

import config
from schemas.document import DocumentData
from schemas.event import FieldDefinition, THEME_COLOR_PATTERN
from utils import rtl
from utils.exceptions import RenderError
from utils.signature import load_signature_image
from utils.token import generate_file_name

logger = logging.getLogger(__name__)

PAGE_WIDTH, PAGE_HEIGHT = A4
MARGIN = 40
CONTENT_WIDTH = PAGE_WIDTH - 2 * MARGIN
HEADER_HEIGHT = 80
FOOTER_HEIGHT = 36
SECTION_GAP = 18
HEADING_HEIGHT = 34
PANEL_PADDING = 12
PANEL_RADIUS = 10

DETAIL_FONT_SIZE = 10.5
DETAIL_LINE_HEIGHT = 13
DETAIL_ROW_PADDING = 9
TERMS_FONT_SIZE = 9.5
TERMS_LINE_HEIGHT = 14
TERMS_BLANK_HEIGHT = 7

SIGNATURE_BOX_HEIGHT = 105
SIGNATURE_BOX_GAP = 20
SIGNATURE_MAX_SIZE = (150, 60)

PANEL_FILL = "#F8F9FA"
TEXT_BOX_FILL = "#FAFAFA"
BORDER_COLOR = "#EEEEEE"
LABEL_COLOR = "#666666"
VALUE_COLOR = "#333333"
MUTED_COLOR = "#888888"
PLACEHOLDER_COLOR = "#999999"

TAGLINE = "הסכם דיגיטלי"
DEFAULT_TITLE = "הסכם דיגיטלי"
DETAILS_HEADING = "פרטי ההזמנה"
TERMS_HEADING = "תנאים והתחייבויות"
NOTES_HEADING = "הערות"
NAME_BOX_TITLE = "שם הלקוח"
SIGNATURE_BOX_TITLE = "חתימה"
NO_SIGNATURE = "ללא חתימה"
SIGNED_ON = "נחתם בתאריך:"
DATE_PREFIX = "תאריך:"

FIELD_LABELS: Dict[str, str] = {
    "name": "שם הלקוח",
    "phone": "טלפון",
    "contactPhone": "טלפון",
    "email": "אימייל",
    "eventType": "סוג האירוע",
    "eventLocation": "מיקום האירוע",
    "eventDate": "תאריך האירוע",
    "price": "מחיר",
    "companyId": "ת.ז / ח.פ",
    "accountingContact": 'איש קשר להנה"ח',
    "invoiceEmail": "מייל לחשבונית",
    "address": "כתובת",
    "notes": "הערות",
    "date": "תאריך",
}

# Rendered by dedicated rows/blocks, never as extra rows
KNOWN_CUSTOMER_KEYS = ("name", "phone", "email", "eventType", "eventLocation", "notes")
OPTIONAL_CUSTOMER_ROWS = ("phone", "email", "eventType", "eventLocation")

FONT_CANDIDATES = [
    ("/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf", "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf"),
    ("/usr/share/fonts/dejavu/DejaVuSans.ttf", "/usr/share/fonts/dejavu/DejaVuSans-Bold.ttf"),
    ("/usr/share/fonts/TTF/DejaVuSans.ttf", "/usr/share/fonts/TTF/DejaVuSans-Bold.ttf"),
    ("/usr/share/fonts/truetype/freefont/FreeSans.ttf", "/usr/share/fonts/truetype/freefont/FreeSansBold.ttf"),
    ("/Library/Fonts/Arial Unicode.ttf", "/Library/Fonts/Arial Unicode.ttf"),
    ("C:\\Windows\\Fonts\\arial.ttf", "C:\\Windows\\Fonts\\arialbd.ttf"),
]


@dataclass(frozen=True)
class FontPair:
    regular: str
    bold: str


@dataclass(frozen=True)
class DetailRow:
    key: str
    label: str
    value: str


@dataclass
class DocumentLayout:
    title: str
    subtitle: str
    theme_color: str
    detail_rows: List[DetailRow]
    terms: str
    notes: str
    customer_name: str
    signature: Optional[Image.Image]
    sign_date: str
    footer_contact: str
    author: str
    tagline: str = TAGLINE

    @property
    def row_keys(self) -> List[str]:
        return [row.key for row in self.detail_rows]


@dataclass
class RenderedDocument:
    content: bytes
    filename: str
    page_count: int
    layout: DocumentLayout


# --- Formatting ---

def format_date(value: Union[date, datetime, str, None]) -> str:
    """he-IL calendar date (D.M.YYYY). Unparseable strings are returned as given."""
    if value is None:
        return ""
    if isinstance(value, datetime):
        value = value.date()
    if not isinstance(value, date):
        text = str(value).strip()
        if not text:
            return ""
        try:
            value = date.fromisoformat(text[:10])
        except ValueError:
            return text
    return f"{value.day}.{value.month}.{value.year}"


def format_sign_date(submitted_at: datetime) -> str:
    if submitted_at.tzinfo is None:
        submitted_at = submitted_at.replace(tzinfo=timezone.utc)
    return format_date(submitted_at.astimezone(ZoneInfo(config.DISPLAY_TIMEZONE)))


def format_price(value) -> str:
    text = f"{float(value):,.2f}"
    if text.endswith(".00"):
        text = text[:-3]
    return f"{text} {config.CURRENCY_SUFFIX}".strip()


def resolve_theme_color(value: Optional[str]) -> str:
    if value and THEME_COLOR_PATTERN.match(value):
        return value
    return config.DEFAULT_THEME_COLOR


def _clean(value) -> str:
    return "" if value is None else str(value).strip()


# --- Fonts ---

def _register_font(path: str) -> str:
    name = os.path.splitext(os.path.basename(path))[0].replace(" ", "")
    if name not in pdfmetrics.getRegisteredFontNames():
        pdfmetrics.registerFont(TTFont(name, path))
    return name


def resolve_fonts() -> FontPair:
    """First usable TTF pair with Hebrew glyphs; Helvetica as a last resort."""
    candidates = []
    if config.PDF_FONT_PATH:
        candidates.append((config.PDF_FONT_PATH, config.PDF_BOLD_FONT_PATH or config.PDF_FONT_PATH))
    candidates.extend(FONT_CANDIDATES)

    for regular_path, bold_path in candidates:
        if not os.path.exists(regular_path):
            continue
        if not os.path.exists(bold_path):
            bold_path = regular_path
        try:
            return FontPair(_register_font(regular_path), _register_font(bold_path))
        except TTFError:
            logger.warning("Could not load font %s", regular_path, exc_info=True)

    logger.warning("No Hebrew-capable font found, falling back to Helvetica")
    return FontPair("Helvetica", "Helvetica-Bold")


# --- Layout ---

def _extra_rows(customer: Dict[str, str], fields_schema: List[FieldDefinition]) -> List[DetailRow]:
    """Customer keys outside the known set: schema order first, then insertion order."""
    schema_order = {field.id: index for index, field in enumerate(fields_schema)}
    schema_labels = {field.id: field.label for field in fields_schema}

    extras = [(key, _clean(value)) for key, value in customer.items() if key not in KNOWN_CUSTOMER_KEYS]
    extras = [(key, value) for key, value in extras if value]
    ordered = sorted(
        enumerate(extras),
        key=lambda item: (0, schema_order[item[1][0]]) if item[1][0] in schema_order else (1, item[0]),
    )
    return [
        DetailRow(key, schema_labels.get(key) or FIELD_LABELS.get(key, key), value)
        for _, (key, value) in ordered
    ]


def build_detail_rows(data: DocumentData) -> List[DetailRow]:
    customer = data.customer
    rows = [DetailRow("name", FIELD_LABELS["name"], _clean(customer.get("name")))]
    for key in OPTIONAL_CUSTOMER_ROWS:
        value = _clean(customer.get(key))
        if value:
            rows.append(DetailRow(key, FIELD_LABELS[key], value))

    event_date = format_date(data.event.event_date)
    if event_date:
        rows.append(DetailRow("eventDate", FIELD_LABELS["eventDate"], event_date))
    if data.event.price is not None:
        rows.append(DetailRow("price", FIELD_LABELS["price"], format_price(data.event.price)))

    rows.extend(_extra_rows(customer, data.fields_schema))
    return rows


def build_layout(data: DocumentData) -> DocumentLayout:
    event = data.event

    signature = None
    if data.signature and data.signature.strip():
        try:
            signature = load_signature_image(data.signature)
        except ValueError as exc:
            raise RenderError(f"Malformed signature image: {exc}") from exc

    contact = "  |  ".join(part for part in (_clean(event.business_phone), _clean(event.business_website)) if part)

    return DocumentLayout(
        title=_clean(event.business_name) or DEFAULT_TITLE,
        subtitle=_clean(event.title),
        theme_color=resolve_theme_color(event.theme_color),
        detail_rows=build_detail_rows(data),
        terms=(event.default_text or "").strip("\n"),
        notes=_clean(data.customer.get("notes")),
        customer_name=_clean(data.customer.get("name")),
        signature=signature,
        sign_date=format_sign_date(data.submitted_at),
        footer_contact=contact,
        author=_clean(event.business_name),
    )


def fit_within(size: Tuple[int, int], bounds: Tuple[float, float]) -> Tuple[float, float]:
    width, height = size
    scale = min(bounds[0] / width, bounds[1] / height)
    return width * scale, height * scale


# --- Drawing ---

PanelItem = Tuple[float, Callable[[float], None]]


class PdfRenderer:
    """Draws one DocumentLayout onto a fresh canvas; one instance per render."""

    def __init__(self, layout: DocumentLayout, fonts: FontPair, strategy: str = rtl.BIDI):
        if strategy not in rtl.STRATEGIES:
            raise ValueError(f"Unknown RTL strategy: {strategy}")
        self.layout = layout
        self.fonts = fonts
        self.strategy = strategy
        self.theme = HexColor(layout.theme_color)
        self.buffer = BytesIO()
        self.canvas = canvas.Canvas(self.buffer, pagesize=A4, invariant=1)
        self.page_count = 0
        self.y = 0.0
        self.page_top = 0.0
        self.bottom = FOOTER_HEIGHT + SECTION_GAP

    def render(self) -> bytes:
        self.canvas.setTitle(self.layout.subtitle or self.layout.title)
        self.canvas.setAuthor(self.layout.author)
        self._new_page()
        self._draw_details()
        if self.layout.terms:
            self._draw_text_block(TERMS_HEADING, self.layout.terms)
        if self.layout.notes:
            self._draw_text_block(NOTES_HEADING, self.layout.notes)
        self._draw_signature_section()
        self.canvas.showPage()
        self.canvas.save()
        return self.buffer.getvalue()

    # primitives

    def _measure(self, font: str, size: float) -> Callable[[str], float]:
        return lambda text: pdfmetrics.stringWidth(text, font, size)

    def _draw_text(self, x: float, y: float, text: str, font: str, size: float,
                   color: Union[str, Color], align: str = "right"):
        c = self.canvas
        c.setFont(font, size)
        c.setFillColor(HexColor(color) if isinstance(color, str) else color)
        visual = rtl.to_visual(text, self.strategy)
        if align == "right":
            c.drawRightString(x, y, visual)
        elif align == "center":
            c.drawCentredString(x, y, visual)
        else:
            c.drawString(x, y, visual)

    def _new_page(self):
        if self.page_count:
            self.canvas.showPage()
        self.page_count += 1
        if self.page_count == 1:
            self._draw_header()
            self.y = PAGE_HEIGHT - HEADER_HEIGHT - SECTION_GAP
        else:
            self.y = PAGE_HEIGHT - MARGIN
        self.page_top = self.y
        self._draw_footer()

    def _ensure_space(self, height: float):
        if self.y - height < self.bottom and self.y < self.page_top:
            self._new_page()

    # bands

    def _draw_header(self):
        c = self.canvas
        c.setFillColor(self.theme)
        c.rect(0, PAGE_HEIGHT - HEADER_HEIGHT, PAGE_WIDTH, HEADER_HEIGHT, stroke=0, fill=1)
        self._draw_text(PAGE_WIDTH / 2, PAGE_HEIGHT - 38, self.layout.title, self.fonts.bold, 24, white, "center")
        if self.layout.subtitle:
            self._draw_text(PAGE_WIDTH / 2, PAGE_HEIGHT - 62, self.layout.subtitle, self.fonts.regular, 13,
                            white, "center")

    def _draw_footer(self):
        c = self.canvas
        c.setFillColor(self.theme)
        c.rect(0, 0, PAGE_WIDTH, FOOTER_HEIGHT, stroke=0, fill=1)
        baseline = FOOTER_HEIGHT / 2 - 3
        regular = self.fonts.regular
        self._draw_text(PAGE_WIDTH - MARGIN, baseline, f"{DATE_PREFIX} {self.layout.sign_date}", regular, 9, white)
        if self.layout.footer_contact:
            self._draw_text(PAGE_WIDTH / 2, baseline, self.layout.footer_contact, regular, 9, white, "center")
        self._draw_text(MARGIN, baseline, self.layout.tagline, regular, 9, white, "left")

    # blocks

    def _draw_heading(self, text: str, first_item_height: float):
        # keep a heading on the same page as the first line under it
        self._ensure_space(HEADING_HEIGHT + first_item_height + 2 * PANEL_PADDING)
        baseline = self.y - 16
        self._draw_text(PAGE_WIDTH - MARGIN, baseline, text, self.fonts.bold, 14, VALUE_COLOR)
        c = self.canvas
        c.setStrokeColor(self.theme)
        c.setLineWidth(2)
        c.line(MARGIN, baseline - 8, PAGE_WIDTH - MARGIN, baseline - 8)
        self.y = baseline - 18

    def _draw_panel(self, items: List[PanelItem], fill: str, border: str):
        """Draws items inside a rounded box, opening a new box segment on every page."""
        c = self.canvas
        index = 0
        while index < len(items):
            available = self.y - self.bottom - 2 * PANEL_PADDING
            chunk: List[PanelItem] = []
            used = 0.0
            for height, draw in items[index:]:
                if used + height > available:
                    break
                chunk.append((height, draw))
                used += height
            if not chunk:
                if self.y < self.page_top:
                    self._new_page()
                    continue
                chunk = [items[index]]
                used = items[index][0]

            top = self.y
            box_height = used + 2 * PANEL_PADDING
            c.setFillColor(HexColor(fill))
            c.setStrokeColor(HexColor(border))
            c.setLineWidth(1)
            c.roundRect(MARGIN, top - box_height, CONTENT_WIDTH, box_height, PANEL_RADIUS, stroke=1, fill=1)

            cursor = top - PANEL_PADDING
            for height, draw in chunk:
                draw(cursor)
                cursor -= height

            index += len(chunk)
            self.y = top - box_height
            if index < len(items):
                self._new_page()
        self.y -= SECTION_GAP

    def _detail_items(self) -> List[PanelItem]:
        """One panel item per wrapped value line, so a long row can continue on the next page."""
        regular, bold = self.fonts.regular, self.fonts.bold
        value_width = (CONTENT_WIDTH - 2 * PANEL_PADDING) * 0.6
        measure = self._measure(bold, DETAIL_FONT_SIZE)
        label_x = PAGE_WIDTH - MARGIN - PANEL_PADDING
        value_x = MARGIN + PANEL_PADDING

        items = []
        for row in self.layout.detail_rows:
            lines = rtl.wrap_text(row.value, value_width, measure) or [""]
            last = len(lines) - 1
            for index, line in enumerate(lines):
                height = DETAIL_LINE_HEIGHT + (DETAIL_ROW_PADDING if index == last else 0)

                def draw(top, row=row, line=line, first=index == 0, is_last=index == last, height=height):
                    baseline = top - DETAIL_LINE_HEIGHT + 2
                    if first:
                        self._draw_text(label_x, baseline, f"{row.label}:", regular, DETAIL_FONT_SIZE, LABEL_COLOR)
                    self._draw_text(value_x, baseline, line, bold, DETAIL_FONT_SIZE, VALUE_COLOR, "left")
                    if is_last:
                        self.canvas.setStrokeColor(HexColor(BORDER_COLOR))
                        self.canvas.setLineWidth(0.5)
                        separator = top - height + 2
                        self.canvas.line(value_x, separator, label_x, separator)

                items.append((height, draw))
        return items

    def _draw_details(self):
        items = self._detail_items()
        self._draw_heading(DETAILS_HEADING, items[0][0])
        self._draw_panel(items, PANEL_FILL, PANEL_FILL)

    def _text_items(self, text: str) -> List[PanelItem]:
        font = self.fonts.regular
        right = PAGE_WIDTH - MARGIN - PANEL_PADDING
        lines = rtl.wrap_text(text, CONTENT_WIDTH - 2 * PANEL_PADDING, self._measure(font, TERMS_FONT_SIZE))

        items = []
        for line in lines:
            if not line:
                items.append((TERMS_BLANK_HEIGHT, lambda top: None))
                continue

            def draw(top, line=line):
                self._draw_text(right, top - TERMS_LINE_HEIGHT + 4, line, font, TERMS_FONT_SIZE, "#555555")

            items.append((TERMS_LINE_HEIGHT, draw))
        return items

    def _draw_text_block(self, heading: str, text: str):
        items = self._text_items(text)
        if not items:
            return
        self._draw_heading(heading, items[0][0])
        self._draw_panel(items, TEXT_BOX_FILL, BORDER_COLOR)

    def _draw_signature_section(self):
        self._ensure_space(SIGNATURE_BOX_HEIGHT + 10)
        c = self.canvas
        top = self.y - 10
        box_width = (CONTENT_WIDTH - SIGNATURE_BOX_GAP) / 2
        name_x = MARGIN + box_width + SIGNATURE_BOX_GAP  # right-hand box comes first in RTL
        signature_x = MARGIN

        c.setStrokeColor(self.theme)
        c.setLineWidth(2)
        for x in (name_x, signature_x):
            c.roundRect(x, top - SIGNATURE_BOX_HEIGHT, box_width, SIGNATURE_BOX_HEIGHT, PANEL_RADIUS, stroke=1, fill=0)

        name_center = name_x + box_width / 2
        self._draw_text(name_center, top - 22, NAME_BOX_TITLE, self.fonts.bold, 12, self.theme, "center")
        self._draw_text(name_center, top - 52, self.layout.customer_name, self.fonts.bold, 15, VALUE_COLOR, "center")
        self._draw_text(name_center, top - 78, f"{SIGNED_ON} {self.layout.sign_date}", self.fonts.regular, 9,
                        MUTED_COLOR, "center")

        signature_center = signature_x + box_width / 2
        self._draw_text(signature_center, top - 22, SIGNATURE_BOX_TITLE, self.fonts.bold, 12, self.theme, "center")
        image = self.layout.signature
        if image is not None:
            width, height = fit_within(image.size, SIGNATURE_MAX_SIZE)
            area_top = top - 32
            c.drawImage(
                ImageReader(image),
                signature_center - width / 2,
                area_top - SIGNATURE_MAX_SIZE[1] + (SIGNATURE_MAX_SIZE[1] - height) / 2,
                width=width,
                height=height,
                mask="auto",
            )
        else:
            self._draw_text(signature_center, top - 65, NO_SIGNATURE, self.fonts.regular, 11, PLACEHOLDER_COLOR,
                            "center")

        self.y = top - SIGNATURE_BOX_HEIGHT - SECTION_GAP


def render_document(data: DocumentData, strategy: Optional[str] = None) -> RenderedDocument:
    """
    Renders the signed agreement PDF.

    Any failure, from a malformed signature to a ReportLab crash, surfaces
    as RenderError so callers can degrade instead of failing the request.
    """
    strategy = strategy or config.RTL_STRATEGY
    try:
        layout = build_layout(data)
        renderer = PdfRenderer(layout, resolve_fonts(), strategy)
        content = renderer.render()
    except RenderError:
        raise
    except Exception as exc:
        raise RenderError(f"PDF rendering failed: {exc}") from exc

    logger.info("Rendered signed document: %d page(s), %d bytes", renderer.page_count, len(content))
    return RenderedDocument(
        content=content,
        filename=generate_file_name("signed", "pdf"),
        page_count=renderer.page_count,
        layout=layout,
    )
