from datetime import datetime, timezone

import pytest

import config
from schemas.document import DocumentData, DocumentEvent
from schemas.event import FieldDefinition
from utils import rtl
from utils.exceptions import RenderError
from utils.pdf import (
    build_detail_rows, build_layout, format_date, format_price, format_sign_date, render_document, resolve_fonts,
    resolve_theme_color, PdfRenderer, DEFAULT_TITLE, DETAIL_FONT_SIZE, FOOTER_HEIGHT, MARGIN, PAGE_HEIGHT,
)

SUBMITTED_AT = datetime(2025, 3, 1, 10, 0, tzinfo=timezone.utc)


def make_data(terms="תנאי ביטול: עד 30 יום לפני האירוע.", signature="", **customer):
    customer = customer or {"name": "יוסי כהן", "phone": "052-7654321"}
    return DocumentData(
        event=DocumentEvent(
            title="חתונה בגן",
            event_date="2025-03-01",
            price=1500,
            default_text=terms,
            theme_color="#7C3AED",
            business_name="Dana Events",
            business_phone="050-1234567",
        ),
        customer=customer,
        signature=signature,
        submitted_at=SUBMITTED_AT,
    )


@pytest.fixture(autouse=True)
def currency(monkeypatch):
    monkeypatch.setattr(config, "CURRENCY_SUFFIX", 'ש"ח')
    monkeypatch.setattr(config, "DISPLAY_TIMEZONE", "Asia/Jerusalem")


class TestFormatting:

    def test_price(self):
        assert format_price(1500) == '1,500 ש"ח'
        assert format_price(99.5) == '99.50 ש"ח'
        assert format_price(0) == '0 ש"ח'

    def test_date(self):
        assert format_date("2025-03-01") == "1.3.2025"
        assert format_date(datetime(2025, 12, 24, 8, 0)) == "24.12.2025"
        assert format_date("next spring") == "next spring"
        assert format_date(None) == ""

    def test_sign_date_uses_display_timezone(self):
        late_evening = datetime(2025, 3, 1, 23, 30, tzinfo=timezone.utc)
        assert format_sign_date(late_evening) == "2.3.2025"

    def test_theme_color_fallback(self):
        assert resolve_theme_color("#123abc") == "#123abc"
        assert resolve_theme_color("purple") == config.DEFAULT_THEME_COLOR


class TestDetailRows:

    def test_absent_optional_fields_have_no_row(self):
        keys = [row.key for row in build_detail_rows(make_data(name="יוסי", email="   "))]
        assert keys == ["name", "eventDate", "price"]

    def test_known_rows_are_formatted(self):
        rows = {row.key: row for row in build_detail_rows(make_data())}
        assert rows["price"].value == '1,500 ש"ח'
        assert rows["eventDate"].value == "1.3.2025"
        assert rows["phone"].label == "טלפון"

    def test_extras_follow_schema_then_insertion_order(self):
        data = make_data(name="יוסי", tableNumber="7", companyId="512345678", guests="120", zeta="z")
        data.fields_schema = [
            FieldDefinition(id="guests", label="מספר אורחים"),
            FieldDefinition(id="tableNumber", label="שולחן"),
        ]
        rows = build_detail_rows(data)
        extras = [(row.key, row.label) for row in rows[3:]]
        assert extras == [
            ("guests", "מספר אורחים"),
            ("tableNumber", "שולחן"),
            ("companyId", "ת.ז / ח.פ"),
            ("zeta", "zeta"),
        ]

    def test_notes_are_not_a_row(self):
        layout = build_layout(make_data(name="יוסי", notes="להביא כיסאות"))
        assert "notes" not in layout.row_keys
        assert layout.notes == "להביא כיסאות"

    def test_title_falls_back_without_business(self):
        data = make_data()
        data.event.business_name = None
        assert build_layout(data).title == DEFAULT_TITLE


class TestRendering:

    def test_short_terms_fit_one_page(self):
        rendered = render_document(make_data(terms="שורה 1\nשורה 2\nשורה 3"))
        assert rendered.page_count == 1
        assert rendered.content.startswith(b"%PDF")
        assert rendered.filename.startswith("signed_") and rendered.filename.endswith(".pdf")

    def test_long_terms_paginate(self):
        terms = "\n".join(f"סעיף {index}: המזמין מתחייב לשלם את יתרת התשלום במועד." for index in range(200))
        assert render_document(make_data(terms=terms)).page_count > 1

    def test_page_count_is_monotonic(self):
        counts = [
            render_document(make_data(terms="\n".join(f"סעיף {i}" for i in range(lines)))).page_count
            for lines in (3, 60, 120, 200)
        ]
        assert counts == sorted(counts)

    def test_identical_input_gives_identical_output(self, signature_png):
        first = render_document(make_data(signature=signature_png))
        second = render_document(make_data(signature=signature_png))
        assert first.content == second.content
        assert first.page_count == second.page_count
        assert first.layout.detail_rows == second.layout.detail_rows

    def test_signature_is_embedded(self, signature_png):
        rendered = render_document(make_data(signature=signature_png))
        assert rendered.layout.signature.size == (200, 80)
        assert b"/Subtype /Image" in rendered.content

    def test_missing_signature_renders_placeholder(self):
        rendered = render_document(make_data())
        assert rendered.layout.signature is None
        assert b"/Subtype /Image" not in rendered.content

    def test_malformed_signature_raises(self):
        with pytest.raises(RenderError):
            render_document(make_data(signature="data:image/png;base64," + "A" * 40))

    def test_reverse_strategy(self):
        assert render_document(make_data(), strategy=rtl.REVERSE).page_count == 1

    def test_unknown_strategy_is_a_render_error(self):
        with pytest.raises(RenderError):
            render_document(make_data(), strategy="mirror")


class RecordingRenderer(PdfRenderer):
    """Keeps every detail-panel string with its baseline."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.detail_texts = []

    def _draw_text(self, x, y, text, font, size, color, align="right"):
        if size == DETAIL_FONT_SIZE:
            self.detail_texts.append((self.page_count, y, text))
        super()._draw_text(x, y, text, font, size, color, align)


class TestLongDetailRows:

    def test_tall_extra_field_continues_on_next_pages(self):
        comments = "\n".join(f"הערה מספר {index}" for index in range(120))
        layout = build_layout(make_data(name="יוסי", comments=comments))
        renderer = RecordingRenderer(layout, resolve_fonts())
        renderer.render()

        short = render_document(make_data(name="יוסי", comments="הערה אחת"))
        assert renderer.page_count > short.page_count

        drawn = [text for _, _, text in renderer.detail_texts]
        for index in range(120):
            assert f"הערה מספר {index}" in drawn

        for page, y, _ in renderer.detail_texts:
            assert FOOTER_HEIGHT < y < PAGE_HEIGHT - MARGIN
        assert len({page for page, _, _ in renderer.detail_texts}) > 1
