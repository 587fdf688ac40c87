"""
Tests for burning marks into PDF pages.

Run with: pytest tests/test_compositor.py -v
"""
import base64
import warnings
from io import BytesIO

import pytest
from fpdf import FPDF
from PIL import Image
from pypdf import PdfReader

from conftest import make_pdf, text_origin
from core.compositor import (
    LABEL_FONT,
    NAME_FONT_SIZE,
    MarkSpec,
    composite_marks,
    decode_mark_image,
    fit_label,
)
from core.coordinates import Rect
from core.errors import ImageDecodeError

STAMP = "Signed: 2026-01-02 03:04:05"


def _image_payload(fmt="PNG", data_url=True) -> str:
    img = Image.new("RGBA" if fmt == "PNG" else "RGB", (40, 20), (20, 40, 200))
    buf = BytesIO()
    img.save(buf, format=fmt)
    encoded = base64.b64encode(buf.getvalue()).decode("ascii")
    return f"data:image/{fmt.lower()};base64,{encoded}" if data_url else encoded


def _page_text(pdf_bytes: bytes, page: int) -> str:
    return PdfReader(BytesIO(pdf_bytes)).pages[page - 1].extract_text() or ""


class TestDecodeMarkImage:
    """Tests for mark image decoding."""

    def test_data_url_and_bare_base64(self):
        assert decode_mark_image(_image_payload()).size == (40, 20)
        assert decode_mark_image(_image_payload("JPEG", data_url=False)).mode == "RGBA"

    def test_garbage_raises(self):
        with pytest.raises(ImageDecodeError):
            decode_mark_image("definitely not base64 !!")
        with pytest.raises(ImageDecodeError):
            decode_mark_image(base64.b64encode(b"plain bytes").decode("ascii"))

    def test_unsupported_format_raises(self):
        """BMP decodes fine in Pillow but is not an accepted mark format."""
        with pytest.raises(ImageDecodeError):
            decode_mark_image(_image_payload("BMP"))


class TestFitLabel:
    def _pdf(self):
        pdf = FPDF(unit="pt")
        pdf.set_font(LABEL_FONT, size=NAME_FONT_SIZE)
        return pdf

    def test_short_text_untouched(self):
        assert fit_label(self._pdf(), "Alice", 140) == "Alice"

    def test_long_text_truncated_with_ellipsis(self):
        pdf = self._pdf()
        label = fit_label(pdf, "x" * 200, 50)
        assert label.endswith("...")
        assert pdf.get_string_width(label) <= 50


class TestCompositeMarks:
    """Tests for the page compositing loop."""

    def test_name_and_stamp_are_burned_in(self):
        source = make_pdf()
        mark = MarkSpec("m1", 1, Rect(50, 600, 150, 50), "Alice Signer")
        result = composite_marks(source, [mark], STAMP)

        text = _page_text(result.pdf_bytes, 1)
        assert "Alice Signer" in text
        assert "Signed:" in text
        assert result.drawn == ["m1"]
        assert result.fallbacks == ["m1"]  # no image -> bordered box

    def test_out_of_range_pages_are_skipped(self):
        """A page-5 mark on a 3-page document is skipped; the rest render."""
        source = make_pdf(*[(612, 792)] * 3)
        marks = [
            MarkSpec("m1", 1, Rect(50, 600, 150, 50), "Page One"),
            MarkSpec("m5", 5, Rect(50, 600, 150, 50), "Page Five"),
            MarkSpec("m3", 3, Rect(50, 600, 150, 50), "Page Three"),
        ]
        result = composite_marks(source, marks, STAMP)

        assert result.skipped == ["m5"]
        assert sorted(result.drawn) == ["m1", "m3"]
        reader = PdfReader(BytesIO(result.pdf_bytes))
        assert len(reader.pages) == 3
        assert "Page One" in _page_text(result.pdf_bytes, 1)
        assert "Page Three" in _page_text(result.pdf_bytes, 3)
        assert "Page Five" not in "".join(p.extract_text() or "" for p in reader.pages)

    def test_decodable_image_is_not_a_fallback(self):
        source = make_pdf()
        marks = [
            MarkSpec("img", 1, Rect(50, 600, 150, 50), "Image Mark", mark_image=_image_payload()),
            MarkSpec("bad", 1, Rect(50, 400, 150, 50), "Broken Mark", mark_image="%%%"),
        ]
        result = composite_marks(source, marks, STAMP)
        assert result.fallbacks == ["bad"]
        assert sorted(result.drawn) == ["bad", "img"]
        assert "Broken Mark" in _page_text(result.pdf_bytes, 1)

    def test_top_left_marks_are_drawn(self):
        """Top-left rows are flipped onto the page, not dropped."""
        source = make_pdf()
        mark = MarkSpec("tl", 1, Rect(50, 50, 150, 50), "Top Left", top_left=True)
        result = composite_marks(source, [mark], STAMP)
        assert result.drawn == ["tl"]
        assert "Top Left" in _page_text(result.pdf_bytes, 1)

    def test_source_bytes_are_not_modified(self):
        source = make_pdf()
        snapshot = bytes(source)
        result = composite_marks(source, [MarkSpec("m1", 1, Rect(10, 10, 150, 50), "Alice")], STAMP)
        assert source == snapshot
        assert result.pdf_bytes != source

    def test_original_content_survives(self):
        source = make_pdf()
        result = composite_marks(source, [MarkSpec("m1", 1, Rect(300, 300, 150, 50), "Alice")], STAMP)
        assert "Original page 1" in _page_text(result.pdf_bytes, 1)

    def test_label_lands_inside_native_rect(self):
        """Name baseline sits at mid-height of the box, inset from its left edge."""
        source = make_pdf()
        result = composite_marks(source, [MarkSpec("m1", 1, Rect(50, 692, 150, 50), "Alice Signer")], STAMP)

        x, y = text_origin(result.pdf_bytes, "Alice Signer")
        assert x == pytest.approx(55, abs=0.05)
        assert y == pytest.approx(717, abs=0.05)
        _, stamp_y = text_origin(result.pdf_bytes, "Signed:")
        assert stamp_y == pytest.approx(702, abs=0.05)

    def test_top_left_rect_is_flipped_exactly_once(self):
        """(50, 50) from the top of a Letter page is the same spot as native (50, 692)."""
        source = make_pdf()
        result = composite_marks(
            source, [MarkSpec("tl", 1, Rect(50, 50, 150, 50), "Top Left", top_left=True)], STAMP
        )
        x, y = text_origin(result.pdf_bytes, "Top Left")
        assert x == pytest.approx(55, abs=0.05)
        assert y == pytest.approx(792 - 50 - 25, abs=0.05)

    def test_merge_happens_on_writer_pages(self):
        source = make_pdf()
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            composite_marks(source, [MarkSpec("m1", 1, Rect(50, 600, 150, 50), "Alice")], STAMP)
        assert not [w for w in caught if "assigned to a writer" in str(w.message)]
