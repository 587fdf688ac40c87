# services/api/core/compositor.py
"""
Burn signature marks into PDF page content.

One fpdf2 overlay page is drawn per target page and merged with pypdf on
top of the original content. Coordinates handed in here are NATIVE page
space (points, origin bottom-left); fpdf2 draws from the top-left, so each
rect is flipped once when it is drawn.
"""
from __future__ import annotations

import base64
import binascii
import io
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from fpdf import FPDF
from PIL import Image, UnidentifiedImageError
from pypdf import PdfReader, PdfWriter, Transformation

from core.coordinates import Rect, flip_to_native
from core.errors import ImageDecodeError

logger = logging.getLogger(__name__)

ACCENT_BORDER = (0xE3, 0x36, 0x36)  # #E33636
BORDER_WIDTH = 2
LABEL_FONT = "Helvetica"
NAME_FONT_SIZE = 10
STAMP_FONT_SIZE = 8
STAMP_GRAY = 128
LABEL_INSET = 5.0
STAMP_GAP = 15.0

SUPPORTED_FORMATS = {"PNG", "JPEG", "GIF", "WEBP"}


@dataclass
class MarkSpec:
    """One mark to draw. `rect` is native unless `top_left` is set."""
    mark_id: str
    page_number: int                    # 1-based
    rect: Rect
    label: str
    mark_image: Optional[str] = None
    top_left: bool = False


@dataclass
class CompositeResult:
    pdf_bytes: bytes
    drawn: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    fallbacks: List[str] = field(default_factory=list)


def decode_mark_image(payload: str) -> Image.Image:
    """
    Decode a `data:image/...;base64,` URL (or bare base64) to an RGBA image.

    Raises ImageDecodeError for anything that is not a supported raster.
    """
    raw = payload.strip()
    if raw.startswith("data:"):
        header, sep, raw = raw.partition(",")
        if not sep or ";base64" not in header:
            raise ImageDecodeError("Mark image data URL is not base64 encoded")

    try:
        data = base64.b64decode(raw, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ImageDecodeError(f"Mark image is not valid base64: {e}") from e

    try:
        img = Image.open(io.BytesIO(data))
        fmt = img.format
        img.load()
    except (UnidentifiedImageError, OSError) as e:
        raise ImageDecodeError(f"Mark image could not be decoded: {e}") from e

    if fmt not in SUPPORTED_FORMATS:
        raise ImageDecodeError(f"Unsupported mark image format: {fmt}")
    return img.convert("RGBA")


def fit_label(pdf: FPDF, text: str, max_width: float) -> str:
    """Trim text with an ellipsis until it fits max_width in the current font."""
    if max_width <= 0 or pdf.get_string_width(text) <= max_width:
        return text
    ellipsis = "..."
    cut = text
    while cut and pdf.get_string_width(cut + ellipsis) > max_width:
        cut = cut[:-1]
    return (cut + ellipsis) if cut else text[:1]


def _latin1(text: str) -> str:
    # core fonts only cover latin-1
    return text.encode("latin-1", "replace").decode("latin-1")


def _draw_mark(pdf: FPDF, mark: MarkSpec, rect: Rect, stamp_text: str, result: CompositeResult) -> None:
    page_h = pdf.h
    top = page_h - rect.y - rect.height

    image = None
    if mark.mark_image:
        try:
            image = decode_mark_image(mark.mark_image)
        except ImageDecodeError as e:
            logger.warning("Mark %s: %s; drawing fallback box", mark.mark_id, e.message)

    if image is not None:
        bio = io.BytesIO()
        image.save(bio, format="PNG")
        bio.seek(0)
        pdf.image(bio, x=rect.x, y=top, w=rect.width, h=rect.height)
    else:
        result.fallbacks.append(mark.mark_id)
        pdf.set_draw_color(*ACCENT_BORDER)
        pdf.set_line_width(BORDER_WIDTH)
        pdf.rect(rect.x, top, rect.width, rect.height, style="D")

    label_x = rect.x + LABEL_INSET
    label_room = rect.width - 2 * LABEL_INSET
    # baseline at the vertical middle of the box, stamp one line below
    name_baseline = page_h - (rect.y + rect.height / 2)

    pdf.set_text_color(0)
    pdf.set_font(LABEL_FONT, size=NAME_FONT_SIZE)
    pdf.text(label_x, name_baseline, fit_label(pdf, _latin1(mark.label), label_room))

    pdf.set_text_color(STAMP_GRAY)
    pdf.set_font(LABEL_FONT, size=STAMP_FONT_SIZE)
    pdf.text(label_x, name_baseline + STAMP_GAP, fit_label(pdf, _latin1(stamp_text), label_room))


def _make_overlay(page_w: float, page_h: float, marks: Sequence[MarkSpec], stamp_text: str, result: CompositeResult) -> PdfReader:
    pdf = FPDF(unit="pt", format=(page_w, page_h))
    pdf.set_auto_page_break(auto=False)
    pdf.set_margin(0)
    pdf.add_page()
    for mark in marks:
        rect = flip_to_native(mark.rect, page_h) if mark.top_left else mark.rect
        _draw_mark(pdf, mark, rect, stamp_text, result)
        result.drawn.append(mark.mark_id)
    return PdfReader(io.BytesIO(bytes(pdf.output())))


def composite_marks(pdf_bytes: bytes, marks: Sequence[MarkSpec], stamp_text: str) -> CompositeResult:
    """
    Draw every mark onto its page and return the re-serialized PDF.

    Marks pointing past the last page are skipped (a page may have been
    removed upstream after the mark was placed).
    """
    reader = PdfReader(io.BytesIO(pdf_bytes))
    page_total = len(reader.pages)
    result = CompositeResult(pdf_bytes=b"")

    by_page: Dict[int, List[MarkSpec]] = defaultdict(list)
    for mark in marks:
        if 1 <= mark.page_number <= page_total:
            by_page[mark.page_number].append(mark)
        else:
            logger.info(
                "Skipping mark %s: page %d outside 1..%d",
                mark.mark_id, mark.page_number, page_total,
            )
            result.skipped.append(mark.mark_id)

    # merge onto pages the writer owns, never onto reader pages
    writer = PdfWriter(clone_from=reader)
    for i, page in enumerate(writer.pages, start=1):
        page_marks = by_page.get(i)
        if page_marks:
            box = page.mediabox
            overlay = _make_overlay(float(box.width), float(box.height), page_marks, stamp_text, result)
            # native space is relative to the visible box, which need not start at 0,0
            page.merge_transformed_page(
                overlay.pages[0],
                Transformation().translate(float(box.left), float(box.bottom)),
            )

    out = io.BytesIO()
    writer.write(out)
    result.pdf_bytes = out.getvalue()
    return result
