"""
Shared fixtures: in-memory records, a temporary bucket store, sample PDFs.
"""
import itertools
import os
import sys
from io import BytesIO

import pytest
from fpdf import FPDF
from pypdf import PdfReader

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from adapters.sqlite import SqliteAdapter  # noqa: E402
from core.blob_store import LocalBlobStore, upload_object_path  # noqa: E402
from core.pdf_pages import count_pages  # noqa: E402

PUBLIC_BASE = "http://testserver/files"
OWNER = "user-alice"
LETTER = (612, 792)

_names = itertools.count(1)


def make_pdf(*page_sizes) -> bytes:
    """One page per (width, height) in points (default: a single US Letter page)."""
    sizes = page_sizes or (LETTER,)
    pdf = FPDF(unit="pt", format=sizes[0])
    pdf.set_auto_page_break(auto=False)
    for i, size in enumerate(sizes, start=1):
        pdf.add_page(format=size)
        pdf.set_font("Helvetica", size=12)
        pdf.text(72, 72, f"Original page {i}")
    return bytes(pdf.output())


def text_origin(pdf_bytes: bytes, needle: str, page: int = 1):
    """Native (x, y) where the first text run containing needle starts."""
    found = []

    def visit(text, cm, tm, font_dict, font_size):
        if needle in text:
            x, y = tm[4], tm[5]
            found.append((x * cm[0] + y * cm[2] + cm[4], x * cm[1] + y * cm[3] + cm[5]))

    PdfReader(BytesIO(pdf_bytes)).pages[page - 1].extract_text(visitor_text=visit)
    assert found, f"{needle!r} not found on page {page}"
    return found[0]


@pytest.fixture
def records():
    adapter = SqliteAdapter.from_url("sqlite://")
    yield adapter
    adapter.dispose()


@pytest.fixture
def blobs(tmp_path):
    return LocalBlobStore(str(tmp_path / "blobs"), PUBLIC_BASE)


@pytest.fixture
def seed_document(records, blobs):
    """Store a PDF the way upload does and return (document row, pdf bytes)."""

    def _seed(pdf_bytes=None, owner_id=OWNER, name=None):
        name = name or f"contract-{next(_names)}.pdf"
        data = pdf_bytes if pdf_bytes is not None else make_pdf()
        path = upload_object_path(owner_id, name)
        url = blobs.upload_bytes("documents", path, data, "application/pdf")
        row = records.create_document(
            owner_id=owner_id,
            source_url=url,
            source_path=path,
            original_name=name,
            file_size_bytes=len(data),
            page_count=count_pages(data),
        )
        return row, data

    return _seed
