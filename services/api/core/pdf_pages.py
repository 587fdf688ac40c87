# services/api/core/pdf_pages.py
"""
Page geometry lookup (python-pdfium2).

Page sizes never change once a document is uploaded, so they are cached
per source URL for a short while to keep editor-session opens cheap.
"""
from __future__ import annotations

import logging
import threading
from typing import List, Optional

import pypdfium2 as pdfium
from cachetools import TTLCache

from core.coordinates import PageGeometry
from core.errors import ValidationError

logger = logging.getLogger(__name__)

_geometry_cache: TTLCache = TTLCache(maxsize=256, ttl=300)
_cache_lock = threading.Lock()


def read_page_geometries(pdf_bytes: bytes) -> List[PageGeometry]:
    """
    Return one PageGeometry per page (index 0 == page 1).

    Raises ValidationError if the bytes are not a readable PDF.
    """
    try:
        doc = pdfium.PdfDocument(pdf_bytes)
    except pdfium.PdfiumError as e:
        raise ValidationError(f"Not a readable PDF: {e}") from e

    try:
        geometries = []
        for i in range(len(doc)):
            page = doc[i]
            width, height = page.get_size()
            geometries.append(PageGeometry(native_width=float(width), native_height=float(height)))
            page.close()
        return geometries
    finally:
        doc.close()


def count_pages(pdf_bytes: bytes) -> int:
    return len(read_page_geometries(pdf_bytes))


def cached_page_geometries(source_url: str, pdf_bytes: bytes) -> List[PageGeometry]:
    with _cache_lock:
        hit = _geometry_cache.get(source_url)
    if hit is not None:
        return hit

    geometries = read_page_geometries(pdf_bytes)
    with _cache_lock:
        _geometry_cache[source_url] = geometries
    logger.info("Cached page geometry for %s (%d pages)", source_url, len(geometries))
    return geometries


def lookup_cached(source_url: str) -> Optional[List[PageGeometry]]:
    with _cache_lock:
        return _geometry_cache.get(source_url)


def configure_cache(maxsize: int, ttl_s: float) -> None:
    global _geometry_cache
    with _cache_lock:
        _geometry_cache = TTLCache(maxsize=maxsize, ttl=ttl_s)
