"""
Validation utilities for the signing service.
Ensures data integrity and provides clear error messages.
"""
from typing import Iterable, Optional
from uuid import UUID

from core.errors import ValidationError

# status changes a caller may request directly; 'signed' only comes from finalize
_CALLER_TRANSITIONS = {
    "pending": {"expired", "cancelled"},
}


def validate_uuid(value: str, field: str = "id") -> str:
    """
    Validate that value is a canonical UUID string.

    Raises:
        ValidationError: if value is not a UUID
    """
    try:
        UUID(str(value))
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a valid UUID, got {value!r}")
    return str(value)


def validate_page_number(page: int, page_count: int) -> None:
    """
    Validate a 1-based page number against the document's page count.

    Raises:
        ValidationError: if page is outside [1, page_count]
    """
    if page_count < 1:
        raise ValidationError("Document has no pages")
    if not (1 <= page <= page_count):
        raise ValidationError(f"page must be in range [1, {page_count}], got {page}")


def validate_rect(x: float, y: float, width: float, height: float) -> None:
    """
    Validate a placement rectangle.

    Rules:
    - x, y must be >= 0 (position on the page)
    - width, height must be > 0

    Raises:
        ValidationError: if validation fails
    """
    if x < 0 or y < 0:
        raise ValidationError(f"x and y must be >= 0, got ({x}, {y})")
    if width <= 0 or height <= 0:
        raise ValidationError(f"width and height must be > 0, got ({width}, {height})")


def validate_document_status_change(current: str, requested: str) -> None:
    """
    Only pending documents may be expired or cancelled by a caller.
    The pending -> signed transition belongs to finalize.

    Raises:
        ValidationError: if the transition is not allowed
    """
    allowed = _CALLER_TRANSITIONS.get(current, set())
    if requested not in allowed:
        raise ValidationError(
            f"Cannot change document status from '{current}' to '{requested}'"
        )


def validate_upload(
    content_type: Optional[str],
    size_bytes: int,
    *,
    allowed_types: Iterable[str],
    max_bytes: int,
) -> None:
    """
    Validate an uploaded file before it is stored.

    Raises:
        ValidationError: on unsupported type, empty file or oversize file
    """
    ctype = (content_type or "").split(";")[0].strip().lower()
    allowed = list(allowed_types)
    if ctype not in allowed:
        raise ValidationError(
            f"Unsupported file type '{ctype or 'unknown'}', expected one of {allowed}"
        )
    if size_bytes <= 0:
        raise ValidationError("Uploaded file is empty")
    if size_bytes > max_bytes:
        raise ValidationError(
            f"File too large: {size_bytes} bytes (limit {max_bytes} bytes)"
        )
