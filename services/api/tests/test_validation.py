"""
Tests for validation functions.

Run with: pytest tests/test_validation.py -v
"""
import pytest

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.errors import ValidationError
from core.validation import (
    validate_document_status_change,
    validate_page_number,
    validate_rect,
    validate_upload,
    validate_uuid,
)


class TestValidateRect:
    """Tests for placement rectangle validation."""

    def test_valid_rect(self):
        """Valid rectangle should not raise."""
        validate_rect(0, 0, 150, 50)
        validate_rect(10.5, 700, 1, 1)

    def test_negative_position(self):
        """Negative x or y should raise."""
        with pytest.raises(ValidationError) as exc:
            validate_rect(-1, 0, 150, 50)
        assert exc.value.status_code == 400

        with pytest.raises(ValidationError):
            validate_rect(0, -0.01, 150, 50)

    def test_non_positive_size(self):
        """Zero or negative size should raise."""
        with pytest.raises(ValidationError):
            validate_rect(0, 0, 0, 50)
        with pytest.raises(ValidationError):
            validate_rect(0, 0, 150, -5)


class TestValidatePageNumber:
    """Tests for 1-based page validation."""

    def test_in_range(self):
        validate_page_number(1, 3)
        validate_page_number(3, 3)

    def test_out_of_range(self):
        with pytest.raises(ValidationError) as exc:
            validate_page_number(4, 3)
        assert "[1, 3]" in exc.value.message

        with pytest.raises(ValidationError):
            validate_page_number(0, 3)

    def test_document_without_pages(self):
        with pytest.raises(ValidationError):
            validate_page_number(1, 0)


class TestValidateDocumentStatusChange:
    """Only pending documents may be expired or cancelled by a caller."""

    def test_allowed(self):
        validate_document_status_change("pending", "cancelled")
        validate_document_status_change("pending", "expired")

    def test_signed_only_via_finalize(self):
        with pytest.raises(ValidationError):
            validate_document_status_change("pending", "signed")

    def test_terminal_states(self):
        for current in ("signed", "expired", "cancelled"):
            with pytest.raises(ValidationError):
                validate_document_status_change(current, "cancelled")


class TestValidateUpload:
    """Tests for upload type/size checks."""

    ALLOWED = ["application/pdf"]

    def test_valid_pdf(self):
        validate_upload("application/pdf", 1024, allowed_types=self.ALLOWED, max_bytes=2048)
        validate_upload("Application/PDF; charset=binary", 1, allowed_types=self.ALLOWED, max_bytes=2048)

    def test_wrong_type(self):
        with pytest.raises(ValidationError) as exc:
            validate_upload("image/png", 10, allowed_types=self.ALLOWED, max_bytes=2048)
        assert "image/png" in exc.value.message

        with pytest.raises(ValidationError):
            validate_upload(None, 10, allowed_types=self.ALLOWED, max_bytes=2048)

    def test_empty_or_too_large(self):
        with pytest.raises(ValidationError):
            validate_upload("application/pdf", 0, allowed_types=self.ALLOWED, max_bytes=2048)
        with pytest.raises(ValidationError) as exc:
            validate_upload("application/pdf", 4096, allowed_types=self.ALLOWED, max_bytes=2048)
        assert "too large" in exc.value.message


class TestValidateUuid:

    def test_valid(self):
        value = "0b8f5a4e-6a0c-4c1b-9a59-1f3f0d7e2a11"
        assert validate_uuid(value) == value

    def test_invalid(self):
        with pytest.raises(ValidationError) as exc:
            validate_uuid("not-a-uuid", "document_id")
        assert "document_id" in exc.value.message
