# services/api/core/errors.py
"""
Error taxonomy for the signing core.

Every error carries an HTTP status and a stable machine code so the
FastAPI handlers in main.py can translate them without inspecting messages.
"""
from __future__ import annotations

from typing import Optional


class SignDeskError(Exception):
    status_code: int = 500
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, *, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code


class NotFoundError(SignDeskError):
    """Document / signature / session does not exist or belongs to someone else."""
    status_code = 404
    code = "NOT_FOUND"


class ValidationError(SignDeskError):
    """Malformed placement or document input."""
    status_code = 400
    code = "VALIDATION_ERROR"


class NoSignaturesError(SignDeskError):
    status_code = 409
    code = "NO_SIGNATURES_TO_FINALIZE"

    def __init__(self, message: str = "No signatures to finalize"):
        super().__init__(message)


class ImageDecodeError(SignDeskError):
    """
    A mark image could not be decoded.

    Never reaches the caller: the compositor logs it and draws the
    fallback box instead.
    """
    status_code = 422
    code = "IMAGE_DECODE_FAILED"


class FinalizeFailed(SignDeskError):
    status_code = 500
    code = "FINALIZE_FAILED"

    def __init__(self, message: str = "Failed to finalize signature", *, code: Optional[str] = None):
        super().__init__(message, code=code)


class FinalizeConflictError(FinalizeFailed):
    """Document left the `pending` state before (or while) this finalize ran."""
    status_code = 409
    code = "FINALIZE_CONFLICT"


class ConflictError(SignDeskError):
    """A compare-and-swap on document status lost to a concurrent change."""
    status_code = 409
    code = "CONFLICT"
