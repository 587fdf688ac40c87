# services/api/dependencies.py
"""
DI helpers used by routers/*.

Collaborators live on app.state (wired by main.create_app) so tests can
hand in an in-memory record adapter and a temporary blob store.
"""
from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Header, Request

from adapters.base import RecordAdapter
from core.blob_store import BlobStore
from core.editor_sessions import EditorSessionRegistry
from core.errors import ValidationError
from settings import Settings


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_records(request: Request) -> RecordAdapter:
    return request.app.state.records


def get_blobs(request: Request) -> BlobStore:
    return request.app.state.blobs


def get_sessions(request: Request) -> EditorSessionRegistry:
    return request.app.state.sessions


def get_owner_id(x_user_id: Annotated[str, Header(alias="X-User-Id")]) -> str:
    """Authenticated identity, issued upstream and forwarded as a header."""
    owner = (x_user_id or "").strip()
    if not owner:
        raise ValidationError("X-User-Id header must not be empty")
    return owner


# ---- DI aliases (no default value allowed) ----
AppSettings = Annotated[Settings, Depends(get_app_settings)]
Records = Annotated[RecordAdapter, Depends(get_records)]
Blobs = Annotated[BlobStore, Depends(get_blobs)]
Sessions = Annotated[EditorSessionRegistry, Depends(get_sessions)]
OwnerId = Annotated[str, Depends(get_owner_id)]
