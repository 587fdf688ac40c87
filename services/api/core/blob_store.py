# services/api/core/blob_store.py
"""
Storage collaborator: bucket/path object store with public URLs.

LocalBlobStore keeps objects on disk under <root>/<bucket>/<path> and
publishes them at <public_base_url>/<bucket>/<path> (served by
routers/files.py). URLs it does not own are fetched over HTTP.
"""
from __future__ import annotations

import logging
import re
import time
import urllib.parse
from pathlib import Path
from typing import Optional, Protocol

import httpx

logger = logging.getLogger(__name__)


class BlobStore(Protocol):
    async def fetch_bytes(self, url: str) -> bytes:
        ...

    def upload_bytes(self, bucket: str, path: str, data: bytes, content_type: str) -> str:
        """Store a NEW object and return its public URL. Never overwrites."""
        ...

    def remove_object(self, bucket: str, path: str) -> None:
        ...


# ---------- object naming ----------

_UNSAFE = re.compile(r"[^A-Za-z0-9._ -]+")


def safe_filename(name: str) -> str:
    base = (name or "").replace("\\", "/").rsplit("/", 1)[-1]
    base = _UNSAFE.sub("_", base).strip(" .")
    return base or "document.pdf"


def _millis(ts: Optional[float]) -> int:
    return int((ts if ts is not None else time.time()) * 1000)


def upload_object_path(owner_id: str, original_name: str, ts: Optional[float] = None) -> str:
    """{ownerId}/{timestamp}-{originalName}"""
    return f"{owner_id}/{_millis(ts)}-{safe_filename(original_name)}"


def signed_object_path(owner_id: str, original_name: str, ts: Optional[float] = None) -> str:
    """{ownerId}/signed-{timestamp}-{originalName}"""
    return f"{owner_id}/signed-{_millis(ts)}-{safe_filename(original_name)}"


# ---------- local implementation ----------

class LocalBlobStore:
    def __init__(self, root: str, public_base_url: str, fetch_timeout_s: float = 30.0):
        self.root = Path(root).resolve()
        self.root.mkdir(parents=True, exist_ok=True)
        self.public_base_url = public_base_url.rstrip("/")
        self.fetch_timeout_s = fetch_timeout_s

    def resolve_path(self, bucket: str, path: str) -> Path:
        target = (self.root / bucket / path).resolve()
        if self.root not in target.parents:
            raise ValueError(f"Object path escapes storage root: {bucket}/{path}")
        return target

    def public_url(self, bucket: str, path: str) -> str:
        return f"{self.public_base_url}/{bucket}/{urllib.parse.quote(path)}"

    def _local_target(self, url: str) -> Optional[Path]:
        prefix = self.public_base_url + "/"
        if not url.startswith(prefix):
            return None
        rest = urllib.parse.unquote(url[len(prefix):])
        bucket, _, path = rest.partition("/")
        if not bucket or not path:
            return None
        return self.resolve_path(bucket, path)

    async def fetch_bytes(self, url: str) -> bytes:
        local = self._local_target(url)
        if local is not None:
            return local.read_bytes()

        async with httpx.AsyncClient(timeout=self.fetch_timeout_s, follow_redirects=True) as client:
            r = await client.get(url)
            r.raise_for_status()
            return r.content

    def upload_bytes(self, bucket: str, path: str, data: bytes, content_type: str) -> str:
        target = self.resolve_path(bucket, path)
        target.parent.mkdir(parents=True, exist_ok=True)
        # "xb" -> FileExistsError instead of silently replacing an artifact
        with open(target, "xb") as f:
            f.write(data)
        logger.info("Stored %s/%s (%d bytes, %s)", bucket, path, len(data), content_type)
        return self.public_url(bucket, path)

    def remove_object(self, bucket: str, path: str) -> None:
        target = self.resolve_path(bucket, path)
        try:
            target.unlink()
        except FileNotFoundError:
            logger.warning("remove_object: %s/%s already gone", bucket, path)
