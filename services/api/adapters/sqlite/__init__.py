# services/api/adapters/sqlite/__init__.py
from __future__ import annotations

import json
import os
import sqlite3
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence
from uuid import uuid4

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    delete,
    event,
    insert,
    select,
    text,
    update,
)
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

# ---- Engine (SQLite) with WAL & pragmas -------------------------------------

_MEMORY_URLS = ("sqlite://", "sqlite:///:memory:")


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _ensure_dir(path: str):
    d = os.path.dirname(path)
    if d and not os.path.isdir(d):
        os.makedirs(d, exist_ok=True)


def make_engine(db_url: str) -> Engine:
    if db_url in _MEMORY_URLS:
        # one shared connection, otherwise every checkout sees an empty DB
        engine = create_engine(
            db_url,
            future=True,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        if db_url.startswith("sqlite:///"):
            _ensure_dir(db_url.replace("sqlite:///", "", 1))
        engine = create_engine(
            db_url,
            future=True,
            pool_pre_ping=True,
            connect_args={"check_same_thread": False},
        )

    # Apply pragmas per-connection
    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):  # type: ignore
        if isinstance(dbapi_connection, sqlite3.Connection):
            cursor = dbapi_connection.cursor()
            if db_url not in _MEMORY_URLS:
                cursor.execute("PRAGMA journal_mode=WAL;")
                cursor.execute("PRAGMA synchronous=NORMAL;")
            cursor.execute("PRAGMA foreign_keys=ON;")
            cursor.close()

    return engine

# ---- Schema via SQLAlchemy Core ---------------------------------------------

metadata = MetaData()

documents = Table(
    "documents",
    metadata,
    Column("doc_id", String, primary_key=True),
    Column("owner_id", String, nullable=False),
    Column("source_url", Text, nullable=False),
    Column("source_path", Text, nullable=False),
    Column("original_name", String, nullable=False),
    Column("file_size_bytes", Integer, nullable=False, default=0),
    Column("page_count", Integer, nullable=False, default=0),
    Column("status", String, nullable=False, default="pending"),
    Column("signed_url", Text, nullable=True),
    Column("signed_path", Text, nullable=True),
    Column("created_at", DateTime, nullable=False, default=_now),
    Column("updated_at", DateTime, nullable=False, default=_now),
    CheckConstraint(
        "status IN ('pending', 'signed', 'expired', 'cancelled')", name="ck_doc_status"
    ),
)

signatures = Table(
    "signatures",
    metadata,
    Column("signature_id", String, primary_key=True),
    Column("document_id", String, ForeignKey("documents.doc_id", ondelete="CASCADE"), nullable=False),
    Column("signer_email", String, nullable=False),
    Column("signer_name", String, nullable=True),
    Column("mark_image", Text, nullable=True),
    Column("page_number", Integer, nullable=False),
    Column("x", Float, nullable=False),
    Column("y", Float, nullable=False),
    Column("width", Float, nullable=False),
    Column("height", Float, nullable=False),
    Column("origin", String, nullable=False, default="bottom-left"),
    Column("status", String, nullable=False, default="placed"),
    Column("signed_at", DateTime, nullable=True),
    Column("created_at", DateTime, nullable=False, default=_now),
    CheckConstraint("page_number >= 1", name="ck_sig_page"),
    CheckConstraint("width > 0 AND height > 0", name="ck_sig_size"),
    CheckConstraint("status IN ('placed', 'finalized')", name="ck_sig_status"),
)

audit_logs = Table(
    "audit_logs",
    metadata,
    Column("entry_id", String, primary_key=True),
    Column("document_id", String, nullable=True),
    Column("owner_id", String, nullable=True),
    Column("action", String, nullable=False),
    Column("metadata", Text, nullable=True),
    Column("timestamp", DateTime, nullable=False, default=_now),
)

Index("idx_documents_owner", documents.c.owner_id)
Index("idx_signatures_doc", signatures.c.document_id)
Index("idx_signatures_doc_status", signatures.c.document_id, signatures.c.status)
Index("idx_audit_doc", audit_logs.c.document_id)

_SIGNATURE_FIELDS = {
    "document_id", "signer_email", "signer_name", "mark_image", "page_number",
    "x", "y", "width", "height", "origin", "status", "signed_at",
}

# ---- Adapter implementation --------------------------------------------------

@dataclass(frozen=True)
class SqliteAdapter:
    engine: Engine

    @classmethod
    def from_url(cls, db_url: str = "sqlite:///data/signdesk.db") -> "SqliteAdapter":
        eng = make_engine(db_url)
        metadata.create_all(eng)
        return cls(engine=eng)

    def ping(self) -> None:
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))

    def dispose(self) -> None:
        self.engine.dispose()

    # Documents
    def create_document(
        self,
        owner_id: str,
        source_url: str,
        source_path: str,
        original_name: str,
        file_size_bytes: int,
        page_count: int,
    ) -> Dict[str, Any]:
        doc_id = str(uuid4())
        now = _now()
        with self.engine.begin() as conn:
            conn.execute(
                insert(documents).values(
                    doc_id=doc_id,
                    owner_id=owner_id,
                    source_url=source_url,
                    source_path=source_path,
                    original_name=original_name,
                    file_size_bytes=int(file_size_bytes),
                    page_count=int(page_count),
                    status="pending",
                    created_at=now,
                    updated_at=now,
                )
            )
            row = conn.execute(select(documents).where(documents.c.doc_id == doc_id)).mappings().first()
        return dict(row)

    def get_document(self, doc_id: str, owner_id: Optional[str] = None) -> Optional[Dict[str, Any]]:
        q = select(documents).where(documents.c.doc_id == doc_id)
        if owner_id is not None:
            q = q.where(documents.c.owner_id == owner_id)
        with self.engine.connect() as conn:
            row = conn.execute(q).mappings().first()
        return dict(row) if row else None

    def list_documents_by_owner(self, owner_id: str) -> List[Dict[str, Any]]:
        q = (
            select(documents)
            .where(documents.c.owner_id == owner_id)
            .order_by(documents.c.created_at.desc())
        )
        with self.engine.connect() as conn:
            return [dict(r) for r in conn.execute(q).mappings().all()]

    def set_document_status(
        self,
        doc_id: str,
        owner_id: str,
        new_status: str,
        *,
        expected_status: Optional[str] = None,
    ) -> bool:
        q = (
            update(documents)
            .where(documents.c.doc_id == doc_id)
            .where(documents.c.owner_id == owner_id)
        )
        if expected_status is not None:
            q = q.where(documents.c.status == expected_status)
        with self.engine.begin() as conn:
            res = conn.execute(q.values(status=new_status, updated_at=_now()))
        return res.rowcount == 1

    def delete_document(self, doc_id: str, owner_id: str) -> bool:
        with self.engine.begin() as conn:
            owned = conn.execute(
                select(documents.c.doc_id)
                .where(documents.c.doc_id == doc_id)
                .where(documents.c.owner_id == owner_id)
            ).first()
            if not owned:
                return False
            conn.execute(delete(signatures).where(signatures.c.document_id == doc_id))
            conn.execute(delete(documents).where(documents.c.doc_id == doc_id))
        return True

    # Signatures
    def upsert_signature(self, row: Dict[str, Any]) -> Dict[str, Any]:
        values = {k: v for k, v in row.items() if k in _SIGNATURE_FIELDS}
        signature_id = row.get("signature_id")
        with self.engine.begin() as conn:
            existing = None
            if signature_id:
                existing = conn.execute(
                    select(signatures.c.signature_id).where(signatures.c.signature_id == signature_id)
                ).first()
            if existing:
                conn.execute(
                    update(signatures)
                    .where(signatures.c.signature_id == signature_id)
                    .values(**values)
                )
            else:
                signature_id = signature_id or str(uuid4())
                values.setdefault("status", "placed")
                values.setdefault("origin", "bottom-left")
                conn.execute(
                    insert(signatures).values(signature_id=signature_id, created_at=_now(), **values)
                )
            stored = conn.execute(
                select(signatures).where(signatures.c.signature_id == signature_id)
            ).mappings().first()
        return dict(stored)

    def get_signature(self, signature_id: str) -> Optional[Dict[str, Any]]:
        with self.engine.connect() as conn:
            row = conn.execute(
                select(signatures).where(signatures.c.signature_id == signature_id)
            ).mappings().first()
        return dict(row) if row else None

    def list_signatures_by_document(
        self,
        doc_id: str,
        status: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        q = select(signatures).where(signatures.c.document_id == doc_id)
        if status is not None:
            q = q.where(signatures.c.status == status)
        q = q.order_by(signatures.c.created_at.desc())
        with self.engine.connect() as conn:
            return [dict(r) for r in conn.execute(q).mappings().all()]

    def delete_signature(self, signature_id: str) -> bool:
        with self.engine.begin() as conn:
            res = conn.execute(delete(signatures).where(signatures.c.signature_id == signature_id))
        return res.rowcount == 1

    def commit_finalize(
        self,
        doc_id: str,
        owner_id: str,
        signed_url: str,
        signed_path: str,
        signed_at: datetime,
        signature_ids: Sequence[str],
    ) -> Optional[int]:
        with self.engine.begin() as conn:
            # the WHERE on status is the compare-and-swap: only one finalize wins
            swapped = conn.execute(
                update(documents)
                .where(documents.c.doc_id == doc_id)
                .where(documents.c.owner_id == owner_id)
                .where(documents.c.status == "pending")
                .values(
                    status="signed",
                    signed_url=signed_url,
                    signed_path=signed_path,
                    updated_at=_now(),
                )
            )
            if swapped.rowcount != 1:
                return None
            res = conn.execute(
                update(signatures)
                .where(signatures.c.document_id == doc_id)
                .where(signatures.c.status == "placed")
                .where(signatures.c.signature_id.in_(list(signature_ids)))
                .values(status="finalized", signed_at=signed_at)
            )
        return res.rowcount

    # Audit
    def add_audit_entry(
        self,
        document_id: Optional[str],
        owner_id: Optional[str],
        action: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        with self.engine.begin() as conn:
            conn.execute(
                insert(audit_logs).values(
                    entry_id=str(uuid4()),
                    document_id=document_id,
                    owner_id=owner_id,
                    action=action,
                    metadata=json.dumps(metadata, default=str) if metadata else None,
                    timestamp=_now(),
                )
            )

    def list_audit_entries(self, doc_id: str) -> List[Dict[str, Any]]:
        q = (
            select(audit_logs)
            .where(audit_logs.c.document_id == doc_id)
            .order_by(audit_logs.c.timestamp.asc())
        )
        with self.engine.connect() as conn:
            return [dict(r) for r in conn.execute(q).mappings().all()]
