"""
Record adapter interface for the signing service.
Defines the contract that every record backend must implement.
"""

from datetime import datetime
from typing import Protocol, List, Dict, Any, Optional, Sequence


class RecordAdapter(Protocol):
    """
    Protocol for the relational record collaborator.

    Three logical tables: documents, signatures, audit_logs.
    Rows cross this boundary as plain dicts; routers and the finalize
    pipeline convert them with models.converters.
    """

    # ========== Documents ==========

    def create_document(
        self,
        owner_id: str,
        source_url: str,
        source_path: str,
        original_name: str,
        file_size_bytes: int,
        page_count: int,
    ) -> Dict[str, Any]:
        """
        Insert a new document in status 'pending'.

        Returns:
            The stored row.
        """
        ...

    def get_document(self, doc_id: str, owner_id: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """
        Fetch a document by id. When owner_id is given the row must also
        belong to that owner, otherwise None is returned.
        """
        ...

    def list_documents_by_owner(self, owner_id: str) -> List[Dict[str, Any]]:
        """Newest first."""
        ...

    def set_document_status(
        self,
        doc_id: str,
        owner_id: str,
        new_status: str,
        *,
        expected_status: Optional[str] = None,
    ) -> bool:
        """
        Change status. With expected_status the update only applies when
        the current status matches (compare-and-swap).

        Returns:
            True if a row was updated.
        """
        ...

    def delete_document(self, doc_id: str, owner_id: str) -> bool:
        """Delete a document and its signatures."""
        ...

    # ========== Signatures ==========

    def upsert_signature(self, row: Dict[str, Any]) -> Dict[str, Any]:
        """
        Insert a signature row, or update the existing one when
        row['signature_id'] is already stored. Returns the stored row.
        """
        ...

    def get_signature(self, signature_id: str) -> Optional[Dict[str, Any]]:
        ...

    def list_signatures_by_document(
        self,
        doc_id: str,
        status: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Newest first; optionally filtered by status."""
        ...

    def delete_signature(self, signature_id: str) -> bool:
        ...

    def commit_finalize(
        self,
        doc_id: str,
        owner_id: str,
        signed_url: str,
        signed_path: str,
        signed_at: datetime,
        signature_ids: Sequence[str],
    ) -> Optional[int]:
        """
        In ONE transaction: compare-and-swap the document 'pending' -> 'signed'
        (attaching the signed artifact), then move the given signatures that
        are still 'placed' to 'finalized' with signed_at. Rows placed after
        the caller read its list are left alone.

        Returns:
            Number of signatures finalized, or None if the document was no
            longer pending (nothing is changed in that case).
        """
        ...

    # ========== Audit ==========

    def add_audit_entry(
        self,
        document_id: Optional[str],
        owner_id: Optional[str],
        action: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        ...

    def list_audit_entries(self, doc_id: str) -> List[Dict[str, Any]]:
        ...

    # ========== Health ==========

    def ping(self) -> None:
        """Raise if the backend is unreachable."""
        ...
