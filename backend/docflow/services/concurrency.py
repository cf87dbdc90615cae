# Overview: Row locking helpers for multi-document updates.

from __future__ import annotations

from ..extensions import db
from ..models import Document


def lock_for_update(query):
    """
    Apply row-level locking to a query.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def load_documents_for_update(document_ids: list[int]) -> dict[int, Document]:
    """Lock and load documents by id, in id order to keep lock order stable."""
    if not document_ids:
        return {}
    query = (
        db.session.query(Document)
        .filter(Document.id.in_(document_ids))
        .order_by(Document.id.asc())
    )
    return {doc.id: doc for doc in lock_for_update(query).all()}
