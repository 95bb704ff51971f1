from __future__ import annotations

from ..extensions import db


class Document(db.Model):
    """
    A JSON document in a named collection.

    COLLECTION PATHS:
    Collections are slash-separated paths scoped per tenant store, e.g.
    "stores/<store>/inventory" or "stores/<store>/inventory/<item>/history".
    doc_id is unique within its collection and is what callers see as "id".

    CONCURRENCY:
    version_id is an optimistic lock. A write against a stale row raises
    StaleDataError, which services handle by re-running the whole
    read-modify-write (see services/concurrency.py).

    fields must be reassigned (not mutated in place) for SQLAlchemy to see
    the change.
    """
    __tablename__ = "documents"
    __table_args__ = (
        db.UniqueConstraint("collection", "doc_id", name="uq_documents_collection_doc"),
        db.Index("ix_documents_collection_seq", "collection", "id"),
        {"sqlite_autoincrement": True},
    )

    # Insertion sequence; used as a stable tiebreak when ordering listings
    id = db.Column(db.Integer, primary_key=True)

    collection = db.Column(db.String(255), nullable=False, index=True)
    doc_id = db.Column(db.String(64), nullable=False)

    fields = db.Column(db.JSON, nullable=False, default=dict)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Document {self.collection}/{self.doc_id} v{self.version_id}>"
