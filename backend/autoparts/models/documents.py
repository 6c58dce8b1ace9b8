from __future__ import annotations

from ..extensions import db


class DocumentSequence(db.Model):
    """
    Last issued value per identifier prefix ("RCP", "PO").

    Receipt and order numbers are allocated from here so that two checkouts
    in the same millisecond still get distinct numbers.
    """
    __tablename__ = "document_sequences"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    prefix = db.Column(db.String(16), nullable=False, unique=True)
    last_value = db.Column(db.BigInteger, nullable=False, default=0)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
