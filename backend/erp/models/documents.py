from __future__ import annotations

from ..extensions import db
from erp.time_utils import to_utc_z


class DocumentSequence(db.Model):
    """
    Per-company numbering for one (document type, electronic flag) pair.

    Numbers are handed out by locking this row, reading next_number and
    incrementing it in the same transaction that inserts the document, so
    issued numbers are strictly increasing and never reused.
    """
    __tablename__ = "document_sequences"
    __table_args__ = (
        db.UniqueConstraint(
            "company_id", "document_type", "is_electronic",
            name="uq_document_sequences_company_type_electronic",
        ),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    document_type = db.Column(db.String(32), nullable=False)
    prefix = db.Column(db.String(20), nullable=True)
    next_number = db.Column(db.Integer, nullable=False, default=1)
    suffix = db.Column(db.String(20), nullable=True)
    format_string = db.Column(db.String(64), nullable=True)
    is_electronic = db.Column(db.Boolean, nullable=False, default=True)
    range_start = db.Column(db.Integer, nullable=True)
    range_end = db.Column(db.Integer, nullable=True)
    last_used_at = db.Column(db.DateTime(timezone=True), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    def format_number(self, number: int) -> str:
        return f"{self.prefix or ''}{number}{self.suffix or ''}"

    def to_dict(self) -> dict:
        return {
            "DocumentSequenceID": self.id,
            "CompanyID": self.company_id,
            "DocumentType": self.document_type,
            "Prefix": self.prefix,
            "NextNumber": self.next_number,
            "Suffix": self.suffix,
            "FormatString": self.format_string,
            "IsElectronic": self.is_electronic,
            "RangeStart": self.range_start,
            "RangeEnd": self.range_end,
            "LastUsedAt": to_utc_z(self.last_used_at),
            "IsActive": self.is_active,
        }
