# Overview: Document numbering (sequencer, numbering policy) and document-sequence administration.

from __future__ import annotations

from dataclasses import dataclass

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import DocumentSequence, Sale
from ..time_utils import epoch_millis, utcnow
from ..validation import ConfigurationError, ValidationError
from .tenant_service import require_owned
from .transactions import lock_for_update


@dataclass(frozen=True)
class NumberingPolicy:
    """
    sequenced: the type draws numbers from a DocumentSequence.
    allow_unsequenced: when no sequence is configured, issue a synthetic
    {TYPE}-{epochMillis} number instead of failing.
    """
    sequenced: bool
    allow_unsequenced: bool


DOCUMENT_NUMBERING: dict[str, NumberingPolicy] = {
    "BOLETA": NumberingPolicy(sequenced=True, allow_unsequenced=True),
    "FACTURA": NumberingPolicy(sequenced=True, allow_unsequenced=True),
    "FACTURA_EXENTA": NumberingPolicy(sequenced=True, allow_unsequenced=True),
    "BOLETA_EXENTA": NumberingPolicy(sequenced=True, allow_unsequenced=True),
    "NOTA_CREDITO": NumberingPolicy(sequenced=True, allow_unsequenced=True),
    "NOTA_DEBITO": NumberingPolicy(sequenced=True, allow_unsequenced=True),
    # Dispatch notes travel with the goods and must carry a real folio
    "GUIA_DESPACHO": NumberingPolicy(sequenced=True, allow_unsequenced=False),
    "COTIZACION": NumberingPolicy(sequenced=False, allow_unsequenced=True),
}

SEQUENCE_DUPLICATE_MESSAGE = "Sequence already exists for this document type and electronic flag"


def numbering_policy(document_type: str) -> NumberingPolicy:
    return DOCUMENT_NUMBERING.get(document_type, NumberingPolicy(sequenced=False, allow_unsequenced=True))


def allocate_number(*, company_id: int, document_type: str, electronic: bool = True) -> str:
    """
    Allocate the next formatted number for (company, type, electronic).

    Must run inside the caller's transaction: the sequence row stays locked
    until the caller commits the document header that uses the number, so
    concurrent allocations serialize and numbers are never reused.
    """
    seq = lock_for_update(
        db.session.query(DocumentSequence).filter(
            DocumentSequence.company_id == company_id,
            DocumentSequence.document_type == document_type,
            DocumentSequence.is_electronic.is_(bool(electronic)),
            DocumentSequence.is_active.is_(True),
        )
    ).first()
    if seq is None:
        raise ConfigurationError(
            f"No active DocumentSequence configured for {document_type} (CompanyID={company_id})",
            {"document_type": document_type, "electronic": bool(electronic)},
        )

    number = seq.next_number
    if seq.range_end is not None and number > seq.range_end:
        raise ConfigurationError(
            f"DocumentSequence for {document_type} is exhausted (range ends at {seq.range_end})",
            {"document_type": document_type, "range_end": seq.range_end},
        )

    seq.next_number = number + 1
    seq.last_used_at = utcnow()
    db.session.flush()
    return seq.format_number(number)


def synthetic_number(*, company_id: int, document_type: str) -> str:
    """
    {TYPE}-{epochMillis}. Two documents created in the same millisecond
    would collide on the unique (company, type, number) key, so the stamp is
    bumped past any number already taken.
    """
    stamp = epoch_millis()
    while True:
        candidate = f"{document_type or 'DOC'}-{stamp}"
        taken = (
            db.session.query(Sale.id)
            .filter_by(company_id=company_id, document_type=document_type, document_number=candidate)
            .first()
        )
        if not taken:
            return candidate
        stamp += 1


def assign_document_number(
    *,
    company_id: int,
    document_type: str,
    electronic: bool = True,
    override: str | None = None,
) -> str:
    """
    Number for a new document: the client override, else the sequence, else
    (when the type's policy allows it) a synthetic number.
    """
    if override:
        return str(override).strip()

    policy = numbering_policy(document_type)
    if not policy.sequenced:
        return synthetic_number(company_id=company_id, document_type=document_type)

    try:
        return allocate_number(company_id=company_id, document_type=document_type, electronic=electronic)
    except ConfigurationError:
        if not policy.allow_unsequenced:
            raise
        current_app.logger.warning(
            "No sequence for %s (company %s), using fallback number", document_type, company_id
        )
        return synthetic_number(company_id=company_id, document_type=document_type)


# --- Administration ------------------------------------------------------------


def list_sequences(company_id: int) -> list[DocumentSequence]:
    return (
        db.session.query(DocumentSequence)
        .filter_by(company_id=company_id)
        .order_by(DocumentSequence.document_type, DocumentSequence.is_electronic.desc())
        .all()
    )


def get_sequence(company_id: int, sequence_id: int) -> DocumentSequence:
    return require_owned(DocumentSequence, sequence_id, company_id, "Document sequence")


def _check_range(seq: DocumentSequence) -> None:
    if seq.next_number is None or seq.next_number < 1:
        raise ValidationError("NextNumber must be >= 1")
    if seq.range_start is not None and seq.range_end is not None and seq.range_start > seq.range_end:
        raise ValidationError("RangeStart cannot be greater than RangeEnd")


def _flush_unique() -> None:
    try:
        db.session.flush()
    except IntegrityError as exc:
        raise ValidationError(SEQUENCE_DUPLICATE_MESSAGE) from exc


def create_sequence(*, company_id: int, fields: dict) -> DocumentSequence:
    document_type = (fields.get("document_type") or "").strip().upper()
    if not document_type:
        raise ValidationError("DocumentType is required")

    seq = DocumentSequence(
        company_id=company_id,
        document_type=document_type,
        prefix=fields.get("prefix") or None,
        next_number=fields.get("next_number") or 1,
        suffix=fields.get("suffix") or None,
        format_string=fields.get("format_string") or None,
        is_electronic=fields.get("is_electronic") if fields.get("is_electronic") is not None else True,
        range_start=fields.get("range_start"),
        range_end=fields.get("range_end"),
        is_active=fields.get("is_active") if fields.get("is_active") is not None else True,
    )
    _check_range(seq)
    db.session.add(seq)
    _flush_unique()
    return seq


def update_sequence(*, company_id: int, sequence_id: int, fields: dict) -> DocumentSequence:
    seq = require_owned(DocumentSequence, sequence_id, company_id, "Document sequence", lock=True)

    if fields.get("next_number") is not None:
        if fields["next_number"] < seq.next_number:
            # Moving the counter back would reissue numbers already printed
            raise ValidationError(
                f"NextNumber cannot go backwards (current {seq.next_number})",
                {"current": seq.next_number, "requested": fields["next_number"]},
            )
        seq.next_number = fields["next_number"]

    for key in ("prefix", "suffix", "format_string"):
        if key in fields:
            setattr(seq, key, fields[key] or None)
    for key in ("range_start", "range_end"):
        if key in fields:
            setattr(seq, key, fields[key])
    for key in ("is_electronic", "is_active"):
        if fields.get(key) is not None:
            setattr(seq, key, fields[key])

    _check_range(seq)
    _flush_unique()
    return seq


def deactivate_sequence(*, company_id: int, sequence_id: int) -> DocumentSequence:
    seq = require_owned(DocumentSequence, sequence_id, company_id, "Document sequence", lock=True)
    seq.is_active = False
    db.session.flush()
    return seq
