# Overview: Flask API routes for document-sequence administration (company admins only).

from flask import Blueprint, g, jsonify

from ..decorators import require_admin, require_auth
from ..models import DocumentSequence
from ..services import document_service
from ..services.transactions import atomic
from ..validation import DomainError, ModelValidationPolicy, validate_payload
from . import error_response, json_body, server_error


document_sequences_bp = Blueprint("document_sequences", __name__, url_prefix="/api/document-sequences")

SEQUENCE_POLICY = ModelValidationPolicy(
    writable_fields={
        "document_type",
        "prefix",
        "next_number",
        "suffix",
        "format_string",
        "is_electronic",
        "range_start",
        "range_end",
        "is_active",
    },
    required_on_create={"document_type"},
    # Echoed back by clients that PUT a whole row
    ignored_fields={"document_sequence_id", "company_id", "last_used_at"},
)


@document_sequences_bp.get("")
@require_auth
@require_admin
def list_sequences_route():
    try:
        return jsonify([s.to_dict() for s in document_service.list_sequences(g.company_id)])
    except Exception:
        return server_error("list document sequences")


@document_sequences_bp.get("/<int:sequence_id>")
@require_auth
@require_admin
def get_sequence_route(sequence_id: int):
    try:
        return jsonify(document_service.get_sequence(g.company_id, sequence_id).to_dict())
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("fetch document sequence")


@document_sequences_bp.post("")
@require_auth
@require_admin
def create_sequence_route():
    """
    Request body:
    {
        "DocumentType": "BOLETA",   // required
        "Prefix": "B-",             // optional
        "NextNumber": 1,            // default 1
        "Suffix": null,
        "IsElectronic": true,       // default true
        "RangeStart": 1, "RangeEnd": 1000,
        "IsActive": true
    }

    Returns:
        201 sequence; 400 when (DocumentType, IsElectronic) already exists
    """
    try:
        fields = validate_payload(
            model=DocumentSequence, payload=json_body(), policy=SEQUENCE_POLICY, partial=False
        )
        with atomic():
            seq = document_service.create_sequence(company_id=g.company_id, fields=fields)
            body = seq.to_dict()
        return jsonify(body), 201
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("create document sequence")


@document_sequences_bp.put("/<int:sequence_id>")
@require_auth
@require_admin
def update_sequence_route(sequence_id: int):
    """Partial update; NextNumber may only move forward."""
    try:
        fields = validate_payload(
            model=DocumentSequence, payload=json_body(), policy=SEQUENCE_POLICY, partial=True
        )
        fields.pop("document_type", None)
        with atomic():
            seq = document_service.update_sequence(
                company_id=g.company_id, sequence_id=sequence_id, fields=fields
            )
            body = seq.to_dict()
        return jsonify(body)
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("update document sequence")


@document_sequences_bp.delete("/<int:sequence_id>")
@require_auth
@require_admin
def deactivate_sequence_route(sequence_id: int):
    """Soft delete: the row stays so issued numbers keep their history."""
    try:
        with atomic():
            seq = document_service.deactivate_sequence(company_id=g.company_id, sequence_id=sequence_id)
            body = seq.to_dict()
        return jsonify(body)
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("deactivate document sequence")
