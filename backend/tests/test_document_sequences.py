# Overview: Pytest coverage for document numbering and sequence administration.

"""
Document Sequencer Tests

- allocate_number hands out prefix+number+suffix and advances next_number
- numbers stay strictly increasing, never reused
- exhausted ranges and missing sequences are configuration errors
- synthetic {TYPE}-{millis} fallback only for types whose policy allows it
- admin CRUD: duplicate (type, electronic) pair is a 400, NextNumber never goes back
"""

import pytest

from erp.models import DocumentSequence
from erp.services import document_service
from erp.validation import ConfigurationError, ValidationError


def _sequence(session, company_id, document_type="BOLETA", **kwargs):
    seq = DocumentSequence(
        company_id=company_id,
        document_type=document_type,
        prefix=kwargs.pop("prefix", "B-"),
        next_number=kwargs.pop("next_number", 1),
        is_electronic=kwargs.pop("is_electronic", True),
        **kwargs,
    )
    session.add(seq)
    session.commit()
    return seq


class TestAllocateNumber:
    """Numbers come from the locked sequence row."""

    def test_formats_and_advances(self, db_session, company_a):
        seq = _sequence(db_session, company_a.id, suffix="-X")

        first = document_service.allocate_number(company_id=company_a.id, document_type="BOLETA")
        second = document_service.allocate_number(company_id=company_a.id, document_type="BOLETA")

        assert first == "B-1-X"
        assert second == "B-2-X"
        assert seq.next_number == 3
        assert seq.last_used_at is not None

    def test_numbers_strictly_increase(self, db_session, company_a):
        _sequence(db_session, company_a.id, prefix="", next_number=41)

        numbers = [
            int(document_service.allocate_number(company_id=company_a.id, document_type="BOLETA"))
            for _ in range(5)
        ]

        assert numbers == [41, 42, 43, 44, 45]

    def test_electronic_flag_selects_sequence(self, db_session, company_a):
        _sequence(db_session, company_a.id, prefix="E-", is_electronic=True)
        _sequence(db_session, company_a.id, prefix="P-", is_electronic=False, next_number=500)

        assert document_service.allocate_number(
            company_id=company_a.id, document_type="BOLETA", electronic=False
        ) == "P-500"
        assert document_service.allocate_number(
            company_id=company_a.id, document_type="BOLETA", electronic=True
        ) == "E-1"

    def test_missing_sequence_is_configuration_error(self, db_session, company_a):
        with pytest.raises(ConfigurationError):
            document_service.allocate_number(company_id=company_a.id, document_type="FACTURA")

    def test_inactive_sequence_is_ignored(self, db_session, company_a):
        _sequence(db_session, company_a.id, is_active=False)

        with pytest.raises(ConfigurationError):
            document_service.allocate_number(company_id=company_a.id, document_type="BOLETA")

    def test_exhausted_range(self, db_session, company_a):
        seq = _sequence(db_session, company_a.id, next_number=10, range_start=1, range_end=10)

        assert document_service.allocate_number(company_id=company_a.id, document_type="BOLETA") == "B-10"
        with pytest.raises(ConfigurationError) as exc:
            document_service.allocate_number(company_id=company_a.id, document_type="BOLETA")

        assert "exhausted" in exc.value.message
        assert seq.next_number == 11

    def test_other_company_sequence_not_used(self, db_session, company_a, company_b):
        _sequence(db_session, company_b.id)

        with pytest.raises(ConfigurationError):
            document_service.allocate_number(company_id=company_a.id, document_type="BOLETA")


class TestAssignDocumentNumber:
    """Override, then sequence, then the policy's fallback."""

    def test_override_wins(self, db_session, company_a):
        seq = _sequence(db_session, company_a.id)

        number = document_service.assign_document_number(
            company_id=company_a.id, document_type="BOLETA", override="  MANUAL-7 "
        )

        assert number == "MANUAL-7"
        assert seq.next_number == 1

    def test_fallback_for_boleta(self, db_session, company_a):
        number = document_service.assign_document_number(company_id=company_a.id, document_type="BOLETA")

        prefix, _, stamp = number.partition("-")
        assert prefix == "BOLETA"
        assert stamp.isdigit()

    def test_no_fallback_for_guia(self, db_session, company_a):
        with pytest.raises(ConfigurationError):
            document_service.assign_document_number(company_id=company_a.id, document_type="GUIA_DESPACHO")

    def test_cotizacion_is_never_sequenced(self, db_session, company_a):
        _sequence(db_session, company_a.id, document_type="COTIZACION", prefix="Q-")

        number = document_service.assign_document_number(company_id=company_a.id, document_type="COTIZACION")

        assert number.startswith("COTIZACION-")


class TestSequenceAdministration:
    """Service-level CRUD rules."""

    def test_create_upper_cases_type(self, db_session, company_a):
        seq = document_service.create_sequence(
            company_id=company_a.id, fields={"document_type": " factura ", "prefix": "F-"}
        )

        assert seq.document_type == "FACTURA"
        assert seq.next_number == 1
        assert seq.is_electronic is True

    def test_duplicate_pair_rejected(self, db_session, company_a):
        _sequence(db_session, company_a.id)

        with pytest.raises(ValidationError):
            document_service.create_sequence(
                company_id=company_a.id, fields={"document_type": "BOLETA", "is_electronic": True}
            )
        db_session.rollback()

    def test_next_number_cannot_go_backwards(self, db_session, company_a):
        seq = _sequence(db_session, company_a.id, next_number=20)

        with pytest.raises(ValidationError) as exc:
            document_service.update_sequence(
                company_id=company_a.id, sequence_id=seq.id, fields={"next_number": 5}
            )

        assert exc.value.details == {"current": 20, "requested": 5}

    def test_range_start_after_end_rejected(self, db_session, company_a):
        with pytest.raises(ValidationError):
            document_service.create_sequence(
                company_id=company_a.id,
                fields={"document_type": "BOLETA", "range_start": 100, "range_end": 10},
            )


class TestSequenceApi:
    """/api/document-sequences, admin only."""

    def test_crud_roundtrip(self, client, headers_a):
        created = client.post(
            "/api/document-sequences",
            json={"DocumentType": "NOTA_CREDITO", "Prefix": "NC-", "NextNumber": 5},
            headers=headers_a,
        )
        assert created.status_code == 201
        seq_id = created.json["DocumentSequenceID"]
        assert created.json["NextNumber"] == 5

        listed = client.get("/api/document-sequences", headers=headers_a)
        assert [s["DocumentSequenceID"] for s in listed.json] == [seq_id]

        updated = client.put(
            f"/api/document-sequences/{seq_id}", json={"nextNumber": 9, "Suffix": "/A"}, headers=headers_a
        )
        assert updated.status_code == 200
        assert updated.json["NextNumber"] == 9
        assert updated.json["Suffix"] == "/A"

        deleted = client.delete(f"/api/document-sequences/{seq_id}", headers=headers_a)
        assert deleted.status_code == 200
        assert deleted.json["IsActive"] is False

    def test_duplicate_returns_400(self, client, headers_a):
        body = {"DocumentType": "BOLETA", "IsElectronic": True}
        assert client.post("/api/document-sequences", json=body, headers=headers_a).status_code == 201

        resp = client.post("/api/document-sequences", json=body, headers=headers_a)

        assert resp.status_code == 400
        assert "already exists" in resp.json["error"]

    def test_backwards_update_returns_400(self, client, headers_a):
        created = client.post(
            "/api/document-sequences", json={"DocumentType": "BOLETA", "NextNumber": 50}, headers=headers_a
        )

        resp = client.put(
            f"/api/document-sequences/{created.json['DocumentSequenceID']}",
            json={"NextNumber": 49},
            headers=headers_a,
        )

        assert resp.status_code == 400

    def test_unknown_field_rejected(self, client, headers_a):
        resp = client.post(
            "/api/document-sequences", json={"DocumentType": "BOLETA", "Color": "red"}, headers=headers_a
        )

        assert resp.status_code == 400
        assert resp.json["error"] == "Field not allowed: color"

    def test_cashier_forbidden(self, client, cashier_headers_a):
        resp = client.get("/api/document-sequences", headers=cashier_headers_a)

        assert resp.status_code == 403
        assert resp.json["error"] == "Admin access required"
