# Overview: Flask API routes for sale-family documents (sales, notes, guías, payments).

"""
Sales Routes

SECURITY: All routes require authentication.
- Read operations require sales.view
- Document creation and payments require sales.create

Each POST runs in one atomic() transaction: the document, its items, its
stock movements and its payments are committed together or not at all.
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth, require_permission
from ..services import dispatch_service, note_service, sales_service
from ..services.note_service import CREDIT_NOTE, DEBIT_NOTE
from ..services.transactions import atomic
from ..validation import DomainError
from . import datetime_field, error_response, json_body, server_error


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


def _created_sale_body(sale) -> dict:
    return {
        "SaleID": sale.id,
        "DocumentNumber": sale.document_number,
        "DocumentType": sale.document_type,
        "totals": sale.totals(),
        "AmountPaid": sale.amount_paid,
        "PaymentStatus": sale.payment_status,
    }


@sales_bp.get("")
@require_auth
@require_permission("sales.view")
def list_sales_route():
    """List the company's sale-family documents, newest first. ?documentType filters."""
    try:
        sales = sales_service.list_sales(g.company_id, document_type=request.args.get("documentType"))
        return jsonify([s.to_dict() for s in sales])
    except Exception:
        return server_error("list sales")


@sales_bp.get("/<int:sale_id>")
@require_auth
@require_permission("sales.view")
def get_sale_route(sale_id: int):
    try:
        sale = sales_service.get_sale(g.company_id, sale_id)
        return jsonify(sales_service.sale_detail(sale))
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("fetch sale")


@sales_bp.post("")
@require_auth
@require_permission("sales.create")
def create_sale_route():
    """
    Create a sale.

    Request body:
    {
        "CustomerID": 1,            // required
        "DocumentType": "BOLETA",   // optional, company default otherwise
        "WarehouseID": 1,           // optional, default warehouse otherwise
        "DocumentNumber": "...",    // optional override
        "Items": [{"ProductID", "Quantity", "UnitPrice", ...}],
        "Payments": [{"PaymentMethodID", "Amount", ...}]
    }

    Returns:
        201 {SaleID, DocumentNumber, DocumentType, totals, AmountPaid, PaymentStatus}
    """
    try:
        data = json_body()
        with atomic():
            sale = sales_service.create_sale(
                company_id=g.company_id,
                employee_id=g.employee_id,
                customer_id=data.get("customer_id"),
                items=data.get("items"),
                payments=data.get("payments") or [],
                document_type=data.get("document_type"),
                warehouse_id=data.get("warehouse_id"),
                document_number=data.get("document_number"),
                sale_date=datetime_field(data, "sale_date", "SaleDate"),
                currency_id=data.get("currency_id"),
                is_exenta=bool(data.get("is_exenta")),
                electronic=data.get("is_electronic", True) is not False,
                notes=data.get("notes"),
                shipping_address=data.get("shipping_address"),
                billing_address=data.get("billing_address"),
                config_store=current_app.extensions["erp.config_store"],
            )
            body = _created_sale_body(sale)
        current_app.logger.info(
            "Sale %s created: %s %s", body["SaleID"], body["DocumentType"], body["DocumentNumber"]
        )
        return jsonify(body), 201
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("create sale")


@sales_bp.post("/<int:sale_id>/payments")
@require_auth
@require_permission("sales.create")
def add_payment_route(sale_id: int):
    """Apply a follow-on payment. Body: {Amount, PaymentMethodID?, ReferenceNumber?, BankTransactionID?}"""
    try:
        data = json_body()
        with atomic():
            sale = sales_service.apply_payment(
                company_id=g.company_id,
                sale_id=sale_id,
                amount=data.get("amount"),
                payment_method_id=data.get("payment_method_id"),
                reference_number=data.get("reference_number"),
                bank_transaction_id=data.get("bank_transaction_id"),
                payment_date=datetime_field(data, "payment_date", "PaymentDate"),
            )
            body = {
                "SaleID": sale.id,
                "AmountPaid": sale.amount_paid,
                "FinalAmount": sale.final_amount,
                "PaymentStatus": sale.payment_status,
            }
        return jsonify(body), 201
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("apply payment")


# --- Credit / debit notes ------------------------------------------------------


@sales_bp.post("/credit-note")
@require_auth
@require_permission("sales.create")
def create_credit_note_route():
    """
    Return goods against a FACTURA/BOLETA.

    Request body: {OriginalSaleID, WarehouseID, Items[{ProductID, Quantity, UnitPrice?}], DocumentNumber?, Notes?}

    Returns:
        201 {CreditNoteID, OriginalSaleID, DocumentNumber, FinalAmount}
    """
    try:
        data = json_body()
        with atomic():
            note = note_service.create_credit_note(
                company_id=g.company_id,
                employee_id=g.employee_id,
                original_sale_id=data.get("original_sale_id"),
                warehouse_id=data.get("warehouse_id"),
                items=data.get("items"),
                document_number=data.get("document_number"),
                notes=data.get("notes"),
                electronic=data.get("is_electronic", True) is not False,
            )
            body = {
                "CreditNoteID": note.id,
                "OriginalSaleID": note.original_sale_id,
                "DocumentNumber": note.document_number,
                "FinalAmount": note.final_amount,
            }
        return jsonify(body), 201
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("create credit note")


@sales_bp.post("/debit-note")
@require_auth
@require_permission("sales.create")
def create_debit_note_route():
    """Extra charge against a FACTURA/BOLETA. Returns 201 {DebitNoteID, OriginalSaleID, DocumentNumber, FinalAmount}."""
    try:
        data = json_body()
        with atomic():
            note = note_service.create_debit_note(
                company_id=g.company_id,
                employee_id=g.employee_id,
                original_sale_id=data.get("original_sale_id"),
                warehouse_id=data.get("warehouse_id"),
                items=data.get("items"),
                document_number=data.get("document_number"),
                notes=data.get("notes"),
                electronic=data.get("is_electronic", True) is not False,
            )
            body = {
                "DebitNoteID": note.id,
                "OriginalSaleID": note.original_sale_id,
                "DocumentNumber": note.document_number,
                "FinalAmount": note.final_amount,
            }
        return jsonify(body), 201
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("create debit note")


@sales_bp.get("/credit-note/<int:note_id>")
@require_auth
@require_permission("sales.view")
def get_credit_note_route(note_id: int):
    try:
        note = note_service.get_note(g.company_id, note_id, CREDIT_NOTE)
        return jsonify(sales_service.sale_detail(note))
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("fetch credit note")


@sales_bp.get("/debit-note/<int:note_id>")
@require_auth
@require_permission("sales.view")
def get_debit_note_route(note_id: int):
    try:
        note = note_service.get_note(g.company_id, note_id, DEBIT_NOTE)
        return jsonify(sales_service.sale_detail(note))
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("fetch debit note")


@sales_bp.get("/<int:sale_id>/credit-notes")
@require_auth
@require_permission("sales.view")
def list_credit_notes_route(sale_id: int):
    try:
        notes = note_service.list_notes(g.company_id, sale_id, CREDIT_NOTE)
        return jsonify([n.to_dict() for n in notes])
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("list credit notes")


@sales_bp.get("/<int:sale_id>/debit-notes")
@require_auth
@require_permission("sales.view")
def list_debit_notes_route(sale_id: int):
    try:
        notes = note_service.list_notes(g.company_id, sale_id, DEBIT_NOTE)
        return jsonify([n.to_dict() for n in notes])
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("list debit notes")


# --- Guía de despacho ----------------------------------------------------------


@sales_bp.post("/guia-despacho")
@require_auth
@require_permission("sales.create")
def create_guia_despacho_route():
    """
    Dispatch note: ships stock out without payment.

    Request body: {CustomerID, WarehouseID, CurrencyID, Items[], DocumentNumber?, SaleDate?, IsExenta?}

    Returns:
        201 {SaleID, DocumentNumber, totals}
        400 when no GUIA_DESPACHO sequence is configured
    """
    try:
        data = json_body()
        with atomic():
            guia = dispatch_service.create_guia_despacho(
                company_id=g.company_id,
                employee_id=g.employee_id,
                customer_id=data.get("customer_id"),
                warehouse_id=data.get("warehouse_id"),
                currency_id=data.get("currency_id"),
                items=data.get("items"),
                document_number=data.get("document_number"),
                sale_date=datetime_field(data, "sale_date", "SaleDate"),
                is_exenta=bool(data.get("is_exenta")),
                notes=data.get("notes"),
                shipping_address=data.get("shipping_address"),
                billing_address=data.get("billing_address"),
                electronic=data.get("is_electronic", True) is not False,
            )
            body = {"SaleID": guia.id, "DocumentNumber": guia.document_number, "totals": guia.totals()}
        return jsonify(body), 201
    except DomainError as e:
        return error_response(e)
    except Exception:
        return server_error("create guia de despacho")
