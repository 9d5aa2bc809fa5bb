# Overview: Credit notes (returns, capped per product) and debit notes (extra charges) against a FACTURA/BOLETA.

from __future__ import annotations

from collections import defaultdict
from decimal import Decimal

from sqlalchemy import func

from ..extensions import db
from ..models import Sale, SalesItem
from ..validation import NotFoundError, ValidationError, enforce_rules_debit_line, enforce_rules_sale_line
from . import document_service, inventory_service
from .pricing import price_lines, to_decimal
from .sales_service import (
    SERIAL_IN_STOCK,
    SERIAL_SOLD,
    check_line_references,
    insert_document,
    move_lines,
    release_serials,
    set_serial_status,
    validated_lines,
)
from .tenant_service import require_owned, resolve_warehouse_id


CREDIT_NOTE = "NOTA_CREDITO"
DEBIT_NOTE = "NOTA_DEBITO"

# Notes only adjust invoices and receipts, never quotations, guías or other notes
NOTE_ORIGIN_TYPES = ("FACTURA", "BOLETA")


def _load_original(company_id: int, original_sale_id) -> Sale:
    if not original_sale_id:
        raise ValidationError("OriginalSaleID is required")
    # Locked so concurrent notes against the same sale see each other's returns
    original = db.session.query(Sale).filter(
        Sale.id == original_sale_id, Sale.company_id == company_id
    ).with_for_update().first()
    if original is None:
        raise ValidationError("Original sale not found")
    if original.document_type not in NOTE_ORIGIN_TYPES:
        raise ValidationError(
            f"Notes can only reference FACTURA or BOLETA (got {original.document_type})",
            {"document_type": original.document_type},
        )
    return original


def _sold_quantities(original: Sale) -> dict[int, Decimal]:
    sold: dict[int, Decimal] = defaultdict(Decimal)
    for item in original.items:
        sold[item.product_id] += to_decimal(item.quantity)
    return sold


def _credited_quantities(original: Sale) -> dict[int, Decimal]:
    rows = (
        db.session.query(SalesItem.product_id, func.coalesce(func.sum(SalesItem.quantity), 0))
        .join(Sale, SalesItem.sale_id == Sale.id)
        .filter(
            Sale.company_id == original.company_id,
            Sale.original_sale_id == original.id,
            Sale.document_type == CREDIT_NOTE,
        )
        .group_by(SalesItem.product_id)
        .all()
    )
    return {product_id: to_decimal(qty) for product_id, qty in rows}


def _check_return_cap(original: Sale, lines: list[dict]) -> None:
    """remaining = sold - previously credited, per product, counting this request's earlier lines too."""
    sold = _sold_quantities(original)
    credited = _credited_quantities(original)
    requested: dict[int, Decimal] = defaultdict(Decimal)

    for line in lines:
        product_id = line["product_id"]
        if product_id not in sold:
            raise ValidationError(
                f"ProductID {product_id} was not sold on the original sale",
                {"product_id": product_id},
            )
        requested[product_id] += to_decimal(line["quantity"])
        remaining = sold[product_id] - credited.get(product_id, Decimal(0))
        if requested[product_id] > remaining:
            raise ValidationError(
                f"Return quantity for ProductID {product_id} exceeds remaining returnable quantity",
                {"product_id": product_id, "remaining": float(remaining), "requested": float(requested[product_id])},
            )


def _default_prices(original: Sale, lines: list[dict]) -> None:
    # A returned line without a price is refunded at the price it was sold for
    sold_price = {item.product_id: item.unit_price for item in original.items}
    for line in lines:
        if line.get("unit_price") is None:
            line["unit_price"] = sold_price.get(line["product_id"], 0)


def _note_header(original: Sale, *, document_type: str, number: str, warehouse_id: int, employee_id, notes) -> dict:
    return {
        "company_id": original.company_id,
        "customer_id": original.customer_id,
        "employee_id": employee_id,
        "warehouse_id": warehouse_id,
        "original_sale_id": original.id,
        "document_type": document_type,
        "document_number": number,
        "is_exenta": original.is_exenta,
        "currency_id": original.currency_id,
        "amount_paid": 0,
        "payment_status": "Unpaid",
        "status": "Completed",
        "notes": notes,
    }


def create_credit_note(
    *,
    company_id: int,
    employee_id: int | None,
    original_sale_id: int | None,
    warehouse_id: int | None,
    items: list[dict],
    document_number: str | None = None,
    notes: str | None = None,
    electronic: bool = True,
) -> Sale:
    """
    Return goods against a sale: stock comes back in (+qty, type CreditNote)
    and serials sold on the lines go back to InStock.
    """
    if not warehouse_id:
        raise ValidationError("WarehouseID is required")
    lines = validated_lines(items, enforce_rules_sale_line, "Items are required")
    original = _load_original(company_id, original_sale_id)
    warehouse_id = resolve_warehouse_id(company_id, warehouse_id)
    check_line_references(company_id, lines)
    _check_return_cap(original, lines)
    _default_prices(original, lines)

    totals = price_lines(lines, header_exempt=bool(original.is_exenta))
    number = document_service.assign_document_number(
        company_id=company_id, document_type=CREDIT_NOTE, electronic=electronic, override=document_number
    )
    note = insert_document(
        header=_note_header(
            original, document_type=CREDIT_NOTE, number=number,
            warehouse_id=warehouse_id, employee_id=employee_id, notes=notes,
        ),
        totals=totals,
    )

    for line in totals.lines:
        if line.product_serial_id:
            set_serial_status(
                company_id, line.product_serial_id,
                expected=SERIAL_SOLD, new_status=SERIAL_IN_STOCK, warehouse_id=warehouse_id,
            )
    move_lines(
        sale=note,
        lines=totals.lines,
        warehouse_id=warehouse_id,
        sign=1,
        transaction_type=inventory_service.TX_CREDIT_NOTE,
        reference_document_type=CREDIT_NOTE,
        employee_id=employee_id,
        notes=f"Credit note for sale {original.id}",
    )
    return note


def create_debit_note(
    *,
    company_id: int,
    employee_id: int | None,
    original_sale_id: int | None,
    warehouse_id: int | None,
    items: list[dict],
    document_number: str | None = None,
    notes: str | None = None,
    electronic: bool = True,
) -> Sale:
    """Extra goods or charges on top of a sale: stock goes out (-qty, type DebitNote). No cap."""
    if not warehouse_id:
        raise ValidationError("WarehouseID is required")
    lines = validated_lines(items, enforce_rules_debit_line, "Items are required")
    original = _load_original(company_id, original_sale_id)
    warehouse_id = resolve_warehouse_id(company_id, warehouse_id)
    check_line_references(company_id, lines)

    totals = price_lines(lines, header_exempt=bool(original.is_exenta))
    number = document_service.assign_document_number(
        company_id=company_id, document_type=DEBIT_NOTE, electronic=electronic, override=document_number
    )
    note = insert_document(
        header=_note_header(
            original, document_type=DEBIT_NOTE, number=number,
            warehouse_id=warehouse_id, employee_id=employee_id, notes=notes,
        ),
        totals=totals,
    )

    release_serials(company_id, totals.lines, warehouse_id)
    move_lines(
        sale=note,
        lines=totals.lines,
        warehouse_id=warehouse_id,
        sign=-1,
        transaction_type=inventory_service.TX_DEBIT_NOTE,
        reference_document_type=DEBIT_NOTE,
        employee_id=employee_id,
        notes=f"Debit note for sale {original.id}",
    )
    return note


def get_note(company_id: int, note_id: int, document_type: str) -> Sale:
    label = "Credit note" if document_type == CREDIT_NOTE else "Debit note"
    note = require_owned(Sale, note_id, company_id, label)
    if note.document_type != document_type:
        raise NotFoundError(f"{label} not found")
    return note


def list_notes(company_id: int, original_sale_id: int, document_type: str) -> list[Sale]:
    require_owned(Sale, original_sale_id, company_id, "Sale")
    return (
        db.session.query(Sale)
        .filter(
            Sale.company_id == company_id,
            Sale.original_sale_id == original_sale_id,
            Sale.document_type == document_type,
        )
        .order_by(Sale.sale_date.desc(), Sale.id.desc())
        .all()
    )
