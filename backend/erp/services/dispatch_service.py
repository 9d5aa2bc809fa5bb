# Overview: Guía de despacho; prices like a sale, always ships stock out, never takes payment.

from __future__ import annotations

from datetime import datetime

from ..models import Customer, Sale
from ..time_utils import utcnow
from ..validation import ValidationError
from . import document_service, inventory_service
from .pricing import price_lines
from .sales_service import check_line_references, insert_document, move_lines, release_serials, validated_lines
from .tenant_service import require_owned, resolve_warehouse_id


GUIA_DESPACHO = "GUIA_DESPACHO"
STATUS_GUIA_EMITIDA = "GuiaEmitida"


def create_guia_despacho(
    *,
    company_id: int,
    employee_id: int | None,
    customer_id: int | None,
    warehouse_id: int | None,
    currency_id: int | None,
    items: list[dict],
    document_number: str | None = None,
    sale_date: datetime | None = None,
    is_exenta: bool = False,
    notes: str | None = None,
    shipping_address: str | None = None,
    billing_address: str | None = None,
    electronic: bool = True,
) -> Sale:
    """
    The folio always comes from the company's GUIA_DESPACHO sequence; with no
    sequence configured this raises ConfigurationError instead of inventing
    a number.
    """
    if not customer_id:
        raise ValidationError("CustomerID is required")
    if not warehouse_id:
        raise ValidationError("WarehouseID is required")
    if not currency_id:
        raise ValidationError("CurrencyID is required")
    lines = validated_lines(items, message="Items are required")

    warehouse_id = resolve_warehouse_id(company_id, warehouse_id)
    require_owned(Customer, customer_id, company_id, "Customer")
    check_line_references(company_id, lines)

    totals = price_lines(lines, header_exempt=bool(is_exenta))
    number = document_service.assign_document_number(
        company_id=company_id,
        document_type=GUIA_DESPACHO,
        electronic=electronic,
        override=document_number,
    )

    guia = insert_document(
        header={
            "company_id": company_id,
            "customer_id": customer_id,
            "employee_id": employee_id,
            "warehouse_id": warehouse_id,
            "sale_date": sale_date or utcnow(),
            "document_type": GUIA_DESPACHO,
            "document_number": number,
            "is_exenta": bool(is_exenta),
            "currency_id": currency_id,
            "amount_paid": 0,
            "payment_status": "Unpaid",
            "status": STATUS_GUIA_EMITIDA,
            "notes": notes,
            "shipping_address": shipping_address,
            "billing_address": billing_address,
        },
        totals=totals,
    )

    release_serials(company_id, totals.lines, warehouse_id)
    move_lines(
        sale=guia,
        lines=totals.lines,
        warehouse_id=warehouse_id,
        sign=-1,
        transaction_type=inventory_service.TX_SALE_SHIPMENT,
        reference_document_type=GUIA_DESPACHO,
        employee_id=employee_id,
        notes="Guía de despacho",
    )
    return guia
