# Overview: Sale documents: creation, follow-on payments and reads; shared line handling for notes and dispatch notes.

"""
Sales transaction engine.

create_sale() runs as one unit: header, items, stock movements and payments
are written inside the caller's transaction (routes wrap it in atomic()), so
a failure at any step leaves no partial sale behind.

Statement order inside a document is fixed: number allocation, header,
items, inventory movements, payments.
"""

from __future__ import annotations

from datetime import datetime
from typing import Iterable

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import (
    Customer,
    Product,
    ProductLot,
    ProductSerial,
    Sale,
    SalesItem,
    SalesPayment,
)
from ..time_utils import utcnow
from ..validation import (
    ConflictError,
    ValidationError,
    coerce_line_numbers,
    coerce_number,
    enforce_rules_sale_line,
    require_items,
)
from . import document_service, inventory_service
from .config_store import ConfigStore
from .pricing import DocumentTotals, PricedLine, payment_status, price_lines, to_decimal
from .tenant_service import require_owned, resolve_warehouse_id


SALE_DOCUMENT_TYPES = frozenset({
    "BOLETA",
    "FACTURA",
    "FACTURA_EXENTA",
    "BOLETA_EXENTA",
    "GUIA_DESPACHO",
    "NOTA_DEBITO",
    "NOTA_CREDITO",
    "COTIZACION",
})

# Charged POS tickets are stored as quotations
DOCUMENT_TYPE_ALIASES = {"TICKET": "COTIZACION"}

DEFAULT_DOCUMENT_TYPE = "TICKET"

SERIAL_IN_STOCK = "InStock"
SERIAL_SOLD = "Sold"


def normalize_document_type(
    value,
    *,
    company_id: int,
    employee_id: int | None,
    config_store: ConfigStore | None,
) -> str:
    """
    Trim/upper-case the requested type, fall back to the company's configured
    POS type, resolve aliases, then check the allow-list.
    """
    doc_type = value.strip().upper() if isinstance(value, str) else ""
    if not doc_type:
        configured = None
        if config_store is not None:
            cfg = config_store.get_config(company_id, employee_id) or {}
            configured = (cfg.get("pos") or {}).get("documentType")
        doc_type = (configured.strip().upper() if isinstance(configured, str) else "") or DEFAULT_DOCUMENT_TYPE
    doc_type = DOCUMENT_TYPE_ALIASES.get(doc_type, doc_type)
    if doc_type not in SALE_DOCUMENT_TYPES:
        raise ValidationError("Invalid or unsupported document type", {"document_type": doc_type})
    return doc_type


# --- Line helpers (also used by note_service and dispatch_service) -------------


def check_line_references(company_id: int, lines: Iterable[dict]) -> None:
    """Every product, lot and serial on the lines must belong to the company and to each other."""
    for line in lines:
        product = require_owned(Product, line["product_id"], company_id, "Product")
        lot_id = line.get("product_lot_id")
        if lot_id:
            lot = require_owned(ProductLot, lot_id, company_id, "Product lot")
            if lot.product_id != product.id:
                raise ValidationError(f"ProductLotID {lot_id} does not belong to ProductID {product.id}")
        serial_id = line.get("product_serial_id")
        if serial_id:
            serial = require_owned(ProductSerial, serial_id, company_id, "Product serial")
            if serial.product_id != product.id:
                raise ValidationError(f"ProductSerialID {serial_id} does not belong to ProductID {product.id}")
            if to_decimal(line.get("quantity")) != 1:
                raise ValidationError("Lines with a ProductSerialID must have Quantity 1")


def set_serial_status(company_id: int, serial_id: int, *, expected: str, new_status: str, warehouse_id: int | None):
    serial = require_owned(ProductSerial, serial_id, company_id, "Product serial", lock=True)
    if serial.status != expected:
        raise ValidationError(
            f"Serial {serial.serial_number} is {serial.status}, expected {expected}",
            {"product_serial_id": serial.id, "status": serial.status},
        )
    serial.status = new_status
    serial.warehouse_id = warehouse_id


def insert_document(*, header: dict, totals: DocumentTotals) -> Sale:
    """Insert a sale-family header and its items; flushes so ids are available."""
    sale = Sale(**header, **totals.header_columns())
    db.session.add(sale)
    try:
        db.session.flush()
    except IntegrityError as exc:
        raise ConflictError(
            f"Document number {header.get('document_number')} already exists for {header.get('document_type')}",
            {"document_number": header.get("document_number")},
        ) from exc

    for line in totals.lines:
        db.session.add(SalesItem(sale_id=sale.id, **line.item_columns()))
    db.session.flush()
    return sale


def move_lines(
    *,
    sale: Sale,
    lines: list[PricedLine],
    warehouse_id: int,
    sign: int,
    transaction_type: str,
    reference_document_type: str,
    employee_id: int | None,
    notes: str | None,
) -> None:
    for line in lines:
        inventory_service.apply_movement(
            company_id=sale.company_id,
            product_id=line.product_id,
            warehouse_id=warehouse_id,
            lot_id=line.product_lot_id,
            quantity_delta=sign * float(line.quantity),
            transaction_type=transaction_type,
            reference_document_type=reference_document_type,
            reference_document_id=sale.id,
            employee_id=employee_id,
            notes=notes,
            serial_id=line.product_serial_id,
        )


def release_serials(company_id: int, lines: list[PricedLine], warehouse_id: int | None) -> None:
    for line in lines:
        if line.product_serial_id:
            set_serial_status(
                company_id, line.product_serial_id,
                expected=SERIAL_IN_STOCK, new_status=SERIAL_SOLD, warehouse_id=warehouse_id,
            )


def validated_lines(items, rule=enforce_rules_sale_line, message="At least one sale item is required") -> list[dict]:
    for item in require_items(items, message):
        rule(coerce_line_numbers(item))
    return items


# --- Sales ---------------------------------------------------------------------


def normalize_payments(payments) -> list[dict]:
    """Payments with a numeric Amount; entries with no amount or amount <= 0 are dropped."""
    if payments is None:
        return []
    if not isinstance(payments, list):
        raise ValidationError("Payments must be a list")
    normalized = []
    for payment in payments:
        if not isinstance(payment, dict):
            raise ValidationError("Each payment must be an object")
        amount = payment.get("amount")
        if amount is None or (isinstance(amount, str) and not amount.strip()):
            continue
        amount = coerce_number("Amount", amount)
        if amount > 0:
            normalized.append({**payment, "amount": amount})
    return normalized


def create_sale(
    *,
    company_id: int,
    employee_id: int | None,
    customer_id: int | None,
    items: list[dict],
    payments: list[dict] | None = None,
    document_type: str | None = None,
    warehouse_id: int | None = None,
    document_number: str | None = None,
    sale_date: datetime | None = None,
    currency_id: int | None = None,
    is_exenta: bool = False,
    electronic: bool = True,
    notes: str | None = None,
    shipping_address: str | None = None,
    billing_address: str | None = None,
    config_store: ConfigStore | None = None,
) -> Sale:
    """
    Create a sale and move its goods out of stock.

    1. resolve warehouse (explicit or company default)
    2. normalize document type
    3. price lines
    4. number the document (sequence, else synthetic when the type allows)
    5. header + items
    6. stock out, type Sale
    7. payments and payment status
    """
    if not customer_id:
        raise ValidationError("CustomerID is required")
    lines = validated_lines(items)

    resolved_warehouse_id = resolve_warehouse_id(company_id, warehouse_id)
    doc_type = normalize_document_type(
        document_type, company_id=company_id, employee_id=employee_id, config_store=config_store
    )
    require_owned(Customer, customer_id, company_id, "Customer")
    check_line_references(company_id, lines)

    normalized_payments = normalize_payments(payments)
    paid = sum((to_decimal(p["amount"]) for p in normalized_payments), to_decimal(0))

    totals = price_lines(lines, header_exempt=bool(is_exenta))

    number = document_service.assign_document_number(
        company_id=company_id,
        document_type=doc_type,
        electronic=electronic,
        override=document_number,
    )

    if currency_id is None:
        currency_id = 1
        if config_store is not None:
            currency_id = (config_store.get_config(company_id, employee_id) or {}).get("currencyId", 1)

    sale = insert_document(
        header={
            "company_id": company_id,
            "customer_id": customer_id,
            "employee_id": employee_id,
            "warehouse_id": resolved_warehouse_id,
            "sale_date": sale_date or utcnow(),
            "document_type": doc_type,
            "document_number": number,
            "is_exenta": bool(is_exenta),
            "currency_id": currency_id,
            "amount_paid": float(paid),
            "payment_status": payment_status(paid, totals.final_amount),
            "status": "Completed",
            "notes": notes,
            "shipping_address": shipping_address,
            "billing_address": billing_address,
        },
        totals=totals,
    )

    release_serials(company_id, totals.lines, resolved_warehouse_id)
    move_lines(
        sale=sale,
        lines=totals.lines,
        warehouse_id=resolved_warehouse_id,
        sign=-1,
        transaction_type=inventory_service.TX_SALE,
        reference_document_type=doc_type,
        employee_id=employee_id,
        notes="Sale from API",
    )

    for payment in normalized_payments:
        amount = to_decimal(payment["amount"])
        db.session.add(SalesPayment(
            sale_id=sale.id,
            payment_method_id=payment.get("payment_method_id"),
            amount=float(amount),
            payment_date=utcnow(),
            reference_number=payment.get("reference_number"),
            bank_transaction_id=payment.get("bank_transaction_id"),
        ))
    db.session.flush()
    return sale


def apply_payment(
    *,
    company_id: int,
    sale_id: int,
    amount,
    payment_method_id: int | None = None,
    reference_number: str | None = None,
    bank_transaction_id: str | None = None,
    payment_date: datetime | None = None,
) -> Sale:
    """Follow-on payment against an existing document; recomputes AmountPaid and PaymentStatus."""
    if amount is None or (isinstance(amount, str) and not amount.strip()):
        raise ValidationError("Amount is required")
    value = to_decimal(coerce_number("Amount", amount))
    if value <= 0:
        raise ValidationError("Amount must be > 0")
    sale = require_owned(Sale, sale_id, company_id, "Sale", lock=True)
    if sale.document_type in ("COTIZACION", "GUIA_DESPACHO", "NOTA_CREDITO"):
        raise ValidationError(f"Payments cannot be applied to {sale.document_type}")

    db.session.add(SalesPayment(
        sale_id=sale.id,
        payment_method_id=payment_method_id,
        amount=float(value),
        payment_date=payment_date or utcnow(),
        reference_number=reference_number,
        bank_transaction_id=bank_transaction_id,
    ))
    db.session.flush()

    paid = db.session.query(func.coalesce(func.sum(SalesPayment.amount), 0)).filter(
        SalesPayment.sale_id == sale.id
    ).scalar()
    sale.amount_paid = float(paid or 0)
    sale.payment_status = payment_status(sale.amount_paid, sale.final_amount)
    db.session.flush()
    return sale


def list_sales(company_id: int, *, document_type: str | None = None) -> list[Sale]:
    query = db.session.query(Sale).filter(Sale.company_id == company_id)
    if document_type:
        query = query.filter(Sale.document_type == document_type.strip().upper())
    return query.order_by(Sale.sale_date.desc(), Sale.id.desc()).all()


def get_sale(company_id: int, sale_id: int) -> Sale:
    return require_owned(Sale, sale_id, company_id, "Sale")


def sale_detail(sale: Sale) -> dict:
    return {
        "header": sale.to_dict(),
        "items": [item.to_dict() for item in sale.items],
        "payments": [payment.to_dict() for payment in sale.payments],
    }
