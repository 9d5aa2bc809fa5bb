# Overview: Purchase orders; created Draft/Submitted, received through goods receipts, cancelled by DELETE.

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Product, PurchaseOrder, PurchaseOrderItem, Supplier
from ..validation import (
    ConflictError,
    ValidationError,
    coerce_line_numbers,
    enforce_rules_purchase_line,
    require_items,
)
from .pricing import to_decimal
from .receive_service import PO_CANCELLED
from .tenant_service import require_owned


CREATE_STATUSES = ("Draft", "Submitted")


def create_purchase_order(
    *,
    company_id: int,
    employee_id: int | None,
    supplier_id: int | None,
    purchase_order_number: str | None,
    items: list[dict],
    status: str | None = None,
    order_date: datetime | None = None,
    expected_delivery_date: datetime | None = None,
    notes: str | None = None,
    shipping_address: str | None = None,
) -> PurchaseOrder:
    if not supplier_id:
        raise ValidationError("SupplierID is required")
    number = purchase_order_number.strip() if isinstance(purchase_order_number, str) else purchase_order_number
    if not number:
        raise ValidationError("PurchaseOrderNumber is required")
    status = status or "Draft"
    if status not in CREATE_STATUSES:
        raise ValidationError(f"Status must be one of: {', '.join(CREATE_STATUSES)}")
    lines = require_items(items, "Items are required")
    for line in lines:
        enforce_rules_purchase_line(coerce_line_numbers(line))

    require_owned(Supplier, supplier_id, company_id, "Supplier")
    for line in lines:
        require_owned(Product, line["product_id"], company_id, "Product")

    order = PurchaseOrder(
        company_id=company_id,
        supplier_id=supplier_id,
        purchase_order_number=str(number),
        expected_delivery_date=expected_delivery_date,
        status=status,
        notes=notes,
        shipping_address=shipping_address,
        created_by_employee_id=employee_id,
    )
    if order_date is not None:
        order.order_date = order_date
    db.session.add(order)
    try:
        db.session.flush()
    except IntegrityError as exc:
        raise ConflictError(
            f"Purchase order number {number} already exists",
            {"purchase_order_number": number},
        ) from exc

    total = Decimal(0)
    for line in lines:
        quantity = to_decimal(line["quantity"])
        unit_price = to_decimal(line.get("unit_price"))
        tax = to_decimal(line.get("tax_amount"))
        line_total = quantity * unit_price + tax
        total += line_total
        db.session.add(PurchaseOrderItem(
            purchase_order_id=order.id,
            product_id=line["product_id"],
            description=line.get("description"),
            quantity=float(quantity),
            unit_price=float(unit_price),
            tax_amount=float(tax),
            line_total=float(line_total),
            received_quantity=0,
        ))
    order.total_amount = float(total)
    db.session.flush()
    return order


def list_purchase_orders(company_id: int, *, status: str | None = None) -> list[PurchaseOrder]:
    query = db.session.query(PurchaseOrder).filter(PurchaseOrder.company_id == company_id)
    if status:
        query = query.filter(PurchaseOrder.status == status)
    return query.order_by(PurchaseOrder.order_date.desc(), PurchaseOrder.id.desc()).all()


def get_purchase_order(company_id: int, purchase_order_id: int) -> PurchaseOrder:
    return require_owned(PurchaseOrder, purchase_order_id, company_id, "Purchase order")


def cancel_purchase_order(*, company_id: int, purchase_order_id: int) -> PurchaseOrder:
    order = require_owned(PurchaseOrder, purchase_order_id, company_id, "Purchase order", lock=True)
    if any((line.received_quantity or 0) > 0 for line in order.items):
        raise ValidationError("Cannot cancel a purchase order that has received stock")
    order.status = PO_CANCELLED
    db.session.flush()
    return order
