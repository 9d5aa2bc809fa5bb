# Overview: Direct purchases; record the commitment now, receive stock later through a goods receipt.

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import DirectPurchase, DirectPurchaseItem, GoodsReceipt, Product, Supplier
from ..validation import (
    ConflictError,
    ValidationError,
    coerce_line_numbers,
    enforce_rules_purchase_line,
    require_items,
)
from .pricing import to_decimal
from .receive_service import post_receipt
from .tenant_service import require_owned, resolve_warehouse_id


DP_PENDING = "Pending"
DP_PARTIALLY_RECEIVED = "PartiallyReceived"
DP_RECEIVED = "Received"
DP_CANCELLED = "Cancelled"

EDITABLE_STATUSES = (DP_PENDING, DP_CANCELLED)


def _duplicate(receipt_number: str) -> ConflictError:
    return ConflictError(
        f"Receipt number {receipt_number} already exists",
        {"receipt_number": receipt_number},
    )


def create_direct_purchase(
    *,
    company_id: int,
    employee_id: int | None,
    supplier_id: int | None,
    receipt_number: str | None,
    items: list[dict],
    purchase_date: datetime | None = None,
    notes: str | None = None,
    warehouse_id: int | None = None,
) -> tuple[DirectPurchase, list[DirectPurchaseItem]]:
    """
    Header + items only. line_total = quantity * unit_price + tax_amount.
    No stock moves until receive_direct_purchase().
    """
    if not supplier_id:
        raise ValidationError("SupplierID is required")
    receipt_number = receipt_number.strip() if isinstance(receipt_number, str) else receipt_number
    if not receipt_number:
        raise ValidationError("ReceiptNumber is required")
    lines = require_items(items, "Items are required")
    for line in lines:
        enforce_rules_purchase_line(coerce_line_numbers(line))

    require_owned(Supplier, supplier_id, company_id, "Supplier")
    if warehouse_id:
        warehouse_id = resolve_warehouse_id(company_id, warehouse_id)
    for line in lines:
        require_owned(Product, line["product_id"], company_id, "Product")

    exists = db.session.query(DirectPurchase.id).filter_by(
        company_id=company_id, receipt_number=str(receipt_number)
    ).first()
    if exists:
        raise _duplicate(receipt_number)

    total = Decimal(0)
    tax_total = Decimal(0)
    priced = []
    for line in lines:
        quantity = to_decimal(line["quantity"])
        unit_price = to_decimal(line.get("unit_price"))
        tax = to_decimal(line.get("tax_amount"))
        line_total = quantity * unit_price + tax
        total += line_total
        tax_total += tax
        priced.append((line, quantity, unit_price, tax, line_total))

    purchase = DirectPurchase(
        company_id=company_id,
        supplier_id=supplier_id,
        warehouse_id=warehouse_id,
        receipt_number=str(receipt_number),
        total_amount=float(total),
        tax_amount=float(tax_total),
        status=DP_PENDING,
        notes=notes,
        created_by_employee_id=employee_id,
    )
    if purchase_date is not None:
        purchase.purchase_date = purchase_date
    db.session.add(purchase)
    try:
        db.session.flush()
    except IntegrityError as exc:
        raise _duplicate(receipt_number) from exc

    rows = []
    for line, quantity, unit_price, tax, line_total in priced:
        row = DirectPurchaseItem(
            direct_purchase_id=purchase.id,
            product_id=line["product_id"],
            description=line.get("description"),
            quantity=float(quantity),
            unit_price=float(unit_price),
            tax_amount=float(tax),
            line_total=float(line_total),
            received_quantity=0,
        )
        db.session.add(row)
        rows.append(row)
    db.session.flush()
    return purchase, rows


def _next_receipt_number(purchase: DirectPurchase) -> str:
    count = db.session.query(GoodsReceipt.id).filter_by(
        company_id=purchase.company_id, direct_purchase_id=purchase.id
    ).count()
    return f"{purchase.receipt_number}-R{count + 1}"


def _requested_quantities(purchase: DirectPurchase, items: list[dict] | None) -> list[tuple[DirectPurchaseItem, float]]:
    """Outstanding quantity per line, or the requested quantities capped at outstanding."""
    lines = {line.id: line for line in purchase.items}
    if not items:
        return [(line, line.outstanding_quantity) for line in purchase.items if line.outstanding_quantity > 0]

    plan = []
    for item in require_items(items, "Items are required"):
        coerce_line_numbers(item)
        line = lines.get(item.get("direct_purchase_item_id"))
        if line is None:
            raise ValidationError(
                f"DirectPurchaseItemID {item.get('direct_purchase_item_id')} does not belong to this purchase"
            )
        requested = item.get("quantity_received")
        if requested is None or requested <= 0:
            raise ValidationError("Each item must have DirectPurchaseItemID and positive QuantityReceived")
        quantity = min(requested, line.outstanding_quantity)
        if quantity > 0:
            plan.append((line, quantity))
    return plan


def receive_direct_purchase(
    *,
    company_id: int,
    employee_id: int | None,
    direct_purchase_id: int,
    warehouse_id: int | None,
    items: list[dict] | None = None,
    notes: str | None = None,
):
    purchase = require_owned(DirectPurchase, direct_purchase_id, company_id, "Direct purchase", lock=True)
    if purchase.status == DP_CANCELLED:
        raise ValidationError("Cannot receive a cancelled direct purchase")
    if purchase.status == DP_RECEIVED:
        raise ValidationError("Direct purchase is already fully received")

    warehouse_id = resolve_warehouse_id(company_id, warehouse_id or purchase.warehouse_id)
    plan = _requested_quantities(purchase, items)
    if not plan:
        raise ValidationError("Nothing left to receive")

    receipt, rows = post_receipt(
        company_id=company_id,
        employee_id=employee_id,
        supplier_id=purchase.supplier_id,
        warehouse_id=warehouse_id,
        receipt_number=_next_receipt_number(purchase),
        items=[
            {
                "product_id": line.product_id,
                "quantity_received": quantity,
                "unit_price": line.unit_price,
                "direct_purchase_item_id": line.id,
            }
            for line, quantity in plan
        ],
        direct_purchase_id=purchase.id,
        notes=notes,
    )

    for line, quantity in plan:
        line.received_quantity = (line.received_quantity or 0) + quantity

    purchase.warehouse_id = warehouse_id
    if all(line.outstanding_quantity <= 0 for line in purchase.items):
        purchase.status = DP_RECEIVED
    else:
        purchase.status = DP_PARTIALLY_RECEIVED
    db.session.flush()
    return purchase, receipt, rows


def list_direct_purchases(company_id: int, *, status: str | None = None) -> list[DirectPurchase]:
    query = db.session.query(DirectPurchase).filter(DirectPurchase.company_id == company_id)
    if status:
        query = query.filter(DirectPurchase.status == status)
    return query.order_by(DirectPurchase.purchase_date.desc(), DirectPurchase.id.desc()).all()


def get_direct_purchase(company_id: int, direct_purchase_id: int) -> DirectPurchase:
    return require_owned(DirectPurchase, direct_purchase_id, company_id, "Direct purchase")


def _received_anything(purchase: DirectPurchase) -> bool:
    return any((line.received_quantity or 0) > 0 for line in purchase.items)


def update_direct_purchase(*, company_id: int, direct_purchase_id: int, fields: dict) -> DirectPurchase:
    """Only notes and the Pending/Cancelled status can change; received quantities are owned by receipts."""
    purchase = require_owned(DirectPurchase, direct_purchase_id, company_id, "Direct purchase", lock=True)

    if "notes" in fields:
        purchase.notes = fields["notes"]
    status = fields.get("status")
    if status is not None and status != purchase.status:
        if status not in EDITABLE_STATUSES:
            raise ValidationError(f"Status must be one of: {', '.join(EDITABLE_STATUSES)}")
        if _received_anything(purchase):
            raise ValidationError("Cannot change status of a purchase that has received stock")
        purchase.status = status
    db.session.flush()
    return purchase


def delete_direct_purchase(*, company_id: int, direct_purchase_id: int) -> None:
    purchase = require_owned(DirectPurchase, direct_purchase_id, company_id, "Direct purchase", lock=True)
    if _received_anything(purchase):
        raise ValidationError("Cannot delete a direct purchase that has received stock")
    for line in list(purchase.items):
        db.session.delete(line)
    db.session.delete(purchase)
    db.session.flush()
