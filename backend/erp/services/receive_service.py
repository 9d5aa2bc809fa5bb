# Overview: Goods receipts; stock in from suppliers, against a purchase order, a direct purchase or neither.

"""
Goods Receipt

post_receipt() is the shared component: it writes the receipt header and
items and moves stock in. create_goods_receipt() wraps it for the API and
recomputes purchase-order status; purchase_service.receive_direct_purchase()
reuses it for direct purchases.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import (
    GoodsReceipt,
    GoodsReceiptItem,
    Product,
    ProductLot,
    PurchaseOrder,
    PurchaseOrderItem,
    Supplier,
    Warehouse,
)
from ..time_utils import utcnow
from ..validation import ConflictError, ValidationError, coerce_line_numbers, enforce_rules_receipt_line, require_items
from . import inventory_service
from .tenant_service import require_owned


PO_SUBMITTED = "Submitted"
PO_PARTIALLY_RECEIVED = "PartiallyReceived"
PO_RECEIVED = "Received"
PO_CANCELLED = "Cancelled"


def _receipt_number_taken(company_id: int, receipt_number: str) -> bool:
    return db.session.query(GoodsReceipt.id).filter_by(
        company_id=company_id, receipt_number=receipt_number
    ).first() is not None


def post_receipt(
    *,
    company_id: int,
    employee_id: int | None,
    supplier_id: int,
    warehouse_id: int,
    receipt_number: str,
    items: list[dict],
    purchase_order_id: int | None = None,
    direct_purchase_id: int | None = None,
    receipt_date: datetime | None = None,
    supplier_guia_despacho_number: str | None = None,
    notes: str | None = None,
) -> tuple[GoodsReceipt, list[GoodsReceiptItem]]:
    """Header, then per item: row, ledger +qty (PurchaseReceived), PO line received_quantity."""
    if _receipt_number_taken(company_id, receipt_number):
        raise ConflictError(
            f"Receipt number {receipt_number} already exists",
            {"receipt_number": receipt_number},
        )

    receipt = GoodsReceipt(
        company_id=company_id,
        purchase_order_id=purchase_order_id,
        direct_purchase_id=direct_purchase_id,
        supplier_id=supplier_id,
        warehouse_id=warehouse_id,
        receipt_date=receipt_date or utcnow(),
        receipt_number=receipt_number,
        supplier_guia_despacho_number=supplier_guia_despacho_number,
        notes=notes,
        received_by_employee_id=employee_id,
    )
    db.session.add(receipt)
    try:
        db.session.flush()
    except IntegrityError as exc:
        raise ConflictError(
            f"Receipt number {receipt_number} already exists",
            {"receipt_number": receipt_number},
        ) from exc

    rows = []
    for item in items:
        quantity = float(item["quantity_received"])
        row = GoodsReceiptItem(
            goods_receipt_id=receipt.id,
            purchase_order_item_id=item.get("purchase_order_item_id"),
            direct_purchase_item_id=item.get("direct_purchase_item_id"),
            product_id=item["product_id"],
            quantity_received=quantity,
            unit_price=item.get("unit_price"),
            product_lot_id=item.get("product_lot_id"),
            notes=item.get("notes"),
        )
        db.session.add(row)
        db.session.flush()
        rows.append(row)

        inventory_service.apply_movement(
            company_id=company_id,
            product_id=row.product_id,
            warehouse_id=warehouse_id,
            lot_id=row.product_lot_id,
            quantity_delta=quantity,
            transaction_type=inventory_service.TX_PURCHASE_RECEIVED,
            reference_document_type="GoodsReceipt",
            reference_document_id=receipt.id,
            employee_id=employee_id,
            notes=f"Goods receipt {receipt_number}",
        )

        if row.purchase_order_item_id:
            po_line = db.session.query(PurchaseOrderItem).filter(
                PurchaseOrderItem.id == row.purchase_order_item_id
            ).with_for_update().first()
            po_line.received_quantity = (po_line.received_quantity or 0) + quantity

    db.session.flush()
    return receipt, rows


def recompute_po_status(purchase_order: PurchaseOrder) -> str:
    ordered, received = db.session.query(
        func.coalesce(func.sum(PurchaseOrderItem.quantity), 0),
        func.coalesce(func.sum(PurchaseOrderItem.received_quantity), 0),
    ).filter(PurchaseOrderItem.purchase_order_id == purchase_order.id).one()

    if (received or 0) <= 0:
        status = PO_SUBMITTED
    elif received >= ordered:
        status = PO_RECEIVED
    else:
        status = PO_PARTIALLY_RECEIVED
    purchase_order.status = status
    db.session.flush()
    return status


def _check_lines(company_id: int, lines: list[dict], purchase_order: PurchaseOrder | None) -> None:
    po_line_ids = {line.id: line for line in purchase_order.items} if purchase_order else {}
    for line in lines:
        product = require_owned(Product, line["product_id"], company_id, "Product")
        lot_id = line.get("product_lot_id")
        if lot_id:
            lot = require_owned(ProductLot, lot_id, company_id, "Product lot")
            if lot.product_id != product.id:
                raise ValidationError(f"ProductLotID {lot_id} does not belong to ProductID {product.id}")

        po_item_id = line.get("purchase_order_item_id")
        if po_item_id is None:
            continue
        if purchase_order is None:
            raise ValidationError("PurchaseOrderItemID requires PurchaseOrderID")
        po_line = po_line_ids.get(po_item_id)
        if po_line is None:
            raise ValidationError(
                f"PurchaseOrderItemID {po_item_id} does not belong to PurchaseOrderID {purchase_order.id}"
            )
        if po_line.product_id != product.id:
            raise ValidationError(f"PurchaseOrderItemID {po_item_id} is for a different product")


def create_goods_receipt(
    *,
    company_id: int,
    employee_id: int | None,
    supplier_id: int | None,
    warehouse_id: int | None,
    receipt_number: str | None,
    items: list[dict],
    purchase_order_id: int | None = None,
    receipt_date: datetime | None = None,
    supplier_guia_despacho_number: str | None = None,
    notes: str | None = None,
) -> tuple[GoodsReceipt, list[GoodsReceiptItem]]:
    if not supplier_id:
        raise ValidationError("SupplierID is required")
    receipt_number = (receipt_number or "").strip() if isinstance(receipt_number, str) else receipt_number
    if not receipt_number:
        raise ValidationError("ReceiptNumber is required")
    if not warehouse_id:
        raise ValidationError("WarehouseID is required")
    lines = require_items(items, "Items are required")
    for line in lines:
        enforce_rules_receipt_line(coerce_line_numbers(line))

    require_owned(Supplier, supplier_id, company_id, "Supplier")
    require_owned(Warehouse, warehouse_id, company_id, "Warehouse")
    purchase_order = None
    if purchase_order_id:
        purchase_order = require_owned(PurchaseOrder, purchase_order_id, company_id, "Purchase order", lock=True)
        if purchase_order.status == PO_CANCELLED:
            raise ValidationError("Cannot receive against a cancelled purchase order")
        if purchase_order.supplier_id != supplier_id:
            raise ValidationError("SupplierID does not match the purchase order")
    _check_lines(company_id, lines, purchase_order)

    receipt, rows = post_receipt(
        company_id=company_id,
        employee_id=employee_id,
        supplier_id=supplier_id,
        warehouse_id=warehouse_id,
        receipt_number=str(receipt_number),
        items=lines,
        purchase_order_id=purchase_order.id if purchase_order else None,
        receipt_date=receipt_date,
        supplier_guia_despacho_number=supplier_guia_despacho_number,
        notes=notes,
    )
    if purchase_order is not None:
        recompute_po_status(purchase_order)
    return receipt, rows


def list_goods_receipts(company_id: int, *, purchase_order_id: int | None = None) -> list[GoodsReceipt]:
    query = db.session.query(GoodsReceipt).filter(GoodsReceipt.company_id == company_id)
    if purchase_order_id:
        query = query.filter(GoodsReceipt.purchase_order_id == purchase_order_id)
    return query.order_by(GoodsReceipt.receipt_date.desc(), GoodsReceipt.id.desc()).all()


def get_goods_receipt(company_id: int, receipt_id: int) -> GoodsReceipt:
    return require_owned(GoodsReceipt, receipt_id, company_id, "Goods receipt")
