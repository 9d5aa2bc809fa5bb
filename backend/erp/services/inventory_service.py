# Overview: Inventory ledger; every stock change updates the level row and appends an audit transaction.

"""
Inventory Ledger

INVARIANT: for every (product, warehouse, lot-or-null) key,
ProductInventoryLevel.stock_quantity == sum(InventoryTransaction.quantity_change)
logged for that key. apply_movement() is the only code path that changes
stock_quantity, and it always does both writes under the same row lock.

Negative stock is permitted: the ledger records what happened and leaves
oversell policy to callers.

All functions run inside the caller's transaction (see transactions.atomic)
and only flush.
"""

from __future__ import annotations

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import (
    InventoryTransaction,
    Product,
    ProductInventoryLevel,
    ProductLot,
    ProductLotInventory,
    Warehouse,
)
from ..time_utils import utcnow
from ..validation import ConflictError, ValidationError
from .tenant_service import require_owned
from .transactions import lock_for_update


TX_SALE = "Sale"
TX_PURCHASE_RECEIVED = "PurchaseReceived"
TX_CREDIT_NOTE = "CreditNote"
TX_DEBIT_NOTE = "DebitNote"
TX_MANUAL_ADJUSTMENT = "ManualAdjustment"
TX_SALE_SHIPMENT = "SaleShipment"
TX_SERIAL_INTAKE = "SerialIntake"


def _level_query(company_id: int, product_id: int, warehouse_id: int, lot_id: int | None):
    query = db.session.query(ProductInventoryLevel).filter(
        ProductInventoryLevel.company_id == company_id,
        ProductInventoryLevel.product_id == product_id,
        ProductInventoryLevel.warehouse_id == warehouse_id,
    )
    # NULL lot is its own key; "= NULL" never matches
    if lot_id is None:
        return query.filter(ProductInventoryLevel.product_lot_id.is_(None))
    return query.filter(ProductInventoryLevel.product_lot_id == lot_id)


def lock_level(
    company_id: int, product_id: int, warehouse_id: int, lot_id: int | None
) -> ProductInventoryLevel | None:
    return lock_for_update(_level_query(company_id, product_id, warehouse_id, lot_id)).first()


def _apply_lot_delta(company_id: int, lot_id: int, warehouse_id: int, quantity_delta: float) -> None:
    row = lock_for_update(
        db.session.query(ProductLotInventory).filter_by(
            company_id=company_id, product_lot_id=lot_id, warehouse_id=warehouse_id
        )
    ).first()
    if row is None:
        db.session.add(ProductLotInventory(
            company_id=company_id,
            product_lot_id=lot_id,
            warehouse_id=warehouse_id,
            quantity=quantity_delta,
        ))
    else:
        row.quantity = (row.quantity or 0) + quantity_delta


def apply_movement(
    *,
    company_id: int,
    product_id: int,
    warehouse_id: int,
    lot_id: int | None,
    quantity_delta: float,
    transaction_type: str,
    reference_document_type: str | None,
    reference_document_id: int | None,
    employee_id: int | None = None,
    notes: str | None = None,
    serial_id: int | None = None,
) -> ProductInventoryLevel:
    """
    Move stock for one key and log it.

    Locks the level row (creating it seeded with the delta when absent),
    appends one InventoryTransaction, and keeps the lot's per-warehouse
    quantity in step when a lot is involved.
    """
    level = lock_level(company_id, product_id, warehouse_id, lot_id)
    now = utcnow()
    if level is None:
        level = ProductInventoryLevel(
            company_id=company_id,
            product_id=product_id,
            warehouse_id=warehouse_id,
            product_lot_id=lot_id,
            stock_quantity=quantity_delta,
            reserved_quantity=0,
            last_updated_at=now,
        )
        db.session.add(level)
        try:
            db.session.flush()
        except IntegrityError:
            # another transaction created the same key first; the caller retries
            raise ConflictError("Inventory level was created concurrently, retry the operation")
    else:
        level.stock_quantity = (level.stock_quantity or 0) + quantity_delta
        level.last_updated_at = now

    if lot_id is not None:
        _apply_lot_delta(company_id, lot_id, warehouse_id, quantity_delta)

    db.session.flush()

    db.session.add(InventoryTransaction(
        company_id=company_id,
        product_id=product_id,
        warehouse_id=warehouse_id,
        product_lot_id=lot_id,
        product_serial_id=serial_id,
        transaction_type=transaction_type,
        quantity_change=quantity_delta,
        transaction_date=now,
        reference_document_type=reference_document_type,
        reference_document_id=reference_document_id,
        notes=notes,
        employee_id=employee_id,
    ))
    db.session.flush()
    return level


def set_level(
    *,
    company_id: int,
    product_id: int,
    warehouse_id: int,
    lot_id: int | None,
    target_quantity: float,
    reference_document_type: str,
    employee_id: int | None = None,
    notes: str | None = None,
) -> tuple[ProductInventoryLevel | None, float]:
    """
    Drive a key to an absolute quantity.

    The log still records a true delta (target - current). Returns the level
    row (None if nothing needed to move on a missing key) and the delta.
    """
    level = lock_level(company_id, product_id, warehouse_id, lot_id)
    current = (level.stock_quantity or 0) if level else 0
    delta = (target_quantity or 0) - current
    if delta == 0:
        return level, 0
    level = apply_movement(
        company_id=company_id,
        product_id=product_id,
        warehouse_id=warehouse_id,
        lot_id=lot_id,
        quantity_delta=delta,
        transaction_type=TX_MANUAL_ADJUSTMENT,
        reference_document_type=reference_document_type,
        reference_document_id=level.id if level else None,
        employee_id=employee_id,
        notes=notes,
    )
    return level, delta


def set_levels(*, company_id: int, entries: list[dict], employee_id: int | None) -> int:
    """
    Bulk variant: entries carry absolute stock_quantity targets plus optional
    min/max thresholds. Entries naming another company's product or
    warehouse are skipped, not rejected. Returns the number of entries applied.
    """
    if not entries:
        raise ValidationError("No entries provided")

    updated = 0
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        product_id = entry.get("product_id")
        warehouse_id = entry.get("warehouse_id")
        if not product_id or not warehouse_id:
            continue
        if not _owned_pair(company_id, product_id, warehouse_id):
            continue
        lot_id = entry.get("product_lot_id")
        if lot_id is not None and not _lot_matches(company_id, lot_id, product_id):
            continue

        level, _ = set_level(
            company_id=company_id,
            product_id=product_id,
            warehouse_id=warehouse_id,
            lot_id=lot_id,
            target_quantity=_number_or(entry.get("stock_quantity"), 0),
            reference_document_type="InventoryBulkSave",
            employee_id=employee_id,
            notes="Bulk stock save",
        )
        if level is None:
            # Target 0 on a key that never moved: create the row for min/max
            level = ProductInventoryLevel(
                company_id=company_id,
                product_id=product_id,
                warehouse_id=warehouse_id,
                product_lot_id=lot_id,
                stock_quantity=0,
                reserved_quantity=0,
            )
            db.session.add(level)
        level.min_stock_level = _number_or(entry.get("min_stock_level"), None)
        level.max_stock_level = _number_or(entry.get("max_stock_level"), None)
        level.last_updated_at = utcnow()
        updated += 1

    db.session.flush()
    return updated


def _number_or(value, default):
    if value is None or value == "" or isinstance(value, bool):
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid number: {value!r}")


def _owned_pair(company_id: int, product_id: int, warehouse_id: int) -> bool:
    product = db.session.get(Product, product_id)
    warehouse = db.session.get(Warehouse, warehouse_id)
    return (
        product is not None and warehouse is not None
        and product.company_id == company_id and warehouse.company_id == company_id
    )


def _lot_matches(company_id: int, lot_id: int, product_id: int) -> bool:
    lot = db.session.get(ProductLot, lot_id)
    return lot is not None and lot.company_id == company_id and lot.product_id == product_id


def ensure_product(company_id: int, product_id) -> Product:
    return require_owned(Product, product_id, company_id, "Product")


def ensure_warehouse(company_id: int, warehouse_id) -> Warehouse:
    return require_owned(Warehouse, warehouse_id, company_id, "Warehouse")


def adjust(
    *,
    company_id: int,
    employee_id: int | None,
    product_id: int,
    warehouse_id: int,
    quantity_change: float,
    reason: str | None = None,
    lot_id: int | None = None,
) -> ProductInventoryLevel:
    """Manual stock correction by a signed, non-zero delta."""
    if not quantity_change:
        raise ValidationError("ProductID, WarehouseID and QuantityChange are required")
    ensure_product(company_id, product_id)
    ensure_warehouse(company_id, warehouse_id)
    if lot_id is not None and not _lot_matches(company_id, lot_id, product_id):
        raise ValidationError("ProductLotID does not belong to this product")

    existing = lock_level(company_id, product_id, warehouse_id, lot_id)
    return apply_movement(
        company_id=company_id,
        product_id=product_id,
        warehouse_id=warehouse_id,
        lot_id=lot_id,
        quantity_delta=quantity_change,
        transaction_type=TX_MANUAL_ADJUSTMENT,
        reference_document_type="InventoryAdjustment",
        reference_document_id=existing.id if existing else None,
        employee_id=employee_id,
        notes=reason,
    )


def list_levels(
    *,
    company_id: int,
    product_id: int | None = None,
    warehouse_id: int | None = None,
    include_zero: bool = False,
) -> list[ProductInventoryLevel]:
    query = (
        db.session.query(ProductInventoryLevel)
        .join(Product, ProductInventoryLevel.product_id == Product.id)
        .join(Warehouse, ProductInventoryLevel.warehouse_id == Warehouse.id)
        .filter(
            ProductInventoryLevel.company_id == company_id,
            Product.company_id == company_id,
            Warehouse.company_id == company_id,
        )
    )
    if product_id:
        query = query.filter(ProductInventoryLevel.product_id == product_id)
    if warehouse_id:
        query = query.filter(ProductInventoryLevel.warehouse_id == warehouse_id)
    if not include_zero:
        query = query.filter(ProductInventoryLevel.stock_quantity != 0)
    return query.order_by(Product.name, Warehouse.name, ProductInventoryLevel.id).all()


def list_transactions(
    *,
    company_id: int,
    product_id: int | None = None,
    warehouse_id: int | None = None,
    limit: int = 100,
) -> list[InventoryTransaction]:
    query = db.session.query(InventoryTransaction).filter(InventoryTransaction.company_id == company_id)
    if product_id:
        query = query.filter(InventoryTransaction.product_id == product_id)
    if warehouse_id:
        query = query.filter(InventoryTransaction.warehouse_id == warehouse_id)
    limit = max(1, min(limit, 500))
    return (
        query.order_by(InventoryTransaction.transaction_date.desc(), InventoryTransaction.id.desc())
        .limit(limit)
        .all()
    )


def logged_quantity(product_id: int, warehouse_id: int, lot_id: int | None = None) -> float:
    """Sum of the audit log for one key; equals the level row's stock_quantity."""
    query = db.session.query(func.coalesce(func.sum(InventoryTransaction.quantity_change), 0)).filter(
        InventoryTransaction.product_id == product_id,
        InventoryTransaction.warehouse_id == warehouse_id,
    )
    if lot_id is None:
        query = query.filter(InventoryTransaction.product_lot_id.is_(None))
    else:
        query = query.filter(InventoryTransaction.product_lot_id == lot_id)
    return float(query.scalar() or 0)
