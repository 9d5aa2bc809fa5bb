# Overview: Product lots; FEFO listing and absolute per-warehouse lot quantities moved through the ledger.

from __future__ import annotations

from sqlalchemy import and_, case, func

from ..extensions import db
from ..models import Product, ProductLot, ProductLotInventory, Warehouse
from ..validation import NotFoundError, ValidationError
from . import inventory_service
from .tenant_service import require_owned
from .transactions import lock_for_update


def _fefo_order():
    # First expiring first; lots without expiry go last, oldest first
    return (
        case((ProductLot.expiration_date.is_(None), 1), else_=0),
        ProductLot.expiration_date.asc(),
        ProductLot.created_at.asc(),
        ProductLot.id.asc(),
    )


def list_lots(
    *,
    company_id: int,
    product_id: int | None = None,
    warehouse_id: int | None = None,
    include_zero: bool = False,
) -> list[dict]:
    """Lots with their quantity in one warehouse, or summed over all warehouses."""
    if warehouse_id:
        quantity = func.coalesce(ProductLotInventory.quantity, 0)
        query = (
            db.session.query(ProductLot, quantity, Warehouse.name)
            .outerjoin(
                ProductLotInventory,
                and_(
                    ProductLotInventory.company_id == company_id,
                    ProductLotInventory.product_lot_id == ProductLot.id,
                    ProductLotInventory.warehouse_id == warehouse_id,
                ),
            )
            .outerjoin(Warehouse, Warehouse.id == ProductLotInventory.warehouse_id)
            .filter(ProductLot.company_id == company_id)
        )
        if product_id:
            query = query.filter(ProductLot.product_id == product_id)
        if not include_zero:
            query = query.filter(quantity != 0)
        rows = query.order_by(*_fefo_order()).all()
        return [
            lot.to_dict(warehouse_id=warehouse_id, warehouse_name=name, quantity=float(qty or 0))
            for lot, qty, name in rows
        ]

    quantity = func.coalesce(func.sum(ProductLotInventory.quantity), 0)
    query = (
        db.session.query(ProductLot, quantity)
        .outerjoin(
            ProductLotInventory,
            and_(
                ProductLotInventory.company_id == company_id,
                ProductLotInventory.product_lot_id == ProductLot.id,
            ),
        )
        .filter(ProductLot.company_id == company_id)
    )
    if product_id:
        query = query.filter(ProductLot.product_id == product_id)
    query = query.group_by(ProductLot.id)
    if not include_zero:
        query = query.having(quantity != 0)
    rows = query.order_by(*_fefo_order()).all()
    return [lot.to_dict(quantity=float(qty or 0)) for lot, qty in rows]


def fefo_lot(*, company_id: int, product_id, warehouse_id) -> dict:
    """First lot with stock in the warehouse, by expiry."""
    if not product_id or not warehouse_id:
        raise ValidationError("productId and warehouseId are required")
    row = (
        db.session.query(ProductLot, ProductLotInventory.quantity)
        .join(ProductLotInventory, ProductLotInventory.product_lot_id == ProductLot.id)
        .filter(
            ProductLot.company_id == company_id,
            ProductLot.product_id == product_id,
            ProductLotInventory.company_id == company_id,
            ProductLotInventory.warehouse_id == warehouse_id,
            ProductLotInventory.quantity > 0,
        )
        .order_by(*_fefo_order())
        .first()
    )
    if row is None:
        raise NotFoundError("No available lot for this product")
    lot, quantity = row
    return lot.to_dict(warehouse_id=int(warehouse_id), quantity=float(quantity))


def _set_lot_quantity(lot: ProductLot, warehouse_id: int, quantity: float, employee_id: int | None) -> float:
    _, delta = inventory_service.set_level(
        company_id=lot.company_id,
        product_id=lot.product_id,
        warehouse_id=warehouse_id,
        lot_id=lot.id,
        target_quantity=quantity,
        reference_document_type="LotAdjustment",
        employee_id=employee_id,
        notes="Lot inventory update",
    )
    return delta


def _lot_quantity(lot: ProductLot, warehouse_id: int) -> float:
    row = db.session.query(ProductLotInventory.quantity).filter_by(
        company_id=lot.company_id, product_lot_id=lot.id, warehouse_id=warehouse_id
    ).first()
    return float(row[0]) if row else 0.0


def upsert_lot(
    *,
    company_id: int,
    employee_id: int | None,
    product_id,
    warehouse_id,
    lot_number,
    expiration_date=None,
    quantity=None,
) -> tuple[dict, bool]:
    """
    Create or update a lot by (product, lot number) and set its absolute
    quantity in the warehouse. Returns (lot dict, created).
    """
    lot_number = lot_number.strip() if isinstance(lot_number, str) else lot_number
    if not product_id or not warehouse_id or not lot_number:
        raise ValidationError("ProductID, WarehouseID and LotNumber are required")

    product = require_owned(Product, product_id, company_id, "Product")
    if not product.uses_lots:
        raise ValidationError("Product does not use lots")
    require_owned(Warehouse, warehouse_id, company_id, "Warehouse")

    lot = lock_for_update(
        db.session.query(ProductLot).filter_by(
            company_id=company_id, product_id=product.id, lot_number=str(lot_number)
        )
    ).first()
    created = lot is None
    if created:
        lot = ProductLot(
            company_id=company_id,
            product_id=product.id,
            lot_number=str(lot_number),
            expiration_date=expiration_date,
        )
        db.session.add(lot)
        db.session.flush()
    elif expiration_date is not None:
        lot.expiration_date = expiration_date

    _set_lot_quantity(lot, warehouse_id, quantity or 0, employee_id)
    db.session.flush()
    return lot.to_dict(warehouse_id=warehouse_id, quantity=_lot_quantity(lot, warehouse_id)), created


def update_lot(
    *,
    company_id: int,
    employee_id: int | None,
    lot_id: int,
    fields: dict,
) -> dict:
    lot = require_owned(ProductLot, lot_id, company_id, "Product lot", lock=True)

    if "lot_number" in fields:
        number = fields["lot_number"].strip() if isinstance(fields["lot_number"], str) else fields["lot_number"]
        if not number:
            raise ValidationError("LotNumber cannot be blank")
        clash = db.session.query(ProductLot.id).filter(
            ProductLot.company_id == company_id,
            ProductLot.product_id == lot.product_id,
            ProductLot.lot_number == str(number),
            ProductLot.id != lot.id,
        ).first()
        if clash:
            raise ValidationError(f"Lot {number} already exists for this product")
        lot.lot_number = str(number)
    if "expiration_date" in fields:
        lot.expiration_date = fields["expiration_date"]

    warehouse_id = fields.get("warehouse_id")
    if warehouse_id and fields.get("quantity") is not None:
        require_owned(Warehouse, warehouse_id, company_id, "Warehouse")
        _set_lot_quantity(lot, warehouse_id, fields["quantity"], employee_id)
    db.session.flush()

    if warehouse_id:
        return lot.to_dict(warehouse_id=warehouse_id, quantity=_lot_quantity(lot, warehouse_id))
    return lot.to_dict()
