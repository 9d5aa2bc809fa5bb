# Overview: Product serials; listing and bulk intake (one ledger movement per new serial).

from __future__ import annotations

from sqlalchemy import func

from ..extensions import db
from ..models import Product, ProductSerial, Warehouse
from ..validation import ValidationError
from . import inventory_service
from .tenant_service import require_owned

LIST_LIMIT = 500


def list_serials(*, company_id: int, product_id=None, status: str | None = None) -> list[ProductSerial]:
    query = db.session.query(ProductSerial).filter(ProductSerial.company_id == company_id)
    if product_id:
        query = query.filter(ProductSerial.product_id == product_id)
    if status:
        query = query.filter(ProductSerial.status == status)
    return query.order_by(ProductSerial.created_at.desc(), ProductSerial.id.desc()).limit(LIST_LIMIT).all()


def _normalize(serials) -> list[tuple[str, str]]:
    """Strings or {serial_number, status} objects; blanks dropped, case-insensitive dedupe."""
    seen = set()
    out = []
    for item in serials:
        if isinstance(item, str):
            number, status = item.strip(), "InStock"
        elif isinstance(item, dict):
            number = str(item.get("serial_number") or "").strip()
            status = item.get("status") or "InStock"
        else:
            continue
        if not number or number.lower() in seen:
            continue
        seen.add(number.lower())
        out.append((number, status))
    return out


def intake_serials(*, company_id: int, employee_id: int | None, product_id, warehouse_id, serials) -> dict:
    if not product_id or not warehouse_id:
        raise ValidationError("ProductID and WarehouseID are required.")
    if not isinstance(serials, list) or not serials:
        raise ValidationError("Serial list is required.")

    product = require_owned(Product, product_id, company_id, "Product")
    if not product.uses_serials:
        raise ValidationError("Product is not serial-tracked.")
    require_owned(Warehouse, warehouse_id, company_id, "Warehouse")

    payload = _normalize(serials)
    if not payload:
        raise ValidationError("No valid serials provided.")

    existing = {
        number.lower()
        for (number,) in db.session.query(ProductSerial.serial_number).filter(
            ProductSerial.company_id == company_id,
            ProductSerial.product_id == product.id,
            func.lower(ProductSerial.serial_number).in_([n.lower() for n, _ in payload]),
        )
    }

    created = []
    duplicates = []
    for number, status in payload:
        if number.lower() in existing:
            duplicates.append(number)
            continue
        serial = ProductSerial(
            company_id=company_id,
            product_id=product.id,
            warehouse_id=warehouse_id,
            serial_number=number,
            status=status,
        )
        db.session.add(serial)
        db.session.flush()
        inventory_service.apply_movement(
            company_id=company_id,
            product_id=product.id,
            warehouse_id=warehouse_id,
            lot_id=None,
            quantity_delta=1,
            transaction_type=inventory_service.TX_SERIAL_INTAKE,
            reference_document_type="ProductSerial",
            reference_document_id=serial.id,
            employee_id=employee_id,
            notes=f"Serial intake {number}",
            serial_id=serial.id,
        )
        created.append({"ProductSerialID": serial.id, "SerialNumber": number})

    return {"created": len(created), "duplicates": duplicates, "createdItems": created}
