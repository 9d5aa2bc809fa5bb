"""
Multi-Tenant Service: company scoping helpers.

SECURITY INVARIANTS:
1. Every authenticated request has g.company_id set
2. IDs from client input (warehouse, product, customer, ...) are resolved
   through require_owned() against that company before use
3. A row owned by another company is reported exactly like a missing row,
   so probing never reveals which ids exist

USAGE:
    from erp.services.tenant_service import require_owned

    warehouse = require_owned(Warehouse, warehouse_id, company_id, "Warehouse")
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import Warehouse
from ..validation import NotFoundError, ValidationError


def require_owned(model, record_id, company_id: int, label: str, *, lock: bool = False):
    """
    Load model(record_id) if and only if it belongs to company_id.

    Raises NotFoundError otherwise. A hit on another company's row is logged
    as a warning since it usually means a client bug or probing.
    """
    if record_id is None:
        raise ValidationError(f"{label}ID is required")
    query = db.session.query(model).filter(model.id == record_id)
    if lock:
        query = query.with_for_update()
    row = query.first()
    if row is None:
        raise NotFoundError(f"{label} not found")
    if row.company_id != company_id:
        current_app.logger.warning(
            "Cross-company access denied: %s id=%s owner=%s requested_by=%s",
            label, record_id, row.company_id, company_id,
        )
        raise NotFoundError(f"{label} not found")
    return row


def get_default_warehouse_id(company_id: int) -> int | None:
    """Active primary warehouse first, then the oldest active one."""
    row = (
        db.session.query(Warehouse.id)
        .filter(Warehouse.company_id == company_id, Warehouse.is_active.is_(True))
        .order_by(Warehouse.is_primary.desc(), Warehouse.id.asc())
        .first()
    )
    return row[0] if row else None


def resolve_warehouse_id(company_id: int, warehouse_id: int | None) -> int:
    if warehouse_id:
        return require_owned(Warehouse, warehouse_id, company_id, "Warehouse").id
    default_id = get_default_warehouse_id(company_id)
    if default_id is None:
        raise ValidationError(
            "WarehouseID is required and no default warehouse is configured for this company"
        )
    return default_id
