from __future__ import annotations
import math
from datetime import date, datetime
from erp.time_utils import parse_iso_date, parse_iso_datetime

from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import Boolean, Date, DateTime, Integer, Numeric, String, Text
from sqlalchemy.orm import DeclarativeMeta


class DomainError(ValueError):
    """Base for errors that are reported to the caller instead of logged as failures."""

    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        body = {"error": self.message}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(DomainError):
    """400-level input problem or business rule violation (e.g. over-returning stock)."""


class NotFoundError(DomainError):
    """404: the referenced record does not exist for this company."""

    status_code = 404


class ConflictError(DomainError):
    """409-level uniqueness conflict (e.g., duplicate receipt number)."""

    status_code = 409


class ConfigurationError(DomainError):
    """Missing company configuration, e.g. no active document sequence for a type."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    - ignored_fields: accepted from clients but dropped (reserved for later use)
    """
    writable_fields: set[str]
    required_on_create: set[str] = field(default_factory=set)
    ignored_fields: set[str] = field(default_factory=set)


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def coerce_number(key: str, value: Any) -> float:
    if isinstance(value, bool):
        raise ValidationError(f"{key} must be a number")
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            raise ValidationError(f"{key} must be a number")
    else:
        raise ValidationError(f"{key} must be a number")
    # NaN and Infinity parse as floats but break every comparison downstream
    if not math.isfinite(number):
        raise ValidationError(f"{key} must be a number")
    return number


def coerce_integer(key: str, value: Any) -> int:
    """Strict integer: rejects booleans, fractions and scientific notation."""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{key} must be an integer")
        if 'e' in stripped.lower() or '.' in stripped:
            raise ValidationError(f"{key} must be a plain integer")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{key} must be an integer")
    if isinstance(value, float) and value.is_integer():
        return int(value)
    raise ValidationError(f"{key} must be an integer")


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        return coerce_integer(col.key, value)

    # Quantities and money
    if isinstance(coltype, Numeric):
        return coerce_number(col.key, value)

    # Booleans (the client sends 0/1 as often as true/false)
    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        if isinstance(value, (int, float)):
            return bool(value)
        if isinstance(value, str):
            return value.strip().lower() in ("1", "true", "yes", "on")
        raise ValidationError(f"{col.key} must be a boolean")

    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            if dt is None:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            return dt
        raise ValidationError(f"{col.key} must be a datetime")

    if isinstance(coltype, Date):
        if isinstance(value, (date, str)):
            try:
                return parse_iso_date(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be an ISO-8601 date")
        raise ValidationError(f"{col.key} must be a date")

    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes a canonical (snake_case) payload against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if not partial:
        missing = sorted(
            f for f in policy.required_on_create
            if payload.get(f) is None or (isinstance(payload.get(f), str) and not payload[f].strip())
        )
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    for k in payload.keys():
        if k in policy.ignored_fields:
            continue
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        if k in policy.ignored_fields:
            continue
        col = cols[k]

        if raw is None or (raw == "" and not isinstance(col.type, (String, Text))):
            if col.nullable:
                patch[k] = None
            elif col.default is None:
                raise ValidationError(f"{k} cannot be null")
            # non-nullable with a default: leave it to the column default
            continue

        val = _coerce_value(col, raw)

        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def require_items(items: Any, message: str) -> list[dict]:
    if not isinstance(items, list) or not items:
        raise ValidationError(message)
    for item in items:
        if not isinstance(item, dict):
            raise ValidationError("Each item must be an object")
    return items


def enforce_rules_sale_line(line: dict) -> None:
    if not line.get("product_id"):
        raise ValidationError("Each item must include ProductID")
    if line.get("quantity") is None or line["quantity"] <= 0:
        raise ValidationError(f"Quantity must be > 0 for ProductID {line['product_id']}")
    if (line.get("unit_price") or 0) < 0:
        raise ValidationError(f"UnitPrice must be >= 0 for ProductID {line['product_id']}")
    for key in ("discount_percentage", "tax_rate_percentage"):
        pct = line.get(key)
        if pct is not None and not 0 <= pct <= 100:
            raise ValidationError(f"{key} must be between 0 and 100")


def enforce_rules_debit_line(line: dict) -> None:
    # Debit notes are extra charges: price is mandatory, zero allowed
    if not line.get("product_id") or line.get("quantity") is None or line.get("unit_price") is None:
        raise ValidationError("Each item must include ProductID, Quantity and UnitPrice.")
    if line["quantity"] <= 0 or line["unit_price"] < 0:
        raise ValidationError(f"Invalid Quantity/UnitPrice for ProductID {line['product_id']}.")


def enforce_rules_receipt_line(line: dict) -> None:
    if not line.get("product_id") or (line.get("quantity_received") or 0) <= 0:
        raise ValidationError("Each item must have ProductID and positive QuantityReceived")


def enforce_rules_purchase_line(line: dict) -> None:
    if not line.get("product_id") or (line.get("quantity") or 0) <= 0:
        raise ValidationError("Each item must have ProductID and positive Quantity")
    if (line.get("unit_price") or 0) < 0 or (line.get("tax_amount") or 0) < 0:
        raise ValidationError(f"UnitPrice and TaxAmount must be >= 0 for ProductID {line['product_id']}")


LINE_NUMBER_FIELDS = (
    "quantity",
    "quantity_received",
    "unit_price",
    "discount_percentage",
    "discount_amount_item",
    "tax_rate_percentage",
    "tax_amount",
)


def coerce_line_numbers(line: dict) -> dict:
    """Numeric line fields may arrive as strings; blank means absent."""
    for key in LINE_NUMBER_FIELDS:
        if key not in line:
            continue
        value = line[key]
        if value is None or (isinstance(value, str) and not value.strip()):
            line[key] = None
        else:
            line[key] = coerce_number(key, value)
    return line


# Foreign keys accepted in request bodies; all are integer primary keys.
IDENTIFIER_FIELDS = frozenset({
    "company_id",
    "currency_id",
    "customer_id",
    "direct_purchase_item_id",
    "document_sequence_id",
    "employee_id",
    "original_sale_id",
    "payment_method_id",
    "product_id",
    "product_lot_id",
    "product_serial_id",
    "purchase_order_id",
    "purchase_order_item_id",
    "sale_id",
    "supplier_id",
    "tax_rate_id",
    "warehouse_id",
})


def coerce_identifier(key: str, value: Any) -> int | None:
    """ID fields may arrive as "7"; blank means absent."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return coerce_integer(key, value)
