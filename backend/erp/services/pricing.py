# Overview: Line and header totals shared by sales, notes and dispatch notes.

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Iterable

from ..validation import ValidationError

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def to_decimal(value) -> Decimal:
    if value is None or value == "":
        return ZERO
    if isinstance(value, Decimal):
        return value
    # str() keeps 0.1 as 0.1 instead of its binary float expansion
    try:
        number = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValidationError(f"Invalid numeric value: {value!r}")
    if not number.is_finite():
        raise ValidationError(f"Invalid numeric value: {value!r}")
    return number


@dataclass
class PricedLine:
    product_id: int
    quantity: Decimal
    unit_price: Decimal
    discount_percentage: Decimal
    discount_amount: Decimal
    subtotal: Decimal
    tax_rate_percentage: Decimal
    tax_amount: Decimal
    line_total: Decimal
    gross: Decimal
    is_line_exenta: bool = False
    description: str | None = None
    tax_rate_id: int | None = None
    product_lot_id: int | None = None
    product_serial_id: int | None = None

    def item_columns(self) -> dict:
        """Column values for a SalesItem row."""
        return {
            "product_id": self.product_id,
            "description": self.description,
            "quantity": float(self.quantity),
            "unit_price": float(self.unit_price),
            "discount_percentage": float(self.discount_percentage),
            "discount_amount_item": float(self.discount_amount),
            "subtotal_item": float(self.subtotal),
            "tax_rate_percentage": float(self.tax_rate_percentage),
            "tax_amount_item": float(self.tax_amount),
            "tax_rate_id": self.tax_rate_id,
            "line_total": float(self.line_total),
            "is_line_exenta": self.is_line_exenta,
            "product_lot_id": self.product_lot_id,
            "product_serial_id": self.product_serial_id,
        }


@dataclass
class DocumentTotals:
    lines: list[PricedLine] = field(default_factory=list)
    total_amount: Decimal = ZERO
    discount_amount_total: Decimal = ZERO
    subtotal: Decimal = ZERO
    tax_amount_total: Decimal = ZERO
    final_amount: Decimal = ZERO

    def header_columns(self) -> dict:
        return {
            "total_amount": float(self.total_amount),
            "discount_amount_total": float(self.discount_amount_total),
            "subtotal": float(self.subtotal),
            "tax_amount_total": float(self.tax_amount_total),
            "final_amount": float(self.final_amount),
        }


def price_line(item: dict, *, header_exempt: bool) -> PricedLine:
    """
    gross    = qty * unit_price
    discount = discount_amount_item if given, else gross * discount_percentage / 100
    subtotal = gross - discount
    tax      = subtotal * tax_rate_percentage / 100, or 0 if the line or header is exempt
    total    = subtotal + tax
    """
    quantity = to_decimal(item.get("quantity"))
    unit_price = to_decimal(item.get("unit_price"))
    discount_pct = to_decimal(item.get("discount_percentage"))
    tax_pct = to_decimal(item.get("tax_rate_percentage"))
    line_exempt = bool(item.get("is_line_exenta"))

    gross = quantity * unit_price
    if item.get("discount_amount_item") is not None:
        discount = to_decimal(item["discount_amount_item"])
    else:
        discount = gross * discount_pct / HUNDRED
    subtotal = gross - discount
    tax = ZERO if (header_exempt or line_exempt) else subtotal * tax_pct / HUNDRED

    return PricedLine(
        product_id=item.get("product_id"),
        quantity=quantity,
        unit_price=unit_price,
        discount_percentage=discount_pct,
        discount_amount=discount,
        subtotal=subtotal,
        tax_rate_percentage=tax_pct,
        tax_amount=tax,
        line_total=subtotal + tax,
        gross=gross,
        is_line_exenta=line_exempt,
        description=item.get("description"),
        tax_rate_id=item.get("tax_rate_id"),
        product_lot_id=item.get("product_lot_id"),
        product_serial_id=item.get("product_serial_id"),
    )


def price_lines(items: Iterable[dict], *, header_exempt: bool = False) -> DocumentTotals:
    totals = DocumentTotals()
    for item in items:
        line = price_line(item, header_exempt=header_exempt)
        totals.lines.append(line)
        totals.total_amount += line.gross
        totals.discount_amount_total += line.discount_amount
        totals.subtotal += line.subtotal
        totals.tax_amount_total += line.tax_amount
        totals.final_amount += line.line_total
    return totals


def payment_status(amount_paid, final_amount) -> str:
    paid = to_decimal(amount_paid)
    if paid <= 0:
        return "Unpaid"
    if paid >= to_decimal(final_amount):
        return "Paid"
    return "PartiallyPaid"
