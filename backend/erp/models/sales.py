from __future__ import annotations

from ..extensions import db
from erp.time_utils import to_utc_z, utcnow
from .inventory import QUANTITY

MONEY = db.Numeric(18, 4, asdecimal=False)


class Sale(db.Model):
    """
    Header for every customer-facing document: sales (BOLETA, FACTURA, ...),
    quotations (COTIZACION), dispatch notes (GUIA_DESPACHO) and credit/debit
    notes, which point back at the sale they adjust via original_sale_id.

    Headers are inserted together with their items in one transaction and
    afterwards only change through follow-on operations (payments).
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.UniqueConstraint(
            "company_id", "document_type", "document_number",
            name="uq_sales_company_type_number",
        ),
        db.Index("ix_sales_company_date", "company_id", "sale_date"),
        db.Index("ix_sales_original_sale", "original_sale_id", "document_type"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=True)
    warehouse_id = db.Column(db.Integer, db.ForeignKey("warehouses.id"), nullable=True)
    original_sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=True)

    sale_date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    document_type = db.Column(db.String(32), nullable=False)
    document_number = db.Column(db.String(64), nullable=True)
    is_exenta = db.Column(db.Boolean, nullable=False, default=False)
    currency_id = db.Column(db.Integer, nullable=False, default=1)

    total_amount = db.Column(MONEY, nullable=False, default=0)
    discount_amount_total = db.Column(MONEY, nullable=False, default=0)
    subtotal = db.Column(MONEY, nullable=False, default=0)
    tax_amount_total = db.Column(MONEY, nullable=False, default=0)
    final_amount = db.Column(MONEY, nullable=False, default=0)
    amount_paid = db.Column(MONEY, nullable=False, default=0)
    payment_status = db.Column(db.String(16), nullable=False, default="Unpaid")  # Unpaid, PartiallyPaid, Paid
    status = db.Column(db.String(16), nullable=False, default="Completed")  # Completed, GuiaEmitida

    notes = db.Column(db.Text, nullable=True)
    shipping_address = db.Column(db.String(255), nullable=True)
    billing_address = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    items = db.relationship("SalesItem", backref="sale", lazy=True, order_by="SalesItem.id")
    payments = db.relationship("SalesPayment", backref="sale", lazy=True, order_by="SalesPayment.id")
    customer = db.relationship("Customer", lazy="joined")

    def totals(self) -> dict:
        return {
            "TotalAmount": self.total_amount,
            "DiscountAmountTotal": self.discount_amount_total,
            "SubTotal": self.subtotal,
            "TaxAmountTotal": self.tax_amount_total,
            "FinalAmount": self.final_amount,
        }

    def to_dict(self) -> dict:
        return {
            "SaleID": self.id,
            "CompanyID": self.company_id,
            "CustomerID": self.customer_id,
            "CustomerName": self.customer.name if self.customer else None,
            "EmployeeID": self.employee_id,
            "WarehouseID": self.warehouse_id,
            "OriginalSaleID": self.original_sale_id,
            "SaleDate": to_utc_z(self.sale_date),
            "DocumentType": self.document_type,
            "DocumentNumber": self.document_number,
            "IsExenta": self.is_exenta,
            "CurrencyID": self.currency_id,
            **self.totals(),
            "AmountPaid": self.amount_paid,
            "PaymentStatus": self.payment_status,
            "Status": self.status,
            "Notes": self.notes,
            "ShippingAddress": self.shipping_address,
            "BillingAddress": self.billing_address,
            "CreatedAt": to_utc_z(self.created_at),
        }


class SalesItem(db.Model):
    __tablename__ = "sales_items"
    __table_args__ = (
        db.Index("ix_sales_items_sale_product", "sale_id", "product_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    description = db.Column(db.String(255), nullable=True)

    quantity = db.Column(QUANTITY, nullable=False)
    unit_price = db.Column(MONEY, nullable=False, default=0)
    discount_percentage = db.Column(db.Numeric(7, 4, asdecimal=False), nullable=False, default=0)
    discount_amount_item = db.Column(MONEY, nullable=False, default=0)
    subtotal_item = db.Column(MONEY, nullable=False, default=0)
    tax_rate_percentage = db.Column(db.Numeric(7, 4, asdecimal=False), nullable=False, default=0)
    tax_amount_item = db.Column(MONEY, nullable=False, default=0)
    tax_rate_id = db.Column(db.Integer, nullable=True)
    line_total = db.Column(MONEY, nullable=False, default=0)
    is_line_exenta = db.Column(db.Boolean, nullable=False, default=False)

    product_lot_id = db.Column(db.Integer, db.ForeignKey("product_lots.id"), nullable=True)
    product_serial_id = db.Column(db.Integer, db.ForeignKey("product_serials.id"), nullable=True)

    product = db.relationship("Product", lazy="joined")

    def to_dict(self) -> dict:
        return {
            "SalesItemID": self.id,
            "SaleID": self.sale_id,
            "ProductID": self.product_id,
            "ProductName": self.product.name if self.product else None,
            "Description": self.description,
            "Quantity": self.quantity,
            "UnitPrice": self.unit_price,
            "DiscountPercentage": self.discount_percentage,
            "DiscountAmountItem": self.discount_amount_item,
            "SubTotalItem": self.subtotal_item,
            "TaxRatePercentage": self.tax_rate_percentage,
            "TaxAmountItem": self.tax_amount_item,
            "TaxRateID": self.tax_rate_id,
            "LineTotal": self.line_total,
            "IsLineExenta": self.is_line_exenta,
            "ProductLotID": self.product_lot_id,
            "ProductSerialID": self.product_serial_id,
        }


class SalesPayment(db.Model):
    __tablename__ = "sales_payments"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    payment_method_id = db.Column(db.Integer, nullable=True)
    amount = db.Column(MONEY, nullable=False)
    payment_date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    reference_number = db.Column(db.String(64), nullable=True)
    bank_transaction_id = db.Column(db.String(64), nullable=True)

    def to_dict(self) -> dict:
        return {
            "SalesPaymentID": self.id,
            "SaleID": self.sale_id,
            "PaymentMethodID": self.payment_method_id,
            "Amount": self.amount,
            "PaymentDate": to_utc_z(self.payment_date),
            "ReferenceNumber": self.reference_number,
            "BankTransactionID": self.bank_transaction_id,
        }
