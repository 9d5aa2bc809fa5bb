from __future__ import annotations

from ..extensions import db
from erp.time_utils import to_utc_z, utcnow
from .inventory import QUANTITY
from .sales import MONEY


class PurchaseOrder(db.Model):
    """
    Supplier order. status moves Draft -> Submitted -> PartiallyReceived ->
    Received as goods receipts are posted against its lines, or to Cancelled.
    """
    __tablename__ = "purchase_orders"
    __table_args__ = (
        db.UniqueConstraint("company_id", "purchase_order_number", name="uq_purchase_orders_company_number"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=False)
    purchase_order_number = db.Column(db.String(64), nullable=False)
    order_date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    expected_delivery_date = db.Column(db.DateTime(timezone=True), nullable=True)
    status = db.Column(db.String(24), nullable=False, default="Draft")
    total_amount = db.Column(MONEY, nullable=False, default=0)
    notes = db.Column(db.Text, nullable=True)
    shipping_address = db.Column(db.String(255), nullable=True)
    created_by_employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=True)

    items = db.relationship("PurchaseOrderItem", backref="purchase_order", lazy=True, order_by="PurchaseOrderItem.id")
    supplier = db.relationship("Supplier", lazy="joined")

    def to_dict(self) -> dict:
        return {
            "PurchaseOrderID": self.id,
            "CompanyID": self.company_id,
            "SupplierID": self.supplier_id,
            "SupplierName": self.supplier.name if self.supplier else None,
            "PurchaseOrderNumber": self.purchase_order_number,
            "OrderDate": to_utc_z(self.order_date),
            "ExpectedDeliveryDate": to_utc_z(self.expected_delivery_date),
            "Status": self.status,
            "TotalAmount": self.total_amount,
            "Notes": self.notes,
            "ShippingAddress": self.shipping_address,
            "CreatedByEmployeeID": self.created_by_employee_id,
        }


class PurchaseOrderItem(db.Model):
    __tablename__ = "purchase_order_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    purchase_order_id = db.Column(db.Integer, db.ForeignKey("purchase_orders.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    description = db.Column(db.String(255), nullable=True)
    quantity = db.Column(QUANTITY, nullable=False)
    unit_price = db.Column(MONEY, nullable=False, default=0)
    tax_amount = db.Column(MONEY, nullable=False, default=0)
    line_total = db.Column(MONEY, nullable=False, default=0)
    # the only mutable column on a line: bumped by goods receipts
    received_quantity = db.Column(QUANTITY, nullable=False, default=0)

    def to_dict(self) -> dict:
        return {
            "PurchaseOrderItemID": self.id,
            "PurchaseOrderID": self.purchase_order_id,
            "ProductID": self.product_id,
            "Description": self.description,
            "Quantity": self.quantity,
            "UnitPrice": self.unit_price,
            "TaxAmount": self.tax_amount,
            "LineTotal": self.line_total,
            "ReceivedQuantity": self.received_quantity,
        }


class GoodsReceipt(db.Model):
    """
    Stock arrival from a supplier, optionally against a purchase order or a
    direct purchase. receipt_number is unique per company.
    """
    __tablename__ = "goods_receipts"
    __table_args__ = (
        db.UniqueConstraint("company_id", "receipt_number", name="uq_goods_receipts_company_number"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    purchase_order_id = db.Column(db.Integer, db.ForeignKey("purchase_orders.id"), nullable=True, index=True)
    direct_purchase_id = db.Column(db.Integer, db.ForeignKey("direct_purchases.id"), nullable=True, index=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=False)
    warehouse_id = db.Column(db.Integer, db.ForeignKey("warehouses.id"), nullable=False)
    receipt_date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    receipt_number = db.Column(db.String(64), nullable=False)
    supplier_guia_despacho_number = db.Column(db.String(64), nullable=True)
    notes = db.Column(db.Text, nullable=True)
    received_by_employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=True)

    items = db.relationship("GoodsReceiptItem", backref="goods_receipt", lazy=True, order_by="GoodsReceiptItem.id")
    supplier = db.relationship("Supplier", lazy="joined")

    def to_dict(self) -> dict:
        return {
            "GoodsReceiptID": self.id,
            "CompanyID": self.company_id,
            "PurchaseOrderID": self.purchase_order_id,
            "DirectPurchaseID": self.direct_purchase_id,
            "SupplierID": self.supplier_id,
            "SupplierName": self.supplier.name if self.supplier else None,
            "WarehouseID": self.warehouse_id,
            "ReceiptDate": to_utc_z(self.receipt_date),
            "ReceiptNumber": self.receipt_number,
            "SupplierGuiaDespachoNumber": self.supplier_guia_despacho_number,
            "Notes": self.notes,
            "ReceivedByEmployeeID": self.received_by_employee_id,
        }


class GoodsReceiptItem(db.Model):
    __tablename__ = "goods_receipt_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    goods_receipt_id = db.Column(db.Integer, db.ForeignKey("goods_receipts.id"), nullable=False, index=True)
    purchase_order_item_id = db.Column(db.Integer, db.ForeignKey("purchase_order_items.id"), nullable=True)
    direct_purchase_item_id = db.Column(db.Integer, db.ForeignKey("direct_purchase_items.id"), nullable=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    quantity_received = db.Column(QUANTITY, nullable=False)
    unit_price = db.Column(MONEY, nullable=True)
    product_lot_id = db.Column(db.Integer, db.ForeignKey("product_lots.id"), nullable=True)
    product_serial_id = db.Column(db.Integer, db.ForeignKey("product_serials.id"), nullable=True)
    notes = db.Column(db.String(255), nullable=True)

    def to_dict(self) -> dict:
        return {
            "GoodsReceiptItemID": self.id,
            "GoodsReceiptID": self.goods_receipt_id,
            "PurchaseOrderItemID": self.purchase_order_item_id,
            "DirectPurchaseItemID": self.direct_purchase_item_id,
            "ProductID": self.product_id,
            "QuantityReceived": self.quantity_received,
            "UnitPrice": self.unit_price,
            "ProductLotID": self.product_lot_id,
            "ProductSerialID": self.product_serial_id,
            "Notes": self.notes,
        }


class DirectPurchase(db.Model):
    """
    Purchase recorded without a purchase order. Creating one commits to the
    purchase only; stock moves later through a goods receipt linked by
    direct_purchase_id. status: Pending, PartiallyReceived, Received, Cancelled.
    """
    __tablename__ = "direct_purchases"
    __table_args__ = (
        db.UniqueConstraint("company_id", "receipt_number", name="uq_direct_purchases_company_number"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=False)
    warehouse_id = db.Column(db.Integer, db.ForeignKey("warehouses.id"), nullable=True)
    purchase_date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    receipt_number = db.Column(db.String(64), nullable=False)
    total_amount = db.Column(MONEY, nullable=False, default=0)
    tax_amount = db.Column(MONEY, nullable=False, default=0)
    status = db.Column(db.String(24), nullable=False, default="Pending")
    notes = db.Column(db.Text, nullable=True)
    created_by_employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=True)

    items = db.relationship("DirectPurchaseItem", backref="direct_purchase", lazy=True, order_by="DirectPurchaseItem.id")
    supplier = db.relationship("Supplier", lazy="joined")

    def to_dict(self) -> dict:
        return {
            "DirectPurchaseID": self.id,
            "CompanyID": self.company_id,
            "SupplierID": self.supplier_id,
            "SupplierName": self.supplier.name if self.supplier else None,
            "WarehouseID": self.warehouse_id,
            "PurchaseDate": to_utc_z(self.purchase_date),
            "ReceiptNumber": self.receipt_number,
            "Status": self.status,
            "TotalAmount": self.total_amount,
            "TaxAmount": self.tax_amount,
            "Notes": self.notes,
            "CreatedByEmployeeID": self.created_by_employee_id,
        }


class DirectPurchaseItem(db.Model):
    __tablename__ = "direct_purchase_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    direct_purchase_id = db.Column(db.Integer, db.ForeignKey("direct_purchases.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    description = db.Column(db.String(255), nullable=True)
    quantity = db.Column(QUANTITY, nullable=False)
    unit_price = db.Column(MONEY, nullable=False, default=0)
    tax_amount = db.Column(MONEY, nullable=False, default=0)
    line_total = db.Column(MONEY, nullable=False, default=0)
    received_quantity = db.Column(QUANTITY, nullable=False, default=0)

    @property
    def outstanding_quantity(self) -> float:
        return max((self.quantity or 0) - (self.received_quantity or 0), 0)

    def to_dict(self) -> dict:
        return {
            "DirectPurchaseItemID": self.id,
            "DirectPurchaseID": self.direct_purchase_id,
            "ProductID": self.product_id,
            "Description": self.description,
            "Quantity": self.quantity,
            "UnitPrice": self.unit_price,
            "TaxAmount": self.tax_amount,
            "LineTotal": self.line_total,
            "ReceivedQuantity": self.received_quantity,
        }
