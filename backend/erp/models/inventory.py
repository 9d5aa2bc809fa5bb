from __future__ import annotations

from ..extensions import db
from erp.time_utils import to_iso_date, to_utc_z, utcnow

# Quantities may be fractional (kg, m); stored exactly, exposed as float
QUANTITY = db.Numeric(18, 4, asdecimal=False)


class Product(db.Model):
    """
    Product master data, scoped to a company.

    uses_lots / uses_serials switch on lot and serial tracking; the lot and
    serial registries refuse products that do not have the flag set.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("company_id", "sku", name="uq_products_company_sku"),
        db.Index("ix_products_company_name", "company_id", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    sku = db.Column(db.String(64), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    barcode = db.Column(db.String(64), nullable=True)
    uses_lots = db.Column(db.Boolean, nullable=False, default=False)
    uses_serials = db.Column(db.Boolean, nullable=False, default=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku!r}>"


class ProductInventoryLevel(db.Model):
    """
    On-hand stock for one (product, warehouse, lot-or-null) key.

    The row is a materialized cache of InventoryTransaction: stock_quantity
    always equals the sum of quantity_change logged for the same key. It is
    created lazily by the first movement and never deleted. Negative stock
    is allowed.
    """
    __tablename__ = "product_inventory_levels"
    __table_args__ = (
        db.UniqueConstraint(
            "product_id", "warehouse_id", "product_lot_id",
            name="uq_inventory_levels_product_warehouse_lot",
        ),
        # NULLs never collide in the constraint above; the no-lot key needs its own
        db.Index(
            "uq_inventory_levels_product_warehouse_no_lot",
            "product_id", "warehouse_id",
            unique=True,
            postgresql_where=db.text("product_lot_id IS NULL"),
            sqlite_where=db.text("product_lot_id IS NULL"),
        ),
        db.Index("ix_inventory_levels_company_warehouse", "company_id", "warehouse_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    warehouse_id = db.Column(db.Integer, db.ForeignKey("warehouses.id"), nullable=False, index=True)
    product_lot_id = db.Column(db.Integer, db.ForeignKey("product_lots.id"), nullable=True)

    stock_quantity = db.Column(QUANTITY, nullable=False, default=0)
    reserved_quantity = db.Column(QUANTITY, nullable=False, default=0)
    min_stock_level = db.Column(QUANTITY, nullable=True)
    max_stock_level = db.Column(QUANTITY, nullable=True)
    last_updated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    product = db.relationship("Product", lazy="joined")
    warehouse = db.relationship("Warehouse", lazy="joined")
    lot = db.relationship("ProductLot", lazy="joined")

    @property
    def available_quantity(self) -> float:
        return (self.stock_quantity or 0) - (self.reserved_quantity or 0)

    def to_dict(self) -> dict:
        return {
            "ProductInventoryLevelID": self.id,
            "ProductID": self.product_id,
            "SKU": self.product.sku if self.product else None,
            "ProductName": self.product.name if self.product else None,
            "UsesLots": self.product.uses_lots if self.product else None,
            "UsesSerials": self.product.uses_serials if self.product else None,
            "WarehouseID": self.warehouse_id,
            "WarehouseName": self.warehouse.name if self.warehouse else None,
            "StockQuantity": self.stock_quantity,
            "ReservedQuantity": self.reserved_quantity,
            "AvailableQuantity": self.available_quantity,
            "MinStockLevel": self.min_stock_level,
            "MaxStockLevel": self.max_stock_level,
            "LastUpdatedAt": to_utc_z(self.last_updated_at),
            "ProductLotID": self.product_lot_id,
            "LotNumber": self.lot.lot_number if self.lot else None,
            "ExpirationDate": to_iso_date(self.lot.expiration_date) if self.lot else None,
        }


class InventoryTransaction(db.Model):
    """
    Append-only inventory audit log.

    One row per stock movement: signed quantity_change, a transaction_type
    (Sale, PurchaseReceived, CreditNote, DebitNote, ManualAdjustment,
    SaleShipment, SerialIntake) and the originating document. Rows are never
    updated or deleted.
    """
    __tablename__ = "inventory_transactions"
    __table_args__ = (
        db.Index("ix_inventory_tx_company_product_warehouse", "company_id", "product_id", "warehouse_id"),
        db.Index("ix_inventory_tx_reference", "reference_document_type", "reference_document_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    warehouse_id = db.Column(db.Integer, db.ForeignKey("warehouses.id"), nullable=False)
    product_lot_id = db.Column(db.Integer, db.ForeignKey("product_lots.id"), nullable=True)
    product_serial_id = db.Column(db.Integer, db.ForeignKey("product_serials.id"), nullable=True)

    transaction_type = db.Column(db.String(32), nullable=False)
    quantity_change = db.Column(QUANTITY, nullable=False)
    transaction_date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    reference_document_type = db.Column(db.String(32), nullable=True)
    reference_document_id = db.Column(db.Integer, nullable=True)
    notes = db.Column(db.String(255), nullable=True)
    employee_id = db.Column(db.Integer, db.ForeignKey("employees.id"), nullable=True)

    def to_dict(self) -> dict:
        return {
            "InventoryTransactionID": self.id,
            "CompanyID": self.company_id,
            "ProductID": self.product_id,
            "WarehouseID": self.warehouse_id,
            "ProductLotID": self.product_lot_id,
            "ProductSerialID": self.product_serial_id,
            "TransactionType": self.transaction_type,
            "QuantityChange": self.quantity_change,
            "TransactionDate": to_utc_z(self.transaction_date),
            "ReferenceDocumentType": self.reference_document_type,
            "ReferenceDocumentID": self.reference_document_id,
            "Notes": self.notes,
            "EmployeeID": self.employee_id,
        }


class ProductLot(db.Model):
    __tablename__ = "product_lots"
    __table_args__ = (
        db.UniqueConstraint("company_id", "product_id", "lot_number", name="uq_product_lots_company_product_lot"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    lot_number = db.Column(db.String(64), nullable=False)
    expiration_date = db.Column(db.Date, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self, *, warehouse_id=None, warehouse_name=None, quantity=None) -> dict:
        return {
            "ProductLotID": self.id,
            "ProductID": self.product_id,
            "LotNumber": self.lot_number,
            "ExpirationDate": to_iso_date(self.expiration_date),
            "CreatedAt": to_utc_z(self.created_at),
            "WarehouseID": warehouse_id,
            "WarehouseName": warehouse_name,
            "Quantity": quantity if quantity is not None else 0,
        }


class ProductLotInventory(db.Model):
    """Per-warehouse quantity of a lot, moved by the ledger alongside the level row."""
    __tablename__ = "product_lot_inventory"
    __table_args__ = (
        db.UniqueConstraint("product_lot_id", "warehouse_id", name="uq_product_lot_inventory_lot_warehouse"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    product_lot_id = db.Column(db.Integer, db.ForeignKey("product_lots.id"), nullable=False)
    warehouse_id = db.Column(db.Integer, db.ForeignKey("warehouses.id"), nullable=False)
    quantity = db.Column(QUANTITY, nullable=False, default=0)


class ProductSerial(db.Model):
    __tablename__ = "product_serials"
    __table_args__ = (
        db.UniqueConstraint("company_id", "product_id", "serial_number", name="uq_product_serials_company_product_serial"),
        db.Index("ix_product_serials_company_status", "company_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    warehouse_id = db.Column(db.Integer, db.ForeignKey("warehouses.id"), nullable=True)
    serial_number = db.Column(db.String(128), nullable=False)
    status = db.Column(db.String(32), nullable=False, default="InStock")  # InStock, Sold, Returned, Defective
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "ProductSerialID": self.id,
            "CompanyID": self.company_id,
            "ProductID": self.product_id,
            "WarehouseID": self.warehouse_id,
            "SerialNumber": self.serial_number,
            "Status": self.status,
            "CreatedAt": to_utc_z(self.created_at),
        }
