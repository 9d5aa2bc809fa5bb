"""Initial ERP schema: tenancy, documents, inventory ledger, sales and purchasing

Revision ID: 20261018_initial_schema
Revises:
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261018_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


QTY = sa.Numeric(18, 4)
MONEY = sa.Numeric(18, 4)
PCT = sa.Numeric(7, 4)


def _id():
    return sa.Column("id", sa.Integer(), nullable=False)


def _company():
    return sa.Column("company_id", sa.Integer(), sa.ForeignKey("companies.id"), nullable=False)


def upgrade():
    op.create_table(
        "companies",
        _id(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("tax_id", sa.String(32), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("(CURRENT_TIMESTAMP)")),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tax_id"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_companies_is_active", "companies", ["is_active"])

    op.create_table(
        "employees",
        _id(),
        _company(),
        sa.Column("first_name", sa.String(120), nullable=False),
        sa.Column("last_name", sa.String(120), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("role", sa.String(64), nullable=False, server_default="Cashier"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("company_id", "email", name="uq_employees_company_email"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_employees_company_id", "employees", ["company_id"])

    op.create_table(
        "warehouses",
        _id(),
        _company(),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("is_primary", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("company_id", "name", name="uq_warehouses_company_name"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_warehouses_company_id", "warehouses", ["company_id"])
    op.create_index("ix_warehouses_company_active", "warehouses", ["company_id", "is_active"])

    for table in ("customers", "suppliers"):
        op.create_table(
            table,
            _id(),
            _company(),
            sa.Column("name", sa.String(255), nullable=False),
            sa.Column("tax_id", sa.String(32), nullable=True),
            sa.PrimaryKeyConstraint("id"),
            sqlite_autoincrement=True,
        )
        op.create_index(f"ix_{table}_company_id", table, ["company_id"])

    op.create_table(
        "session_tokens",
        _id(),
        sa.Column("employee_id", sa.Integer(), sa.ForeignKey("employees.id"), nullable=False),
        _company(),
        sa.Column("role", sa.String(64), nullable=False),
        sa.Column("token_hash", sa.String(64), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("(CURRENT_TIMESTAMP)")),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_revoked", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_session_tokens_token_hash", "session_tokens", ["token_hash"], unique=True)
    op.create_index("ix_session_tokens_company_id", "session_tokens", ["company_id"])
    op.create_index("ix_session_tokens_expires_at", "session_tokens", ["expires_at"])
    op.create_index("ix_session_tokens_employee_active", "session_tokens", ["employee_id", "is_revoked"])

    op.create_table(
        "document_sequences",
        _id(),
        _company(),
        sa.Column("document_type", sa.String(32), nullable=False),
        sa.Column("prefix", sa.String(20), nullable=True),
        sa.Column("next_number", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("suffix", sa.String(20), nullable=True),
        sa.Column("format_string", sa.String(64), nullable=True),
        sa.Column("is_electronic", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("range_start", sa.Integer(), nullable=True),
        sa.Column("range_end", sa.Integer(), nullable=True),
        sa.Column("last_used_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "company_id", "document_type", "is_electronic",
            name="uq_document_sequences_company_type_electronic",
        ),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_document_sequences_company_id", "document_sequences", ["company_id"])

    op.create_table(
        "products",
        _id(),
        _company(),
        sa.Column("sku", sa.String(64), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("barcode", sa.String(64), nullable=True),
        sa.Column("uses_lots", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("uses_serials", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("company_id", "sku", name="uq_products_company_sku"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_products_company_id", "products", ["company_id"])
    op.create_index("ix_products_company_name", "products", ["company_id", "name"])

    op.create_table(
        "product_lots",
        _id(),
        _company(),
        sa.Column("product_id", sa.Integer(), sa.ForeignKey("products.id"), nullable=False),
        sa.Column("lot_number", sa.String(64), nullable=False),
        sa.Column("expiration_date", sa.Date(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("(CURRENT_TIMESTAMP)")),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("company_id", "product_id", "lot_number", name="uq_product_lots_company_product_lot"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_product_lots_company_id", "product_lots", ["company_id"])
    op.create_index("ix_product_lots_product_id", "product_lots", ["product_id"])

    op.create_table(
        "product_lot_inventory",
        _id(),
        _company(),
        sa.Column("product_lot_id", sa.Integer(), sa.ForeignKey("product_lots.id"), nullable=False),
        sa.Column("warehouse_id", sa.Integer(), sa.ForeignKey("warehouses.id"), nullable=False),
        sa.Column("quantity", QTY, nullable=False, server_default=sa.text("0")),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("product_lot_id", "warehouse_id", name="uq_product_lot_inventory_lot_warehouse"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_product_lot_inventory_company_id", "product_lot_inventory", ["company_id"])

    op.create_table(
        "product_serials",
        _id(),
        _company(),
        sa.Column("product_id", sa.Integer(), sa.ForeignKey("products.id"), nullable=False),
        sa.Column("warehouse_id", sa.Integer(), sa.ForeignKey("warehouses.id"), nullable=True),
        sa.Column("serial_number", sa.String(128), nullable=False),
        sa.Column("status", sa.String(32), nullable=False, server_default="InStock"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("(CURRENT_TIMESTAMP)")),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "company_id", "product_id", "serial_number",
            name="uq_product_serials_company_product_serial",
        ),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_product_serials_company_id", "product_serials", ["company_id"])
    op.create_index("ix_product_serials_product_id", "product_serials", ["product_id"])
    op.create_index("ix_product_serials_company_status", "product_serials", ["company_id", "status"])

    op.create_table(
        "product_inventory_levels",
        _id(),
        _company(),
        sa.Column("product_id", sa.Integer(), sa.ForeignKey("products.id"), nullable=False),
        sa.Column("warehouse_id", sa.Integer(), sa.ForeignKey("warehouses.id"), nullable=False),
        sa.Column("product_lot_id", sa.Integer(), sa.ForeignKey("product_lots.id"), nullable=True),
        sa.Column("stock_quantity", QTY, nullable=False, server_default=sa.text("0")),
        sa.Column("reserved_quantity", QTY, nullable=False, server_default=sa.text("0")),
        sa.Column("min_stock_level", QTY, nullable=True),
        sa.Column("max_stock_level", QTY, nullable=True),
        sa.Column("last_updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("(CURRENT_TIMESTAMP)")),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "product_id", "warehouse_id", "product_lot_id",
            name="uq_inventory_levels_product_warehouse_lot",
        ),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_product_inventory_levels_company_id", "product_inventory_levels", ["company_id"])
    op.create_index("ix_product_inventory_levels_product_id", "product_inventory_levels", ["product_id"])
    op.create_index("ix_product_inventory_levels_warehouse_id", "product_inventory_levels", ["warehouse_id"])
    op.create_index("ix_inventory_levels_company_warehouse", "product_inventory_levels", ["company_id", "warehouse_id"])
    op.create_index(
        "uq_inventory_levels_product_warehouse_no_lot",
        "product_inventory_levels",
        ["product_id", "warehouse_id"],
        unique=True,
        postgresql_where=sa.text("product_lot_id IS NULL"),
        sqlite_where=sa.text("product_lot_id IS NULL"),
    )

    op.create_table(
        "inventory_transactions",
        _id(),
        _company(),
        sa.Column("product_id", sa.Integer(), sa.ForeignKey("products.id"), nullable=False),
        sa.Column("warehouse_id", sa.Integer(), sa.ForeignKey("warehouses.id"), nullable=False),
        sa.Column("product_lot_id", sa.Integer(), sa.ForeignKey("product_lots.id"), nullable=True),
        sa.Column("product_serial_id", sa.Integer(), sa.ForeignKey("product_serials.id"), nullable=True),
        sa.Column("transaction_type", sa.String(32), nullable=False),
        sa.Column("quantity_change", QTY, nullable=False),
        sa.Column("transaction_date", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("(CURRENT_TIMESTAMP)")),
        sa.Column("reference_document_type", sa.String(32), nullable=True),
        sa.Column("reference_document_id", sa.Integer(), nullable=True),
        sa.Column("notes", sa.String(255), nullable=True),
        sa.Column("employee_id", sa.Integer(), sa.ForeignKey("employees.id"), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_inventory_transactions_company_id", "inventory_transactions", ["company_id"])
    op.create_index(
        "ix_inventory_tx_company_product_warehouse", "inventory_transactions",
        ["company_id", "product_id", "warehouse_id"],
    )
    op.create_index(
        "ix_inventory_tx_reference", "inventory_transactions",
        ["reference_document_type", "reference_document_id"],
    )

    op.create_table(
        "sales",
        _id(),
        _company(),
        sa.Column("customer_id", sa.Integer(), sa.ForeignKey("customers.id"), nullable=False),
        sa.Column("employee_id", sa.Integer(), sa.ForeignKey("employees.id"), nullable=True),
        sa.Column("warehouse_id", sa.Integer(), sa.ForeignKey("warehouses.id"), nullable=True),
        sa.Column("original_sale_id", sa.Integer(), sa.ForeignKey("sales.id"), nullable=True),
        sa.Column("sale_date", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("(CURRENT_TIMESTAMP)")),
        sa.Column("document_type", sa.String(32), nullable=False),
        sa.Column("document_number", sa.String(64), nullable=True),
        sa.Column("is_exenta", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("currency_id", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("total_amount", MONEY, nullable=False, server_default=sa.text("0")),
        sa.Column("discount_amount_total", MONEY, nullable=False, server_default=sa.text("0")),
        sa.Column("subtotal", MONEY, nullable=False, server_default=sa.text("0")),
        sa.Column("tax_amount_total", MONEY, nullable=False, server_default=sa.text("0")),
        sa.Column("final_amount", MONEY, nullable=False, server_default=sa.text("0")),
        sa.Column("amount_paid", MONEY, nullable=False, server_default=sa.text("0")),
        sa.Column("payment_status", sa.String(16), nullable=False, server_default="Unpaid"),
        sa.Column("status", sa.String(16), nullable=False, server_default="Completed"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("shipping_address", sa.String(255), nullable=True),
        sa.Column("billing_address", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("(CURRENT_TIMESTAMP)")),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "company_id", "document_type", "document_number",
            name="uq_sales_company_type_number",
        ),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_sales_company_id", "sales", ["company_id"])
    op.create_index("ix_sales_company_date", "sales", ["company_id", "sale_date"])
    op.create_index("ix_sales_original_sale", "sales", ["original_sale_id", "document_type"])

    op.create_table(
        "sales_items",
        _id(),
        sa.Column("sale_id", sa.Integer(), sa.ForeignKey("sales.id"), nullable=False),
        sa.Column("product_id", sa.Integer(), sa.ForeignKey("products.id"), nullable=False),
        sa.Column("description", sa.String(255), nullable=True),
        sa.Column("quantity", QTY, nullable=False),
        sa.Column("unit_price", MONEY, nullable=False, server_default=sa.text("0")),
        sa.Column("discount_percentage", PCT, nullable=False, server_default=sa.text("0")),
        sa.Column("discount_amount_item", MONEY, nullable=False, server_default=sa.text("0")),
        sa.Column("subtotal_item", MONEY, nullable=False, server_default=sa.text("0")),
        sa.Column("tax_rate_percentage", PCT, nullable=False, server_default=sa.text("0")),
        sa.Column("tax_amount_item", MONEY, nullable=False, server_default=sa.text("0")),
        sa.Column("tax_rate_id", sa.Integer(), nullable=True),
        sa.Column("line_total", MONEY, nullable=False, server_default=sa.text("0")),
        sa.Column("is_line_exenta", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("product_lot_id", sa.Integer(), sa.ForeignKey("product_lots.id"), nullable=True),
        sa.Column("product_serial_id", sa.Integer(), sa.ForeignKey("product_serials.id"), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_sales_items_sale_id", "sales_items", ["sale_id"])
    op.create_index("ix_sales_items_sale_product", "sales_items", ["sale_id", "product_id"])

    op.create_table(
        "sales_payments",
        _id(),
        sa.Column("sale_id", sa.Integer(), sa.ForeignKey("sales.id"), nullable=False),
        sa.Column("payment_method_id", sa.Integer(), nullable=True),
        sa.Column("amount", MONEY, nullable=False),
        sa.Column("payment_date", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("(CURRENT_TIMESTAMP)")),
        sa.Column("reference_number", sa.String(64), nullable=True),
        sa.Column("bank_transaction_id", sa.String(64), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_sales_payments_sale_id", "sales_payments", ["sale_id"])

    op.create_table(
        "purchase_orders",
        _id(),
        _company(),
        sa.Column("supplier_id", sa.Integer(), sa.ForeignKey("suppliers.id"), nullable=False),
        sa.Column("purchase_order_number", sa.String(64), nullable=False),
        sa.Column("order_date", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("(CURRENT_TIMESTAMP)")),
        sa.Column("expected_delivery_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", sa.String(24), nullable=False, server_default="Draft"),
        sa.Column("total_amount", MONEY, nullable=False, server_default=sa.text("0")),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("shipping_address", sa.String(255), nullable=True),
        sa.Column("created_by_employee_id", sa.Integer(), sa.ForeignKey("employees.id"), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("company_id", "purchase_order_number", name="uq_purchase_orders_company_number"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_purchase_orders_company_id", "purchase_orders", ["company_id"])

    op.create_table(
        "purchase_order_items",
        _id(),
        sa.Column("purchase_order_id", sa.Integer(), sa.ForeignKey("purchase_orders.id"), nullable=False),
        sa.Column("product_id", sa.Integer(), sa.ForeignKey("products.id"), nullable=False),
        sa.Column("description", sa.String(255), nullable=True),
        sa.Column("quantity", QTY, nullable=False),
        sa.Column("unit_price", MONEY, nullable=False, server_default=sa.text("0")),
        sa.Column("tax_amount", MONEY, nullable=False, server_default=sa.text("0")),
        sa.Column("line_total", MONEY, nullable=False, server_default=sa.text("0")),
        sa.Column("received_quantity", QTY, nullable=False, server_default=sa.text("0")),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_purchase_order_items_purchase_order_id", "purchase_order_items", ["purchase_order_id"])

    op.create_table(
        "direct_purchases",
        _id(),
        _company(),
        sa.Column("supplier_id", sa.Integer(), sa.ForeignKey("suppliers.id"), nullable=False),
        sa.Column("warehouse_id", sa.Integer(), sa.ForeignKey("warehouses.id"), nullable=True),
        sa.Column("purchase_date", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("(CURRENT_TIMESTAMP)")),
        sa.Column("receipt_number", sa.String(64), nullable=False),
        sa.Column("total_amount", MONEY, nullable=False, server_default=sa.text("0")),
        sa.Column("tax_amount", MONEY, nullable=False, server_default=sa.text("0")),
        sa.Column("status", sa.String(24), nullable=False, server_default="Pending"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_by_employee_id", sa.Integer(), sa.ForeignKey("employees.id"), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("company_id", "receipt_number", name="uq_direct_purchases_company_number"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_direct_purchases_company_id", "direct_purchases", ["company_id"])

    op.create_table(
        "direct_purchase_items",
        _id(),
        sa.Column("direct_purchase_id", sa.Integer(), sa.ForeignKey("direct_purchases.id"), nullable=False),
        sa.Column("product_id", sa.Integer(), sa.ForeignKey("products.id"), nullable=False),
        sa.Column("description", sa.String(255), nullable=True),
        sa.Column("quantity", QTY, nullable=False),
        sa.Column("unit_price", MONEY, nullable=False, server_default=sa.text("0")),
        sa.Column("tax_amount", MONEY, nullable=False, server_default=sa.text("0")),
        sa.Column("line_total", MONEY, nullable=False, server_default=sa.text("0")),
        sa.Column("received_quantity", QTY, nullable=False, server_default=sa.text("0")),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_direct_purchase_items_direct_purchase_id", "direct_purchase_items", ["direct_purchase_id"])

    op.create_table(
        "goods_receipts",
        _id(),
        _company(),
        sa.Column("purchase_order_id", sa.Integer(), sa.ForeignKey("purchase_orders.id"), nullable=True),
        sa.Column("direct_purchase_id", sa.Integer(), sa.ForeignKey("direct_purchases.id"), nullable=True),
        sa.Column("supplier_id", sa.Integer(), sa.ForeignKey("suppliers.id"), nullable=False),
        sa.Column("warehouse_id", sa.Integer(), sa.ForeignKey("warehouses.id"), nullable=False),
        sa.Column("receipt_date", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("(CURRENT_TIMESTAMP)")),
        sa.Column("receipt_number", sa.String(64), nullable=False),
        sa.Column("supplier_guia_despacho_number", sa.String(64), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("received_by_employee_id", sa.Integer(), sa.ForeignKey("employees.id"), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("company_id", "receipt_number", name="uq_goods_receipts_company_number"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_goods_receipts_company_id", "goods_receipts", ["company_id"])
    op.create_index("ix_goods_receipts_purchase_order_id", "goods_receipts", ["purchase_order_id"])
    op.create_index("ix_goods_receipts_direct_purchase_id", "goods_receipts", ["direct_purchase_id"])

    op.create_table(
        "goods_receipt_items",
        _id(),
        sa.Column("goods_receipt_id", sa.Integer(), sa.ForeignKey("goods_receipts.id"), nullable=False),
        sa.Column("purchase_order_item_id", sa.Integer(), sa.ForeignKey("purchase_order_items.id"), nullable=True),
        sa.Column("direct_purchase_item_id", sa.Integer(), sa.ForeignKey("direct_purchase_items.id"), nullable=True),
        sa.Column("product_id", sa.Integer(), sa.ForeignKey("products.id"), nullable=False),
        sa.Column("quantity_received", QTY, nullable=False),
        sa.Column("unit_price", MONEY, nullable=True),
        sa.Column("product_lot_id", sa.Integer(), sa.ForeignKey("product_lots.id"), nullable=True),
        sa.Column("product_serial_id", sa.Integer(), sa.ForeignKey("product_serials.id"), nullable=True),
        sa.Column("notes", sa.String(255), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_goods_receipt_items_goods_receipt_id", "goods_receipt_items", ["goods_receipt_id"])


def downgrade():
    for table in (
        "goods_receipt_items",
        "goods_receipts",
        "direct_purchase_items",
        "direct_purchases",
        "purchase_order_items",
        "purchase_orders",
        "sales_payments",
        "sales_items",
        "sales",
        "inventory_transactions",
        "product_inventory_levels",
        "product_serials",
        "product_lot_inventory",
        "product_lots",
        "products",
        "document_sequences",
        "session_tokens",
        "suppliers",
        "customers",
        "warehouses",
        "employees",
        "companies",
    ):
        op.drop_table(table)
