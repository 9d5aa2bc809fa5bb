from .tenancy import Company, Employee, Warehouse, Customer, Supplier
from .auth import SessionToken
from .documents import DocumentSequence
from .inventory import (
    Product, ProductInventoryLevel, InventoryTransaction,
    ProductLot, ProductLotInventory, ProductSerial,
)
from .sales import Sale, SalesItem, SalesPayment
from .purchasing import (
    PurchaseOrder, PurchaseOrderItem, GoodsReceipt, GoodsReceiptItem,
    DirectPurchase, DirectPurchaseItem,
)

__all__ = [
    'Company', 'Employee', 'Warehouse', 'Customer', 'Supplier',
    'SessionToken', 'DocumentSequence',
    'Product', 'ProductInventoryLevel', 'InventoryTransaction',
    'ProductLot', 'ProductLotInventory', 'ProductSerial',
    'Sale', 'SalesItem', 'SalesPayment',
    'PurchaseOrder', 'PurchaseOrderItem', 'GoodsReceipt', 'GoodsReceiptItem',
    'DirectPurchase', 'DirectPurchaseItem',
]
