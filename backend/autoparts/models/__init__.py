from .auth import User, SessionToken
from .inventory import Category, Supplier, InventoryItem
from .customers import Customer
from .promotions import Discount
from .sales import PosSale
from .purchasing import PurchaseOrder, PurchaseOrderItem, PurchaseReceipt
from .settings import Setting
from .activity import ActivityLog
from .documents import DocumentSequence

__all__ = [
    'User', 'SessionToken',
    'Category', 'Supplier', 'InventoryItem',
    'Customer',
    'Discount',
    'PosSale',
    'PurchaseOrder', 'PurchaseOrderItem', 'PurchaseReceipt',
    'Setting',
    'ActivityLog',
    'DocumentSequence',
]
