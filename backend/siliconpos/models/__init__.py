from .auth import User, SessionToken
from .catalog import Product, Service
from .sales import Sale, SaleItem
from .inventory import InventoryMovement

__all__ = [
    'User', 'SessionToken',
    'Product', 'Service',
    'Sale', 'SaleItem',
    'InventoryMovement',
]
