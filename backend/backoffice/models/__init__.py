from .documents import Document
from .records import (
    InventoryItem,
    InventoryHistoryRecord,
    Purchase,
    PurchaseItem,
    Payment,
    Supplier,
)

__all__ = [
    'Document',
    'InventoryItem', 'InventoryHistoryRecord',
    'Purchase', 'PurchaseItem', 'Payment',
    'Supplier',
]
