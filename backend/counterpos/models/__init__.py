from .inventory import Product, InventoryAdjustment
from .orders import Order, OrderLine, OrderSequence
from .kiosk import KioskSession, KioskCartLine
from .reporting import DailyAggregate

__all__ = [
    'Product', 'InventoryAdjustment',
    'Order', 'OrderLine', 'OrderSequence',
    'KioskSession', 'KioskCartLine',
    'DailyAggregate',
]
