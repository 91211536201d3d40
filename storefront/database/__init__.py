# Database modules

from .products import product_db, ProductDatabase
from .orders import order_db, OrderDatabase, DuplicateOrderError
from .events import event_db, EventDatabase

__all__ = [
    "product_db",
    "ProductDatabase",
    "order_db",
    "OrderDatabase",
    "DuplicateOrderError",
    "event_db",
    "EventDatabase",
]
