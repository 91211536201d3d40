# API Routes

from .orders import router as orders_router
from .products import router as products_router
from .events import router as events_router

__all__ = ["orders_router", "products_router", "events_router"]
