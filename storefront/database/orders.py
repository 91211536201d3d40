"""Order storage for the storefront backend"""

import math
import uuid
from datetime import datetime
from typing import Optional

from ..models.checkout import Order, OrderRequest, PaymentMethod


class DuplicateOrderError(Exception):
    """An order already exists for the provider reference"""

    def __init__(self, order: Order):
        super().__init__(f"Order {order.order_id} already exists for {order.provider_reference}")
        self.order = order


class OrderDatabase:
    """In-memory order storage, unique by provider reference"""

    def __init__(self):
        self.orders: dict[str, Order] = {}
        self._by_reference: dict[str, str] = {}

    def find_by_reference(self, provider_reference: str) -> Optional[Order]:
        """Get the order paid by a PayPal order or payment intent"""
        order_id = self._by_reference.get(provider_reference)
        return self.orders.get(order_id) if order_id else None

    def create_order(
        self,
        request: OrderRequest,
        payment_method: PaymentMethod,
        provider_reference: str,
    ) -> Order:
        """
        Create an order from a checkout request.

        Raises:
            DuplicateOrderError: the payment already produced an order
        """
        existing = self.find_by_reference(provider_reference)
        if existing:
            raise DuplicateOrderError(existing)

        order = Order(
            order_id=f"ORD-{uuid.uuid4().hex[:8].upper()}",
            user_id=request.user_id,
            shipping_data=request.shipping_data,
            payment_method=payment_method,
            items=[item.model_copy() for item in request.cart_items],
            total_amount=request.total_amount,
            payment_details=dict(request.payment_details),
            provider_reference=provider_reference,
            created_at=datetime.utcnow(),
        )

        self.orders[order.order_id] = order
        self._by_reference[provider_reference] = order.order_id
        return order

    def get_order(self, order_id: str) -> Optional[Order]:
        """Get an order by ID"""
        return self.orders.get(order_id)

    def list_user_orders(
        self,
        user_id: str,
        page: int = 1,
        limit: int = 10,
    ) -> tuple[list[Order], int, int]:
        """
        Orders of a user, newest first.

        Returns:
            Tuple of (page of orders, total count, page count)
        """
        orders = [o for o in self.orders.values() if o.user_id == user_id]
        orders.sort(key=lambda o: o.created_at, reverse=True)
        total = len(orders)
        pages = math.ceil(total / limit) if total else 0
        start = (page - 1) * limit
        return orders[start : start + limit], total, pages


# Singleton instance
order_db = OrderDatabase()
