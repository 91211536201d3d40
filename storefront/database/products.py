"""Catalog used for stock lookups"""

import logging
from decimal import Decimal
from typing import Optional

from ..models.cart import Product

logger = logging.getLogger(__name__)

PRODUCTS: dict[str, Product] = {
    "prod-001": Product(
        id="prod-001",
        name="Wireless Noise-Cancelling Headphones",
        price=Decimal("349.99"),
        available_quantity=50,
    ),
    "prod-002": Product(
        id="prod-002",
        name="Merino Wool Sweater",
        price=Decimal("89.00"),
        available_quantity=75,
    ),
    "prod-003": Product(
        id="prod-003",
        name="Cast Iron Skillet 12in",
        price=Decimal("45.50"),
        available_quantity=3,
    ),
    "prod-004": Product(
        id="prod-004",
        name="Trail Running Shoes",
        price=Decimal("130.00"),
        available_quantity=0,
    ),
    "prod-005": Product(
        id="prod-005",
        name="Atomic Habits (Hardcover)",
        price=Decimal("24.99"),
        available_quantity=200,
    ),
}


class ProductDatabase:
    """In-memory product catalog"""

    def __init__(self, products: Optional[dict[str, Product]] = None):
        self.products = dict(PRODUCTS if products is None else products)

    def get_product(self, product_id: str) -> Optional[Product]:
        """Get a product by ID"""
        return self.products.get(product_id)

    def update_stock(self, product_id: str, quantity_change: int) -> bool:
        """
        Update product stock.

        Args:
            product_id: Product to update
            quantity_change: Positive to add, negative to remove

        Returns:
            True if successful
        """
        product = self.products.get(product_id)
        if not product:
            return False

        new_quantity = product.available_quantity + quantity_change
        if new_quantity < 0:
            logger.warning(f"Stock for {product_id} would drop below zero, keeping {product.available_quantity}")
            return False

        self.products[product_id] = product.model_copy(update={"available_quantity": new_quantity})
        return True


# Singleton instance
product_db = ProductDatabase()
