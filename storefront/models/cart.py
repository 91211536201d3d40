"""Cart models for the checkout client"""

from decimal import Decimal

from pydantic import ConfigDict, Field

from .base import CamelModel


class Product(CamelModel):
    """Catalog entry as seen by the cart"""
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    price: Decimal = Field(ge=0)
    available_quantity: int = Field(ge=0, default=0)


class CartLineItem(CamelModel):
    """One product entry in the cart"""
    model_config = ConfigDict(frozen=True)

    product_id: str
    name: str
    price: Decimal = Field(ge=0)
    quantity: int = Field(ge=1, default=1)
    available_quantity: int = Field(ge=0, default=0)
    max_quantity_error: bool = False

    @property
    def exceeds_stock(self) -> bool:
        return self.quantity > self.available_quantity

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity


class CartState(CamelModel):
    """Shopping cart state. Replaced as a whole on every mutation."""
    model_config = ConfigDict(frozen=True)

    items: tuple[CartLineItem, ...] = ()

    @property
    def has_errors(self) -> bool:
        """True iff any item's quantity exceeds its available quantity"""
        return any(item.exceeds_stock for item in self.items)

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)

    def find(self, product_id: str):
        return next(
            (item for item in self.items if item.product_id == product_id),
            None,
        )
