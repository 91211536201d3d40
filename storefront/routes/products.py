"""Product lookup for cart stock checks"""

from fastapi import APIRouter, Depends, HTTPException

from ..database.products import ProductDatabase, product_db
from ..models.cart import Product

router = APIRouter(prefix="/products", tags=["Products"])


def get_product_db() -> ProductDatabase:
    return product_db


@router.get("/{product_id}", response_model=Product)
async def get_product(
    product_id: str,
    products: ProductDatabase = Depends(get_product_db),
):
    """Get a product by ID, with its available quantity"""
    product = products.get_product(product_id)
    if not product:
        raise HTTPException(status_code=404, detail="Product not found")
    return product
