"""
Storefront Orders Backend

Order persistence and payment capture for the storefront checkout.
Talks to PayPal (Orders v2) and Stripe (payment intents).
"""

import os
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv

# Load environment variables before settings are read
load_dotenv(os.path.join(os.getcwd(), "config", ".env"))

from .core.config import settings
from .routes import orders_router, products_router, events_router
from .routes import orders as orders_routes

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    logger.info("Storefront orders backend starting up...")
    logger.info(f"PayPal configured: {settings.paypal_configured} ({settings.paypal_api_base})")
    logger.info(f"Stripe configured: {settings.stripe_configured}")

    yield

    logger.info("Storefront orders backend shutting down...")
    if orders_routes.paypal_gateway:
        await orders_routes.paypal_gateway.close()


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Orders, payment capture and cart stock lookups for the storefront",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routers
app.include_router(orders_router)
app.include_router(products_router)
app.include_router(events_router)


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "service": "storefront-orders",
        "paypal_configured": settings.paypal_configured,
        "stripe_configured": settings.stripe_configured,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "storefront.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
