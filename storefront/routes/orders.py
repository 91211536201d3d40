"""Orders API routes: PayPal capture, card payment intents, order records"""

import logging
from typing import Optional

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse

from ..core.config import settings
from ..database.orders import DuplicateOrderError, OrderDatabase, order_db
from ..database.products import ProductDatabase, product_db
from ..gateways.card import CardGateway, CardGatewayError
from ..gateways.paypal import PayPalApiError, PayPalGateway
from ..models.checkout import (
    Order,
    OrderHistoryResponse,
    OrderRequest,
    OrderResponse,
    PaymentMethod,
)
from ..models.payment import (
    ConfirmPaymentIntentRequest,
    CreatePaymentIntentRequest,
    PaymentIntentResponse,
    PaymentIntentStatus,
    PayPalActionRequest,
    PayPalOrderRecord,
    PayPalOrderStatus,
)
from ..models.user import User
from ..security.auth import require_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/orders", tags=["Orders"])

ALREADY_CAPTURED = "Order already captured"

# Gateways are created on first use
paypal_gateway: Optional[PayPalGateway] = None
card_gateway: Optional[CardGateway] = None


def get_paypal_gateway() -> PayPalGateway:
    """Get or create PayPal gateway"""
    global paypal_gateway
    if paypal_gateway is None:
        try:
            paypal_gateway = PayPalGateway.from_settings(settings)
        except ValueError as e:
            logger.error(str(e))
            raise HTTPException(status_code=503, detail="PayPal is not configured")
    return paypal_gateway


def get_card_gateway() -> CardGateway:
    """Get or create card gateway"""
    global card_gateway
    if card_gateway is None:
        try:
            card_gateway = CardGateway.from_settings(settings)
        except ValueError as e:
            logger.error(str(e))
            raise HTTPException(status_code=503, detail="Card payments are not configured")
    return card_gateway


def get_order_db() -> OrderDatabase:
    return order_db


def get_product_db() -> ProductDatabase:
    return product_db


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _save_order(
    request: OrderRequest,
    user: User,
    method: PaymentMethod,
    reference: str,
    orders: OrderDatabase,
    products: ProductDatabase,
) -> Order:
    """Persist the order and take its items out of stock"""
    if request.user_id != user.id and not user.is_admin:
        raise HTTPException(status_code=403, detail="Cannot place orders for another user")

    order = orders.create_order(request, method, reference)

    for item in order.items:
        if not products.update_stock(item.product_id, -item.quantity):
            logger.warning(f"Could not reserve {item.quantity}x {item.product_id} for {order.order_id}")

    logger.info(
        f"Order {order.order_id} created: {order.total_amount} via {method.value} "
        f"for user {order.user_id}"
    )
    return order


# ==================== PayPal ====================


@router.post("/")
async def handle_paypal_action(
    request: PayPalActionRequest,
    gateway: PayPalGateway = Depends(get_paypal_gateway),
):
    """
    Create or capture a PayPal order.

    action=create needs total and returns the PayPal order id;
    action=capture needs orderID and returns the capture status.
    """
    try:
        if request.action == "create":
            if request.total is None or request.total <= 0:
                return _error(400, "A positive total is required")
            record = await gateway.create_order(request.total)
            return {"id": record.id}

        if request.action == "capture":
            if not request.order_id:
                return _error(400, "orderID is required")
            record = await gateway.capture_order(request.order_id)
            return {"status": record.status, "orderID": request.order_id}

        return _error(400, "Invalid action specified")
    except PayPalApiError as e:
        if e.is_already_captured:
            return _error(400, ALREADY_CAPTURED)
        logger.error(f"Error handling order: {e}")
        return _error(500, "An error occurred while handling the order")
    except httpx.HTTPError as e:
        logger.error(f"Error handling order: {e}")
        return _error(500, "An error occurred while handling the order")


@router.post("/paypal-order", response_model=OrderResponse)
async def create_paypal_order(
    request: OrderRequest,
    user: User = Depends(require_user),
    gateway: PayPalGateway = Depends(get_paypal_gateway),
    orders: OrderDatabase = Depends(get_order_db),
    products: ProductDatabase = Depends(get_product_db),
):
    """
    Record an order paid with PayPal.

    The PayPal order must be COMPLETED; an order still APPROVED is captured
    here. Each PayPal order produces at most one storefront order.
    """
    if request.payment_method != PaymentMethod.PAYPAL.value:
        return _error(400, "Unsupported payment method")

    paypal_order_id = request.payment_id
    if not paypal_order_id:
        return _error(400, "PayPal order id is required")

    if orders.find_by_reference(paypal_order_id):
        logger.warning(f"PayPal order {paypal_order_id} already recorded")
        return _error(400, ALREADY_CAPTURED)

    try:
        record: PayPalOrderRecord = await gateway.get_order(paypal_order_id)
        if record.status == PayPalOrderStatus.APPROVED:
            record = await gateway.capture_order(paypal_order_id)
    except PayPalApiError as e:
        if e.is_already_captured:
            return _error(400, ALREADY_CAPTURED)
        logger.error(f"Error capturing order: {e}")
        return _error(500, "An error occurred while capturing the order")
    except httpx.HTTPError as e:
        logger.error(f"Error capturing order: {e}")
        return _error(500, "An error occurred while capturing the order")

    if record.status != PayPalOrderStatus.COMPLETED:
        logger.warning(f"PayPal order {paypal_order_id} not completed: {record.status}")
        return JSONResponse(status_code=400, content={"status": "error"})

    try:
        order = _save_order(request, user, PaymentMethod.PAYPAL, paypal_order_id, orders, products)
    except DuplicateOrderError:
        return _error(400, ALREADY_CAPTURED)

    return OrderResponse(status="success", order_id=order.order_id)


# ==================== Card ====================


@router.post("/create-payment-intent", response_model=PaymentIntentResponse)
async def create_payment_intent(
    request: CreatePaymentIntentRequest,
    gateway: CardGateway = Depends(get_card_gateway),
):
    """Stage a card payment awaiting confirmation"""
    try:
        intent = await gateway.create_intent(request.payment_method_id, request.amount)
    except CardGatewayError as e:
        return _error(400, e.message)
    return PaymentIntentResponse(payment_intent=intent)


@router.post("/confirm-payment-intent", response_model=PaymentIntentResponse)
async def confirm_payment_intent(
    request: ConfirmPaymentIntentRequest,
    gateway: CardGateway = Depends(get_card_gateway),
):
    """Confirm a staged card payment"""
    try:
        intent = await gateway.confirm_intent(request.payment_intent_id)
    except CardGatewayError as e:
        return _error(400, e.message)
    return PaymentIntentResponse(payment_intent=intent)


@router.post("/credit-card-order", response_model=OrderResponse)
async def create_credit_card_order(
    request: OrderRequest,
    user: User = Depends(require_user),
    gateway: CardGateway = Depends(get_card_gateway),
    orders: OrderDatabase = Depends(get_order_db),
    products: ProductDatabase = Depends(get_product_db),
):
    """
    Record an order paid by card.

    The payment intent is re-read from Stripe and must have succeeded.
    Each intent produces at most one storefront order.
    """
    if request.payment_method != PaymentMethod.CREDIT_CARD.value:
        return _error(400, "Unsupported payment method")

    intent_id = request.payment_id
    if not intent_id:
        return _error(400, "Payment intent id is required")

    if orders.find_by_reference(intent_id):
        logger.warning(f"Payment intent {intent_id} already recorded")
        return _error(400, ALREADY_CAPTURED)

    try:
        intent = await gateway.retrieve_intent(intent_id)
    except CardGatewayError:
        return _error(500, "An error occurred while retrieving the payment intent")

    if intent.status != PaymentIntentStatus.SUCCEEDED:
        logger.warning(f"Payment intent {intent_id} not succeeded: {intent.status}")
        return JSONResponse(status_code=400, content={"status": "error"})

    try:
        order = _save_order(request, user, PaymentMethod.CREDIT_CARD, intent_id, orders, products)
    except DuplicateOrderError:
        return _error(400, ALREADY_CAPTURED)

    return OrderResponse(status="success", order_id=order.order_id)


# ==================== History ====================


@router.get("/history/{user_id}", response_model=OrderHistoryResponse)
async def get_order_history(
    user_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    user: User = Depends(require_user),
    orders: OrderDatabase = Depends(get_order_db),
):
    """Orders of a user, newest first"""
    if user.id != user_id and not user.is_admin:
        raise HTTPException(status_code=403, detail="Access denied")

    page_orders, total, pages = orders.list_user_orders(user_id, page=page, limit=limit)
    return OrderHistoryResponse(orders=page_orders, total=total, page=page, pages=pages)
