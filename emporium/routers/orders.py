import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, Query, Request
from sqlalchemy.orm import Session

from emporium.config import Settings
from emporium.deps import get_app_settings, get_db, get_payment_gateway
from emporium.errors import ValidationError
from emporium.models import Order
from emporium.schemas.order import (
    OrderItemOut,
    OrderOut,
    OrderPage,
    OrderStatusUpdate,
    OrderUserOut,
    PaymentOut,
    PlaceOrderIn,
    PlaceOrderOut,
)
from emporium.services.order_service import OrderService
from emporium.services.payments import PaymentGateway
from emporium.utils.security import Identity, require_admin, require_admin_role, require_user

logger = logging.getLogger(__name__)

router = APIRouter()
account_router = APIRouter()
admin_router = APIRouter()

order_manager = require_admin_role("GOD", "MANAGER")


def map_order_to_out(order: Order, include_user: bool = False) -> OrderOut:
    items = [
        OrderItemOut(
            id=i.id,
            productId=i.product_id,
            productName=i.product.name if i.product else None,
            size=i.size,
            quantity=i.quantity,
            price=float(i.price),
        )
        for i in order.items
    ]
    payment = None
    if order.payment:
        payment = PaymentOut(
            id=order.payment.id,
            amount=float(order.payment.amount),
            status=order.payment.status,
            stripePaymentIntentId=order.payment.stripe_payment_intent_id,
        )
    user = None
    if include_user and order.user:
        user = OrderUserOut(id=order.user.id, email=order.user.email, name=order.user.name)
    return OrderOut(
        id=order.id,
        userId=order.user_id,
        user=user,
        total=float(order.total),
        status=order.status,
        items=items,
        payment=payment,
        createdAt=order.created_at,
        updatedAt=order.updated_at,
    )


async def raw_body(request: Request) -> bytes:
    # Signature verification needs the exact bytes the gateway sent
    return await request.body()


# Checkout
@router.post("/place-order", status_code=201, response_model=PlaceOrderOut)
def place_order(
    payload: PlaceOrderIn,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    user: Identity = Depends(require_user),
):
    service = OrderService(db, gateway, currency=settings.PAYMENT_CURRENCY)
    order, client_secret = service.place_order(user.id, payload.userId)
    return PlaceOrderOut(message="Order placed successfully", order=map_order_to_out(order), clientSecret=client_secret)


@router.post("/webhook")
def payment_webhook(
    payload: bytes = Depends(raw_body),
    stripe_signature: Optional[str] = Header(None, alias="stripe-signature"),
    db: Session = Depends(get_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    if not stripe_signature:
        logger.warning("Webhook rejected: no signature header")
        raise ValidationError("No signature found")
    try:
        event = gateway.construct_event(payload, stripe_signature)
    except ValidationError:
        logger.warning("Webhook rejected: signature verification failed")
        raise
    OrderService(db).handle_payment_webhook(event)
    return {"received": True}


# Storefront account
@account_router.get("", response_model=list[OrderOut])
def my_orders(db: Session = Depends(get_db), user: Identity = Depends(require_user)):
    return [map_order_to_out(o) for o in OrderService(db).list_user_orders(user.id)]


@account_router.get("/{id}", response_model=OrderOut)
def my_order(id: int, db: Session = Depends(get_db), user: Identity = Depends(require_user)):
    return map_order_to_out(OrderService(db).get_user_order(user.id, id))


# Admin console
@admin_router.get("", response_model=OrderPage)
def admin_list_orders(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: str = "",
    status: Optional[str] = None,
    db: Session = Depends(get_db),
    admin: Identity = Depends(require_admin),
):
    result = OrderService(db).list_orders(page=page, limit=limit, search=search, status=status)
    return OrderPage(
        orders=[map_order_to_out(o, include_user=True) for o in result["orders"]],
        total=result["total"],
        totalPages=result["totalPages"],
        currentPage=result["currentPage"],
    )


@admin_router.get("/{id}", response_model=OrderOut)
def admin_get_order(id: int, db: Session = Depends(get_db), admin: Identity = Depends(require_admin)):
    return map_order_to_out(OrderService(db).get_order(id), include_user=True)


@admin_router.patch("/{id}/status", response_model=OrderOut)
def admin_update_order_status(
    id: int,
    payload: OrderStatusUpdate,
    db: Session = Depends(get_db),
    admin: Identity = Depends(order_manager),
):
    return map_order_to_out(OrderService(db).update_status(id, payload.status), include_user=True)
