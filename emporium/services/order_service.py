"""
Order placement, payment webhooks and order administration.

``place_order`` re-validates the cart against live stock and prices, asks the
payment gateway for an intent, then writes the order, its items, the payment
row, the per-size stock decrements and the cart clearing in one transaction.
The gateway call happens before the transaction because it cannot take part
in it: a crash between the two leaves an intent at the gateway with no order.
"""

import hashlib
import logging
import math
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, or_, update
from sqlalchemy.orm import Session

from emporium.errors import (
    ConflictError,
    EmptyCartError,
    ForbiddenError,
    InsufficientStockError,
    NotFoundError,
    ValidationError,
)
from emporium.models import Cart, CartItem, Order, OrderItem, Payment, ProductSize, User, ORDER_STATUSES
from emporium.services.payments import PaymentGateway

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    "PENDING": {"PROCESSING", "CANCELLED"},
    "PROCESSING": {"SHIPPED", "CANCELLED"},
    "SHIPPED": {"DELIVERED"},
    "DELIVERED": set(),
    "CANCELLED": set(),
}


def _idempotency_key(cart: Cart, total: Decimal, last_order_id: int) -> str:
    """Key for one checkout attempt.

    Retries of the same cart at the same total reuse the key, so the gateway
    hands back the same intent. A placed order bumps ``last_order_id`` and a
    price change moves ``total``; either starts a new key.
    """
    fingerprint = ",".join(f"{i.product_id}:{i.size}:{i.quantity}" for i in cart.items)
    fingerprint = f"{fingerprint}|{total}|{last_order_id}"
    digest = hashlib.sha256(fingerprint.encode("utf-8")).hexdigest()[:32]
    return f"cart-{cart.id}-{digest}"


class OrderService:
    def __init__(self, db: Session, gateway: Optional[PaymentGateway] = None, currency: str = "usd"):
        self.db = db
        self.gateway = gateway
        self.currency = currency

    def place_order(self, user_id: int, requested_user_id) -> tuple[Order, str]:
        if requested_user_id is None or str(requested_user_id).strip() == "":
            raise ValidationError("User ID is required.")
        if str(requested_user_id) != str(user_id):
            raise ForbiddenError("User ID does not match.")

        cart = self.db.query(Cart).filter(Cart.user_id == user_id).first()
        if not cart:
            raise NotFoundError("Cart not found.")
        if not cart.items:
            raise EmptyCartError("Cart is empty.")

        # Fail on the first line that can no longer be fulfilled
        total = Decimal("0")
        for item in cart.items:
            stock = (
                self.db.query(ProductSize)
                .filter(ProductSize.product_id == item.product_id, ProductSize.size == item.size)
                .first()
            )
            available = int(stock.quantity) if stock else 0
            if stock is None or available < item.quantity:
                raise InsufficientStockError(
                    f"Insufficient stock for {item.product.name} (size {item.size}). "
                    f"Available: {available}, Requested: {item.quantity}",
                    details={
                        "productId": item.product_id,
                        "size": item.size,
                        "available": available,
                        "requested": item.quantity,
                    },
                )
            total += Decimal(item.product.price) * item.quantity

        last_order_id = (
            self.db.query(func.max(Order.id)).filter(Order.user_id == user_id).scalar() or 0
        )

        # Outside the transaction; a failure here aborts before any write
        intent = self.gateway.create_payment_intent(
            total,
            self.currency,
            metadata={"userId": user_id, "cartId": cart.id},
            idempotency_key=_idempotency_key(cart, total, last_order_id),
        )

        try:
            order = Order(user_id=user_id, total=total, status="PENDING")
            order.items = [
                OrderItem(
                    product_id=item.product_id,
                    size=item.size,
                    quantity=item.quantity,
                    price=item.product.price,
                )
                for item in cart.items
            ]
            order.payment = Payment(
                amount=total,
                status="PENDING",
                stripe_payment_intent_id=intent.intent_id,
            )
            self.db.add(order)

            for item in cart.items:
                result = self.db.execute(
                    update(ProductSize)
                    .where(
                        ProductSize.product_id == item.product_id,
                        ProductSize.size == item.size,
                        ProductSize.quantity >= item.quantity,
                    )
                    .values(quantity=ProductSize.quantity - item.quantity)
                )
                if result.rowcount != 1:
                    raise InsufficientStockError(
                        f"Insufficient stock for {item.product.name} (size {item.size}).",
                        details={"productId": item.product_id, "size": item.size},
                    )

            self.db.query(CartItem).filter(CartItem.cart_id == cart.id).delete(synchronize_session=False)
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.error("Order placement rolled back for user %s (intent %s)", user_id, intent.intent_id)
            raise

        self.db.expire_all()
        self.db.refresh(order)
        logger.info("Order %s placed for user %s, total %s", order.id, user_id, order.total)
        return order, intent.client_secret

    def handle_payment_webhook(self, event: dict) -> Optional[Order]:
        event_type = event.get("type")
        if event_type != "payment_intent.succeeded":
            logger.info("Ignoring webhook event %s", event_type)
            return None

        intent_id = ((event.get("data") or {}).get("object") or {}).get("id")
        payment = (
            self.db.query(Payment).filter(Payment.stripe_payment_intent_id == intent_id).first()
            if intent_id
            else None
        )
        if not payment:
            logger.warning("Webhook for unknown payment intent %s", intent_id)
            return None

        payment.status = "PAID"
        order = payment.order
        # Replays are harmless: only a PENDING order moves forward
        if order.status == "PENDING":
            order.status = "PROCESSING"
        self.db.commit()
        self.db.refresh(order)
        logger.info("Payment %s marked PAID for order %s", intent_id, order.id)
        return order

    # Storefront account views

    def list_user_orders(self, user_id: int) -> list[Order]:
        return (
            self.db.query(Order)
            .filter(Order.user_id == user_id)
            .order_by(Order.created_at.desc(), Order.id.desc())
            .all()
        )

    def get_user_order(self, user_id: int, order_id: int) -> Order:
        order = self.db.query(Order).filter(Order.id == order_id, Order.user_id == user_id).first()
        if not order:
            raise NotFoundError("Order not found")
        return order

    # Admin

    def list_orders(
        self, page: int = 1, limit: int = 10, search: str = "", status: Optional[str] = None
    ) -> dict:
        query = self.db.query(Order)
        if search:
            pattern = f"%{search}%"
            query = query.join(User, User.id == Order.user_id).filter(
                or_(User.email.ilike(pattern), User.name.ilike(pattern))
            )
        if status and status.upper() != "ALL":
            query = query.filter(Order.status == status.upper())

        total = query.count()
        orders = (
            query.order_by(Order.created_at.desc(), Order.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return {
            "orders": orders,
            "total": total,
            "totalPages": math.ceil(total / limit) if limit else 0,
            "currentPage": page,
        }

    def get_order(self, order_id: int) -> Order:
        order = self.db.query(Order).filter(Order.id == order_id).first()
        if not order:
            raise NotFoundError("Order not found")
        return order

    def update_status(self, order_id: int, status: str) -> Order:
        status = (status or "").upper()
        if status not in ORDER_STATUSES:
            raise ValidationError("Invalid status")
        order = self.get_order(order_id)
        if status == order.status:
            return order
        if status not in ALLOWED_TRANSITIONS[order.status]:
            raise ConflictError(f"Cannot move order from {order.status} to {status}")

        if status == "CANCELLED":
            # Give the reserved units back to the per-size stock
            for item in order.items:
                self.db.execute(
                    update(ProductSize)
                    .where(ProductSize.product_id == item.product_id, ProductSize.size == item.size)
                    .values(quantity=ProductSize.quantity + item.quantity)
                )
        order.status = status
        self.db.commit()
        self.db.refresh(order)
        logger.info("Order %s moved to %s", order.id, status)
        return order
