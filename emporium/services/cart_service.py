"""
Cart operations: one cart per user, one line per (product, size).

Stock is checked against ``ProductSize.quantity`` whenever a line grows or is
set, but it is never reserved here; order placement is the only place that
decrements stock.
"""

import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from emporium.errors import (
    InsufficientStockError,
    InvalidQuantityError,
    NotFoundError,
    SizeUnavailableError,
    ValidationError,
)
from emporium.models import Cart, CartItem, Product, ProductSize, SIZES

logger = logging.getLogger(__name__)


def normalize_size(size: Optional[str]) -> str:
    s = (size or "").strip().upper()
    if s not in SIZES:
        raise ValidationError(f"Invalid size. Expected one of: {', '.join(SIZES)}")
    return s


class CartService:
    def __init__(self, db: Session):
        self.db = db

    # Helpers

    def _get_cart(self, user_id: int) -> Optional[Cart]:
        return self.db.query(Cart).filter(Cart.user_id == user_id).first()

    def _get_or_create_cart(self, user_id: int) -> Cart:
        cart = self._get_cart(user_id)
        if not cart:
            cart = Cart(user_id=user_id)
            self.db.add(cart)
            self.db.flush()
        return cart

    def _find_line(self, cart_id: int, product_id: int, size: str) -> Optional[CartItem]:
        return (
            self.db.query(CartItem)
            .filter(CartItem.cart_id == cart_id, CartItem.product_id == product_id, CartItem.size == size)
            .first()
        )

    def _available(self, product_id: int, size: str) -> int:
        product = (
            self.db.query(Product)
            .filter(Product.id == product_id, Product.is_archived.is_(False))
            .first()
        )
        if not product:
            raise NotFoundError("Product not found")
        stock = (
            self.db.query(ProductSize)
            .filter(ProductSize.product_id == product_id, ProductSize.size == size)
            .first()
        )
        if not stock:
            raise SizeUnavailableError(f"Size {size} is not available for this product")
        return int(stock.quantity)

    @staticmethod
    def _check_quantity(quantity) -> int:
        if quantity is None or int(quantity) <= 0:
            raise ValidationError("Quantity must be a positive integer")
        return int(quantity)

    # Operations

    def add_item(self, user_id: int, product_id: int, size: str, quantity: int) -> CartItem:
        if not product_id:
            raise ValidationError("productId is required")
        size = normalize_size(size)
        quantity = self._check_quantity(quantity)

        available = self._available(product_id, size)
        cart = self._get_or_create_cart(user_id)
        existing = self._find_line(cart.id, product_id, size)
        new_qty = quantity + (existing.quantity if existing else 0)
        if new_qty > available:
            self.db.rollback()
            raise InsufficientStockError(
                f"Not enough stock for size {size}. Available: {available}",
                details={"productId": product_id, "size": size, "available": available},
            )

        try:
            if existing:
                existing.quantity = new_qty
                item = existing
            else:
                item = CartItem(cart_id=cart.id, product_id=product_id, size=size, quantity=new_qty)
                self.db.add(item)
            self.db.commit()
        except IntegrityError:
            # A concurrent request inserted the same line first; merge into it
            self.db.rollback()
            cart = self._get_or_create_cart(user_id)
            item = self._find_line(cart.id, product_id, size)
            if not item:
                raise
            merged = item.quantity + quantity
            if merged > available:
                self.db.rollback()
                raise InsufficientStockError(
                    f"Not enough stock for size {size}. Available: {available}",
                    details={"productId": product_id, "size": size, "available": available},
                )
            item.quantity = merged
            self.db.commit()

        self.db.refresh(item)
        return item

    def remove_item(self, user_id: int, cart_item_id: int, quantity: int = 1) -> Optional[CartItem]:
        """Take ``quantity`` off a line; returns the line, or None once it is deleted."""
        quantity = self._check_quantity(quantity)
        item = (
            self.db.query(CartItem)
            .join(Cart, Cart.id == CartItem.cart_id)
            .filter(CartItem.id == cart_item_id, Cart.user_id == user_id)
            .first()
        )
        if not item:
            raise NotFoundError("Cart item not found")
        if quantity > item.quantity:
            raise InvalidQuantityError(
                f"Cannot remove {quantity}; only {item.quantity} in cart",
                details={"cartItemId": item.id, "quantity": item.quantity},
            )

        if quantity == item.quantity:
            self.db.delete(item)
            self.db.commit()
            return None
        item.quantity -= quantity
        self.db.commit()
        self.db.refresh(item)
        return item

    def update_item(self, user_id: int, product_id: int, size: str, quantity: int) -> Optional[CartItem]:
        """Set a line to exactly ``quantity``; zero deletes it."""
        if not product_id:
            raise ValidationError("productId is required")
        size = normalize_size(size)
        if quantity is None or int(quantity) < 0:
            raise ValidationError("Quantity must be zero or a positive integer")
        quantity = int(quantity)

        if quantity == 0:
            cart = self._get_cart(user_id)
            item = self._find_line(cart.id, product_id, size) if cart else None
            if item:
                self.db.delete(item)
                self.db.commit()
            return None

        available = self._available(product_id, size)
        if quantity > available:
            raise InsufficientStockError(
                f"Not enough stock for size {size}. Available: {available}",
                details={"productId": product_id, "size": size, "available": available},
            )
        cart = self._get_or_create_cart(user_id)
        item = self._find_line(cart.id, product_id, size)
        if item:
            item.quantity = quantity
        else:
            item = CartItem(cart_id=cart.id, product_id=product_id, size=size, quantity=quantity)
            self.db.add(item)
        self.db.commit()
        self.db.refresh(item)
        return item

    def get_cart(self, user_id: int) -> dict:
        cart = self._get_cart(user_id)
        # An absent cart and an empty cart look the same to the caller
        if not cart or not cart.items:
            raise NotFoundError("Cart not found")

        items = []
        total = Decimal("0")
        for line in cart.items:
            product = line.product
            price = Decimal(product.price)
            line_total = price * line.quantity
            total += line_total
            items.append(
                {
                    "cartItemId": line.id,
                    "productId": product.id,
                    "name": product.name,
                    "description": product.description,
                    "price": price,
                    "size": line.size,
                    "quantity": line.quantity,
                    "totalPrice": line_total,
                }
            )
        return {"cartId": cart.id, "items": items, "total": total}

    def get_quantity(self, user_id: int, product_id: int, size: str) -> int:
        cart = self._get_cart(user_id)
        if not cart:
            return 0
        item = self._find_line(cart.id, product_id, (size or "").strip().upper())
        return int(item.quantity) if item else 0
