from emporium.models.user import User, RefreshToken
from emporium.models.admin import Admin, AdminRefreshToken, ADMIN_ROLES
from emporium.models.product import Category, Product, ProductImage, ProductSize, SIZES
from emporium.models.cart import Cart, CartItem
from emporium.models.order import Order, OrderItem, Payment, ORDER_STATUSES, PAYMENT_STATUSES
from emporium.models.upload import UploadedFile

__all__ = [
    "User",
    "RefreshToken",
    "Admin",
    "AdminRefreshToken",
    "ADMIN_ROLES",
    "Category",
    "Product",
    "ProductImage",
    "ProductSize",
    "SIZES",
    "Cart",
    "CartItem",
    "Order",
    "OrderItem",
    "Payment",
    "ORDER_STATUSES",
    "PAYMENT_STATUSES",
    "UploadedFile",
]
