from pydantic import BaseModel
from datetime import datetime
from typing import List, Literal, Optional, Union

OrderStatus = Literal["PENDING", "PROCESSING", "SHIPPED", "DELIVERED", "CANCELLED"]
PaymentStatus = Literal["PENDING", "PAID"]


class PlaceOrderIn(BaseModel):
    # Must match the authenticated user; accepted as int or numeric string
    userId: Optional[Union[int, str]] = None


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class OrderItemOut(BaseModel):
    id: int
    productId: int
    productName: Optional[str] = None
    size: str
    quantity: int
    price: float


class PaymentOut(BaseModel):
    id: int
    amount: float
    status: PaymentStatus
    stripePaymentIntentId: str


class OrderUserOut(BaseModel):
    id: int
    email: str
    name: Optional[str] = None


class OrderOut(BaseModel):
    id: int
    userId: int
    user: Optional[OrderUserOut] = None
    total: float
    status: OrderStatus
    items: List[OrderItemOut]
    payment: Optional[PaymentOut] = None
    createdAt: datetime
    updatedAt: datetime


class PlaceOrderOut(BaseModel):
    message: str
    order: OrderOut
    clientSecret: str


class OrderPage(BaseModel):
    orders: List[OrderOut]
    total: int
    totalPages: int
    currentPage: int
