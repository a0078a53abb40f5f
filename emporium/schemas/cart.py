from pydantic import BaseModel, Field
from typing import List, Optional

from emporium.schemas.product import Size


class CartAddIn(BaseModel):
    productId: int = Field(gt=0)
    size: Size
    quantity: int = Field(gt=0)


class CartUpdateIn(BaseModel):
    productId: int = Field(gt=0)
    size: Size
    quantity: int = Field(ge=0)


class CartRemoveIn(BaseModel):
    cartItemId: int = Field(gt=0)
    quantity: int = Field(default=1, gt=0)


class CartItemOut(BaseModel):
    cartItemId: int
    productId: int
    size: str
    quantity: int


class CartLineOut(CartItemOut):
    name: str
    description: Optional[str] = None
    price: float
    totalPrice: float


class CartOut(BaseModel):
    cartId: int
    items: List[CartLineOut]
    total: float
