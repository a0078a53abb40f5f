from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from emporium.deps import get_db
from emporium.models import CartItem
from emporium.schemas.cart import CartAddIn, CartItemOut, CartOut, CartRemoveIn, CartUpdateIn
from emporium.schemas.product import Size
from emporium.services.cart_service import CartService
from emporium.utils.security import Identity, require_user

router = APIRouter()


def to_cart_item_out(item: CartItem) -> CartItemOut:
    return CartItemOut(cartItemId=item.id, productId=item.product_id, size=item.size, quantity=item.quantity)


@router.get("", response_model=CartOut)
def get_cart(db: Session = Depends(get_db), user: Identity = Depends(require_user)):
    return CartService(db).get_cart(user.id)


@router.post("/add")
def add_to_cart(payload: CartAddIn, db: Session = Depends(get_db), user: Identity = Depends(require_user)):
    item = CartService(db).add_item(user.id, payload.productId, payload.size, payload.quantity)
    return {"message": "Product added to cart successfully.", "cartItem": to_cart_item_out(item)}


@router.post("/update")
def update_cart_item(payload: CartUpdateIn, db: Session = Depends(get_db), user: Identity = Depends(require_user)):
    item = CartService(db).update_item(user.id, payload.productId, payload.size, payload.quantity)
    if item is None:
        return {"message": "Item removed from cart.", "cartItem": None}
    return {"message": "Cart updated successfully.", "cartItem": to_cart_item_out(item)}


@router.post("/remove")
def remove_from_cart(payload: CartRemoveIn, db: Session = Depends(get_db), user: Identity = Depends(require_user)):
    item = CartService(db).remove_item(user.id, payload.cartItemId, payload.quantity)
    if item is None:
        return {"message": "Item removed from cart.", "cartItem": None}
    return {"message": "Item quantity decreased.", "cartItem": to_cart_item_out(item)}


@router.get("/quantity")
def get_cart_quantity(
    productId: int = Query(..., gt=0),
    size: Size = Query(...),
    db: Session = Depends(get_db),
    user: Identity = Depends(require_user),
):
    return {"productId": productId, "size": size, "quantity": CartService(db).get_quantity(user.id, productId, size)}
