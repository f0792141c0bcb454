from fastapi import APIRouter, Depends

from database import get_db
from models.cart import CartAddItem, CartUpdateItem
from models.user import Principal
from utils import cart as cart_service
from utils.security import get_current_principal

router = APIRouter(prefix="/api/cart", tags=["Cart"])


@router.get("")
async def get_cart(
    buyer: Principal = Depends(get_current_principal),
    db=Depends(get_db),
):
    return {"cart": await cart_service.get_cart(db, buyer)}


@router.post("")
async def add_to_cart(
    data: CartAddItem,
    buyer: Principal = Depends(get_current_principal),
    db=Depends(get_db),
):
    item = await cart_service.add_item(db, buyer, data.product_id, data.quantity)
    return {
        "message": "Item added to cart successfully",
        "item": item,
    }


@router.patch("/{item_id}")
async def update_cart_item(
    item_id: str,
    data: CartUpdateItem,
    buyer: Principal = Depends(get_current_principal),
    db=Depends(get_db),
):
    item = await cart_service.set_quantity(db, buyer, item_id, data.quantity)
    return {
        "message": "Cart item updated successfully",
        "quantity": item["quantity"],
    }


@router.delete("/{item_id}")
async def remove_cart_item(
    item_id: str,
    buyer: Principal = Depends(get_current_principal),
    db=Depends(get_db),
):
    removed = await cart_service.remove_item(db, buyer, item_id)
    return {
        "message": "Item removed from cart",
        "product_name": removed["product_name"],
    }


@router.delete("")
async def clear_cart(
    buyer: Principal = Depends(get_current_principal),
    db=Depends(get_db),
):
    removed = await cart_service.clear_cart(db, buyer)
    return {"message": "Cart cleared", "removed": removed}
