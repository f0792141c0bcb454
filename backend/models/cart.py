from pydantic import BaseModel, Field


class CartAddItem(BaseModel):
    product_id: str
    quantity: int = Field(1, gt=0)


class CartUpdateItem(BaseModel):
    # >= 1, checked in utils.cart.set_quantity
    quantity: int
