from datetime import datetime

from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from models.product import ProductStatus
from models.user import Principal
from utils.errors import NotFoundOrForbidden, ValidationError
from utils.guards import parse_object_id, try_object_id

CART_ITEM_NOT_FOUND = "Cart item not found"


async def find_cart(db, principal: Principal):
    return await db.carts.find_one({"user_id": ObjectId(principal.id)})


async def get_or_create_cart(db, principal: Principal) -> dict:
    user_id = ObjectId(principal.id)
    try:
        return await db.carts.find_one_and_update(
            {"user_id": user_id},
            {"$setOnInsert": {"user_id": user_id, "created_at": datetime.utcnow()}},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
    except DuplicateKeyError:
        # concurrent first add; the other request created it
        return await db.carts.find_one({"user_id": user_id})


async def _owned_item_filter(db, principal: Principal, item_id: str) -> dict:
    """
    Filter that matches the line item only if it sits in the principal's cart.
    Missing cart, malformed id and foreign item all end in the same 404.
    """
    oid = try_object_id(item_id)
    if oid is None:
        raise NotFoundOrForbidden(CART_ITEM_NOT_FOUND)

    cart = await find_cart(db, principal)
    if not cart:
        raise NotFoundOrForbidden(CART_ITEM_NOT_FOUND)

    return {"_id": oid, "cart_id": cart["_id"]}


# =========================
# LINE ITEM MUTATIONS
# =========================

async def set_quantity(db, principal: Principal, item_id: str, quantity: int) -> dict:
    if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity < 1:
        raise ValidationError("Quantity must be at least 1")

    where = await _owned_item_filter(db, principal, item_id)

    res = await db.cart_items.update_one(
        where,
        {"$set": {"quantity": quantity, "updated_at": datetime.utcnow()}},
    )
    if res.matched_count == 0:
        raise NotFoundOrForbidden(CART_ITEM_NOT_FOUND)

    return {"id": item_id, "quantity": quantity}


async def remove_item(db, principal: Principal, item_id: str) -> dict:
    where = await _owned_item_filter(db, principal, item_id)

    item = await db.cart_items.find_one_and_delete(where)
    if not item:
        raise NotFoundOrForbidden(CART_ITEM_NOT_FOUND)

    product = await db.products.find_one({"_id": item["product_id"]}, {"name": 1})
    return {
        "id": item_id,
        "product_name": product.get("name") if product else None,
    }


# =========================
# CART READS / ADD
# =========================

async def add_item(db, principal: Principal, product_id: str, quantity: int) -> dict:
    if quantity < 1:
        raise ValidationError("Quantity must be at least 1")

    pid = parse_object_id(product_id, "product_id")
    product = await db.products.find_one({"_id": pid})
    if not product:
        raise NotFoundOrForbidden("Product not found")

    if product.get("status") != ProductStatus.ACTIVE.value:
        raise ValidationError("Product is not available")

    inventory = product.get("inventory", 0)
    cart = await get_or_create_cart(db, principal)
    existing = await db.cart_items.find_one({"cart_id": cart["_id"], "product_id": pid})

    new_quantity = quantity + (existing["quantity"] if existing else 0)
    if not product.get("pre_order") and new_quantity > inventory:
        raise ValidationError(f"Insufficient stock (available: {inventory})")

    now = datetime.utcnow()
    if existing:
        await db.cart_items.update_one(
            {"_id": existing["_id"]},
            {"$set": {"quantity": new_quantity, "updated_at": now}},
        )
        item_id = existing["_id"]
    else:
        result = await db.cart_items.insert_one({
            "cart_id": cart["_id"],
            "product_id": pid,
            "quantity": new_quantity,
            "created_at": now,
            "updated_at": now,
        })
        item_id = result.inserted_id

    return {
        "id": str(item_id),
        "product_name": product.get("name"),
        "quantity": new_quantity,
    }


async def get_cart(db, principal: Principal) -> dict:
    cart = await get_or_create_cart(db, principal)
    lines = await db.cart_items.find({"cart_id": cart["_id"]}).sort("created_at", 1).to_list(length=None)

    product_ids = [line["product_id"] for line in lines]
    products = {
        p["_id"]: p
        async for p in db.products.find({"_id": {"$in": product_ids}})
    }

    items = []
    subtotal = 0.0
    item_count = 0

    for line in lines:
        product = products.get(line["product_id"])
        if not product:
            continue

        qty = int(line.get("quantity", 1))
        unit_price = float(product.get("price", 0))
        line_total = round(unit_price * qty, 2)
        subtotal += line_total
        item_count += qty

        images = sorted(product.get("images") or [], key=lambda img: img.get("position", 0))
        items.append({
            "id": str(line["_id"]),
            "product_id": str(product["_id"]),
            "name": product.get("name"),
            "slug": product.get("slug"),
            "image": images[0].get("url") if images else None,
            "quantity": qty,
            "unit_price": unit_price,
            "line_total": line_total,
            "inventory": product.get("inventory", 0),
        })

    return {
        "id": str(cart["_id"]),
        "items": items,
        "item_count": item_count,
        "subtotal": round(subtotal, 2),
    }


async def clear_cart(db, principal: Principal) -> int:
    cart = await find_cart(db, principal)
    if not cart:
        return 0
    res = await db.cart_items.delete_many({"cart_id": cart["_id"]})
    return res.deleted_count
