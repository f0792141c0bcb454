import re
from datetime import datetime
from typing import Optional

from bson import ObjectId
from fastapi import APIRouter, Depends
from pymongo import DESCENDING, ReturnDocument

from database import get_db
from models.product import ProductCreate, ProductStatus, ProductUpdate
from models.user import Principal
from utils.catalog import page_count
from utils.errors import AuthorizationDenied, NotFoundOrForbidden, ValidationError
from utils.guards import try_object_id
from utils.products import build_images, new_product_doc, serialize_product
from utils.security import get_current_principal
from utils.sellers import get_seller_profile
from utils.slug import generate_unique_product_slug, make_slug

router = APIRouter(prefix="/api/products", tags=["Products"])

PRODUCT_NOT_FOUND = "Product not found"


def _owned(product_id: str, principal: Principal) -> dict:
    """Lookup filter scoped to the caller's own products."""
    oid = try_object_id(product_id)
    if oid is None:
        raise NotFoundOrForbidden(PRODUCT_NOT_FOUND)
    return {"_id": oid, "seller_user_id": ObjectId(principal.id)}


# =========================
# SELLER CREATE PRODUCT
# =========================

@router.post("")
async def create_product(
    data: ProductCreate,
    principal: Principal = Depends(get_current_principal),
    db=Depends(get_db),
):
    profile = await get_seller_profile(db, principal.id)
    if not profile:
        raise AuthorizationDenied("You must be a verified seller to create products")

    slug = await generate_unique_product_slug(db, make_slug(data.name))

    product = new_product_doc(
        name=data.name,
        slug=slug,
        description=data.description,
        price=data.price,
        compare_at_price=data.compare_at_price,
        sku=data.sku,
        inventory=data.inventory,
        pre_order=data.pre_order,
        seller_id=profile["_id"],
        seller_user_id=ObjectId(principal.id),
        images=build_images(data.name, data.images),
        status=data.status,
        category=data.category,
        tags=data.tags,
        featured=data.featured,
        meta_title=data.meta_title,
        meta_description=data.meta_description,
    )

    result = await db.products.insert_one(product)
    product["_id"] = result.inserted_id

    return {"success": True, "product": serialize_product(product)}


# =========================
# SELLER LIST OWN PRODUCTS
# =========================

@router.get("")
async def list_own_products(
    page: int = 1,
    limit: int = 10,
    status: Optional[str] = None,
    search: Optional[str] = None,
    principal: Principal = Depends(get_current_principal),
    db=Depends(get_db),
):
    if page < 1:
        raise ValidationError("Invalid page: must be at least 1")
    limit = min(max(limit, 1), 50)
    skip = (page - 1) * limit

    where: dict = {"seller_user_id": ObjectId(principal.id)}

    if status and status.upper() != "ALL":
        try:
            where["status"] = ProductStatus(status.upper()).value
        except ValueError:
            raise ValidationError("Invalid status")

    if search:
        pattern = re.escape(search.strip())
        where["$or"] = [
            {"name": {"$regex": pattern, "$options": "i"}},
            {"description": {"$regex": pattern, "$options": "i"}},
            {"sku": {"$regex": pattern, "$options": "i"}},
        ]

    cursor = (
        db.products
        .find(where)
        .sort([("created_at", DESCENDING), ("_id", DESCENDING)])
        .skip(skip)
        .limit(limit)
    )
    products = [serialize_product(p) async for p in cursor]
    total = await db.products.count_documents(where)

    return {
        "success": True,
        "products": products,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": page_count(total, limit),
        },
    }


# =========================
# SELLER SINGLE PRODUCT
# =========================

@router.get("/{product_id}")
async def get_own_product(
    product_id: str,
    principal: Principal = Depends(get_current_principal),
    db=Depends(get_db),
):
    product = await db.products.find_one(_owned(product_id, principal))
    if not product:
        raise NotFoundOrForbidden(PRODUCT_NOT_FOUND)

    return {"success": True, "product": serialize_product(product)}


@router.put("/{product_id}")
async def update_own_product(
    product_id: str,
    data: ProductUpdate,
    principal: Principal = Depends(get_current_principal),
    db=Depends(get_db),
):
    where = _owned(product_id, principal)
    existing = await db.products.find_one(where)
    if not existing:
        raise NotFoundOrForbidden(PRODUCT_NOT_FOUND)

    changes = data.model_dump(exclude_unset=True, exclude_none=True, exclude={"images"})
    if not changes and data.images is None:
        raise ValidationError("No fields to update")

    if data.images is not None:
        changes["images"] = build_images(data.name or existing.get("name"), data.images)

    if "status" in changes:
        changes["status"] = changes["status"].value
        if changes["status"] == ProductStatus.ACTIVE.value and existing.get("status") != ProductStatus.ACTIVE.value:
            changes["published_at"] = datetime.utcnow()

    if changes.get("category"):
        changes["category"] = changes["category"].lower()
    if changes.get("tags") is not None:
        changes["tags"] = [t.lower() for t in changes["tags"]]

    changes["updated_at"] = datetime.utcnow()

    product = await db.products.find_one_and_update(
        where,
        {"$set": changes},
        return_document=ReturnDocument.AFTER,
    )
    if not product:
        raise NotFoundOrForbidden(PRODUCT_NOT_FOUND)

    return {"success": True, "product": serialize_product(product)}


@router.delete("/{product_id}")
async def delete_own_product(
    product_id: str,
    principal: Principal = Depends(get_current_principal),
    db=Depends(get_db),
):
    res = await db.products.delete_one(_owned(product_id, principal))
    if res.deleted_count == 0:
        raise NotFoundOrForbidden(PRODUCT_NOT_FOUND)

    return {"success": True, "message": "Product deleted"}
