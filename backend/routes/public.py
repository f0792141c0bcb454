from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from database import get_db
from models.product import ProductStatus
from utils.catalog import (
    list_products,
    listing_response,
    resolve_listing_query,
    transform_product,
)
from utils.errors import NotFoundOrForbidden
from utils.products import serialize_product

router = APIRouter(
    prefix="/api/public",
    tags=["Public"]
)

# ============================================================
# PRODUCT LISTING
# ============================================================

@router.get("/products")
async def public_products(
    page: Optional[int] = None,
    limit: Optional[int] = None,
    search: Optional[str] = None,
    category: Optional[str] = None,
    featured: Optional[bool] = None,
    min_price: Optional[float] = None,
    max_price: Optional[float] = None,
    min_rating: Optional[float] = None,
    availability: Optional[List[str]] = Query(None),
    seller_types: Optional[List[str]] = Query(None),
    sort_by: Optional[str] = None,
    sort_order: Optional[str] = None,
    db=Depends(get_db),
):
    query = resolve_listing_query(
        page=page,
        limit=limit,
        search=search,
        category=category,
        featured_only=featured,
        min_price=min_price,
        max_price=max_price,
        min_rating=min_rating,
        availability=availability,
        seller_types=seller_types,
        sort_by=sort_by,
        sort_order=sort_order,
    )

    page_result = await list_products(db, query)
    return listing_response(query, page_result)


@router.get("/products/{slug}")
async def public_product_detail(slug: str, db=Depends(get_db)):
    product = await db.products.find_one({"slug": slug, "status": ProductStatus.ACTIVE.value})
    if not product:
        raise NotFoundOrForbidden("Product not found")

    seller = None
    if product.get("seller_id") is not None:
        seller = await db.seller_profiles.find_one({"_id": product["seller_id"]})

    card = transform_product(product, seller)
    card["gallery"] = serialize_product(product)["images"]
    return {"success": True, "product": card}

# ============================================================
# CATEGORIES
# ============================================================

@router.get("/categories")
async def public_categories(db=Depends(get_db)):
    cursor = db.categories.find({}).sort("name", 1)

    return [
        {
            "id": str(c["_id"]),
            "name": c["name"],
            "slug": c["slug"],
            "image": c.get("image"),
            "parent_id": str(c["parent_id"]) if c.get("parent_id") else None,
        }
        async for c in cursor
    ]
