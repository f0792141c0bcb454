import asyncio
import re
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from database import get_db
from models.product import CategoryCreate, CategoryUpdate
from models.user import Principal
from utils.errors import NotFoundOrForbidden, ValidationError
from utils.guards import parse_object_id, try_object_id
from utils.permissions import has_permission
from utils.security import require_seller

router = APIRouter(prefix="/api/categories", tags=["Categories"])

CATEGORY_NOT_FOUND = "Category not found"


# =========================
# HELPERS
# =========================

async def _counts(db, category: dict) -> dict:
    products, children = await asyncio.gather(
        db.products.count_documents({"category": category["slug"]}),
        db.categories.count_documents({"parent_id": category["_id"]}),
    )
    return {"products": products, "children": children}


async def serialize_category(db, category: dict) -> dict:
    return {
        "id": str(category["_id"]),
        "name": category["name"],
        "slug": category["slug"],
        "description": category.get("description"),
        "image": category.get("image"),
        "parent_id": str(category["parent_id"]) if category.get("parent_id") else None,
        "count": await _counts(db, category),
    }


async def get_descendant_ids(db, category_id) -> set:
    """Every category below `category_id`, walked breadth-first."""
    found = set()
    frontier = [category_id]
    while frontier:
        children = await db.categories.find(
            {"parent_id": {"$in": frontier}}, {"_id": 1}
        ).to_list(length=None)
        frontier = [c["_id"] for c in children if c["_id"] not in found]
        found.update(frontier)
    return found


async def _load(db, category_id: str) -> dict:
    oid = try_object_id(category_id)
    category = await db.categories.find_one({"_id": oid}) if oid else None
    if not category:
        raise NotFoundOrForbidden(CATEGORY_NOT_FOUND)
    return category


def _owned(category_id: str, principal: Principal) -> dict:
    """
    Lookup filter scoped to categories the caller created.
    Moderators may edit any category.
    """
    oid = try_object_id(category_id)
    if oid is None:
        raise NotFoundOrForbidden(CATEGORY_NOT_FOUND)

    where = {"_id": oid}
    if not has_permission(principal, "can_moderate_content"):
        where["created_by"] = principal.id
    return where


async def _check_parent(db, parent_id: str, category_id=None):
    parent_oid = parse_object_id(parent_id, "parent_id")

    if category_id is not None and parent_oid == category_id:
        raise ValidationError("Category cannot be its own parent")

    if not await db.categories.find_one({"_id": parent_oid}, {"_id": 1}):
        raise ValidationError("Parent category not found")

    if category_id is not None and parent_oid in await get_descendant_ids(db, category_id):
        raise ValidationError("Cannot create circular reference")

    return parent_oid


# =========================
# READ
# =========================

@router.get("")
async def list_categories(
    parent_id: Optional[str] = None,
    search: Optional[str] = None,
    db=Depends(get_db),
):
    where: dict = {}

    if parent_id is not None:
        where["parent_id"] = None if parent_id in ("", "null") else parse_object_id(parent_id, "parent_id")

    if search:
        pattern = re.escape(search.strip())
        where["$or"] = [
            {"name": {"$regex": pattern, "$options": "i"}},
            {"description": {"$regex": pattern, "$options": "i"}},
        ]

    categories = await db.categories.find(where).sort("name", 1).to_list(length=None)
    items = [await serialize_category(db, c) for c in categories]
    return {"categories": items, "total": len(items)}


@router.get("/{category_id}")
async def get_category(category_id: str, db=Depends(get_db)):
    category = await _load(db, category_id)
    return await serialize_category(db, category)


# =========================
# WRITE (SELLERS)
# =========================

@router.post("")
async def create_category(
    data: CategoryCreate,
    seller: Principal = Depends(require_seller),
    db=Depends(get_db),
):
    slug = data.slug.lower()

    if await db.categories.find_one({"slug": slug}, {"_id": 1}):
        raise ValidationError("Category slug already exists")
    if await db.categories.find_one({"name": data.name}, {"_id": 1}):
        raise ValidationError("Category name already exists")

    parent_oid = await _check_parent(db, data.parent_id) if data.parent_id else None

    category = {
        "name": data.name,
        "slug": slug,
        "description": data.description,
        "image": data.image,
        "parent_id": parent_oid,
        "created_by": seller.id,
        "created_at": datetime.utcnow(),
    }
    try:
        result = await db.categories.insert_one(category)
    except DuplicateKeyError:
        raise ValidationError("Category already exists")
    category["_id"] = result.inserted_id

    return await serialize_category(db, category)


@router.put("/{category_id}")
async def update_category(
    category_id: str,
    data: CategoryUpdate,
    seller: Principal = Depends(require_seller),
    db=Depends(get_db),
):
    where = _owned(category_id, seller)
    existing = await db.categories.find_one(where)
    if not existing:
        raise NotFoundOrForbidden(CATEGORY_NOT_FOUND)
    changes = data.model_dump(exclude_unset=True)

    if changes.get("slug"):
        changes["slug"] = changes["slug"].lower()
        if changes["slug"] != existing["slug"] and await db.categories.find_one({"slug": changes["slug"]}, {"_id": 1}):
            raise ValidationError("Category slug already exists")

    if changes.get("name") and changes["name"] != existing["name"]:
        if await db.categories.find_one({"name": changes["name"]}, {"_id": 1}):
            raise ValidationError("Category name already exists")

    if "parent_id" in changes:
        changes["parent_id"] = (
            await _check_parent(db, changes["parent_id"], existing["_id"])
            if changes["parent_id"] else None
        )

    changes["updated_at"] = datetime.utcnow()
    category = await db.categories.find_one_and_update(
        where,
        {"$set": changes},
        return_document=ReturnDocument.AFTER,
    )

    # products reference categories by slug
    if changes.get("slug") and changes["slug"] != existing["slug"]:
        await db.products.update_many(
            {"category": existing["slug"]},
            {"$set": {"category": changes["slug"]}},
        )

    return await serialize_category(db, category)


@router.delete("/{category_id}")
async def delete_category(
    category_id: str,
    seller: Principal = Depends(require_seller),
    db=Depends(get_db),
):
    where = _owned(category_id, seller)
    category = await db.categories.find_one(where)
    if not category:
        raise NotFoundOrForbidden(CATEGORY_NOT_FOUND)
    counts = await _counts(db, category)

    if counts["products"] > 0:
        raise ValidationError("Cannot delete category with products. Move or delete products first.")
    if counts["children"] > 0:
        raise ValidationError("Cannot delete category with subcategories. Move or delete subcategories first.")

    await db.categories.delete_one(where)
    return {"message": "Category deleted successfully"}
