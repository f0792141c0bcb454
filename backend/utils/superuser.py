import asyncio
from datetime import datetime
from typing import Optional

from bson import ObjectId
from pymongo import DESCENDING, ReturnDocument

from config.constants import RECENT_ACTIVITY_LIMIT
from models.product import ProductImageIn, ProductStatus, SuperuserProductCreate
from models.user import PERMISSION_FLAGS, PermissionOverrides, Principal, Role, SuperuserLevel
from utils.audit import log_superuser_activity
from utils.errors import NotFoundOrForbidden, ValidationError
from utils.guards import try_object_id
from utils.permissions import Capabilities, level_defaults
from utils.products import build_images, new_product_doc
from utils.sellers import create_official_seller_profile
from utils.slug import generate_unique_product_slug, make_slug


# =====================================================
# TEAM
# =====================================================

async def make_superuser(
    db,
    target: dict,
    level: SuperuserLevel,
    granted_by: Principal,
    overrides: Optional[PermissionOverrides] = None,
) -> dict:
    if target.get("is_superuser"):
        raise ValidationError("User is already a superuser")

    flags = Capabilities(**overrides.model_dump()) if overrides else level_defaults(level)

    updated = await db.users.find_one_and_update(
        {"_id": target["_id"]},
        {"$set": {
            "is_superuser": True,
            "superuser_level": level.value,
            "superuser_since": datetime.utcnow(),
            "granted_by": granted_by.id,
            "role": Role.CEO.value if level == SuperuserLevel.CEO else Role.SUPERUSER.value,
            **flags._asdict(),
        }},
        return_document=ReturnDocument.AFTER,
    )

    await create_official_seller_profile(db, updated)

    await log_superuser_activity(
        db,
        user_id=granted_by.id,
        action="GRANT_SUPERUSER",
        target=str(target["_id"]),
        details={"level": level.value, "permissions": flags._asdict()},
    )
    return updated


async def remove_superuser(db, target_user_id: str, removed_by: Principal) -> dict:
    if target_user_id == removed_by.id:
        raise ValidationError("Cannot remove yourself")

    oid = try_object_id(target_user_id)
    if oid is None:
        raise NotFoundOrForbidden("User not found")

    previous = await db.users.find_one_and_update(
        {"_id": oid, "is_superuser": True},
        {"$set": {
            "is_superuser": False,
            "superuser_level": None,
            "role": Role.SELLER.value,
            **{flag: False for flag in PERMISSION_FLAGS},
        }},
        return_document=ReturnDocument.BEFORE,
    )
    if not previous:
        raise NotFoundOrForbidden("User not found")

    await db.seller_profiles.update_many(
        {"user_id": oid},
        {"$set": {"is_official": False, "account_type": "STANDARD", "tier": "standard", "auto_verified": False}},
    )

    await log_superuser_activity(
        db,
        user_id=removed_by.id,
        action="REMOVE_SUPERUSER",
        target=target_user_id,
        details={"previous_level": previous.get("superuser_level")},
    )
    return previous


async def list_superusers(db) -> list:
    projection = {
        "name": 1,
        "email": 1,
        "superuser_level": 1,
        "superuser_since": 1,
        **{flag: 1 for flag in PERMISSION_FLAGS},
    }
    cursor = db.users.find({"is_superuser": True}, projection).sort("superuser_since", DESCENDING)

    team = []
    async for u in cursor:
        since = u.get("superuser_since")
        team.append({
            "id": str(u["_id"]),
            "name": u.get("name"),
            "email": u.get("email"),
            "superuser_level": u.get("superuser_level"),
            "superuser_since": since.isoformat() if isinstance(since, datetime) else None,
            **{flag: bool(u.get(flag)) for flag in PERMISSION_FLAGS},
        })
    return team


# =====================================================
# PRODUCTS
# =====================================================

async def create_superuser_product(db, principal: Principal, data: SuperuserProductCreate) -> dict:
    user = await db.users.find_one({"_id": ObjectId(principal.id)})
    profile = await create_official_seller_profile(db, user)

    slug = await generate_unique_product_slug(db, make_slug(data.title))
    status = ProductStatus.ACTIVE if data.auto_publish else ProductStatus.DRAFT

    product = new_product_doc(
        name=data.title,
        slug=slug,
        description=data.description,
        price=data.price,
        inventory=data.inventory,
        seller_id=profile["_id"],
        seller_user_id=ObjectId(principal.id),
        images=build_images(data.title, [ProductImageIn(url=url) for url in data.images]),
        status=status,
        category=data.category,
        tags=data.tags,
        featured=data.is_featured,
        is_official=data.is_official,
        is_promoted=data.is_promoted,
        priority=data.priority,
        meta_title=data.seo_title,
        meta_description=data.seo_description,
    )
    result = await db.products.insert_one(product)
    product["_id"] = result.inserted_id

    await log_superuser_activity(
        db,
        user_id=principal.id,
        action="CREATE_SUPERUSER_PRODUCT",
        target=str(product["_id"]),
        details={
            "product_name": data.title,
            "is_official": data.is_official,
            "is_featured": data.is_featured,
            "priority": data.priority.value,
        },
    )
    return product


async def feature_product(db, principal: Principal, product_id: str, featured: bool = True) -> dict:
    oid = try_object_id(product_id)
    if oid is None:
        raise NotFoundOrForbidden("Product not found")

    product = await db.products.find_one_and_update(
        {"_id": oid},
        {"$set": {"featured": featured, "updated_at": datetime.utcnow()}},
        return_document=ReturnDocument.AFTER,
    )
    if not product:
        raise NotFoundOrForbidden("Product not found")

    await log_superuser_activity(
        db,
        user_id=principal.id,
        action="FEATURE_PRODUCT" if featured else "UNFEATURE_PRODUCT",
        target=product_id,
        details={"product_name": product.get("name")},
    )
    return product


# =====================================================
# DASHBOARD
# =====================================================

async def get_superuser_stats(db, principal: Principal) -> dict:
    total_products, total_users, total_sellers, activity = await asyncio.gather(
        db.products.count_documents({"seller_user_id": ObjectId(principal.id)}),
        db.users.count_documents({}),
        db.seller_profiles.count_documents({}),
        db.superuser_activity
        .find({"user_id": principal.id})
        .sort("created_at", DESCENDING)
        .limit(RECENT_ACTIVITY_LIMIT)
        .to_list(length=RECENT_ACTIVITY_LIMIT),
    )

    return {
        "total_products": total_products,
        "total_users": total_users,
        "total_sellers": total_sellers,
        "recent_activity": [
            {
                "action": a.get("action"),
                "target": a.get("target"),
                "details": a.get("details", {}),
                "created_at": a["created_at"].isoformat() if isinstance(a.get("created_at"), datetime) else None,
            }
            for a in activity
        ],
    }
