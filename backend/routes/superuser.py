from bson import ObjectId
from fastapi import APIRouter, Depends
from pymongo import DESCENDING

from database import get_db
from models.product import FeatureProduct, SuperuserProductCreate
from models.user import MakeSuperuser, Principal, SuperuserLevel
from utils.errors import AuthorizationDenied, NotFoundOrForbidden
from utils.products import product_stats, serialize_product
from utils.security import require_permission, require_superuser
from utils.route_policy import is_ceo
from utils.superuser import (
    create_superuser_product,
    feature_product,
    get_superuser_stats,
    list_superusers,
    make_superuser,
)

router = APIRouter(prefix="/api/superuser", tags=["Superuser"])


# =====================================================
# PRODUCTS
# =====================================================

@router.post("/products")
async def superuser_create_product(
    data: SuperuserProductCreate,
    principal: Principal = Depends(require_permission("can_create_products")),
    db=Depends(get_db),
):
    product = await create_superuser_product(db, principal, data)
    return {
        "success": True,
        "product": serialize_product(product),
        "message": f"Official product \"{data.title}\" created successfully",
    }


@router.get("/products")
async def superuser_list_products(
    principal: Principal = Depends(require_superuser),
    db=Depends(get_db),
):
    products = await (
        db.products
        .find({"seller_user_id": ObjectId(principal.id)})
        .sort("created_at", DESCENDING)
        .to_list(length=None)
    )
    return {
        "success": True,
        "products": [serialize_product(p) for p in products],
        "stats": product_stats(products),
    }


@router.post("/products/{product_id}/feature")
async def superuser_feature_product(
    product_id: str,
    data: FeatureProduct,
    principal: Principal = Depends(require_permission("can_feature_products")),
    db=Depends(get_db),
):
    product = await feature_product(db, principal, product_id, data.featured)
    return {"success": True, "product": serialize_product(product)}


# =====================================================
# DASHBOARD
# =====================================================

@router.get("/stats")
async def superuser_stats(
    principal: Principal = Depends(require_permission("can_view_analytics")),
    db=Depends(get_db),
):
    return await get_superuser_stats(db, principal)


# =====================================================
# TEAM
# =====================================================

@router.get("/team")
async def superuser_team(
    principal: Principal = Depends(require_permission("can_manage_users")),
    db=Depends(get_db),
):
    return {"team": await list_superusers(db)}


@router.post("/team")
async def superuser_grant(
    data: MakeSuperuser,
    principal: Principal = Depends(require_permission("can_manage_users")),
    db=Depends(get_db),
):
    if data.level == SuperuserLevel.CEO and not is_ceo(principal):
        raise AuthorizationDenied("Only the CEO can grant CEO level")

    target = await db.users.find_one({"email": data.email.lower()})
    if not target:
        raise NotFoundOrForbidden("User not found. They must sign up first.")

    updated = await make_superuser(db, target, data.level, principal, data.permissions)
    return {
        "success": True,
        "message": f"{updated.get('email')} is now a {data.level.value} superuser",
        "user": {
            "id": str(updated["_id"]),
            "email": updated.get("email"),
            "superuser_level": updated.get("superuser_level"),
        },
    }
