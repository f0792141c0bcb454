from datetime import datetime

from fastapi import APIRouter, Depends
from pymongo import ReturnDocument

from database import get_db
from models.user import Principal, SellerProfileUpdate
from utils.errors import NotFoundOrForbidden, ValidationError
from utils.security import require_seller
from utils.sellers import get_seller_profile, serialize_seller_profile

router = APIRouter(
    prefix="/api/seller",
    tags=["Seller"]
)


# ----------------------------------------
# SELLER PROFILE
# ----------------------------------------

@router.get("/profile")
async def seller_profile(
    seller: Principal = Depends(require_seller),
    db=Depends(get_db),
):
    profile = await get_seller_profile(db, seller.id)
    if not profile:
        raise NotFoundOrForbidden("Seller profile not found")

    return serialize_seller_profile(profile)


@router.patch("/profile")
async def update_seller_profile(
    data: SellerProfileUpdate,
    seller: Principal = Depends(require_seller),
    db=Depends(get_db),
):
    changes = data.model_dump(exclude_unset=True, exclude_none=True)
    if not changes:
        raise ValidationError("No fields to update")

    profile = await get_seller_profile(db, seller.id)
    if not profile:
        raise NotFoundOrForbidden("Seller profile not found")

    changes["updated_at"] = datetime.utcnow()
    updated = await db.seller_profiles.find_one_and_update(
        {"_id": profile["_id"]},
        {"$set": changes},
        return_document=ReturnDocument.AFTER,
    )
    return serialize_seller_profile(updated)
