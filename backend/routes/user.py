from fastapi import APIRouter, Depends

from database import get_db
from models.user import Principal, SellerProfileCreate
from utils.permissions import status_payload
from utils.security import get_current_principal
from utils.sellers import create_seller_profile, get_seller_profile, serialize_seller_profile

router = APIRouter(prefix="/api/user", tags=["User"])
profile_router = APIRouter(prefix="/api/profile", tags=["Profile"])


# =========================
# PERMISSION STATUS
# =========================

@router.get("/status")
async def user_status(principal: Principal = Depends(get_current_principal)):
    return status_payload(principal)


# =========================
# PROFILE
# =========================

@profile_router.get("")
async def get_profile(
    principal: Principal = Depends(get_current_principal),
    db=Depends(get_db),
):
    seller = await get_seller_profile(db, principal.id)
    return {
        "id": principal.id,
        "email": principal.email,
        "name": principal.name,
        "image": principal.image,
        "role": principal.role.value,
        "seller_profile": serialize_seller_profile(seller) if seller else None,
    }


@profile_router.post("/seller")
async def become_seller(
    data: SellerProfileCreate,
    principal: Principal = Depends(get_current_principal),
    db=Depends(get_db),
):
    profile = await create_seller_profile(db, principal, data)
    return {
        "success": True,
        "seller_profile": serialize_seller_profile(profile),
    }
