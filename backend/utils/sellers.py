from datetime import datetime

from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from models.user import Principal, Role, SellerProfileCreate, SellerTier
from utils.errors import ValidationError


async def get_seller_profile(db, user_id):
    return await db.seller_profiles.find_one({"user_id": ObjectId(str(user_id))})


async def create_seller_profile(db, principal: Principal, data: SellerProfileCreate) -> dict:
    user_id = ObjectId(principal.id)
    now = datetime.utcnow()

    profile = {
        "user_id": user_id,
        "business_name": data.business_name,
        "business_email": data.business_email or principal.email,
        "description": data.description,
        "phone": data.phone,
        "city": data.city,
        "country": data.country,
        "verification_status": "PENDING",
        "tier": SellerTier.STANDARD.value,
        "account_type": "STANDARD",
        "is_official": False,
        "average_rating": 0,
        "total_sales": 0,
        "created_at": now,
        "updated_at": now,
    }

    try:
        result = await db.seller_profiles.insert_one(profile)
    except DuplicateKeyError:
        raise ValidationError("Seller profile already exists")
    profile["_id"] = result.inserted_id

    # superusers keep their role; everyone else becomes a seller
    if principal.role == Role.BUYER:
        await db.users.update_one(
            {"_id": user_id},
            {"$set": {"role": Role.SELLER.value, "updated_at": now}},
        )

    return profile


async def create_official_seller_profile(db, user: dict) -> dict:
    now = datetime.utcnow()
    return await db.seller_profiles.find_one_and_update(
        {"user_id": user["_id"]},
        {
            "$set": {
                "verification_status": "VERIFIED",
                "is_official": True,
                "account_type": "OFFICIAL",
                "tier": SellerTier.OFFICIAL.value,
                "auto_verified": True,
                "verified_at": now,
                "updated_at": now,
            },
            "$setOnInsert": {
                "user_id": user["_id"],
                "business_name": f"{user.get('name') or 'Team'} - Findora Official",
                "business_email": user.get("email", ""),
                "description": "Official Findora team member store",
                "average_rating": 0,
                "total_sales": 0,
                "created_at": now,
            },
        },
        upsert=True,
        return_document=ReturnDocument.AFTER,
    )


def serialize_seller_profile(profile: dict) -> dict:
    return {
        "id": str(profile["_id"]),
        "business_name": profile.get("business_name"),
        "business_email": profile.get("business_email"),
        "description": profile.get("description"),
        "logo_url": profile.get("logo_url"),
        "phone": profile.get("phone"),
        "verification_status": profile.get("verification_status"),
        "tier": profile.get("tier"),
        "is_official": bool(profile.get("is_official")),
        "average_rating": profile.get("average_rating", 0),
        "total_sales": profile.get("total_sales", 0),
    }
