from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from enum import Enum


class Role(str, Enum):
    BUYER = "BUYER"
    SELLER = "SELLER"
    CEO = "CEO"
    ADMIN = "ADMIN"
    SUPERUSER = "SUPERUSER"


class SuperuserLevel(str, Enum):
    CEO = "CEO"
    CO_FOUNDER = "CO_FOUNDER"
    MANAGER = "MANAGER"
    TEAM_MEMBER = "TEAM_MEMBER"


class SellerTier(str, Enum):
    STANDARD = "standard"
    PREMIUM = "premium"
    OFFICIAL = "official"


# stored boolean flags, in display order
PERMISSION_FLAGS = (
    "can_create_products",
    "can_moderate_content",
    "can_view_analytics",
    "can_manage_users",
    "can_feature_products",
)


class Principal(BaseModel):
    """
    The authenticated actor for one request.
    Always rebuilt from the users collection; never cached across requests.
    """

    id: str
    email: str
    name: Optional[str] = None
    image: Optional[str] = None
    role: Role = Role.BUYER

    is_superuser: bool = False
    superuser_level: Optional[SuperuserLevel] = None

    can_create_products: bool = False
    can_moderate_content: bool = False
    can_view_analytics: bool = False
    can_manage_users: bool = False
    can_feature_products: bool = False

    @classmethod
    def from_doc(cls, doc: dict) -> "Principal":
        level = doc.get("superuser_level")
        return cls(
            id=str(doc["_id"]),
            email=doc["email"],
            name=doc.get("name"),
            image=doc.get("image"),
            role=Role(doc.get("role") or Role.BUYER),
            is_superuser=bool(doc.get("is_superuser")),
            superuser_level=SuperuserLevel(level) if level else None,
            **{flag: bool(doc.get(flag)) for flag in PERMISSION_FLAGS},
        )


class UserCreate(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6)
    name: Optional[str] = None


class UserLogin(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6)


class SellerProfileCreate(BaseModel):
    business_name: str = Field(..., min_length=2, max_length=120)
    business_email: Optional[EmailStr] = None
    description: Optional[str] = None
    phone: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None


class SellerProfileUpdate(BaseModel):
    business_name: Optional[str] = Field(None, min_length=2, max_length=120)
    business_email: Optional[EmailStr] = None
    description: Optional[str] = None
    logo_url: Optional[str] = None
    phone: Optional[str] = None


class PermissionOverrides(BaseModel):
    can_create_products: bool = True
    can_moderate_content: bool = False
    can_view_analytics: bool = False
    can_manage_users: bool = False
    can_feature_products: bool = False


class MakeSuperuser(BaseModel):
    email: EmailStr
    level: SuperuserLevel
    permissions: Optional[PermissionOverrides] = None

