from datetime import datetime

from fastapi import APIRouter, Depends, Request
from pymongo.errors import DuplicateKeyError

from config.env import LOGIN_MAX_ATTEMPTS, LOGIN_WINDOW_SECONDS
from database import get_db
from models.user import Principal, UserCreate, UserLogin
from utils.errors import AuthenticationRequired, ValidationError
from utils.hash import hash_password, password_needs_rehash, verify_password
from utils.identity import extract_bearer_token, new_user_doc, provision_principal, read_identity
from utils.jwt import create_access_token
from utils.rate_limit import rate_limit
from utils.security import get_current_principal

router = APIRouter(prefix="/api/auth", tags=["Auth"])


def _user_summary(user: dict) -> dict:
    return {
        "id": str(user["_id"]),
        "email": user.get("email"),
        "name": user.get("name"),
        "role": user.get("role"),
    }


def _token_response(user: dict) -> dict:
    return {
        "access_token": create_access_token(user),
        "token_type": "bearer",
        "user": _user_summary(user),
    }

# ======================
# Register
# ======================

@router.post("/register")
async def register(data: UserCreate, db=Depends(get_db)):
    email = data.email.lower()

    if await db.users.find_one({"email": email}, {"_id": 1}):
        raise ValidationError("Email already registered")

    user = new_user_doc(email, data.name)
    user["password"] = hash_password(data.password)

    try:
        result = await db.users.insert_one(user)
    except DuplicateKeyError:
        raise ValidationError("Email already registered")
    user["_id"] = result.inserted_id

    return _token_response(user)

# ======================
# Login
# ======================

@router.post("/login")
async def login(data: UserLogin, db=Depends(get_db)):
    email = data.email.lower()

    await rate_limit(
        db=db,
        key=f"login:{email}",
        max_requests=LOGIN_MAX_ATTEMPTS,
        window_seconds=LOGIN_WINDOW_SECONDS,
    )

    user = await db.users.find_one({"email": email})
    if not user or not verify_password(data.password, user.get("password")):
        raise AuthenticationRequired("Invalid email or password")

    changes = {"last_active_at": datetime.utcnow()}
    if password_needs_rehash(user["password"]):
        changes["password"] = hash_password(data.password)
    await db.users.update_one({"_id": user["_id"]}, {"$set": changes})

    return _token_response(user)

# ======================
# Provision (first sign-in through an external provider)
# ======================

@router.post("/create-user")
async def create_user(request: Request, db=Depends(get_db)):
    token = extract_bearer_token(request)
    identity = read_identity(token) if token else None
    if identity is None:
        raise AuthenticationRequired("No session found")

    existing = await db.users.find_one({"email": identity.email})
    if existing:
        return {
            "success": True,
            "message": "User already exists",
            "user": _user_summary(existing),
        }

    user = await provision_principal(db, identity)
    return {
        "success": True,
        "message": "User created successfully",
        "user": _user_summary(user),
    }

# ======================
# Current user
# ======================

@router.get("/me")
async def me(principal: Principal = Depends(get_current_principal)):
    return {
        "id": principal.id,
        "email": principal.email,
        "name": principal.name,
        "image": principal.image,
        "role": principal.role.value,
    }
