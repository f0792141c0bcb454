import logging
from datetime import datetime
from typing import NamedTuple, Optional

from fastapi import Request
from jose import JWTError
from pymongo.errors import DuplicateKeyError

from models.user import PERMISSION_FLAGS, Principal, Role
from utils.jwt import decode_token

logger = logging.getLogger(__name__)


class Identity(NamedTuple):
    subject: str
    email: str
    name: Optional[str] = None
    image: Optional[str] = None


def extract_bearer_token(request: Request) -> Optional[str]:
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        return None
    parts = auth_header.split()
    if len(parts) == 2 and parts[0].lower() == "bearer":
        return parts[1]
    return None


def read_identity(token: str) -> Optional[Identity]:
    """
    Identity claims from a bearer token, or None when the token is
    unusable (bad signature, expired, missing email, no secret configured).
    """
    try:
        payload = decode_token(token)
    except JWTError:
        return None
    except RuntimeError:
        # no signing secret configured; nobody can be authenticated
        logger.exception("JWT_SECRET_MISSING")
        return None

    email = (payload.get("email") or "").strip().lower()
    subject = payload.get("sub")
    if not email or not subject:
        return None

    return Identity(
        subject=str(subject),
        email=email,
        name=payload.get("name"),
        image=payload.get("picture"),
    )


def new_user_doc(email: str, name: Optional[str] = None, image: Optional[str] = None) -> dict:
    now = datetime.utcnow()
    return {
        "email": email,
        "name": name or "",
        "image": image,
        "role": Role.BUYER.value,
        "is_superuser": False,
        "superuser_level": None,
        **{flag: False for flag in PERMISSION_FLAGS},
        "created_at": now,
        "last_active_at": now,
    }


async def provision_principal(db, identity: Identity) -> dict:
    """
    Create the user record for a first-seen identity.

    The unique index on users.email makes this idempotent: losing a race
    to a concurrent request is reported as DuplicateKeyError and we read
    back the winner's record.
    """
    doc = new_user_doc(identity.email, identity.name, identity.image)
    try:
        result = await db.users.insert_one(doc)
    except DuplicateKeyError:
        existing = await db.users.find_one({"email": identity.email})
        if existing is None:
            raise
        return existing

    doc["_id"] = result.inserted_id
    logger.info("PRINCIPAL_PROVISIONED user=%s", doc["_id"])
    return doc


async def resolve_principal(db, request: Request) -> Optional[Principal]:
    token = extract_bearer_token(request)
    if not token:
        return None

    identity = read_identity(token)
    if identity is None:
        return None

    user = await db.users.find_one({"email": identity.email})
    if not user:
        user = await provision_principal(db, identity)

    return Principal.from_doc(user)
