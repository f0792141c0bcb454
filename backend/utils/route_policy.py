"""
Path-based authorization.

`classify` maps a URL path to exactly one PolicyClass and `authorize` decides
whether a principal (or nobody) may proceed. Both are plain functions so the
HTTP middleware in main.py is only glue.
"""
import re
from enum import Enum
from typing import NamedTuple, Optional

from models.user import Principal, Role, SuperuserLevel


class PolicyClass(str, Enum):
    PUBLIC = "PUBLIC"
    AUTH_REQUIRED = "AUTH_REQUIRED"
    SELLER_REQUIRED = "SELLER_REQUIRED"
    SUPERUSER_REQUIRED = "SUPERUSER_REQUIRED"
    CEO_REQUIRED = "CEO_REQUIRED"
    DISABLED = "DISABLED"


# Retired endpoints. Checked before anything else.
DISABLED_PREFIXES = (
    "/api/make-me-ceo",
    "/api/db-direct",
)

POLICY_PREFIXES = (
    ("/api/ceo", PolicyClass.CEO_REQUIRED),
    ("/api/superuser", PolicyClass.SUPERUSER_REQUIRED),
    ("/superuser", PolicyClass.SUPERUSER_REQUIRED),
    ("/api/seller", PolicyClass.SELLER_REQUIRED),
    ("/seller", PolicyClass.SELLER_REQUIRED),
    ("/api/auth", PolicyClass.PUBLIC),
    ("/api/public", PolicyClass.PUBLIC),
    ("/api/placeholder", PolicyClass.PUBLIC),
    ("/api/health", PolicyClass.PUBLIC),
    ("/auth", PolicyClass.PUBLIC),
    ("/products", PolicyClass.PUBLIC),
    ("/categories", PolicyClass.PUBLIC),
    ("/dashboard", PolicyClass.AUTH_REQUIRED),
    ("/admin", PolicyClass.AUTH_REQUIRED),
    ("/profile", PolicyClass.AUTH_REQUIRED),
    ("/orders", PolicyClass.AUTH_REQUIRED),
    ("/checkout", PolicyClass.AUTH_REQUIRED),
)

# longest prefix first
_ORDERED_PREFIXES = sorted(POLICY_PREFIXES, key=lambda item: len(item[0]), reverse=True)

DENIAL_MESSAGES = {
    PolicyClass.DISABLED: "Endpoint disabled for security",
    PolicyClass.SELLER_REQUIRED: "Seller access required",
    PolicyClass.SUPERUSER_REQUIRED: "Insufficient privileges",
    PolicyClass.CEO_REQUIRED: "CEO access required",
}

_MULTI_SLASH = re.compile(r"/{2,}")


class Decision(NamedTuple):
    allowed: bool
    status_code: int = 200
    error: Optional[str] = None


ALLOW = Decision(allowed=True)


def normalize_path(path: str) -> str:
    path = _MULTI_SLASH.sub("/", path or "/")
    if not path.startswith("/"):
        path = "/" + path
    return path.lower()


def classify(path: str) -> PolicyClass:
    path = normalize_path(path)

    if path.startswith(DISABLED_PREFIXES):
        return PolicyClass.DISABLED

    if path == "/":
        return PolicyClass.PUBLIC

    for prefix, policy in _ORDERED_PREFIXES:
        if path.startswith(prefix):
            return policy

    if path.startswith("/api/") or path == "/api":
        return PolicyClass.AUTH_REQUIRED

    return PolicyClass.PUBLIC


def is_superuser_tier(principal: Principal) -> bool:
    # The superuser bit gates the tier. A role of CEO/ADMIN/SUPERUSER without
    # the bit is a stale record and grants nothing.
    return principal.is_superuser


def is_seller_tier(principal: Principal) -> bool:
    return principal.role == Role.SELLER or is_superuser_tier(principal)


def is_ceo(principal: Principal) -> bool:
    return is_superuser_tier(principal) and principal.superuser_level == SuperuserLevel.CEO


def _deny(policy: PolicyClass) -> Decision:
    return Decision(allowed=False, status_code=403, error=DENIAL_MESSAGES[policy])


def authorize(policy: PolicyClass, principal: Optional[Principal]) -> Decision:
    if policy == PolicyClass.DISABLED:
        return _deny(policy)

    if policy == PolicyClass.PUBLIC:
        return ALLOW

    if principal is None:
        return Decision(allowed=False, status_code=401, error="Authentication required")

    if policy == PolicyClass.AUTH_REQUIRED:
        return ALLOW

    checks = {
        PolicyClass.SELLER_REQUIRED: is_seller_tier,
        PolicyClass.SUPERUSER_REQUIRED: is_superuser_tier,
        PolicyClass.CEO_REQUIRED: is_ceo,
    }
    return ALLOW if checks[policy](principal) else _deny(policy)


def needs_principal(policy: PolicyClass) -> bool:
    return policy not in (PolicyClass.PUBLIC, PolicyClass.DISABLED)


def gate(path: str, principal: Optional[Principal]) -> Decision:
    return authorize(classify(path), principal)
