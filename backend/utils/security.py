from typing import Optional

from fastapi import Depends, Request

from database import get_db
from models.user import Principal
from utils.errors import AuthenticationRequired, AuthorizationDenied
from utils.identity import resolve_principal
from utils.permissions import has_permission
from utils.route_policy import is_ceo, is_seller_tier, is_superuser_tier


async def get_optional_principal(
    request: Request,
    db=Depends(get_db),
) -> Optional[Principal]:
    # The route gate middleware has usually resolved it already.
    if hasattr(request.state, "principal"):
        return request.state.principal

    principal = await resolve_principal(db, request)
    request.state.principal = principal
    return principal


async def get_current_principal(
    principal: Optional[Principal] = Depends(get_optional_principal),
) -> Principal:
    if principal is None:
        raise AuthenticationRequired()
    return principal


async def require_seller(
    principal: Principal = Depends(get_current_principal),
) -> Principal:
    if not is_seller_tier(principal):
        raise AuthorizationDenied("Seller access required")
    return principal


async def require_superuser(
    principal: Principal = Depends(get_current_principal),
) -> Principal:
    if not is_superuser_tier(principal):
        raise AuthorizationDenied("Superuser access required")
    return principal


def require_permission(permission: str):
    async def checker(principal: Principal = Depends(require_superuser)):
        if not has_permission(principal, permission):
            raise AuthorizationDenied(f"Permission required: {permission}")
        return principal

    return checker


async def require_ceo(
    principal: Principal = Depends(require_superuser),
) -> Principal:
    if not is_ceo(principal):
        raise AuthorizationDenied("CEO access required")
    return principal
