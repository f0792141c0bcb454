from typing import NamedTuple, Optional

from models.user import PERMISSION_FLAGS, Principal, SuperuserLevel


class Capabilities(NamedTuple):
    can_create_products: bool = False
    can_moderate_content: bool = False
    can_view_analytics: bool = False
    can_manage_users: bool = False
    can_feature_products: bool = False


NO_CAPABILITIES = Capabilities()
ALL_CAPABILITIES = Capabilities(*(True for _ in PERMISSION_FLAGS))

# Flags written to the user document when a level is granted.
# Derivation below only reads the stored flags; these are starting values.
LEVEL_DEFAULTS = {
    SuperuserLevel.CEO: ALL_CAPABILITIES,
    SuperuserLevel.CO_FOUNDER: ALL_CAPABILITIES,
    SuperuserLevel.MANAGER: Capabilities(
        can_create_products=True,
        can_moderate_content=True,
        can_view_analytics=True,
        can_manage_users=False,
        can_feature_products=True,
    ),
    SuperuserLevel.TEAM_MEMBER: Capabilities(can_create_products=True),
}


def derive_capabilities(principal: Principal) -> Capabilities:
    """
    Capability set for one authorization decision.

    - not a superuser: nothing, whatever flags are left on the record
    - CEO level: everything
    - otherwise: the stored flags as-is
    """
    if not principal.is_superuser:
        return NO_CAPABILITIES

    if principal.superuser_level == SuperuserLevel.CEO:
        return ALL_CAPABILITIES

    return Capabilities(**{flag: getattr(principal, flag) for flag in PERMISSION_FLAGS})


def has_permission(principal: Optional[Principal], permission: str) -> bool:
    if principal is None:
        return False
    if permission not in Capabilities._fields:
        raise ValueError(f"Unknown permission: {permission}")
    return getattr(derive_capabilities(principal), permission)


def level_defaults(level: SuperuserLevel) -> Capabilities:
    return LEVEL_DEFAULTS.get(level, NO_CAPABILITIES)


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def permissions_payload(capabilities: Capabilities) -> dict:
    return {_camel(name): value for name, value in capabilities._asdict().items()}


def status_payload(principal: Principal) -> dict:
    return {
        "user": {
            "id": principal.id,
            "role": principal.role.value,
            "isSuperuser": principal.is_superuser,
            "superuserLevel": principal.superuser_level.value if principal.superuser_level else None,
            "permissions": permissions_payload(derive_capabilities(principal)),
        }
    }
