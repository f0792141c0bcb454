import pytest

from models.user import Principal, Role, SuperuserLevel
from utils.route_policy import PolicyClass, authorize, classify, gate, needs_principal


def make_principal(**fields):
    return Principal(id="64b000000000000000000002", email="p@example.com", **fields)


BUYER = make_principal()
SELLER = make_principal(role=Role.SELLER)
MANAGER = make_principal(role=Role.SUPERUSER, is_superuser=True, superuser_level=SuperuserLevel.MANAGER)
CEO = make_principal(role=Role.CEO, is_superuser=True, superuser_level=SuperuserLevel.CEO)
STALE_CEO = make_principal(role=Role.CEO, is_superuser=False, superuser_level=SuperuserLevel.CEO)


@pytest.mark.parametrize(
    "path, expected",
    [
        ("/", PolicyClass.PUBLIC),
        ("/products/red-shoe", PolicyClass.PUBLIC),
        ("/api/public/products", PolicyClass.PUBLIC),
        ("/api/auth/login", PolicyClass.PUBLIC),
        ("/api/health", PolicyClass.PUBLIC),
        ("/api/cart", PolicyClass.AUTH_REQUIRED),
        ("/api/unknown/thing", PolicyClass.AUTH_REQUIRED),
        ("/dashboard", PolicyClass.AUTH_REQUIRED),
        ("/api/seller/profile", PolicyClass.SELLER_REQUIRED),
        ("/api/superuser/stats", PolicyClass.SUPERUSER_REQUIRED),
        ("/api/ceo/team/1", PolicyClass.CEO_REQUIRED),
        ("/api/make-me-ceo", PolicyClass.DISABLED),
        ("/api/db-direct/users", PolicyClass.DISABLED),
        ("/some/marketing/page", PolicyClass.PUBLIC),
    ],
)
def test_classify(path, expected):
    assert classify(path) == expected


def test_classify_collapses_slashes_and_case():
    assert classify("//api//make-me-ceo") == PolicyClass.DISABLED
    assert classify("/API/Superuser/stats") == PolicyClass.SUPERUSER_REQUIRED


def test_disabled_is_denied_for_everyone():
    anonymous = gate("/api/make-me-ceo", None)
    as_ceo = gate("/api/make-me-ceo", CEO)

    assert anonymous == as_ceo
    assert anonymous.status_code == 403
    assert anonymous.error == "Endpoint disabled for security"


def test_public_allows_anonymous():
    assert gate("/api/public/products", None).allowed


def test_protected_paths_need_a_principal():
    decision = gate("/api/cart", None)
    assert not decision.allowed
    assert decision.status_code == 401

    assert gate("/api/cart", BUYER).allowed


def test_seller_tier():
    assert not gate("/api/seller/profile", BUYER).allowed
    assert gate("/api/seller/profile", SELLER).allowed
    assert gate("/api/seller/profile", MANAGER).allowed


def test_superuser_tier_uses_the_superuser_bit_only():
    decision = gate("/api/superuser/stats", STALE_CEO)
    assert not decision.allowed
    assert decision.status_code == 403

    assert gate("/api/superuser/stats", MANAGER).allowed


def test_ceo_tier():
    decision = authorize(PolicyClass.CEO_REQUIRED, MANAGER)
    assert not decision.allowed
    assert decision.error == "CEO access required"

    assert authorize(PolicyClass.CEO_REQUIRED, CEO).allowed
    assert not authorize(PolicyClass.CEO_REQUIRED, STALE_CEO).allowed


def test_needs_principal():
    assert not needs_principal(PolicyClass.PUBLIC)
    assert not needs_principal(PolicyClass.DISABLED)
    assert needs_principal(PolicyClass.AUTH_REQUIRED)
    assert needs_principal(PolicyClass.CEO_REQUIRED)
