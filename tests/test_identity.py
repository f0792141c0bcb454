import asyncio

from bson import ObjectId
from jose import jwt

from conftest import auth_headers, insert_user
from utils.identity import Identity, provision_principal, read_identity
from utils.jwt import create_access_token


def test_read_identity_from_valid_token():
    token = create_access_token({"_id": ObjectId(), "email": "Mixed@Example.com", "name": "Mix"})

    identity = read_identity(token)

    assert identity.email == "mixed@example.com"
    assert identity.name == "Mix"


def test_read_identity_rejects_bad_tokens():
    assert read_identity("not-a-token") is None

    forged = jwt.encode({"sub": "1", "email": "a@example.com"}, "wrong-secret", algorithm="HS256")
    assert read_identity(forged) is None


def test_read_identity_requires_email():
    token = create_access_token({"_id": ObjectId(), "email": ""})
    assert read_identity(token) is None


def test_missing_secret_means_anonymous(monkeypatch):
    token = create_access_token({"_id": ObjectId(), "email": "a@example.com"})
    monkeypatch.setattr("utils.jwt.JWT_SECRET", "")

    assert read_identity(token) is None


async def test_missing_secret_is_401_not_500(client, buyer, monkeypatch):
    headers = auth_headers(buyer)
    monkeypatch.setattr("utils.jwt.JWT_SECRET", "")

    res = await client.get("/api/user/status", headers=headers)

    assert res.status_code == 401
    assert res.json() == {"error": "Authentication required"}


async def test_provisioning_is_idempotent(db):
    identity = Identity(subject="ext-1", email="new@example.com", name="New")

    first, second = await asyncio.gather(
        provision_principal(db, identity),
        provision_principal(db, identity),
    )

    assert first["_id"] == second["_id"]
    assert await db.users.count_documents({"email": "new@example.com"}) == 1
    assert first["role"] == "BUYER"


async def test_unknown_identity_is_provisioned_on_first_request(client, db):
    token = create_access_token({"_id": ObjectId(), "email": "fresh@example.com", "name": "Fresh"})

    res = await client.get("/api/user/status", headers={"Authorization": f"Bearer {token}"})

    assert res.status_code == 200
    assert res.json()["user"]["role"] == "BUYER"
    assert res.json()["user"]["isSuperuser"] is False
    assert await db.users.count_documents({"email": "fresh@example.com"}) == 1


async def test_create_user_endpoint_is_idempotent(client, db):
    token = create_access_token({"_id": ObjectId(), "email": "again@example.com"})
    headers = {"Authorization": f"Bearer {token}"}

    first = await client.post("/api/auth/create-user", headers=headers)
    second = await client.post("/api/auth/create-user", headers=headers)

    assert first.json()["message"] == "User created successfully"
    assert second.json()["message"] == "User already exists"
    assert first.json()["user"]["id"] == second.json()["user"]["id"]


async def test_role_changes_apply_on_next_request(client, db, buyer):
    headers = auth_headers(buyer)

    res = await client.get("/api/seller/profile", headers=headers)
    assert res.status_code == 403

    await db.users.update_one({"_id": buyer["_id"]}, {"$set": {"role": "SELLER"}})

    res = await client.get("/api/user/status", headers=headers)
    assert res.json()["user"]["role"] == "SELLER"


async def test_register_and_login(client, db):
    res = await client.post(
        "/api/auth/register",
        json={"email": "shopper@example.com", "password": "secret123", "name": "Shopper"},
    )
    assert res.status_code == 200
    assert res.json()["user"]["role"] == "BUYER"

    res = await client.post("/api/auth/login", json={"email": "shopper@example.com", "password": "secret123"})
    assert res.status_code == 200
    token = res.json()["access_token"]

    res = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert res.json()["email"] == "shopper@example.com"

    res = await client.post("/api/auth/login", json={"email": "shopper@example.com", "password": "wrong-pass"})
    assert res.status_code == 401
    assert res.json() == {"error": "Invalid email or password"}


async def test_register_rejects_duplicate_email(client, db):
    await insert_user(db, "taken@example.com")

    res = await client.post("/api/auth/register", json={"email": "taken@example.com", "password": "secret123"})

    assert res.status_code == 400
