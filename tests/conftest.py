import os

os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("ENV", "test")

from datetime import datetime, timedelta

import pytest
from bson import ObjectId
from httpx import ASGITransport, AsyncClient
from mongomock_motor import AsyncMongoMockClient

import database
from models.product import ProductStatus
from utils.identity import new_user_doc
from utils.jwt import create_access_token


@pytest.fixture
async def db():
    client = AsyncMongoMockClient()
    mock_db = client["storefront_test"]

    await mock_db.users.create_index("email", unique=True)
    await mock_db.carts.create_index("user_id", unique=True)
    await mock_db.seller_profiles.create_index("user_id", unique=True)
    await mock_db.products.create_index("slug", unique=True)

    database._db = mock_db
    yield mock_db
    database._db = None


@pytest.fixture
async def client(db):
    from main import app

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


async def insert_user(db, email, **fields):
    user = new_user_doc(email, name=email.split("@")[0])
    user.update(fields)
    result = await db.users.insert_one(user)
    user["_id"] = result.inserted_id
    return user


def auth_headers(user: dict) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user)}"}


async def insert_product(db, name, **fields):
    now = datetime.utcnow()
    product = {
        "name": name,
        "slug": fields.pop("slug", name.lower().replace(" ", "-")),
        "description": f"{name} description",
        "price": 10.0,
        "inventory": 20,
        "pre_order": False,
        "status": ProductStatus.ACTIVE.value,
        "featured": False,
        "category": None,
        "images": [{"id": ObjectId(), "url": f"https://img.test/{name}.png", "alt_text": None, "position": 0}],
        "seller_id": None,
        "rating": 0,
        "sold_count": 0,
        "created_at": now - timedelta(seconds=fields.pop("age", 0)),
    }
    product.update(fields)
    result = await db.products.insert_one(product)
    product["_id"] = result.inserted_id
    return product


@pytest.fixture
async def buyer(db):
    return await insert_user(db, "buyer@example.com")


@pytest.fixture
async def seller(db):
    return await insert_user(db, "seller@example.com", role="SELLER")


@pytest.fixture
async def ceo(db):
    return await insert_user(
        db,
        "ceo@example.com",
        role="CEO",
        is_superuser=True,
        superuser_level="CEO",
    )


@pytest.fixture
async def manager(db):
    return await insert_user(
        db,
        "manager@example.com",
        role="SUPERUSER",
        is_superuser=True,
        superuser_level="MANAGER",
        can_create_products=True,
        can_view_analytics=True,
        can_feature_products=True,
    )
