from datetime import datetime

import pytest
from bson import ObjectId
from fastapi import HTTPException
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import ServerSelectionTimeoutError

from conftest import insert_product
from database import get_db
from models.listing import AvailabilityFacet, SellerFacet, SortKey
from utils.catalog import (
    availability_of,
    build_filter,
    build_sort,
    list_products,
    listing_response,
    page_count,
    paginate,
    resolve_listing_query,
    seller_badges,
    transform_product,
)


# =========================
# QUERY RESOLUTION
# =========================

def test_defaults():
    query = resolve_listing_query()

    assert query.page == 1
    assert query.limit == 12
    assert query.sort_by == SortKey.CREATED_AT
    assert query.availability == frozenset()


def test_limit_is_capped():
    assert resolve_listing_query(limit=500).limit == 50


@pytest.mark.parametrize("params", [{"page": 0}, {"limit": 0}, {"min_rating": 6}, {"sort_by": "popularity"}])
def test_invalid_parameters(params):
    with pytest.raises(HTTPException) as exc:
        resolve_listing_query(**params)
    assert exc.value.status_code == 400


def test_min_price_above_max_price_rejected():
    with pytest.raises(HTTPException) as exc:
        resolve_listing_query(min_price=50, max_price=10)
    assert exc.value.status_code == 400


def test_facets_parse_from_csv_and_lists():
    query = resolve_listing_query(availability=["in_stock,pre_order"], seller_types="verified")

    assert query.availability == {AvailabilityFacet.IN_STOCK, AvailabilityFacet.PRE_ORDER}
    assert query.seller_types == {SellerFacet.VERIFIED}


def test_blank_search_is_ignored():
    assert resolve_listing_query(search="   ").search is None


def test_category_is_matched_lower_case():
    assert resolve_listing_query(category=" Art ").category == "art"
    assert resolve_listing_query(search="Art").search == "Art"


# =========================
# FILTER / SORT
# =========================

def test_filter_always_restricts_to_active():
    where = build_filter(resolve_listing_query())
    assert where == {"$and": [{"status": "ACTIVE"}]}


def test_search_is_escaped():
    where = build_filter(resolve_listing_query(search="a.b*"))
    regex = where["$and"][1]["$or"][0]["name"]["$regex"]
    assert regex == r"a\.b\*"


def test_seller_ids_restrict_products():
    ids = [ObjectId()]
    where = build_filter(resolve_listing_query(seller_types="PREMIUM"), ids)
    assert {"seller_id": {"$in": ids}} in where["$and"]


def test_price_desc_forces_descending():
    sort = build_sort(resolve_listing_query(sort_by="price_desc", sort_order="asc"))
    assert sort[0] == ("price", DESCENDING)
    assert sort[-1] == ("_id", DESCENDING)


def test_each_sort_key_has_a_natural_direction():
    assert build_sort(resolve_listing_query())[0] == ("created_at", DESCENDING)
    assert build_sort(resolve_listing_query(sort_by="price"))[0] == ("price", ASCENDING)
    assert build_sort(resolve_listing_query(sort_by="name"))[0] == ("name", ASCENDING)
    assert build_sort(resolve_listing_query(sort_by="price", sort_order="desc"))[0] == ("price", DESCENDING)


def test_total_sales_sorts_on_sold_count():
    sort = build_sort(resolve_listing_query(sort_by="total_sales"))
    assert sort[0][0] == "sold_count"
    assert sort[1] == ("created_at", DESCENDING)


def test_paginate_and_page_count():
    assert paginate(resolve_listing_query(page=3, limit=10)).skip == 20
    assert page_count(0, 12) == 0
    assert page_count(15, 12) == 2
    assert page_count(24, 12) == 2
    assert page_count(25, 12) == 3


# =========================
# COMPUTED VALUES
# =========================

@pytest.mark.parametrize(
    "product, expected",
    [
        ({"pre_order": True, "inventory": 100}, AvailabilityFacet.PRE_ORDER),
        ({"inventory": 11}, AvailabilityFacet.IN_STOCK),
        ({"inventory": 10}, AvailabilityFacet.LOW_STOCK),
        ({"inventory": 1}, AvailabilityFacet.LOW_STOCK),
        ({"inventory": 0}, AvailabilityFacet.BACKORDER),
    ],
)
def test_availability_of(product, expected):
    assert availability_of(product) == expected


def test_seller_badges():
    seller = {"verification_status": "VERIFIED", "tier": "premium", "average_rating": 4.8, "total_sales": 10}
    assert seller_badges(seller) == ["VERIFIED", "PREMIUM", "TOP_RATED"]


def test_transform_keeps_only_primary_image_with_alt_fallback():
    product = {
        "_id": ObjectId(),
        "name": "Lamp",
        "inventory": 3,
        "images": [
            {"id": ObjectId(), "url": "b.png", "alt_text": "side", "position": 1},
            {"id": ObjectId(), "url": "a.png", "alt_text": None, "position": 0},
        ],
    }

    card = transform_product(product)

    assert len(card["images"]) == 1
    assert card["images"][0]["url"] == "a.png"
    assert card["images"][0]["alt"] == "Lamp"
    assert card["images"][0]["is_primary"] is True
    assert card["availability"] == "LOW_STOCK"
    assert isinstance(card["id"], str)


# =========================
# EXECUTION
# =========================

async def test_first_page_of_active_products(db):
    for i in range(15):
        await insert_product(db, f"Active {i}", age=i)
    for i in range(3):
        await insert_product(db, f"Hidden {i}", status="INACTIVE")

    query = resolve_listing_query()
    page = await list_products(db, query)
    body = listing_response(query, page)

    assert len(body["products"]) == 12
    assert body["pagination"] == {"page": 1, "limit": 12, "total": 15, "pages": 2}
    assert body["products"][0]["name"] == "Active 0"
    assert all(p["name"].startswith("Active") for p in body["products"])


async def test_availability_and_seller_facets(db):
    premium = await db.seller_profiles.insert_one({"user_id": ObjectId(), "business_name": "P", "tier": "premium"})
    standard = await db.seller_profiles.insert_one({"user_id": ObjectId(), "business_name": "S", "tier": "standard"})

    await insert_product(db, "Plenty", inventory=50, seller_id=premium.inserted_id)
    await insert_product(db, "Few", inventory=2, seller_id=premium.inserted_id)
    await insert_product(db, "Few Standard", inventory=2, seller_id=standard.inserted_id)
    await insert_product(db, "Soon", inventory=0, pre_order=True, seller_id=premium.inserted_id)

    query = resolve_listing_query(availability="LOW_STOCK", seller_types="PREMIUM")
    page = await list_products(db, query)

    assert [p["name"] for p in page.products] == ["Few"]
    assert page.products[0]["seller"]["badges"] == ["PREMIUM"]


async def _names(db, **params):
    page = await list_products(db, resolve_listing_query(**params))
    return [p["name"] for p in page.products]


async def test_price_bounds_are_inclusive(db):
    await insert_product(db, "Ten", price=10.0)
    await insert_product(db, "Twenty", price=20.0)
    await insert_product(db, "Thirty", price=30.0)
    await insert_product(db, "Forty", price=40.0)

    names = await _names(db, min_price=20, max_price=30, sort_by="price")

    assert names == ["Twenty", "Thirty"]


async def test_min_rating_is_a_floor(db):
    await insert_product(db, "Four", rating=4.0)
    await insert_product(db, "Almost Four", rating=3.9)

    assert await _names(db, min_rating=4) == ["Four"]


async def test_category_matches_exactly(db):
    await insert_product(db, "Canvas", category="art")
    await insert_product(db, "Frame", category="artwork")

    assert await _names(db, category="art") == ["Canvas"]
    assert await _names(db, category="Art") == ["Canvas"]


async def test_search_is_case_insensitive_over_description(db):
    await insert_product(db, "Reading Light", description="A brass desk lamp")
    await insert_product(db, "Stool", description="Three legs")

    assert await _names(db, search="LAMP") == ["Reading Light"]


async def test_equal_created_at_pages_deterministically(db):
    stamp = datetime(2024, 1, 1)
    for i in range(5):
        await insert_product(db, f"Tie {i}", created_at=stamp)

    first = await _names(db, limit=2, page=1) + await _names(db, limit=2, page=2) + await _names(db, limit=2, page=3)
    again = await _names(db, limit=2, page=1) + await _names(db, limit=2, page=2) + await _names(db, limit=2, page=3)

    assert first == again
    assert sorted(first) == [f"Tie {i}" for i in range(5)]
    # _id desc breaks the tie: newest insert first
    assert first == [f"Tie {i}" for i in reversed(range(5))]


async def test_public_listing_category_ignores_case(client, db):
    await insert_product(db, "Canvas", category="art")

    res = await client.get("/api/public/products", params={"category": "Art"})

    assert [p["name"] for p in res.json()["products"]] == ["Canvas"]


class _BrokenCollection:
    def find(self, *args, **kwargs):
        raise ServerSelectionTimeoutError("store unreachable")

    async def count_documents(self, *args, **kwargs):
        raise ServerSelectionTimeoutError("store unreachable")


class _BrokenDb:
    products = _BrokenCollection()
    seller_profiles = _BrokenCollection()


async def test_store_failure_yields_empty_page():
    page = await list_products(_BrokenDb(), resolve_listing_query())

    assert page.products == []
    assert page.total == 0


async def test_public_listing_endpoint(client, db):
    for i in range(3):
        await insert_product(db, f"Item {i}", price=10 + i)

    res = await client.get("/api/public/products", params={"sort_by": "price", "sort_order": "asc", "limit": 2})

    assert res.status_code == 200
    body = res.json()
    assert body["success"] is True
    assert [p["price"] for p in body["products"]] == [10, 11]
    assert body["pagination"] == {"page": 1, "limit": 2, "total": 3, "pages": 2}


async def test_public_listing_store_failure_is_empty_success(client):
    from main import app

    app.dependency_overrides[get_db] = lambda: _BrokenDb()
    res = await client.get("/api/public/products")

    assert res.status_code == 200
    assert res.json()["products"] == []
    assert res.json()["pagination"]["total"] == 0
    assert res.json()["pagination"]["pages"] == 0


async def test_public_listing_rejects_bad_page(client):
    res = await client.get("/api/public/products", params={"page": 0})

    assert res.status_code == 400
    assert "error" in res.json()
