import asyncio
import logging
import re
from datetime import datetime
from typing import Iterable, List, NamedTuple, Optional

from pydantic import ValidationError as PydanticValidationError
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import PyMongoError

from config.constants import HIGH_VOLUME_MIN_SALES, TOP_RATED_MIN_RATING
from config.env import LOW_STOCK_THRESHOLD
from models.listing import AvailabilityFacet, ListingQuery, SellerFacet, SortKey, SortOrder
from models.product import ProductStatus
from models.user import SellerTier
from utils.errors import ValidationError

logger = logging.getLogger(__name__)

# =========================
# FACETS
# =========================

_NOT_PRE_ORDER = {"pre_order": {"$ne": True}}

# One predicate per facet value; a product matches exactly one of them.
AVAILABILITY_PREDICATES = {
    AvailabilityFacet.PRE_ORDER: {"pre_order": True},
    AvailabilityFacet.IN_STOCK: {**_NOT_PRE_ORDER, "inventory": {"$gt": LOW_STOCK_THRESHOLD}},
    AvailabilityFacet.LOW_STOCK: {**_NOT_PRE_ORDER, "inventory": {"$gt": 0, "$lte": LOW_STOCK_THRESHOLD}},
    AvailabilityFacet.BACKORDER: {**_NOT_PRE_ORDER, "inventory": {"$lte": 0}},
}

SELLER_PREDICATES = {
    SellerFacet.VERIFIED: {"verification_status": "VERIFIED"},
    SellerFacet.PREMIUM: {"tier": SellerTier.PREMIUM.value},
    SellerFacet.TOP_RATED: {"average_rating": {"$gte": TOP_RATED_MIN_RATING}},
    SellerFacet.HIGH_VOLUME: {"total_sales": {"$gte": HIGH_VOLUME_MIN_SALES}},
}


def availability_of(product: dict) -> AvailabilityFacet:
    if product.get("pre_order"):
        return AvailabilityFacet.PRE_ORDER

    inventory = product.get("inventory") or 0
    if inventory > LOW_STOCK_THRESHOLD:
        return AvailabilityFacet.IN_STOCK
    if inventory > 0:
        return AvailabilityFacet.LOW_STOCK
    return AvailabilityFacet.BACKORDER


def seller_badges(seller: dict) -> List[str]:
    badges = []
    if seller.get("verification_status") == "VERIFIED":
        badges.append(SellerFacet.VERIFIED.value)
    if seller.get("tier") == SellerTier.PREMIUM.value:
        badges.append(SellerFacet.PREMIUM.value)
    if (seller.get("average_rating") or 0) >= TOP_RATED_MIN_RATING:
        badges.append(SellerFacet.TOP_RATED.value)
    if (seller.get("total_sales") or 0) >= HIGH_VOLUME_MIN_SALES:
        badges.append(SellerFacet.HIGH_VOLUME.value)
    return badges


# =========================
# QUERY PARAMETERS
# =========================

def resolve_listing_query(**params) -> ListingQuery:
    """
    Build a ListingQuery from raw request parameters.
    Missing parameters take their defaults; bad ones raise ValidationError.
    """
    try:
        return ListingQuery(**{k: v for k, v in params.items() if v is not None})
    except PydanticValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ())) or "query"
        raise ValidationError(f"Invalid {field}: {first.get('msg')}")


# =========================
# FILTER / SORT / PAGINATION
# =========================

def build_seller_filter(seller_types: Iterable[SellerFacet]) -> Optional[dict]:
    facets = sorted(seller_types)
    if not facets:
        return None
    return {"$or": [SELLER_PREDICATES[f] for f in facets]}


def build_filter(query: ListingQuery, seller_ids: Optional[list] = None) -> dict:
    clauses: List[dict] = [{"status": ProductStatus.ACTIVE.value}]

    if query.search:
        pattern = re.escape(query.search)
        clauses.append({"$or": [
            {"name": {"$regex": pattern, "$options": "i"}},
            {"description": {"$regex": pattern, "$options": "i"}},
        ]})

    if query.category:
        clauses.append({"category": query.category})

    price: dict = {}
    if query.min_price > 0:
        price["$gte"] = query.min_price
    if query.max_price is not None:
        price["$lte"] = query.max_price
    if price:
        clauses.append({"price": price})

    if query.min_rating > 0:
        clauses.append({"rating": {"$gte": query.min_rating}})

    if query.featured_only:
        clauses.append({"featured": True})

    if query.availability:
        clauses.append({"$or": [AVAILABILITY_PREDICATES[f] for f in sorted(query.availability)]})

    if seller_ids is not None:
        clauses.append({"seller_id": {"$in": list(seller_ids)}})

    return {"$and": clauses}


SORT_FIELDS = {
    SortKey.CREATED_AT: "created_at",
    SortKey.PRICE: "price",
    SortKey.PRICE_DESC: "price",
    SortKey.NAME: "name",
    SortKey.TOTAL_SALES: "sold_count",
}


# direction used when the request names no sort_order
NATURAL_ORDER = {
    SortKey.CREATED_AT: SortOrder.DESC,
    SortKey.PRICE: SortOrder.ASC,
    SortKey.PRICE_DESC: SortOrder.DESC,
    SortKey.NAME: SortOrder.ASC,
    SortKey.TOTAL_SALES: SortOrder.DESC,
}


def build_sort(query: ListingQuery) -> list:
    field = SORT_FIELDS[query.sort_by]

    if query.sort_by == SortKey.PRICE_DESC:
        order = SortOrder.DESC
    else:
        order = query.sort_order or NATURAL_ORDER[query.sort_by]
    direction = DESCENDING if order == SortOrder.DESC else ASCENDING

    plan = [(field, direction)]
    if field != "created_at":
        plan.append(("created_at", DESCENDING))
    plan.append(("_id", DESCENDING))
    return plan


class Pagination(NamedTuple):
    skip: int
    limit: int


def paginate(query: ListingQuery) -> Pagination:
    return Pagination(skip=(query.page - 1) * query.limit, limit=query.limit)


def page_count(total: int, limit: int) -> int:
    if total <= 0:
        return 0
    return -(-total // limit)


# =========================
# RESULT SHAPING
# =========================

def _iso(value):
    return value.isoformat() if isinstance(value, datetime) else None


def transform_images(product: dict) -> List[dict]:
    images = sorted(product.get("images") or [], key=lambda img: img.get("position", 0))
    if not images:
        return []

    first_position = images[0].get("position", 0)
    primary = images[0]
    return [{
        "id": str(primary["id"]) if primary.get("id") is not None else None,
        "url": primary.get("url"),
        "alt": primary.get("alt_text") or product.get("name"),
        "is_primary": primary.get("position", 0) == first_position,
    }]


def transform_seller(seller: Optional[dict]) -> Optional[dict]:
    if not seller:
        return None
    return {
        "id": str(seller["_id"]),
        "business_name": seller.get("business_name"),
        "average_rating": seller.get("average_rating", 0),
        "is_official": bool(seller.get("is_official")),
        "badges": seller_badges(seller),
    }


def transform_product(product: dict, seller: Optional[dict] = None) -> dict:
    return {
        "id": str(product["_id"]),
        "name": product.get("name"),
        "slug": product.get("slug"),
        "description": product.get("description"),
        "price": product.get("price"),
        "compare_at_price": product.get("compare_at_price"),
        "category": product.get("category"),
        "tags": product.get("tags", []),
        "featured": bool(product.get("featured")),
        "is_official": bool(product.get("is_official")),
        "rating": product.get("rating", 0),
        "review_count": product.get("review_count", 0),
        "sold_count": product.get("sold_count", 0),
        "inventory": product.get("inventory", 0),
        "availability": availability_of(product).value,
        "images": transform_images(product),
        "seller": transform_seller(seller),
        "created_at": _iso(product.get("created_at")),
    }


# =========================
# EXECUTION
# =========================

class ListingPage(NamedTuple):
    products: List[dict]
    total: int


EMPTY_PAGE = ListingPage(products=[], total=0)


async def _sellers_by_id(db, seller_ids: set) -> dict:
    seller_ids = {sid for sid in seller_ids if sid is not None}
    if not seller_ids:
        return {}
    cursor = db.seller_profiles.find({"_id": {"$in": list(seller_ids)}})
    return {s["_id"]: s async for s in cursor}


async def list_products(db, query: ListingQuery) -> ListingPage:
    """
    Active products matching `query`, one page, plus the unpaginated total.

    Store failures are logged and reported as an empty page.
    """
    try:
        seller_ids = None
        seller_filter = build_seller_filter(query.seller_types)
        if seller_filter is not None:
            seller_ids = [s["_id"] async for s in db.seller_profiles.find(seller_filter, {"_id": 1})]

        where = build_filter(query, seller_ids)
        page = paginate(query)

        cursor = (
            db.products
            .find(where)
            .sort(build_sort(query))
            .skip(page.skip)
            .limit(page.limit)
        )
        products, total = await asyncio.gather(
            cursor.to_list(length=page.limit),
            db.products.count_documents(where),
        )

        sellers = await _sellers_by_id(db, {p.get("seller_id") for p in products})

    except PyMongoError:
        logger.exception("CATALOG_QUERY_ERROR query=%s", query.model_dump(mode="json"))
        return EMPTY_PAGE

    return ListingPage(
        products=[transform_product(p, sellers.get(p.get("seller_id"))) for p in products],
        total=total,
    )


def listing_response(query: ListingQuery, page: ListingPage) -> dict:
    return {
        "success": True,
        "products": page.products,
        "pagination": {
            "page": query.page,
            "limit": query.limit,
            "total": page.total,
            "pages": page_count(page.total, query.limit),
        },
    }
