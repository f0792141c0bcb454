from datetime import datetime
from typing import List, Optional

from bson import ObjectId

from config.constants import META_DESCRIPTION_LENGTH
from models.product import Priority, ProductImageIn, ProductStatus
from utils.catalog import availability_of


def build_images(name: str, images: List[ProductImageIn]) -> List[dict]:
    """Positions follow list order; missing alt text is derived from the name."""
    return [
        {
            "id": ObjectId(),
            "url": img.url,
            "alt_text": img.alt_text or f"{name} - Image {index + 1}",
            "position": index,
        }
        for index, img in enumerate(images)
    ]


def new_product_doc(
    *,
    name: str,
    slug: str,
    description: str,
    price: float,
    inventory: int,
    seller_id,
    seller_user_id: ObjectId,
    images: List[dict],
    status: ProductStatus = ProductStatus.DRAFT,
    category: Optional[str] = None,
    tags: Optional[List[str]] = None,
    featured: bool = False,
    is_official: bool = False,
    is_promoted: bool = False,
    priority: Priority = Priority.NORMAL,
    pre_order: bool = False,
    compare_at_price: Optional[float] = None,
    sku: Optional[str] = None,
    meta_title: Optional[str] = None,
    meta_description: Optional[str] = None,
) -> dict:
    now = datetime.utcnow()
    return {
        "name": name,
        "slug": slug,
        "description": description,
        "price": price,
        "compare_at_price": compare_at_price,
        "sku": sku,
        "inventory": inventory,
        "pre_order": pre_order,
        "status": status.value,
        "featured": featured,
        "is_official": is_official,
        "is_promoted": is_promoted,
        "priority": priority.value,
        "category": category.lower() if category else None,
        "tags": [t.lower() for t in (tags or [])],
        "images": images,
        "seller_id": seller_id,
        "seller_user_id": seller_user_id,
        "meta_title": meta_title or name,
        "meta_description": meta_description or description[:META_DESCRIPTION_LENGTH],
        "rating": 0,
        "review_count": 0,
        "sold_count": 0,
        "published_at": now if status == ProductStatus.ACTIVE else None,
        "created_at": now,
        "updated_at": now,
    }


def _iso(value):
    return value.isoformat() if isinstance(value, datetime) else None


def serialize_product(product: dict) -> dict:
    """Owner/back-office view: every image, no reduction."""
    images = sorted(product.get("images") or [], key=lambda img: img.get("position", 0))
    return {
        "id": str(product["_id"]),
        "name": product.get("name"),
        "slug": product.get("slug"),
        "description": product.get("description"),
        "price": product.get("price"),
        "compare_at_price": product.get("compare_at_price"),
        "sku": product.get("sku"),
        "inventory": product.get("inventory", 0),
        "pre_order": bool(product.get("pre_order")),
        "availability": availability_of(product).value,
        "status": product.get("status"),
        "featured": bool(product.get("featured")),
        "is_official": bool(product.get("is_official")),
        "is_promoted": bool(product.get("is_promoted")),
        "priority": product.get("priority"),
        "category": product.get("category"),
        "tags": product.get("tags", []),
        "images": [
            {
                "id": str(img["id"]) if img.get("id") is not None else None,
                "url": img.get("url"),
                "alt": img.get("alt_text") or product.get("name"),
                "position": img.get("position", 0),
            }
            for img in images
        ],
        "meta_title": product.get("meta_title"),
        "meta_description": product.get("meta_description"),
        "rating": product.get("rating", 0),
        "review_count": product.get("review_count", 0),
        "sold_count": product.get("sold_count", 0),
        "published_at": _iso(product.get("published_at")),
        "created_at": _iso(product.get("created_at")),
        "updated_at": _iso(product.get("updated_at")),
    }


def product_stats(products: List[dict]) -> dict:
    return {
        "total": len(products),
        "published": sum(1 for p in products if p.get("status") == ProductStatus.ACTIVE.value),
        "featured": sum(1 for p in products if p.get("featured")),
        "official": sum(1 for p in products if p.get("is_official")),
    }
