from pymongo import ASCENDING, DESCENDING
from pymongo.errors import OperationFailure


def _normalize_key_pairs(keys):
    return [(k, v) for k, v in keys]


async def _create_index_safe(collection, keys, **kwargs):
    """
    Create index safely.
    If Mongo reports IndexOptionsConflict/IndexKeySpecsConflict for same key pattern,
    drop the conflicting index and recreate with desired options.
    """
    desired_key = _normalize_key_pairs(keys)
    desired_name = kwargs.get("name")
    try:
        await collection.create_index(keys, **kwargs)
        return
    except OperationFailure as e:
        if getattr(e, "code", None) not in {85, 86}:
            raise

        conflicting_names = []
        async for idx in collection.list_indexes():
            idx_key = _normalize_key_pairs(list(idx.get("key", {}).items()))
            if idx_key == desired_key:
                idx_name = idx.get("name")
                if idx_name and idx_name != desired_name:
                    conflicting_names.append(idx_name)

        for idx_name in conflicting_names:
            await collection.drop_index(idx_name)

        await collection.create_index(keys, **kwargs)


async def ensure_indexes(db):
    # Users: one record per email, provisioning relies on it
    await _create_index_safe(
        db.users,
        [("email", ASCENDING)],
        name="users_email_unique_idx",
        unique=True,
    )
    await _create_index_safe(
        db.users,
        [("is_superuser", ASCENDING), ("superuser_since", DESCENDING)],
        name="users_superuser_since_idx",
    )

    # Seller profiles
    await _create_index_safe(
        db.seller_profiles,
        [("user_id", ASCENDING)],
        name="seller_profiles_user_unique_idx",
        unique=True,
    )

    # Products
    await _create_index_safe(
        db.products,
        [("slug", ASCENDING)],
        name="products_slug_unique_idx",
        unique=True,
    )
    await _create_index_safe(
        db.products,
        [("status", ASCENDING), ("created_at", DESCENDING)],
        name="products_status_created_idx",
    )
    await _create_index_safe(
        db.products,
        [("status", ASCENDING), ("category", ASCENDING), ("price", ASCENDING)],
        name="products_status_category_price_idx",
    )
    await _create_index_safe(
        db.products,
        [("seller_user_id", ASCENDING), ("created_at", DESCENDING)],
        name="products_seller_user_created_idx",
    )

    # Categories
    await _create_index_safe(
        db.categories,
        [("slug", ASCENDING)],
        name="categories_slug_unique_idx",
        unique=True,
    )
    await _create_index_safe(
        db.categories,
        [("name", ASCENDING)],
        name="categories_name_unique_idx",
        unique=True,
    )

    # Carts
    await _create_index_safe(
        db.carts,
        [("user_id", ASCENDING)],
        name="carts_user_unique_idx",
        unique=True,
    )
    await _create_index_safe(
        db.cart_items,
        [("cart_id", ASCENDING), ("product_id", ASCENDING)],
        name="cart_items_cart_product_unique_idx",
        unique=True,
    )

    # Superuser activity
    await _create_index_safe(
        db.superuser_activity,
        [("user_id", ASCENDING), ("created_at", DESCENDING)],
        name="superuser_activity_user_created_idx",
    )

    # Login throttling
    await _create_index_safe(
        db.rate_limits,
        [("key", ASCENDING)],
        name="rate_limits_key_unique_idx",
        unique=True,
    )
