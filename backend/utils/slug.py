import re


def make_slug(text: str) -> str:
    text = text.lower().strip()
    text = re.sub(r"[^a-z0-9]+", "-", text)
    return text.strip("-")


async def generate_unique_product_slug(db, base_slug: str) -> str:
    slug = base_slug or "product"
    base = slug
    counter = 1

    while await db.products.find_one({"slug": slug}, {"_id": 1}):
        slug = f"{base}-{counter}"
        counter += 1

    return slug
