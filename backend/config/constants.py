# backend/config/constants.py

# -----------------------------
# SELLER QUALITY BADGES
# -----------------------------

TOP_RATED_MIN_RATING = 4.5            # average seller rating
HIGH_VOLUME_MIN_SALES = 1000          # units sold across all products

# -----------------------------
# PRODUCTS
# -----------------------------

MAX_PRODUCT_IMAGES = 10
MAX_PRODUCT_TAGS = 10
META_DESCRIPTION_LENGTH = 160

# -----------------------------
# PLACEHOLDER IMAGES
# -----------------------------

MAX_PLACEHOLDER_DIMENSION = 2000      # px, both axes
PLACEHOLDER_CACHE_SECONDS = 3600

# -----------------------------
# SUPERUSER DASHBOARD
# -----------------------------

RECENT_ACTIVITY_LIMIT = 10
