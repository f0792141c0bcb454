from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import FrozenSet, Optional
from enum import Enum

from config.env import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE


class AvailabilityFacet(str, Enum):
    IN_STOCK = "IN_STOCK"
    LOW_STOCK = "LOW_STOCK"
    BACKORDER = "BACKORDER"
    PRE_ORDER = "PRE_ORDER"


class SellerFacet(str, Enum):
    VERIFIED = "VERIFIED"
    PREMIUM = "PREMIUM"
    TOP_RATED = "TOP_RATED"
    HIGH_VOLUME = "HIGH_VOLUME"


class SortKey(str, Enum):
    CREATED_AT = "created_at"
    PRICE = "price"
    PRICE_DESC = "price_desc"
    NAME = "name"
    TOTAL_SALES = "total_sales"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


def _split_csv(value):
    if value is None:
        return frozenset()
    if isinstance(value, str):
        value = [value]
    items = []
    for raw in value:
        items.extend(part.strip() for part in str(raw).split(","))
    return frozenset(part.upper() for part in items if part)


class ListingQuery(BaseModel):
    """
    Normalized catalog listing parameters.

    Every field carries a concrete value once validated: blank strings become
    None, facet lists become frozensets, the page size is capped and the price
    range is checked. `max_price=None` means "no upper bound".
    """

    model_config = ConfigDict(frozen=True)

    page: int = Field(1, ge=1)
    limit: int = Field(DEFAULT_PAGE_SIZE, ge=1)

    search: Optional[str] = None
    category: Optional[str] = None
    featured_only: bool = False

    min_price: float = Field(0, ge=0)
    max_price: Optional[float] = Field(None, ge=0)
    min_rating: float = Field(0, ge=0, le=5)

    availability: FrozenSet[AvailabilityFacet] = frozenset()
    seller_types: FrozenSet[SellerFacet] = frozenset()

    sort_by: SortKey = SortKey.CREATED_AT
    # None means the natural direction of `sort_by`
    sort_order: Optional[SortOrder] = None

    @field_validator("search", "category", mode="before")
    @classmethod
    def _blank_to_none(cls, value):
        if value is None:
            return None
        value = str(value).strip()
        return value or None

    @field_validator("category")
    @classmethod
    def _lower_slug(cls, value):
        return value.lower() if value else value

    @field_validator("availability", "seller_types", mode="before")
    @classmethod
    def _parse_facets(cls, value):
        return _split_csv(value)

    @field_validator("limit")
    @classmethod
    def _cap_limit(cls, value: int) -> int:
        return min(value, MAX_PAGE_SIZE)

    @field_validator("sort_by", "sort_order", mode="before")
    @classmethod
    def _lower(cls, value):
        return value.lower() if isinstance(value, str) else value

    @model_validator(mode="after")
    def _check_price_range(self):
        if self.max_price is not None and self.min_price > self.max_price:
            raise ValueError("min_price cannot exceed max_price")
        return self
