from pydantic import BaseModel, Field, model_validator
from typing import List, Optional
from enum import Enum

from config.constants import MAX_PRODUCT_IMAGES, MAX_PRODUCT_TAGS


class ProductStatus(str, Enum):
    DRAFT = "DRAFT"
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    OUT_OF_STOCK = "OUT_OF_STOCK"


class Priority(str, Enum):
    LOW = "LOW"
    NORMAL = "NORMAL"
    HIGH = "HIGH"
    URGENT = "URGENT"


class ProductImageIn(BaseModel):
    url: str = Field(..., min_length=1)
    alt_text: Optional[str] = None


class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=10)

    price: float = Field(..., ge=0.01)
    compare_at_price: Optional[float] = Field(None, ge=0)
    sku: Optional[str] = None

    inventory: int = Field(..., ge=0)
    pre_order: bool = False

    category: Optional[str] = None
    tags: List[str] = []

    status: ProductStatus = ProductStatus.DRAFT
    featured: bool = False

    images: List[ProductImageIn] = Field(default_factory=list, max_length=MAX_PRODUCT_IMAGES)

    meta_title: Optional[str] = None
    meta_description: Optional[str] = None


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, min_length=10)

    price: Optional[float] = Field(None, ge=0.01)
    compare_at_price: Optional[float] = Field(None, ge=0)
    sku: Optional[str] = None

    inventory: Optional[int] = Field(None, ge=0)
    pre_order: Optional[bool] = None

    category: Optional[str] = None
    tags: Optional[List[str]] = None

    status: Optional[ProductStatus] = None
    featured: Optional[bool] = None

    images: Optional[List[ProductImageIn]] = Field(None, max_length=MAX_PRODUCT_IMAGES)

    meta_title: Optional[str] = None
    meta_description: Optional[str] = None


class SuperuserProductCreate(BaseModel):
    title: str = Field(..., min_length=3, max_length=200)
    description: str = Field(..., min_length=10)
    price: float = Field(..., ge=0.01)
    inventory: int = Field(..., ge=1)
    category: str = Field(..., min_length=1)
    images: List[str] = Field(..., min_length=1, max_length=MAX_PRODUCT_IMAGES)

    is_official: bool = True
    is_featured: bool = False
    is_promoted: bool = False
    priority: Priority = Priority.NORMAL
    auto_publish: bool = True

    seo_title: Optional[str] = Field(None, max_length=60)
    seo_description: Optional[str] = Field(None, max_length=160)
    tags: List[str] = Field(default_factory=list, max_length=MAX_PRODUCT_TAGS)


class FeatureProduct(BaseModel):
    featured: bool = True


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1)
    slug: str = Field(..., min_length=1)
    description: Optional[str] = None
    image: Optional[str] = None
    parent_id: Optional[str] = None


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    slug: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    image: Optional[str] = None
    parent_id: Optional[str] = None

    @model_validator(mode="after")
    def _not_empty(self):
        if not self.model_fields_set:
            raise ValueError("No fields to update")
        return self
