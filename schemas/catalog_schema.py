from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from models.catalog_model import ProductType


class ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# tags

class TagCreate(BaseModel):
    name: str = Field(min_length=1)
    slug: Optional[str] = None

class TagOut(ORMModel):
    id: int
    name: str
    slug: str


# filters

class FilterOptionCreate(BaseModel):
    value: str = Field(min_length=1)
    filter_id: int

class FilterOptionUpdate(BaseModel):
    value: str = Field(min_length=1)

class FilterOptionOut(ORMModel):
    id: int
    value: str
    filter_id: int

class FilterOptionWithFilter(FilterOptionOut):
    filter: "FilterOut"

class FilterCreate(BaseModel):
    name: str = Field(min_length=1)
    filter_group_id: Optional[int] = None
    options: List[str] = []

class FilterUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    filter_group_id: Optional[int] = None

class FilterOut(ORMModel):
    id: int
    name: str
    filter_group_id: Optional[int] = None

class FilterWithOptions(FilterOut):
    options: List[FilterOptionOut] = []

class FilterGroupCreate(BaseModel):
    name: str = Field(min_length=1)
    filter_ids: List[int] = []

class FilterGroupUpdate(BaseModel):
    name: str = Field(min_length=1)

class FilterGroupOut(ORMModel):
    id: int
    name: str
    created_at: datetime
    filters: List[FilterWithOptions] = []
    product_ids: List[int] = []


# images

class ImageOut(ORMModel):
    id: int
    url: str
    key: str
    original_name: Optional[str] = None
    content_type: Optional[str] = None
    size: Optional[int] = None
    created_at: datetime

class ImageDetail(ImageOut):
    category_ids: List[int] = []
    product_ids: List[int] = []

class ImagePage(BaseModel):
    images: List[ImageOut]
    total_count: int
    total_pages: int
    current_page: int
    has_next_page: bool
    has_previous_page: bool

class ProductImagesAdd(BaseModel):
    image_ids: List[int] = Field(min_length=1)


# products

class ProductCreate(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    price: float = Field(default=0.0, ge=0)
    stock: int = Field(default=0, ge=0)
    type: ProductType = ProductType.SIMPLE
    category_id: Optional[int] = None
    filter_group_id: Optional[int] = None
    # one list of filter option ids per filter; variants are their Cartesian product
    selected_filter_options: List[List[int]] = []

class ProductUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)
    stock: Optional[int] = Field(default=None, ge=0)
    category_id: Optional[int] = None
    filter_group_id: Optional[int] = None
    tag_ids: Optional[List[int]] = None

class ProductOut(ORMModel):
    id: int
    name: str
    slug: str
    sku: str
    description: Optional[str] = None
    price: float
    stock: int
    type: ProductType
    parent_id: Optional[int] = None
    category_id: Optional[int] = None
    filter_group_id: Optional[int] = None
    thumbnail_id: Optional[int] = None
    created_at: datetime

class VariantOut(ProductOut):
    filter_options: List[FilterOptionWithFilter] = []

class ProductSummary(ProductOut):
    category_name: Optional[str] = None
    thumbnail_url: Optional[str] = None
    tags: List[TagOut] = []
    variant_count: int = 0

class ProductDetail(ProductOut):
    category_name: Optional[str] = None
    thumbnail: Optional[ImageOut] = None
    tags: List[TagOut] = []
    filter_options: List[FilterOptionOut] = []
    filter_group: Optional[FilterGroupOut] = None
    variants: List[VariantOut] = []
    images: List[ImageOut] = []


FilterOptionWithFilter.model_rebuild()
