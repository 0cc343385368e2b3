# models/catalog_model.py

import enum

from sqlalchemy import Column, Integer, String, Float, Text, DateTime, Enum, ForeignKey, Table
from database import Base, utcnow


class ProductType(str, enum.Enum):
    SIMPLE = "SIMPLE"
    CONFIGURABLE = "CONFIGURABLE"


product_tags = Table(
    "product_tags",
    Base.metadata,
    Column("product_id", Integer, ForeignKey("products.id", ondelete="CASCADE"), primary_key=True),
    Column("tag_id", Integer, ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True),
)

product_images = Table(
    "product_images",
    Base.metadata,
    Column("product_id", Integer, ForeignKey("products.id", ondelete="CASCADE"), primary_key=True),
    Column("image_id", Integer, ForeignKey("images.id", ondelete="CASCADE"), primary_key=True),
)

product_filter_options = Table(
    "product_filter_options",
    Base.metadata,
    Column("product_id", Integer, ForeignKey("products.id", ondelete="CASCADE"), primary_key=True),
    Column("filter_option_id", Integer, ForeignKey("filter_options.id", ondelete="CASCADE"), primary_key=True),
)


class Tag(Base):
    __tablename__ = "tags"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    slug = Column(String, unique=True, index=True, nullable=False)


class FilterGroup(Base):
    __tablename__ = "filter_groups"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)


class Filter(Base):
    __tablename__ = "filters"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    filter_group_id = Column(Integer, ForeignKey("filter_groups.id", ondelete="SET NULL"), nullable=True, index=True)


class FilterOption(Base):
    __tablename__ = "filter_options"

    id = Column(Integer, primary_key=True, index=True)
    value = Column(String, nullable=False)
    filter_id = Column(Integer, ForeignKey("filters.id", ondelete="CASCADE"), nullable=False, index=True)


class Image(Base):
    __tablename__ = "images"

    id = Column(Integer, primary_key=True, index=True)
    url = Column(String, nullable=False)
    key = Column(String, unique=True, nullable=False)
    original_name = Column(String, nullable=True)
    content_type = Column(String, nullable=True)
    size = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    slug = Column(String, unique=True, index=True, nullable=False)
    sku = Column(String, unique=True, index=True, nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Float, nullable=False, default=0.0)
    stock = Column(Integer, nullable=False, default=0)
    type = Column(Enum(ProductType), nullable=False, default=ProductType.SIMPLE)
    # variants point at their configurable parent
    parent_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=True, index=True)
    category_id = Column(Integer, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True, index=True)
    filter_group_id = Column(Integer, ForeignKey("filter_groups.id", ondelete="SET NULL"), nullable=True)
    thumbnail_id = Column(Integer, ForeignKey("images.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
