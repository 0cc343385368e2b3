from typing import List, Optional

from pydantic import BaseModel, Field


class ChildCategoryCreate(BaseModel):
    name: str = Field(min_length=1)
    slug: Optional[str] = None


class CategoryCreate(BaseModel):
    name: str = Field(min_length=1)
    slug: Optional[str] = None
    parent_id: Optional[int] = None
    image_id: Optional[int] = None
    children: List[ChildCategoryCreate] = []


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    slug: Optional[str] = None
    parent_id: Optional[int] = None
    image_id: Optional[int] = None


class CategoryOut(BaseModel):
    id: int
    name: str
    slug: str
    parent_id: Optional[int] = None
    image_id: Optional[int] = None
    image_url: Optional[str] = None


class CategoryNode(CategoryOut):
    product_count: Optional[int] = None
    children: List["CategoryNode"] = []


class CategoryDetail(CategoryNode):
    parent: Optional[CategoryOut] = None


CategoryNode.model_rebuild()
