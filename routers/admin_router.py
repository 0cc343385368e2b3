from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from database import get_db
from dependencies.auth import require_admin
from models.category_model import Category
from models.catalog_model import Product, Tag, Image
from schemas.category_schema import (
    CategoryCreate, CategoryUpdate, ChildCategoryCreate, CategoryOut, CategoryNode, CategoryDetail
)
from services.category_service import CategoryService

router = APIRouter(prefix="/admin", tags=["Admin"], dependencies=[Depends(require_admin)])


@router.get("")
async def admin_overview(db: AsyncSession = Depends(get_db)):
    async def count(column):
        return await db.scalar(select(func.count(column)))

    return {
        "categories": await count(Category.id),
        "products": await db.scalar(select(func.count(Product.id)).where(Product.parent_id.is_(None))),
        "tags": await count(Tag.id),
        "images": await count(Image.id),
    }


# categories

@router.post("/categories", response_model=CategoryNode, status_code=201)
async def create_category(data: CategoryCreate, db: AsyncSession = Depends(get_db)):
    return await CategoryService(db).create_category(data)

@router.get("/categories", response_model=List[CategoryNode])
async def get_categories(db: AsyncSession = Depends(get_db)):
    return await CategoryService(db).get_categories()

@router.get("/categories/tree", response_model=List[CategoryNode])
async def get_category_tree(db: AsyncSession = Depends(get_db)):
    return await CategoryService(db).get_category_tree()

@router.get("/categories/slug/{slug}", response_model=CategoryDetail)
async def get_category_by_slug(slug: str, db: AsyncSession = Depends(get_db)):
    return await CategoryService(db).get_category_by_slug(slug)

@router.get("/categories/{category_id}", response_model=CategoryDetail)
async def get_category(category_id: int, db: AsyncSession = Depends(get_db)):
    return await CategoryService(db).get_category_by_id(category_id)

@router.get("/categories/{category_id}/path", response_model=List[str])
async def get_category_path(category_id: int, db: AsyncSession = Depends(get_db)):
    return await CategoryService(db).get_category_path(category_id)

@router.get("/categories/{category_id}/parent", response_model=Optional[CategoryOut])
async def get_category_parent(category_id: int, db: AsyncSession = Depends(get_db)):
    return await CategoryService(db).get_category_parent(category_id)

@router.post("/categories/{category_id}/children", response_model=CategoryNode, status_code=201)
async def create_child_category(category_id: int, data: ChildCategoryCreate, db: AsyncSession = Depends(get_db)):
    return await CategoryService(db).create_child_category(category_id, data)

@router.patch("/categories/{category_id}", response_model=CategoryNode)
async def update_category(category_id: int, data: CategoryUpdate, db: AsyncSession = Depends(get_db)):
    return await CategoryService(db).update_category(category_id, data)

@router.delete("/categories/{category_id}", response_model=CategoryOut)
async def delete_category(category_id: int, db: AsyncSession = Depends(get_db)):
    return await CategoryService(db).delete_category(category_id)
