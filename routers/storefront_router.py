from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from schemas.category_schema import CategoryNode
from services.category_service import CategoryService
from services.product_service import ProductService

router = APIRouter(tags=["Storefront"])


@router.get("/")
async def home(db: AsyncSession = Depends(get_db)):
    categories = await CategoryService(db).get_storefront_categories()
    return {
        "featured_categories": [
            {"id": c.id, "name": c.name, "slug": c.slug, "image_url": c.image_url} for c in categories
        ],
        "trending_products": await ProductService(db).get_trending_products(),
    }

@router.get("/categories", response_model=List[CategoryNode])
async def storefront_categories(parent_id: Optional[int] = Query(None), db: AsyncSession = Depends(get_db)):
    return await CategoryService(db).get_storefront_categories(parent_id)
