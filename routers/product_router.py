from typing import List

from fastapi import APIRouter, Depends, File, Query, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from dependencies.auth import require_admin
from schemas.catalog_schema import (
    ProductCreate, ProductUpdate, ProductSummary, ProductDetail,
    ImageOut, ImageDetail, ImagePage, ProductImagesAdd,
)
from services.image_service import ImageService
from services.product_service import ProductService
from utils.storage import get_storage

router = APIRouter(prefix="/admin", tags=["Products"], dependencies=[Depends(require_admin)])


def get_image_service(db: AsyncSession = Depends(get_db), storage=Depends(get_storage)) -> ImageService:
    return ImageService(db, storage)


# products

@router.post("/products", response_model=ProductDetail, status_code=201)
async def create_product(data: ProductCreate, db: AsyncSession = Depends(get_db)):
    return await ProductService(db).create_product(data)

@router.get("/products", response_model=List[ProductSummary])
async def get_products(db: AsyncSession = Depends(get_db)):
    return await ProductService(db).get_products()

@router.get("/products/{product_id}", response_model=ProductDetail)
async def get_product(product_id: int, db: AsyncSession = Depends(get_db)):
    return await ProductService(db).get_product_by_id(product_id)

@router.patch("/products/{product_id}", response_model=ProductDetail)
async def update_product(product_id: int, data: ProductUpdate, db: AsyncSession = Depends(get_db)):
    return await ProductService(db).update_product(product_id, data)

@router.put("/products/{product_id}/thumbnail/{image_id}")
async def set_product_thumbnail(product_id: int, image_id: int, service: ImageService = Depends(get_image_service)):
    return await service.add_thumbnail_image_to_product(product_id, image_id)

@router.post("/products/{product_id}/images")
async def add_product_images(product_id: int, data: ProductImagesAdd,
                             service: ImageService = Depends(get_image_service)):
    return await service.add_images_to_product(product_id, data.image_ids)

@router.delete("/products/{product_id}/images/{image_id}")
async def remove_product_image(product_id: int, image_id: int, service: ImageService = Depends(get_image_service)):
    return await service.remove_single_image_from_product(product_id, image_id)


# images

@router.post("/images", response_model=ImageOut, status_code=201)
async def upload_image(file: UploadFile = File(...), service: ImageService = Depends(get_image_service)):
    return await service.upload_image(file)

@router.get("/images", response_model=List[ImageOut])
async def get_images(service: ImageService = Depends(get_image_service)):
    return await service.get_all_images()

@router.get("/images/page", response_model=ImagePage)
async def get_images_page(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    service: ImageService = Depends(get_image_service),
):
    return await service.get_images_with_pagination(page, limit)

@router.get("/images/{image_id}", response_model=ImageDetail)
async def get_image(image_id: int, service: ImageService = Depends(get_image_service)):
    return await service.get_image_by_id(image_id)

@router.delete("/images/{image_id}")
async def delete_image(image_id: int, service: ImageService = Depends(get_image_service)):
    return await service.delete_image(image_id)

@router.put("/categories/{category_id}/image/{image_id}")
async def set_category_image(category_id: int, image_id: int, service: ImageService = Depends(get_image_service)):
    return await service.add_image_to_category(category_id, image_id)
