import logging
import math
import uuid

from botocore.exceptions import BotoCoreError, ClientError
from fastapi import HTTPException, UploadFile, status
from fastapi.concurrency import run_in_threadpool
from sqlalchemy import delete, func, insert, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from database import utcnow
from models.category_model import Category
from models.catalog_model import Image, Product, product_images
from schemas.catalog_schema import ImageOut, ImageDetail, ImagePage
from services.catalog_service import get_or_404
from utils.storage import ObjectStorage
from utils.text_utils import sanitize_filename

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_TYPES = ["image/jpeg", "image/png", "image/webp", "image/gif"]
MAX_FILE_SIZE = 10 * 1024 * 1024  # 10MB
IMAGE_PREFIX = "all-images"


def validate_image(content_type: str | None, size: int) -> str | None:
    if content_type not in ALLOWED_IMAGE_TYPES:
        return "Invalid file type. Only JPEG, PNG, WebP, and GIF are allowed."
    if size > MAX_FILE_SIZE:
        return "File size too large. Maximum size is 10MB."
    return None


class ImageService:
    def __init__(self, db: AsyncSession, storage: ObjectStorage | None):
        self.db = db
        self.storage = storage

    def _require_storage(self) -> ObjectStorage:
        if self.storage is None:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Object storage is not initialized",
            )
        return self.storage

    async def upload_image(self, file: UploadFile) -> ImageOut:
        if file is None or not file.filename:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No file provided")
        data = await file.read()
        validation_error = validate_image(file.content_type, len(data))
        if validation_error:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=validation_error)

        storage = self._require_storage()
        key = f"{IMAGE_PREFIX}/{uuid.uuid4()}-{sanitize_filename(file.filename)}"
        try:
            url = await run_in_threadpool(
                storage.upload_bytes,
                key,
                data,
                content_type=file.content_type,
                metadata={"originalName": file.filename, "uploadedAt": utcnow().isoformat()},
            )
        except (BotoCoreError, ClientError) as e:
            logger.error("Upload of %s failed: %s", file.filename, e)
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to upload image to storage")

        image = Image(
            url=url,
            key=key,
            original_name=file.filename,
            content_type=file.content_type,
            size=len(data),
        )
        self.db.add(image)
        await self.db.commit()
        return ImageOut.model_validate(image)

    async def get_all_images(self) -> list[ImageOut]:
        images = await self.db.scalars(select(Image).order_by(Image.id.desc()))
        return [ImageOut.model_validate(image) for image in images]

    async def get_images_with_pagination(self, page: int = 1, limit: int = 20) -> ImagePage:
        total_count = await self.db.scalar(select(func.count(Image.id)))
        images = await self.db.scalars(
            select(Image).order_by(Image.id.desc()).offset((page - 1) * limit).limit(limit)
        )
        total_pages = math.ceil(total_count / limit)
        return ImagePage(
            images=[ImageOut.model_validate(image) for image in images],
            total_count=total_count,
            total_pages=total_pages,
            current_page=page,
            has_next_page=page < total_pages,
            has_previous_page=page > 1,
        )

    async def _usage(self, image_id: int) -> tuple[list[int], list[int]]:
        category_ids = (await self.db.scalars(
            select(Category.id).where(Category.image_id == image_id)
        )).all()
        thumbnail_of = (await self.db.scalars(
            select(Product.id).where(Product.thumbnail_id == image_id)
        )).all()
        gallery_of = (await self.db.scalars(
            select(product_images.c.product_id).where(product_images.c.image_id == image_id)
        )).all()
        return list(category_ids), sorted(set(thumbnail_of) | set(gallery_of))

    async def get_image_by_id(self, image_id: int) -> ImageDetail:
        image = await get_or_404(self.db, Image, image_id, "Image")
        category_ids, product_ids = await self._usage(image_id)
        return ImageDetail(
            **ImageOut.model_validate(image).model_dump(),
            category_ids=category_ids,
            product_ids=product_ids,
        )

    async def add_image_to_category(self, category_id: int, image_id: int):
        category = await get_or_404(self.db, Category, category_id, "Category")
        await get_or_404(self.db, Image, image_id, "Image")
        category.image_id = image_id
        await self.db.commit()
        return {"success": True}

    async def add_thumbnail_image_to_product(self, product_id: int, image_id: int):
        product = await get_or_404(self.db, Product, product_id, "Product")
        await get_or_404(self.db, Image, image_id, "Image")
        product.thumbnail_id = image_id
        await self.db.commit()
        return {"success": True}

    async def add_images_to_product(self, product_id: int, image_ids: list[int]):
        await get_or_404(self.db, Product, product_id, "Product")
        image_ids = list(dict.fromkeys(image_ids))
        found = await self.db.scalar(select(func.count(Image.id)).where(Image.id.in_(image_ids)))
        if found != len(image_ids):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Some images not found")

        linked = set((await self.db.scalars(
            select(product_images.c.image_id).where(product_images.c.product_id == product_id)
        )).all())
        new_links = [
            {"product_id": product_id, "image_id": image_id}
            for image_id in image_ids if image_id not in linked
        ]
        if new_links:
            await self.db.execute(insert(product_images), new_links)
        await self.db.commit()
        return {"success": True}

    async def remove_single_image_from_product(self, product_id: int, image_id: int):
        await get_or_404(self.db, Product, product_id, "Product")
        await self.db.execute(
            delete(product_images).where(
                product_images.c.product_id == product_id, product_images.c.image_id == image_id
            )
        )
        await self.db.commit()
        return {"success": True}

    async def delete_image(self, image_id: int):
        image = await get_or_404(self.db, Image, image_id, "Image")
        storage = self._require_storage()

        category_ids, product_ids = await self._usage(image_id)
        if category_ids or product_ids:
            logger.warning("Deleting image %s that is currently in use", image_id)

        try:
            await run_in_threadpool(storage.delete, image.key)
        except (BotoCoreError, ClientError) as e:
            # the database row goes regardless of what storage says
            logger.error("Error deleting %s from storage: %s", image.key, e)

        await self.db.execute(update(Category).where(Category.image_id == image_id).values(image_id=None))
        await self.db.execute(update(Product).where(Product.thumbnail_id == image_id).values(thumbnail_id=None))
        await self.db.execute(delete(product_images).where(product_images.c.image_id == image_id))
        await self.db.delete(image)
        await self.db.commit()
        return {"success": True}
