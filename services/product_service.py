import logging

from fastapi import HTTPException, status
from sqlalchemy import delete, func, insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from models.category_model import Category
from models.catalog_model import (
    Product, ProductType, Tag, FilterGroup, FilterOption, Filter, Image,
    product_tags, product_images, product_filter_options,
)
from schemas.catalog_schema import (
    ProductCreate, ProductUpdate, ProductOut, ProductSummary, ProductDetail, VariantOut,
    TagOut, ImageOut, FilterOut, FilterOptionOut, FilterOptionWithFilter,
)
from services.catalog_service import get_or_404, FilterGroupService
from utils.text_utils import slugify, cartesian_product

logger = logging.getLogger(__name__)


class ProductService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def generate_slug(self, base: str, filter_option_ids: list[int]) -> str:
        """slugify(base) followed by the values of the given options, dash separated."""
        values = []
        for option_id in filter_option_ids:
            option = await self.db.get(FilterOption, option_id)
            values.append(option.value if option else "")
        return "-".join([slugify(base), *values])

    async def _check_references(self, category_id: int | None, filter_group_id: int | None):
        if category_id is not None and not await self.db.get(Category, category_id):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Category not found")
        if filter_group_id is not None and not await self.db.get(FilterGroup, filter_group_id):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Filter group not found")

    async def _create_variants(self, base: Product, option_lists: list[list[int]]) -> list[Product]:
        variants = []
        for option_ids in cartesian_product(option_lists):
            variant_name = f"{base.name} - {' / '.join(str(i) for i in option_ids)}"
            variant = Product(
                name=variant_name,
                slug=await self.generate_slug(variant_name, option_ids),
                sku=await self.generate_slug(base.sku, option_ids),
                description=base.description,
                price=base.price,
                stock=base.stock,
                type=ProductType.SIMPLE,
                parent_id=base.id,
                category_id=base.category_id,
                filter_group_id=base.filter_group_id,
            )
            self.db.add(variant)
            await self.db.flush()
            await self.db.execute(insert(product_filter_options), [
                {"product_id": variant.id, "filter_option_id": option_id} for option_id in option_ids
            ])
            variants.append(variant)
        return variants

    async def create_product(self, data: ProductCreate) -> ProductDetail:
        await self._check_references(data.category_id, data.filter_group_id)

        option_ids = {option_id for options in data.selected_filter_options for option_id in options}
        if option_ids:
            found = await self.db.scalar(select(func.count(FilterOption.id)).where(FilterOption.id.in_(option_ids)))
            if found != len(option_ids):
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Some filter options not found")
        if data.type == ProductType.CONFIGURABLE and not data.selected_filter_options:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Configurable products need at least one list of filter options",
            )

        base_slug = await self.generate_slug(data.name, [])
        product = Product(
            name=data.name,
            slug=base_slug,
            sku=base_slug,
            description=data.description,
            price=data.price,
            stock=data.stock,
            type=data.type,
            category_id=data.category_id,
            filter_group_id=data.filter_group_id,
        )
        try:
            self.db.add(product)
            await self.db.flush()
            if data.type == ProductType.CONFIGURABLE:
                await self._create_variants(product, data.selected_filter_options)
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            logger.error("Product creation failed: %s", e)
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Product creation failed")
        return await self.get_product_by_id(product.id)

    async def update_product(self, product_id: int, data: ProductUpdate) -> ProductDetail:
        product = await get_or_404(self.db, Product, product_id, "Product")
        changes = data.model_dump(exclude_unset=True)
        tag_ids = changes.pop("tag_ids", None)
        await self._check_references(changes.get("category_id"), changes.get("filter_group_id"))

        for field, value in changes.items():
            if field in ("name", "price", "stock") and value is None:
                continue
            setattr(product, field, value)

        if tag_ids is not None:
            tag_ids = list(dict.fromkeys(tag_ids))
            found = await self.db.scalar(select(func.count(Tag.id)).where(Tag.id.in_(tag_ids))) if tag_ids else 0
            if found != len(tag_ids):
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Some tags not found")
            await self.db.execute(delete(product_tags).where(product_tags.c.product_id == product_id))
            if tag_ids:
                await self.db.execute(insert(product_tags), [
                    {"product_id": product_id, "tag_id": tag_id} for tag_id in tag_ids
                ])
        await self.db.commit()
        return await self.get_product_by_id(product_id)

    async def _tags_by_product(self, product_ids: list[int]) -> dict:
        grouped = {product_id: [] for product_id in product_ids}
        if not product_ids:
            return grouped
        rows = await self.db.execute(
            select(product_tags.c.product_id, Tag)
            .join(Tag, Tag.id == product_tags.c.tag_id)
            .where(product_tags.c.product_id.in_(product_ids))
            .order_by(Tag.name)
        )
        for product_id, tag in rows.all():
            grouped[product_id].append(TagOut.model_validate(tag))
        return grouped

    async def get_products(self) -> list[ProductSummary]:
        """Parent products only, newest first."""
        rows = (await self.db.execute(
            select(Product, Category.name, Image.url)
            .outerjoin(Category, Category.id == Product.category_id)
            .outerjoin(Image, Image.id == Product.thumbnail_id)
            .where(Product.parent_id.is_(None))
            .order_by(Product.created_at.desc(), Product.id.desc())
        )).all()
        product_ids = [product.id for product, _, _ in rows]
        tags = await self._tags_by_product(product_ids)
        variant_counts = {}
        if product_ids:
            counts = await self.db.execute(
                select(Product.parent_id, func.count(Product.id))
                .where(Product.parent_id.in_(product_ids))
                .group_by(Product.parent_id)
            )
            variant_counts = dict(counts.all())
        return [
            ProductSummary(
                **ProductOut.model_validate(product).model_dump(),
                category_name=category_name,
                thumbnail_url=thumbnail_url,
                tags=tags[product.id],
                variant_count=variant_counts.get(product.id, 0),
            )
            for product, category_name, thumbnail_url in rows
        ]

    async def _options_with_filter(self, product_id: int) -> list[FilterOptionWithFilter]:
        rows = await self.db.execute(
            select(FilterOption, Filter)
            .join(product_filter_options, product_filter_options.c.filter_option_id == FilterOption.id)
            .join(Filter, Filter.id == FilterOption.filter_id)
            .where(product_filter_options.c.product_id == product_id)
            .order_by(FilterOption.id)
        )
        return [
            FilterOptionWithFilter(
                **FilterOptionOut.model_validate(option).model_dump(),
                filter=FilterOut.model_validate(parent),
            )
            for option, parent in rows.all()
        ]

    async def get_product_by_id(self, product_id: int) -> ProductDetail:
        product = await get_or_404(self.db, Product, product_id, "Product")
        category = await self.db.get(Category, product.category_id) if product.category_id else None
        thumbnail = await self.db.get(Image, product.thumbnail_id) if product.thumbnail_id else None
        filter_group = None
        if product.filter_group_id:
            filter_group = await FilterGroupService(self.db).get_filter_group(product.filter_group_id)

        variants = (await self.db.scalars(
            select(Product).where(Product.parent_id == product_id).order_by(Product.id)
        )).all()
        images = (await self.db.scalars(
            select(Image)
            .join(product_images, product_images.c.image_id == Image.id)
            .where(product_images.c.product_id == product_id)
            .order_by(Image.id)
        )).all()
        own_options = await self._options_with_filter(product_id)

        return ProductDetail(
            **ProductOut.model_validate(product).model_dump(),
            category_name=category.name if category else None,
            thumbnail=ImageOut.model_validate(thumbnail) if thumbnail else None,
            tags=(await self._tags_by_product([product_id]))[product_id],
            filter_options=[FilterOptionOut(**o.model_dump(exclude={"filter"})) for o in own_options],
            filter_group=filter_group,
            variants=[
                VariantOut(
                    **ProductOut.model_validate(variant).model_dump(),
                    filter_options=await self._options_with_filter(variant.id),
                )
                for variant in variants
            ],
            images=[ImageOut.model_validate(image) for image in images],
        )

    async def get_trending_products(self, limit: int = 8) -> list[ProductSummary]:
        return (await self.get_products())[:limit]
