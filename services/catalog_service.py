from fastapi import HTTPException, status
from sqlalchemy import delete, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from models.catalog_model import (
    Tag, Filter, FilterOption, FilterGroup, Product, product_tags, product_filter_options,
)
from schemas.catalog_schema import (
    TagCreate, TagOut, ProductOut,
    FilterCreate, FilterUpdate, FilterOut, FilterWithOptions,
    FilterOptionCreate, FilterOptionUpdate, FilterOptionOut, FilterOptionWithFilter,
    FilterGroupCreate, FilterGroupUpdate, FilterGroupOut,
)
from utils.text_utils import slugify


async def get_or_404(db: AsyncSession, model, object_id: int, label: str):
    obj = await db.get(model, object_id)
    if not obj:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{label} not found")
    return obj


class TagService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _ensure_slug_free(self, slug: str, exclude_id: int | None = None):
        query = select(Tag.id).where(Tag.slug == slug)
        if exclude_id is not None:
            query = query.where(Tag.id != exclude_id)
        if await self.db.scalar(query):
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"Slug '{slug}' already in use")

    async def create_tag(self, data: TagCreate) -> TagOut:
        slug = data.slug or slugify(data.name)
        await self._ensure_slug_free(slug)
        tag = Tag(name=data.name, slug=slug)
        self.db.add(tag)
        await self.db.commit()
        return TagOut.model_validate(tag)

    async def get_tags(self) -> list[TagOut]:
        tags = await self.db.scalars(select(Tag).order_by(Tag.name))
        return [TagOut.model_validate(tag) for tag in tags]

    async def get_tag_by_id(self, tag_id: int) -> TagOut:
        return TagOut.model_validate(await get_or_404(self.db, Tag, tag_id, "Tag"))

    async def get_tag_products(self, tag_id: int) -> list[ProductOut]:
        await get_or_404(self.db, Tag, tag_id, "Tag")
        products = await self.db.scalars(
            select(Product)
            .join(product_tags, product_tags.c.product_id == Product.id)
            .where(product_tags.c.tag_id == tag_id)
            .order_by(Product.id)
        )
        return [ProductOut.model_validate(product) for product in products]

    async def update_tag(self, tag_id: int, data: TagCreate) -> TagOut:
        tag = await get_or_404(self.db, Tag, tag_id, "Tag")
        slug = data.slug or slugify(data.name)
        await self._ensure_slug_free(slug, exclude_id=tag_id)
        tag.name = data.name
        tag.slug = slug
        await self.db.commit()
        return TagOut.model_validate(tag)

    async def delete_tag(self, tag_id: int):
        tag = await get_or_404(self.db, Tag, tag_id, "Tag")
        await self.db.execute(delete(product_tags).where(product_tags.c.tag_id == tag_id))
        await self.db.delete(tag)
        await self.db.commit()


class FilterService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _options_for(self, filter_ids: list[int]) -> dict:
        grouped = {filter_id: [] for filter_id in filter_ids}
        if not filter_ids:
            return grouped
        options = await self.db.scalars(
            select(FilterOption).where(FilterOption.filter_id.in_(filter_ids)).order_by(FilterOption.id)
        )
        for option in options:
            grouped[option.filter_id].append(FilterOptionOut.model_validate(option))
        return grouped

    async def with_options(self, filters: list[Filter]) -> list[FilterWithOptions]:
        options = await self._options_for([f.id for f in filters])
        return [
            FilterWithOptions(**FilterOut.model_validate(f).model_dump(), options=options[f.id])
            for f in filters
        ]

    async def create_filter(self, data: FilterCreate) -> FilterWithOptions:
        if data.filter_group_id is not None:
            await get_or_404(self.db, FilterGroup, data.filter_group_id, "Filter group")
        new_filter = Filter(name=data.name, filter_group_id=data.filter_group_id)
        self.db.add(new_filter)
        await self.db.flush()
        for value in data.options:
            self.db.add(FilterOption(value=value, filter_id=new_filter.id))
        await self.db.commit()
        return (await self.with_options([new_filter]))[0]

    async def create_filter_option(self, data: FilterOptionCreate) -> FilterOptionOut:
        await get_or_404(self.db, Filter, data.filter_id, "Filter")
        option = FilterOption(value=data.value, filter_id=data.filter_id)
        self.db.add(option)
        await self.db.commit()
        return FilterOptionOut.model_validate(option)

    async def get_filters(self) -> list[FilterWithOptions]:
        filters = (await self.db.scalars(select(Filter).order_by(Filter.name))).all()
        return await self.with_options(list(filters))

    async def get_filter_options(self, filter_id: int) -> list[FilterOptionWithFilter]:
        parent = await get_or_404(self.db, Filter, filter_id, "Filter")
        options = await self.db.scalars(
            select(FilterOption).where(FilterOption.filter_id == filter_id).order_by(FilterOption.id)
        )
        filter_out = FilterOut.model_validate(parent)
        return [
            FilterOptionWithFilter(**FilterOptionOut.model_validate(option).model_dump(), filter=filter_out)
            for option in options
        ]

    async def update_filter(self, filter_id: int, data: FilterUpdate) -> FilterWithOptions:
        existing = await get_or_404(self.db, Filter, filter_id, "Filter")
        changes = data.model_dump(exclude_unset=True)
        if changes.get("filter_group_id") is not None:
            await get_or_404(self.db, FilterGroup, changes["filter_group_id"], "Filter group")
        for field, value in changes.items():
            if field == "name" and value is None:
                continue
            setattr(existing, field, value)
        await self.db.commit()
        return (await self.with_options([existing]))[0]

    async def update_filter_option(self, option_id: int, data: FilterOptionUpdate) -> FilterOptionOut:
        option = await get_or_404(self.db, FilterOption, option_id, "Filter option")
        option.value = data.value
        await self.db.commit()
        return FilterOptionOut.model_validate(option)

    async def delete_filter(self, filter_id: int):
        existing = await get_or_404(self.db, Filter, filter_id, "Filter")
        option_ids = select(FilterOption.id).where(FilterOption.filter_id == filter_id)
        await self.db.execute(
            delete(product_filter_options).where(product_filter_options.c.filter_option_id.in_(option_ids))
        )
        await self.db.execute(delete(FilterOption).where(FilterOption.filter_id == filter_id))
        await self.db.delete(existing)
        await self.db.commit()

    async def delete_filter_option(self, option_id: int):
        option = await get_or_404(self.db, FilterOption, option_id, "Filter option")
        await self.db.execute(
            delete(product_filter_options).where(product_filter_options.c.filter_option_id == option_id)
        )
        await self.db.delete(option)
        await self.db.commit()


class FilterGroupService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.filters = FilterService(db)

    async def _out(self, group: FilterGroup) -> FilterGroupOut:
        filters = (await self.db.scalars(
            select(Filter).where(Filter.filter_group_id == group.id).order_by(Filter.name)
        )).all()
        product_ids = (await self.db.scalars(
            select(Product.id).where(Product.filter_group_id == group.id).order_by(Product.id)
        )).all()
        return FilterGroupOut(
            id=group.id,
            name=group.name,
            created_at=group.created_at,
            filters=await self.filters.with_options(list(filters)),
            product_ids=list(product_ids),
        )

    async def create_filter_group(self, data: FilterGroupCreate) -> FilterGroupOut:
        group = FilterGroup(name=data.name)
        self.db.add(group)
        await self.db.flush()
        for filter_id in data.filter_ids:
            existing = await get_or_404(self.db, Filter, filter_id, "Filter")
            existing.filter_group_id = group.id
        await self.db.commit()
        return await self._out(group)

    async def get_filter_groups(self) -> list[FilterGroupOut]:
        groups = await self.db.scalars(
            select(FilterGroup).order_by(FilterGroup.created_at.desc(), FilterGroup.id.desc())
        )
        return [await self._out(group) for group in groups.all()]

    async def get_filter_group(self, group_id: int) -> FilterGroupOut:
        return await self._out(await get_or_404(self.db, FilterGroup, group_id, "Filter group"))

    async def update_filter_group(self, group_id: int, data: FilterGroupUpdate) -> FilterGroupOut:
        group = await get_or_404(self.db, FilterGroup, group_id, "Filter group")
        group.name = data.name
        await self.db.commit()
        return await self._out(group)

    async def delete_filter_group(self, group_id: int):
        group = await get_or_404(self.db, FilterGroup, group_id, "Filter group")
        # filters survive their group
        await self.db.execute(update(Filter).where(Filter.filter_group_id == group_id).values(filter_group_id=None))
        await self.db.execute(update(Product).where(Product.filter_group_id == group_id).values(filter_group_id=None))
        await self.db.delete(group)
        await self.db.commit()

    async def get_available_filters(self) -> list[FilterWithOptions]:
        filters = (await self.db.scalars(
            select(Filter).where(Filter.filter_group_id.is_(None)).order_by(Filter.name)
        )).all()
        return await self.filters.with_options(list(filters))

    async def assign_filter_to_group(self, filter_id: int, group_id: int) -> FilterWithOptions:
        existing = await get_or_404(self.db, Filter, filter_id, "Filter")
        await get_or_404(self.db, FilterGroup, group_id, "Filter group")
        existing.filter_group_id = group_id
        await self.db.commit()
        return (await self.filters.with_options([existing]))[0]

    async def remove_filter_from_group(self, filter_id: int) -> FilterWithOptions:
        existing = await get_or_404(self.db, Filter, filter_id, "Filter")
        existing.filter_group_id = None
        await self.db.commit()
        return (await self.filters.with_options([existing]))[0]
