from fastapi import HTTPException, status
from sqlalchemy import func, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from models.category_model import Category
from models.catalog_model import Image, Product
from schemas.category_schema import (
    CategoryCreate, CategoryUpdate, ChildCategoryCreate, CategoryOut, CategoryNode, CategoryDetail
)
from utils.text_utils import slugify


class CategoryService:
    """Category tree maintenance.

    The whole table is loaded flat and the tree is assembled in memory, so
    there is no depth limit on nesting.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _load(self, order_by_name: bool = False) -> list[CategoryOut]:
        query = select(Category, Image.url).outerjoin(Image, Category.image_id == Image.id)
        query = query.order_by(Category.name if order_by_name else Category.id)
        rows = (await self.db.execute(query)).all()
        return [self._out(category, image_url) for category, image_url in rows]

    @staticmethod
    def _out(category: Category, image_url: str | None = None) -> CategoryOut:
        return CategoryOut(
            id=category.id,
            name=category.name,
            slug=category.slug,
            parent_id=category.parent_id,
            image_id=category.image_id,
            image_url=image_url,
        )

    @staticmethod
    def _build_tree(categories: list[CategoryOut], root_parent_id: int | None = None,
                    product_counts: dict | None = None) -> list[CategoryNode]:
        nodes = {
            c.id: CategoryNode(
                **c.model_dump(),
                product_count=product_counts.get(c.id, 0) if product_counts is not None else None,
            )
            for c in categories
        }
        roots = []
        for c in categories:
            node = nodes[c.id]
            if c.parent_id == root_parent_id:
                roots.append(node)
            elif c.parent_id in nodes:
                nodes[c.parent_id].children.append(node)
        return roots

    async def _product_counts(self) -> dict:
        rows = await self.db.execute(
            select(Product.category_id, func.count(Product.id)).group_by(Product.category_id)
        )
        return {category_id: count for category_id, count in rows.all()}

    async def _get_or_404(self, category_id: int) -> Category:
        category = await self.db.get(Category, category_id)
        if not category:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Category not found")
        return category

    async def _ensure_slug_free(self, slug: str, exclude_id: int | None = None):
        query = select(Category.id).where(Category.slug == slug)
        if exclude_id is not None:
            query = query.where(Category.id != exclude_id)
        if await self.db.scalar(query):
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"Slug '{slug}' already in use")

    async def _ensure_image(self, image_id: int | None):
        if image_id is not None and not await self.db.get(Image, image_id):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Image not found")

    async def _node(self, category_id: int) -> CategoryNode:
        categories = await self._load(order_by_name=True)
        node = next(c for c in categories if c.id == category_id)
        children = self._build_tree(categories, root_parent_id=category_id)
        return CategoryNode(**node.model_dump(), children=children)

    async def create_category(self, data: CategoryCreate) -> CategoryNode:
        if data.parent_id is not None:
            parent = await self.db.get(Category, data.parent_id)
            if not parent:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Parent category not found")
        await self._ensure_image(data.image_id)

        slug = data.slug or slugify(data.name)
        child_slugs = [child.slug or slugify(child.name) for child in data.children]
        for candidate in [slug, *child_slugs]:
            await self._ensure_slug_free(candidate)
        if len({slug, *child_slugs}) != len(child_slugs) + 1:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Duplicate slugs in request")

        category = Category(name=data.name, slug=slug, parent_id=data.parent_id, image_id=data.image_id)
        self.db.add(category)
        await self.db.flush()
        for child, child_slug in zip(data.children, child_slugs):
            self.db.add(Category(name=child.name, slug=child_slug, parent_id=category.id))
        await self.db.commit()
        return await self._node(category.id)

    async def create_child_category(self, parent_id: int, data: ChildCategoryCreate) -> CategoryNode:
        await self._get_or_404(parent_id)
        return await self.create_category(CategoryCreate(name=data.name, slug=data.slug, parent_id=parent_id))

    async def get_category_path(self, category_id: int) -> list[str]:
        """Names from the root down to the category; empty when it does not exist."""
        by_id = {c.id: c for c in await self._load()}
        path = []
        current = by_id.get(category_id)
        seen = set()
        while current and current.id not in seen:
            seen.add(current.id)
            path.insert(0, current.name)
            current = by_id.get(current.parent_id)
        return path

    async def get_category_tree(self) -> list[CategoryNode]:
        return self._build_tree(await self._load(order_by_name=True))

    async def get_categories(self) -> list[CategoryNode]:
        return self._build_tree(await self._load())

    async def get_storefront_categories(self, parent_id: int | None = None) -> list[CategoryNode]:
        return self._build_tree(await self._load(order_by_name=True), root_parent_id=parent_id)

    async def get_category_by_id(self, category_id: int) -> CategoryDetail:
        await self._get_or_404(category_id)
        categories = await self._load(order_by_name=True)
        counts = await self._product_counts()
        by_id = {c.id: c for c in categories}
        node = by_id[category_id]
        return CategoryDetail(
            **node.model_dump(),
            product_count=counts.get(category_id, 0),
            children=self._build_tree(categories, root_parent_id=category_id, product_counts=counts),
            parent=by_id.get(node.parent_id),
        )

    async def get_category_by_slug(self, slug: str) -> CategoryDetail:
        category_id = await self.db.scalar(select(Category.id).where(Category.slug == slug))
        if category_id is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Category not found")
        categories = await self._load(order_by_name=True)
        by_id = {c.id: c for c in categories}
        node = by_id[category_id]
        children = [CategoryNode(**c.model_dump()) for c in categories if c.parent_id == category_id]
        return CategoryDetail(**node.model_dump(), children=children, parent=by_id.get(node.parent_id))

    async def get_category_parent(self, category_id: int) -> CategoryOut | None:
        category = await self._get_or_404(category_id)
        if category.parent_id is None:
            return None
        return self._out(await self.db.get(Category, category.parent_id))

    async def update_category(self, category_id: int, data: CategoryUpdate) -> CategoryNode:
        category = await self._get_or_404(category_id)
        changes = data.model_dump(exclude_unset=True)

        if changes.get("parent_id") is not None:
            parent_id = changes["parent_id"]
            if not await self.db.get(Category, parent_id):
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Parent category not found")
            # the new parent must not sit inside this category's subtree
            by_id = {c.id: c for c in await self._load()}
            current = by_id.get(parent_id)
            while current:
                if current.id == category_id:
                    raise HTTPException(
                        status_code=status.HTTP_400_BAD_REQUEST,
                        detail="A category cannot be moved under itself or one of its descendants",
                    )
                current = by_id.get(current.parent_id)
        if changes.get("slug"):
            await self._ensure_slug_free(changes["slug"], exclude_id=category_id)
        elif "slug" in changes:
            changes.pop("slug")
        if "image_id" in changes:
            await self._ensure_image(changes["image_id"])

        for field, value in changes.items():
            if field == "name" and value is None:
                continue
            setattr(category, field, value)
        await self.db.commit()
        return await self._node(category_id)

    async def delete_category(self, category_id: int) -> CategoryOut:
        category = await self._get_or_404(category_id)
        deleted = self._out(category)
        # children become roots, products lose their category
        await self.db.execute(update(Category).where(Category.parent_id == category_id).values(parent_id=None))
        await self.db.execute(update(Product).where(Product.category_id == category_id).values(category_id=None))
        await self.db.delete(category)
        await self.db.commit()
        return deleted
