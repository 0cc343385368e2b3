from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from database import get_db
from dependencies.auth import require_admin
from schemas.catalog_schema import (
    TagCreate, TagOut, ProductOut,
    FilterCreate, FilterUpdate, FilterWithOptions,
    FilterOptionCreate, FilterOptionUpdate, FilterOptionOut, FilterOptionWithFilter,
    FilterGroupCreate, FilterGroupUpdate, FilterGroupOut,
)
from services.catalog_service import TagService, FilterService, FilterGroupService

router = APIRouter(prefix="/admin", tags=["Catalog"], dependencies=[Depends(require_admin)])


# tags

@router.post("/tags", response_model=TagOut, status_code=201)
async def create_tag(data: TagCreate, db: AsyncSession = Depends(get_db)):
    return await TagService(db).create_tag(data)

@router.get("/tags", response_model=List[TagOut])
async def get_tags(db: AsyncSession = Depends(get_db)):
    return await TagService(db).get_tags()

@router.get("/tags/{tag_id}", response_model=TagOut)
async def get_tag(tag_id: int, db: AsyncSession = Depends(get_db)):
    return await TagService(db).get_tag_by_id(tag_id)

@router.get("/tags/{tag_id}/products", response_model=List[ProductOut])
async def get_tag_products(tag_id: int, db: AsyncSession = Depends(get_db)):
    return await TagService(db).get_tag_products(tag_id)

@router.put("/tags/{tag_id}", response_model=TagOut)
async def update_tag(tag_id: int, data: TagCreate, db: AsyncSession = Depends(get_db)):
    return await TagService(db).update_tag(tag_id, data)

@router.delete("/tags/{tag_id}")
async def delete_tag(tag_id: int, db: AsyncSession = Depends(get_db)):
    await TagService(db).delete_tag(tag_id)
    return {"success": "Tag deleted successfully"}


# filters and filter options

@router.post("/filters", response_model=FilterWithOptions, status_code=201)
async def create_filter(data: FilterCreate, db: AsyncSession = Depends(get_db)):
    return await FilterService(db).create_filter(data)

@router.get("/filters", response_model=List[FilterWithOptions])
async def get_filters(db: AsyncSession = Depends(get_db)):
    return await FilterService(db).get_filters()

@router.get("/filters/available", response_model=List[FilterWithOptions])
async def get_available_filters(db: AsyncSession = Depends(get_db)):
    return await FilterGroupService(db).get_available_filters()

@router.patch("/filters/{filter_id}", response_model=FilterWithOptions)
async def update_filter(filter_id: int, data: FilterUpdate, db: AsyncSession = Depends(get_db)):
    return await FilterService(db).update_filter(filter_id, data)

@router.delete("/filters/{filter_id}")
async def delete_filter(filter_id: int, db: AsyncSession = Depends(get_db)):
    await FilterService(db).delete_filter(filter_id)
    return {"success": "Filter deleted successfully"}

@router.get("/filters/{filter_id}/options", response_model=List[FilterOptionWithFilter])
async def get_filter_options(filter_id: int, db: AsyncSession = Depends(get_db)):
    return await FilterService(db).get_filter_options(filter_id)

@router.post("/filter-options", response_model=FilterOptionOut, status_code=201)
async def create_filter_option(data: FilterOptionCreate, db: AsyncSession = Depends(get_db)):
    return await FilterService(db).create_filter_option(data)

@router.put("/filter-options/{option_id}", response_model=FilterOptionOut)
async def update_filter_option(option_id: int, data: FilterOptionUpdate, db: AsyncSession = Depends(get_db)):
    return await FilterService(db).update_filter_option(option_id, data)

@router.delete("/filter-options/{option_id}")
async def delete_filter_option(option_id: int, db: AsyncSession = Depends(get_db)):
    await FilterService(db).delete_filter_option(option_id)
    return {"success": "Filter option deleted successfully"}


# filter groups

@router.post("/filter-groups", response_model=FilterGroupOut, status_code=201)
async def create_filter_group(data: FilterGroupCreate, db: AsyncSession = Depends(get_db)):
    return await FilterGroupService(db).create_filter_group(data)

@router.get("/filter-groups", response_model=List[FilterGroupOut])
async def get_filter_groups(db: AsyncSession = Depends(get_db)):
    return await FilterGroupService(db).get_filter_groups()

@router.get("/filter-groups/{group_id}", response_model=FilterGroupOut)
async def get_filter_group(group_id: int, db: AsyncSession = Depends(get_db)):
    return await FilterGroupService(db).get_filter_group(group_id)

@router.put("/filter-groups/{group_id}", response_model=FilterGroupOut)
async def update_filter_group(group_id: int, data: FilterGroupUpdate, db: AsyncSession = Depends(get_db)):
    return await FilterGroupService(db).update_filter_group(group_id, data)

@router.delete("/filter-groups/{group_id}")
async def delete_filter_group(group_id: int, db: AsyncSession = Depends(get_db)):
    await FilterGroupService(db).delete_filter_group(group_id)
    return {"success": "Filter group deleted successfully"}

@router.put("/filter-groups/{group_id}/filters/{filter_id}", response_model=FilterWithOptions)
async def assign_filter_to_group(group_id: int, filter_id: int, db: AsyncSession = Depends(get_db)):
    return await FilterGroupService(db).assign_filter_to_group(filter_id, group_id)

@router.delete("/filter-groups/{group_id}/filters/{filter_id}", response_model=FilterWithOptions)
async def remove_filter_from_group(group_id: int, filter_id: int, db: AsyncSession = Depends(get_db)):
    return await FilterGroupService(db).remove_filter_from_group(filter_id)
