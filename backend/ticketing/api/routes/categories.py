"""
Category endpoints. Listing is public; changes need admin rights.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from ticketing.core.permissions import CATEGORIES_MANAGE, require_capability
from ticketing.db.session import get_db
from ticketing.schemas.category import CategoryCreate, CategoryResponse
from ticketing.schemas.user import MessageResponse
from ticketing.services import category_service
from ticketing.services.cache_service import invalidate_event_cache

router = APIRouter(prefix="/categories", tags=["Categories"])
admin_only = Depends(require_capability(CATEGORIES_MANAGE))


@router.get("/", response_model=list[CategoryResponse])
async def list_categories(db: AsyncSession = Depends(get_db)):
    return await category_service.list_categories(db)


@router.post(
    "/",
    response_model=CategoryResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[admin_only],
)
async def create_category(data: CategoryCreate, db: AsyncSession = Depends(get_db)):
    return await category_service.create_category(db, data)


@router.put("/{category_id}", response_model=CategoryResponse, dependencies=[admin_only])
async def update_category(
    category_id: int,
    data: CategoryCreate,
    db: AsyncSession = Depends(get_db),
):
    category = await category_service.update_category(db, category_id, data)
    # Cached listings carry category_name
    await db.commit()
    await invalidate_event_cache()
    return category


@router.delete("/{category_id}", response_model=MessageResponse, dependencies=[admin_only])
async def delete_category(category_id: int, db: AsyncSession = Depends(get_db)):
    await category_service.delete_category(db, category_id)
    return MessageResponse(message="Category deleted successfully")
