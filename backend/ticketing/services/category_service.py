"""
Category service: public listing and admin CRUD.
"""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ticketing.core.exceptions import InvalidInputError, NotFoundError
from ticketing.core.logging import get_logger
from ticketing.models.category import Category
from ticketing.models.event import Event
from ticketing.schemas.category import CategoryCreate

logger = get_logger(__name__)


def _require_name(data: CategoryCreate) -> str:
    name = (data.name or "").strip()
    if not name:
        raise InvalidInputError("Category name is required")
    return name


async def _ensure_unique_name(db: AsyncSession, name: str, exclude_id: int | None = None) -> None:
    query = select(Category.id).where(Category.name == name)
    if exclude_id is not None:
        query = query.where(Category.id != exclude_id)
    if (await db.execute(query)).first() is not None:
        raise InvalidInputError("Category already exists")


async def list_categories(db: AsyncSession) -> list[Category]:
    result = await db.execute(select(Category).order_by(Category.name.asc()))
    return list(result.scalars().all())


async def get_category(db: AsyncSession, category_id: int) -> Category:
    category = await db.get(Category, category_id)
    if category is None:
        raise NotFoundError("Category not found")
    return category


async def create_category(db: AsyncSession, data: CategoryCreate) -> Category:
    name = _require_name(data)
    await _ensure_unique_name(db, name)

    category = Category(name=name, description=data.description)
    db.add(category)
    await db.flush()
    await db.refresh(category)

    logger.info("category_created", category_id=category.id, name=name)
    return category


async def update_category(db: AsyncSession, category_id: int, data: CategoryCreate) -> Category:
    name = _require_name(data)
    category = await get_category(db, category_id)
    await _ensure_unique_name(db, name, exclude_id=category_id)

    category.name = name
    category.description = data.description
    await db.flush()
    await db.refresh(category)

    logger.info("category_updated", category_id=category_id, name=name)
    return category


async def delete_category(db: AsyncSession, category_id: int) -> None:
    """Delete a category that no event references."""
    category = await get_category(db, category_id)

    in_use = (
        await db.execute(select(func.count(Event.id)).where(Event.category_id == category_id))
    ).scalar()
    if in_use:
        raise InvalidInputError("Cannot delete category that is being used by events")

    await db.delete(category)
    await db.flush()
    logger.info("category_deleted", category_id=category_id)
