"""
Admin Category Routes

CRUD for product categories:
- GET    /api/admin/categories       list with product counts
- POST   /api/admin/categories       create
- GET    /api/admin/categories/{id}  detail with parent and children
- PUT    /api/admin/categories/{id}  partial update
- DELETE /api/admin/categories/{id}  delete (only when no products use it)

Names and slugs are unique. When no slug is given it is derived from the
name (e.g. "Frutos Secos" -> "frutos-secos").
"""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload

from storefront.database import get_db
from storefront.dependencies import require_admin
from storefront.models import Category, Product
from storefront.services import catalog
from storefront.services.serializers import category_to_dict
from storefront.utils.text import generate_slug
from storefront.utils.validators import parse_id, sanitize_string


router = APIRouter(prefix="/api/admin/categories", tags=["admin"], dependencies=[Depends(require_admin)])


class CategoryPayload(BaseModel):
    name: str | None = None
    slug: str | None = None
    description: str | None = None
    image: str | None = None
    parentId: Any = None


async def _find_by(db: AsyncSession, **filters) -> Category | None:
    result = await db.execute(select(Category).filter_by(**filters))
    return result.scalars().first()


async def _product_count(db: AsyncSession, category_id: int) -> int:
    return await db.scalar(select(func.count(Product.id)).filter(Product.category_id == category_id))


def _category_id(raw: str) -> int:
    category_id = parse_id(raw)
    if category_id is None:
        raise HTTPException(status_code=400, detail="ID de categoría inválido")
    return category_id


@router.get("")
async def list_categories(db: AsyncSession = Depends(get_db)):
    rows = await catalog.get_categories(db)
    return [category_to_dict(category, count) for category, count in rows]


@router.post("", status_code=201)
async def create_category(payload: CategoryPayload, db: AsyncSession = Depends(get_db)):
    """
    Create a category.

    Validation order: name present, name unique, slug unique, parent exists.
    A duplicate name is reported as such even though its derived slug
    would collide too.
    Conflicts are reported as 400, not 409.
    """
    name = sanitize_string(payload.name)
    if not name:
        raise HTTPException(status_code=400, detail="El nombre de la categoría es requerido")

    slug = sanitize_string(payload.slug) if payload.slug else generate_slug(name)
    description = sanitize_string(payload.description) if payload.description else None
    image = sanitize_string(payload.image) if payload.image else None
    parent_id = parse_id(payload.parentId) if payload.parentId else None

    if await _find_by(db, name=name):
        raise HTTPException(status_code=400, detail="Ya existe una categoría con ese nombre")

    if await _find_by(db, slug=slug):
        raise HTTPException(status_code=400, detail="Ya existe una categoría con ese slug")

    if parent_id and not await _find_by(db, id=parent_id):
        raise HTTPException(status_code=400, detail="La categoría padre no existe")

    category = Category(
        name=name,
        slug=slug,
        description=description,
        image=image,
        parent_id=parent_id,
    )
    db.add(category)
    await db.commit()
    await db.refresh(category)

    return category_to_dict(category)


@router.get("/{category_id}")
async def get_category(category_id: str, db: AsyncSession = Depends(get_db)):
    category_id = _category_id(category_id)

    result = await db.execute(
        select(Category)
        .options(selectinload(Category.parent), selectinload(Category.children))
        .filter(Category.id == category_id)
    )
    category = result.scalars().first()
    if not category:
        raise HTTPException(status_code=404, detail="Categoría no encontrada")

    data = category_to_dict(category, await _product_count(db, category.id))
    data["parent"] = category_to_dict(category.parent) if category.parent else None
    data["children"] = [category_to_dict(child) for child in category.children]
    return data


@router.put("/{category_id}")
async def update_category(category_id: str, payload: CategoryPayload, db: AsyncSession = Depends(get_db)):
    """
    Partial update; only fields present in the body are touched.

    Renaming without an explicit slug regenerates the slug from the new name.
    """
    category_id = _category_id(category_id)
    existing = await _find_by(db, id=category_id)
    if not existing:
        raise HTTPException(status_code=404, detail="Categoría no encontrada")

    fields = payload.model_fields_set
    updates = {}

    if "name" in fields:
        name = sanitize_string(payload.name)
        if not name:
            raise HTTPException(status_code=400, detail="El nombre de la categoría es requerido")
        if name != existing.name and await _find_by(db, name=name):
            raise HTTPException(status_code=400, detail="Ya existe una categoría con ese nombre")
        updates["name"] = name

    if "slug" in fields:
        updates["slug"] = sanitize_string(payload.slug)
    elif "name" in fields:
        updates["slug"] = generate_slug(updates["name"])

    if "description" in fields:
        updates["description"] = sanitize_string(payload.description) if payload.description else None
    if "image" in fields:
        updates["image"] = sanitize_string(payload.image) if payload.image else None
    if "parentId" in fields:
        updates["parent_id"] = parse_id(payload.parentId) if payload.parentId else None

    if updates.get("slug") and updates["slug"] != existing.slug and await _find_by(db, slug=updates["slug"]):
        raise HTTPException(status_code=400, detail="Ya existe una categoría con ese slug")

    for field, value in updates.items():
        setattr(existing, field, value)
    await db.commit()
    await db.refresh(existing)

    return category_to_dict(existing)


@router.delete("/{category_id}")
async def delete_category(category_id: str, db: AsyncSession = Depends(get_db)):
    category_id = _category_id(category_id)
    existing = await _find_by(db, id=category_id)
    if not existing:
        raise HTTPException(status_code=404, detail="Categoría no encontrada")

    count = await _product_count(db, category_id)
    if count > 0:
        raise HTTPException(
            status_code=400,
            detail=f"No se puede eliminar la categoría porque tiene {count} producto(s) asignado(s)"
        )

    await db.delete(existing)
    await db.commit()

    return {"message": "Categoría eliminada correctamente"}
