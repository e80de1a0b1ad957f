"""
Admin Product Routes

CRUD for products and their variants/images:
- GET    /api/admin/products       all products, any status
- POST   /api/admin/products       create with variants and images
- GET    /api/admin/products/{id}  detail
- PUT    /api/admin/products/{id}  partial update; variants/images replaced when sent
- DELETE /api/admin/products/{id}  delete (variants, images, attributes cascade)

Variants and images are positioned in the order they are sent.
"""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload

from storefront.database import get_db
from storefront.dependencies import require_admin
from storefront.models import PRODUCT_STATUSES, PRODUCT_TYPES, Product, ProductImage, ProductVariant
from storefront.services.serializers import product_to_dict
from storefront.utils.text import generate_slug
from storefront.utils.validators import parse_id, sanitize_string


router = APIRouter(prefix="/api/admin/products", tags=["admin"], dependencies=[Depends(require_admin)])


class VariantPayload(BaseModel):
    name: str | None = None
    price: float
    salePrice: float | None = None
    weight: str | None = None
    stock: int | None = None


class ImagePayload(BaseModel):
    url: str | None = None
    alt: str | None = None


class ProductPayload(BaseModel):
    name: str | None = None
    slug: str | None = None
    description: str | None = None
    categoryId: Any = None
    status: str | None = None
    type: str | None = None
    featured: bool | None = None
    variants: list[VariantPayload] | None = None
    images: list[ImagePayload] | None = None


def _build_variants(variants: list[VariantPayload], product_id: int | None = None) -> list[ProductVariant]:
    return [
        ProductVariant(
            product_id=product_id,
            name=sanitize_string(v.name),
            price=v.price,
            sale_price=v.salePrice,
            weight=sanitize_string(v.weight) if v.weight else None,
            stock=v.stock if v.stock is not None else 0,
            position=i,
        )
        for i, v in enumerate(variants)
    ]


def _build_images(images: list[ImagePayload], product_id: int | None = None) -> list[ProductImage]:
    return [
        ProductImage(
            product_id=product_id,
            url=sanitize_string(img.url),
            alt=sanitize_string(img.alt) if img.alt else None,
            position=i,
        )
        for i, img in enumerate(images)
    ]


def _product_id(raw: str) -> int:
    product_id = parse_id(raw)
    if product_id is None:
        raise HTTPException(status_code=400, detail="ID de producto inválido")
    return product_id


async def _load_product(db: AsyncSession, product_id: int) -> Product | None:
    """Fetch a product with every relationship the detail view needs."""
    result = await db.execute(
        select(Product)
        .options(
            selectinload(Product.category),
            selectinload(Product.variants),
            selectinload(Product.images),
            selectinload(Product.attributes),
        )
        .filter(Product.id == product_id)
        .execution_options(populate_existing=True)
    )
    return result.scalars().first()


async def _slug_taken(db: AsyncSession, slug: str) -> bool:
    result = await db.execute(select(Product.id).filter(Product.slug == slug))
    return result.first() is not None


@router.get("")
async def list_products(db: AsyncSession = Depends(get_db)):
    result = await db.execute(
        select(Product)
        .options(
            selectinload(Product.category),
            selectinload(Product.variants),
            selectinload(Product.images),
        )
        .order_by(Product.created_at.desc(), Product.id.desc())
    )
    return [product_to_dict(p) for p in result.scalars().all()]


@router.post("", status_code=201)
async def create_product(payload: ProductPayload, db: AsyncSession = Depends(get_db)):
    name = sanitize_string(payload.name)
    if not name:
        raise HTTPException(status_code=400, detail="El nombre del producto es requerido")

    slug = sanitize_string(payload.slug) if payload.slug else generate_slug(name)
    status = payload.status or "ACTIVE"
    product_type = payload.type or "SIMPLE"

    if status not in PRODUCT_STATUSES:
        raise HTTPException(status_code=400, detail="Estado de producto inválido")
    if product_type not in PRODUCT_TYPES:
        raise HTTPException(status_code=400, detail="Tipo de producto inválido")

    if await _slug_taken(db, slug):
        raise HTTPException(status_code=400, detail="Ya existe un producto con ese slug")

    product = Product(
        name=name,
        slug=slug,
        description=sanitize_string(payload.description) if payload.description else None,
        category_id=parse_id(payload.categoryId) if payload.categoryId else None,
        status=status,
        type=product_type,
        featured=bool(payload.featured),
        variants=_build_variants(payload.variants or []),
        images=_build_images(payload.images or []),
    )
    db.add(product)
    await db.commit()

    return product_to_dict(await _load_product(db, product.id), with_attributes=True)


@router.get("/{product_id}")
async def get_product(product_id: str, db: AsyncSession = Depends(get_db)):
    product = await _load_product(db, _product_id(product_id))
    if not product:
        raise HTTPException(status_code=404, detail="Producto no encontrado")
    return product_to_dict(product, with_attributes=True)


@router.put("/{product_id}")
async def update_product(product_id: str, payload: ProductPayload, db: AsyncSession = Depends(get_db)):
    """
    Partial update.

    When "variants" or "images" is present, the existing rows are deleted
    and recreated from the payload. Field updates and the replacement are
    committed together, in one transaction.
    """
    product_id = _product_id(product_id)
    result = await db.execute(select(Product).filter(Product.id == product_id))
    existing = result.scalars().first()
    if not existing:
        raise HTTPException(status_code=404, detail="Producto no encontrado")

    fields = payload.model_fields_set
    updates = {}

    if "name" in fields:
        updates["name"] = sanitize_string(payload.name)
    if "slug" in fields:
        updates["slug"] = sanitize_string(payload.slug)
    elif "name" in fields:
        updates["slug"] = generate_slug(updates["name"])
    if "description" in fields:
        updates["description"] = sanitize_string(payload.description) if payload.description else None
    if "categoryId" in fields:
        updates["category_id"] = parse_id(payload.categoryId) if payload.categoryId else None
    if "status" in fields:
        if payload.status not in PRODUCT_STATUSES:
            raise HTTPException(status_code=400, detail="Estado de producto inválido")
        updates["status"] = payload.status
    if "featured" in fields:
        updates["featured"] = bool(payload.featured)
    if "type" in fields:
        if payload.type not in PRODUCT_TYPES:
            raise HTTPException(status_code=400, detail="Tipo de producto inválido")
        updates["type"] = payload.type

    if updates.get("slug") and updates["slug"] != existing.slug and await _slug_taken(db, updates["slug"]):
        raise HTTPException(status_code=400, detail="Ya existe un producto con ese slug")

    if "variants" in fields:
        await db.execute(delete(ProductVariant).where(ProductVariant.product_id == product_id))
        db.add_all(_build_variants(payload.variants or [], product_id))

    if "images" in fields:
        await db.execute(delete(ProductImage).where(ProductImage.product_id == product_id))
        db.add_all(_build_images(payload.images or [], product_id))

    for field, value in updates.items():
        setattr(existing, field, value)
    await db.commit()

    return product_to_dict(await _load_product(db, product_id), with_attributes=True)


@router.delete("/{product_id}")
async def delete_product(product_id: str, db: AsyncSession = Depends(get_db)):
    product = await _load_product(db, _product_id(product_id))
    if not product:
        raise HTTPException(status_code=404, detail="Producto no encontrado")

    await db.delete(product)
    await db.commit()

    return {"message": "Producto eliminado correctamente"}
