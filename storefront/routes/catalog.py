"""
Public Catalog Routes

Read-only endpoints used by the storefront pages:
- GET /api/config                      public site settings (allow-listed)
- GET /api/categories                  categories with product counts
- GET /api/categories/{slug}/products  active products in a category
- GET /api/products                    paginated active catalog
- GET /api/products/featured           homepage featured products
- GET /api/products/latest             newest products
- GET /api/products/{slug}             product detail
- GET /api/search?q=                   name/description search

Listings return each product with its first image and cheapest variant;
the detail endpoint returns everything.
"""

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from storefront.database import get_db
from storefront.models import Category
from storefront.services import catalog
from storefront.services.serializers import category_to_dict, product_summary, product_to_dict
from storefront.services.site_config import PUBLIC_KEYS, get_configs

router = APIRouter(prefix="/api", tags=["catalog"])

SEARCH_MIN_LENGTH = 2
SEARCH_MAX_LENGTH = 100


@router.get("/config")
async def public_config(keys: str | None = None, db: AsyncSession = Depends(get_db)):
    """
    Public settings such as the WhatsApp number and shipping costs.

    Keys outside the public allow-list are silently dropped, so
    ?keys=secret returns an empty object.
    """
    if keys is None:
        requested = list(PUBLIC_KEYS)
    else:
        requested = [k for k in keys.split(",") if k in PUBLIC_KEYS]
    return await get_configs(db, requested)


@router.get("/categories")
async def list_categories(db: AsyncSession = Depends(get_db)):
    rows = await catalog.get_categories(db)
    return [category_to_dict(category, count) for category, count in rows]


@router.get("/categories/{slug}/products")
async def category_products(slug: str, db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(Category).filter(Category.slug == slug))
    category = result.scalars().first()
    if not category:
        raise HTTPException(status_code=404, detail="Categoría no encontrada")

    products = await catalog.get_products_by_category(db, slug)
    return {
        "category": category_to_dict(category),
        "products": [product_summary(p) for p in products],
    }


@router.get("/products")
async def list_products(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db)
):
    data = await catalog.get_all_products(db, page=page, limit=limit)
    data["products"] = [product_summary(p) for p in data["products"]]
    return data


@router.get("/products/featured")
async def featured_products(db: AsyncSession = Depends(get_db)):
    products = await catalog.get_featured_products(db)
    return [product_summary(p) for p in products]


@router.get("/products/latest")
async def latest_products(db: AsyncSession = Depends(get_db)):
    products = await catalog.get_latest_products(db)
    return [product_summary(p) for p in products]


@router.get("/products/{slug}")
async def product_detail(slug: str, db: AsyncSession = Depends(get_db)):
    product = await catalog.get_product_by_slug(db, slug)
    if not product:
        raise HTTPException(status_code=404, detail="Producto no encontrado")
    return product_to_dict(product, with_attributes=True)


@router.get("/search")
async def search(q: str = "", db: AsyncSession = Depends(get_db)):
    """
    Search active products.

    The query is trimmed and cut to 100 characters. Errors keep the
    "products" key so the search box can always render the list.
    """
    query = q.strip()[:SEARCH_MAX_LENGTH]
    if len(query) < SEARCH_MIN_LENGTH:
        return JSONResponse(
            status_code=400,
            content={"error": "La búsqueda debe tener al menos 2 caracteres", "products": []},
        )

    products = await catalog.search_products(db, query)
    return {"products": [product_summary(p) for p in products]}
