"""
Catalog Query Service

Read-oriented accessors over products and categories for the public
storefront:
- get_categories: all categories with product counts
- get_featured_products / get_latest_products: homepage listings
- get_products_by_category: category page
- get_product_by_slug: product detail page
- get_all_products: paginated catalog
- search_products: case-insensitive substring match on name/description

Only ACTIVE products are returned, except by get_product_by_slug.
"""

import math

from sqlalchemy import func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.orm import selectinload

from storefront.models import Category, Product


def _listing_query():
    """
    Base query for product listings.

    selectinload() eagerly loads relationships to avoid both the N+1
    problem and lazy loads, which are not possible in async sessions.
    """
    return select(Product).options(
        selectinload(Product.category),
        selectinload(Product.images),
        selectinload(Product.variants),
    ).filter(Product.status == "ACTIVE")


async def get_categories(db: AsyncSession) -> list[tuple[Category, int]]:
    """
    Returns:
        List of (category, product_count) ordered by name
    """
    query = (
        select(Category, func.count(Product.id))
        .outerjoin(Product, Product.category_id == Category.id)
        .group_by(Category.id)
        .order_by(Category.name)
    )
    result = await db.execute(query)
    return [(category, count) for category, count in result.all()]


async def get_featured_products(db: AsyncSession, limit: int = 8) -> list[Product]:
    query = _listing_query().filter(Product.featured == True).order_by(Product.position).limit(limit)  # noqa: E712
    result = await db.execute(query)
    return list(result.scalars().all())


async def get_latest_products(db: AsyncSession, limit: int = 12) -> list[Product]:
    query = _listing_query().order_by(Product.created_at.desc(), Product.id.desc()).limit(limit)
    result = await db.execute(query)
    return list(result.scalars().all())


async def get_products_by_category(db: AsyncSession, category_slug: str, limit: int = 20) -> list[Product]:
    query = (
        _listing_query()
        .join(Category, Product.category_id == Category.id)
        .filter(Category.slug == category_slug)
        .order_by(Product.position)
        .limit(limit)
    )
    result = await db.execute(query)
    return list(result.scalars().all())


async def get_product_by_slug(db: AsyncSession, slug: str) -> Product | None:
    """
    Full product detail: category, all images and variants (by position)
    and attributes. Any status is returned so admins can preview drafts.
    """
    query = select(Product).options(
        selectinload(Product.category),
        selectinload(Product.images),
        selectinload(Product.variants),
        selectinload(Product.attributes),
    ).filter(Product.slug == slug)
    result = await db.execute(query)
    return result.scalars().first()


async def get_all_products(db: AsyncSession, page: int = 1, limit: int = 20) -> dict:
    """
    Paginated active catalog ordered by name.

    Returns:
        {"products": [...], "total": int, "pages": int, "currentPage": int}
    """
    offset = (page - 1) * limit

    result = await db.execute(_listing_query().order_by(Product.name).offset(offset).limit(limit))
    products = list(result.scalars().all())

    total = await db.scalar(select(func.count(Product.id)).filter(Product.status == "ACTIVE"))

    return {
        "products": products,
        "total": total,
        "pages": math.ceil(total / limit),
        "currentPage": page,
    }


async def search_products(db: AsyncSession, query_text: str, limit: int = 20) -> list[Product]:
    # autoescape keeps % and _ in the query literal
    query = _listing_query().filter(
        or_(
            Product.name.icontains(query_text, autoescape=True),
            Product.description.icontains(query_text, autoescape=True),
        )
    ).order_by(Product.name).limit(limit)
    result = await db.execute(query)
    return list(result.scalars().all())
