"""Built-in reference data.

Used by POST /api/products/seed and `python -m app.cli seed`.
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.product import Product
from app.schemas.product import SeedResult

logger = logging.getLogger(__name__)

SEED_PRODUCTS = [
    {"name": "GetShelfed", "domain": "getshelfed.com",
     "description": "Library management application"},
    {"name": "ManlyMan", "domain": "manlyman.men",
     "description": "Men's lifestyle brand"},
    {"name": "MLC Website", "domain": "mosaiclifecreative.com",
     "description": "Agency website"},
    {"name": "Grove City Events", "domain": None,
     "description": "Local events platform"},
    {"name": "Web Dev Tools", "domain": None,
     "description": "WordPress plugin: design and development utilities for web professionals."},
]


async def seed_products(db: AsyncSession) -> list[SeedResult]:
    """Create each built-in product unless one with the same name exists."""
    results = []
    for data in SEED_PRODUCTS:
        existing = (
            await db.execute(select(Product).where(Product.name == data["name"]))
        ).scalars().first()
        if existing:
            results.append(SeedResult(name=data["name"], status="already exists", id=existing.id))
            continue

        product = Product(**data, modules=[])
        db.add(product)
        await db.flush()
        results.append(SeedResult(name=data["name"], status="created", id=product.id))

    created = sum(1 for r in results if r.status == "created")
    logger.info(f"Seeded {created} of {len(SEED_PRODUCTS)} products")
    return results
