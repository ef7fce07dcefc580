"""Product management router.

Endpoints:
    GET    /api/products                          List products (cached)
    POST   /api/products                          Create product (+ modules)
    POST   /api/products/seed                     Create the built-in products
    GET    /api/products/{id}                     Get product
    PUT    /api/products/{id}                     Update product
    DELETE /api/products/{id}                     Archive product
    GET    /api/products/{id}/modules             List modules
    POST   /api/products/{id}/modules             Toggle existing or add module
    PUT    /api/products/{id}/modules/{mid}       Update module config/state
"""

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.middleware.exceptions import ResourceNotFoundError
from app.models.product import Product, ProductModule
from app.schemas.product import (
    ModuleCreate,
    ModuleOut,
    ModuleUpdate,
    ProductCreate,
    ProductOut,
    ProductUpdate,
    SeedResult,
)
from app.services.seed import seed_products
from app.utils.activity import log_activity
from app.utils.cache import cached, invalidate_cache

router = APIRouter()


async def _get_product(db: AsyncSession, product_id: str) -> Product:
    result = await db.execute(select(Product).where(Product.id == product_id))
    product = result.scalar_one_or_none()
    if not product:
        raise ResourceNotFoundError("Product", product_id)
    return product


@cached(ttl=300, prefix="products")
async def _product_list(db: AsyncSession, active: bool | None = None) -> list[dict]:
    query = select(Product)
    if active is not None:
        query = query.where(Product.is_active == active)
    result = await db.execute(query.order_by(Product.name))
    return [
        ProductOut.model_validate(p).model_dump(mode="json")
        for p in result.scalars().all()
    ]


async def _log_product(db: AsyncSession, product: Product, activity_type: str, title: str):
    await log_activity(
        db,
        domain="product",
        domain_ref_id=product.id,
        module="products",
        activity_type=activity_type,
        title=title,
        ref_type="product",
        ref_id=product.id,
    )


@router.get("", response_model=list[ProductOut])
async def list_products(
    active: bool | None = None,
    db: AsyncSession = Depends(get_db),
):
    return await _product_list(db, active=active)


@router.post("", response_model=ProductOut, status_code=201)
async def create_product(body: ProductCreate, db: AsyncSession = Depends(get_db)):
    product = Product(**body.model_dump(exclude={"modules"}))
    product.modules = [
        ProductModule(module_type=module_type, is_active=True, config={})
        for module_type in dict.fromkeys(body.modules)
    ]
    db.add(product)
    await db.flush()

    await _log_product(db, product, "created", f"Added product '{product.name}'")
    await invalidate_cache("products:*")
    return ProductOut.model_validate(product)


@router.post("/seed", response_model=list[SeedResult])
async def seed(db: AsyncSession = Depends(get_db)):
    """Create the built-in product list. Safe to call repeatedly."""
    results = await seed_products(db)
    if any(r.status == "created" for r in results):
        await invalidate_cache("products:*")
    return results


@router.get("/{product_id}", response_model=ProductOut)
async def get_product(product_id: str, db: AsyncSession = Depends(get_db)):
    return ProductOut.model_validate(await _get_product(db, product_id))


@router.put("/{product_id}", response_model=ProductOut)
async def update_product(
    product_id: str,
    body: ProductUpdate,
    db: AsyncSession = Depends(get_db),
):
    product = await _get_product(db, product_id)

    for key, value in body.model_dump(exclude_unset=True).items():
        setattr(product, key, value)
    await db.flush()

    await _log_product(db, product, "updated", "Updated product")
    await invalidate_cache("products:*")
    return ProductOut.model_validate(product)


@router.delete("/{product_id}", response_model=ProductOut)
async def archive_product(product_id: str, db: AsyncSession = Depends(get_db)):
    product = await _get_product(db, product_id)
    product.is_active = False
    await db.flush()

    await _log_product(db, product, "archived", "Archived product")
    await invalidate_cache("products:*")
    return ProductOut.model_validate(product)


# ── Modules ─────────────────────────────────────────────────

@router.get("/{product_id}/modules", response_model=list[ModuleOut])
async def list_modules(product_id: str, db: AsyncSession = Depends(get_db)):
    result = await db.execute(
        select(ProductModule)
        .where(ProductModule.product_id == product_id)
        .order_by(ProductModule.module_type)
    )
    return [ModuleOut.model_validate(m) for m in result.scalars().all()]


@router.post("/{product_id}/modules", response_model=ModuleOut, status_code=201)
async def add_module(
    product_id: str,
    body: ModuleCreate,
    response: Response,
    db: AsyncSession = Depends(get_db),
):
    await _get_product(db, product_id)

    result = await db.execute(
        select(ProductModule).where(
            ProductModule.product_id == product_id,
            ProductModule.module_type == body.module_type,
        )
    )
    existing = result.scalar_one_or_none()
    if existing:
        existing.is_active = not existing.is_active
        await db.flush()
        await invalidate_cache("products:*")
        response.status_code = status.HTTP_200_OK
        return ModuleOut.model_validate(existing)

    module = ProductModule(
        product_id=product_id,
        module_type=body.module_type,
        config=body.config or {},
        is_active=True if body.is_active is None else body.is_active,
    )
    db.add(module)
    await db.flush()
    await invalidate_cache("products:*")
    return ModuleOut.model_validate(module)


@router.put("/{product_id}/modules/{module_id}", response_model=ModuleOut)
async def update_module(
    product_id: str,
    module_id: str,
    body: ModuleUpdate,
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(ProductModule).where(
            ProductModule.id == module_id,
            ProductModule.product_id == product_id,
        )
    )
    module = result.scalar_one_or_none()
    if not module:
        raise ResourceNotFoundError("Module", module_id)

    for key, value in body.model_dump(exclude_unset=True).items():
        setattr(module, key, value)
    await db.flush()
    await invalidate_cache("products:*")
    return ModuleOut.model_validate(module)
