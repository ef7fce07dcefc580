"""Management CLI.

Usage:
    python -m app.cli create-tables     # Create every table (dev/test only; use Alembic in prod)
    python -m app.cli seed              # Insert the built-in products
"""

import asyncio
import sys

from app.database import Base, async_session, engine
from app.models import *  # noqa: F401,F403 (register all tables)
from app.services.seed import seed_products


async def create_tables():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    await engine.dispose()
    print(f"Created {len(Base.metadata.tables)} table(s).")


async def seed():
    async with async_session() as session:
        results = await seed_products(session)
        await session.commit()
    await engine.dispose()
    for r in results:
        print(f"  {r.name}: {r.status}")


if __name__ == "__main__":
    cmd = sys.argv[1] if len(sys.argv) > 1 else ""
    if cmd == "create-tables":
        asyncio.run(create_tables())
    elif cmd == "seed":
        asyncio.run(seed())
    else:
        print("Usage: python -m app.cli [create-tables|seed]")
