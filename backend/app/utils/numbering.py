"""Shared sort-order generation.

Tasks are ordered per project and phases per project; a new row goes to
the end of its list:

    next_sort_order(db, Task.sort_order, Task.project_id == project_id)
"""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession


async def next_sort_order(db: AsyncSession, column, *criteria) -> int:
    """One past the highest existing value of `column` among matching rows."""
    query = select(func.max(column))
    for criterion in criteria:
        query = query.where(criterion)
    current = (await db.execute(query)).scalar()
    return 0 if current is None else current + 1
