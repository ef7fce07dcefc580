"""Lightweight helper for recording activity feed entries.

Usage:
    await log_activity(
        db, domain="mlc", module="clients", activity_type="created",
        title="Added client Acme Ltd", domain_ref_id=client.id,
        ref_type="client", ref_id=client.id,
    )

The row is written inside a SAVEPOINT so a failing insert never poisons
the caller's transaction. Failures are logged and swallowed; callers do
not wrap this in their own error handling.
"""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.activity import ActivityEntry

logger = logging.getLogger(__name__)


async def log_activity(
    db: AsyncSession,
    *,
    domain: str,
    module: str,
    activity_type: str,
    title: str,
    domain_ref_id: str | None = None,
    description: str | None = None,
    ref_type: str | None = None,
    ref_id: str | None = None,
) -> bool:
    """Append an activity entry. Returns False if it could not be written."""
    try:
        async with db.begin_nested():
            db.add(ActivityEntry(
                domain=domain,
                domain_ref_id=domain_ref_id,
                module=module,
                activity_type=activity_type,
                title=title,
                description=description,
                ref_type=ref_type,
                ref_id=ref_id,
            ))
        return True
    except Exception:
        logger.exception(
            "Failed to log activity",
            extra={"activity_module": module, "activity_type": activity_type},
        )
        return False
