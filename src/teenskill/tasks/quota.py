"""Rolling weekly quota window.

The window is a rolling lookback from the current instant, not a calendar
week. The TakeTask guard and the UI counter both go through this module so
the displayed quota and the enforced quota never drift apart.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from sqlalchemy import ColumnElement, Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from teenskill.config import get_settings
from teenskill.db.models import Task


def get_window_start(now: datetime | None = None, window_days: int | None = None) -> datetime:
    """Start of the quota window ending at ``now``."""
    if now is None:
        now = datetime.now(timezone.utc)
    if window_days is None:
        window_days = get_settings().quota_window_days
    return now - timedelta(days=window_days)


def recent_take_count_query(freelancer_id: str, window_start: datetime) -> Select[tuple[int]]:
    """COUNT of tasks taken by the freelancer since window_start.

    Uses an alias of the tasks table so it can be embedded as a subquery in an
    UPDATE on tasks without being correlated to the row being updated.
    """
    recent = aliased(Task, name="recent_tasks")
    return (
        select(func.count())
        .select_from(recent)
        .where(
            recent.freelancer_id == freelancer_id,
            recent.taken_at.is_not(None),
            recent.taken_at >= window_start,
        )
    )


def quota_available_clause(freelancer_id: str, quota: int, window_start: datetime) -> ColumnElement[bool]:
    """SQL condition that is true while the freelancer still has a free slot."""
    return recent_take_count_query(freelancer_id, window_start).scalar_subquery() < quota


async def count_recent_takes(
    db: AsyncSession,
    freelancer_id: str,
    now: datetime | None = None,
) -> int:
    """Number of tasks the freelancer took inside the current window."""
    result = await db.execute(recent_take_count_query(freelancer_id, get_window_start(now)))
    return int(result.scalar_one())
