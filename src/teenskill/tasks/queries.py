"""Read projections over tasks for the marketplace and dashboard views."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from teenskill.db.models import Task, TaskStatus, User, UserRole
from teenskill.errors import NotOwnerError, TaskNotFoundError

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


async def list_open_tasks(db: AsyncSession) -> list[Task]:
    """Every open task, newest first. Store errors degrade to an empty list."""
    try:
        result = await db.execute(
            select(Task)
            .where(Task.status == TaskStatus.OPEN.value)
            .order_by(Task.created_at.desc())
        )
    except SQLAlchemyError:
        logger.warning("open_tasks_query_failed", exc_info=True)
        return []
    return list(result.scalars().all())


async def list_tasks_for_user(db: AsyncSession, user: User) -> list[Task]:
    """Tasks a client posted, or tasks a freelancer has taken, newest first."""
    if user.role == UserRole.CLIENT.value:
        condition = Task.client_id == user.id
    elif user.role == UserRole.FREELANCER.value:
        condition = Task.freelancer_id == user.id
    else:
        return []

    try:
        result = await db.execute(
            select(Task).where(condition).order_by(Task.created_at.desc())
        )
    except SQLAlchemyError:
        logger.warning("user_tasks_query_failed", user_id=user.id, exc_info=True)
        return []
    return list(result.scalars().all())


async def get_task_for_viewer(db: AsyncSession, viewer: User, task_id: str) -> Task:
    """
    Task detail. Open tasks are public to registered users; otherwise only
    the owning client and the assigned freelancer may see it.
    """
    result = await db.execute(select(Task).where(Task.id == task_id))
    task = result.scalar_one_or_none()
    if task is None:
        raise TaskNotFoundError
    if task.status != TaskStatus.OPEN.value and viewer.id not in (task.client_id, task.freelancer_id):
        msg = "You are not a participant in this task"
        raise NotOwnerError(msg)
    return task
