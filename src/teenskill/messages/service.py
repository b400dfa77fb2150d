"""Per-task chat log.

Messages are append-only and only visible to the task's two participants.
Entries written by the engine itself carry the ``[SYSTEM]`` prefix, which
users are not allowed to use.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from teenskill.db.models import Message, Task, User
from teenskill.errors import InvalidInputError, NotOwnerError, TaskNotFoundError

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

SYSTEM_PREFIX = "[SYSTEM]"
MAX_CONTENT_LENGTH = 4000


def is_participant(task: Task, user_id: str) -> bool:
    return user_id in (task.client_id, task.freelancer_id)


async def _require_participant(db: AsyncSession, task_id: str, user_id: str) -> Task:
    result = await db.execute(select(Task).where(Task.id == task_id))
    task = result.scalar_one_or_none()
    if task is None:
        raise TaskNotFoundError
    if not is_participant(task, user_id):
        msg = "Only the task's client and assigned freelancer can use this chat"
        raise NotOwnerError(msg)
    return task


async def post_system_message(
    db: AsyncSession,
    task_id: str,
    sender_id: str,
    content: str,
) -> Message:
    """Append an engine-generated entry. The caller has already authorized it."""
    message = Message(task_id=task_id, sender_id=sender_id, content=f"{SYSTEM_PREFIX} {content}")
    db.add(message)
    await db.flush()
    return message


async def send_message(
    db: AsyncSession,
    sender: User,
    task_id: str,
    content: str,
) -> Message:
    """
    Append a user message to a task's chat.

    Raises:
        TaskNotFoundError: No such task.
        NotOwnerError: The sender is neither the client nor the assigned freelancer.
        InvalidInputError: Empty, too long, or uses the reserved system prefix.
    """
    content = content.strip()
    if not content:
        msg = "Message cannot be empty"
        raise InvalidInputError(msg)
    if len(content) > MAX_CONTENT_LENGTH:
        msg = f"Message must not exceed {MAX_CONTENT_LENGTH} characters"
        raise InvalidInputError(msg)
    if content.upper().startswith(SYSTEM_PREFIX):
        msg = f"Messages may not start with {SYSTEM_PREFIX}"
        raise InvalidInputError(msg)

    await _require_participant(db, task_id, sender.id)

    message = Message(task_id=task_id, sender_id=sender.id, content=content)
    db.add(message)
    await db.flush()

    logger.info("message_sent", task_id=task_id, sender_id=sender.id)
    return message


async def get_messages(db: AsyncSession, caller: User, task_id: str) -> list[dict[str, Any]]:
    """Chat history for a task, oldest first, with each sender's display name."""
    await _require_participant(db, task_id, caller.id)

    try:
        result = await db.execute(
            select(Message, User.name)
            .join(User, User.id == Message.sender_id)
            .where(Message.task_id == task_id)
            .order_by(Message.created_at.asc(), Message.id.asc())
        )
        rows = result.all()
    except SQLAlchemyError:
        logger.warning("messages_query_failed", task_id=task_id, exc_info=True)
        return []

    return [
        {
            "id": message.id,
            "task_id": message.task_id,
            "sender_id": message.sender_id,
            "sender_name": sender_name,
            "content": message.content,
            "is_system": message.content.startswith(SYSTEM_PREFIX),
            "created_at": message.created_at,
        }
        for message, sender_name in rows
    ]
