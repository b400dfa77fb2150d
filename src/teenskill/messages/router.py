"""Task chat router: /api/v1/tasks/{task_id}/messages.

The UI polls the GET endpoint; there is no push delivery.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from teenskill.auth.dependencies import get_current_user
from teenskill.database import get_session
from teenskill.db.models import User
from teenskill.messages.schemas import MessageListResponse, MessageResponse, SendMessageRequest
from teenskill.messages.service import SYSTEM_PREFIX, get_messages, send_message

router = APIRouter(prefix="/api/v1/tasks", tags=["Messages"])


@router.get("/{task_id}/messages", response_model=MessageListResponse)
async def list_messages_endpoint(
    task_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> MessageListResponse:
    """Chat history for a task, oldest first (participants only)."""
    rows = await get_messages(db, user, task_id)
    return MessageListResponse(
        messages=[MessageResponse(**row) for row in rows],
        total=len(rows),
    )


@router.post("/{task_id}/messages", response_model=MessageResponse, status_code=201)
async def send_message_endpoint(
    task_id: str,
    body: SendMessageRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> MessageResponse:
    """Post a message to a task's chat (participants only)."""
    message = await send_message(db, user, task_id, body.content)
    await db.commit()
    return MessageResponse(
        id=message.id,
        task_id=message.task_id,
        sender_id=message.sender_id,
        sender_name=user.name,
        content=message.content,
        is_system=message.content.startswith(SYSTEM_PREFIX),
        created_at=message.created_at,
    )
