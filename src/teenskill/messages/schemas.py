"""Pydantic schemas for task chat endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class SendMessageRequest(BaseModel):
    content: str = Field(..., min_length=1, max_length=4000)


class MessageResponse(BaseModel):
    id: str
    task_id: str
    sender_id: str
    sender_name: str | None = None
    content: str
    is_system: bool = False
    created_at: datetime


class MessageListResponse(BaseModel):
    messages: list[MessageResponse]
    total: int
