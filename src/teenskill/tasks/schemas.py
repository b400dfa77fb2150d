"""Pydantic schemas for task endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class CreateTaskRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1, max_length=5000)
    budget: int = Field(..., gt=0)
    deadline: str | None = Field(None, max_length=32)


class TakeTaskRequest(BaseModel):
    parental_code: str = Field(..., min_length=1, max_length=64)


class SubmitTaskRequest(BaseModel):
    submission_url: str = Field(..., min_length=1, max_length=2048)
    submission_note: str | None = Field(None, max_length=2000)


class TaskResponse(BaseModel):
    id: str
    title: str
    description: str
    budget: int
    deadline: str | None = None
    status: str
    client_id: str
    freelancer_id: str | None = None
    created_at: datetime
    taken_at: datetime | None = None
    submission_url: str | None = None
    submission_note: str | None = None


class TaskListResponse(BaseModel):
    tasks: list[TaskResponse]
    total: int


class WeeklyCountResponse(BaseModel):
    """Rolling-window quota usage for the current freelancer."""

    count: int
    quota: int
    remaining: int
    window_days: int
    window_start: datetime
