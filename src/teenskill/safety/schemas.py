"""Schemas for the safety check endpoint."""

from __future__ import annotations

from pydantic import BaseModel, Field


class SafetyCheckRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1, max_length=5000)


class SafetyCheckResponse(BaseModel):
    safe: bool
    reason: str
