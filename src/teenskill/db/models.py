"""ORM models for the marketplace store.

Tables are created by the schema bootstrap (teenskill.db.bootstrap), not by a
migration framework. Columns added after the first release must also be
listed in bootstrap.ADDITIVE_COLUMNS so existing databases pick them up.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from teenskill.db.base import Base


def _new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserRole(str, Enum):
    """User roles. PARENT is reserved and has no behavior yet."""

    CLIENT = "client"
    FREELANCER = "freelancer"
    PARENT = "parent"


class TaskStatus(str, Enum):
    """Task lifecycle states."""

    OPEN = "open"
    TAKEN = "taken"
    SUBMITTED = "submitted"
    COMPLETED = "completed"


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class User(Base):
    """Maps to the 'users' table."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    external_id: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    role: Mapped[str] = mapped_column(String(16), nullable=False)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    username: Mapped[str] = mapped_column(String(64), nullable=False)
    age: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    # --- Freelancer fields ---
    parental_code_hash: Mapped[str | None] = mapped_column(String(256), nullable=True)
    payment_method: Mapped[str | None] = mapped_column(String(32), nullable=True)
    payment_number: Mapped[str | None] = mapped_column(String(64), nullable=True)
    task_quota: Mapped[int] = mapped_column(Integer, default=5, server_default="5", nullable=False)
    balance: Mapped[int] = mapped_column(Integer, default=0, server_default="0", nullable=False)
    xp: Mapped[int] = mapped_column(Integer, default=0, server_default="0", nullable=False)

    @property
    def has_payment_details(self) -> bool:
        return bool(self.payment_method) and bool(self.payment_number)


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------


class Task(Base):
    """Maps to the 'tasks' table."""

    __tablename__ = "tasks"
    __table_args__ = (
        Index("idx_tasks_status_created", "status", "created_at"),
        Index("idx_tasks_client_id", "client_id"),
        Index("idx_tasks_freelancer_taken", "freelancer_id", "taken_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    budget: Mapped[int] = mapped_column(Integer, nullable=False)
    deadline: Mapped[str | None] = mapped_column(String(32), nullable=True)
    status: Mapped[str] = mapped_column(
        String(16), default=TaskStatus.OPEN.value, server_default="open", nullable=False,
    )
    client_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)
    freelancer_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("users.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    taken_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    submission_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    submission_note: Mapped[str | None] = mapped_column(Text, nullable=True)


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------


class Message(Base):
    """Append-only chat log entry attached to a task."""

    __tablename__ = "messages"
    __table_args__ = (
        Index("idx_messages_task_created", "task_id", "created_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    task_id: Mapped[str] = mapped_column(String(36), ForeignKey("tasks.id"), nullable=False)
    sender_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
