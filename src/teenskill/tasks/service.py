"""Task lifecycle engine.

Rules:
- open -> taken -> submitted -> completed, never backwards or skipping
- Only the owning client may delete a task, and only while it is open
- TakeTask guards run in a fixed order, first failure wins:
  role, payout details, weekly quota, parental code, task existence
- Completion credits balance and XP in the same transaction as the status change

Every status change is a conditional write keyed on the expected prior
status. A transition that lost a race matches zero rows and raises
TransitionConflictError; it never reports success.

Operations flush but do not commit. The caller owns the transaction.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import ColumnElement, delete, select, update

from teenskill.auth.parental_code import verify_parental_code
from teenskill.config import get_settings
from teenskill.db.models import Message, Task, TaskStatus, User, UserRole
from teenskill.errors import (
    InvalidInputError,
    NotOwnerError,
    PaymentSetupRequiredError,
    QuotaExhaustedError,
    TaskNotFoundError,
    TransitionConflictError,
    WrongParentalCodeError,
)
from teenskill.messages.service import post_system_message
from teenskill.tasks.quota import count_recent_takes, get_window_start, quota_available_clause
from teenskill.tasks.state_machine import can_delete, previous_status, validate_transition
from teenskill.users.service import require_role

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def get_task(db: AsyncSession, task_id: str) -> Task | None:
    """Get a task by ID."""
    result = await db.execute(select(Task).where(Task.id == task_id))
    return result.scalar_one_or_none()


async def _require_task(db: AsyncSession, task_id: str) -> Task:
    task = await get_task(db, task_id)
    if task is None:
        raise TaskNotFoundError
    return task


async def _reload_task(db: AsyncSession, task_id: str) -> Task:
    """Re-read a task after a bulk UPDATE, refreshing the identity map copy."""
    result = await db.execute(
        select(Task).where(Task.id == task_id).execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def _transition(
    db: AsyncSession,
    task_id: str,
    target: TaskStatus,
    *conditions: ColumnElement[bool],
    **values: Any,  # noqa: ANN401
) -> bool:
    """Move a task into ``target`` only if it is still in the predecessor state.

    Returns True if exactly one row changed.
    """
    result = await db.execute(
        update(Task)
        .where(
            Task.id == task_id,
            Task.status == previous_status(target).value,
            *conditions,
        )
        .values(status=target.value, **values)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def _submission_notice(submission_url: str, submission_note: str | None) -> str:
    notice = f"Work submitted.\nLink: {submission_url}"
    if submission_note:
        notice += f"\nNote: {submission_note}"
    return notice


# ---------------------------------------------------------------------------
# CreateTask / DeleteTask
# ---------------------------------------------------------------------------


async def create_task(
    db: AsyncSession,
    client: User,
    title: str,
    description: str,
    budget: int,
    deadline: str | None = None,
) -> Task:
    """Post a new open task.

    Safety screening is the caller's job and happens before this call.
    """
    require_role(client, UserRole.CLIENT)

    title = title.strip()
    description = description.strip()
    if not title or not description:
        msg = "Title and description are required"
        raise InvalidInputError(msg)
    if budget <= 0:
        msg = "Budget must be greater than zero"
        raise InvalidInputError(msg)

    task = Task(
        title=title,
        description=description,
        budget=budget,
        deadline=(deadline or "").strip() or None,
        status=TaskStatus.OPEN.value,
        client_id=client.id,
        freelancer_id=None,
        taken_at=None,
        submission_url=None,
        submission_note=None,
    )
    db.add(task)
    await db.flush()

    logger.info("task_created", task_id=task.id, client_id=client.id, budget=budget)
    return task


async def delete_task(db: AsyncSession, client: User, task_id: str) -> None:
    """Delete an open task owned by the client, along with its messages."""
    require_role(client, UserRole.CLIENT)
    task = await _require_task(db, task_id)

    if task.client_id != client.id:
        raise NotOwnerError
    if not can_delete(task.status):
        msg = f"Only open tasks can be deleted (task is {task.status})"
        raise TransitionConflictError(msg)

    await db.execute(delete(Message).where(Message.task_id == task_id))
    result = await db.execute(
        delete(Task)
        .where(
            Task.id == task_id,
            Task.client_id == client.id,
            Task.status == TaskStatus.OPEN.value,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        msg = "Task was taken before it could be deleted"
        raise TransitionConflictError(msg)

    db.expunge(task)
    logger.info("task_deleted", task_id=task_id, client_id=client.id)


# ---------------------------------------------------------------------------
# TakeTask
# ---------------------------------------------------------------------------


async def take_task(
    db: AsyncSession,
    freelancer: User,
    task_id: str,
    parental_code_input: str,
    now: datetime | None = None,
) -> Task:
    """Accept an open task on behalf of a freelancer.

    Raises, in guard order:
        WrongRoleError, PaymentSetupRequiredError, QuotaExhaustedError,
        WrongParentalCodeError, TaskNotFoundError, TransitionConflictError.
    """
    settings = get_settings()
    if now is None:
        now = datetime.now(timezone.utc)

    # 1. Role
    require_role(freelancer, UserRole.FREELANCER)

    # 2. Payout details
    if not freelancer.has_payment_details:
        raise PaymentSetupRequiredError

    # 3. Weekly quota. The row lock serializes concurrent takes by the same
    # freelancer on backends that support FOR UPDATE; the conditional UPDATE
    # below re-checks the count either way.
    locked = await db.execute(
        select(User.task_quota).where(User.id == freelancer.id).with_for_update()
    )
    quota = int(locked.scalar_one())
    if await count_recent_takes(db, freelancer.id, now) >= quota:
        raise QuotaExhaustedError(quota, settings.quota_window_days)

    # 4. Parental code
    if not verify_parental_code(parental_code_input, freelancer.parental_code_hash):
        raise WrongParentalCodeError

    # 5. Task existence and state
    task = await _require_task(db, task_id)
    validate_transition(task.status, TaskStatus.TAKEN.value)

    moved = await _transition(
        db,
        task_id,
        TaskStatus.TAKEN,
        quota_available_clause(freelancer.id, quota, get_window_start(now)),
        freelancer_id=freelancer.id,
        taken_at=now,
    )
    if not moved:
        current = await _reload_task(db, task_id)
        validate_transition(current.status, TaskStatus.TAKEN.value)
        # Still open, so a concurrent take used up the last quota slot
        raise QuotaExhaustedError(quota, settings.quota_window_days)

    task = await _reload_task(db, task_id)
    logger.info("task_taken", task_id=task_id, freelancer_id=freelancer.id)
    return task


async def get_weekly_task_count(
    db: AsyncSession,
    freelancer_id: str,
    now: datetime | None = None,
) -> int:
    """Tasks taken in the rolling window. Same definition the TakeTask guard uses."""
    return await count_recent_takes(db, freelancer_id, now)


# ---------------------------------------------------------------------------
# SubmitTask
# ---------------------------------------------------------------------------


async def submit_task(
    db: AsyncSession,
    freelancer: User,
    task_id: str,
    submission_url: str,
    submission_note: str | None = None,
) -> Task:
    """Hand in work for a taken task and log a [SYSTEM] notice in its chat."""
    require_role(freelancer, UserRole.FREELANCER)

    submission_url = submission_url.strip()
    if not submission_url:
        msg = "A submission link is required"
        raise InvalidInputError(msg)
    note = (submission_note or "").strip() or None

    task = await _require_task(db, task_id)
    if task.freelancer_id != freelancer.id:
        msg = "Only the assigned freelancer can submit this task"
        raise NotOwnerError(msg)

    moved = await _transition(
        db,
        task_id,
        TaskStatus.SUBMITTED,
        Task.freelancer_id == freelancer.id,
        submission_url=submission_url,
        submission_note=note,
    )
    if not moved:
        current = await _reload_task(db, task_id)
        validate_transition(current.status, TaskStatus.SUBMITTED.value)
        msg = "Task changed hands before it could be submitted"
        raise TransitionConflictError(msg)

    await post_system_message(db, task_id, freelancer.id, _submission_notice(submission_url, note))

    task = await _reload_task(db, task_id)
    logger.info("task_submitted", task_id=task_id, freelancer_id=freelancer.id)
    return task


# ---------------------------------------------------------------------------
# CompletePayment
# ---------------------------------------------------------------------------


async def complete_payment(
    db: AsyncSession,
    payer: User,
    task_id: str,
    xp_reward: int | None = None,
) -> Task:
    """Mark a submitted task completed and credit the freelancer.

    The status change and the balance/XP increments share one transaction.
    A second call on the same task fails the status guard, so the freelancer
    is never credited twice.
    """
    if xp_reward is None:
        xp_reward = get_settings().completion_xp_reward

    task = await _require_task(db, task_id)
    if task.client_id != payer.id:
        msg = "Only the client who posted this task can release payment"
        raise NotOwnerError(msg)
    if task.freelancer_id is None:
        msg = "Task has no assigned freelancer"
        raise TransitionConflictError(msg)

    freelancer_id = task.freelancer_id
    budget = task.budget

    moved = await _transition(
        db,
        task_id,
        TaskStatus.COMPLETED,
        Task.freelancer_id == freelancer_id,
    )
    if not moved:
        current = await _reload_task(db, task_id)
        validate_transition(current.status, TaskStatus.COMPLETED.value)
        msg = "Task changed hands before payment was released"
        raise TransitionConflictError(msg)

    await db.execute(
        update(User)
        .where(User.id == freelancer_id)
        .values(balance=User.balance + budget, xp=User.xp + xp_reward)
        .execution_options(synchronize_session=False)
    )

    task = await _reload_task(db, task_id)
    logger.info(
        "payment_completed",
        task_id=task_id,
        freelancer_id=freelancer_id,
        amount=budget,
        xp=xp_reward,
    )
    return task
