"""Task marketplace router: all /api/v1/tasks/* endpoints except chat."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from teenskill.auth.dependencies import get_current_user
from teenskill.config import get_settings
from teenskill.database import get_session
from teenskill.db.models import Task, User, UserRole
from teenskill.tasks.quota import get_window_start
from teenskill.tasks.queries import get_task_for_viewer, list_open_tasks, list_tasks_for_user
from teenskill.tasks.schemas import (
    CreateTaskRequest,
    SubmitTaskRequest,
    TakeTaskRequest,
    TaskListResponse,
    TaskResponse,
    WeeklyCountResponse,
)
from teenskill.tasks.service import (
    complete_payment,
    create_task,
    delete_task,
    get_weekly_task_count,
    submit_task,
    take_task,
)
from teenskill.users.service import require_role

router = APIRouter(prefix="/api/v1/tasks", tags=["Tasks"])


def _task_response(task: Task) -> TaskResponse:
    return TaskResponse(
        id=task.id,
        title=task.title,
        description=task.description,
        budget=task.budget,
        deadline=task.deadline,
        status=task.status,
        client_id=task.client_id,
        freelancer_id=task.freelancer_id,
        created_at=task.created_at,
        taken_at=task.taken_at,
        submission_url=task.submission_url,
        submission_note=task.submission_note,
    )


def _task_list(tasks: list[Task]) -> TaskListResponse:
    return TaskListResponse(tasks=[_task_response(t) for t in tasks], total=len(tasks))


# ---------------------------------------------------------------------------
# Listings (declared before /{task_id} so the literal paths win)
# ---------------------------------------------------------------------------


@router.get("/open", response_model=TaskListResponse)
async def list_open_tasks_endpoint(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> TaskListResponse:
    """Marketplace feed: all open tasks, newest first."""
    return _task_list(await list_open_tasks(db))


@router.get("/mine", response_model=TaskListResponse)
async def list_my_tasks_endpoint(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> TaskListResponse:
    """Tasks the caller posted (client) or took (freelancer)."""
    return _task_list(await list_tasks_for_user(db, user))


@router.get("/weekly-count", response_model=WeeklyCountResponse)
async def weekly_count_endpoint(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> WeeklyCountResponse:
    """How many tasks the freelancer took in the rolling quota window."""
    require_role(user, UserRole.FREELANCER)
    settings = get_settings()
    count = await get_weekly_task_count(db, user.id)
    return WeeklyCountResponse(
        count=count,
        quota=user.task_quota,
        remaining=max(user.task_quota - count, 0),
        window_days=settings.quota_window_days,
        window_start=get_window_start(),
    )


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


@router.post("", response_model=TaskResponse, status_code=201)
async def create_task_endpoint(
    body: CreateTaskRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> TaskResponse:
    """Post a new task. Run POST /api/v1/safety/check first."""
    task = await create_task(
        db,
        user,
        title=body.title,
        description=body.description,
        budget=body.budget,
        deadline=body.deadline,
    )
    await db.commit()
    return _task_response(task)


@router.get("/{task_id}", response_model=TaskResponse)
async def get_task_endpoint(
    task_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> TaskResponse:
    """Task detail."""
    return _task_response(await get_task_for_viewer(db, user, task_id))


@router.delete("/{task_id}", status_code=204)
async def delete_task_endpoint(
    task_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> None:
    """Delete an open task (owning client only)."""
    await delete_task(db, user, task_id)
    await db.commit()


@router.post("/{task_id}/take", response_model=TaskResponse)
async def take_task_endpoint(
    task_id: str,
    body: TakeTaskRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> TaskResponse:
    """Accept an open task. Requires payout details, free quota and the parental code."""
    task = await take_task(db, user, task_id, body.parental_code)
    await db.commit()
    return _task_response(task)


@router.post("/{task_id}/submit", response_model=TaskResponse)
async def submit_task_endpoint(
    task_id: str,
    body: SubmitTaskRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> TaskResponse:
    """Hand in work for a taken task."""
    task = await submit_task(db, user, task_id, body.submission_url, body.submission_note)
    await db.commit()
    return _task_response(task)


@router.post("/{task_id}/complete-payment", response_model=TaskResponse)
async def complete_payment_endpoint(
    task_id: str,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> TaskResponse:
    """Release payment for submitted work and credit the freelancer."""
    task = await complete_payment(db, user, task_id)
    await db.commit()
    return _task_response(task)
