from __future__ import annotations

import logging
from datetime import date

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from config import settings
from db.models import Task, User
from services.errors import NotFoundError, ValidationError
from services.streak_service import CompletionReward, apply_completion_rewards
from utils.datetime_utils import today_for_tz

logger = logging.getLogger(__name__)

TASK_TYPES = ("steps", "water", "sleep", "exercise")

# type -> daily target (steps, ml, hours, minutes)
DEFAULT_DAILY_TARGETS: dict[str, int] = {
    "steps": 10000,
    "water": 2500,
    "sleep": 8,
    "exercise": 30,
}


def task_today() -> date:
    return today_for_tz(settings.TASK_DAY_TIMEZONE)


def _order_tasks(tasks: list[Task]) -> list[Task]:
    rank = {name: idx for idx, name in enumerate(TASK_TYPES)}
    return sorted(tasks, key=lambda t: (rank.get(t.type, len(rank)), t.id))


def list_tasks(db: Session, user: User, day: date) -> list[Task]:
    rows = (
        db.query(Task)
        .filter(Task.user_id == user.id, Task.date == day.isoformat())
        .all()
    )
    return _order_tasks(rows)


def generate_daily_tasks(db: Session, user: User, day: date | None = None) -> list[Task]:
    """Create the default batch of four tasks for ``day`` unless any already exist."""
    day = day or task_today()
    existing = list_tasks(db, user, day)
    if existing:
        return existing

    for task_type in TASK_TYPES:
        db.add(
            Task(
                user_id=user.id,
                date=day.isoformat(),
                type=task_type,
                target=DEFAULT_DAILY_TARGETS[task_type],
                current=0,
                completed=False,
            )
        )
    try:
        db.flush()
    except IntegrityError:
        # Another request generated the batch first.
        db.rollback()
    return list_tasks(db, user, day)


def update_task(
    db: Session,
    user: User,
    task_id: int,
    *,
    completed: bool | None = None,
    current: int | None = None,
    today: date | None = None,
) -> tuple[Task, CompletionReward | None]:
    """Apply field updates to a task and run completion side effects on false -> true.

    Only a task dated today pays out, and only once over its lifetime: the reward
    is claimed with a conditional UPDATE on ``reward_paid``, so neither concurrent
    requests nor a complete/uncomplete cycle can collect it twice.
    """
    task = db.query(Task).filter(Task.id == task_id, Task.user_id == user.id).first()
    if not task:
        raise NotFoundError("Task not found")
    if current is not None and int(current) < 0:
        raise ValidationError("Progress value must be non-negative")

    today = today or task_today()
    transitioned = False
    if completed is True:
        if task.date == today.isoformat():
            result = db.execute(
                update(Task)
                .where(Task.id == task.id, Task.completed.is_(False), Task.reward_paid.is_(False))
                .values(completed=True, reward_paid=True)
                .execution_options(synchronize_session=False)
            )
            transitioned = result.rowcount == 1
        if not transitioned:
            db.execute(
                update(Task)
                .where(Task.id == task.id)
                .values(completed=True)
                .execution_options(synchronize_session=False)
            )
    elif completed is False:
        db.execute(
            update(Task)
            .where(Task.id == task.id)
            .values(completed=False)
            .execution_options(synchronize_session=False)
        )
    if current is not None:
        db.execute(
            update(Task)
            .where(Task.id == task.id)
            .values(current=int(current))
            .execution_options(synchronize_session=False)
        )

    reward = None
    if transitioned:
        reward = apply_completion_rewards(db, user.id, today)

    db.flush()
    db.refresh(task)
    return task, reward
