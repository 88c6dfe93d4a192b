from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy.orm import Session

from db.models import Reminder, User
from services.errors import NotFoundError


def _as_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def create_reminder(
    db: Session,
    user: User,
    *,
    type: str,
    title: str,
    scheduled_at: datetime,
    dosage: str | None = None,
) -> Reminder:
    reminder = Reminder(
        user_id=user.id,
        type=type,
        title=title.strip(),
        scheduled_at=_as_naive_utc(scheduled_at),
        dosage=(dosage or "").strip() or None,
        completed=False,
    )
    db.add(reminder)
    db.flush()
    return reminder


def list_reminders(db: Session, user: User) -> list[Reminder]:
    return (
        db.query(Reminder)
        .filter(Reminder.user_id == user.id)
        .order_by(Reminder.scheduled_at.asc(), Reminder.id.asc())
        .all()
    )


def toggle_reminder(db: Session, user: User, reminder_id: int) -> Reminder:
    reminder = (
        db.query(Reminder)
        .filter(Reminder.id == reminder_id, Reminder.user_id == user.id)
        .first()
    )
    if not reminder:
        raise NotFoundError("Reminder not found")
    reminder.completed = not bool(reminder.completed)
    db.flush()
    return reminder
