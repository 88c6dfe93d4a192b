from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from api.schemas import ReminderCreateRequest, ReminderResponse
from auth.utils import get_current_user
from db.database import get_db
from db.models import User
from services.reminder_service import create_reminder, list_reminders, toggle_reminder

router = APIRouter(prefix="/reminders", tags=["reminders"], dependencies=[Depends(get_current_user)])


@router.post("", response_model=ReminderResponse, status_code=status.HTTP_201_CREATED)
def add_reminder(
    req: ReminderCreateRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    reminder = create_reminder(
        db,
        user,
        type=req.type,
        title=req.title,
        scheduled_at=req.scheduled_at,
        dosage=req.dosage,
    )
    db.commit()
    db.refresh(reminder)
    return reminder


@router.get("", response_model=list[ReminderResponse])
def get_reminders(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return list_reminders(db, user)


@router.patch("/{reminder_id}/toggle", response_model=ReminderResponse)
def flip_reminder(
    reminder_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    reminder = toggle_reminder(db, user, reminder_id)
    db.commit()
    db.refresh(reminder)
    return reminder
