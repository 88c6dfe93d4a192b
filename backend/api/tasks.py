from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from api.schemas import TaskResponse, TaskUpdateRequest
from auth.utils import get_current_user
from db.database import get_db
from db.models import User
from services.errors import ValidationError
from services.task_service import generate_daily_tasks, list_tasks, task_today, update_task
from utils.datetime_utils import parse_iso_date

router = APIRouter(prefix="/tasks", tags=["tasks"], dependencies=[Depends(get_current_user)])


@router.get("", response_model=list[TaskResponse])
def get_tasks(
    date: str | None = None,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if date:
        try:
            day = parse_iso_date(date)
        except ValueError:
            raise ValidationError("date must be formatted as YYYY-MM-DD")
    else:
        day = task_today()
    return list_tasks(db, user, day)


@router.post("/generate", response_model=list[TaskResponse])
def generate_tasks(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    tasks = generate_daily_tasks(db, user)
    db.commit()
    return tasks


@router.patch("/{task_id}", response_model=TaskResponse)
def patch_task(
    task_id: int,
    req: TaskUpdateRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    task, _reward = update_task(db, user, task_id, completed=req.completed, current=req.current)
    db.commit()
    db.refresh(task)
    return task
