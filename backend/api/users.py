from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from api.schemas import ProfileUpdateRequest
from auth.models import UserResponse
from auth.utils import get_current_user
from db.database import get_db
from db.models import User
from services.profile_service import update_profile

router = APIRouter(prefix="/users", tags=["users"], dependencies=[Depends(get_current_user)])


@router.patch("/profile", response_model=UserResponse)
def patch_profile(
    req: ProfileUpdateRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    updates = req.model_dump(exclude_unset=True, exclude={"questionnaire"})
    answers = req.questionnaire.model_dump() if req.questionnaire is not None else None
    update_profile(db, user, updates, questionnaire=answers)
    db.commit()
    db.refresh(user)
    return user
