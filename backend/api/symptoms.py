from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from api.schemas import SymptomCreateRequest, SymptomResponse
from auth.utils import get_current_user
from db.database import get_db
from db.models import User
from services.symptom_service import create_symptom, list_symptoms

router = APIRouter(prefix="/symptoms", tags=["symptoms"], dependencies=[Depends(get_current_user)])


@router.post("", response_model=SymptomResponse, status_code=status.HTTP_201_CREATED)
async def log_symptom(
    req: SymptomCreateRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Log a symptom; guidance text comes from the AI assistant when available."""
    symptom = await create_symptom(
        db,
        user,
        description=req.description,
        severity=req.severity,
        duration=req.duration,
    )
    db.commit()
    db.refresh(symptom)
    return symptom


@router.get("", response_model=list[SymptomResponse])
def get_symptoms(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return list_symptoms(db, user)
