from __future__ import annotations

from sqlalchemy.orm import Session

from ai.health_assistant import analyze_symptom
from db.models import Symptom, User


def risk_level_for(severity: int) -> str:
    if severity > 7:
        return "high"
    if severity > 4:
        return "medium"
    return "low"


async def create_symptom(db: Session, user: User, *, description: str, severity: int, duration: int) -> Symptom:
    analysis = await analyze_symptom(user, description, severity, duration)
    symptom = Symptom(
        user_id=user.id,
        description=description,
        severity=severity,
        duration=duration,
        ai_analysis=analysis,
        risk_level=risk_level_for(severity),
    )
    db.add(symptom)
    db.flush()
    return symptom


def list_symptoms(db: Session, user: User) -> list[Symptom]:
    return (
        db.query(Symptom)
        .filter(Symptom.user_id == user.id)
        .order_by(Symptom.created_at.desc(), Symptom.id.desc())
        .all()
    )
