from __future__ import annotations

import json
import sys
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker


ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from api.schemas import QuestionnaireAnswers  # noqa: E402
from db.database import Base  # noqa: E402
from db.models import User  # noqa: E402
from services.profile_service import compute_bmi, score_questionnaire, update_profile  # noqa: E402
from services.symptom_service import risk_level_for  # noqa: E402


def _new_db():
    engine = create_engine("sqlite:///:memory:", connect_args={"check_same_thread": False})
    Base.metadata.create_all(bind=engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)()


def test_questionnaire_scores_healthy_answers():
    answers = QuestionnaireAnswers(
        sleepDuration=8,
        sleepQuality="excellent",
        activityFreq="active",
        diet="excellent",
        waterIntake=9,
        stressLevel=2,
        mood="positive",
        screenTime=1,
    ).model_dump()

    physical, mental, overall = score_questionnaire(answers)
    assert physical == 100
    assert mental == 99
    assert overall == 100


def test_questionnaire_scores_are_clamped_and_penalised():
    answers = QuestionnaireAnswers(
        sleepDuration=4,
        sleepQuality="poor",
        activityFreq="none",
        diet="poor",
        waterIntake=2,
        stressLevel=10,
        mood="low",
        screenTime=10,
    ).model_dump()

    physical, mental, overall = score_questionnaire(answers)
    assert physical == 50
    assert mental == 45
    assert overall == 48


def test_bmi_rounds_to_nearest_integer():
    assert compute_bmi(180, 81) == 25
    assert compute_bmi(None, 80) is None
    assert compute_bmi(170, 0) is None


def test_update_profile_derives_bmi_scores_and_referral_code():
    db = _new_db()
    user = User(wallet_address="0x" + "9" * 40, wallet_address_normalized="0x" + "9" * 40, nonce="n")
    db.add(user)
    db.commit()

    questionnaire = QuestionnaireAnswers(sleepDuration=6.5, stressLevel=5, mood="stable").model_dump()
    update_profile(db, user, {"name": "Asha", "height": 160, "weight": 64}, questionnaire=questionnaire)
    db.commit()
    db.refresh(user)

    assert user.name == "Asha"
    assert user.bmi == 25
    assert user.physical_score == 55
    assert user.mental_score == 75
    assert user.overall_score == 65
    assert json.loads(user.questionnaire) == {"sleepDuration": 6.5, "stressLevel": 5, "mood": "stable"}
    assert user.referral_code and user.referral_code.startswith("VITAL")


def test_risk_tier_from_severity():
    assert risk_level_for(1) == "low"
    assert risk_level_for(4) == "low"
    assert risk_level_for(5) == "medium"
    assert risk_level_for(7) == "medium"
    assert risk_level_for(8) == "high"
