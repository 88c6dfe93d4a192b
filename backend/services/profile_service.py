from __future__ import annotations

import json
import logging
import math
from typing import Any

from pydantic.alias_generators import to_camel
from sqlalchemy.orm import Session

from db.models import User
from services.points_service import ensure_referral_code

logger = logging.getLogger(__name__)

PROFILE_FIELDS = {
    "name",
    "age",
    "gender",
    "height",
    "weight",
    "lifestyle",
    "allergies",
    "past_diseases",
    "current_conditions",
}

_SLEEP_QUALITY_POINTS = {"excellent": 10, "good": 7, "fair": 3}
_ACTIVITY_POINTS = {"active": 15, "moderate": 10, "light": 5}
_DIET_POINTS = {"excellent": 10, "balanced": 7, "fair": 3}
_MOOD_POINTS = {"positive": 15, "stable": 10, "variable": 5}


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _clamp_score(value: float) -> int:
    return min(100, max(0, _round_half_up(value)))


def compute_bmi(height_cm: int | None, weight_kg: int | None) -> int | None:
    if not height_cm or not weight_kg or height_cm <= 0 or weight_kg <= 0:
        return None
    meters = float(height_cm) / 100.0
    return _round_half_up(float(weight_kg) / (meters * meters))


def score_questionnaire(answers: dict[str, Any]) -> tuple[int, int, int]:
    """Return ``(physical, mental, overall)`` scores for a questionnaire snapshot."""
    physical = 50.0
    mental = 50.0

    sleep = answers.get("sleep_duration")
    if sleep is not None:
        if 7 <= sleep <= 9:
            physical += 10
        elif sleep >= 6:
            physical += 5
    physical += _SLEEP_QUALITY_POINTS.get(answers.get("sleep_quality") or "", 0)
    physical += _ACTIVITY_POINTS.get(answers.get("activity_freq") or "", 0)
    physical += _DIET_POINTS.get(answers.get("diet") or "", 0)
    water = answers.get("water_intake")
    if water is not None:
        if water >= 8:
            physical += 5
        elif water >= 5:
            physical += 2

    stress = answers.get("stress_level")
    if stress is not None:
        mental += (10 - stress) * 3
    mental += _MOOD_POINTS.get(answers.get("mood") or "", 0)
    screen = answers.get("screen_time")
    if screen is not None:
        if screen <= 2:
            mental += 10
        elif screen <= 4:
            mental += 5
        elif screen > 6:
            mental -= 5

    physical_score = _clamp_score(physical)
    mental_score = _clamp_score(mental)
    overall = _round_half_up((physical_score + mental_score) / 2)
    return physical_score, mental_score, overall


def update_profile(
    db: Session,
    user: User,
    updates: dict[str, Any],
    questionnaire: dict[str, Any] | None = None,
) -> User:
    """Apply a partial profile update; derived fields (BMI, scores) are recomputed here.

    ``questionnaire`` holds validated snake_case answers; it is stored as a camelCase
    JSON snapshot with unanswered questions left out.
    """
    for field, value in updates.items():
        if field in PROFILE_FIELDS:
            setattr(user, field, value)

    if "height" in updates or "weight" in updates:
        bmi = compute_bmi(user.height, user.weight)
        if bmi is not None:
            user.bmi = bmi

    if questionnaire is not None:
        physical, mental, overall = score_questionnaire(questionnaire)
        snapshot = {to_camel(key): value for key, value in questionnaire.items() if value is not None}
        user.questionnaire = json.dumps(snapshot, ensure_ascii=True)
        user.physical_score = physical
        user.mental_score = mental
        user.overall_score = overall
        logger.info("Questionnaire scored for user %s: overall %d", user.id, overall)

    db.flush()
    ensure_referral_code(db, user)
    return user
