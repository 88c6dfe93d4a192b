from datetime import datetime
from typing import Literal

from pydantic import Field, field_validator

from utils.schema_base import CamelModel, CamelRequest

Lifestyle = Literal["student", "corporate", "other"]
TaskType = Literal["steps", "water", "sleep", "exercise"]
ReminderType = Literal["medicine", "doctor", "test"]
RiskLevel = Literal["low", "medium", "high"]


class QuestionnaireAnswers(CamelRequest):
    sleep_duration: float | None = Field(default=None, ge=3, le=12)
    sleep_quality: Literal["poor", "fair", "good", "excellent"] | None = None
    activity_freq: Literal["none", "light", "moderate", "active"] | None = None
    exercise_type: Literal["cardio", "strength", "yoga", "mixed", "none"] | None = None
    steps_daily: int | None = Field(default=None, ge=1000, le=20000)
    diet: Literal["poor", "fair", "balanced", "excellent"] | None = None
    water_intake: int | None = Field(default=None, ge=1, le=15)
    screen_time: float | None = Field(default=None, ge=0, le=12)
    stress_level: int | None = Field(default=None, ge=1, le=10)
    mood: Literal["low", "variable", "stable", "positive"] | None = None


class ProfileUpdateRequest(CamelRequest):
    name: str | None = Field(default=None, max_length=120)
    age: int | None = Field(default=None, ge=1, le=130)
    gender: str | None = Field(default=None, max_length=40)
    height: int | None = Field(default=None, ge=30, le=300)
    weight: int | None = Field(default=None, ge=2, le=700)
    lifestyle: Lifestyle | None = None
    allergies: str | None = Field(default=None, max_length=2000)
    past_diseases: str | None = Field(default=None, max_length=2000)
    current_conditions: str | None = Field(default=None, max_length=2000)
    questionnaire: QuestionnaireAnswers | None = None


class TaskResponse(CamelModel):
    id: int
    user_id: int
    date: str
    type: str
    target: int
    current: int = 0
    completed: bool = False


class TaskUpdateRequest(CamelRequest):
    completed: bool | None = None
    current: int | None = Field(default=None, ge=0)


class SymptomCreateRequest(CamelRequest):
    description: str = Field(min_length=1, max_length=2000)
    severity: int = Field(ge=1, le=10)
    duration: int = Field(ge=0, le=3650)

    @field_validator("description")
    @classmethod
    def _strip_description(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Description is required")
        return value


class SymptomResponse(CamelModel):
    id: int
    user_id: int
    description: str
    severity: int
    duration: int
    ai_analysis: str | None = None
    risk_level: RiskLevel | None = None
    created_at: datetime | None = Field(default=None, alias="date")


class ReminderCreateRequest(CamelRequest):
    type: ReminderType
    title: str = Field(min_length=1, max_length=200)
    scheduled_at: datetime = Field(alias="datetime")
    dosage: str | None = Field(default=None, max_length=200)

    @field_validator("title")
    @classmethod
    def _strip_title(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Title is required")
        return value


class ReminderResponse(CamelModel):
    id: int
    user_id: int
    type: str
    title: str
    scheduled_at: datetime = Field(alias="datetime")
    dosage: str | None = None
    completed: bool = False


class ChatRequest(CamelRequest):
    message: str = Field(min_length=1, max_length=4000)


class ChatResponse(CamelModel):
    reply: str


class ImageAnalysisRequest(CamelRequest):
    image: str = Field(min_length=1)
    context: str | None = Field(default=None, max_length=2000)


class ImageAnalysisResponse(CamelModel):
    analysis: str


class PointsResponse(CamelModel):
    points: int
    streak: int
    can_redeem: bool
    redeem_value: int


class ReferralRequest(CamelRequest):
    referral_code: str = Field(min_length=1, max_length=64)


class ReferralResponse(CamelModel):
    success: bool = True
    points: int
