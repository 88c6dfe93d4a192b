import json
from datetime import date, datetime
from typing import Any

from pydantic import Field, field_validator

from utils.schema_base import CamelModel, CamelRequest


class NonceRequest(CamelRequest):
    wallet_address: str = Field(min_length=1, max_length=128)


class NonceResponse(CamelModel):
    nonce: str


class VerifyRequest(CamelRequest):
    wallet_address: str = Field(min_length=1, max_length=128)
    signature: str = Field(min_length=1, max_length=512)


class UserResponse(CamelModel):
    id: int
    wallet_address: str
    name: str | None = None
    age: int | None = None
    gender: str | None = None
    height: int | None = None
    weight: int | None = None
    bmi: int | None = None
    lifestyle: str | None = None
    allergies: str | None = None
    past_diseases: str | None = None
    current_conditions: str | None = None
    physical_score: int = 50
    mental_score: int = 50
    overall_score: int = 50
    questionnaire: dict[str, Any] | None = None
    points: int = 0
    current_streak: int = 0
    last_task_date: date | None = None
    referral_code: str | None = None
    referred_by: str | None = None
    created_at: datetime | None = None

    @field_validator("questionnaire", mode="before")
    @classmethod
    def _parse_questionnaire(cls, value):
        if isinstance(value, str):
            try:
                parsed = json.loads(value)
            except json.JSONDecodeError:
                return None
            return parsed if isinstance(parsed, dict) else None
        return value


class VerifyResponse(CamelModel):
    token: str = "session_cookie_used"
    user: UserResponse


class MessageResponse(CamelModel):
    message: str
