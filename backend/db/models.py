from datetime import datetime
from sqlalchemy import (
    Column, Integer, Text, Boolean, ForeignKey, Index, UniqueConstraint,
    Date, DateTime,
)
from sqlalchemy.orm import relationship
from db.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    wallet_address = Column(Text, nullable=False)
    wallet_address_normalized = Column(Text, unique=True, index=True, nullable=False)
    nonce = Column(Text, nullable=False)  # rotated on every issue/verify attempt

    name = Column(Text)
    age = Column(Integer)
    gender = Column(Text)
    height = Column(Integer)  # cm
    weight = Column(Integer)  # kg
    bmi = Column(Integer)
    lifestyle = Column(Text)  # student | corporate | other
    allergies = Column(Text)
    past_diseases = Column(Text)
    current_conditions = Column(Text)

    physical_score = Column(Integer, nullable=False, default=50)
    mental_score = Column(Integer, nullable=False, default=50)
    overall_score = Column(Integer, nullable=False, default=50)
    questionnaire = Column(Text)  # JSON object

    points = Column(Integer, nullable=False, default=0)
    current_streak = Column(Integer, nullable=False, default=0)
    last_task_date = Column(Date, nullable=True)
    referral_code = Column(Text, unique=True, index=True, nullable=True)
    referred_by = Column(Text, nullable=True)  # write-once

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    sessions = relationship("UserSession", back_populates="user", passive_deletes=True)
    tasks = relationship("Task", back_populates="user", cascade="all, delete-orphan")
    symptoms = relationship("Symptom", back_populates="user", cascade="all, delete-orphan")
    reminders = relationship("Reminder", back_populates="user", cascade="all, delete-orphan")


class UserSession(Base):
    __tablename__ = "user_sessions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    token_hash = Column(Text, unique=True, index=True, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    expires_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    last_seen_at = Column(DateTime, default=datetime.utcnow)  # refreshed on each resolve

    user = relationship("User", back_populates="sessions")


class Task(Base):
    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    date = Column(Text, nullable=False)  # YYYY-MM-DD
    type = Column(Text, nullable=False)  # steps | water | sleep | exercise
    target = Column(Integer, nullable=False)
    current = Column(Integer, nullable=False, default=0)
    completed = Column(Boolean, nullable=False, default=False)
    reward_paid = Column(Boolean, nullable=False, default=False)  # set once, never cleared
    created_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("User", back_populates="tasks")

    __table_args__ = (
        UniqueConstraint("user_id", "date", "type", name="uq_tasks_user_date_type"),
    )


class Symptom(Base):
    __tablename__ = "symptoms"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    description = Column(Text, nullable=False)
    severity = Column(Integer, nullable=False)  # 1-10
    duration = Column(Integer, nullable=False)  # days
    ai_analysis = Column(Text)
    risk_level = Column(Text)  # low | medium | high
    created_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("User", back_populates="symptoms")

    __table_args__ = (
        Index("ix_symptoms_user_created", "user_id", "created_at"),
    )


class Reminder(Base):
    __tablename__ = "reminders"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    type = Column(Text, nullable=False)  # medicine | doctor | test
    title = Column(Text, nullable=False)
    scheduled_at = Column("datetime", DateTime, nullable=False)
    dosage = Column(Text)
    completed = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("User", back_populates="reminders")


class RateLimitAuditEvent(Base):
    __tablename__ = "rate_limit_audit_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    endpoint = Column(Text, nullable=False)
    scope_key = Column(Text, nullable=False)
    blocked = Column(Boolean, nullable=False, default=False)
    retry_after_seconds = Column(Integer)
    user_id = Column(Integer, nullable=True)
    ip_address = Column(Text)
    details_json = Column(Text)
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index("ix_rate_limit_audit_endpoint_created", "endpoint", "created_at"),
    )
