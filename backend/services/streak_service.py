"""Streak and reward rules applied when a task flips to completed.

A streak counts calendar days with at least one completed task. The first completion
on a new day either extends the streak (previous day) or restarts it (any longer gap);
further completions on the same day only earn the flat task reward.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date

from sqlalchemy.orm import Session

from config import settings
from db.models import User
from services.points_service import add_points

logger = logging.getLogger(__name__)

WEEK_STREAK = 7
MONTH_STREAK = 30


@dataclass(frozen=True)
class CompletionReward:
    task_points: int
    bonus_points: int
    streak: int
    streak_advanced: bool

    @property
    def total_points(self) -> int:
        return self.task_points + self.bonus_points


def next_streak(prior_streak: int, last_task_date: date | None, today: date) -> tuple[int, bool]:
    """Return ``(streak, advanced)`` for a completion on ``today``.

    ``advanced`` is False when the streak was left untouched (same day as the last
    recorded completion).
    """
    prior = max(int(prior_streak or 0), 0)
    if last_task_date is None:
        return 1, True
    gap_days = (today - last_task_date).days
    if gap_days == 1:
        return prior + 1, True
    if gap_days > 1:
        return 1, True
    # Same day, or a last date in the future after a clock/timezone change.
    return prior, False


def streak_bonus(streak: int) -> int:
    bonus = 0
    if streak == WEEK_STREAK:
        bonus += int(settings.STREAK_WEEK_BONUS)
    if streak > 0 and streak % MONTH_STREAK == 0:
        bonus += int(settings.STREAK_MONTH_BONUS)
    return bonus


def apply_completion_rewards(db: Session, user_id: int, today: date) -> CompletionReward:
    """Award task points, update the streak, and pay any milestone bonus.

    Must run inside the same transaction as the task's completed transition.
    """
    user = (
        db.query(User)
        .filter(User.id == user_id)
        .with_for_update()
        .populate_existing()
        .one()
    )

    streak, advanced = next_streak(user.current_streak, user.last_task_date, today)
    # Milestone bonuses are paid only on the completion that reached the milestone.
    bonus = streak_bonus(streak) if advanced else 0
    task_points = int(settings.TASK_COMPLETION_POINTS)

    add_points(db, user, task_points + bonus)
    user.current_streak = streak
    user.last_task_date = today
    db.flush()

    logger.info(
        "Task completion for user %s: +%d points (bonus %d), streak %d",
        user_id,
        task_points + bonus,
        bonus,
        streak,
    )
    return CompletionReward(
        task_points=task_points,
        bonus_points=bonus,
        streak=streak,
        streak_advanced=advanced,
    )
