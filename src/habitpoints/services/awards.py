"""Transactional point awards: habit logging, milestones and rewards.

Each operation is one store transaction. Transaction bodies read the clock
and mint ids themselves, so a retried attempt starts over from fresh reads.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable

from ..domain.entry_value import EntryValue
from ..domain.repositories import DocumentStore, StoreTransaction
from ..errors import (
    AlreadyCompletedError,
    AlreadyLoggedError,
    AlreadyRedeemedError,
    InsufficientPointsError,
    NotFoundError,
    UnauthorizedError,
)
from ..logging_config import get_logger
from ..models import HabitEntry, HabitTemplate, Milestone, MonthlyGoal, Reward, User
from .points import calculate_points
from .streaks import MAX_LOOKBACK_DAYS, StreakInfo, evaluate_streak

logger = get_logger(__name__)

Clock = Callable[[], datetime]


def utc_clock() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class LogEntryResult:
    entry_id: str
    points_awarded: int
    streak: StreakInfo


@dataclass(frozen=True, slots=True)
class MilestoneResult:
    milestone_id: str
    points_awarded: int


@dataclass(frozen=True, slots=True)
class RedemptionResult:
    reward_id: str
    points_spent: int


def _load_user(tx: StoreTransaction, user_id: str) -> User:
    user = tx.get(User, user_id)
    if user is None:
        raise NotFoundError("User", user_id)
    return user


def _lookback_history(tx: StoreTransaction, goal_id: str, target_date: date) -> list[HabitEntry]:
    """Entries the streak walk can reach from ``target_date``."""
    window_start = target_date - timedelta(days=MAX_LOOKBACK_DAYS - 1)
    # The store only filters on equality, so the date window is applied here.
    return [
        entry
        for entry in tx.query(HabitEntry, monthly_goal_id=goal_id)
        if window_start <= entry.target_date <= target_date
    ]


def log_habit_entry(
    store: DocumentStore,
    *,
    user_id: str,
    goal_id: str,
    target_date: date,
    value: Any,
    clock: Clock = utc_clock,
) -> LogEntryResult:
    """Record an entry for ``target_date`` and credit its points to the user.

    The new entry is part of the history the streak is evaluated on, so a
    full completion that extends a streak already earns the new multiplier.
    """

    EntryValue.from_wire(value)  # reject malformed values before touching the store

    def body(tx: StoreTransaction) -> LogEntryResult:
        now = clock()

        goal = tx.get(MonthlyGoal, goal_id)
        if goal is None:
            raise NotFoundError("Monthly goal", goal_id)
        if goal.user_id != user_id:
            raise UnauthorizedError("Monthly goal belongs to another user")

        template = tx.get(HabitTemplate, goal.habit_id)
        if template is None:
            logger.warning(
                "Habit template missing, awarding no points",
                extra={"goal_id": goal_id, "habit_id": goal.habit_id},
            )

        history = _lookback_history(tx, goal.id, target_date)
        if any(entry.target_date == target_date for entry in history):
            raise AlreadyLoggedError("Habit already logged for this date")

        entry = HabitEntry(
            monthly_goal_id=goal.id,
            user_id=user_id,
            target_date=target_date,
            timestamp=now,
            value=value,
        )
        history.append(entry)
        streak = evaluate_streak(history, target_date)
        points = calculate_points(entry, template, streak)

        user = _load_user(tx, user_id)

        tx.create(entry)
        # Serializes concurrent logs for the same goal.
        tx.touch(goal)
        tx.update(user, points=user.points + points)
        return LogEntryResult(entry_id=entry.id, points_awarded=points, streak=streak)

    result = store.run_transaction(body)
    logger.info(
        "Habit entry logged",
        extra={
            "user_id": user_id,
            "goal_id": goal_id,
            "target_date": target_date.isoformat(),
            "points_awarded": result.points_awarded,
            "streak": result.streak.current_streak,
            "shield_active": result.streak.shield_active,
        },
    )
    return result


def delete_habit_entry(store: DocumentStore, *, user_id: str, entry_id: str) -> None:
    """Undo a logged entry. Points already awarded stay with the user."""

    def body(tx: StoreTransaction) -> None:
        entry = tx.get(HabitEntry, entry_id)
        if entry is None:
            raise NotFoundError("Habit entry", entry_id)
        if entry.user_id != user_id:
            raise UnauthorizedError("Habit entry belongs to another user")
        goal = tx.get(MonthlyGoal, entry.monthly_goal_id)

        tx.delete(entry)
        if goal is not None:
            tx.touch(goal)

    store.run_transaction(body)
    logger.info("Habit entry deleted", extra={"user_id": user_id, "entry_id": entry_id})


def complete_milestone(
    store: DocumentStore, *, user_id: str, milestone_id: str, clock: Clock = utc_clock
) -> MilestoneResult:
    """Mark a milestone complete and credit its point value once."""

    def body(tx: StoreTransaction) -> MilestoneResult:
        now = clock()
        milestone = tx.get(Milestone, milestone_id)
        if milestone is None:
            raise NotFoundError("Milestone", milestone_id)
        if milestone.user_id != user_id:
            raise UnauthorizedError("Milestone belongs to another user")
        if milestone.is_completed:
            raise AlreadyCompletedError("Milestone already completed")

        points = milestone.point_value or 0
        user = _load_user(tx, user_id)

        tx.update(milestone, is_completed=True, completed_at=now)
        tx.update(user, points=user.points + points)
        return MilestoneResult(milestone_id=milestone.id, points_awarded=points)

    result = store.run_transaction(body)
    logger.info(
        "Milestone completed",
        extra={
            "user_id": user_id,
            "milestone_id": milestone_id,
            "points_awarded": result.points_awarded,
        },
    )
    return result


def redeem_reward(
    store: DocumentStore, *, user_id: str, reward_id: str, clock: Clock = utc_clock
) -> RedemptionResult:
    """Spend points on a reward if the balance covers its cost."""

    def body(tx: StoreTransaction) -> RedemptionResult:
        now = clock()
        reward = tx.get(Reward, reward_id)
        if reward is None:
            raise NotFoundError("Reward", reward_id)
        if reward.user_id != user_id:
            raise UnauthorizedError("Reward belongs to another user")
        if reward.is_redeemed:
            raise AlreadyRedeemedError("Reward already redeemed")

        cost = reward.cost or 0
        user = _load_user(tx, user_id)
        if user.points < cost:
            raise InsufficientPointsError(user_id, user.points, cost)

        tx.update(reward, is_redeemed=True, redeemed_at=now)
        tx.update(user, points=user.points - cost)
        return RedemptionResult(reward_id=reward.id, points_spent=cost)

    result = store.run_transaction(body)
    logger.info(
        "Reward redeemed",
        extra={"user_id": user_id, "reward_id": reward_id, "points_spent": result.points_spent},
    )
    return result


__all__ = [
    "Clock",
    "LogEntryResult",
    "MilestoneResult",
    "RedemptionResult",
    "complete_milestone",
    "delete_habit_entry",
    "log_habit_entry",
    "redeem_reward",
    "utc_clock",
]
