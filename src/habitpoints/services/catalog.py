"""Creation of habits, monthly goals, milestones and rewards."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from typing import Any, Optional

from ..domain.repositories import DocumentStore, StoreTransaction
from ..errors import InvalidArgumentError, NotFoundError, UnauthorizedError
from ..logging_config import get_logger
from ..models import HabitTemplate, Milestone, MonthlyGoal, Reward, User
from ..models.habit import DEFAULT_BASE_POINTS, DEFAULT_PARTIAL_POINTS, DEFAULT_SHOW_UP_POINTS

logger = get_logger(__name__)

_MONTH_PATTERN = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")

DEFAULT_UI_RULE = {"type": "CHECKBOX"}
DEFAULT_GOAL_RULE = {"period": "DAILY", "frequency": 1}
DEFAULT_LOGGING_RULE = {"window": {"startOffsetHours": 0, "endOffsetHours": 24}}


@dataclass(frozen=True, slots=True)
class CreatedHabit:
    habit_id: str
    monthly_goal_id: Optional[str] = None


def _clean_name(name: Any, label: str) -> str:
    if name is not None and not isinstance(name, str):
        raise InvalidArgumentError(f"{label} name must be a string")
    cleaned = (name or "").strip()
    if not cleaned:
        raise InvalidArgumentError(f"{label} name is required")
    return cleaned


def _clean_text(value: Any, field: str) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise InvalidArgumentError(f"{field} must be a string")
    return value.strip()


def _positive_int(value: Any, message: str) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise InvalidArgumentError(message)
    if isinstance(value, float) and not value.is_integer():
        raise InvalidArgumentError(message)
    return int(value)


def _validate_month(month: Optional[str]) -> str:
    if not month:
        raise InvalidArgumentError("Month is required")
    if not _MONTH_PATTERN.match(month):
        raise InvalidArgumentError("Month must use the YYYY-MM format")
    return month


def _require_user(tx: StoreTransaction, user_id: str) -> None:
    if tx.get(User, user_id) is None:
        raise NotFoundError("User", user_id)


def _owned_habit(tx: StoreTransaction, habit_id: str, user_id: str) -> HabitTemplate:
    habit = tx.get(HabitTemplate, habit_id)
    if habit is None:
        raise NotFoundError("Habit", habit_id)
    if habit.user_id != user_id:
        raise UnauthorizedError("Habit belongs to another user")
    return habit


def _build_goal(
    *,
    user_id: str,
    habit_id: str,
    month: str,
    ui: Optional[dict[str, Any]],
    goal: Optional[dict[str, Any]],
    logging: Optional[dict[str, Any]],
    constraints: Optional[list[dict[str, Any]]],
) -> MonthlyGoal:
    return MonthlyGoal(
        user_id=user_id,
        habit_id=habit_id,
        month=month,
        ui=dict(ui or DEFAULT_UI_RULE),
        goal=dict(goal or DEFAULT_GOAL_RULE),
        logging=dict(logging or DEFAULT_LOGGING_RULE),
        constraints=list(constraints or []),
    )


def create_habit(
    store: DocumentStore,
    *,
    user_id: str,
    name: str,
    today: date,
    description: Optional[str] = None,
    icon: Optional[str] = None,
    allow_show_up: bool = False,
    show_up_points: Optional[int] = None,
    create_monthly_goal: bool = False,
    monthly_goal_config: Optional[dict[str, Any]] = None,
) -> CreatedHabit:
    """Create a habit template, plus a goal for the month when asked.

    Base and partial points are fixed at 100 and 25. The goal defaults to the
    month containing ``today``.
    """

    cleaned_name = _clean_name(name, "Habit")
    points_for_show_up = DEFAULT_SHOW_UP_POINTS
    if show_up_points:
        points_for_show_up = _positive_int(show_up_points, "Show-up points must be a positive integer")
    config = monthly_goal_config or {}
    if not isinstance(config, dict):
        raise InvalidArgumentError("Monthly goal config must be an object")
    month = _validate_month(config.get("month") or today.strftime("%Y-%m"))

    def body(tx: StoreTransaction) -> CreatedHabit:
        _require_user(tx, user_id)
        template = HabitTemplate(
            user_id=user_id,
            name=cleaned_name,
            description=_clean_text(description, "Description"),
            icon=_clean_text(icon, "Icon"),
            allow_show_up=bool(allow_show_up),
            show_up_points=points_for_show_up,
            base_points=DEFAULT_BASE_POINTS,
            partial_points=DEFAULT_PARTIAL_POINTS,
        )
        tx.create(template)

        goal_id = None
        if create_monthly_goal:
            goal = _build_goal(
                user_id=user_id,
                habit_id=template.id,
                month=month,
                ui=config.get("ui"),
                goal=config.get("goal"),
                logging=config.get("logging"),
                constraints=config.get("constraints"),
            )
            tx.create(goal)
            goal_id = goal.id
        return CreatedHabit(habit_id=template.id, monthly_goal_id=goal_id)

    created = store.run_transaction(body)
    logger.info(
        "Habit created",
        extra={"user_id": user_id, "habit_id": created.habit_id, "goal_id": created.monthly_goal_id},
    )
    return created


def create_monthly_goal(
    store: DocumentStore,
    *,
    user_id: str,
    habit_id: str,
    month: str,
    ui: Optional[dict[str, Any]] = None,
    goal: Optional[dict[str, Any]] = None,
    logging: Optional[dict[str, Any]] = None,
    constraints: Optional[list[dict[str, Any]]] = None,
) -> str:
    """Create a monthly goal for a habit the caller owns."""

    if not habit_id:
        raise InvalidArgumentError("Habit ID is required")
    month = _validate_month(month)

    def body(tx: StoreTransaction) -> str:
        _owned_habit(tx, habit_id, user_id)
        new_goal = _build_goal(
            user_id=user_id,
            habit_id=habit_id,
            month=month,
            ui=ui,
            goal=goal,
            logging=logging,
            constraints=constraints,
        )
        tx.create(new_goal)
        return new_goal.id

    goal_id = store.run_transaction(body)
    logger.info(
        "Monthly goal created",
        extra={"user_id": user_id, "habit_id": habit_id, "goal_id": goal_id, "month": month},
    )
    return goal_id


def create_milestone(
    store: DocumentStore,
    *,
    user_id: str,
    name: str,
    point_value: Any,
    description: Optional[str] = None,
    habit_id: Optional[str] = None,
) -> str:
    """Create a one-off milestone, optionally tied to an owned habit."""

    cleaned_name = _clean_name(name, "Milestone")
    points = _positive_int(point_value, "Point value must be positive")

    def body(tx: StoreTransaction) -> str:
        _require_user(tx, user_id)
        if habit_id:
            _owned_habit(tx, habit_id, user_id)
        milestone = Milestone(
            user_id=user_id,
            habit_id=habit_id or None,
            name=cleaned_name,
            description=_clean_text(description, "Description"),
            point_value=points,
        )
        tx.create(milestone)
        return milestone.id

    milestone_id = store.run_transaction(body)
    logger.info("Milestone created", extra={"user_id": user_id, "milestone_id": milestone_id})
    return milestone_id


def create_reward(
    store: DocumentStore,
    *,
    user_id: str,
    name: str,
    cost: Any,
    description: Optional[str] = None,
) -> str:
    """Create a reward that can later be redeemed with points."""

    cleaned_name = _clean_name(name, "Reward")
    reward_cost = _positive_int(cost, "Cost must be positive")

    def body(tx: StoreTransaction) -> str:
        _require_user(tx, user_id)
        reward = Reward(
            user_id=user_id,
            name=cleaned_name,
            description=_clean_text(description, "Description"),
            cost=reward_cost,
        )
        tx.create(reward)
        return reward.id

    reward_id = store.run_transaction(body)
    logger.info("Reward created", extra={"user_id": user_id, "reward_id": reward_id})
    return reward_id


__all__ = [
    "CreatedHabit",
    "DEFAULT_GOAL_RULE",
    "DEFAULT_LOGGING_RULE",
    "DEFAULT_UI_RULE",
    "create_habit",
    "create_milestone",
    "create_monthly_goal",
    "create_reward",
]
