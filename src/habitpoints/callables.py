"""Callable boundary: authenticated payload in, JSON-ready dict out.

Every callable takes the caller's uid (from the auth collaborator, never from
the payload) and the request payload. Failures surface as
:class:`CallableError` with one of three statuses: ``unauthenticated``,
``invalid-argument`` or ``internal``. Business-rule messages are preserved so
clients can display them.
"""

from __future__ import annotations

import functools
import re
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Optional

from sqlmodel import SQLModel

from .domain.repositories import DocumentStore
from .errors import HabitPointsError, InvalidArgumentError
from .logging_config import get_logger
from .services import awards, catalog, dashboard
from .services.awards import Clock, utc_clock

logger = get_logger(__name__)

UNAUTHENTICATED = "unauthenticated"
INVALID_ARGUMENT = "invalid-argument"
INTERNAL = "internal"

_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_SNAKE_SEGMENT = re.compile(r"_([a-z0-9])")

Payload = dict[str, Any]


class CallableError(Exception):
    """Failure reported to the caller with a status and a readable message."""

    def __init__(self, status: str, message: str) -> None:
        super().__init__(message)
        self.status = status
        self.message = message

    def to_dict(self) -> dict[str, str]:
        return {"status": self.status, "message": self.message}


@dataclass
class CallableContext:
    """Collaborators shared by every callable."""

    store: DocumentStore
    clock: Clock = utc_clock
    history_window_days: int = 7

    def today(self) -> date:
        return self.clock().date()


CallableFn = Callable[[CallableContext, Optional[str], Payload], Payload]


def callable_endpoint(failure_message: str) -> Callable[[Callable[..., Payload]], CallableFn]:
    """Add the auth check and error mapping shared by all callables."""

    def decorator(func: Callable[..., Payload]) -> CallableFn:
        @functools.wraps(func)
        def wrapper(ctx: CallableContext, auth_uid: Optional[str], data: Optional[Payload]) -> Payload:
            if not auth_uid:
                raise CallableError(UNAUTHENTICATED, "User must be authenticated")
            if data is not None and not isinstance(data, dict):
                raise CallableError(INVALID_ARGUMENT, "Request data must be an object")
            try:
                return func(ctx, auth_uid, data or {})
            except CallableError:
                raise
            except InvalidArgumentError as exc:
                raise CallableError(INVALID_ARGUMENT, exc.message) from exc
            except HabitPointsError as exc:
                logger.error(
                    "%s: %s",
                    failure_message,
                    exc.message,
                    extra={"callable": func.__name__, "user_id": auth_uid, "error_code": exc.code},
                )
                raise CallableError(INTERNAL, exc.message) from exc
            except Exception as exc:
                logger.error(
                    failure_message,
                    exc_info=True,
                    extra={"callable": func.__name__, "user_id": auth_uid},
                )
                raise CallableError(INTERNAL, failure_message) from exc

        return wrapper

    return decorator


def _require(data: Payload, *fields: str) -> None:
    for name in fields:
        value = data.get(name)
        if value is None or (isinstance(value, str) and not value.strip()):
            raise CallableError(INVALID_ARGUMENT, f"{name} is required")


def _parse_date(raw: Any, name: str) -> date:
    if not isinstance(raw, str) or not _DATE_PATTERN.match(raw):
        raise CallableError(INVALID_ARGUMENT, f"{name} must use the YYYY-MM-DD format")
    try:
        return date.fromisoformat(raw)
    except ValueError as exc:
        raise CallableError(INVALID_ARGUMENT, f"{name} is not a valid date") from exc


def _camel(key: str) -> str:
    return _SNAKE_SEGMENT.sub(lambda match: match.group(1).upper(), key)


def serialize_document(doc: Optional[SQLModel], id_key: str) -> Optional[Payload]:
    """Dump a stored document with camelCase keys and a named id field."""

    if doc is None:
        return None
    raw = doc.model_dump(mode="json", exclude={"version"})
    payload = {id_key: raw.pop("id")}
    payload.update({_camel(key): value for key, value in raw.items()})
    return payload


def serialize_dashboard(state: dashboard.DashboardState) -> Payload:
    return {
        "currentUserProfile": serialize_document(state.current_user, "uid"),
        "partnerProfile": serialize_document(state.partner, "uid"),
        "isSingleUser": state.is_single_user,
        "todaysHabits": [
            {
                "goal": serialize_document(item.goal, "monthlyGoalId"),
                "template": serialize_document(item.template, "habitId"),
                "entry": serialize_document(item.entry, "entryId"),
                "today": item.today.isoformat(),
                "streak": item.streak.to_dict(),
                "recentHistory": item.recent_history,
            }
            for item in state.todays_habits
        ],
        "yesterdayHabits": [
            {
                "goal": serialize_document(item.goal, "monthlyGoalId"),
                "template": serialize_document(item.template, "habitId"),
                "entries": [serialize_document(entry, "entryId") for entry in item.entries],
                "isCompleted": item.is_completed,
                "canCompleteToday": item.can_complete_today,
                "yesterdayDate": item.yesterday_date.isoformat(),
                "streak": item.streak.to_dict(),
            }
            for item in state.yesterday_habits
        ],
        "weeklyData": [
            {"user": row.user, "days": row.days, "userIndex": row.user_index}
            for row in state.weekly_data
        ],
        "milestones": [serialize_document(m, "milestoneId") for m in state.milestones],
    }


@callable_endpoint("Failed to log habit entry")
def log_habit_entry(ctx: CallableContext, auth_uid: str, data: Payload) -> Payload:
    _require(data, "monthlyGoalId", "targetDate", "value")
    result = awards.log_habit_entry(
        ctx.store,
        user_id=auth_uid,
        goal_id=data["monthlyGoalId"],
        target_date=_parse_date(data["targetDate"], "targetDate"),
        value=data["value"],
        clock=ctx.clock,
    )
    return {
        "entryId": result.entry_id,
        "pointsAwarded": result.points_awarded,
        "streak": result.streak.to_dict(),
        "success": True,
    }


@callable_endpoint("Failed to delete habit entry")
def delete_habit_entry(ctx: CallableContext, auth_uid: str, data: Payload) -> Payload:
    _require(data, "entryId")
    awards.delete_habit_entry(ctx.store, user_id=auth_uid, entry_id=data["entryId"])
    return {"success": True}


@callable_endpoint("Failed to complete milestone")
def complete_milestone(ctx: CallableContext, auth_uid: str, data: Payload) -> Payload:
    _require(data, "milestoneId")
    result = awards.complete_milestone(
        ctx.store, user_id=auth_uid, milestone_id=data["milestoneId"], clock=ctx.clock
    )
    return {"success": True, "pointsAwarded": result.points_awarded}


@callable_endpoint("Failed to redeem reward")
def redeem_reward(ctx: CallableContext, auth_uid: str, data: Payload) -> Payload:
    _require(data, "rewardId")
    result = awards.redeem_reward(
        ctx.store, user_id=auth_uid, reward_id=data["rewardId"], clock=ctx.clock
    )
    return {"success": True, "pointsSpent": result.points_spent}


@callable_endpoint("Failed to create habit")
def create_habit(ctx: CallableContext, auth_uid: str, data: Payload) -> Payload:
    _require(data, "name")
    created = catalog.create_habit(
        ctx.store,
        user_id=auth_uid,
        name=data["name"],
        today=ctx.today(),
        description=data.get("description"),
        icon=data.get("icon"),
        allow_show_up=bool(data.get("allowShowUp", False)),
        show_up_points=data.get("showUpPoints"),
        create_monthly_goal=bool(data.get("createMonthlyGoal", False)),
        monthly_goal_config=data.get("monthlyGoalConfig"),
    )
    payload: Payload = {"habitId": created.habit_id, "success": True}
    if created.monthly_goal_id:
        payload["monthlyGoalId"] = created.monthly_goal_id
    return payload


@callable_endpoint("Failed to create monthly goal")
def create_monthly_goal(ctx: CallableContext, auth_uid: str, data: Payload) -> Payload:
    _require(data, "habitId", "month")
    goal_id = catalog.create_monthly_goal(
        ctx.store,
        user_id=auth_uid,
        habit_id=data["habitId"],
        month=data["month"],
        ui=data.get("ui"),
        goal=data.get("goal"),
        logging=data.get("logging"),
        constraints=data.get("constraints"),
    )
    return {"monthlyGoalId": goal_id, "success": True}


@callable_endpoint("Failed to create milestone")
def create_milestone(ctx: CallableContext, auth_uid: str, data: Payload) -> Payload:
    _require(data, "name", "pointValue")
    milestone_id = catalog.create_milestone(
        ctx.store,
        user_id=auth_uid,
        name=data["name"],
        point_value=data["pointValue"],
        description=data.get("description"),
        habit_id=data.get("habitId"),
    )
    return {"milestoneId": milestone_id, "success": True}


@callable_endpoint("Failed to create reward")
def create_reward(ctx: CallableContext, auth_uid: str, data: Payload) -> Payload:
    _require(data, "name", "cost")
    reward_id = catalog.create_reward(
        ctx.store,
        user_id=auth_uid,
        name=data["name"],
        cost=data["cost"],
        description=data.get("description"),
    )
    return {"rewardId": reward_id, "success": True}


@callable_endpoint("Failed to get dashboard state")
def get_dashboard_state(ctx: CallableContext, auth_uid: str, data: Payload) -> Payload:
    state = dashboard.get_dashboard_state(
        ctx.store,
        user_id=auth_uid,
        today=ctx.today(),
        window_days=ctx.history_window_days,
    )
    return serialize_dashboard(state)


CALLABLES: dict[str, CallableFn] = {
    "logHabitEntry": log_habit_entry,
    "deleteHabitEntry": delete_habit_entry,
    "completeMilestone": complete_milestone,
    "redeemReward": redeem_reward,
    "createHabit": create_habit,
    "createMonthlyGoal": create_monthly_goal,
    "createMilestone": create_milestone,
    "createReward": create_reward,
    "getDashboardState": get_dashboard_state,
}

__all__ = [
    "CALLABLES",
    "CallableContext",
    "CallableError",
    "INTERNAL",
    "INVALID_ARGUMENT",
    "UNAUTHENTICATED",
    "serialize_dashboard",
    "serialize_document",
]
