"""Dashboard state assembled from the caller's (and partner's) documents."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Optional

from ..domain.repositories import DocumentStore
from ..errors import NotFoundError
from ..models import HabitEntry, HabitTemplate, Milestone, MonthlyGoal, User
from .history import DEFAULT_WINDOW_DAYS, project_recent_history, week_presence
from .streaks import StreakInfo, evaluate_streak


@dataclass
class TodayHabit:
    goal: MonthlyGoal
    template: Optional[HabitTemplate]
    entry: Optional[HabitEntry]
    today: date
    streak: StreakInfo
    recent_history: list[bool]


@dataclass
class YesterdayHabit:
    goal: MonthlyGoal
    template: Optional[HabitTemplate]
    entries: list[HabitEntry]
    is_completed: bool
    can_complete_today: bool
    yesterday_date: date
    streak: StreakInfo


@dataclass
class WeeklyRow:
    user: str
    days: list[bool]
    user_index: int


@dataclass
class DashboardState:
    current_user: User
    partner: Optional[User]
    is_single_user: bool
    todays_habits: list[TodayHabit] = field(default_factory=list)
    yesterday_habits: list[YesterdayHabit] = field(default_factory=list)
    weekly_data: list[WeeklyRow] = field(default_factory=list)
    milestones: list[Milestone] = field(default_factory=list)


def _initial(name: str) -> str:
    return name[:1].upper()


def get_dashboard_state(
    store: DocumentStore,
    *,
    user_id: str,
    today: date,
    window_days: int = DEFAULT_WINDOW_DAYS,
) -> DashboardState:
    """Build the dashboard for ``user_id`` as of ``today``.

    Only goals for the month containing ``today`` are listed. Both the today
    and yesterday views evaluate the streak at ``today``.
    """

    current_user = store.get(User, user_id)
    if current_user is None:
        raise NotFoundError("User profile", user_id)

    partner: Optional[User] = None
    is_single_user = not current_user.partner_id
    if current_user.partner_id:
        partner = store.get(User, current_user.partner_id)

    templates = {t.id: t for t in store.query(HabitTemplate, user_id=user_id)}
    entries = store.query(HabitEntry, user_id=user_id)
    milestones = store.query(Milestone, user_id=user_id)
    month = today.strftime("%Y-%m")
    goals = sorted(
        store.query(MonthlyGoal, user_id=user_id, month=month),
        key=lambda goal: templates[goal.habit_id].name if goal.habit_id in templates else "",
    )

    entries_by_goal: dict[str, list[HabitEntry]] = {}
    for entry in entries:
        entries_by_goal.setdefault(entry.monthly_goal_id, []).append(entry)

    yesterday = today - timedelta(days=1)
    todays_habits: list[TodayHabit] = []
    yesterday_habits: list[YesterdayHabit] = []
    for goal in goals:
        template = templates.get(goal.habit_id)
        goal_entries = entries_by_goal.get(goal.id, [])
        streak = evaluate_streak(goal_entries, today)

        todays_habits.append(
            TodayHabit(
                goal=goal,
                template=template,
                entry=next((e for e in goal_entries if e.target_date == today), None),
                today=today,
                streak=streak,
                recent_history=project_recent_history(goal_entries, today, window_days),
            )
        )

        yesterday_entries = [e for e in goal_entries if e.target_date == yesterday]
        yesterday_habits.append(
            YesterdayHabit(
                goal=goal,
                template=template,
                entries=yesterday_entries,
                is_completed=bool(yesterday_entries),
                can_complete_today=goal.allows_next_day_completion and not yesterday_entries,
                yesterday_date=yesterday,
                streak=streak,
            )
        )

    weekly_data = [WeeklyRow(_initial(current_user.name), week_presence(entries, today), 0)]
    if partner is not None:
        partner_entries = store.query(HabitEntry, user_id=partner.id)
        weekly_data.append(WeeklyRow(_initial(partner.name), week_presence(partner_entries, today), 1))

    return DashboardState(
        current_user=current_user,
        partner=partner,
        is_single_user=is_single_user,
        todays_habits=todays_habits,
        yesterday_habits=yesterday_habits,
        weekly_data=weekly_data,
        milestones=milestones,
    )


__all__ = [
    "DashboardState",
    "TodayHabit",
    "WeeklyRow",
    "YesterdayHabit",
    "get_dashboard_state",
]
