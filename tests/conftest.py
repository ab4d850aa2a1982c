"""Pytest configuration and shared fixtures for HabitPoints tests.

This module provides database fixtures, document factories and small date
helpers for testing the engine, the orchestrators and the callable boundary
without touching a real data directory.
"""

from __future__ import annotations

import tempfile
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Iterable, Optional

import pytest
from sqlmodel import SQLModel, create_engine

# Import all models to ensure they're registered with SQLModel metadata
from habitpoints.infra.database import create_session_factory
from habitpoints.infra.repositories import SQLModelDocumentStore
from habitpoints.models import HabitEntry, HabitTemplate, Milestone, MonthlyGoal, Reward, User

# =============================================================================
# Environment
# =============================================================================


@pytest.fixture(autouse=True)
def isolated_data_dir(tmp_path, monkeypatch):
    """Point config objects at a throwaway data directory."""

    monkeypatch.setenv("HABITPOINTS_DATA_DIR", str(tmp_path / "instance"))
    monkeypatch.delenv("HABITPOINTS_DATABASE_URL", raising=False)
    return tmp_path / "instance"


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture(scope="function")
def db_engine():
    """Create an isolated SQLite database file for each test.

    A file (rather than ``sqlite://``) lets separate sessions run side by side,
    which the conflict tests rely on.

    Yields:
        Engine: SQLModel engine connected to the test database
    """
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = Path(f.name)

    engine = create_engine(f"sqlite:///{db_path}", echo=False)
    SQLModel.metadata.create_all(engine)

    yield engine

    engine.dispose()
    db_path.unlink(missing_ok=True)


@pytest.fixture(scope="function")
def session_factory(db_engine):
    """Session factory with commit/rollback semantics, as the app uses."""

    return create_session_factory(db_engine)


@pytest.fixture(scope="function")
def store(session_factory) -> SQLModelDocumentStore:
    return SQLModelDocumentStore(session_factory)


@pytest.fixture
def fixed_clock():
    """Clock frozen at noon UTC on 2024-01-09."""

    now = datetime(2024, 1, 9, 12, 0, tzinfo=timezone.utc)
    return lambda: now


# =============================================================================
# Test Data Factories
# =============================================================================


@pytest.fixture
def persist(session_factory):
    """Write documents straight to the database and return them detached."""

    def _persist(*docs: SQLModel):
        with session_factory() as session:
            for doc in docs:
                session.add(doc)
        return docs[0] if len(docs) == 1 else docs

    return _persist


@pytest.fixture
def user_factory(persist):
    def _create_user(
        name: str = "Alex",
        points: int = 0,
        partner_id: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> User:
        fields: dict[str, Any] = {
            "name": name,
            "email": f"{name.lower()}@example.com",
            "points": points,
            "partner_id": partner_id,
        }
        if user_id:
            fields["id"] = user_id
        return persist(User(**fields))

    return _create_user


@pytest.fixture
def user(user_factory) -> User:
    """Default user for scoping data."""

    return user_factory(name="Alex", user_id="user-alex")


@pytest.fixture
def habit_factory(persist, user):
    def _create_habit(
        name: str = "Exercise",
        owner: Optional[User] = None,
        base_points: Optional[int] = 100,
        allow_show_up: bool = True,
    ) -> HabitTemplate:
        owner = owner or user
        return persist(
            HabitTemplate(
                user_id=owner.id,
                name=name,
                base_points=base_points,
                allow_show_up=allow_show_up,
            )
        )

    return _create_habit


@pytest.fixture
def goal_factory(persist, user, habit_factory):
    def _create_goal(
        habit: Optional[HabitTemplate] = None,
        owner: Optional[User] = None,
        month: str = "2024-01",
        logging: Optional[dict[str, Any]] = None,
    ) -> MonthlyGoal:
        owner = owner or user
        habit = habit or habit_factory(owner=owner)
        return persist(
            MonthlyGoal(
                user_id=owner.id,
                habit_id=habit.id,
                month=month,
                ui={"type": "CHECKBOX"},
                goal={"period": "DAILY", "frequency": 1},
                logging=logging or {"window": {"startOffsetHours": 0, "endOffsetHours": 24}},
            )
        )

    return _create_goal


@pytest.fixture
def entry_factory(persist):
    def _create_entries(goal: MonthlyGoal, days: Iterable[date], value: Any = True) -> list[HabitEntry]:
        entries = [
            HabitEntry(
                monthly_goal_id=goal.id,
                user_id=goal.user_id,
                target_date=day,
                value=value,
            )
            for day in days
        ]
        if entries:
            persist(*entries)
        return entries

    return _create_entries


@pytest.fixture
def milestone_factory(persist, user):
    def _create_milestone(
        name: str = "Run a 5k",
        point_value: int = 500,
        owner: Optional[User] = None,
        is_completed: bool = False,
    ) -> Milestone:
        owner = owner or user
        return persist(
            Milestone(
                user_id=owner.id,
                name=name,
                point_value=point_value,
                is_completed=is_completed,
            )
        )

    return _create_milestone


@pytest.fixture
def reward_factory(persist, user):
    def _create_reward(
        name: str = "Movie night",
        cost: int = 300,
        owner: Optional[User] = None,
        is_redeemed: bool = False,
    ) -> Reward:
        owner = owner or user
        return persist(Reward(user_id=owner.id, name=name, cost=cost, is_redeemed=is_redeemed))

    return _create_reward


# =============================================================================
# Pure helpers
# =============================================================================


def day_range(start: date, count: int) -> list[date]:
    """``count`` consecutive days starting at ``start``."""

    return [start + timedelta(days=offset) for offset in range(count)]


def make_entries(values: dict[date, Any], goal_id: str = "goal-1") -> list[HabitEntry]:
    """Unsaved entries keyed by day, for the pure engine tests."""

    return [
        HabitEntry(monthly_goal_id=goal_id, user_id="user-1", target_date=day, value=value)
        for day, value in values.items()
    ]
