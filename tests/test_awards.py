"""Tests for the transactional award orchestrators."""

from __future__ import annotations

import logging
from datetime import date

import pytest

from habitpoints.errors import (
    AlreadyCompletedError,
    AlreadyLoggedError,
    AlreadyRedeemedError,
    InsufficientPointsError,
    InvalidArgumentError,
    NotFoundError,
    UnauthorizedError,
)
from habitpoints.infra.repositories import SQLModelDocumentStore
from habitpoints.models import HabitEntry, Milestone, MonthlyGoal, Reward, User
from habitpoints.services import awards
from tests.conftest import day_range

JAN_1 = date(2024, 1, 1)


class InterleavingStore(SQLModelDocumentStore):
    """Runs another write after the first attempt's reads, before it commits."""

    def __init__(self, session_factory, interleave):
        super().__init__(session_factory)
        self._interleave = interleave
        self.attempts = 0

    def run_transaction(self, body):
        def wrapped(tx):
            self.attempts += 1
            result = body(tx)
            if self._interleave is not None:
                interleave, self._interleave = self._interleave, None
                interleave()
            return result

        return super().run_transaction(wrapped)


def balance(store, user_id: str) -> int:
    return store.get(User, user_id).points


class TestLogHabitEntry:
    def test_first_entry_awards_base_points(self, store, user, goal_factory, fixed_clock):
        goal = goal_factory()

        result = awards.log_habit_entry(
            store, user_id=user.id, goal_id=goal.id, target_date=date(2024, 1, 9), value=True, clock=fixed_clock
        )

        assert result.points_awarded == 100
        assert result.streak.current_streak == 1
        assert balance(store, user.id) == 100

        saved = store.get(HabitEntry, result.entry_id)
        assert saved.monthly_goal_id == goal.id
        assert saved.user_id == user.id
        assert saved.target_date == date(2024, 1, 9)
        assert saved.value is True
        assert saved.timestamp.replace(tzinfo=None) == fixed_clock().replace(tzinfo=None)

    def test_seventh_day_earns_multiplier(self, store, user, goal_factory, entry_factory, fixed_clock):
        goal = goal_factory()
        entry_factory(goal, day_range(JAN_1, 6))

        result = awards.log_habit_entry(
            store, user_id=user.id, goal_id=goal.id, target_date=date(2024, 1, 7), value=True, clock=fixed_clock
        )

        assert result.streak.current_streak == 7
        assert result.points_awarded == 120
        assert balance(store, user.id) == 120

    def test_shield_bridges_missed_day(self, store, user, goal_factory, entry_factory, fixed_clock):
        goal = goal_factory()
        entry_factory(goal, day_range(JAN_1, 7))

        result = awards.log_habit_entry(
            store, user_id=user.id, goal_id=goal.id, target_date=date(2024, 1, 9), value=True, clock=fixed_clock
        )

        assert result.streak.current_streak == 8
        assert result.streak.shield_active
        assert result.points_awarded == 120

    def test_backfill_evaluates_at_target_date(self, store, user, goal_factory, entry_factory, fixed_clock):
        goal = goal_factory()
        entry_factory(goal, day_range(JAN_1, 13))
        entry_factory(goal, [date(2024, 1, 20)])

        result = awards.log_habit_entry(
            store, user_id=user.id, goal_id=goal.id, target_date=date(2024, 1, 14), value=True, clock=fixed_clock
        )

        assert result.streak.current_streak == 14
        assert result.points_awarded == 150

    def test_lookback_reads_one_year_ending_at_target_date(self, store, goal_factory, entry_factory):
        goal = goal_factory()
        days = [date(2023, 1, 9), date(2023, 1, 10), date(2024, 1, 9), date(2024, 1, 10)]
        entry_factory(goal, days)

        history = store.run_transaction(lambda tx: awards._lookback_history(tx, goal.id, date(2024, 1, 9)))

        assert sorted(entry.target_date for entry in history) == [date(2023, 1, 10), date(2024, 1, 9)]

    @pytest.mark.parametrize("value", ["showUp", "15 pages", 2])
    def test_partial_effort_awards_flat_points(self, store, user, goal_factory, entry_factory, fixed_clock, value):
        goal = goal_factory()
        entry_factory(goal, day_range(JAN_1, 14))

        result = awards.log_habit_entry(
            store, user_id=user.id, goal_id=goal.id, target_date=date(2024, 1, 15), value=value, clock=fixed_clock
        )

        assert result.points_awarded == 25
        assert result.streak.current_streak == 14

    def test_false_records_entry_without_points(self, store, user, goal_factory, fixed_clock):
        goal = goal_factory()

        result = awards.log_habit_entry(
            store, user_id=user.id, goal_id=goal.id, target_date=date(2024, 1, 9), value=False, clock=fixed_clock
        )

        assert result.points_awarded == 0
        assert store.get(HabitEntry, result.entry_id).value is False
        assert balance(store, user.id) == 0

    def test_adds_to_existing_balance(self, store, user_factory, goal_factory, fixed_clock):
        owner = user_factory(name="Sam", points=40)
        goal = goal_factory(owner=owner)

        awards.log_habit_entry(
            store, user_id=owner.id, goal_id=goal.id, target_date=date(2024, 1, 9), value=True, clock=fixed_clock
        )

        assert balance(store, owner.id) == 140

    def test_duplicate_date_rejected(self, store, user, goal_factory, fixed_clock):
        goal = goal_factory()
        kwargs = dict(user_id=user.id, goal_id=goal.id, target_date=date(2024, 1, 9), clock=fixed_clock)
        awards.log_habit_entry(store, value=True, **kwargs)

        with pytest.raises(AlreadyLoggedError, match="Habit already logged for this date"):
            awards.log_habit_entry(store, value="showUp", **kwargs)

        assert balance(store, user.id) == 100
        assert len(store.query(HabitEntry, monthly_goal_id=goal.id)) == 1

    def test_missing_goal(self, store, user, fixed_clock):
        with pytest.raises(NotFoundError, match="Monthly goal not found"):
            awards.log_habit_entry(
                store, user_id=user.id, goal_id="nope", target_date=date(2024, 1, 9), value=True, clock=fixed_clock
            )

    def test_goal_of_another_user(self, store, user_factory, goal_factory, fixed_clock):
        other = user_factory(name="Jordan")
        goal = goal_factory(owner=other)

        with pytest.raises(UnauthorizedError):
            awards.log_habit_entry(
                store, user_id="user-alex", goal_id=goal.id, target_date=date(2024, 1, 9), value=True, clock=fixed_clock
            )

        assert store.query(HabitEntry) == []

    def test_missing_user_writes_nothing(self, store, persist, fixed_clock):
        goal = persist(MonthlyGoal(user_id="ghost", habit_id="h-1", month="2024-01"))

        with pytest.raises(NotFoundError, match="User not found"):
            awards.log_habit_entry(
                store, user_id="ghost", goal_id=goal.id, target_date=date(2024, 1, 9), value=True, clock=fixed_clock
            )

        assert store.query(HabitEntry) == []

    def test_missing_template_awards_zero_and_warns(self, store, user, persist, fixed_clock, caplog):
        goal = persist(MonthlyGoal(user_id=user.id, habit_id="deleted-habit", month="2024-01"))

        with caplog.at_level(logging.WARNING, logger="habitpoints"):
            result = awards.log_habit_entry(
                store, user_id=user.id, goal_id=goal.id, target_date=date(2024, 1, 9), value=True, clock=fixed_clock
            )

        assert result.points_awarded == 0
        assert store.get(HabitEntry, result.entry_id) is not None
        assert any("template missing" in record.getMessage() for record in caplog.records)

    def test_invalid_value_rejected_before_any_read(self, store, user, fixed_clock):
        with pytest.raises(InvalidArgumentError):
            awards.log_habit_entry(
                store, user_id=user.id, goal_id="nope", target_date=date(2024, 1, 9), value=None, clock=fixed_clock
            )

    def test_logging_bumps_goal_version(self, store, user, goal_factory, fixed_clock):
        goal = goal_factory()

        awards.log_habit_entry(
            store, user_id=user.id, goal_id=goal.id, target_date=date(2024, 1, 9), value=True, clock=fixed_clock
        )

        assert store.get(MonthlyGoal, goal.id).version == goal.version + 1


class TestConcurrentLogging:
    """Interleaved writers force a retry instead of a lost or doubled award."""

    def test_balance_change_retries_with_fresh_balance(self, session_factory, user, goal_factory, fixed_clock):
        goal = goal_factory()

        def bump(tx):
            current = tx.get(User, user.id)
            tx.update(current, points=current.points + 50)

        plain = SQLModelDocumentStore(session_factory)
        store = InterleavingStore(session_factory, lambda: plain.run_transaction(bump))

        result = awards.log_habit_entry(
            store, user_id=user.id, goal_id=goal.id, target_date=date(2024, 1, 9), value=True, clock=fixed_clock
        )

        assert store.attempts == 2
        assert result.points_awarded == 100
        assert balance(plain, user.id) == 150
        assert len(plain.query(HabitEntry, monthly_goal_id=goal.id)) == 1

    def test_same_goal_and_date_awards_once(self, session_factory, user, goal_factory, fixed_clock):
        goal = goal_factory()
        plain = SQLModelDocumentStore(session_factory)

        def competing_log():
            awards.log_habit_entry(
                plain, user_id=user.id, goal_id=goal.id, target_date=date(2024, 1, 9), value=True, clock=fixed_clock
            )

        store = InterleavingStore(session_factory, competing_log)

        with pytest.raises(AlreadyLoggedError):
            awards.log_habit_entry(
                store, user_id=user.id, goal_id=goal.id, target_date=date(2024, 1, 9), value=True, clock=fixed_clock
            )

        assert store.attempts == 2
        assert balance(plain, user.id) == 100
        assert len(plain.query(HabitEntry, monthly_goal_id=goal.id)) == 1

    def test_other_date_on_same_goal_is_recomputed(
        self, session_factory, user, goal_factory, entry_factory, fixed_clock
    ):
        goal = goal_factory()
        entry_factory(goal, day_range(JAN_1, 5))
        plain = SQLModelDocumentStore(session_factory)

        def competing_log():
            awards.log_habit_entry(
                plain, user_id=user.id, goal_id=goal.id, target_date=date(2024, 1, 6), value=True, clock=fixed_clock
            )

        store = InterleavingStore(session_factory, competing_log)

        result = awards.log_habit_entry(
            store, user_id=user.id, goal_id=goal.id, target_date=date(2024, 1, 7), value=True, clock=fixed_clock
        )

        # The retry sees the 6th, so the 7th closes a seven-day run.
        assert store.attempts == 2
        assert result.streak.current_streak == 7
        assert result.points_awarded == 120
        assert balance(plain, user.id) == 220


class TestDeleteHabitEntry:
    def test_deletes_without_refund(self, store, user, goal_factory, fixed_clock):
        goal = goal_factory()
        result = awards.log_habit_entry(
            store, user_id=user.id, goal_id=goal.id, target_date=date(2024, 1, 9), value=True, clock=fixed_clock
        )

        awards.delete_habit_entry(store, user_id=user.id, entry_id=result.entry_id)

        assert store.get(HabitEntry, result.entry_id) is None
        assert balance(store, user.id) == 100

    def test_entry_can_be_logged_again_after_undo(self, store, user, goal_factory, fixed_clock):
        goal = goal_factory()
        kwargs = dict(user_id=user.id, goal_id=goal.id, target_date=date(2024, 1, 9), clock=fixed_clock)
        first = awards.log_habit_entry(store, value=True, **kwargs)
        awards.delete_habit_entry(store, user_id=user.id, entry_id=first.entry_id)

        second = awards.log_habit_entry(store, value="showUp", **kwargs)

        assert second.entry_id != first.entry_id
        assert balance(store, user.id) == 125

    def test_missing_entry(self, store, user):
        with pytest.raises(NotFoundError, match="Habit entry not found"):
            awards.delete_habit_entry(store, user_id=user.id, entry_id="nope")

    def test_entry_of_another_user(self, store, user_factory, goal_factory, entry_factory):
        other = user_factory(name="Jordan")
        goal = goal_factory(owner=other)
        (entry,) = entry_factory(goal, [date(2024, 1, 9)])

        with pytest.raises(UnauthorizedError):
            awards.delete_habit_entry(store, user_id="user-alex", entry_id=entry.id)

        assert store.get(HabitEntry, entry.id) is not None


class TestCompleteMilestone:
    def test_awards_point_value_once(self, store, user, milestone_factory, fixed_clock):
        milestone = milestone_factory(point_value=500)

        result = awards.complete_milestone(store, user_id=user.id, milestone_id=milestone.id, clock=fixed_clock)

        assert result.points_awarded == 500
        assert balance(store, user.id) == 500
        saved = store.get(Milestone, milestone.id)
        assert saved.is_completed
        assert saved.completed_at is not None

        with pytest.raises(AlreadyCompletedError, match="Milestone already completed"):
            awards.complete_milestone(store, user_id=user.id, milestone_id=milestone.id, clock=fixed_clock)
        assert balance(store, user.id) == 500

    def test_missing_milestone(self, store, user, fixed_clock):
        with pytest.raises(NotFoundError, match="Milestone not found"):
            awards.complete_milestone(store, user_id=user.id, milestone_id="nope", clock=fixed_clock)

    def test_milestone_of_another_user(self, store, user_factory, milestone_factory, fixed_clock):
        other = user_factory(name="Jordan")
        milestone = milestone_factory(owner=other)

        with pytest.raises(UnauthorizedError):
            awards.complete_milestone(store, user_id="user-alex", milestone_id=milestone.id, clock=fixed_clock)

        assert not store.get(Milestone, milestone.id).is_completed


class TestRedeemReward:
    def test_spends_cost(self, store, user_factory, reward_factory, fixed_clock):
        owner = user_factory(name="Sam", points=450)
        reward = reward_factory(owner=owner, cost=300)

        result = awards.redeem_reward(store, user_id=owner.id, reward_id=reward.id, clock=fixed_clock)

        assert result.points_spent == 300
        assert balance(store, owner.id) == 150
        saved = store.get(Reward, reward.id)
        assert saved.is_redeemed
        assert saved.redeemed_at is not None

    def test_exact_balance_is_enough(self, store, user_factory, reward_factory, fixed_clock):
        owner = user_factory(name="Sam", points=300)
        reward = reward_factory(owner=owner, cost=300)

        awards.redeem_reward(store, user_id=owner.id, reward_id=reward.id, clock=fixed_clock)

        assert balance(store, owner.id) == 0

    def test_insufficient_points(self, store, user_factory, reward_factory, fixed_clock):
        owner = user_factory(name="Sam", points=120)
        reward = reward_factory(owner=owner, cost=300)

        with pytest.raises(InsufficientPointsError, match="Insufficient points") as exc_info:
            awards.redeem_reward(store, user_id=owner.id, reward_id=reward.id, clock=fixed_clock)

        assert exc_info.value.shortfall == 180
        assert balance(store, owner.id) == 120
        assert not store.get(Reward, reward.id).is_redeemed

    def test_already_redeemed(self, store, user_factory, reward_factory, fixed_clock):
        owner = user_factory(name="Sam", points=1000)
        reward = reward_factory(owner=owner, cost=300, is_redeemed=True)

        with pytest.raises(AlreadyRedeemedError, match="Reward already redeemed"):
            awards.redeem_reward(store, user_id=owner.id, reward_id=reward.id, clock=fixed_clock)

        assert balance(store, owner.id) == 1000

    def test_missing_reward(self, store, user, fixed_clock):
        with pytest.raises(NotFoundError, match="Reward not found"):
            awards.redeem_reward(store, user_id=user.id, reward_id="nope", clock=fixed_clock)
