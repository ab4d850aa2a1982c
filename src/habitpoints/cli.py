"""Flask CLI commands for HabitPoints."""

from __future__ import annotations

import json
from datetime import date

import click

from .infra.database import init_database
from .models import HabitEntry, MonthlyGoal
from .services.streaks import evaluate_streak


def init_app(app) -> None:
    """Register CLI commands on the Flask app."""

    @app.cli.command("habitpoints-init-db")
    def habitpoints_init_db() -> None:
        """Create database tables."""

        from .extensions import get_engine

        init_database(get_engine())
        click.echo("Database tables created.")

    @app.cli.command("habitpoints-streak")
    @click.argument("goal_id")
    @click.option(
        "--today",
        type=click.DateTime(formats=["%Y-%m-%d"]),
        default=None,
        help="Evaluate as of this date (YYYY-MM-DD). Defaults to today.",
    )
    def habitpoints_streak(goal_id: str, today) -> None:
        """Print the streak of a monthly goal as JSON."""

        from .extensions import get_context

        context = get_context()
        goal = context.store.get(MonthlyGoal, goal_id)
        if goal is None:
            raise click.ClickException(f"Monthly goal not found: {goal_id}")

        as_of: date = today.date() if today is not None else context.today()
        entries = context.store.query(HabitEntry, monthly_goal_id=goal_id)
        info = evaluate_streak(entries, as_of)
        click.echo(json.dumps(info.to_dict(), indent=2))
