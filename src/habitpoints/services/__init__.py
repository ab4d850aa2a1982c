"""Service module exports."""

from . import awards, catalog, dashboard, history, points, streaks

__all__ = [
    "awards",
    "catalog",
    "dashboard",
    "history",
    "points",
    "streaks",
]
