"""SQLModel table exports."""

from .base import Document, new_document_id
from .habit import HabitEntry, HabitTemplate, MonthlyGoal
from .milestone import Milestone
from .reward import Reward
from .user import User

__all__ = [
    "Document",
    "HabitEntry",
    "HabitTemplate",
    "Milestone",
    "MonthlyGoal",
    "Reward",
    "User",
    "new_document_id",
]
