"""ORM models exposed for metadata discovery."""
from app.db.models.barrier import Barrier
from app.db.models.goal import Goal
from app.db.models.habit import Habit
from app.db.models.habit_plan import HabitPlan
from app.db.models.plan_phase import PlanPhase
from app.db.models.user import User

__all__ = [
    "Barrier",
    "Goal",
    "Habit",
    "HabitPlan",
    "PlanPhase",
    "User",
]
