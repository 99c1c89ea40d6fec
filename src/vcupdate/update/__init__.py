"""Update planning."""

from .models import PlanUnit, RejectedVersion, SkipRecord, UpdateCandidate, UpdatePlan
from .planner import PlannerPolicy, UpdatePlanner, build_units

__all__ = [
    "PlanUnit",
    "RejectedVersion",
    "SkipRecord",
    "UpdateCandidate",
    "UpdatePlan",
    "PlannerPolicy",
    "UpdatePlanner",
    "build_units",
]
