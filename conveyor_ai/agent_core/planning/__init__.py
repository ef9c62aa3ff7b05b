from ..schemas.plan import Plan, PlanGroup, PlanStep
from .planner import Planner, StructuredPlanner

__all__ = ["Plan", "PlanGroup", "PlanStep", "Planner", "StructuredPlanner"]
