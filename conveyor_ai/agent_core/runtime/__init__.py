from .executor import PlanExecutor
from .models import ExecutorDeps, GroupFailurePolicy

__all__ = ["ExecutorDeps", "GroupFailurePolicy", "PlanExecutor"]
