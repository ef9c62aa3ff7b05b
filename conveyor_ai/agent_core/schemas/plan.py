from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from pydantic import Field, ValidationError, field_validator, model_validator

from ..errors import PlanValidationError
from .base import BaseSchema


class PlanStep(BaseSchema):
    """One agent invocation inside a plan.

    ``arguments`` are merged into the context right before the agent runs.
    Steps sharing a ``group`` id, and listed next to each other, run
    concurrently.
    """

    agent_name: str
    arguments: Dict[str, Any] = Field(default_factory=dict)
    group: Optional[str] = None

    @field_validator("agent_name")
    @classmethod
    def _agent_name_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("agent_name must not be empty")
        return v


PlanGroup = Tuple[PlanStep, ...]


class Plan(BaseSchema):
    """Ordered sequence of steps, optionally grouped for parallel execution."""

    steps: List[PlanStep] = Field(default_factory=list)

    @model_validator(mode="after")
    def _groups_are_contiguous(self) -> "Plan":
        seen: set[str] = set()
        previous: Optional[str] = None
        for idx, step in enumerate(self.steps):
            if step.group is not None and step.group != previous:
                if step.group in seen:
                    raise ValueError(f"group '{step.group}' is not contiguous (step {idx})")
                seen.add(step.group)
            previous = step.group
        return self

    def groups(self) -> List[PlanGroup]:
        """Split the plan into its execution units, in declaration order."""
        out: List[PlanGroup] = []
        current: List[PlanStep] = []
        current_group: Optional[str] = None
        for step in self.steps:
            if current and (step.group is None or step.group != current_group):
                out.append(tuple(current))
                current = []
            current.append(step)
            current_group = step.group
        if current:
            out.append(tuple(current))
        return out

    @classmethod
    def from_document(cls, raw: Any) -> "Plan":
        """Validate a plan document.

        Accepts a bare list of steps, ``{"steps": [...]}`` or ``{"plan": [...]}``.

        Raises:
            PlanValidationError: If the document is not a well-formed plan.
        """
        if isinstance(raw, Plan):
            return raw
        if isinstance(raw, dict) and "steps" not in raw and isinstance(raw.get("plan"), list):
            raw = {"steps": raw["plan"]}
        if isinstance(raw, list):
            raw = {"steps": raw}
        try:
            return cls.model_validate(raw)
        except ValidationError as e:
            raise PlanValidationError(f"invalid plan: {e}") from e
