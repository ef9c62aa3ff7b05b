"""Static pipeline catalog.

A pipeline is a fixed, named, ordered list of agent names describing one
business workflow. The catalog is assembled once at start-up (built-in
pipelines plus, optionally, a JSON file) and is never mutated afterwards.

JSON catalog file format::

    {"pipelines": [{"name": "...", "description": "...", "agents": ["a", "b"]}]}

A bare list of pipeline objects is accepted too.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

from pydantic import Field, ValidationError, field_validator

from ..errors import PipelineNotFoundError
from ..schemas.base import FrozenSchema

logger = logging.getLogger(__name__)


class Pipeline(FrozenSchema):
    name: str
    description: str = ""
    agent_names: Tuple[str, ...] = Field(default=(), alias="agents")

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("pipeline name must not be empty")
        return v


class PipelineCatalog:
    """Immutable name -> ``Pipeline`` lookup table."""

    def __init__(self, pipelines: Iterable[Pipeline] = ()) -> None:
        table: Dict[str, Pipeline] = {}
        for p in pipelines:
            if p.name in table:
                raise ValueError(f"duplicate pipeline name: {p.name}")
            table[p.name] = p
        self._pipelines = table

    def get(self, name: str) -> Pipeline:
        """
        Return the pipeline named ``name``.

        Raises:
            PipelineNotFoundError: If the catalog has no such pipeline.
        """
        try:
            return self._pipelines[name]
        except KeyError as e:
            raise PipelineNotFoundError(name) from e

    def find(self, name: str) -> Optional[Pipeline]:
        return self._pipelines.get(name)

    def names(self) -> List[str]:
        return list(self._pipelines)

    def pipelines(self) -> List[Pipeline]:
        return list(self._pipelines.values())

    def __contains__(self, name: object) -> bool:
        return name in self._pipelines

    def __iter__(self) -> Iterator[Pipeline]:
        return iter(list(self._pipelines.values()))

    def __len__(self) -> int:
        return len(self._pipelines)


def parse_pipelines(raw: Any) -> List[Pipeline]:
    """
    Validate a catalog document into ``Pipeline`` objects.

    Raises:
        ValueError: If the document is not a list of pipelines (optionally
            wrapped in ``{"pipelines": [...]}``).
    """
    if isinstance(raw, dict):
        raw = raw.get("pipelines")
    if not isinstance(raw, list):
        raise ValueError("pipeline catalog must be a list or {'pipelines': [...]}")
    try:
        return [Pipeline.model_validate(item) for item in raw]
    except ValidationError as e:
        raise ValueError(f"invalid pipeline catalog: {e}") from e


def load_pipelines_file(path: str | Path) -> List[Pipeline]:
    """Read pipelines from a JSON catalog file."""
    p = Path(path)
    with p.open("r", encoding="utf-8") as fh:
        raw = json.load(fh)
    pipelines = parse_pipelines(raw)
    logger.info("Loaded %d pipelines from %s", len(pipelines), p)
    return pipelines
