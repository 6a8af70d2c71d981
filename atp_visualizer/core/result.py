from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Union

from atp_visualizer.core.errors import PlanError
from atp_visualizer.core.model import AtpPlan


ERROR_INVALID_JSON = "Invalid JSON"
ERROR_INVALID_PLAN = "Invalid ATP plan"
ERROR_VALIDATION_FAILED = "ATP plan validation failed"
ERROR_NO_PLAN = "No ATP plan selected"
ERROR_READ_FAILED = "Failed to read ATP plan"


@dataclass(frozen=True)
class ParseSuccess:
    graph: AtpPlan
    success: Literal[True] = True


@dataclass(frozen=True)
class ParseFailure:
    error: str
    errors: list[PlanError] = field(default_factory=list)
    success: Literal[False] = False

    @property
    def issues(self) -> list[str]:
        return [e.issue() for e in self.errors]


ParseResult = Union[ParseSuccess, ParseFailure]
