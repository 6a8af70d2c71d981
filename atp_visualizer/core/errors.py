from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class PlanError(Exception):
    """Base error envelope. Prefer returning/printing these rather than raising raw exceptions."""

    code: str
    message: str
    file: Optional[str] = None
    path: Optional[str] = None

    def location(self) -> str:
        parts: list[str] = []
        if self.file:
            parts.append(self.file)
        if self.path:
            parts.append(self.path)
        return ":".join(parts) if parts else "<plan>"

    def issue(self) -> str:
        """Text shown to users in a failure's issue list."""
        return self.message

    def __str__(self) -> str:
        return f"{self.location()}: {self.code}: {self.message}"


class PlanLoadError(PlanError):
    pass


class PlanValidationError(PlanError):
    """One schema, referential or lint finding.

    The issue text is ``<path> <message>``, e.g.
    ``nodes.a.dependencies references unknown node 'b' in plan``.
    """

    def issue(self) -> str:
        if self.path:
            return f"{self.path} {self.message}"
        return self.message

    def __str__(self) -> str:
        return self.issue()
