from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Mapping, Optional


SCHEMA_VERSION = "1.3"

NodeStatus = Literal["LOCKED", "READY", "CLAIMED", "COMPLETED", "FAILED"]
ProjectStatus = Literal["DRAFT", "ACTIVE", "PAUSED", "ARCHIVED"]

# Canonical order; messages list the legal values in this order.
NODE_STATUSES: tuple[str, ...] = ("LOCKED", "READY", "CLAIMED", "COMPLETED", "FAILED")
PROJECT_STATUSES: tuple[str, ...] = ("DRAFT", "ACTIVE", "PAUSED", "ARCHIVED")


@dataclass(frozen=True)
class AtpMeta:
    project_name: str
    version: str
    project_status: ProjectStatus
    created_at: Optional[str] = None


@dataclass(frozen=True)
class AtpNode:
    id: str
    title: str
    instruction: str
    dependencies: tuple[str, ...]
    status: NodeStatus

    context: Optional[str] = None
    worker_id: Optional[str] = None
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    artifacts: Optional[tuple[str, ...]] = None
    report: Optional[str] = None


@dataclass(frozen=True)
class AtpPlan:
    meta: AtpMeta
    # Read-only; ordered like a JavaScript object: integer-like ids ascending,
    # then the rest in document order.
    nodes: Mapping[str, AtpNode]
