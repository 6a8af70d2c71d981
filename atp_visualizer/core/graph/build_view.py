"""Derived views of a validated plan for the diagram renderer.

Everything here is a pure read of an AtpPlan. Dependencies are already
known to resolve, so no lookups can miss.
"""
from __future__ import annotations

from collections import Counter
from dataclasses import asdict, dataclass
from typing import Any, Optional

from atp_visualizer.core.model import NODE_STATUSES, AtpPlan, NodeStatus
from atp_visualizer.core.result import ParseFailure, ParseResult


@dataclass(frozen=True)
class ViewNode:
    id: str
    title: str
    status: NodeStatus
    dependency_count: int
    worker: Optional[str] = None
    instruction: Optional[str] = None
    context: Optional[str] = None
    artifacts: Optional[list[str]] = None
    report: Optional[str] = None


@dataclass(frozen=True)
class ViewEdge:
    id: str
    source: str  # the prerequisite
    target: str  # the dependent node
    status: NodeStatus
    animated: bool


@dataclass(frozen=True)
class GraphView:
    nodes: list[ViewNode]
    edges: list[ViewEdge]


def build_view(plan: AtpPlan) -> GraphView:
    nodes: list[ViewNode] = []
    edges: list[ViewEdge] = []

    for nid, node in plan.nodes.items():
        nodes.append(
            ViewNode(
                id=nid,
                title=node.title,
                status=node.status,
                dependency_count=len(node.dependencies),
                worker=node.worker_id,
                instruction=node.instruction,
                context=node.context,
                artifacts=list(node.artifacts) if node.artifacts is not None else None,
                report=node.report,
            )
        )
        for dep in node.dependencies:
            edges.append(
                ViewEdge(
                    id=f"{dep}->{nid}",
                    source=dep,
                    target=nid,
                    status=node.status,
                    animated=node.status == "CLAIMED",
                )
            )

    return GraphView(nodes=nodes, edges=edges)


def dependents_of(plan: AtpPlan) -> dict[str, list[str]]:
    """Reverse adjacency: node id -> ids of the nodes that depend on it."""
    dependents: dict[str, list[str]] = {nid: [] for nid in plan.nodes}
    for nid, node in plan.nodes.items():
        for dep in node.dependencies:
            dependents[dep].append(nid)
    return dependents


def root_ids(plan: AtpPlan) -> list[str]:
    return [nid for nid, n in plan.nodes.items() if not n.dependencies]


def status_counts(plan: AtpPlan) -> dict[str, int]:
    counts = Counter(n.status for n in plan.nodes.values())
    return {s: counts.get(s, 0) for s in NODE_STATUSES}


def summarize_plan(plan: AtpPlan) -> str:
    counts = status_counts(plan)
    parts = [f"{s}={counts[s]}" for s in NODE_STATUSES]
    return (
        f"OK: {plan.meta.project_name} [{plan.meta.project_status}] "
        f"{len(plan.nodes)} nodes ("
        + ", ".join(parts)
        + ")\nRoots: "
        + ", ".join(root_ids(plan))
    )


def plan_to_dict(plan: AtpPlan) -> dict[str, Any]:
    """Serialize back to the ATP document shape, omitting absent optionals."""
    meta: dict[str, Any] = {
        "project_name": plan.meta.project_name,
        "version": plan.meta.version,
        "project_status": plan.meta.project_status,
    }
    if plan.meta.created_at is not None:
        meta["created_at"] = plan.meta.created_at

    nodes: dict[str, Any] = {}
    for nid, n in plan.nodes.items():
        out: dict[str, Any] = {
            "title": n.title,
            "instruction": n.instruction,
            "dependencies": list(n.dependencies),
            "status": n.status,
        }
        for name in ("context", "worker_id", "started_at", "completed_at", "report"):
            value = getattr(n, name)
            if value is not None:
                out[name] = value
        if n.artifacts is not None:
            out["artifacts"] = list(n.artifacts)
        nodes[nid] = out

    return {"meta": meta, "nodes": nodes}


def result_to_dict(result: ParseResult) -> dict[str, Any]:
    if isinstance(result, ParseFailure):
        return {"success": False, "error": result.error, "issues": result.issues}
    return {"success": True, "graph": plan_to_dict(result.graph)}


def graph_message(plan_path: Optional[str], result: ParseResult) -> dict[str, Any]:
    """The ``graphData`` message handed to the renderer.

    Successful results also carry the node/edge view so the renderer does
    not have to derive edges itself.
    """
    message: dict[str, Any] = {
        "type": "graphData",
        "planUri": plan_path,
        "result": result_to_dict(result),
    }
    if not isinstance(result, ParseFailure):
        view = build_view(result.graph)
        message["view"] = {
            "nodes": [asdict(n) for n in view.nodes],
            "edges": [asdict(e) for e in view.edges],
        }
    return message
