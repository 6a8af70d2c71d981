from __future__ import annotations

from collections import Counter

from atp_visualizer.core.errors import PlanValidationError
from atp_visualizer.core.model import AtpPlan


# Consistency rules layered on top of schema validation. Validation
# deliberately accepts cycles; lint is where they are reported.
# - L_SELF_DEPENDENCY: node lists itself in dependencies
# - L_DUPLICATE_DEPENDENCY: same dependency listed more than once
# - L_CYCLE_DETECTED: dependency cycle spanning two or more nodes
# - L_CLAIMED_WITHOUT_WORKER: CLAIMED node has no worker_id
# - L_UNMET_DEPENDENCY: READY/CLAIMED/COMPLETED node with an unfinished dependency
# - L_COMPLETED_WITHOUT_TIMESTAMP: COMPLETED node has no completed_at

_PROGRESSED_STATUSES = {"READY", "CLAIMED", "COMPLETED"}


def lint_plan(plan: AtpPlan) -> list[PlanValidationError]:
    """Lint a validated plan.

    Lint never changes whether a plan is valid; the CLI reports its
    findings separately from validation issues.
    """

    errors: list[PlanValidationError] = []

    for nid, node in plan.nodes.items():
        deps_path = f"nodes.{nid}.dependencies"

        if nid in node.dependencies:
            errors.append(
                PlanValidationError(
                    code="L_SELF_DEPENDENCY",
                    message="lists its own node id",
                    path=deps_path,
                )
            )

        for dep, count in Counter(node.dependencies).items():
            if count > 1:
                errors.append(
                    PlanValidationError(
                        code="L_DUPLICATE_DEPENDENCY",
                        message=f"lists '{dep}' {count} times",
                        path=deps_path,
                    )
                )

        if node.status == "CLAIMED" and not (node.worker_id or "").strip():
            errors.append(
                PlanValidationError(
                    code="L_CLAIMED_WITHOUT_WORKER",
                    message="CLAIMED node must name a worker",
                    path=f"nodes.{nid}.worker_id",
                )
            )

        if node.status in _PROGRESSED_STATUSES:
            for dep in node.dependencies:
                if dep == nid:
                    continue
                dep_status = plan.nodes[dep].status
                if dep_status != "COMPLETED":
                    errors.append(
                        PlanValidationError(
                            code="L_UNMET_DEPENDENCY",
                            message=f"{node.status} node depends on '{dep}' which is {dep_status}",
                            path=deps_path,
                        )
                    )

        if node.status == "COMPLETED" and node.completed_at is None:
            errors.append(
                PlanValidationError(
                    code="L_COMPLETED_WITHOUT_TIMESTAMP",
                    message="COMPLETED node should record completed_at",
                    path=f"nodes.{nid}.completed_at",
                )
            )

    id_to_deps = {nid: [d for d in n.dependencies if d != nid] for nid, n in plan.nodes.items()}
    for nid, msg in _detect_cycles(id_to_deps):
        errors.append(
            PlanValidationError(
                code="L_CYCLE_DETECTED",
                message=msg,
                path=f"nodes.{nid}.dependencies",
            )
        )

    return _sorted(errors)


def _detect_cycles(id_to_deps: dict[str, list[str]]) -> list[tuple[str, str]]:
    WHITE, GRAY, BLACK = 0, 1, 2
    state: dict[str, int] = {nid: WHITE for nid in id_to_deps.keys()}
    stack: list[str] = []
    emitted: set[str] = set()
    out: list[tuple[str, str]] = []

    # Iterative DFS; plans can be deep enough to hit the recursion limit.
    for start in id_to_deps:
        if state[start] != WHITE:
            continue
        state[start] = GRAY
        stack.append(start)
        iters = [iter(id_to_deps[start])]
        while iters:
            u = stack[-1]
            v = next(iters[-1], None)
            if v is None:
                iters.pop()
                stack.pop()
                state[u] = BLACK
                continue
            if state[v] == GRAY:
                # cycle: v ... u -> v
                cycle = stack[stack.index(v):] + [v]
                key = "->".join(cycle)
                if key in emitted:
                    continue
                emitted.add(key)
                out.append((u, "dependency cycle detected: " + " -> ".join(cycle)))
            elif state[v] == WHITE:
                state[v] = GRAY
                stack.append(v)
                iters.append(iter(id_to_deps[v]))

    return out


def _sorted(errors: list[PlanValidationError]) -> list[PlanValidationError]:
    return sorted(errors, key=lambda e: (e.path or "", e.code, e.message))
