from __future__ import annotations

import json
from types import MappingProxyType
from typing import Any, Optional, cast

from atp_visualizer.core.errors import PlanValidationError
from atp_visualizer.core.model import (
    NODE_STATUSES,
    PROJECT_STATUSES,
    SCHEMA_VERSION,
    AtpMeta,
    AtpNode,
    AtpPlan,
    NodeStatus,
    ProjectStatus,
)
from atp_visualizer.core.result import (
    ERROR_INVALID_JSON,
    ERROR_INVALID_PLAN,
    ERROR_VALIDATION_FAILED,
    ParseFailure,
    ParseResult,
    ParseSuccess,
)


ALLOWED_NODE_STATUSES: frozenset[str] = frozenset(NODE_STATUSES)
ALLOWED_PROJECT_STATUSES: frozenset[str] = frozenset(PROJECT_STATUSES)

_OPTIONAL_NODE_STRINGS: tuple[str, ...] = ("context", "worker_id", "started_at", "completed_at")

# ECMAScript WhiteSpace and LineTerminator code points. str.strip() with no
# argument uses a different set (it keeps U+FEFF, drops U+001C-U+001F, U+0085).
_TRIM_CHARS = (
    "\t\n\v\f\r \u00a0\u1680"
    + "".join(chr(c) for c in range(0x2000, 0x200B))
    + "\u2028\u2029\u202f\u205f\u3000\ufeff"
)

_MAX_ARRAY_INDEX = 2**32 - 2


def _is_record(v: Any) -> bool:
    return isinstance(v, dict)


def _is_list_of_str(v: Any) -> bool:
    return isinstance(v, list) and all(isinstance(x, str) for x in v)


def _is_non_empty_str(v: Any) -> bool:
    return isinstance(v, str) and bool(v.strip(_TRIM_CHARS))


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Unexpected token {name} in JSON")


def _parse_int(s: str) -> Any:
    # int() refuses literals past sys.get_int_max_str_digits(); fall back to a
    # float, which is what any JSON number is to the plan's producers.
    try:
        return int(s)
    except ValueError:
        return float(s)


def _ordered_keys(mapping: dict[str, Any]) -> list[str]:
    """Keys in JavaScript property order: array indices ascending, then the rest
    in document order."""
    indices: list[str] = []
    others: list[str] = []
    for k in mapping:
        if _is_array_index(k):
            indices.append(k)
        else:
            others.append(k)
    return sorted(indices, key=int) + others


def _is_array_index(k: str) -> bool:
    if not (k.isascii() and k.isdigit()) or (len(k) > 1 and k[0] == "0"):
        return False
    return int(k) <= _MAX_ARRAY_INDEX


def parse_atp_json(content: str) -> ParseResult:
    """Parse and validate an ATP v1.3 plan document.

    Malformed JSON and a non-object root are reported on their own; past
    that point every meta, node and dependency-reference problem is
    collected so the caller sees the whole defect list at once. A plan is
    only built when no issue was found.
    """

    try:
        raw = json.loads(content, parse_constant=_reject_constant, parse_int=_parse_int)
    except ValueError as e:
        return ParseFailure(
            error=ERROR_INVALID_JSON,
            errors=[PlanValidationError(code="E_INVALID_JSON", message=str(e))],
        )

    if not _is_record(raw):
        return ParseFailure(
            error=ERROR_INVALID_PLAN,
            errors=[
                PlanValidationError(
                    code="E_INVALID_TOP_LEVEL",
                    message="Root JSON value must be an object",
                )
            ],
        )

    errors = validate_meta(raw.get("meta")) + validate_nodes(raw.get("nodes"))
    if errors:
        return ParseFailure(error=ERROR_VALIDATION_FAILED, errors=errors)

    return ParseSuccess(graph=_build_plan(raw))


def validate_meta(meta: Any) -> list[PlanValidationError]:
    if not _is_record(meta):
        return [
            PlanValidationError(
                code="E_INVALID_TYPE",
                message="must be an object",
                path="meta",
            )
        ]

    errors: list[PlanValidationError] = []

    if not _is_non_empty_str(meta.get("project_name")):
        errors.append(
            PlanValidationError(
                code="E_REQUIRED_FIELD",
                message="must be a non-empty string",
                path="meta.project_name",
            )
        )

    if meta.get("version") != SCHEMA_VERSION:
        errors.append(
            PlanValidationError(
                code="E_INVALID_VERSION",
                message=f'must equal "{SCHEMA_VERSION}"',
                path="meta.version",
            )
        )

    project_status = meta.get("project_status")
    if not isinstance(project_status, str) or project_status not in ALLOWED_PROJECT_STATUSES:
        errors.append(
            PlanValidationError(
                code="E_INVALID_ENUM",
                message="must be one of: " + ", ".join(PROJECT_STATUSES),
                path="meta.project_status",
            )
        )

    if "created_at" in meta and not isinstance(meta["created_at"], str):
        errors.append(
            PlanValidationError(
                code="E_INVALID_TYPE",
                message="must be a string when provided",
                path="meta.created_at",
            )
        )

    return errors


def validate_nodes(nodes: Any) -> list[PlanValidationError]:
    if not _is_record(nodes):
        return [
            PlanValidationError(
                code="E_INVALID_TYPE",
                message="must be an object map of node IDs to node definitions",
                path="nodes",
            )
        ]

    errors: list[PlanValidationError] = []
    order = _ordered_keys(nodes)

    for nid in order:
        errors.extend(_validate_node(nid, nodes[nid]))

    # Referential integrity checks. Nodes that failed field checks still
    # have their dependency references resolved.
    for nid in order:
        raw = nodes[nid]
        if not _is_record(raw):
            continue
        deps = raw.get("dependencies")
        if not isinstance(deps, list):
            continue
        for dep in deps:
            if not isinstance(dep, str):
                continue
            if dep not in nodes:
                errors.append(
                    PlanValidationError(
                        code="E_UNKNOWN_DEPENDENCY",
                        message=f"references unknown node '{dep}' in plan",
                        path=f"nodes.{nid}.dependencies",
                    )
                )

    return errors


def _validate_node(nid: str, raw: Any) -> list[PlanValidationError]:
    node_path = f"nodes.{nid}"
    if not _is_record(raw):
        return [
            PlanValidationError(
                code="E_INVALID_TYPE",
                message="must be an object",
                path=node_path,
            )
        ]

    errors: list[PlanValidationError] = []

    for name in ("title", "instruction"):
        if not _is_non_empty_str(raw.get(name)):
            errors.append(
                PlanValidationError(
                    code="E_REQUIRED_FIELD",
                    message="must be a non-empty string",
                    path=f"{node_path}.{name}",
                )
            )

    deps = raw.get("dependencies")
    if not isinstance(deps, list):
        errors.append(
            PlanValidationError(
                code="E_REQUIRED_FIELD",
                message="must be an array of node IDs",
                path=f"{node_path}.dependencies",
            )
        )
    elif not _is_list_of_str(deps):
        errors.append(
            PlanValidationError(
                code="E_INVALID_TYPE",
                message="may only contain strings",
                path=f"{node_path}.dependencies",
            )
        )

    status = raw.get("status")
    if not isinstance(status, str) or status not in ALLOWED_NODE_STATUSES:
        errors.append(
            PlanValidationError(
                code="E_INVALID_ENUM",
                message="must be one of: " + ", ".join(NODE_STATUSES),
                path=f"{node_path}.status",
            )
        )

    for name in _OPTIONAL_NODE_STRINGS:
        errors.extend(_check_optional_str(raw, name, node_path))

    if "artifacts" in raw and not _is_list_of_str(raw["artifacts"]):
        errors.append(
            PlanValidationError(
                code="E_INVALID_TYPE",
                message="must be an array of strings when provided",
                path=f"{node_path}.artifacts",
            )
        )

    errors.extend(_check_optional_str(raw, "report", node_path))

    return errors


def _check_optional_str(raw: dict[str, Any], name: str, node_path: str) -> list[PlanValidationError]:
    if name in raw and not isinstance(raw[name], str):
        return [
            PlanValidationError(
                code="E_INVALID_TYPE",
                message="must be a string when provided",
                path=f"{node_path}.{name}",
            )
        ]
    return []


def _build_plan(raw: dict[str, Any]) -> AtpPlan:
    # Only called once every check passed; shapes are known to be correct.
    meta = cast(dict[str, Any], raw["meta"])
    nodes = cast(dict[str, dict[str, Any]], raw["nodes"])

    nodes_by_id: dict[str, AtpNode] = {}
    for nid in _ordered_keys(nodes):
        n = nodes[nid]
        artifacts = cast(Optional[list[str]], n.get("artifacts"))
        nodes_by_id[nid] = AtpNode(
            id=nid,
            title=n["title"],
            instruction=n["instruction"],
            dependencies=tuple(n["dependencies"]),
            status=cast(NodeStatus, n["status"]),
            context=n.get("context"),
            worker_id=n.get("worker_id"),
            started_at=n.get("started_at"),
            completed_at=n.get("completed_at"),
            artifacts=tuple(artifacts) if artifacts is not None else None,
            report=n.get("report"),
        )

    return AtpPlan(
        meta=AtpMeta(
            project_name=meta["project_name"],
            version=meta["version"],
            project_status=cast(ProjectStatus, meta["project_status"]),
            created_at=meta.get("created_at"),
        ),
        nodes=MappingProxyType(nodes_by_id),
    )
