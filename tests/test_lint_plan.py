import json

from atp_visualizer.core.io.load_plan import load_plan
from atp_visualizer.core.lint.lint_plan import lint_plan
from atp_visualizer.core.result import ParseSuccess
from atp_visualizer.core.validate.validate_plan import parse_atp_json


def _plan(nodes):
    r = parse_atp_json(
        json.dumps(
            {
                "meta": {"project_name": "X", "version": "1.3", "project_status": "ACTIVE"},
                "nodes": nodes,
            }
        )
    )
    assert isinstance(r, ParseSuccess)
    return r.graph


def _node(deps=(), status="LOCKED", **extra):
    node = {"title": "T", "instruction": "I", "dependencies": list(deps), "status": status}
    node.update(extra)
    return node


def test_lint_clean_plan():
    r = load_plan("examples/basic.atp.json")
    assert isinstance(r, ParseSuccess)
    assert lint_plan(r.graph) == []


def test_lint_cycle_and_self_dependency():
    r = load_plan("examples/cycle.atp.json")
    assert isinstance(r, ParseSuccess)
    errors = lint_plan(r.graph)
    codes = [e.code for e in errors]
    assert codes.count("L_CYCLE_DETECTED") == 1
    assert codes.count("L_SELF_DEPENDENCY") == 1
    cycle = next(e for e in errors if e.code == "L_CYCLE_DETECTED")
    assert cycle.message == "dependency cycle detected: a -> b -> a"
    assert cycle.path == "nodes.b.dependencies"


def test_lint_longer_cycle_reported_once():
    plan = _plan({"a": _node(["c"]), "b": _node(["a"]), "c": _node(["b", "b"])})
    errors = [e for e in lint_plan(plan) if e.code == "L_CYCLE_DETECTED"]
    assert len(errors) == 1
    assert errors[0].message == "dependency cycle detected: a -> c -> b -> a"


def test_lint_duplicate_dependency():
    plan = _plan({"a": _node(), "b": _node(["a", "a"])})
    errors = lint_plan(plan)
    assert [e.code for e in errors] == ["L_DUPLICATE_DEPENDENCY"]
    assert str(errors[0]) == "nodes.b.dependencies lists 'a' 2 times"


def test_lint_claimed_without_worker():
    plan = _plan({"a": _node(status="CLAIMED", worker_id="  ")})
    assert [e.code for e in lint_plan(plan)] == ["L_CLAIMED_WITHOUT_WORKER"]


def test_lint_unmet_dependency():
    plan = _plan({"a": _node(status="FAILED"), "b": _node(["a"], status="READY")})
    errors = lint_plan(plan)
    assert [e.code for e in errors] == ["L_UNMET_DEPENDENCY"]
    assert errors[0].message == "READY node depends on 'a' which is FAILED"


def test_lint_completed_without_timestamp():
    plan = _plan({"a": _node(status="COMPLETED")})
    assert [e.code for e in lint_plan(plan)] == ["L_COMPLETED_WITHOUT_TIMESTAMP"]


def test_lint_locked_nodes_may_wait():
    plan = _plan({"a": _node(status="READY"), "b": _node(["a"], status="LOCKED")})
    assert lint_plan(plan) == []
