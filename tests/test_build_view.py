import json

from atp_visualizer.core.graph.build_view import (
    build_view,
    dependents_of,
    graph_message,
    result_to_dict,
    root_ids,
    status_counts,
    summarize_plan,
)
from atp_visualizer.core.io.load_plan import load_plan
from atp_visualizer.core.result import ParseSuccess
from atp_visualizer.core.validate.validate_plan import parse_atp_json


def _basic():
    r = load_plan("examples/basic.atp.json")
    assert isinstance(r, ParseSuccess)
    return r.graph


def test_build_view_nodes_and_edges():
    view = build_view(_basic())
    assert [n.id for n in view.nodes] == ["design", "api", "ui", "e2e"]
    e2e = view.nodes[3]
    assert e2e.dependency_count == 2
    assert e2e.worker is None
    assert view.nodes[1].worker == "agent-2"

    assert [e.id for e in view.edges] == ["design->api", "design->ui", "api->e2e", "ui->e2e"]
    animated = {e.id for e in view.edges if e.animated}
    assert animated == {"design->api"}
    assert view.edges[0].source == "design"
    assert view.edges[0].target == "api"
    assert view.edges[0].status == "CLAIMED"


def test_dependents_of_covers_every_node():
    dependents = dependents_of(_basic())
    assert dependents == {
        "design": ["api", "ui"],
        "api": ["e2e"],
        "ui": ["e2e"],
        "e2e": [],
    }


def test_self_dependency_in_reverse_adjacency():
    r = parse_atp_json(
        json.dumps(
            {
                "meta": {"project_name": "X", "version": "1.3", "project_status": "ACTIVE"},
                "nodes": {"x": {"title": "T", "instruction": "I", "dependencies": ["x"], "status": "READY"}},
            }
        )
    )
    assert isinstance(r, ParseSuccess)
    assert dependents_of(r.graph) == {"x": ["x"]}
    assert root_ids(r.graph) == []


def test_roots_and_counts():
    plan = _basic()
    assert root_ids(plan) == ["design"]
    assert status_counts(plan) == {
        "LOCKED": 1,
        "READY": 1,
        "CLAIMED": 1,
        "COMPLETED": 1,
        "FAILED": 0,
    }


def test_summarize_plan():
    text = summarize_plan(_basic())
    assert text.startswith("OK: Checkout revamp [ACTIVE] 4 nodes (")
    assert "FAILED=0" in text
    assert text.endswith("Roots: design")


def test_result_to_dict_success_round_trips_document():
    with open("examples/basic.atp.json", encoding="utf-8") as f:
        original = json.load(f)
    r = load_plan("examples/basic.atp.json")
    payload = result_to_dict(r)
    assert payload["success"] is True
    assert payload["graph"] == original


def test_result_to_dict_failure():
    payload = result_to_dict(load_plan("examples/invalid-unknown-dep.atp.json"))
    assert payload == {
        "success": False,
        "error": "ATP plan validation failed",
        "issues": ["nodes.a.dependencies references unknown node 'b' in plan"],
    }


def test_graph_message_shapes():
    ok = graph_message("examples/basic.atp.json", load_plan("examples/basic.atp.json"))
    assert ok["type"] == "graphData"
    assert ok["planUri"] == "examples/basic.atp.json"
    assert ok["result"]["success"] is True
    assert len(ok["view"]["edges"]) == 4
    json.dumps(ok)

    missing = graph_message(None, load_plan(None))
    assert missing == {
        "type": "graphData",
        "planUri": None,
        "result": {"success": False, "error": "No ATP plan selected", "issues": []},
    }
