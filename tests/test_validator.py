# tests/test_validator.py

import pytest

from flowguard.structural.validator import validate_workflow_graph
from flowguard.utils.graph import build_graph, find_trigger_nodes, reachable_from


def node(nid, kind, category="", label=None, **config):
    return {
        "id": nid,
        "type": "custom",
        "position": {"x": 0, "y": 0},
        "data": {"type": kind, "label": label or nid, "category": category, "config": config},
    }


def edge(eid, source, target, handle=None):
    e = {"id": eid, "source": source, "target": target}
    if handle is not None:
        e["sourceHandle"] = handle
    return e


def trigger(nid="T"):
    return node(nid, "manual_trigger", "triggers")


def codes(result):
    return result.codes


def test_empty_graph_short_circuits():
    result = validate_workflow_graph([], [edge("e1", "a", "b")])
    assert not result.valid
    assert codes(result) == ["NO_NODES"]
    assert result.warnings == []


def test_switch_with_three_cases_is_valid():
    nodes = [trigger(), node("S", "switch", "logic"), node("a", "log_output"), node("b", "log_output"), node("c", "log_output")]
    edges = [edge("e0", "T", "S"), edge("e1", "S", "a"), edge("e2", "S", "b"), edge("e3", "S", "c")]

    result = validate_workflow_graph(nodes, edges)

    assert result.valid
    assert result.errors == []


def test_two_triggers_reports_the_second_one():
    nodes = [trigger("T1"), trigger("T2"), node("a", "log_output")]
    edges = [edge("e1", "T1", "a"), edge("e2", "T2", "a")]

    result = validate_workflow_graph(nodes, edges)

    assert not result.valid
    multi = [e for e in result.errors if e.code == "MULTIPLE_TRIGGERS"]
    assert len(multi) == 1
    assert multi[0].node_id == "T2"


def test_no_trigger_returns_early():
    nodes = [node("a", "log_output"), node("b", "log_output")]
    result = validate_workflow_graph(nodes, [edge("e1", "a", "b")])
    assert codes(result) == ["NO_TRIGGER"]


def test_trigger_tiers_first_non_empty_wins():
    # cron_trigger would match on its kind, but the category tier wins
    nodes = [
        {"id": "hook", "type": "custom", "data": {"type": "my_hook", "category": "Triggers"}},
        {"id": "cron", "type": "custom", "data": {"type": "cron_trigger"}},
    ]
    assert [n["id"] for n in find_trigger_nodes(nodes)] == ["hook"]

    nodes = [{"id": "x", "type": "cron_trigger"}, {"id": "y", "type": "custom", "data": {"type": "unknown"}}]
    assert [n["id"] for n in find_trigger_nodes(nodes)] == ["x"]

    # registry category fills in for nodes without one
    nodes = [{"id": "w", "type": "webhook"}]
    assert [n["id"] for n in find_trigger_nodes(nodes)] == ["w"]


def test_unreachable_nodes_get_one_error_each_and_one_warning():
    nodes = [trigger(), node("a", "log_output"), node("x", "log_output"), node("y", "log_output")]
    edges = [edge("e1", "T", "a"), edge("e2", "x", "y")]

    result = validate_workflow_graph(nodes, edges)

    unreachable = [e.node_id for e in result.errors if e.code == "UNREACHABLE_NODE"]
    assert unreachable == ["x", "y"]
    assert "2 node(s) are not reachable from trigger" in result.warnings
    assert [e.node_id for e in result.errors if e.code == "NO_INCOMING"] == ["x"]


def test_multiple_incoming_except_merge():
    nodes = [
        trigger(),
        node("cond", "if_else", "logic"),
        node("a", "log_output"),
        node("b", "log_output"),
        node("m", "merge"),
        node("j", "log_output"),
    ]
    edges = [
        edge("e1", "T", "cond"),
        edge("e2", "cond", "a", "true"),
        edge("e3", "cond", "b", "false"),
        edge("e4", "a", "m"),
        edge("e5", "b", "m"),
    ]
    assert "MULTIPLE_INCOMING" not in codes(validate_workflow_graph(nodes, edges))

    # same fan-in onto a generic node is rejected
    nodes[4] = node("m", "log_output")
    result = validate_workflow_graph(nodes, edges)
    assert [(e.code, e.node_id) for e in result.errors if e.code == "MULTIPLE_INCOMING"] == [("MULTIPLE_INCOMING", "m")]


def test_generic_node_with_two_outgoing_edges():
    nodes = [trigger(), node("a", "http_request"), node("b", "log_output"), node("c", "log_output")]
    edges = [edge("e1", "T", "a"), edge("e2", "a", "b"), edge("e3", "a", "c")]

    result = validate_workflow_graph(nodes, edges)

    assert codes(result) == ["TOO_MANY_OUTGOING"]
    assert result.errors[0].node_id == "a"


def test_branch_counts_are_warnings_only():
    nodes = [trigger(), node("S", "switch"), node("cond", "if_else"), node("a", "log_output")]
    edges = [edge("e1", "T", "cond"), edge("e2", "cond", "a", "true"), edge("e3", "cond", "S", "false")]

    result = validate_workflow_graph(nodes, edges)

    assert result.valid
    assert any(w.startswith('Switch node "S"') for w in result.warnings)
    assert not any("If/Else" in w for w in result.warnings)

    edges.append(edge("e4", "cond", "a"))
    result = validate_workflow_graph(nodes, edges)
    assert any('If/Else node "cond"' in w for w in result.warnings)
    assert "TOO_MANY_OUTGOING" not in codes(result)


def test_cycle_reported_once_with_closing_edge():
    nodes = [trigger(), node("a", "http_request"), node("b", "http_request"), node("c", "log_output")]
    edges = [edge("e1", "T", "a"), edge("e2", "a", "b"), edge("e3", "b", "a"), edge("e4", "c", "c")]

    result = validate_workflow_graph(nodes, edges)

    cycles = [e for e in result.errors if e.code == "CYCLE_DETECTED"]
    assert len(cycles) == 1
    assert cycles[0].edge_id == "e3"
    assert "a -> b -> a" in cycles[0].message


def test_self_loop_is_a_cycle():
    nodes = [trigger(), node("a", "log_output")]
    edges = [edge("e1", "T", "a"), edge("e2", "a", "a")]
    assert "CYCLE_DETECTED" in codes(validate_workflow_graph(nodes, edges))


def test_error_order_follows_node_order():
    nodes = [trigger(), node("z", "log_output"), node("m", "log_output"), node("a", "log_output")]
    result = validate_workflow_graph(nodes, [])
    assert [e.node_id for e in result.errors if e.code == "NO_INCOMING"] == ["z", "m", "a"]


@pytest.mark.parametrize("n", [1, 3, 8])
def test_valid_chains_are_fully_reachable(n):
    nodes = [trigger()] + [node(f"n{i}", "log_output") for i in range(n)]
    ids = [x["id"] for x in nodes]
    edges = [edge(f"e{i}", ids[i], ids[i + 1]) for i in range(n)]

    result = validate_workflow_graph(nodes, edges)

    assert result.valid
    assert reachable_from(build_graph(nodes, edges), "T") == set(ids)


def test_validator_does_not_mutate_input():
    nodes = [trigger(), node("a", "log_output")]
    edges = [edge("e1", "T", "a")]
    snapshot = (repr(nodes), repr(edges))
    validate_workflow_graph(nodes, edges)
    assert (repr(nodes), repr(edges)) == snapshot


def test_to_dict_uses_camel_case():
    result = validate_workflow_graph([trigger("T1"), trigger("T2")], [])
    payload = result.to_dict()
    assert payload["valid"] is False
    assert payload["errors"][0] == {
        "code": "MULTIPLE_TRIGGERS",
        "message": "Workflow has 2 trigger nodes, but should have exactly one",
        "nodeId": "T2",
    }
