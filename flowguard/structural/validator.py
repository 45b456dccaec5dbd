# flowguard/structural/validator.py
"""
Workflow graph validator.

Checks topology before save/execution:
  - exactly one trigger node
  - every node reachable from the trigger
  - every node except the trigger has exactly one incoming edge (merge nodes may have many)
  - if_else nodes have two outgoing edges, switch nodes any number, others at most one
  - no cycles

Problems are returned as ValidationError records; nothing here raises for a
malformed graph.
"""
from typing import Dict, Any, List

from flowguard.structural.diagnostics import (
    ValidationError,
    ValidationResult,
    NO_NODES,
    NO_TRIGGER,
    MULTIPLE_TRIGGERS,
    UNREACHABLE_NODE,
    NO_INCOMING,
    MULTIPLE_INCOMING,
    TOO_MANY_OUTGOING,
    CYCLE_DETECTED,
)
from flowguard.utils.graph import build_graph, find_trigger_nodes, first_cycle, node_kind, node_label, reachable_from
from flowguard.utils.logger import get_logger

logger = get_logger("structural.validator")


def validate_workflow_graph(nodes: List[Dict[str, Any]], edges: List[Dict[str, Any]]) -> ValidationResult:
    errors: List[ValidationError] = []
    warnings: List[str] = []

    if not nodes:
        errors.append(ValidationError(NO_NODES, "Workflow must have at least one node"))
        return ValidationResult.from_issues(errors, warnings)

    # 1) Trigger cardinality
    triggers = find_trigger_nodes(nodes)
    if not triggers:
        errors.append(ValidationError(NO_TRIGGER, "Workflow must have exactly one trigger node"))
        return ValidationResult.from_issues(errors, warnings)
    if len(triggers) > 1:
        errors.append(ValidationError(
            MULTIPLE_TRIGGERS,
            f"Workflow has {len(triggers)} trigger nodes, but should have exactly one",
            node_id=triggers[1].get("id"),
        ))
    trigger_id = triggers[0].get("id")

    G = build_graph(nodes, edges)

    # 2) Reachability from the trigger
    reachable = reachable_from(G, trigger_id)
    unreachable = [n for n in nodes if n.get("id") not in reachable]
    if unreachable:
        warnings.append(f"{len(unreachable)} node(s) are not reachable from trigger")
        for n in unreachable:
            errors.append(ValidationError(
                UNREACHABLE_NODE,
                f'Node "{node_label(n)}" is not reachable from trigger',
                node_id=n.get("id"),
            ))

    # 3) Incoming edges
    for n in nodes:
        nid = n.get("id")
        if nid == trigger_id:
            continue
        incoming = G.in_degree(nid) if nid in G else 0
        if incoming == 0:
            errors.append(ValidationError(
                NO_INCOMING,
                f'Node "{node_label(n)}" has no incoming edges',
                node_id=nid,
            ))
        elif incoming > 1 and node_kind(n) != "merge":
            errors.append(ValidationError(
                MULTIPLE_INCOMING,
                f'Node "{node_label(n)}" has {incoming} incoming edges, but should have exactly one',
                node_id=nid,
            ))

    # 4) Outgoing edges by node kind
    for n in nodes:
        nid = n.get("id")
        outgoing = G.out_degree(nid) if nid in G else 0
        kind = node_kind(n)
        if kind == "switch":
            if outgoing == 0:
                warnings.append(
                    f'Switch node "{node_label(n)}" should have at least one outgoing edge (one per case)'
                )
        elif kind == "if_else":
            # partially edited graphs pass; auto-fix enforces the pair
            if outgoing != 2:
                warnings.append(
                    f'If/Else node "{node_label(n)}" should have exactly 2 outgoing edges (true/false branches)'
                )
        elif outgoing > 1:
            errors.append(ValidationError(
                TOO_MANY_OUTGOING,
                f'Node "{node_label(n)}" has {outgoing} outgoing edges, but maximum is 1 (for this node type)',
                node_id=nid,
            ))

    # 5) Cycles: report the first one only
    cycle = first_cycle(G)
    if cycle:
        path = " -> ".join(str(u) for u, _v, _k in cycle) + f" -> {cycle[-1][1]}"
        u, v, key = cycle[-1]
        errors.append(ValidationError(
            CYCLE_DETECTED,
            f"Workflow contains a cycle (circular dependency): {path}",
            edge_id=G.edges[u, v, key].get("id"),
        ))

    result = ValidationResult.from_issues(errors, warnings)
    logger.debug("validated %d node(s), %d edge(s): %d error(s)", len(nodes), len(edges), len(errors))
    return result
