# flowguard/structural/autofix.py
"""
Auto-fixer for conditional nodes.

After a pass every if_else node has exactly one "true" and one "false"
outgoing edge, and the two point at different nodes. Missing branches are
closed with log_output sink nodes. Edges into unknown nodes never count as
a branch. Re-running the pass on its own output changes nothing.
"""
import copy
from typing import Any, Dict, List, Optional, Set

from flowguard.utils.graph import node_kind
from flowguard.utils.logger import get_logger

logger = get_logger("structural.autofix")

SINK_TYPE = "log_output"

# (dx, dy) of synthesized sinks relative to their if_else node
TRUE_OFFSET = (300, -100)
FALSE_OFFSET = (300, 100)
DETACHED_OFFSET = (300, 150)


class _IdAllocator:
    """Smallest unused `<prefix>_<n>` across node and edge ids (linear probe)."""

    def __init__(self, taken: Set[str]):
        self.taken = taken

    def next(self, prefix: str) -> str:
        i = 1
        while f"{prefix}_{i}" in self.taken:
            i += 1
        new_id = f"{prefix}_{i}"
        self.taken.add(new_id)
        return new_id


def _sink_node(node_id: str, anchor: Dict[str, Any], offset, message: str) -> Dict[str, Any]:
    pos = anchor.get("position") or {}
    return {
        "id": node_id,
        "type": SINK_TYPE,
        "position": {
            "x": (pos.get("x") or 0) + offset[0],
            "y": (pos.get("y") or 0) + offset[1],
        },
        "data": {
            "type": SINK_TYPE,
            "label": "Log Output",
            "category": "output",
            "config": {"message": message, "level": "info"},
        },
    }


def _resolve_branch(handled: List[dict], loose: List[dict], handle: str) -> Optional[dict]:
    """First edge already on `handle`, else claim the next handle-less one."""
    if handled:
        return handled[0]
    if loose:
        edge = loose.pop(0)
        edge["sourceHandle"] = handle
        return edge
    return None


def _branch_edge(edges: List[dict], source: str, handle: str, node_ids: Set[Any]) -> Optional[dict]:
    return next(
        (e for e in edges
         if e.get("source") == source and e.get("sourceHandle") == handle and e.get("target") in node_ids),
        None,
    )


def auto_fix_workflow(workflow: Dict[str, Any]) -> Dict[str, Any]:
    """
    Repair if_else branches on a deep copy of `workflow` and return it.
    Workflows without both `nodes` and `edges` come back as plain copies.
    """
    fixed = copy.deepcopy(workflow)
    if not fixed.get("nodes") or fixed.get("edges") is None:
        return fixed

    nodes: List[dict] = fixed["nodes"]
    edges: List[dict] = fixed["edges"]
    node_ids = {n.get("id") for n in nodes}
    ids = _IdAllocator({e.get("id") for e in edges} | node_ids)

    if_else_nodes = [n for n in nodes if node_kind(n) == "if_else"]

    for node in if_else_nodes:
        nid = node.get("id")
        # edges into unknown nodes are left for the normalizer to drop
        outgoing = [e for e in edges if e.get("source") == nid and e.get("target") in node_ids]
        outgoing_ids = {id(e) for e in outgoing}
        true_edges = [e for e in outgoing if e.get("sourceHandle") == "true"]
        false_edges = [e for e in outgoing if e.get("sourceHandle") == "false"]
        loose = [e for e in outgoing if not e.get("sourceHandle")]

        true_edge = _resolve_branch(true_edges, loose, "true")
        false_edge = _resolve_branch(false_edges, loose, "false")

        dropped = len(outgoing) - sum(1 for e in (true_edge, false_edge) if e is not None)
        if dropped:
            logger.info("if_else %s: dropped %d surplus outgoing edge(s)", nid, dropped)

        edges = [e for e in edges if id(e) not in outgoing_ids]

        for handle, edge, prefix, offset, message in (
            ("true", true_edge, "log_true", TRUE_OFFSET, f"True path from {nid}"),
            ("false", false_edge, "log_false", FALSE_OFFSET, f"False path from {nid}"),
        ):
            if edge is not None:
                edges.append(edge)
                continue
            sink = _sink_node(ids.next(prefix), node, offset, message)
            nodes.append(sink)
            node_ids.add(sink["id"])
            edges.append({
                "id": ids.next("edge"),
                "source": nid,
                "target": sink["id"],
                "sourceHandle": handle,
            })
            logger.info("if_else %s: added %s sink %s", nid, handle, sink["id"])

    # Second pass: both branches landing on the same node are ambiguous
    for node in if_else_nodes:
        nid = node.get("id")
        true_edge = _branch_edge(edges, nid, "true", node_ids)
        false_edge = _branch_edge(edges, nid, "false", node_ids)
        if true_edge and false_edge and true_edge.get("target") == false_edge.get("target"):
            sink = _sink_node(
                ids.next("log_false_fix"),
                node,
                DETACHED_OFFSET,
                f"False path from {nid} (detached from shared target)",
            )
            nodes.append(sink)
            logger.info("if_else %s: false branch detached from shared target %s", nid, false_edge.get("target"))
            false_edge["target"] = sink["id"]

    fixed["nodes"] = nodes
    fixed["edges"] = edges
    return fixed
